"""Tests for the HTTP API."""

from unittest.mock import patch

import pytest

from conftest import MEDICINES

DOCTOR = {
    "name": "Dr. Emily Rodriguez",
    "email": "emily@clinic.com",
    "password": "secret",
    "specialty": "Dermatology",
    "experience": 6,
    "price": 60,
    "languages": ["English", "Spanish", "French"],
}

PATIENT = {
    "name": "Ram Kumar",
    "email": "ramkumar@email.com",
    "password": "secret",
    "age": 35,
    "gender": "Male",
}


@pytest.fixture
def api_doctor(client):
    return client.post("/api/auth/register-doctor", json=DOCTOR).get_json()


@pytest.fixture
def api_patient(client):
    return client.post("/api/patients", json=PATIENT).get_json()


@pytest.fixture
def api_slot(client, api_doctor):
    response = client.post(f"/api/doctors/{api_doctor['id']}/slots", json={"date": "2025-01-15", "time": "13:00"})
    return response.get_json()


@pytest.fixture
def api_consultation(client, api_doctor, api_patient, api_slot):
    response = client.post("/api/consultations", json={
        "patient_id": api_patient["id"],
        "doctor_id": api_doctor["id"],
        "slot_id": api_slot["id"],
    })
    return response.get_json()


@pytest.fixture
def api_prescription(client, api_consultation):
    response = client.post(f"/api/consultations/{api_consultation['id']}/prescription", json={
        "doctor_id": api_consultation["doctor_id"],
        "patient_id": api_consultation["patient_id"],
        "medicines": MEDICINES,
        "instructions": "Rest well.",
    })
    return response.get_json()


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.get_json() == {"status": "ok"}


class TestAuthRoutes:
    """Tests for registration and login."""

    def test_register_doctor(self, client):
        """Test that registration returns the profile without the password."""
        response = client.post("/api/auth/register-doctor", json=DOCTOR)
        assert response.status_code == 201
        body = response.get_json()
        assert body["specialty"] == "Dermatology"
        assert body["slots"] == []
        assert "password" not in body
        assert "password_hash" not in body

    def test_register_duplicate_email(self, client, api_doctor):
        response = client.post("/api/auth/register-doctor", json=DOCTOR)
        assert response.status_code == 409
        assert response.get_json()["message"] == "Email already registered"

    def test_register_missing_field(self, client):
        payload = {k: v for k, v in DOCTOR.items() if k != "specialty"}
        response = client.post("/api/auth/register-doctor", json=payload)
        assert response.status_code == 400
        assert "specialty" in response.get_json()["message"]

    def test_register_bad_email(self, client):
        response = client.post("/api/auth/register-doctor", json={**DOCTOR, "email": "not-an-email"})
        assert response.status_code == 400

    def test_login_doctor_includes_slots(self, client, api_doctor, api_slot):
        response = client.post("/api/auth/login", json={
            "email": "emily@clinic.com", "password": "secret", "role": "doctor",
        })
        assert response.status_code == 200
        assert [s["id"] for s in response.get_json()["slots"]] == [api_slot["id"]]

    def test_login_patient(self, client, api_patient):
        response = client.post("/api/auth/login", json={
            "email": "ramkumar@email.com", "password": "secret", "role": "patient",
        })
        assert response.status_code == 200
        assert response.get_json()["id"] == api_patient["id"]

    def test_login_failure(self, client, api_doctor):
        response = client.post("/api/auth/login", json={
            "email": "emily@clinic.com", "password": "wrong", "role": "doctor",
        })
        assert response.status_code == 401
        assert response.get_json()["message"] == "Invalid credentials"

    def test_login_bad_role(self, client):
        response = client.post("/api/auth/login", json={
            "email": "emily@clinic.com", "password": "secret", "role": "admin",
        })
        assert response.status_code == 400


class TestDoctorRoutes:
    """Tests for doctor listing and slot publishing."""

    def test_list_doctors_with_slots(self, client, api_doctor, api_slot):
        body = client.get("/api/doctors").get_json()
        assert len(body) == 1
        assert body[0]["slots"][0]["time"] == "13:00"

    def test_filter_by_specialty(self, client, api_doctor):
        assert len(client.get("/api/doctors?specialty=Dermatology").get_json()) == 1
        assert client.get("/api/doctors?specialty=Cardiology").get_json() == []

    def test_get_unknown_doctor(self, client):
        response = client.get("/api/doctors/missing")
        assert response.status_code == 404
        assert response.get_json()["message"] == "Doctor not found"

    def test_add_slot_validates_time(self, client, api_doctor):
        response = client.post(f"/api/doctors/{api_doctor['id']}/slots", json={"date": "2025-01-15", "time": "25:00"})
        assert response.status_code == 400

    def test_add_slot_validates_date(self, client, api_doctor):
        response = client.post(f"/api/doctors/{api_doctor['id']}/slots", json={"date": "15/01/2025", "time": "09:00"})
        assert response.status_code == 400

    def test_add_slot_unknown_doctor(self, client):
        response = client.post("/api/doctors/missing/slots", json={"date": "2025-01-15", "time": "09:00"})
        assert response.status_code == 404

    def test_list_slots(self, client, api_doctor, api_slot):
        body = client.get(f"/api/doctors/{api_doctor['id']}/slots").get_json()
        assert [s["id"] for s in body] == [api_slot["id"]]


class TestPatientRoutes:
    """Tests for patient CRUD."""

    def test_create_normalizes_gender(self, client, api_patient):
        assert api_patient["gender"] == "male"
        assert api_patient["role"] == "patient"

    def test_get_and_list(self, client, api_patient):
        assert client.get(f"/api/patients/{api_patient['id']}").get_json()["name"] == "Ram Kumar"
        assert len(client.get("/api/patients").get_json()) == 1

    def test_update(self, client, api_patient):
        response = client.put(f"/api/patients/{api_patient['id']}", json={"phone": "555-0101"})
        assert response.status_code == 200
        assert response.get_json()["phone"] == "555-0101"
        assert response.get_json()["age"] == 35

    def test_delete(self, client, api_patient):
        response = client.delete(f"/api/patients/{api_patient['id']}")
        assert response.get_json() == {"success": True}
        assert client.get(f"/api/patients/{api_patient['id']}").status_code == 404

    def test_non_object_body(self, client):
        response = client.post("/api/patients", json=["not", "an", "object"])
        assert response.status_code == 400


class TestConsultationRoutes:
    """Tests for booking and prescribing over HTTP."""

    def test_book(self, client, api_consultation, api_doctor):
        assert api_consultation["status"] == "scheduled"
        assert api_consultation["prescription"] is None
        assert client.get(f"/api/doctors/{api_doctor['id']}/slots").get_json() == []

    def test_double_booking(self, client, api_consultation):
        response = client.post("/api/consultations", json={
            "patient_id": api_consultation["patient_id"],
            "doctor_id": api_consultation["doctor_id"],
            "slot_id": api_consultation["slot_id"],
        })
        assert response.status_code == 409

    def test_book_unknown_slot(self, client, api_doctor, api_patient):
        response = client.post("/api/consultations", json={
            "patient_id": api_patient["id"], "doctor_id": api_doctor["id"], "slot_id": "missing",
        })
        assert response.status_code == 404

    def test_list_requires_user_and_role(self, client):
        assert client.get("/api/consultations").status_code == 400

    def test_list_includes_prescription(self, client, api_prescription, api_consultation):
        body = client.get(
            f"/api/consultations?user_id={api_consultation['patient_id']}&role=patient"
        ).get_json()
        assert body[0]["status"] == "completed"
        assert body[0]["prescription"]["id"] == api_prescription["id"]

    def test_issue_prescription(self, client, api_prescription):
        assert len(api_prescription["medicines"]) == 2
        assert api_prescription["instructions"] == "Rest well."

    def test_second_prescription_conflicts(self, client, api_consultation, api_prescription):
        response = client.post(f"/api/consultations/{api_consultation['id']}/prescription", json={
            "doctor_id": api_consultation["doctor_id"],
            "patient_id": api_consultation["patient_id"],
            "medicines": MEDICINES,
        })
        assert response.status_code == 409

    def test_prescription_needs_medicines(self, client, api_consultation):
        response = client.post(f"/api/consultations/{api_consultation['id']}/prescription", json={
            "doctor_id": api_consultation["doctor_id"],
            "patient_id": api_consultation["patient_id"],
            "medicines": [],
        })
        assert response.status_code == 400

    def test_payment_settlement(self, client, api_consultation):
        payment = client.get(f"/api/consultations/{api_consultation['id']}/payment").get_json()
        assert payment["status"] == "pending"
        assert payment["amount"] == 60.0

        settled = client.post(f"/api/payments/{payment['id']}/settle", json={"paid": True})
        assert settled.get_json()["status"] == "paid"
        again = client.post(f"/api/payments/{payment['id']}/settle", json={"paid": True})
        assert again.status_code == 409


class TestPharmacyRoutes:
    """Tests for prescriptions and orders."""

    def test_get_prescription(self, client, api_prescription):
        body = client.get(f"/api/prescriptions/{api_prescription['id']}").get_json()
        assert body["id"] == api_prescription["id"]

    def test_patient_prescriptions(self, client, api_prescription):
        body = client.get(f"/api/patients/{api_prescription['patient_id']}/prescriptions").get_json()
        assert [p["id"] for p in body] == [api_prescription["id"]]

    def test_order_lifecycle(self, client, api_prescription):
        """Test ordering a prescription and advancing it to delivery."""
        response = client.post("/api/orders", json={"prescription_id": api_prescription["id"]})
        assert response.status_code == 201
        order = response.get_json()
        assert order["total_amount"] == 100.0
        assert order["progress"] == 20

        for expected in ["confirmed", "preparing", "out_for_delivery", "delivered"]:
            order = client.post(f"/api/orders/{order['id']}/advance").get_json()
            assert order["status"] == expected

        assert client.post(f"/api/orders/{order['id']}/advance").status_code == 409
        assert client.get(f"/api/orders/{order['id']}").get_json()["progress"] == 100

        orders = client.get(f"/api/patients/{api_prescription['patient_id']}/orders").get_json()
        assert [o["id"] for o in orders] == [order["id"]]

    def test_order_unknown_prescription(self, client):
        response = client.post("/api/orders", json={"prescription_id": "missing"})
        assert response.status_code == 404


class TestSymptomRoutes:
    """Tests for the symptom checker endpoints."""

    def test_questions(self, client):
        body = client.get("/api/symptoms/questions").get_json()
        assert [q["id"] for q in body] == ["q1", "q2", "q3", "q4"]

    def test_analyze(self, client):
        response = client.post("/api/symptoms/analyze", json={"responses": [
            {"question_id": "q1", "answer": "Chest Pain"},
            {"question_id": "q3", "answer": 3},
        ]})
        assert response.get_json()["specialty"] == "Cardiology"
        assert response.get_json()["urgency"] == "high"

    @pytest.mark.parametrize("body", [None, {"responses": "nope"}, ["x"]])
    def test_analyze_malformed(self, client, body):
        """Test that a malformed body still gets the default recommendation."""
        response = client.post("/api/symptoms/analyze", json=body)
        assert response.status_code == 200
        assert response.get_json()["specialty"] == "General Medicine"

    @pytest.mark.parametrize("raw", [
        '{"responses": [{"question_id": "q3", "answer": Infinity}]}',
        '{"responses": [{"question_id": "q3", "answer": NaN}]}',
        '{"responses": [{"question_id": {"a": 1}, "answer": 1}]}',
    ])
    def test_analyze_unusual_json(self, client, raw):
        """Test that non-finite numbers and non-string ids still get a recommendation."""
        response = client.post("/api/symptoms/analyze", data=raw, content_type="application/json")
        assert response.status_code == 200
        assert response.get_json()["urgency"] == "low"


class TestErrorHandling:
    """Tests for the error envelope."""

    def test_unknown_route(self, client):
        response = client.get("/api/nowhere")
        assert response.status_code == 404
        assert "message" in response.get_json()

    def test_unexpected_error_is_hidden(self, app, client):
        """Test that internal failures return a generic 500."""
        repos = app.extensions["telemed"]
        with patch.object(repos.users, "list_doctors", side_effect=RuntimeError("boom")):
            response = client.get("/api/doctors")
        assert response.status_code == 500
        assert response.get_json() == {"message": "Server error"}
