"""Shared pytest fixtures."""

import pytest

from telemed_booking.api import create_app
from telemed_booking.clinic.database import (
    BookingRepository,
    OrderRepository,
    PrescriptionRepository,
    UserRepository,
    init_database,
)
from telemed_booking.config import Settings

MEDICINES = [
    {
        "name": "Paracetamol 500mg",
        "dosage": "500mg",
        "frequency": "Twice daily",
        "duration": "5 days",
        "quantity": 10,
    },
    {
        "name": "Vitamin D3",
        "dosage": "1000 IU",
        "frequency": "Once daily",
        "duration": "30 days",
        "quantity": 30,
    },
]


@pytest.fixture
def db_path(tmp_path):
    """A fresh database per test."""
    path = tmp_path / "telemed.db"
    init_database(path)
    return path


@pytest.fixture
def settings(db_path, tmp_path):
    return Settings(
        db_path=db_path,
        offline_cache_path=tmp_path / "offline_cache.json",
        meeting_base_url="https://meet.example.com",
    )


@pytest.fixture
def users(db_path):
    return UserRepository(db_path)


@pytest.fixture
def bookings(db_path):
    return BookingRepository(db_path, "https://meet.example.com")


@pytest.fixture
def prescriptions(db_path):
    return PrescriptionRepository(db_path)


@pytest.fixture
def orders(db_path):
    return OrderRepository(db_path, unit_price=2.50, delivery_days=2)


@pytest.fixture
def doctor(users):
    return users.register_doctor(
        name="Dr. Emily Rodriguez",
        email="emily@clinic.com",
        password="secret",
        specialty="Dermatology",
        experience=6,
        price=60,
        languages=["English", "Spanish", "French"],
        rating=4.7,
    )


@pytest.fixture
def patient(users):
    return users.register_patient(
        name="Ram Kumar",
        email="ramkumar@email.com",
        password="secret",
        age=35,
        gender="male",
    )


@pytest.fixture
def slot(bookings, doctor):
    return bookings.add_slot(doctor.id, "2025-01-15", "13:00")


@pytest.fixture
def consultation(bookings, doctor, patient, slot):
    return bookings.book(patient.id, doctor.id, slot.id)


@pytest.fixture
def prescription(prescriptions, consultation):
    return prescriptions.issue(
        consultation_id=consultation.id,
        doctor_id=consultation.doctor_id,
        patient_id=consultation.patient_id,
        medicines=MEDICINES,
        instructions="Rest well and stay hydrated.",
    )


@pytest.fixture
def app(settings):
    app = create_app(settings)
    app.testing = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()
