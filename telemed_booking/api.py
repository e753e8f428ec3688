"""Flask JSON API for the telemedicine booking platform.

Routes only parse requests, call a repository and serialize the result.
Repositories are built per app from the configured database path.
"""

import logging
import sqlite3
from contextlib import closing
from dataclasses import asdict, dataclass

from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from telemed_booking.clinic.database import (
    BookingRepository,
    OrderRepository,
    PrescriptionRepository,
    UserRepository,
    get_connection,
    init_database,
)
from telemed_booking.config import Settings
from telemed_booking.exceptions import TelemedError, ValidationError
from telemed_booking.logging_config import setup_logging
from telemed_booking.schemas import (
    BookingRequest,
    DoctorRegistration,
    LoginRequest,
    OrderRequest,
    PatientRegistration,
    PatientUpdate,
    PaymentSettlement,
    PrescriptionRequest,
    SlotCreate,
    parse_model,
)
from telemed_booking.symptom_checker import analyze, get_questions

logger = logging.getLogger(__name__)


@dataclass
class Repositories:
    users: UserRepository
    bookings: BookingRepository
    prescriptions: PrescriptionRepository
    orders: OrderRepository


def build_repositories(settings: Settings) -> Repositories:
    return Repositories(
        users=UserRepository(settings.db_path),
        bookings=BookingRepository(settings.db_path, settings.meeting_base_url),
        prescriptions=PrescriptionRepository(settings.db_path),
        orders=OrderRepository(settings.db_path, settings.unit_price, settings.delivery_days),
    )


def create_app(settings: Settings | None = None) -> Flask:
    """Application factory."""
    settings = settings or Settings.from_env()
    init_database(settings.db_path)
    repos = build_repositories(settings)

    app = Flask(__name__)
    app.config["SETTINGS"] = settings
    app.extensions["telemed"] = repos
    CORS(app, resources={r"/api/*": {"origins": settings.cors_origins}})

    setup_error_handlers(app)
    setup_health_routes(app, settings)
    setup_auth_routes(app, repos)
    setup_doctor_routes(app, repos)
    setup_patient_routes(app, repos)
    setup_consultation_routes(app, repos)
    setup_pharmacy_routes(app, repos)
    setup_symptom_routes(app)
    return app


def json_body() -> dict:
    """Return the JSON object sent with the request."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


# Serializers


def serialize_doctor(doctor, slots=None) -> dict:
    data = asdict(doctor)
    if slots is not None:
        data["slots"] = [asdict(slot) for slot in slots]
    return data


def serialize_consultation(consultation, prescription=None) -> dict:
    data = asdict(consultation)
    data["prescription"] = serialize_prescription(prescription) if prescription else None
    return data


def serialize_prescription(prescription) -> dict:
    return asdict(prescription)


def serialize_order(order) -> dict:
    data = asdict(order)
    data["progress"] = order.progress
    return data


# Routes


def setup_error_handlers(app: Flask) -> None:

    @app.errorhandler(TelemedError)
    def handle_telemed_error(e):
        return jsonify({"message": e.message}), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({"message": e.description}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"message": "Server error"}), 500


def setup_health_routes(app: Flask, settings: Settings) -> None:

    @app.route("/health", methods=["GET"])
    def health_check():
        try:
            with closing(get_connection(settings.db_path)) as conn:
                conn.execute("SELECT 1")
        except sqlite3.Error as e:
            logger.error("Health check failed: %s", e)
            return jsonify({"status": "error", "error": str(e)}), 500
        return jsonify({"status": "ok"})


def setup_auth_routes(app: Flask, repos: Repositories) -> None:

    @app.route("/api/auth/register-doctor", methods=["POST"])
    def register_doctor():
        payload = parse_model(DoctorRegistration, json_body())
        doctor = repos.users.register_doctor(**payload.model_dump())
        return jsonify(serialize_doctor(doctor, slots=[])), 201

    @app.route("/api/auth/login", methods=["POST"])
    def login():
        payload = parse_model(LoginRequest, json_body())
        profile = repos.users.authenticate(payload.email, payload.password, payload.role)
        if payload.role == "doctor":
            return jsonify(serialize_doctor(profile, repos.bookings.list_available(profile.id)))
        return jsonify(asdict(profile))


def setup_doctor_routes(app: Flask, repos: Repositories) -> None:

    @app.route("/api/doctors", methods=["GET"])
    def list_doctors():
        doctors = repos.users.list_doctors(specialty=request.args.get("specialty"))
        return jsonify([
            serialize_doctor(doctor, repos.bookings.list_available(doctor.id))
            for doctor in doctors
        ])

    @app.route("/api/doctors/<doctor_id>", methods=["GET"])
    def get_doctor(doctor_id):
        doctor = repos.users.get_doctor(doctor_id)
        return jsonify(serialize_doctor(doctor, repos.bookings.list_available(doctor_id)))

    @app.route("/api/doctors/<doctor_id>/slots", methods=["GET"])
    def list_slots(doctor_id):
        repos.users.get_doctor(doctor_id)
        return jsonify([asdict(slot) for slot in repos.bookings.list_available(doctor_id)])

    @app.route("/api/doctors/<doctor_id>/slots", methods=["POST"])
    def add_slot(doctor_id):
        payload = parse_model(SlotCreate, json_body())
        slot = repos.bookings.add_slot(doctor_id, payload.date, payload.time)
        return jsonify(asdict(slot)), 201


def setup_patient_routes(app: Flask, repos: Repositories) -> None:

    @app.route("/api/patients", methods=["POST"])
    def create_patient():
        payload = parse_model(PatientRegistration, json_body())
        patient = repos.users.register_patient(**payload.model_dump())
        return jsonify(asdict(patient)), 201

    @app.route("/api/patients", methods=["GET"])
    def list_patients():
        return jsonify([asdict(patient) for patient in repos.users.list_patients()])

    @app.route("/api/patients/<patient_id>", methods=["GET"])
    def get_patient(patient_id):
        return jsonify(asdict(repos.users.get_patient(patient_id)))

    @app.route("/api/patients/<patient_id>", methods=["PUT"])
    def update_patient(patient_id):
        payload = parse_model(PatientUpdate, json_body())
        patient = repos.users.update_patient(patient_id, payload.model_dump(exclude_none=True))
        return jsonify(asdict(patient))

    @app.route("/api/patients/<patient_id>", methods=["DELETE"])
    def delete_patient(patient_id):
        repos.users.delete_patient(patient_id)
        return jsonify({"success": True})

    @app.route("/api/patients/<patient_id>/prescriptions", methods=["GET"])
    def list_patient_prescriptions(patient_id):
        prescriptions = repos.prescriptions.list_for_patient(patient_id)
        return jsonify([serialize_prescription(p) for p in prescriptions])

    @app.route("/api/patients/<patient_id>/orders", methods=["GET"])
    def list_patient_orders(patient_id):
        return jsonify([serialize_order(o) for o in repos.orders.list_for_patient(patient_id)])


def setup_consultation_routes(app: Flask, repos: Repositories) -> None:

    @app.route("/api/consultations", methods=["POST"])
    def book_consultation():
        payload = parse_model(BookingRequest, json_body())
        consultation = repos.bookings.book(
            patient_id=payload.patient_id,
            doctor_id=payload.doctor_id,
            slot_id=payload.slot_id,
            critical=payload.is_critical,
        )
        return jsonify(serialize_consultation(consultation)), 201

    @app.route("/api/consultations", methods=["GET"])
    def list_consultations():
        user_id = request.args.get("user_id")
        role = request.args.get("role")
        if not user_id or not role:
            raise ValidationError("user_id and role are required")
        consultations = repos.bookings.list_consultations(user_id, role)
        return jsonify([
            serialize_consultation(c, repos.prescriptions.get_for_consultation(c.id) if c.prescription_id else None)
            for c in consultations
        ])

    @app.route("/api/consultations/<consultation_id>", methods=["GET"])
    def get_consultation(consultation_id):
        consultation = repos.bookings.get_consultation(consultation_id)
        prescription = repos.prescriptions.get_for_consultation(consultation_id)
        return jsonify(serialize_consultation(consultation, prescription))

    @app.route("/api/consultations/<consultation_id>/prescription", methods=["POST"])
    def issue_prescription(consultation_id):
        payload = parse_model(PrescriptionRequest, json_body())
        prescription = repos.prescriptions.issue(
            consultation_id=consultation_id,
            doctor_id=payload.doctor_id,
            patient_id=payload.patient_id,
            medicines=[m.model_dump() for m in payload.medicines],
            instructions=payload.instructions,
        )
        return jsonify(serialize_prescription(prescription)), 201

    @app.route("/api/consultations/<consultation_id>/payment", methods=["GET"])
    def get_payment(consultation_id):
        return jsonify(asdict(repos.bookings.get_payment_for_consultation(consultation_id)))

    @app.route("/api/payments/<payment_id>/settle", methods=["POST"])
    def settle_payment(payment_id):
        payload = parse_model(PaymentSettlement, json_body())
        return jsonify(asdict(repos.bookings.settle_payment(payment_id, payload.paid)))


def setup_pharmacy_routes(app: Flask, repos: Repositories) -> None:

    @app.route("/api/prescriptions/<prescription_id>", methods=["GET"])
    def get_prescription(prescription_id):
        return jsonify(serialize_prescription(repos.prescriptions.get(prescription_id)))

    @app.route("/api/orders", methods=["POST"])
    def create_order():
        payload = parse_model(OrderRequest, json_body())
        order = repos.orders.create(payload.prescription_id)
        return jsonify(serialize_order(order)), 201

    @app.route("/api/orders/<order_id>", methods=["GET"])
    def get_order(order_id):
        return jsonify(serialize_order(repos.orders.get(order_id)))

    @app.route("/api/orders/<order_id>/advance", methods=["POST"])
    def advance_order(order_id):
        return jsonify(serialize_order(repos.orders.advance(order_id)))


def setup_symptom_routes(app: Flask) -> None:

    @app.route("/api/symptoms/questions", methods=["GET"])
    def symptom_questions():
        return jsonify([q.model_dump() for q in get_questions()])

    @app.route("/api/symptoms/analyze", methods=["POST"])
    def analyze_symptoms():
        # Malformed answers still get a (default) recommendation
        data = request.get_json(silent=True)
        responses = data.get("responses") if isinstance(data, dict) else None
        if not isinstance(responses, list):
            responses = []
        return jsonify(analyze(responses).model_dump())


def run() -> None:
    """Entry point for the development server."""
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    app = create_app(settings)
    logger.info("API running on http://localhost:%s", settings.port)
    app.run(host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
