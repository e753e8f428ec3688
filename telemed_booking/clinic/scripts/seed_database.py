"""Seed the database with sample doctors, a patient and a finished consultation."""

from datetime import datetime, timedelta
from pathlib import Path

from telemed_booking.clinic.database import (
    BookingRepository,
    PrescriptionRepository,
    UserRepository,
    init_database,
)
from telemed_booking.config import Settings
from telemed_booking.exceptions import DuplicateEmail

SAMPLE_PASSWORD = "password123"

MOCK_DOCTORS = [
    {
        "name": "Dr. Sarah Johnson",
        "email": "sarah@clinic.com",
        "specialty": "General Medicine",
        "experience": 8,
        "rating": 4.8,
        "price": 50,
        "languages": ["English", "Spanish"],
    },
    {
        "name": "Dr. Michael Chen",
        "email": "michael@clinic.com",
        "specialty": "Cardiology",
        "experience": 12,
        "rating": 4.9,
        "price": 75,
        "languages": ["English", "Chinese"],
    },
    {
        "name": "Dr. Emily Rodriguez",
        "email": "emily@clinic.com",
        "specialty": "Dermatology",
        "experience": 6,
        "rating": 4.7,
        "price": 60,
        "languages": ["English", "Spanish", "French"],
    },
]

MOCK_PATIENT = {
    "name": "Ram Kumar",
    "email": "ramkumar@email.com",
    "age": 35,
    "gender": "male",
}

MOCK_MEDICINES = [
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

MOCK_INSTRUCTIONS = "Take medication as prescribed. Rest well and stay hydrated."

SLOT_TIMES = ["09:00", "10:00", "11:00", "13:00", "14:00", "16:00"]


def generate_slot_times(start_date: datetime, days: int = 7) -> list[tuple[str, str]]:
    """Generate (date, time) pairs for the coming days."""
    slots = []
    current = start_date
    for _ in range(days):
        date_str = current.strftime("%Y-%m-%d")
        for time in SLOT_TIMES:
            slots.append((date_str, time))
        current += timedelta(days=1)
    return slots


def seed_database(db_path: Path | str | None = None, start_date: datetime | None = None) -> dict:
    """Initialize and seed the database. Accounts that already exist are skipped."""
    settings = Settings.from_env()
    db_path = db_path or settings.db_path
    start_date = start_date or datetime.now().replace(hour=0, minute=0, second=0, microsecond=0)

    print("Initializing database...")
    init_database(db_path)

    users = UserRepository(db_path)
    bookings = BookingRepository(db_path, settings.meeting_base_url)
    prescriptions = PrescriptionRepository(db_path)
    counts = {"doctors": 0, "slots": 0, "patients": 0, "consultations": 0}

    # Seed doctors and their slots
    print("Creating mock doctors...")
    created_doctors = []
    for doctor_data in MOCK_DOCTORS:
        try:
            doctor = users.register_doctor(password=SAMPLE_PASSWORD, **doctor_data)
        except DuplicateEmail:
            print(f"  Skipping {doctor_data['name']} (already exists)")
            continue
        created_doctors.append(doctor)
        counts["doctors"] += 1
        print(f"  Created {doctor.name}")

        for date, time in generate_slot_times(start_date):
            bookings.add_slot(doctor.id, date, time)
            counts["slots"] += 1

    # Seed the patient
    print("Creating mock patient...")
    try:
        patient = users.register_patient(password=SAMPLE_PASSWORD, **MOCK_PATIENT)
    except DuplicateEmail:
        print(f"  Skipping {MOCK_PATIENT['name']} (already exists)")
        patient = None
    else:
        counts["patients"] += 1
        print(f"  Created {patient.name}")

    # A completed consultation with a prescription, for the pharmacy flow
    dermatologist = next((d for d in created_doctors if d.specialty == "Dermatology"), None)
    if patient and dermatologist:
        print("Creating sample consultation...")
        slot = bookings.list_available(dermatologist.id)[0]
        consultation = bookings.book(patient.id, dermatologist.id, slot.id)
        prescriptions.issue(
            consultation_id=consultation.id,
            doctor_id=dermatologist.id,
            patient_id=patient.id,
            medicines=MOCK_MEDICINES,
            instructions=MOCK_INSTRUCTIONS,
        )
        counts["consultations"] += 1
        print(f"  Created consultation on {consultation.date} at {consultation.time}")

    print("\nDatabase seeded successfully!")
    print(f"  - {counts['doctors']} doctors")
    print(f"  - {counts['slots']} time slots")
    print(f"  - {counts['patients']} patients")
    print(f"  - {counts['consultations']} consultations")
    return counts


def main():
    seed_database()


if __name__ == "__main__":
    main()
