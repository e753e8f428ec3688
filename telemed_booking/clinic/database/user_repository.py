"""User repository: registration, login and doctor/patient profiles."""

import json
import logging
import sqlite3
import uuid
from contextlib import closing
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from werkzeug.security import check_password_hash, generate_password_hash

from telemed_booking.exceptions import AuthFailure, DuplicateEmail, NotFound, ValidationError

from .connection import get_connection, transaction

logger = logging.getLogger(__name__)

ROLES = ("doctor", "patient")
GENDERS = ("male", "female", "other")


@dataclass
class Doctor:
    id: str
    name: str
    email: str
    specialty: str
    experience: int
    price: float
    rating: float = 4.5
    languages: list[str] = field(default_factory=list)
    role: str = "doctor"
    created_at: str | None = None


@dataclass
class Patient:
    id: str
    name: str
    email: str
    age: int | None = None
    gender: str | None = None
    phone: str | None = None
    role: str = "patient"
    created_at: str | None = None


DOCTOR_QUERY = """
    SELECT u.id, u.name, u.email, u.password_hash, u.created_at,
           d.specialty, d.experience, d.languages, d.price, d.rating
    FROM users u JOIN doctors d ON d.user_id = u.id
"""

PATIENT_QUERY = """
    SELECT u.id, u.name, u.email, u.password_hash, u.created_at,
           p.age, p.gender, p.phone
    FROM users u JOIN patients p ON p.user_id = u.id
"""


class UserRepository:
    """Repository for accounts. Password hashes are stored, never returned."""

    # Fields that can be updated on a patient
    PATIENT_USER_FIELDS = ["name", "email"]
    PATIENT_PROFILE_FIELDS = ["age", "gender", "phone"]

    def __init__(self, db_path: Path | str):
        self.db_path = db_path

    def register_doctor(
        self,
        name: str,
        email: str,
        password: str,
        specialty: str,
        experience: int,
        price: float,
        languages: list[str] | None = None,
        rating: float = 4.5,
    ) -> Doctor:
        """Create a doctor account and profile in one transaction."""
        languages = list(languages or [])
        with transaction(self.db_path) as conn:
            user_id, now = self._insert_user(conn, name, email, password, "doctor")
            conn.execute(
                """INSERT INTO doctors (user_id, specialty, experience, languages, price, rating)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (user_id, specialty, int(experience), json.dumps(languages), float(price), float(rating)),
            )

        logger.info("Registered doctor %s (%s)", user_id, specialty)
        return Doctor(
            id=user_id,
            name=name,
            email=_normalize_email(email),
            specialty=specialty,
            experience=int(experience),
            price=float(price),
            rating=float(rating),
            languages=languages,
            created_at=now,
        )

    def register_patient(
        self,
        name: str,
        email: str,
        password: str,
        age: int | None = None,
        gender: str | None = None,
        phone: str | None = None,
    ) -> Patient:
        """Create a patient account and profile in one transaction."""
        _check_gender(gender)
        with transaction(self.db_path) as conn:
            user_id, now = self._insert_user(conn, name, email, password, "patient")
            conn.execute(
                "INSERT INTO patients (user_id, age, gender, phone) VALUES (?, ?, ?, ?)",
                (user_id, age, gender, phone),
            )

        logger.info("Registered patient %s", user_id)
        return Patient(
            id=user_id,
            name=name,
            email=_normalize_email(email),
            age=age,
            gender=gender,
            phone=phone,
            created_at=now,
        )

    def authenticate(self, email: str, password: str, role: str) -> Doctor | Patient:
        """Return the profile for matching credentials or raise AuthFailure."""
        if role not in ROLES:
            raise ValidationError("Unsupported role")

        query = DOCTOR_QUERY if role == "doctor" else PATIENT_QUERY
        with closing(get_connection(self.db_path)) as conn:
            row = conn.execute(
                query + " WHERE u.email = ? LIMIT 1", (_normalize_email(email),)
            ).fetchone()

        if not row or not check_password_hash(row["password_hash"], password):
            logger.warning("Failed %s login attempt", role)
            raise AuthFailure()

        return self._row_to_doctor(row) if role == "doctor" else self._row_to_patient(row)

    # Doctor queries

    def list_doctors(self, specialty: str | None = None) -> list[Doctor]:
        """List doctors, most recently registered first."""
        query = DOCTOR_QUERY
        params = []
        if specialty:
            query += " WHERE LOWER(d.specialty) = LOWER(?)"
            params.append(specialty)
        query += " ORDER BY u.created_at DESC, u.rowid DESC"

        with closing(get_connection(self.db_path)) as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_doctor(row) for row in rows]

    def get_doctor(self, doctor_id: str) -> Doctor:
        """Get a doctor by ID."""
        with closing(get_connection(self.db_path)) as conn:
            row = conn.execute(DOCTOR_QUERY + " WHERE u.id = ?", (doctor_id,)).fetchone()
        if not row:
            raise NotFound("Doctor not found")
        return self._row_to_doctor(row)

    # Patient CRUD

    def list_patients(self) -> list[Patient]:
        """List patients, most recently registered first."""
        with closing(get_connection(self.db_path)) as conn:
            rows = conn.execute(
                PATIENT_QUERY + " ORDER BY u.created_at DESC, u.rowid DESC"
            ).fetchall()
        return [self._row_to_patient(row) for row in rows]

    def get_patient(self, patient_id: str) -> Patient:
        """Get a patient by ID."""
        with closing(get_connection(self.db_path)) as conn:
            row = conn.execute(PATIENT_QUERY + " WHERE u.id = ?", (patient_id,)).fetchone()
        if not row:
            raise NotFound("Patient not found")
        return self._row_to_patient(row)

    def update_patient(self, patient_id: str, updates: dict) -> Patient:
        """Apply a partial update. Keys that are missing or None are left alone."""
        user_updates = {
            k: v for k, v in updates.items()
            if k in self.PATIENT_USER_FIELDS and v is not None
        }
        profile_updates = {
            k: v for k, v in updates.items()
            if k in self.PATIENT_PROFILE_FIELDS and v is not None
        }
        if "email" in user_updates:
            user_updates["email"] = _normalize_email(user_updates["email"])
        _check_gender(profile_updates.get("gender"))

        with transaction(self.db_path) as conn:
            exists = conn.execute(
                "SELECT 1 FROM users WHERE id = ? AND role = 'patient'", (patient_id,)
            ).fetchone()
            if not exists:
                raise NotFound("Patient not found")

            if user_updates:
                set_clause = ", ".join(f"{name} = ?" for name in user_updates)
                try:
                    conn.execute(
                        f"UPDATE users SET {set_clause} WHERE id = ?",
                        [*user_updates.values(), patient_id],
                    )
                except sqlite3.IntegrityError as e:
                    raise DuplicateEmail() from e

            if profile_updates:
                set_clause = ", ".join(f"{name} = ?" for name in profile_updates)
                conn.execute(
                    f"UPDATE patients SET {set_clause} WHERE user_id = ?",
                    [*profile_updates.values(), patient_id],
                )

        logger.info("Updated patient %s: %s", patient_id, sorted({**user_updates, **profile_updates}))
        return self.get_patient(patient_id)

    def delete_patient(self, patient_id: str) -> None:
        """Delete a patient account; profile and bookings cascade.

        Slots held by the patient's still-scheduled consultations are released
        so the doctor can offer them again.
        """
        with transaction(self.db_path) as conn:
            released = conn.execute(
                """UPDATE slots SET available = 1, is_critical = 0
                   WHERE id IN (
                       SELECT slot_id FROM appointments
                       WHERE patient_id = ? AND status = 'scheduled'
                   )""",
                (patient_id,),
            ).rowcount
            cursor = conn.execute(
                "DELETE FROM users WHERE id = ? AND role = 'patient'", (patient_id,)
            )
            if cursor.rowcount == 0:
                raise NotFound("Patient not found")
        logger.info("Deleted patient %s (released %d slots)", patient_id, released)

    # Private helpers

    def _insert_user(
        self,
        conn: sqlite3.Connection,
        name: str,
        email: str,
        password: str,
        role: str,
    ) -> tuple[str, str]:
        """Insert the identity row. The UNIQUE index on email is the duplicate check."""
        user_id = str(uuid.uuid4())
        now = datetime.now().isoformat()
        try:
            conn.execute(
                """INSERT INTO users (id, name, email, password_hash, role, created_at)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (user_id, name, _normalize_email(email), generate_password_hash(password), role, now),
            )
        except sqlite3.IntegrityError as e:
            logger.warning("Registration rejected: email already in use")
            raise DuplicateEmail() from e
        return user_id, now

    def _row_to_doctor(self, row) -> Doctor:
        """Convert a database row to a Doctor object."""
        return Doctor(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            specialty=row["specialty"],
            experience=row["experience"],
            price=float(row["price"]),
            rating=float(row["rating"]) if row["rating"] is not None else 4.5,
            languages=json.loads(row["languages"]) if row["languages"] else [],
            created_at=row["created_at"],
        )

    def _row_to_patient(self, row) -> Patient:
        """Convert a database row to a Patient object."""
        return Patient(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            age=row["age"],
            gender=row["gender"],
            phone=row["phone"],
            created_at=row["created_at"],
        )


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _check_gender(gender: str | None) -> None:
    if gender is not None and gender not in GENDERS:
        raise ValidationError(f"gender must be one of: {', '.join(GENDERS)}")
