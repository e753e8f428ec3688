"""Slot, consultation and payment repository.

Reserving a slot is a conditional UPDATE guarded by ``available = 1`` and runs
in the same IMMEDIATE transaction as the consultation insert, so a slot can
be booked at most once no matter how many callers race for it.
"""

import logging
import sqlite3
import uuid
from contextlib import closing
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from telemed_booking.exceptions import InvalidBooking, NotFound, SlotUnavailable, ValidationError
from telemed_booking.state_machine import (
    PAYMENT_TRANSITIONS,
    ConsultationStatus,
    PaymentStatus,
    ensure_transition,
)

from .connection import get_connection, transaction

logger = logging.getLogger(__name__)


@dataclass
class Slot:
    id: str
    doctor_id: str
    date: str
    time: str
    available: bool = True
    is_critical: bool = False
    created_at: str | None = None


@dataclass
class Consultation:
    id: str
    doctor_id: str
    patient_id: str
    slot_id: str
    date: str
    time: str
    status: str = ConsultationStatus.SCHEDULED.value
    is_critical: bool = False
    meeting_link: str | None = None
    prescription_id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class Payment:
    id: str
    appointment_id: str
    amount: float
    status: str = PaymentStatus.PENDING.value
    created_at: str | None = None
    settled_at: str | None = None


CONSULTATION_QUERY = """
    SELECT a.*, p.id AS prescription_id
    FROM appointments a
    LEFT JOIN prescriptions p ON p.consultation_id = a.id
"""


class BookingRepository:
    """Repository for slots, consultations and their payments."""

    def __init__(self, db_path: Path | str, meeting_base_url: str = "https://meet.telemedicine.com"):
        self.db_path = db_path
        self.meeting_base_url = meeting_base_url.rstrip("/")

    # Slots

    def add_slot(self, doctor_id: str, date: str, time: str) -> Slot:
        """Publish an available slot. Identical slots may coexist."""
        slot_id = str(uuid.uuid4())
        now = datetime.now().isoformat()

        with transaction(self.db_path) as conn:
            if not self._doctor_exists(conn, doctor_id):
                raise NotFound("Doctor not found")
            conn.execute(
                """INSERT INTO slots (id, doctor_id, date, time, available, is_critical, created_at)
                   VALUES (?, ?, ?, ?, 1, 0, ?)""",
                (slot_id, doctor_id, date, time, now),
            )

        logger.info("Doctor %s published slot %s %s", doctor_id, date, time)
        return Slot(id=slot_id, doctor_id=doctor_id, date=date, time=time, created_at=now)

    def list_available(self, doctor_id: str) -> list[Slot]:
        """Get available slots for a doctor in date/time order."""
        with closing(get_connection(self.db_path)) as conn:
            rows = conn.execute(
                """SELECT * FROM slots
                   WHERE doctor_id = ? AND available = 1
                   ORDER BY date, time, created_at""",
                (doctor_id,),
            ).fetchall()
        return [self._row_to_slot(row) for row in rows]

    def get_slot(self, slot_id: str) -> Slot:
        """Get a slot by ID."""
        with closing(get_connection(self.db_path)) as conn:
            row = conn.execute("SELECT * FROM slots WHERE id = ?", (slot_id,)).fetchone()
        if not row:
            raise NotFound("Slot not found")
        return self._row_to_slot(row)

    def reserve(self, slot_id: str, critical: bool = False) -> Slot:
        """Mark a slot as taken. A second reservation raises SlotUnavailable."""
        with transaction(self.db_path) as conn:
            self._reserve(conn, slot_id, critical)
        return self.get_slot(slot_id)

    # Consultations

    def book(
        self,
        patient_id: str,
        doctor_id: str,
        slot_id: str,
        critical: bool = False,
    ) -> Consultation:
        """Reserve the slot and create the consultation and its pending payment atomically."""
        consultation_id = str(uuid.uuid4())
        meeting_link = f"{self.meeting_base_url}/room/{uuid.uuid4().hex}"
        now = datetime.now().isoformat()

        with transaction(self.db_path) as conn:
            doctor = conn.execute(
                "SELECT price FROM doctors WHERE user_id = ?", (doctor_id,)
            ).fetchone()
            if not doctor:
                raise InvalidBooking("Doctor not found")

            patient = conn.execute(
                "SELECT 1 FROM patients WHERE user_id = ?", (patient_id,)
            ).fetchone()
            if not patient:
                raise InvalidBooking("Patient not found")

            slot = conn.execute(
                "SELECT * FROM slots WHERE id = ? AND doctor_id = ?", (slot_id, doctor_id)
            ).fetchone()
            if not slot:
                raise InvalidBooking("Slot not found")

            self._reserve(conn, slot_id, critical)

            conn.execute(
                """INSERT INTO appointments (
                       id, doctor_id, patient_id, slot_id, date, time, status,
                       is_critical, meeting_link, created_at, updated_at
                   ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    consultation_id, doctor_id, patient_id, slot_id, slot["date"], slot["time"],
                    ConsultationStatus.SCHEDULED.value, int(critical), meeting_link, now, now,
                ),
            )
            conn.execute(
                """INSERT INTO payments (id, appointment_id, amount, status, created_at)
                   VALUES (?, ?, ?, ?, ?)""",
                (str(uuid.uuid4()), consultation_id, float(doctor["price"]), PaymentStatus.PENDING.value, now),
            )

        logger.info(
            "Booked consultation %s (doctor=%s patient=%s critical=%s)",
            consultation_id, doctor_id, patient_id, critical,
        )
        return Consultation(
            id=consultation_id,
            doctor_id=doctor_id,
            patient_id=patient_id,
            slot_id=slot_id,
            date=slot["date"],
            time=slot["time"],
            is_critical=critical,
            meeting_link=meeting_link,
            created_at=now,
            updated_at=now,
        )

    def get_consultation(self, consultation_id: str) -> Consultation:
        """Get a consultation by ID."""
        with closing(get_connection(self.db_path)) as conn:
            row = conn.execute(
                CONSULTATION_QUERY + " WHERE a.id = ?", (consultation_id,)
            ).fetchone()
        if not row:
            raise NotFound("Consultation not found")
        return self._row_to_consultation(row)

    def list_consultations(self, user_id: str, role: str) -> list[Consultation]:
        """List a doctor's or a patient's consultations, latest first."""
        if role == "doctor":
            column = "a.doctor_id"
        elif role == "patient":
            column = "a.patient_id"
        else:
            raise ValidationError("Unsupported role")

        with closing(get_connection(self.db_path)) as conn:
            rows = conn.execute(
                CONSULTATION_QUERY + f" WHERE {column} = ? ORDER BY a.date DESC, a.time DESC",
                (user_id,),
            ).fetchall()
        return [self._row_to_consultation(row) for row in rows]

    # Payments

    def get_payment_for_consultation(self, consultation_id: str) -> Payment:
        """Get the payment recorded for a consultation."""
        with closing(get_connection(self.db_path)) as conn:
            row = conn.execute(
                "SELECT * FROM payments WHERE appointment_id = ?", (consultation_id,)
            ).fetchone()
        if not row:
            raise NotFound("Payment not found")
        return self._row_to_payment(row)

    def settle_payment(self, payment_id: str, paid: bool) -> Payment:
        """Move a pending payment to paid or failed. Settled payments are final."""
        target = PaymentStatus.PAID if paid else PaymentStatus.FAILED
        now = datetime.now().isoformat()

        with transaction(self.db_path) as conn:
            row = conn.execute("SELECT * FROM payments WHERE id = ?", (payment_id,)).fetchone()
            if not row:
                raise NotFound("Payment not found")
            ensure_transition(PAYMENT_TRANSITIONS, PaymentStatus(row["status"]), target)
            conn.execute(
                "UPDATE payments SET status = ?, settled_at = ? WHERE id = ?",
                (target.value, now, payment_id),
            )
            row = conn.execute("SELECT * FROM payments WHERE id = ?", (payment_id,)).fetchone()

        logger.info("Payment %s settled as %s", payment_id, target.value)
        return self._row_to_payment(row)

    # Private helpers

    def _reserve(self, conn: sqlite3.Connection, slot_id: str, critical: bool) -> None:
        """Flip availability only if the slot is still free."""
        cursor = conn.execute(
            "UPDATE slots SET available = 0, is_critical = ? WHERE id = ? AND available = 1",
            (int(critical), slot_id),
        )
        if cursor.rowcount == 1:
            return

        exists = conn.execute("SELECT 1 FROM slots WHERE id = ?", (slot_id,)).fetchone()
        if not exists:
            raise NotFound("Slot not found")
        logger.warning("Slot %s already reserved", slot_id)
        raise SlotUnavailable()

    def _doctor_exists(self, conn: sqlite3.Connection, doctor_id: str) -> bool:
        row = conn.execute("SELECT 1 FROM doctors WHERE user_id = ?", (doctor_id,)).fetchone()
        return row is not None

    def _row_to_slot(self, row) -> Slot:
        """Convert a database row to a Slot object."""
        return Slot(
            id=row["id"],
            doctor_id=row["doctor_id"],
            date=row["date"],
            time=row["time"],
            available=bool(row["available"]),
            is_critical=bool(row["is_critical"]),
            created_at=row["created_at"],
        )

    def _row_to_consultation(self, row) -> Consultation:
        """Convert a database row to a Consultation object."""
        return Consultation(
            id=row["id"],
            doctor_id=row["doctor_id"],
            patient_id=row["patient_id"],
            slot_id=row["slot_id"],
            date=row["date"],
            time=row["time"],
            status=row["status"],
            is_critical=bool(row["is_critical"]),
            meeting_link=row["meeting_link"],
            prescription_id=row["prescription_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def _row_to_payment(self, row) -> Payment:
        """Convert a database row to a Payment object."""
        return Payment(
            id=row["id"],
            appointment_id=row["appointment_id"],
            amount=float(row["amount"]),
            status=row["status"],
            created_at=row["created_at"],
            settled_at=row["settled_at"],
        )
