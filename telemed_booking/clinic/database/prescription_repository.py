"""Prescription repository: issuing prescriptions against consultations."""

import logging
import uuid
from contextlib import closing
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path

from telemed_booking.exceptions import NotFound, ValidationError
from telemed_booking.state_machine import (
    CONSULTATION_TRANSITIONS,
    ConsultationStatus,
    ensure_transition,
)

from .connection import get_connection, transaction

logger = logging.getLogger(__name__)


@dataclass
class Medicine:
    id: str
    name: str
    dosage: str
    frequency: str
    duration: str
    quantity: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Prescription:
    id: str
    doctor_id: str
    patient_id: str
    consultation_id: str
    medicines: list[Medicine] = field(default_factory=list)
    instructions: str = ""
    date: str | None = None
    created_at: str | None = None


class PrescriptionRepository:
    """Repository for prescriptions and their medicine lines."""

    MEDICINE_FIELDS = ["name", "dosage", "frequency", "duration", "quantity"]

    def __init__(self, db_path: Path | str):
        self.db_path = db_path

    def issue(
        self,
        consultation_id: str,
        doctor_id: str,
        patient_id: str,
        medicines: list[dict],
        instructions: str = "",
    ) -> Prescription:
        """
        Issue a prescription and complete its consultation.

        Both writes happen in one transaction. A consultation that is not
        scheduled (e.g. already completed with a prescription) is rejected.
        """
        lines = [self._build_medicine(item) for item in medicines or []]
        if not lines:
            raise ValidationError("At least one medicine is required")

        prescription_id = str(uuid.uuid4())
        now = datetime.now()

        with transaction(self.db_path) as conn:
            consultation = conn.execute(
                "SELECT * FROM appointments WHERE id = ?", (consultation_id,)
            ).fetchone()
            if not consultation:
                raise NotFound("Consultation not found")

            if consultation["doctor_id"] != doctor_id or consultation["patient_id"] != patient_id:
                raise ValidationError("Doctor and patient must match the consultation")

            ensure_transition(
                CONSULTATION_TRANSITIONS,
                ConsultationStatus(consultation["status"]),
                ConsultationStatus.COMPLETED,
            )

            conn.execute(
                """INSERT INTO prescriptions (id, consultation_id, doctor_id, patient_id, instructions, date, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (prescription_id, consultation_id, doctor_id, patient_id,
                 instructions or "", now.date().isoformat(), now.isoformat()),
            )
            for position, medicine in enumerate(lines):
                conn.execute(
                    """INSERT INTO medicines (id, prescription_id, position, name, dosage, frequency, duration, quantity)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                    (medicine.id, prescription_id, position, medicine.name, medicine.dosage,
                     medicine.frequency, medicine.duration, medicine.quantity),
                )
            conn.execute(
                "UPDATE appointments SET status = ?, updated_at = ? WHERE id = ?",
                (ConsultationStatus.COMPLETED.value, now.isoformat(), consultation_id),
            )

        logger.info(
            "Issued prescription %s for consultation %s (%d medicines)",
            prescription_id, consultation_id, len(lines),
        )
        return Prescription(
            id=prescription_id,
            doctor_id=doctor_id,
            patient_id=patient_id,
            consultation_id=consultation_id,
            medicines=lines,
            instructions=instructions or "",
            date=now.date().isoformat(),
            created_at=now.isoformat(),
        )

    def get(self, prescription_id: str) -> Prescription:
        """Get a prescription by ID."""
        with closing(get_connection(self.db_path)) as conn:
            row = conn.execute(
                "SELECT * FROM prescriptions WHERE id = ?", (prescription_id,)
            ).fetchone()
            if not row:
                raise NotFound("Prescription not found")
            return self._row_to_prescription(conn, row)

    def get_for_consultation(self, consultation_id: str) -> Prescription | None:
        """Get the prescription attached to a consultation, if any."""
        with closing(get_connection(self.db_path)) as conn:
            row = conn.execute(
                "SELECT * FROM prescriptions WHERE consultation_id = ?", (consultation_id,)
            ).fetchone()
            return self._row_to_prescription(conn, row) if row else None

    def list_for_patient(self, patient_id: str) -> list[Prescription]:
        """Get a patient's prescriptions, newest first."""
        with closing(get_connection(self.db_path)) as conn:
            rows = conn.execute(
                "SELECT * FROM prescriptions WHERE patient_id = ? ORDER BY created_at DESC",
                (patient_id,),
            ).fetchall()
            return [self._row_to_prescription(conn, row) for row in rows]

    # Private helpers

    def _build_medicine(self, item) -> Medicine:
        """Check a medicine line for presence of every field."""
        if isinstance(item, Medicine):
            data = item.to_dict()
        elif hasattr(item, "model_dump"):
            data = item.model_dump()
        else:
            data = dict(item)

        missing = [
            name for name in self.MEDICINE_FIELDS
            if data.get(name) is None or (isinstance(data.get(name), str) and not data[name].strip())
        ]
        if missing:
            raise ValidationError(f"Medicine is missing: {', '.join(missing)}")

        quantity = data["quantity"]
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError("Medicine quantity must be a positive integer")

        return Medicine(
            id=str(uuid.uuid4()),
            name=data["name"],
            dosage=data["dosage"],
            frequency=data["frequency"],
            duration=data["duration"],
            quantity=quantity,
        )

    def _row_to_prescription(self, conn, row) -> Prescription:
        """Convert a database row (plus its medicine rows) to a Prescription."""
        medicine_rows = conn.execute(
            "SELECT * FROM medicines WHERE prescription_id = ? ORDER BY position", (row["id"],)
        ).fetchall()
        return Prescription(
            id=row["id"],
            doctor_id=row["doctor_id"],
            patient_id=row["patient_id"],
            consultation_id=row["consultation_id"],
            medicines=[
                Medicine(
                    id=m["id"],
                    name=m["name"],
                    dosage=m["dosage"],
                    frequency=m["frequency"],
                    duration=m["duration"],
                    quantity=m["quantity"],
                )
                for m in medicine_rows
            ],
            instructions=row["instructions"],
            date=row["date"],
            created_at=row["created_at"],
        )
