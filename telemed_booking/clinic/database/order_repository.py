"""Pharmacy order repository with the linear fulfillment lifecycle."""

import json
import logging
import uuid
from contextlib import closing
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path

from telemed_booking.exceptions import NotFound
from telemed_booking.state_machine import OrderStatus, get_next_order_status, order_progress

from .connection import get_connection, transaction

logger = logging.getLogger(__name__)


@dataclass
class PharmacyOrder:
    id: str
    patient_id: str
    prescription_id: str
    medicines: list[dict] = field(default_factory=list)
    status: str = OrderStatus.PENDING.value
    total_amount: float = 0.0
    estimated_delivery: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def progress(self) -> int:
        return order_progress(OrderStatus(self.status))


class OrderRepository:
    """Repository for pharmacy orders derived from prescriptions."""

    def __init__(self, db_path: Path | str, unit_price: float = 2.50, delivery_days: int = 2):
        self.db_path = db_path
        self.unit_price = unit_price
        self.delivery_days = delivery_days

    def create(self, prescription_id: str, now: datetime | None = None) -> PharmacyOrder:
        """
        Create a pending order from a prescription.

        Medicines are copied by value. The total is quantity times the flat
        unit price summed over all lines; delivery is estimated
        ``delivery_days`` after creation. Repeated calls create separate orders.
        """
        now = now or datetime.now()
        order_id = str(uuid.uuid4())

        with transaction(self.db_path) as conn:
            prescription = conn.execute(
                "SELECT id, patient_id FROM prescriptions WHERE id = ?", (prescription_id,)
            ).fetchone()
            if not prescription:
                raise NotFound("Prescription not found")

            medicine_rows = conn.execute(
                """SELECT id, name, dosage, frequency, duration, quantity
                   FROM medicines WHERE prescription_id = ? ORDER BY position""",
                (prescription_id,),
            ).fetchall()
            medicines = [dict(row) for row in medicine_rows]

            total = round(sum(m["quantity"] * self.unit_price for m in medicines), 2)
            estimated = (now + timedelta(days=self.delivery_days)).date().isoformat()

            conn.execute(
                """INSERT INTO pharmacy_orders (
                       id, patient_id, prescription_id, medicines, status,
                       total_amount, estimated_delivery, created_at, updated_at
                   ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    order_id, prescription["patient_id"], prescription_id, json.dumps(medicines),
                    OrderStatus.PENDING.value, total, estimated, now.isoformat(), now.isoformat(),
                ),
            )

        logger.info("Created order %s from prescription %s (total %.2f)", order_id, prescription_id, total)
        return PharmacyOrder(
            id=order_id,
            patient_id=prescription["patient_id"],
            prescription_id=prescription_id,
            medicines=medicines,
            total_amount=total,
            estimated_delivery=estimated,
            created_at=now.isoformat(),
            updated_at=now.isoformat(),
        )

    def advance(self, order_id: str) -> PharmacyOrder:
        """Move an order to its next stage. Delivered orders raise InvalidTransition."""
        now = datetime.now().isoformat()

        with transaction(self.db_path) as conn:
            row = conn.execute("SELECT * FROM pharmacy_orders WHERE id = ?", (order_id,)).fetchone()
            if not row:
                raise NotFound("Order not found")

            current = OrderStatus(row["status"])
            next_status = get_next_order_status(current)
            conn.execute(
                "UPDATE pharmacy_orders SET status = ?, updated_at = ? WHERE id = ? AND status = ?",
                (next_status.value, now, order_id, current.value),
            )
            row = conn.execute("SELECT * FROM pharmacy_orders WHERE id = ?", (order_id,)).fetchone()

        logger.info("Order %s: %s -> %s", order_id, current.value, next_status.value)
        return self._row_to_order(row)

    def get(self, order_id: str) -> PharmacyOrder:
        """Get an order by ID."""
        with closing(get_connection(self.db_path)) as conn:
            row = conn.execute("SELECT * FROM pharmacy_orders WHERE id = ?", (order_id,)).fetchone()
        if not row:
            raise NotFound("Order not found")
        return self._row_to_order(row)

    def list_for_patient(self, patient_id: str) -> list[PharmacyOrder]:
        """Get a patient's orders, newest first."""
        with closing(get_connection(self.db_path)) as conn:
            rows = conn.execute(
                "SELECT * FROM pharmacy_orders WHERE patient_id = ? ORDER BY created_at DESC",
                (patient_id,),
            ).fetchall()
        return [self._row_to_order(row) for row in rows]

    def _row_to_order(self, row) -> PharmacyOrder:
        """Convert a database row to a PharmacyOrder object."""
        return PharmacyOrder(
            id=row["id"],
            patient_id=row["patient_id"],
            prescription_id=row["prescription_id"],
            medicines=json.loads(row["medicines"]) if row["medicines"] else [],
            status=row["status"],
            total_amount=float(row["total_amount"]),
            estimated_delivery=row["estimated_delivery"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
