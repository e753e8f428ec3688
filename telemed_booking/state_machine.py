"""Status lifecycles for consultations, pharmacy orders and payments."""

from enum import Enum

from telemed_booking.exceptions import InvalidTransition


class ConsultationStatus(Enum):
    """States of a booked consultation."""
    SCHEDULED = "scheduled"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class OrderStatus(Enum):
    """Fulfillment stages of a pharmacy order."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"


class PaymentStatus(Enum):
    """States of a consultation payment."""
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


# Allowed targets per state. ONGOING and CANCELLED are declared but nothing
# moves a consultation into them.
CONSULTATION_TRANSITIONS = {
    ConsultationStatus.SCHEDULED: {ConsultationStatus.COMPLETED},
    ConsultationStatus.ONGOING: set(),
    ConsultationStatus.COMPLETED: set(),
    ConsultationStatus.CANCELLED: set(),
}

ORDER_SEQUENCE = [
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
]

ORDER_PROGRESS = {
    OrderStatus.PENDING: 20,
    OrderStatus.CONFIRMED: 40,
    OrderStatus.PREPARING: 60,
    OrderStatus.OUT_FOR_DELIVERY: 80,
    OrderStatus.DELIVERED: 100,
}

PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.PAID, PaymentStatus.FAILED},
    PaymentStatus.PAID: set(),
    PaymentStatus.FAILED: set(),
}


def can_transition(transitions: dict, current: Enum, target: Enum) -> bool:
    """Check a move against a transition table."""
    return target in transitions.get(current, set())


def ensure_transition(transitions: dict, current: Enum, target: Enum) -> None:
    """Raise InvalidTransition unless current -> target is allowed."""
    if not can_transition(transitions, current, target):
        raise InvalidTransition(
            f"Cannot move from {current.value} to {target.value}"
        )


def get_next_order_status(current: OrderStatus) -> OrderStatus:
    """Return the stage after ``current``. Delivered orders cannot advance."""
    if current == OrderStatus.DELIVERED:
        raise InvalidTransition("Order already delivered")
    return ORDER_SEQUENCE[ORDER_SEQUENCE.index(current) + 1]


def order_progress(status: OrderStatus) -> int:
    """Percent complete shown next to an order."""
    return ORDER_PROGRESS.get(status, 0)
