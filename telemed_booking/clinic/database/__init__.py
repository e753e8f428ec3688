from .booking_repository import BookingRepository
from .connection import get_connection, init_database, transaction
from .order_repository import OrderRepository
from .prescription_repository import PrescriptionRepository
from .user_repository import UserRepository

__all__ = [
    "get_connection",
    "init_database",
    "transaction",
    "BookingRepository",
    "OrderRepository",
    "PrescriptionRepository",
    "UserRepository",
]
