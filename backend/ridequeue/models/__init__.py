from .base import Base
from .customer import Customer
from .payment import Payment, PaymentMethod, PaymentStatus
from .payment_configuration import PaymentConfiguration
from .queue_entry import QueueEntry, QueueEntryStatus

__all__ = [
    "Base",
    "Customer",
    "Payment",
    "PaymentConfiguration",
    "PaymentMethod",
    "PaymentStatus",
    "QueueEntry",
    "QueueEntryStatus",
]
