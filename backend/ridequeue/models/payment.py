import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Column,
    DateTime,
    Enum as SQLAlchemyEnum,
    ForeignKey,
    Index,
    Numeric,
    String,
)

from ridequeue.db.types import GUID
from ridequeue.models.base import Base


class PaymentMethod(str, Enum):
    CASH_APP = "cash_app"
    PAYPAL = "paypal"
    CASH_IN_HAND = "cash_in_hand"

    @property
    def requires_reference(self) -> bool:
        return self in (PaymentMethod.CASH_APP, PaymentMethod.PAYPAL)


class PaymentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    DENIED = "denied"


# Shared by payments and payment_configurations so PostgreSQL gets a single enum type.
payment_method_type = SQLAlchemyEnum(
    PaymentMethod, name="payment_method_enum", values_callable=lambda x: [e.value for e in x]
)


class Payment(Base):
    """
    A payment claim. Pending is the only non-terminal status.
    """

    __tablename__ = "payments"

    __table_args__ = (
        Index("ix_payments_customer_status", "customer_id", "status"),
        Index("ix_payments_status_created_at", "status", "created_at"),
    )

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    customer_id = Column(GUID, ForeignKey("customers.id"), nullable=False)

    amount = Column(Numeric(10, 2), nullable=False)
    payment_method = Column(payment_method_type, nullable=False)
    status = Column(
        SQLAlchemyEnum(PaymentStatus, name="payment_status_enum", values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    external_transaction_id = Column(String(255), nullable=True)

    confirmed_by = Column(String(100), nullable=True)
    notes = Column(String(500), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    confirmed_at = Column(DateTime, nullable=True)
