import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Numeric, String

from ridequeue.db.types import GUID
from ridequeue.models.base import Base
from ridequeue.models.payment import payment_method_type


class PaymentConfiguration(Base):
    """
    Per-method enablement and price. Read-only to the queue core.
    """

    __tablename__ = "payment_configurations"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    payment_method = Column(payment_method_type, nullable=False, unique=True)
    display_name = Column(String(100), nullable=False)
    payment_url = Column(String(500), nullable=True)
    is_enabled = Column(Boolean, nullable=False, default=True)
    price_per_ride = Column(Numeric(10, 2), nullable=False)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    updated_by = Column(String(100), nullable=False, default="System")
