import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Index, String

from ridequeue.db.types import GUID
from ridequeue.models.base import Base


class Customer(Base):
    """
    A walk-up rider. Names are not unique; created_at disambiguates.
    """

    __tablename__ = "customers"

    __table_args__ = (
        Index("ix_customers_name_created_at", "name", "created_at"),
    )

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    phone_number = Column(String(20), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
