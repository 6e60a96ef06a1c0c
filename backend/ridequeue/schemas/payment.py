from pydantic import BaseModel, ConfigDict, Field
from decimal import Decimal
from uuid import UUID
from datetime import datetime

from ridequeue.models.payment import PaymentMethod, PaymentStatus


class PaymentSubmit(BaseModel):
    customer_id: UUID
    amount: Decimal
    payment_method: PaymentMethod
    external_transaction_id: str | None = None


class PaymentDecision(BaseModel):
    confirmed: bool
    notes: str | None = Field(default=None, max_length=500)
    staff_username: str


class PaymentSchema(BaseModel):
    id: UUID
    customer_id: UUID
    amount: Decimal
    payment_method: PaymentMethod
    status: PaymentStatus
    external_transaction_id: str | None = None
    confirmed_by: str | None = None
    notes: str | None = None
    created_at: datetime
    confirmed_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class PaymentMethodSchema(BaseModel):
    payment_method: PaymentMethod
    display_name: str
    payment_url: str | None = None
    is_enabled: bool
    price_per_ride: Decimal
    requires_reference: bool = False

    model_config = ConfigDict(from_attributes=True)
