"""
Notification events fanned out to subscriber groups.

Every event carries its name in `event` so subscribers on a shared
channel can dispatch on it, plus the correlation id of the command that
produced it.
"""
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from ridequeue.core.correlation import get_correlation_id
from ridequeue.models.payment import PaymentMethod, PaymentStatus
from ridequeue.schemas.queue_entry import QueueEntryView


SALES_GROUP = "role:sales"
DRIVER_GROUP = "role:driver"


def customer_group(customer_id) -> str:
    return f"customer:{customer_id}"


def payment_group(payment_id) -> str:
    return f"payment:{payment_id}"


class QueueUpdateType(str, Enum):
    CUSTOMER_ADDED = "customer_added"
    CUSTOMER_REMOVED = "customer_removed"
    QUEUE_REORDERED = "queue_reordered"
    RIDE_COMPLETED = "ride_completed"
    QUEUE_SYNCED = "queue_synced"
    POSITIONS_RECALCULATED = "positions_recalculated"


class NotificationEvent(BaseModel):
    event: str
    occurred_at: datetime = Field(default_factory=datetime.utcnow)
    correlation_id: str | None = Field(default_factory=get_correlation_id)


class PaymentSubmitted(NotificationEvent):
    event: Literal["PaymentSubmitted"] = "PaymentSubmitted"
    payment_id: UUID
    customer_id: UUID
    amount: Decimal
    payment_method: PaymentMethod
    requires_attention: bool = True


class PaymentDecided(NotificationEvent):
    event: Literal["PaymentDecided"] = "PaymentDecided"
    payment_id: UUID
    customer_id: UUID
    status: PaymentStatus
    notes: str | None = None


class QueueChanged(NotificationEvent):
    event: Literal["QueueChanged"] = "QueueChanged"
    update_type: QueueUpdateType
    entries: list[QueueEntryView]
    total_length: int
    estimated_wait_minutes: int | None = None


class RideStarted(NotificationEvent):
    event: Literal["RideStarted"] = "RideStarted"
    entry_id: UUID
    customer_id: UUID
    driver: str | None = None


class RideCompleted(NotificationEvent):
    event: Literal["RideCompleted"] = "RideCompleted"
    entry_id: UUID
    customer_id: UUID
    driver: str | None = None
    ride_duration_seconds: float | None = None


class RideCancelled(NotificationEvent):
    event: Literal["RideCancelled"] = "RideCancelled"
    entry_id: UUID
    customer_id: UUID
    cancelled_by: str | None = None


class DriverQueueUpdated(NotificationEvent):
    event: Literal["DriverQueueUpdated"] = "DriverQueueUpdated"
    queue_length: int
    next_customer: QueueEntryView | None = None


class CustomerNeedsAttention(NotificationEvent):
    event: Literal["CustomerNeedsAttention"] = "CustomerNeedsAttention"
    customer_id: UUID
    reason: str


class ManualAdmission(NotificationEvent):
    event: Literal["ManualAdmission"] = "ManualAdmission"
    customer_id: UUID
    entry_id: UUID
    position: int
    reason: str
