from pydantic import BaseModel, ConfigDict, Field
from uuid import UUID
from datetime import datetime

from ridequeue.models.queue_entry import QueueEntryStatus
from ridequeue.schemas.customer import CustomerCreate


class QueueEntrySchema(BaseModel):
    id: UUID
    customer_id: UUID
    payment_id: UUID
    position: int
    status: QueueEntryStatus
    queued_at: datetime
    started_at: datetime | None = None
    started_by: str | None = None
    completed_at: datetime | None = None
    completed_by: str | None = None
    notes: str | None = None

    model_config = ConfigDict(from_attributes=True)


class QueueEntryView(QueueEntrySchema):
    """Queue entry as shown on the sales and driver consoles."""
    customer_name: str
    customer_phone: str | None = None

    @classmethod
    def from_entry(cls, entry, customer) -> "QueueEntryView":
        data = QueueEntrySchema.model_validate(entry).model_dump()
        return cls(**data, customer_name=customer.name, customer_phone=customer.phone_number)


class DriverQueueSummary(BaseModel):
    queue_length: int
    next_customer: QueueEntryView | None = None


class SecondaryEntryState(BaseModel):
    """One entry as reported by the desktop console during resync."""
    id: UUID
    position: int = Field(gt=0)
    status: QueueEntryStatus
    started_at: datetime | None = None
    completed_at: datetime | None = None
    completed_by: str | None = None


class ActorRequest(BaseModel):
    actor: str


class RemoveRequest(BaseModel):
    reason: str
    actor: str


class ReorderRequest(BaseModel):
    entry_ids: list[UUID]
    actor: str


class ManualAdmitRequest(BaseModel):
    reason: str
    actor: str
    customer_id: UUID | None = None
    new_customer: CustomerCreate | None = None
