import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Column,
    DateTime,
    Enum as SQLAlchemyEnum,
    ForeignKey,
    Index,
    Integer,
    String,
)

from ridequeue.db.types import GUID
from ridequeue.models.base import Base


class QueueEntryStatus(str, Enum):
    WAITING = "waiting"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def active(cls) -> list["QueueEntryStatus"]:
        return [cls.WAITING, cls.IN_PROGRESS]

    @property
    def is_terminal(self) -> bool:
        return self in (QueueEntryStatus.COMPLETED, QueueEntryStatus.CANCELLED)


class QueueEntry(Base):
    """
    A customer's place in the ride queue, created from exactly one confirmed payment.
    """

    __tablename__ = "queue_entries"

    __table_args__ = (
        Index("ix_queue_entries_status_position", "status", "position"),
        Index("ix_queue_entries_status_completed_at", "status", "completed_at"),
    )

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    customer_id = Column(GUID, ForeignKey("customers.id"), nullable=False)
    payment_id = Column(GUID, ForeignKey("payments.id"), nullable=False, unique=True)

    position = Column(Integer, nullable=False)
    status = Column(
        SQLAlchemyEnum(QueueEntryStatus, name="queue_entry_status_enum", values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=QueueEntryStatus.WAITING,
    )

    queued_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    started_at = Column(DateTime, nullable=True)
    started_by = Column(String(100), nullable=True)
    completed_at = Column(DateTime, nullable=True)
    completed_by = Column(String(100), nullable=True)

    # Audit trail; removal reasons are appended here.
    notes = Column(String(1000), nullable=True)

    @property
    def is_active(self) -> bool:
        return self.status in QueueEntryStatus.active()
