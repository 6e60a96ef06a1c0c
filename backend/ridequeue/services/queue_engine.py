"""
Queue ordering engine.

Owns queue entry positions and the waiting -> in_progress -> completed
lifecycle (with cancellation from either active state). Active entries
always carry the positions 1..N after any operation that recalculates.

Every method that assigns positions or changes status expects the caller to
hold the queue lock (see ridequeue.core.distributed_lock.QUEUE_RESOURCE) for
the whole unit of work.
"""
import logging
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Tuple

from ridequeue.db.unit_of_work import UnitOfWork
from ridequeue.exceptions import (
    AlreadyQueuedError,
    InvalidInputError,
    InvalidSetError,
    InvalidTransitionError,
    NotFoundError,
    PaymentNotConfirmedError,
)
from ridequeue.models.customer import Customer
from ridequeue.models.payment import PaymentStatus
from ridequeue.models.queue_entry import QueueEntry, QueueEntryStatus
from ridequeue.schemas.queue_entry import SecondaryEntryState

logger = logging.getLogger(__name__)

MAX_NOTES_LENGTH = 1000


class QueueOrderingEngine:
    def __init__(self, recent_completed_hours: int = 24):
        self.recent_completed_hours = recent_completed_hours

    async def _get_entry(self, uow: UnitOfWork, entry_id) -> QueueEntry:
        entry = await uow.queue_entries.get_by_id(entry_id, for_update=True)
        if entry is None:
            raise NotFoundError(f"Queue entry with ID {entry_id} not found.")
        return entry

    async def admit(self, uow: UnitOfWork, payment_id) -> QueueEntry:
        """
        Append the customer behind a confirmed payment to the end of the queue.
        """
        payment = await uow.payments.get_by_id(payment_id)
        if payment is None:
            raise NotFoundError(f"Payment with ID {payment_id} not found.")
        if payment.status != PaymentStatus.CONFIRMED:
            raise PaymentNotConfirmedError()

        existing = await uow.queue_entries.get_by_payment_id(payment_id)
        if existing is not None:
            raise AlreadyQueuedError(f"Payment {payment_id} is already associated with queue entry {existing.id}.")

        position = await uow.queue_entries.get_max_active_position() + 1
        entry = await uow.queue_entries.create(
            QueueEntry(
                customer_id=payment.customer_id,
                payment_id=payment.id,
                position=position,
                status=QueueEntryStatus.WAITING,
                queued_at=datetime.utcnow(),
            )
        )
        logger.info(f"Business Event: Queue Admission - entry {entry.id} customer {entry.customer_id} position {position}")
        return entry

    async def start(self, uow: UnitOfWork, entry_id, actor: str) -> QueueEntry:
        entry = await self._get_entry(uow, entry_id)
        if entry.status != QueueEntryStatus.WAITING:
            raise InvalidTransitionError(
                f"Cannot start ride for entry {entry_id} with status {entry.status.value}; it must be waiting."
            )

        entry.status = QueueEntryStatus.IN_PROGRESS
        entry.started_at = datetime.utcnow()
        entry.started_by = actor
        await uow.queue_entries.update(entry)
        logger.info(f"Business Event: Ride Started - entry {entry.id} by {actor}")
        return entry

    async def complete(self, uow: UnitOfWork, entry_id, actor: str) -> QueueEntry:
        entry = await self._get_entry(uow, entry_id)
        if entry.status != QueueEntryStatus.IN_PROGRESS:
            raise InvalidTransitionError(
                f"Cannot complete ride for entry {entry_id} with status {entry.status.value}; it must be in progress."
            )

        entry.status = QueueEntryStatus.COMPLETED
        entry.completed_at = datetime.utcnow()
        entry.completed_by = actor
        await uow.queue_entries.update(entry)
        await self.recalculate(uow)
        logger.info(f"Business Event: Ride Completed - entry {entry.id} by {actor}")
        return entry

    async def remove(self, uow: UnitOfWork, entry_id, reason: str, actor: str) -> QueueEntry:
        if not reason or not reason.strip():
            raise InvalidInputError("A reason is required to remove a customer from the queue.")

        entry = await self._get_entry(uow, entry_id)
        if not entry.is_active:
            raise InvalidTransitionError(
                f"Cannot remove entry {entry_id} with status {entry.status.value}; it is no longer in the queue."
            )

        entry.status = QueueEntryStatus.CANCELLED
        entry.completed_at = datetime.utcnow()
        entry.completed_by = actor
        removal_note = f"Removed from queue: {reason.strip()}"
        entry.notes = f"{entry.notes}\n{removal_note}" if entry.notes else removal_note
        entry.notes = entry.notes[-MAX_NOTES_LENGTH:]
        await uow.queue_entries.update(entry)
        await self.recalculate(uow)
        logger.info(f"Business Event: Queue Removal - entry {entry.id} by {actor}")
        return entry

    async def reorder(self, uow: UnitOfWork, ordered_ids: List, actor: str) -> List[QueueEntry]:
        """
        Assign positions 1..N following `ordered_ids`, which must name every
        active entry exactly once.
        """
        active = await uow.queue_entries.get_active_entries(for_update=True)
        by_id = {entry.id: entry for entry in active}

        if len(ordered_ids) != len(set(ordered_ids)):
            raise InvalidSetError("Queue order contains duplicate entry IDs.")
        missing = set(by_id) - set(ordered_ids)
        extra = set(ordered_ids) - set(by_id)
        if missing or extra:
            raise InvalidSetError(
                f"Queue order must contain exactly the active entries "
                f"({len(missing)} missing, {len(extra)} unknown or inactive)."
            )

        reordered = []
        for index, entry_id in enumerate(ordered_ids):
            entry = by_id[entry_id]
            entry.position = index + 1
            reordered.append(entry)
        await uow.session.flush()

        logger.info(f"Business Event: Queue Reordered - {len(reordered)} entries by {actor}")
        return reordered

    async def sync_from_secondary(
        self,
        uow: UnitOfWork,
        external_state: Iterable[SecondaryEntryState]
    ) -> List[QueueEntry]:
        """
        Apply the desktop console's view of the queue.

        Position and status are taken as given; timestamps are only filled in
        when missing locally. Entries not mentioned are left alone. Returns the
        entries that were updated.
        """
        external_state = list(external_state)
        invalid = [str(state.id) for state in external_state if state.position < 1]
        if invalid:
            raise InvalidInputError(f"Queue positions must be positive; rejected entries: {', '.join(invalid)}")

        synced = []
        for state in external_state:
            entry = await uow.queue_entries.get_by_id(state.id, for_update=True)
            if entry is None:
                logger.warning(f"Sync skipped unknown queue entry {state.id}")
                continue
            if not entry.is_active:
                logger.warning(f"Sync skipped queue entry {state.id} already {entry.status.value}")
                continue

            entry.position = state.position
            entry.status = state.status
            if entry.started_at is None and state.started_at is not None:
                entry.started_at = state.started_at
            if entry.completed_at is None and state.completed_at is not None:
                entry.completed_at = state.completed_at
                if entry.completed_by is None:
                    entry.completed_by = state.completed_by
            synced.append(entry)

        await uow.session.flush()
        logger.info(f"Business Event: Queue Synced - {len(synced)} entries updated from secondary console")
        return synced

    async def recalculate(self, uow: UnitOfWork) -> int:
        """
        Renumber active entries to 1..N keeping their relative order.
        Returns how many positions changed.
        """
        active = await uow.queue_entries.get_active_entries(for_update=True)
        changed = 0
        for index, entry in enumerate(active):
            expected = index + 1
            if entry.position != expected:
                logger.debug(f"Queue entry {entry.id} moved from position {entry.position} to {expected}")
                entry.position = expected
                changed += 1
        if changed:
            await uow.session.flush()
        return changed

    async def next_customer(self, uow: UnitOfWork) -> Optional[Tuple[QueueEntry, Customer]]:
        return await uow.queue_entries.get_next_waiting_with_customer()

    async def current_queue(
        self,
        uow: UnitOfWork,
        include_recently_completed: bool = False
    ) -> List[Tuple[QueueEntry, Customer]]:
        completed_since = None
        if include_recently_completed:
            completed_since = datetime.utcnow() - timedelta(hours=self.recent_completed_hours)
        return await uow.queue_entries.get_queue_with_customers(completed_since=completed_since)

    async def queue_length(self, uow: UnitOfWork) -> int:
        return await uow.queue_entries.count_by_status(QueueEntryStatus.active())
