"""
Turns committed core outcomes into notification events for the sales,
driver, customer and payment groups.

Delivery runs in background tasks so a slow or failing channel never holds
up, or fails, the command that triggered it.
"""
import asyncio
import logging
from typing import Iterable, List, Optional, Set

from ridequeue.models.payment import Payment, PaymentStatus
from ridequeue.models.queue_entry import QueueEntry, QueueEntryStatus
from ridequeue.schemas.events import (
    DRIVER_GROUP,
    SALES_GROUP,
    CustomerNeedsAttention,
    DriverQueueUpdated,
    ManualAdmission,
    NotificationEvent,
    PaymentDecided,
    PaymentSubmitted,
    QueueChanged,
    QueueUpdateType,
    RideCancelled,
    RideCompleted,
    RideStarted,
    customer_group,
    payment_group,
)
from ridequeue.schemas.queue_entry import QueueEntryView
from ridequeue.services.publishers import EventPublisher

logger = logging.getLogger(__name__)


class NotificationFanout:
    def __init__(self, publisher: EventPublisher, minutes_per_ride: int = 5):
        self.publisher = publisher
        self.minutes_per_ride = minutes_per_ride
        self._pending: Set[asyncio.Task] = set()

    def _schedule(self, groups: Iterable[str], event: NotificationEvent) -> None:
        for group in groups:
            task = asyncio.create_task(self._deliver(group, event))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _deliver(self, group: str, event: NotificationEvent) -> None:
        try:
            await self.publisher.publish(group, event)
        except Exception as e:
            logger.error(f"Failed to deliver {event.event} to {group}: {e}")

    async def drain(self) -> None:
        """Wait for every scheduled delivery to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    # --- payments ---

    def payment_submitted(self, payment: Payment) -> None:
        event = PaymentSubmitted(
            payment_id=payment.id,
            customer_id=payment.customer_id,
            amount=payment.amount,
            payment_method=payment.payment_method,
        )
        self._schedule(
            [SALES_GROUP, customer_group(payment.customer_id), payment_group(payment.id)],
            event
        )

    def payment_decided(self, payment: Payment) -> None:
        event = PaymentDecided(
            payment_id=payment.id,
            customer_id=payment.customer_id,
            status=payment.status,
            notes=payment.notes,
        )
        self._schedule(
            [SALES_GROUP, customer_group(payment.customer_id), payment_group(payment.id)],
            event
        )

        if payment.status == PaymentStatus.DENIED:
            reason = f"Payment denied: {payment.notes}" if payment.notes else "Payment denied"
            self._schedule(
                [SALES_GROUP],
                CustomerNeedsAttention(customer_id=payment.customer_id, reason=reason)
            )

    # --- queue ---

    def _queue_changed_event(self, update_type: QueueUpdateType, entries: List[QueueEntryView]) -> QueueChanged:
        active_count = sum(1 for view in entries if view.status in QueueEntryStatus.active())
        return QueueChanged(
            update_type=update_type,
            entries=entries,
            total_length=active_count,
            estimated_wait_minutes=active_count * self.minutes_per_ride,
        )

    def _driver_summary_event(self, entries: List[QueueEntryView]) -> DriverQueueUpdated:
        active = [view for view in entries if view.status in QueueEntryStatus.active()]
        next_customer: Optional[QueueEntryView] = next(
            (view for view in active if view.status == QueueEntryStatus.WAITING), None
        )
        return DriverQueueUpdated(queue_length=len(active), next_customer=next_customer)

    def queue_changed(self, update_type: QueueUpdateType, entries: List[QueueEntryView]) -> None:
        self._schedule([SALES_GROUP, DRIVER_GROUP], self._queue_changed_event(update_type, entries))

    def ride_started(self, entry: QueueEntry) -> None:
        self._schedule(
            [SALES_GROUP, DRIVER_GROUP],
            RideStarted(entry_id=entry.id, customer_id=entry.customer_id, driver=entry.started_by)
        )

    def ride_completed(self, entry: QueueEntry, entries: List[QueueEntryView]) -> None:
        duration = None
        if entry.started_at is not None and entry.completed_at is not None:
            duration = (entry.completed_at - entry.started_at).total_seconds()

        self._schedule(
            [SALES_GROUP, DRIVER_GROUP],
            RideCompleted(
                entry_id=entry.id,
                customer_id=entry.customer_id,
                driver=entry.completed_by,
                ride_duration_seconds=duration,
            )
        )
        self.queue_changed(QueueUpdateType.RIDE_COMPLETED, entries)
        self._schedule([DRIVER_GROUP], self._driver_summary_event(entries))

    def ride_cancelled(self, entry: QueueEntry, entries: List[QueueEntryView]) -> None:
        self._schedule(
            [SALES_GROUP, DRIVER_GROUP],
            RideCancelled(entry_id=entry.id, customer_id=entry.customer_id, cancelled_by=entry.completed_by)
        )
        self.queue_changed(QueueUpdateType.CUSTOMER_REMOVED, entries)
        self._schedule([DRIVER_GROUP], self._driver_summary_event(entries))

    def manual_admission(self, entry: QueueEntry, reason: str, entries: List[QueueEntryView]) -> None:
        self.queue_changed(QueueUpdateType.CUSTOMER_ADDED, entries)
        self._schedule(
            [SALES_GROUP],
            ManualAdmission(
                customer_id=entry.customer_id,
                entry_id=entry.id,
                position=entry.position,
                reason=reason,
            )
        )
        self._schedule(
            [SALES_GROUP],
            CustomerNeedsAttention(customer_id=entry.customer_id, reason=f"Manually added to queue: {reason}")
        )
