"""
RideQueueService is the single entry point for staff, driver and customer
facing callers.

Each command takes the locks it needs, runs one unit of work, and only after
commit hands the outcome to the notification fanout. Domain errors never
escape: they come back as a failed CommandResult carrying the error code.
"""
import asyncio
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from decimal import Decimal
from typing import Callable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ridequeue.core.distributed_lock import (
    QUEUE_RESOURCE,
    DistributedLockManager,
    customer_resource,
    get_lock_manager,
    payment_resource,
)
from ridequeue.db.unit_of_work import UnitOfWork, unit_of_work_factory
from ridequeue.exceptions import DomainError, ResourceBusyError
from ridequeue.models.payment import PaymentMethod
from ridequeue.schemas.customer import CustomerCreate, CustomerSchema
from ridequeue.schemas.events import QueueUpdateType
from ridequeue.schemas.payment import PaymentMethodSchema, PaymentSchema
from ridequeue.schemas.queue_entry import (
    DriverQueueSummary,
    QueueEntrySchema,
    QueueEntryView,
    SecondaryEntryState,
)
from ridequeue.schemas.results import CommandResult
from ridequeue.services.customer_registry import CustomerRegistryService
from ridequeue.services.notification_fanout import NotificationFanout
from ridequeue.services.orchestrator import QueueOrchestrator
from ridequeue.services.payment_configuration import PaymentConfigurationService
from ridequeue.services.payment_ledger import PaymentLedgerService
from ridequeue.services.publishers import CompositePublisher
from ridequeue.services.queue_engine import QueueOrderingEngine

logger = logging.getLogger(__name__)


class RideQueueService:
    def __init__(
        self,
        session_factory: Callable[..., AsyncSession],
        lock_manager: Optional[DistributedLockManager] = None,
        fanout: Optional[NotificationFanout] = None,
        minutes_per_ride: int = 5,
        recent_completed_hours: int = 24,
        lock_timeout_seconds: float = 10.0,
    ):
        self.session_factory = session_factory
        self._uow_factory = unit_of_work_factory(session_factory)
        self.lock_manager = lock_manager or get_lock_manager()
        self.fanout = fanout or NotificationFanout(CompositePublisher(), minutes_per_ride)
        self.lock_timeout_seconds = lock_timeout_seconds

        self.payment_configurations = PaymentConfigurationService()
        self.customers = CustomerRegistryService()
        self.ledger = PaymentLedgerService(self.payment_configurations)
        self.engine = QueueOrderingEngine(recent_completed_hours=recent_completed_hours)
        self.orchestrator = QueueOrchestrator(self.ledger, self.engine, self.customers)

    def unit_of_work(self) -> UnitOfWork:
        return self._uow_factory()

    @asynccontextmanager
    async def _locked(self, *resources: str):
        """Hold the named locks, taken in the order given, for the block."""
        async with AsyncExitStack() as stack:
            for resource in resources:
                try:
                    await stack.enter_async_context(
                        self.lock_manager.lock(resource, timeout=self.lock_timeout_seconds)
                    )
                except asyncio.TimeoutError as e:
                    raise ResourceBusyError(f"Timed out waiting for {resource}. Please retry.") from e
            yield

    def _failure(self, operation: str, exc: DomainError) -> CommandResult:
        logger.warning(f"{operation} rejected: {exc.code} - {exc.message}")
        return CommandResult.failure(exc)

    async def _queue_views(self, uow: UnitOfWork, include_recently_completed: bool = False) -> List[QueueEntryView]:
        rows = await self.engine.current_queue(uow, include_recently_completed)
        return [QueueEntryView.from_entry(entry, customer) for entry, customer in rows]

    # --- customers ---

    async def register_customer(
        self,
        name: str,
        email: str,
        phone_number: Optional[str] = None
    ) -> CommandResult[CustomerSchema]:
        try:
            async with self.unit_of_work() as uow:
                customer = await self.customers.register(uow, name, email, phone_number)
                await uow.commit()
        except DomainError as e:
            return self._failure("register_customer", e)
        return CommandResult.success(CustomerSchema.model_validate(customer))

    async def deactivate_customer(self, customer_id) -> CommandResult[CustomerSchema]:
        try:
            async with self._locked(customer_resource(customer_id)):
                async with self.unit_of_work() as uow:
                    customer = await self.customers.deactivate(uow, customer_id)
                    await uow.commit()
        except DomainError as e:
            return self._failure("deactivate_customer", e)
        return CommandResult.success(CustomerSchema.model_validate(customer))

    async def get_customer(self, customer_id) -> CommandResult[CustomerSchema]:
        try:
            async with self.unit_of_work() as uow:
                customer = await self.customers.get(uow, customer_id)
        except DomainError as e:
            return self._failure("get_customer", e)
        return CommandResult.success(CustomerSchema.model_validate(customer))

    async def search_customers(self, name: str) -> CommandResult[List[CustomerSchema]]:
        try:
            async with self.unit_of_work() as uow:
                customers = await self.customers.search_by_name(uow, name)
        except DomainError as e:
            return self._failure("search_customers", e)
        return CommandResult.success([CustomerSchema.model_validate(c) for c in customers])

    # --- payments ---

    async def submit_payment(
        self,
        customer_id,
        amount: Decimal,
        method: PaymentMethod,
        external_ref: Optional[str] = None
    ) -> CommandResult[PaymentSchema]:
        try:
            async with self._locked(customer_resource(customer_id)):
                async with self.unit_of_work() as uow:
                    payment = await self.ledger.submit(uow, customer_id, amount, method, external_ref)
                    await uow.commit()
        except DomainError as e:
            return self._failure("submit_payment", e)

        self.fanout.payment_submitted(payment)
        return CommandResult.success(PaymentSchema.model_validate(payment))

    async def decide_payment(
        self,
        payment_id,
        confirmed: bool,
        notes: Optional[str],
        actor: str
    ) -> CommandResult[PaymentSchema]:
        """
        Confirm or deny a pending payment. A confirmation admits the customer
        to the queue in the same transaction.
        """
        views = None
        try:
            async with self._locked(payment_resource(payment_id), QUEUE_RESOURCE):
                async with self.unit_of_work() as uow:
                    outcome = await self.orchestrator.confirm_and_admit(uow, payment_id, confirmed, notes, actor)
                    if outcome.entry is not None:
                        views = await self._queue_views(uow)
        except DomainError as e:
            return self._failure("decide_payment", e)

        self.fanout.payment_decided(outcome.payment)
        if views is not None:
            self.fanout.queue_changed(QueueUpdateType.CUSTOMER_ADDED, views)
        return CommandResult.success(PaymentSchema.model_validate(outcome.payment))

    async def pending_payments(self) -> CommandResult[List[PaymentSchema]]:
        async with self.unit_of_work() as uow:
            payments = await self.ledger.pending(uow)
        return CommandResult.success([PaymentSchema.model_validate(p) for p in payments])

    async def payment_history(self, customer_id) -> CommandResult[List[PaymentSchema]]:
        async with self.unit_of_work() as uow:
            payments = await self.ledger.history(uow, customer_id)
        return CommandResult.success([PaymentSchema.model_validate(p) for p in payments])

    async def get_payment(self, payment_id) -> CommandResult[PaymentSchema]:
        try:
            async with self.unit_of_work() as uow:
                payment = await self.ledger.get(uow, payment_id)
        except DomainError as e:
            return self._failure("get_payment", e)
        return CommandResult.success(PaymentSchema.model_validate(payment))

    async def has_pending(self, customer_id) -> CommandResult[bool]:
        async with self.unit_of_work() as uow:
            pending = await self.ledger.has_pending(uow, customer_id)
        return CommandResult.success(pending)

    async def payment_methods(self) -> CommandResult[List[PaymentMethodSchema]]:
        async with self.unit_of_work() as uow:
            configs = await self.payment_configurations.list(uow)
        methods = [
            PaymentMethodSchema.model_validate(config).model_copy(
                update={"requires_reference": config.payment_method.requires_reference}
            )
            for config in configs
        ]
        return CommandResult.success(methods)

    # --- queue commands ---

    async def manual_admit(
        self,
        reason: str,
        actor: str,
        customer_id=None,
        new_customer: Optional[CustomerCreate] = None
    ) -> CommandResult[QueueEntrySchema]:
        resources = [customer_resource(customer_id)] if customer_id is not None else []
        resources.append(QUEUE_RESOURCE)
        try:
            async with self._locked(*resources):
                async with self.unit_of_work() as uow:
                    outcome = await self.orchestrator.manual_admit(uow, reason, actor, customer_id, new_customer)
                    views = await self._queue_views(uow)
        except DomainError as e:
            return self._failure("manual_admit", e)

        self.fanout.manual_admission(outcome.entry, reason.strip(), views)
        return CommandResult.success(QueueEntrySchema.model_validate(outcome.entry))

    async def start_ride(self, entry_id, actor: str) -> CommandResult[QueueEntrySchema]:
        try:
            async with self._locked(QUEUE_RESOURCE):
                async with self.unit_of_work() as uow:
                    entry = await self.engine.start(uow, entry_id, actor)
                    await uow.commit()
        except DomainError as e:
            return self._failure("start_ride", e)

        self.fanout.ride_started(entry)
        return CommandResult.success(QueueEntrySchema.model_validate(entry))

    async def complete_ride(self, entry_id, actor: str) -> CommandResult[QueueEntrySchema]:
        try:
            async with self._locked(QUEUE_RESOURCE):
                async with self.unit_of_work() as uow:
                    entry = await self.engine.complete(uow, entry_id, actor)
                    await uow.commit()
                    views = await self._queue_views(uow)
        except DomainError as e:
            return self._failure("complete_ride", e)

        self.fanout.ride_completed(entry, views)
        return CommandResult.success(QueueEntrySchema.model_validate(entry))

    async def remove_from_queue(self, entry_id, reason: str, actor: str) -> CommandResult[QueueEntrySchema]:
        try:
            async with self._locked(QUEUE_RESOURCE):
                async with self.unit_of_work() as uow:
                    entry = await self.engine.remove(uow, entry_id, reason, actor)
                    await uow.commit()
                    views = await self._queue_views(uow)
        except DomainError as e:
            return self._failure("remove_from_queue", e)

        self.fanout.ride_cancelled(entry, views)
        return CommandResult.success(QueueEntrySchema.model_validate(entry))

    async def reorder_queue(self, entry_ids: List, actor: str) -> CommandResult[List[QueueEntryView]]:
        try:
            async with self._locked(QUEUE_RESOURCE):
                async with self.unit_of_work() as uow:
                    await self.engine.reorder(uow, entry_ids, actor)
                    await uow.commit()
                    views = await self._queue_views(uow)
        except DomainError as e:
            return self._failure("reorder_queue", e)

        self.fanout.queue_changed(QueueUpdateType.QUEUE_REORDERED, views)
        return CommandResult.success(views)

    async def sync_from_secondary(
        self,
        external_state: List[SecondaryEntryState]
    ) -> CommandResult[List[QueueEntrySchema]]:
        try:
            async with self._locked(QUEUE_RESOURCE):
                async with self.unit_of_work() as uow:
                    synced = await self.engine.sync_from_secondary(uow, external_state)
                    await uow.commit()
                    views = await self._queue_views(uow)
        except DomainError as e:
            return self._failure("sync_from_secondary", e)

        if synced:
            self.fanout.queue_changed(QueueUpdateType.QUEUE_SYNCED, views)
        return CommandResult.success([QueueEntrySchema.model_validate(entry) for entry in synced])

    async def recalculate_positions(self) -> CommandResult[int]:
        try:
            async with self._locked(QUEUE_RESOURCE):
                async with self.unit_of_work() as uow:
                    changed = await self.engine.recalculate(uow)
                    await uow.commit()
                    views = await self._queue_views(uow)
        except DomainError as e:
            return self._failure("recalculate_positions", e)

        if changed:
            self.fanout.queue_changed(QueueUpdateType.POSITIONS_RECALCULATED, views)
        return CommandResult.success(changed)

    # --- queue queries ---

    async def current_queue(self, include_recently_completed: bool = False) -> CommandResult[List[QueueEntryView]]:
        async with self.unit_of_work() as uow:
            views = await self._queue_views(uow, include_recently_completed)
        return CommandResult.success(views)

    async def next_customer(self) -> CommandResult[Optional[QueueEntryView]]:
        async with self.unit_of_work() as uow:
            row = await self.engine.next_customer(uow)
        if row is None:
            return CommandResult.success(None)
        entry, customer = row
        return CommandResult.success(QueueEntryView.from_entry(entry, customer))

    async def driver_summary(self) -> CommandResult[DriverQueueSummary]:
        async with self.unit_of_work() as uow:
            length = await self.engine.queue_length(uow)
            row = await self.engine.next_customer(uow)
        next_view = QueueEntryView.from_entry(*row) if row is not None else None
        return CommandResult.success(DriverQueueSummary(queue_length=length, next_customer=next_view))

    async def seed_payment_configurations(self) -> int:
        async with self.unit_of_work() as uow:
            created = await self.payment_configurations.seed_defaults(uow)
            await uow.commit()
        return created
