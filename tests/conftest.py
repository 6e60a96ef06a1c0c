import os

os.environ.setdefault("TEST_MODE", "true")

import pytest
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ridequeue.core.cache import CacheService
from ridequeue.core.distributed_lock import DistributedLockManager
from ridequeue.db.unit_of_work import unit_of_work_factory
from ridequeue.models import Base
from ridequeue.models.payment import PaymentMethod
from ridequeue.services.customer_registry import CustomerRegistryService
from ridequeue.services.notification_fanout import NotificationFanout
from ridequeue.services.payment_configuration import PaymentConfigurationService
from ridequeue.services.payment_ledger import PaymentLedgerService
from ridequeue.services.queue_engine import QueueOrderingEngine
from ridequeue.services.ride_queue import RideQueueService


class RecordingPublisher:
    """Collects (group, event) pairs in delivery order."""

    def __init__(self):
        self.published = []

    async def publish(self, group, event):
        self.published.append((group, event))

    def events(self, name, group=None):
        return [
            event for g, event in self.published
            if event.event == name and (group is None or g == group)
        ]

    def groups_for(self, name):
        return {g for g, event in self.published if event.event == name}


@pytest.fixture(scope="function")
async def test_db_engine(tmp_path):
    # A file database so concurrent sessions in one test see each other's commits
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ridequeue_test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_db_engine):
    return async_sessionmaker(
        test_db_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest.fixture
def uow_factory(session_factory):
    return unit_of_work_factory(session_factory)


@pytest.fixture
def lock_manager():
    # Never connected, so locks are in-process and bound to this test's loop
    return DistributedLockManager(CacheService(None), acquire_timeout=5)


@pytest.fixture
def recording_publisher():
    return RecordingPublisher()


@pytest.fixture
def fanout(recording_publisher):
    return NotificationFanout(recording_publisher, minutes_per_ride=5)


@pytest.fixture
def ledger():
    return PaymentLedgerService(PaymentConfigurationService())


@pytest.fixture
def engine():
    return QueueOrderingEngine(recent_completed_hours=24)


@pytest.fixture
async def seeded_configs(uow_factory):
    async with uow_factory() as uow:
        await PaymentConfigurationService().seed_defaults(uow)
        await uow.commit()


@pytest.fixture
async def service(session_factory, lock_manager, fanout):
    ride_queue_service = RideQueueService(
        session_factory=session_factory,
        lock_manager=lock_manager,
        fanout=fanout,
        minutes_per_ride=5,
        recent_completed_hours=24,
        lock_timeout_seconds=5,
    )
    await ride_queue_service.seed_payment_configurations()
    return ride_queue_service


@pytest.fixture
def make_customer(uow_factory):
    registry = CustomerRegistryService()
    counter = {"n": 0}

    async def _make(name=None, email=None, phone_number=None):
        counter["n"] += 1
        async with uow_factory() as uow:
            customer = await registry.register(
                uow,
                name or f"Rider {counter['n']}",
                email or f"rider{counter['n']}@example.com",
                phone_number,
            )
            await uow.commit()
        return customer

    return _make


@pytest.fixture
def make_confirmed_payment(uow_factory, make_customer, ledger):
    """Customer plus a confirmed (not yet queued) cash payment."""

    async def _make(name=None):
        customer = await make_customer(name)
        async with uow_factory() as uow:
            payment = await ledger.submit(uow, customer.id, Decimal("20.00"), PaymentMethod.CASH_IN_HAND)
            payment = await ledger.decide(uow, payment.id, True, None, "staff")
            await uow.commit()
        return payment

    return _make


@pytest.fixture
def make_queued_entries(uow_factory, engine, make_confirmed_payment):
    """Admit `count` customers and return their entries in queue order."""

    async def _make(count):
        entries = []
        for _ in range(count):
            payment = await make_confirmed_payment()
            async with uow_factory() as uow:
                entries.append(await engine.admit(uow, payment.id))
                await uow.commit()
        return entries

    return _make
