"""
Explicit unit of work for the queue core.

One UnitOfWork wraps one AsyncSession and exposes a repository per
aggregate. Services receive the unit of work instead of opening sessions
themselves, so the caller decides where a transaction starts and whether it
commits. Leaving the block without commit() discards every change.

    async with UnitOfWork(AsyncSessionLocal) as uow:
        payment = await ledger.decide(uow, ...)
        entry = await engine.admit(uow, payment.id)
        await uow.commit()
"""
import logging
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ridequeue.repositories.customer import CustomerRepository
from ridequeue.repositories.payment import PaymentRepository
from ridequeue.repositories.payment_configuration import PaymentConfigurationRepository
from ridequeue.repositories.queue_entry import QueueEntryRepository

logger = logging.getLogger(__name__)


class UnitOfWork:
    def __init__(self, session_factory: Callable[..., AsyncSession]):
        self.session_factory = session_factory
        self.session: Optional[AsyncSession] = None
        self.committed = False

    async def __aenter__(self) -> "UnitOfWork":
        self.session = self.session_factory()
        self.committed = False
        self.customers = CustomerRepository(self.session)
        self.payments = PaymentRepository(self.session)
        self.queue_entries = QueueEntryRepository(self.session)
        self.payment_configurations = PaymentConfigurationRepository(self.session)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is not None:
                await self.session.rollback()
            elif not self.committed:
                # Rows read in the block stay usable after it; rollback would expire them.
                self.session.expunge_all()
                await self.session.rollback()
        finally:
            await self.session.close()

    async def commit(self) -> None:
        await self.session.commit()
        self.committed = True

    async def rollback(self) -> None:
        await self.session.rollback()
        logger.debug("Unit of work rolled back")


def unit_of_work_factory(session_factory: Callable[..., AsyncSession]) -> Callable[[], UnitOfWork]:
    """Return a zero-argument callable producing fresh units of work."""
    return lambda: UnitOfWork(session_factory)
