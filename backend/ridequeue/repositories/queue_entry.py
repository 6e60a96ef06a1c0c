from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.sql import func

from ridequeue.models import Customer, QueueEntry
from ridequeue.models.queue_entry import QueueEntryStatus
from ridequeue.repositories.base import BaseRepository


class QueueEntryRepository(BaseRepository[QueueEntry]):
    def __init__(self, session: AsyncSession):
        super().__init__(QueueEntry, session)

    async def get_by_id(self, entry_id, for_update: bool = False) -> QueueEntry | None:
        return await self.get(entry_id, for_update=for_update)

    async def get_by_payment_id(self, payment_id) -> QueueEntry | None:
        result = await self.session.execute(
            select(self.model).where(self.model.payment_id == payment_id)
        )
        return result.scalars().first()

    async def get_max_active_position(self) -> int:
        result = await self.session.execute(
            select(func.max(self.model.position)).where(
                self.model.status.in_(QueueEntryStatus.active())
            )
        )
        return result.scalar_one_or_none() or 0

    async def get_active_entries(self, for_update: bool = False) -> List[QueueEntry]:
        """
        Active entries in queue order; ties on position fall back to arrival order.
        """
        query = (
            select(self.model)
            .where(self.model.status.in_(QueueEntryStatus.active()))
            .order_by(self.model.position, self.model.queued_at)
        )
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_queue_with_customers(
        self,
        completed_since: Optional[datetime] = None
    ) -> List[Tuple[QueueEntry, Customer]]:
        """
        Read model for listings: entries joined with their customer, ordered by position.
        Completed entries are included only when `completed_since` is given.
        """
        condition = self.model.status.in_(QueueEntryStatus.active())
        if completed_since is not None:
            condition = or_(
                condition,
                (self.model.status == QueueEntryStatus.COMPLETED) & (self.model.completed_at >= completed_since)
            )

        result = await self.session.execute(
            select(self.model, Customer)
            .join(Customer, Customer.id == self.model.customer_id)
            .where(condition)
            .order_by(self.model.position, self.model.queued_at)
        )
        return [(row[0], row[1]) for row in result.all()]

    async def get_next_waiting_with_customer(self) -> Optional[Tuple[QueueEntry, Customer]]:
        result = await self.session.execute(
            select(self.model, Customer)
            .join(Customer, Customer.id == self.model.customer_id)
            .where(self.model.status == QueueEntryStatus.WAITING)
            .order_by(self.model.position, self.model.queued_at)
            .limit(1)
        )
        row = result.first()
        if row is None:
            return None
        return row[0], row[1]
