from typing import List

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from ridequeue.models import Payment
from ridequeue.models.payment import PaymentStatus
from ridequeue.repositories.base import BaseRepository


class PaymentRepository(BaseRepository[Payment]):
    def __init__(self, session: AsyncSession):
        super().__init__(Payment, session)

    async def get_by_id(self, payment_id, for_update: bool = False) -> Payment | None:
        return await self.get(payment_id, for_update=for_update)

    async def get_pending_for_customer(self, customer_id, for_update: bool = False) -> List[Payment]:
        query = select(self.model).where(
            self.model.customer_id == customer_id,
            self.model.status == PaymentStatus.PENDING
        )
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def has_pending_for_customer(self, customer_id) -> bool:
        result = await self.session.execute(
            select(self.model.id).where(
                self.model.customer_id == customer_id,
                self.model.status == PaymentStatus.PENDING
            ).limit(1)
        )
        return result.first() is not None

    async def get_all_pending(self) -> List[Payment]:
        result = await self.session.execute(
            select(self.model)
            .where(self.model.status == PaymentStatus.PENDING)
            .order_by(self.model.created_at)
        )
        return list(result.scalars().all())

    async def get_history_for_customer(self, customer_id) -> List[Payment]:
        result = await self.session.execute(
            select(self.model)
            .where(self.model.customer_id == customer_id)
            .order_by(self.model.created_at.desc())
        )
        return list(result.scalars().all())
