from typing import List

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from ridequeue.models import PaymentConfiguration
from ridequeue.models.payment import PaymentMethod
from ridequeue.repositories.base import BaseRepository


class PaymentConfigurationRepository(BaseRepository[PaymentConfiguration]):
    def __init__(self, session: AsyncSession):
        super().__init__(PaymentConfiguration, session)

    async def get_by_method(self, method: PaymentMethod) -> PaymentConfiguration | None:
        result = await self.session.execute(
            select(self.model).where(self.model.payment_method == method)
        )
        return result.scalars().first()

    async def get_all_ordered(self) -> List[PaymentConfiguration]:
        result = await self.session.execute(
            select(self.model).order_by(self.model.display_name)
        )
        return list(result.scalars().all())
