from datetime import datetime
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from ridequeue.models import Customer
from ridequeue.repositories.base import BaseRepository


class CustomerRepository(BaseRepository[Customer]):
    def __init__(self, session: AsyncSession):
        super().__init__(Customer, session)

    async def get_by_id(self, customer_id) -> Customer | None:
        return await self.get(customer_id)

    async def search_by_name(
        self,
        name: str,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None
    ) -> List[Customer]:
        """
        Case-insensitive substring match, oldest first so duplicate names read in arrival order.
        """
        conditions = [self.model.name.ilike(f"%{name}%")]
        if from_date is not None:
            conditions.append(self.model.created_at >= from_date)
        if to_date is not None:
            conditions.append(self.model.created_at <= to_date)

        result = await self.session.execute(
            select(self.model).where(*conditions).order_by(self.model.created_at)
        )
        return list(result.scalars().all())
