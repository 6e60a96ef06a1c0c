from typing import Generic, Type, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.sql import func
from sqlalchemy.ext.asyncio import AsyncSession

from ridequeue.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)

class BaseRepository(Generic[ModelType]):
    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self.model = model
        self.session = session

    async def get(self, pk: UUID, for_update: bool = False) -> ModelType | None:
        if not for_update:
            return await self.session.get(self.model, pk)
        result = await self.session.execute(
            select(self.model).where(self.model.id == pk).with_for_update()
        )
        return result.scalars().first()

    async def create(self, instance: ModelType) -> ModelType:
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def update(self, instance: ModelType) -> ModelType:
        self.session.add(instance)  # Re-add the instance to the session to track changes
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def count_by_status(self, statuses: list) -> int:
        query = select(func.count(self.model.id)).where(self.model.status.in_(statuses))
        result = await self.session.execute(query)
        return result.scalar_one()

    async def get_all(self) -> list[ModelType]:
        result = await self.session.execute(select(self.model))
        return list(result.scalars().all())
