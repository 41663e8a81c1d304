"""
Base Repository

Generic async CRUD helpers shared by all repositories.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from agent_eval.models.orm.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """
    Base repository for a single ORM model.

    Subclasses set `model`. Writes flush but never commit; the caller
    owns the transaction.
    """

    model: type[ModelT]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, entity: ModelT) -> ModelT:
        self.session.add(entity)
        await self.session.flush()
        return entity

    async def update(self, entity: ModelT, **values: Any) -> ModelT:
        """Apply column values to an entity and flush."""
        for key, value in values.items():
            setattr(entity, key, value)
        await self.session.flush()
        return entity
