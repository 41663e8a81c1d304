"""
Owner-Scoped Repository

Base repository for entities that belong to a single user. Every query
built through this class is filtered by user_id, so one owner can never
read or match another owner's rows.
"""

from typing import Any, Generic, Sequence
from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from agent_eval.repositories.base import BaseRepository, ModelT


def _owner_filter(model: Any, user_id: UUID) -> Any:
    """Filter by user_id - bypasses type checking for generic model."""
    return model.user_id == user_id


class OwnerScopedRepository(BaseRepository[ModelT], Generic[ModelT]):
    """
    Repository scoped to one owning user.

    Example usage:
        class TagRepository(OwnerScopedRepository[Tag]):
            model = Tag

        repo = TagRepository(db, user.user_id)
        tags = await repo.list_owned()
        existing = await repo.get_by_name("smoke")
    """

    # Column used as the natural key for conflict detection; None means
    # the entity type has no natural key.
    natural_key: str | None = "name"

    def __init__(self, session: AsyncSession, user_id: UUID):
        """
        Initialize repository with database session and owner scope.

        Args:
            session: SQLAlchemy async session
            user_id: Owning user's UUID
        """
        super().__init__(session)
        self.user_id = user_id

    def filter_owned(self, query: Select[tuple[ModelT]]) -> Select[tuple[ModelT]]:
        """WHERE user_id = :user_id"""
        return query.where(_owner_filter(self.model, self.user_id))

    def base_query(self) -> Select[tuple[ModelT]]:
        """Owned-rows query; subclasses add eager loading here."""
        return self.filter_owned(select(self.model))

    async def list_owned(self, ids: Sequence[UUID] | None = None) -> list[ModelT]:
        """
        List the owner's entities, optionally restricted to an id subset.

        Ids that belong to other owners simply do not match.

        Args:
            ids: Optional storage ids to restrict to (None means all)

        Returns:
            Entities ordered by creation time
        """
        query = self.base_query()
        if ids is not None:
            query = query.where(self.model.id.in_(list(ids)))
        query = query.order_by(self.model.created_at, self.model.id)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_owned(self, id: UUID) -> ModelT | None:
        """Get an entity by id, only if it belongs to the owner."""
        query = self.base_query().where(self.model.id == id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_by_name(self, name: str) -> ModelT | None:
        """
        Find the owner's entity by natural key (case-sensitive exact match).

        Returns None when the type has no natural key.
        """
        if self.natural_key is None:
            return None

        query = self.base_query().where(getattr(self.model, self.natural_key) == name)
        result = await self.session.execute(query.limit(1))
        return result.scalars().first()

    async def create_owned(self, **values: Any) -> ModelT:
        """Create a new entity owned by this repository's user."""
        entity = self.model(user_id=self.user_id, **values)
        return await self.create(entity)
