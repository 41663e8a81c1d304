"""
Tag Repository
"""

from uuid import UUID

from agent_eval.models.orm import Tag
from agent_eval.repositories.owner_scoped import OwnerScopedRepository


class TagRepository(OwnerScopedRepository[Tag]):
    """Tag repository, scoped to the owning user."""

    model = Tag

    async def list_by_ids(self, tag_ids: list[UUID]) -> list[Tag]:
        """Owned tags for the given ids; empty input never hits the database."""
        if not tag_ids:
            return []
        return await self.list_owned(tag_ids)
