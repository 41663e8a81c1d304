"""
Test Repository

Tests are always loaded with their tags and scenarios so callers can
read and replace both collections without lazy loading.
"""

from sqlalchemy import Select, select
from sqlalchemy.orm import selectinload

from agent_eval.models.orm import Test
from agent_eval.repositories.owner_scoped import OwnerScopedRepository


class TestRepository(OwnerScopedRepository[Test]):
    """Test repository with tags and scenarios eager-loaded."""

    __test__ = False
    model = Test

    def base_query(self) -> Select[tuple[Test]]:
        query = select(self.model).options(
            selectinload(self.model.tags),
            selectinload(self.model.scenarios),
        )
        return self.filter_owned(query)
