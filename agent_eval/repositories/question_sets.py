"""
QuestionSet Repository

Question set data access, scoped to the owning user.
"""

from agent_eval.models.orm import QuestionSet
from agent_eval.repositories.owner_scoped import OwnerScopedRepository


class QuestionSetRepository(OwnerScopedRepository[QuestionSet]):
    """Question set repository."""

    model = QuestionSet
