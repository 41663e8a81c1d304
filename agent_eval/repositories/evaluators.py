"""
Evaluator Repository

Evaluator data access, scoped to the owning user.
"""

from agent_eval.models.orm import Evaluator
from agent_eval.repositories.owner_scoped import OwnerScopedRepository


class EvaluatorRepository(OwnerScopedRepository[Evaluator]):
    """Evaluator repository."""

    model = Evaluator
