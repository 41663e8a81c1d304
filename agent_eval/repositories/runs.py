"""
Run Repository

Runs have no natural key: get_by_name always returns None, so runs are
never treated as conflicting on import.
"""

from agent_eval.models.orm import Run
from agent_eval.repositories.owner_scoped import OwnerScopedRepository


class RunRepository(OwnerScopedRepository[Run]):
    """Run repository."""

    model = Run
    natural_key = None
