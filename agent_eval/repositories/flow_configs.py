"""
FlowConfig Repository

Flow configuration data access, scoped to the owning user.
"""

from agent_eval.models.orm import FlowConfig
from agent_eval.repositories.owner_scoped import OwnerScopedRepository


class FlowConfigRepository(OwnerScopedRepository[FlowConfig]):
    """Flow configuration repository."""

    model = FlowConfig
