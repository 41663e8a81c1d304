"""
Persona Repository

Persona names are unique per owner (uq_personas_user_name).
"""

from agent_eval.models.orm import Persona
from agent_eval.repositories.owner_scoped import OwnerScopedRepository


class PersonaRepository(OwnerScopedRepository[Persona]):
    """Persona repository."""

    model = Persona
