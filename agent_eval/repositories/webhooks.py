"""
Webhook Repository

Webhook rows carry an encrypted signing secret. Nothing in this
repository decrypts it.
"""

from agent_eval.models.orm import Webhook
from agent_eval.repositories.owner_scoped import OwnerScopedRepository


class WebhookRepository(OwnerScopedRepository[Webhook]):
    model = Webhook
