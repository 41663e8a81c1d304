"""
Repositories

Data access layer. Repositories take an AsyncSession and the owning
user's id; they flush but never commit.
"""

from agent_eval.repositories.base import BaseRepository
from agent_eval.repositories.evaluators import EvaluatorRepository
from agent_eval.repositories.flow_configs import FlowConfigRepository
from agent_eval.repositories.owner_scoped import OwnerScopedRepository
from agent_eval.repositories.personas import PersonaRepository
from agent_eval.repositories.question_sets import QuestionSetRepository
from agent_eval.repositories.runs import RunRepository
from agent_eval.repositories.tags import TagRepository
from agent_eval.repositories.tests import TestRepository
from agent_eval.repositories.webhooks import WebhookRepository

__all__ = [
    "BaseRepository",
    "OwnerScopedRepository",
    "EvaluatorRepository",
    "FlowConfigRepository",
    "PersonaRepository",
    "QuestionSetRepository",
    "RunRepository",
    "TagRepository",
    "TestRepository",
    "WebhookRepository",
]
