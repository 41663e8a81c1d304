"""
SQLAlchemy ORM Models for Agent Eval

Pure database models using SQLAlchemy 2.0 declarative style.
Column types are portable (Uuid, JSON) so the same models run on
PostgreSQL in production and SQLite in tests.

For bundle schemas, see models/contracts.
"""

from agent_eval.models.orm.access_tokens import AccessToken
from agent_eval.models.orm.base import Base
from agent_eval.models.orm.conversations import Conversation
from agent_eval.models.orm.evaluators import Evaluator
from agent_eval.models.orm.flow_configs import FlowConfig
from agent_eval.models.orm.personas import Persona
from agent_eval.models.orm.question_sets import QuestionSet
from agent_eval.models.orm.runs import Run
from agent_eval.models.orm.tags import Tag, test_tags
from agent_eval.models.orm.tests import Scenario, Test
from agent_eval.models.orm.users import User
from agent_eval.models.orm.webhooks import Webhook

__all__ = [
    # Base
    "Base",
    # Users and credentials
    "User",
    "AccessToken",
    # Exportable entities
    "FlowConfig",
    "QuestionSet",
    "Tag",
    "Webhook",
    "Persona",
    "Evaluator",
    "Test",
    "Scenario",
    "Run",
    "Conversation",
    # Association tables
    "test_tags",
]
