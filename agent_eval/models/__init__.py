"""
Agent Eval Models

ORM models (database tables):
    from agent_eval.models import Test, FlowConfig
    from agent_eval.models.orm.tests import Test  # Granular access

Pydantic contracts (bundle documents, import results):
    from agent_eval.models.contracts.export_import import ExportBundle, ImportResult

Enums:
    from agent_eval.models import ExportEntityType
    from agent_eval.models.enums import ExportEntityType
"""

# ORM models (database tables)
from agent_eval.models.orm import (
    AccessToken,
    Base,
    Conversation,
    Evaluator,
    FlowConfig,
    Persona,
    QuestionSet,
    Run,
    Scenario,
    Tag,
    Test,
    User,
    Webhook,
)

# Enums
from agent_eval.models.enums import (
    ConflictStrategy,
    ConversationExecutionMode,
    ConversationHumanEvaluation,
    ConversationStatus,
    ExportEntityType,
    RunStatus,
    TestType,
    WebhookMethod,
)

__all__ = [
    # ORM
    "Base",
    "User",
    "AccessToken",
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
    # Enums
    "ConflictStrategy",
    "ConversationExecutionMode",
    "ConversationHumanEvaluation",
    "ConversationStatus",
    "ExportEntityType",
    "RunStatus",
    "TestType",
    "WebhookMethod",
]
