"""
Enumeration types used across the application.

Values match the strings stored in the database and carried in bundles.
"""

from enum import Enum


class TestType(str, Enum):
    """Kind of test"""
    __test__ = False

    QA = "qa"
    CONVERSATION = "conversation"


class ConversationExecutionMode(str, Enum):
    """How conversation scenarios are executed"""
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"


class RunStatus(str, Enum):
    """Run lifecycle status"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELED = "canceled"


class ConversationStatus(str, Enum):
    """Outcome of one simulated conversation"""
    RUNNING = "running"
    COMPLETED = "completed"
    GOAL_ACHIEVED = "goal_achieved"
    GOAL_NOT_ACHIEVED = "goal_not_achieved"
    MAX_TURNS_REACHED = "max_turns_reached"
    ERROR = "error"


class ConversationHumanEvaluation(str, Enum):
    """Reviewer grade for a conversation"""
    GOOD = "good"
    ACCEPTABLE = "acceptable"
    POOR = "poor"


class WebhookMethod(str, Enum):
    """HTTP method used for webhook delivery"""
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"


class ExportEntityType(str, Enum):
    """
    Entity types that can appear in an export bundle.

    Values are the bundle keys. Declaration order is the import order:
    every type only references types declared before it.
    """
    FLOW_CONFIGS = "flowConfigs"
    QUESTION_SETS = "questionSets"
    TAGS = "tags"
    WEBHOOKS = "webhooks"
    PERSONAS = "personas"
    EVALUATORS = "evaluators"
    TESTS = "tests"
    RUNS = "runs"


class ConflictStrategy(str, Enum):
    """How an import resolves a natural-key collision"""
    SKIP = "skip"
    OVERWRITE = "overwrite"
    RENAME = "rename"
