"""
Pydantic models for bundle export/import.

Bundles are camelCase JSON documents. Field names here are snake_case with
camelCase aliases; always dump with by_alias=True and exclude_none=True so
unset references are omitted rather than written as null.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel, to_snake

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

EXPORT_VERSION = "1.0.0"


def zero_counts() -> dict[str, int]:
    """Per-type counter map with every known entity type set to 0."""
    return {entity_type.value: 0 for entity_type in ExportEntityType}


class BundleModel(BaseModel):
    """Base for all bundle documents: camelCase on the wire, unknown fields ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ExportMetadata(BundleModel):
    """Header metadata for every bundle."""
    version: str = EXPORT_VERSION
    exported_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    exported_by: str | None = None


# --- Records ---


class ExportRecord(BundleModel):
    """Common part of every exported entity."""
    export_id: str


class NamedExportRecord(ExportRecord):
    """Record of a type whose natural key is its name."""
    name: str


class FlowConfigRecord(NamedExportRecord):
    flow_id: str
    base_path: str | None = None
    description: str | None = None


class QuestionRecord(BundleModel):
    question: str
    expected_answer: str | None = None
    input_variables: dict[str, Any] | None = None


class QuestionSetRecord(NamedExportRecord):
    description: str | None = None
    questions: list[QuestionRecord] = Field(default_factory=list)


class TagRecord(NamedExportRecord):
    color: str | None = None


class WebhookRecord(NamedExportRecord):
    url: str
    description: str | None = None
    events: list[str] = Field(default_factory=list)
    enabled: bool = True
    method: WebhookMethod = WebhookMethod.POST
    headers: dict[str, str] | None = None
    query_params: dict[str, str] | None = None
    body_template: dict[str, Any] | None = None


class PersonaRecord(NamedExportRecord):
    description: str | None = None
    system_prompt: str
    is_template: bool = False


class EvaluatorRecord(NamedExportRecord):
    description: str | None = None
    model: str
    system_prompt: str
    reasoning_model: bool = False
    reasoning_effort: str | None = None


class ScenarioRecord(BundleModel):
    name: str
    goal: str
    max_turns: int = 30
    order_index: int = 0
    persona_export_id: str | None = None


class TestRecord(NamedExportRecord):
    __test__ = False

    description: str | None = None
    type: TestType = TestType.QA
    multi_step_evaluation: bool = False
    repeat_count: int = 1
    response_variable_key: str | None = None
    execution_mode: ConversationExecutionMode | None = None
    delay_between_turns: int | None = None
    simulated_user_model: str | None = None
    simulated_user_model_config: dict[str, Any] | None = None
    simulated_user_reasoning_model: bool = False
    simulated_user_reasoning_effort: str | None = None

    # References
    flow_config_export_id: str | None = None
    question_set_export_id: str | None = None
    webhook_export_id: str | None = None
    evaluator_export_id: str | None = None
    tag_export_ids: list[str] | None = None

    scenarios: list[ScenarioRecord] = Field(default_factory=list)


class RunResultRecord(BundleModel):
    question: str
    answer: str = ""
    expected_answer: str | None = None
    execution_time_ms: int | None = None
    is_error: bool | None = None
    error_message: str | None = None
    human_evaluation: str | None = None
    human_evaluation_description: str | None = None
    severity: str | None = None
    llm_judge_score: float | None = None
    llm_judge_reasoning: str | None = None
    timestamp: str | None = None


class ConversationRecord(BundleModel):
    """
    One conversation of a conversation-test run.

    Linked back to its scenario by name, since scenarios carry no export id.
    """
    scenario_name: str | None = None
    status: ConversationStatus = ConversationStatus.RUNNING
    goal_achieved: bool | None = None
    total_turns: int = 0
    turns: list[dict[str, Any]] = Field(default_factory=list)
    summary: str | None = None
    end_reason: str | None = None
    human_evaluation: ConversationHumanEvaluation | None = None
    human_evaluation_notes: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None


class RunRecord(ExportRecord):
    test_name: str | None = None
    test_export_id: str | None = None
    question_set_export_id: str | None = None
    status: RunStatus = RunStatus.PENDING
    results: list[RunResultRecord] = Field(default_factory=list)
    error_message: str | None = None
    total_questions: int = 0
    completed_questions: int = 0
    is_fully_evaluated: bool = False
    started_at: datetime | None = None
    completed_at: datetime | None = None
    evaluated_at: datetime | None = None
    created_at: datetime | None = None

    # Present only for conversation runs
    total_scenarios: int | None = None
    completed_scenarios: int | None = None
    conversations: list[ConversationRecord] | None = None


# --- Bundle ---


class ExportBundle(BundleModel):
    """
    A complete export document.

    An entity-type key is present only when that type was requested;
    None means "not included", an empty list means "included, no matches".
    """
    metadata: ExportMetadata
    flow_configs: list[FlowConfigRecord] | None = None
    question_sets: list[QuestionSetRecord] | None = None
    tags: list[TagRecord] | None = None
    webhooks: list[WebhookRecord] | None = None
    personas: list[PersonaRecord] | None = None
    evaluators: list[EvaluatorRecord] | None = None
    tests: list[TestRecord] | None = None
    runs: list[RunRecord] | None = None

    def get_records(self, entity_type: ExportEntityType) -> list[ExportRecord] | None:
        return getattr(self, to_snake(entity_type.value))

    def set_records(self, entity_type: ExportEntityType, records: list[ExportRecord]) -> None:
        setattr(self, to_snake(entity_type.value), records)


# --- Preview / Import ---


class ImportConflict(BundleModel):
    """An incoming record whose natural key already exists for the owner."""
    type: ExportEntityType
    export_id: str
    name: str
    existing_id: str
    incoming: dict[str, Any] = Field(default_factory=dict)
    existing: dict[str, Any] = Field(default_factory=dict)


class ImportPreviewResult(BundleModel):
    to_create: dict[str, int] = Field(default_factory=zero_counts)
    conflicts: list[ImportConflict] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class ImportOptions(BundleModel):
    conflict_strategy: ConflictStrategy


class ImportResult(BundleModel):
    created: dict[str, int] = Field(default_factory=zero_counts)
    skipped: dict[str, int] = Field(default_factory=zero_counts)
    overwritten: dict[str, int] = Field(default_factory=zero_counts)
    renamed: dict[str, int] = Field(default_factory=zero_counts)
    errors: list[str] = Field(default_factory=list)
