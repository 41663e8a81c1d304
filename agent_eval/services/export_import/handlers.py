"""
Per-entity-type export/import handlers.

Each exportable type has one handler that knows how to project an entity
into its bundle record, turn an incoming record back into column values
(resolving references through the ImportIdMap), and summarize an existing
entity for conflict reports. The serializer, conflict detector and import
executor only ever talk to handlers, in the order of HANDLER_CLASSES.

Adding an entity type means adding one handler here and one key to
ExportEntityType.
"""

from abc import ABC, abstractmethod
from typing import Any, ClassVar
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from agent_eval.models.contracts.export_import import (
    ConversationRecord,
    EvaluatorRecord,
    ExportRecord,
    FlowConfigRecord,
    PersonaRecord,
    QuestionRecord,
    QuestionSetRecord,
    RunRecord,
    RunResultRecord,
    ScenarioRecord,
    TagRecord,
    TestRecord,
    WebhookRecord,
)
from agent_eval.models.enums import ExportEntityType
from agent_eval.models.orm import (
    Conversation,
    Evaluator,
    FlowConfig,
    Persona,
    QuestionSet,
    Run,
    Scenario,
    Tag,
    Test,
    Webhook,
)
from agent_eval.repositories import (
    EvaluatorRepository,
    FlowConfigRepository,
    OwnerScopedRepository,
    PersonaRepository,
    QuestionSetRepository,
    RunRepository,
    TagRepository,
    TestRepository,
    WebhookRepository,
)
from agent_eval.services.export_import.ids import ExportIdAllocator
from agent_eval.services.export_import.refs import ImportIdMap, export_ref, export_refs

# (referenced type, export id) pairs carried by a record
References = list[tuple[ExportEntityType, str]]


class EntityHandler(ABC):
    """Export/import behaviour for one entity type."""

    entity_type: ClassVar[ExportEntityType]
    record_model: ClassVar[type[ExportRecord]]
    repository_class: ClassVar[type[OwnerScopedRepository]]
    # Human readable singular, used in error and warning messages
    label: ClassVar[str]

    def __init__(self, session: AsyncSession, user_id: UUID):
        self.session = session
        self.user_id = user_id
        self.repo = self.repository_class(session, user_id)

    @property
    def has_natural_key(self) -> bool:
        return self.repo.natural_key is not None

    # -------------------------------------------------------------------------
    # Export direction
    # -------------------------------------------------------------------------

    async def list_for_export(self, ids: list[UUID] | None = None) -> list[Any]:
        return await self.repo.list_owned(ids)

    @abstractmethod
    def to_record(self, entity: Any, allocator: ExportIdAllocator) -> ExportRecord:
        """Project an owned entity into its bundle record."""

    # -------------------------------------------------------------------------
    # Import direction
    # -------------------------------------------------------------------------

    @abstractmethod
    async def write_values(self, record: Any, id_map: ImportIdMap) -> dict[str, Any]:
        """
        Column values for creating or overwriting an entity from a record.

        References are resolved through id_map; unresolved ones come back
        as None (or are left out of list references).
        """

    def references(self, record: Any) -> References:
        """Outbound export id references carried by a record."""
        return []

    def display_name(self, record: Any) -> str:
        return getattr(record, "name", None) or record.export_id

    def summarize(self, entity: Any) -> dict[str, Any]:
        """Short description of an existing entity for conflict reports."""
        summary: dict[str, Any] = {"id": str(entity.id), "name": entity.name}
        if getattr(entity, "description", None):
            summary["description"] = entity.description
        if entity.updated_at is not None:
            summary["updatedAt"] = entity.updated_at.isoformat()
        return summary

    async def find_existing(self, record: Any) -> Any | None:
        """Owner's entity with the record's natural key, if any."""
        if not self.has_natural_key:
            return None
        return await self.repo.get_by_name(record.name)

    async def create(self, values: dict[str, Any]) -> Any:
        return await self.repo.create_owned(**values)

    async def overwrite(self, entity: Any, values: dict[str, Any]) -> Any:
        return await self.repo.update(entity, **values)

    async def unique_name(self, base_name: str) -> str:
        """First free "<name> (imported)", "<name> (imported 2)", ... for the owner."""
        candidate = f"{base_name} (imported)"
        counter = 1
        while await self.repo.get_by_name(candidate) is not None:
            counter += 1
            candidate = f"{base_name} (imported {counter})"
        return candidate


class FlowConfigHandler(EntityHandler):
    entity_type = ExportEntityType.FLOW_CONFIGS
    record_model = FlowConfigRecord
    repository_class = FlowConfigRepository
    label = "flow config"

    def to_record(self, entity: FlowConfig, allocator: ExportIdAllocator) -> FlowConfigRecord:
        return FlowConfigRecord(
            export_id=allocator.allocate(self.entity_type, entity.id),
            name=entity.name,
            flow_id=entity.flow_id,
            base_path=entity.base_path,
            description=entity.description,
        )

    async def write_values(self, record: FlowConfigRecord, id_map: ImportIdMap) -> dict[str, Any]:
        return {
            "name": record.name,
            "flow_id": record.flow_id,
            "base_path": record.base_path,
            "description": record.description,
        }

    def summarize(self, entity: FlowConfig) -> dict[str, Any]:
        summary = super().summarize(entity)
        summary["flowId"] = entity.flow_id
        if entity.base_path:
            summary["basePath"] = entity.base_path
        return summary


class QuestionSetHandler(EntityHandler):
    entity_type = ExportEntityType.QUESTION_SETS
    record_model = QuestionSetRecord
    repository_class = QuestionSetRepository
    label = "question set"

    def to_record(self, entity: QuestionSet, allocator: ExportIdAllocator) -> QuestionSetRecord:
        return QuestionSetRecord(
            export_id=allocator.allocate(self.entity_type, entity.id),
            name=entity.name,
            description=entity.description,
            questions=[QuestionRecord.model_validate(q) for q in entity.questions or []],
        )

    async def write_values(self, record: QuestionSetRecord, id_map: ImportIdMap) -> dict[str, Any]:
        return {
            "name": record.name,
            "description": record.description,
            # Stored in the same camelCase shape the API uses
            "questions": [q.to_document() for q in record.questions],
        }

    def summarize(self, entity: QuestionSet) -> dict[str, Any]:
        summary = super().summarize(entity)
        summary["questionCount"] = len(entity.questions or [])
        return summary


class TagHandler(EntityHandler):
    entity_type = ExportEntityType.TAGS
    record_model = TagRecord
    repository_class = TagRepository
    label = "tag"

    def to_record(self, entity: Tag, allocator: ExportIdAllocator) -> TagRecord:
        return TagRecord(
            export_id=allocator.allocate(self.entity_type, entity.id),
            name=entity.name,
            color=entity.color,
        )

    async def write_values(self, record: TagRecord, id_map: ImportIdMap) -> dict[str, Any]:
        return {"name": record.name, "color": record.color}


class WebhookHandler(EntityHandler):
    """Webhooks export without their signing secret; overwrite keeps the existing one."""

    entity_type = ExportEntityType.WEBHOOKS
    record_model = WebhookRecord
    repository_class = WebhookRepository
    label = "webhook"

    def to_record(self, entity: Webhook, allocator: ExportIdAllocator) -> WebhookRecord:
        return WebhookRecord(
            export_id=allocator.allocate(self.entity_type, entity.id),
            name=entity.name,
            url=entity.url,
            description=entity.description,
            events=list(entity.events or []),
            enabled=entity.enabled,
            method=entity.method,
            headers=entity.headers,
            query_params=entity.query_params,
            body_template=entity.body_template,
        )

    async def write_values(self, record: WebhookRecord, id_map: ImportIdMap) -> dict[str, Any]:
        return {
            "name": record.name,
            "url": record.url,
            "description": record.description,
            "events": list(record.events),
            "enabled": record.enabled,
            "method": record.method.value,
            "headers": record.headers,
            "query_params": record.query_params,
            "body_template": record.body_template,
        }

    def summarize(self, entity: Webhook) -> dict[str, Any]:
        summary = super().summarize(entity)
        summary["url"] = entity.url
        summary["enabled"] = entity.enabled
        return summary


class PersonaHandler(EntityHandler):
    entity_type = ExportEntityType.PERSONAS
    record_model = PersonaRecord
    repository_class = PersonaRepository
    label = "persona"

    def to_record(self, entity: Persona, allocator: ExportIdAllocator) -> PersonaRecord:
        return PersonaRecord(
            export_id=allocator.allocate(self.entity_type, entity.id),
            name=entity.name,
            description=entity.description,
            system_prompt=entity.system_prompt,
            is_template=entity.is_template,
        )

    async def write_values(self, record: PersonaRecord, id_map: ImportIdMap) -> dict[str, Any]:
        return {
            "name": record.name,
            "description": record.description,
            "system_prompt": record.system_prompt,
            "is_template": record.is_template,
        }


class EvaluatorHandler(EntityHandler):
    """Evaluators export without their access token reference."""

    entity_type = ExportEntityType.EVALUATORS
    record_model = EvaluatorRecord
    repository_class = EvaluatorRepository
    label = "evaluator"

    def to_record(self, entity: Evaluator, allocator: ExportIdAllocator) -> EvaluatorRecord:
        return EvaluatorRecord(
            export_id=allocator.allocate(self.entity_type, entity.id),
            name=entity.name,
            description=entity.description,
            model=entity.model,
            system_prompt=entity.system_prompt,
            reasoning_model=entity.reasoning_model,
            reasoning_effort=entity.reasoning_effort,
        )

    async def write_values(self, record: EvaluatorRecord, id_map: ImportIdMap) -> dict[str, Any]:
        return {
            "name": record.name,
            "description": record.description,
            "model": record.model,
            "system_prompt": record.system_prompt,
            "reasoning_model": record.reasoning_model,
            "reasoning_effort": record.reasoning_effort,
        }

    def summarize(self, entity: Evaluator) -> dict[str, Any]:
        summary = super().summarize(entity)
        summary["model"] = entity.model
        return summary


class TestHandler(EntityHandler):
    """
    Tests reference almost every other type.

    Tag membership and scenarios are replaced wholesale on overwrite.
    Credential references (access tokens) are neither exported nor set on
    import; the importing user attaches their own.
    """

    __test__ = False

    entity_type = ExportEntityType.TESTS
    record_model = TestRecord
    repository_class = TestRepository
    label = "test"

    def __init__(self, session: AsyncSession, user_id: UUID):
        super().__init__(session, user_id)
        self.tags = TagRepository(session, user_id)

    def to_record(self, entity: Test, allocator: ExportIdAllocator) -> TestRecord:
        scenarios = [
            ScenarioRecord(
                name=scenario.name,
                goal=scenario.goal,
                max_turns=scenario.max_turns,
                order_index=scenario.order_index,
                persona_export_id=export_ref(
                    allocator, ExportEntityType.PERSONAS, scenario.persona_id
                ),
            )
            for scenario in entity.scenarios
        ]

        return TestRecord(
            export_id=allocator.allocate(self.entity_type, entity.id),
            name=entity.name,
            description=entity.description,
            type=entity.type,
            multi_step_evaluation=entity.multi_step_evaluation,
            repeat_count=entity.repeat_count,
            response_variable_key=entity.response_variable_key,
            execution_mode=entity.execution_mode,
            delay_between_turns=entity.delay_between_turns,
            simulated_user_model=entity.simulated_user_model,
            simulated_user_model_config=entity.simulated_user_model_config,
            simulated_user_reasoning_model=entity.simulated_user_reasoning_model,
            simulated_user_reasoning_effort=entity.simulated_user_reasoning_effort,
            flow_config_export_id=export_ref(
                allocator, ExportEntityType.FLOW_CONFIGS, entity.flow_config_id
            ),
            question_set_export_id=export_ref(
                allocator, ExportEntityType.QUESTION_SETS, entity.question_set_id
            ),
            webhook_export_id=export_ref(
                allocator, ExportEntityType.WEBHOOKS, entity.webhook_id
            ),
            evaluator_export_id=export_ref(
                allocator, ExportEntityType.EVALUATORS, entity.evaluator_id
            ),
            tag_export_ids=export_refs(
                allocator, ExportEntityType.TAGS, (tag.id for tag in entity.tags)
            ),
            scenarios=scenarios,
        )

    async def write_values(self, record: TestRecord, id_map: ImportIdMap) -> dict[str, Any]:
        tag_ids = id_map.resolve_many(ExportEntityType.TAGS, record.tag_export_ids)
        tags = await self.tags.list_by_ids(tag_ids)

        scenarios = [
            Scenario(
                name=scenario.name,
                goal=scenario.goal,
                max_turns=scenario.max_turns,
                order_index=scenario.order_index,
                persona_id=id_map.resolve(ExportEntityType.PERSONAS, scenario.persona_export_id),
            )
            for scenario in record.scenarios
        ]

        return {
            "name": record.name,
            "description": record.description,
            "type": record.type.value,
            "multi_step_evaluation": record.multi_step_evaluation,
            "repeat_count": record.repeat_count,
            "response_variable_key": record.response_variable_key,
            "execution_mode": record.execution_mode.value if record.execution_mode else None,
            "delay_between_turns": record.delay_between_turns,
            "simulated_user_model": record.simulated_user_model,
            "simulated_user_model_config": record.simulated_user_model_config,
            "simulated_user_reasoning_model": record.simulated_user_reasoning_model,
            "simulated_user_reasoning_effort": record.simulated_user_reasoning_effort,
            "flow_config_id": id_map.resolve(
                ExportEntityType.FLOW_CONFIGS, record.flow_config_export_id
            ),
            "question_set_id": id_map.resolve(
                ExportEntityType.QUESTION_SETS, record.question_set_export_id
            ),
            "webhook_id": id_map.resolve(ExportEntityType.WEBHOOKS, record.webhook_export_id),
            "evaluator_id": id_map.resolve(
                ExportEntityType.EVALUATORS, record.evaluator_export_id
            ),
            "tags": tags,
            "scenarios": scenarios,
        }

    def references(self, record: TestRecord) -> References:
        refs: References = []
        for entity_type, export_id in (
            (ExportEntityType.FLOW_CONFIGS, record.flow_config_export_id),
            (ExportEntityType.QUESTION_SETS, record.question_set_export_id),
            (ExportEntityType.WEBHOOKS, record.webhook_export_id),
            (ExportEntityType.EVALUATORS, record.evaluator_export_id),
        ):
            if export_id:
                refs.append((entity_type, export_id))
        for export_id in record.tag_export_ids or []:
            refs.append((ExportEntityType.TAGS, export_id))
        for scenario in record.scenarios:
            if scenario.persona_export_id:
                refs.append((ExportEntityType.PERSONAS, scenario.persona_export_id))
        return refs

    def summarize(self, entity: Test) -> dict[str, Any]:
        summary = super().summarize(entity)
        summary["type"] = entity.type
        summary["tags"] = [tag.name for tag in entity.tags]
        return summary


class RunHandler(EntityHandler):
    """
    Runs have no natural key and are always created.

    Each imported result gets a fresh id; the original creation time is kept.
    Conversations of conversation runs travel with the run and are relinked
    to the imported test's scenarios by scenario name.
    """

    entity_type = ExportEntityType.RUNS
    record_model = RunRecord
    repository_class = RunRepository
    label = "run"

    def __init__(self, session: AsyncSession, user_id: UUID):
        super().__init__(session, user_id)
        self.tests = TestRepository(session, user_id)

    def to_record(self, entity: Run, allocator: ExportIdAllocator) -> RunRecord:
        conversation_fields: dict[str, Any] = {}
        if entity.total_scenarios:
            conversation_fields = {
                "total_scenarios": entity.total_scenarios,
                "completed_scenarios": entity.completed_scenarios or 0,
                # Already ordered by started_at
                "conversations": [
                    _conversation_record(conversation) for conversation in entity.conversations
                ] or None,
            }

        return RunRecord(
            export_id=allocator.allocate(self.entity_type, entity.id),
            test_name=entity.test.name if entity.test is not None else None,
            test_export_id=export_ref(allocator, ExportEntityType.TESTS, entity.test_id),
            question_set_export_id=export_ref(
                allocator, ExportEntityType.QUESTION_SETS, entity.question_set_id
            ),
            status=entity.status,
            results=[RunResultRecord.model_validate(r) for r in entity.results or []],
            error_message=entity.error_message,
            total_questions=entity.total_questions,
            completed_questions=entity.completed_questions,
            is_fully_evaluated=entity.is_fully_evaluated,
            started_at=entity.started_at,
            completed_at=entity.completed_at,
            evaluated_at=entity.evaluated_at,
            created_at=entity.created_at,
            **conversation_fields,
        )

    async def write_values(self, record: RunRecord, id_map: ImportIdMap) -> dict[str, Any]:
        test_id = id_map.resolve(ExportEntityType.TESTS, record.test_export_id)
        values: dict[str, Any] = {
            "test_id": test_id,
            "question_set_id": id_map.resolve(
                ExportEntityType.QUESTION_SETS, record.question_set_export_id
            ),
            "status": record.status.value,
            "results": [
                {"id": str(uuid4()), **result.to_document()} for result in record.results
            ],
            "error_message": record.error_message,
            "total_questions": record.total_questions,
            "completed_questions": record.completed_questions,
            "is_fully_evaluated": record.is_fully_evaluated,
            "started_at": record.started_at,
            "completed_at": record.completed_at,
            "evaluated_at": record.evaluated_at,
            "total_scenarios": record.total_scenarios,
            "completed_scenarios": record.completed_scenarios,
            "conversations": await self._conversations(record, test_id),
        }
        if record.created_at is not None:
            values["created_at"] = record.created_at
        return values

    async def _conversations(
        self, record: RunRecord, test_id: UUID | None
    ) -> list[Conversation]:
        if not record.conversations:
            return []

        # First scenario wins when a test repeats a scenario name
        scenarios: dict[str, Scenario] = {}
        test = await self.tests.get_owned(test_id) if test_id is not None else None
        if test is not None:
            for scenario in test.scenarios:
                scenarios.setdefault(scenario.name, scenario)

        return [
            Conversation(
                scenario=(
                    scenarios.get(conversation.scenario_name)
                    if conversation.scenario_name
                    else None
                ),
                status=conversation.status.value,
                goal_achieved=conversation.goal_achieved,
                total_turns=conversation.total_turns,
                turns=list(conversation.turns),
                summary=conversation.summary,
                end_reason=conversation.end_reason,
                human_evaluation=(
                    conversation.human_evaluation.value
                    if conversation.human_evaluation
                    else None
                ),
                human_evaluation_notes=conversation.human_evaluation_notes,
                started_at=conversation.started_at,
                completed_at=conversation.completed_at,
            )
            for conversation in record.conversations
        ]

    def references(self, record: RunRecord) -> References:
        refs: References = []
        if record.test_export_id:
            refs.append((ExportEntityType.TESTS, record.test_export_id))
        if record.question_set_export_id:
            refs.append((ExportEntityType.QUESTION_SETS, record.question_set_export_id))
        return refs

    def display_name(self, record: RunRecord) -> str:
        return record.test_name or record.export_id

    def summarize(self, entity: Run) -> dict[str, Any]:
        return {"id": str(entity.id), "status": entity.status}


def _conversation_record(conversation: Conversation) -> ConversationRecord:
    return ConversationRecord(
        scenario_name=conversation.scenario.name if conversation.scenario is not None else None,
        status=conversation.status,
        goal_achieved=conversation.goal_achieved,
        total_turns=conversation.total_turns,
        turns=list(conversation.turns or []),
        summary=conversation.summary,
        end_reason=conversation.end_reason,
        human_evaluation=conversation.human_evaluation,
        human_evaluation_notes=conversation.human_evaluation_notes,
        started_at=conversation.started_at,
        completed_at=conversation.completed_at,
    )


# Dependency order: every handler only references types listed before it.
HANDLER_CLASSES: tuple[type[EntityHandler], ...] = (
    FlowConfigHandler,
    QuestionSetHandler,
    TagHandler,
    WebhookHandler,
    PersonaHandler,
    EvaluatorHandler,
    TestHandler,
    RunHandler,
)


def build_handlers(session: AsyncSession, user_id: UUID) -> dict[ExportEntityType, EntityHandler]:
    """Instantiate every handler for one owner, keyed by type, in dependency order."""
    return {cls.entity_type: cls(session, user_id) for cls in HANDLER_CLASSES}
