"""Tests for ImportExecutor: strategies, ordering, reference resolution and error isolation."""

from unittest.mock import patch

import pytest
from sqlalchemy import func, select

from agent_eval.core.exceptions import BundleShapeError
from agent_eval.models.enums import ConflictStrategy, ExportEntityType
from agent_eval.models.orm import FlowConfig, QuestionSet, Run, Tag, Test, Webhook
from agent_eval.services.export_import import (
    BundleSerializer,
    ImportExecutor,
    ImportIdMap,
    validate_bundle,
)
from agent_eval.services.export_import.handlers import FlowConfigHandler
from agent_eval.repositories import TestRepository

from tests.fixtures.entities import seed_catalog, seed_conversation_run


def _bundle(**entities):
    return validate_bundle({"metadata": {"version": "1.0.0"}, **entities})


async def _count(session, model, user_id) -> int:
    return await session.scalar(
        select(func.count()).select_from(model).where(model.user_id == user_id)
    )


async def _names(session, model, user_id) -> list[str]:
    result = await session.execute(
        select(model.name).where(model.user_id == user_id).order_by(model.name)
    )
    return list(result.scalars().all())


async def _export_all(session, user_id):
    return await BundleSerializer(session, user_id).export(list(ExportEntityType))


class TestCreate:
    async def test_empty_bundle_yields_zero_counts(self, db_session, owner):
        result = await ImportExecutor(db_session, owner.id).execute(_bundle(), ConflictStrategy.SKIP)

        assert result.errors == []
        for counts in (result.created, result.skipped, result.overwritten, result.renamed):
            assert set(counts) == {t.value for t in ExportEntityType}
            assert all(value == 0 for value in counts.values())

    async def test_round_trip_into_fresh_owner(self, db_session, owner, other_owner):
        catalog = await seed_catalog(db_session, owner.id)
        bundle = await _export_all(db_session, owner.id)

        result = await ImportExecutor(db_session, other_owner.id).execute(
            bundle, ConflictStrategy.SKIP
        )
        await db_session.commit()

        assert result.errors == []
        assert result.created == {
            "flowConfigs": 1,
            "questionSets": 1,
            "tags": 2,
            "webhooks": 1,
            "personas": 1,
            "evaluators": 1,
            "tests": 2,
            "runs": 1,
        }
        assert all(value == 0 for value in result.skipped.values())

        imported = await TestRepository(db_session, other_owner.id).get_by_name(catalog.test.name)
        assert imported.id != catalog.test.id
        assert imported.user_id == other_owner.id

        flow_config = await db_session.get(FlowConfig, imported.flow_config_id)
        question_set = await db_session.get(QuestionSet, imported.question_set_id)
        webhook = await db_session.get(Webhook, imported.webhook_id)
        assert flow_config.name == catalog.flow_config.name
        assert flow_config.user_id == other_owner.id
        assert question_set.questions == catalog.question_set.questions
        assert webhook.user_id == other_owner.id
        assert sorted(tag.name for tag in imported.tags) == ["regression", "smoke"]
        assert all(tag.user_id == other_owner.id for tag in imported.tags)

    async def test_secrets_and_credentials_are_not_carried_over(self, db_session, owner, other_owner):
        catalog = await seed_catalog(db_session, owner.id)
        bundle = await _export_all(db_session, owner.id)

        await ImportExecutor(db_session, other_owner.id).execute(bundle, ConflictStrategy.SKIP)

        webhook = (await db_session.execute(
            select(Webhook).where(Webhook.user_id == other_owner.id)
        )).scalar_one()
        imported = await TestRepository(db_session, other_owner.id).get_by_name(catalog.test.name)
        assert webhook.secret is None
        assert imported.access_token_id is None

    async def test_scenarios_resolve_personas(self, db_session, owner, other_owner):
        catalog = await seed_catalog(db_session, owner.id)
        bundle = await _export_all(db_session, owner.id)

        await ImportExecutor(db_session, other_owner.id).execute(bundle, ConflictStrategy.SKIP)

        imported = await TestRepository(db_session, other_owner.id).get_by_name(
            catalog.conversation_test.name
        )
        first, second = imported.scenarios
        assert first.name == "Angry refund"
        assert first.persona_id is not None
        assert first.persona_id != catalog.persona.id
        assert second.persona_id is None
        assert second.max_turns == 5

    async def test_runs_link_to_imported_test_with_fresh_result_ids(
        self, db_session, owner, other_owner
    ):
        catalog = await seed_catalog(db_session, owner.id)
        bundle = await _export_all(db_session, owner.id)

        await ImportExecutor(db_session, other_owner.id).execute(bundle, ConflictStrategy.SKIP)

        run = (await db_session.execute(
            select(Run).where(Run.user_id == other_owner.id)
        )).scalar_one()
        imported_test = await TestRepository(db_session, other_owner.id).get_by_name(
            catalog.test.name
        )
        assert run.test_id == imported_test.id
        assert run.status == "completed"
        assert run.results[0]["question"] == "How do I get a refund?"
        assert run.results[0]["id"] != "result-1"

    async def test_identical_runs_are_always_created(self, db_session, owner):
        await seed_catalog(db_session, owner.id)
        bundle = await BundleSerializer(db_session, owner.id).export([ExportEntityType.RUNS])
        bundle.runs = [bundle.runs[0], bundle.runs[0].model_copy(update={"export_id": "exp_copy"})]

        result = await ImportExecutor(db_session, owner.id).execute(bundle, ConflictStrategy.SKIP)

        assert result.created["runs"] == 2
        assert await _count(db_session, Run, owner.id) == 3

    async def test_dangling_references_are_nulled(self, db_session, owner):
        bundle = _bundle(tests=[{
            "exportId": "exp_t",
            "name": "Orphan",
            "flowConfigExportId": "exp_nowhere",
            "tagExportIds": ["exp_nowhere_tag"],
            "scenarios": [{"name": "S", "goal": "G", "personaExportId": "exp_nobody"}],
        }])

        result = await ImportExecutor(db_session, owner.id).execute(bundle, ConflictStrategy.SKIP)

        assert result.errors == []
        assert result.created["tests"] == 1
        test = await TestRepository(db_session, owner.id).get_by_name("Orphan")
        assert test.flow_config_id is None
        assert test.tags == []
        assert test.scenarios[0].persona_id is None

    async def test_preseeded_id_map_resolves_existing_entities(self, db_session, owner):
        flow_config = FlowConfig(user_id=owner.id, name="Existing", flow_id="f0")
        db_session.add(flow_config)
        await db_session.flush()
        id_map = ImportIdMap()
        id_map.bind(ExportEntityType.FLOW_CONFIGS, "exp_known", flow_config.id)

        await ImportExecutor(db_session, owner.id).execute(
            _bundle(tests=[{"exportId": "exp_t", "name": "T", "flowConfigExportId": "exp_known"}]),
            ConflictStrategy.SKIP,
            id_map=id_map,
        )

        test = await TestRepository(db_session, owner.id).get_by_name("T")
        assert test.flow_config_id == flow_config.id
        assert id_map.resolve(ExportEntityType.TESTS, "exp_t") == test.id


class TestConflictStrategies:
    async def test_skip_is_idempotent(self, db_session, owner, other_owner):
        await seed_catalog(db_session, owner.id)
        bundle = await _export_all(db_session, owner.id)
        executor = ImportExecutor(db_session, other_owner.id)

        first = await executor.execute(bundle, ConflictStrategy.SKIP)
        tests_before = await _count(db_session, Test, other_owner.id)
        second = await executor.execute(bundle, ConflictStrategy.SKIP)

        for entity_type in ExportEntityType:
            if entity_type is ExportEntityType.RUNS:
                continue
            assert second.created[entity_type.value] == 0
            assert second.skipped[entity_type.value] == first.created[entity_type.value]
        assert await _count(db_session, Test, other_owner.id) == tests_before
        assert await _count(db_session, Tag, other_owner.id) == 2

    async def test_skip_maps_references_to_existing_entity(self, db_session, owner):
        existing = FlowConfig(user_id=owner.id, name="Config A", flow_id="old")
        db_session.add(existing)
        await db_session.commit()

        result = await ImportExecutor(db_session, owner.id).execute(
            _bundle(
                flowConfigs=[{"exportId": "exp_fc", "name": "Config A", "flowId": "new"}],
                tests=[{"exportId": "exp_t", "name": "Uses A", "flowConfigExportId": "exp_fc"}],
            ),
            ConflictStrategy.SKIP,
        )

        assert result.skipped["flowConfigs"] == 1
        assert existing.flow_id == "old"
        test = await TestRepository(db_session, owner.id).get_by_name("Uses A")
        assert test.flow_config_id == existing.id

    async def test_overwrite_updates_in_place(self, db_session, owner):
        existing = FlowConfig(user_id=owner.id, name="Config A", flow_id="old", description="keep?")
        db_session.add(existing)
        await db_session.commit()

        result = await ImportExecutor(db_session, owner.id).execute(
            _bundle(flowConfigs=[{"exportId": "exp_fc", "name": "Config A", "flowId": "new"}]),
            ConflictStrategy.OVERWRITE,
        )
        await db_session.commit()

        assert result.overwritten["flowConfigs"] == 1
        assert await _names(db_session, FlowConfig, owner.id) == ["Config A"]
        refreshed = await db_session.get(FlowConfig, existing.id)
        assert refreshed.flow_id == "new"
        # Every exported field is replaced, including ones absent from the record
        assert refreshed.description is None

    async def test_overwrite_replaces_tags_and_scenarios(self, db_session, owner):
        await seed_catalog(db_session, owner.id)
        bundle = _bundle(
            tags=[{"exportId": "exp_nightly", "name": "nightly"}],
            tests=[{
                "exportId": "exp_t",
                "name": "Refund conversation",
                "type": "conversation",
                "tagExportIds": ["exp_nightly"],
                "scenarios": [{"name": "Only one", "goal": "Be brief", "maxTurns": 3}],
            }],
        )

        result = await ImportExecutor(db_session, owner.id).execute(
            bundle, ConflictStrategy.OVERWRITE
        )

        assert result.errors == []
        assert result.overwritten["tests"] == 1
        test = await TestRepository(db_session, owner.id).get_by_name("Refund conversation")
        assert [tag.name for tag in test.tags] == ["nightly"]
        assert [s.name for s in test.scenarios] == ["Only one"]
        # Unresolved references are nulled on overwrite too
        assert test.flow_config_id is None

    async def test_overwrite_keeps_webhook_secret(self, db_session, owner):
        catalog = await seed_catalog(db_session, owner.id)
        secret = catalog.webhook.secret

        await ImportExecutor(db_session, owner.id).execute(
            _bundle(webhooks=[{
                "exportId": "exp_w",
                "name": catalog.webhook.name,
                "url": "https://hooks.example.com/v2",
            }]),
            ConflictStrategy.OVERWRITE,
        )

        assert catalog.webhook.url == "https://hooks.example.com/v2"
        assert catalog.webhook.secret == secret

    async def test_rename_creates_suffixed_copy(self, db_session, owner):
        existing = FlowConfig(user_id=owner.id, name="Config A", flow_id="old")
        db_session.add(existing)
        await db_session.commit()
        bundle = _bundle(flowConfigs=[{"exportId": "exp_fc", "name": "Config A", "flowId": "new"}])
        executor = ImportExecutor(db_session, owner.id)

        first = await executor.execute(bundle, ConflictStrategy.RENAME)
        second = await executor.execute(bundle, ConflictStrategy.RENAME)

        assert first.renamed["flowConfigs"] == 1
        assert second.renamed["flowConfigs"] == 1
        assert await _names(db_session, FlowConfig, owner.id) == [
            "Config A",
            "Config A (imported 2)",
            "Config A (imported)",
        ]
        assert existing.flow_id == "old"
        copy = (await db_session.execute(
            select(FlowConfig).where(FlowConfig.name == "Config A (imported)")
        )).scalar_one()
        assert copy.flow_id == "new"

    async def test_rename_points_dependents_at_the_copy(self, db_session, owner):
        db_session.add(FlowConfig(user_id=owner.id, name="Config A", flow_id="old"))
        await db_session.commit()

        await ImportExecutor(db_session, owner.id).execute(
            _bundle(
                flowConfigs=[{"exportId": "exp_fc", "name": "Config A", "flowId": "new"}],
                tests=[{"exportId": "exp_t", "name": "Uses A", "flowConfigExportId": "exp_fc"}],
            ),
            ConflictStrategy.RENAME,
        )

        test = await TestRepository(db_session, owner.id).get_by_name("Uses A")
        flow_config = await db_session.get(FlowConfig, test.flow_config_id)
        assert flow_config.name == "Config A (imported)"

    async def test_duplicate_names_within_bundle(self, db_session, owner):
        bundle = _bundle(tags=[
            {"exportId": "exp_1", "name": "dup"},
            {"exportId": "exp_2", "name": "dup"},
        ])

        result = await ImportExecutor(db_session, owner.id).execute(bundle, ConflictStrategy.SKIP)

        assert result.created["tags"] == 1
        assert result.skipped["tags"] == 1


class TestRecordErrors:
    async def test_failing_record_does_not_abort_import(self, db_session, owner):
        original = FlowConfigHandler.write_values

        async def flaky_write_values(self, record, id_map):
            if record.name == "Broken":
                raise ValueError("flow endpoint unreachable")
            return await original(self, record, id_map)

        bundle = _bundle(
            flowConfigs=[
                {"exportId": "exp_ok", "name": "Working", "flowId": "f1"},
                {"exportId": "exp_bad", "name": "Broken", "flowId": "f2"},
            ],
            tests=[
                {"exportId": "exp_t1", "name": "On working", "flowConfigExportId": "exp_ok"},
                {"exportId": "exp_t2", "name": "On broken", "flowConfigExportId": "exp_bad"},
            ],
        )

        with patch.object(FlowConfigHandler, "write_values", flaky_write_values):
            result = await ImportExecutor(db_session, owner.id).execute(
                bundle, ConflictStrategy.SKIP
            )

        assert result.errors == [
            'Failed to import flow config "Broken": flow endpoint unreachable'
        ]
        assert result.created["flowConfigs"] == 1
        assert result.created["tests"] == 2
        assert await _names(db_session, FlowConfig, owner.id) == ["Working"]
        orphan = await TestRepository(db_session, owner.id).get_by_name("On broken")
        assert orphan.flow_config_id is None

    async def test_database_failure_rolls_back_only_that_record(self, db_session, owner):
        bundle = _bundle(flowConfigs=[
            {"exportId": "exp_1", "name": "First", "flowId": "f1"},
            {"exportId": "exp_2", "name": "Second", "flowId": "f2"},
            {"exportId": "exp_3", "name": "Third", "flowId": "f3"},
        ])
        original_create = FlowConfigHandler.create

        async def create_then_fail(self, values):
            entity = await original_create(self, values)
            if values["name"] == "Second":
                raise RuntimeError("disk full")
            return entity

        with patch.object(FlowConfigHandler, "create", create_then_fail):
            result = await ImportExecutor(db_session, owner.id).execute(
                bundle, ConflictStrategy.SKIP
            )
        await db_session.commit()

        assert result.created["flowConfigs"] == 2
        assert len(result.errors) == 1
        assert await _names(db_session, FlowConfig, owner.id) == ["First", "Third"]

    @pytest.mark.parametrize("strategy", list(ConflictStrategy))
    async def test_error_counts_in_no_bucket(self, db_session, owner, strategy):
        async def boom(self, record, id_map):
            raise RuntimeError("boom")

        with patch.object(FlowConfigHandler, "write_values", boom):
            result = await ImportExecutor(db_session, owner.id).execute(
                _bundle(flowConfigs=[{"exportId": "exp_1", "name": "X", "flowId": "f"}]),
                strategy,
            )

        assert len(result.errors) == 1
        for counts in (result.created, result.skipped, result.overwritten, result.renamed):
            assert counts["flowConfigs"] == 0


class TestConversationRuns:
    async def test_round_trip_relinks_conversations_to_imported_scenarios(
        self, db_session, async_session_factory, owner, other_owner
    ):
        catalog = await seed_catalog(db_session, owner.id)
        await seed_conversation_run(db_session, catalog)
        async with async_session_factory() as session:
            bundle = await _export_all(session, owner.id)

        result = await ImportExecutor(db_session, other_owner.id).execute(
            bundle, ConflictStrategy.SKIP
        )

        assert result.errors == []
        assert result.created["runs"] == 2
        run = (await db_session.execute(
            select(Run).where(Run.user_id == other_owner.id, Run.total_scenarios.is_not(None))
        )).scalar_one()
        imported_test = await TestRepository(db_session, other_owner.id).get_by_name(
            catalog.conversation_test.name
        )
        assert run.test_id == imported_test.id
        assert run.total_scenarios == 2
        assert run.completed_scenarios == 2

        angry, no_persona, orphan = run.conversations
        assert angry.scenario in imported_test.scenarios
        assert angry.scenario.name == "Angry refund"
        assert no_persona.scenario.name == "No persona"
        assert orphan.scenario is None
        assert angry.status == "goal_achieved"
        assert angry.human_evaluation == "good"
        assert angry.summary == "Refund granted"
        assert len(angry.turns) == 2
        assert no_persona.end_reason == "Turn limit"
        assert orphan.status == "error"

    async def test_unknown_scenario_names_leave_conversation_unlinked(self, db_session, owner):
        bundle = _bundle(
            tests=[{
                "exportId": "exp_t",
                "name": "Chat",
                "type": "conversation",
                "scenarios": [{"name": "Known", "goal": "G"}],
            }],
            runs=[
                {
                    "exportId": "exp_r1",
                    "testExportId": "exp_t",
                    "status": "completed",
                    "totalScenarios": 2,
                    "completedScenarios": 2,
                    "conversations": [
                        {"scenarioName": "Known", "status": "completed"},
                        {"scenarioName": "Renamed since", "status": "error"},
                    ],
                },
                {
                    "exportId": "exp_r2",
                    "testExportId": "exp_elsewhere",
                    "totalScenarios": 1,
                    "conversations": [{"scenarioName": "Known", "status": "completed"}],
                },
            ],
        )

        result = await ImportExecutor(db_session, owner.id).execute(bundle, ConflictStrategy.SKIP)

        assert result.errors == []
        runs = (await db_session.execute(
            select(Run).where(Run.user_id == owner.id).order_by(Run.total_scenarios.desc())
        )).scalars().all()
        linked, unlinked = runs[0].conversations
        assert linked.scenario.name == "Known"
        assert unlinked.scenario is None
        assert runs[1].test_id is None
        assert runs[1].conversations[0].scenario is None

    async def test_unknown_conversation_status_is_rejected(self):
        with pytest.raises(BundleShapeError):
            _bundle(runs=[{
                "exportId": "exp_r",
                "totalScenarios": 1,
                "conversations": [{"status": "paused"}],
            }])
