"""
Import executor.

Applies a validated bundle to one owner's account. Types are processed in
dependency order and records sequentially, so every reference a record
can resolve is already bound in the ImportIdMap when the record is
reached. Each record runs inside its own savepoint: a failing record is
rolled back alone, reported in ImportResult.errors, and the import moves
on. The caller commits once at the end.
"""

import logging
from enum import Enum
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from agent_eval.models.contracts.export_import import (
    ExportBundle,
    ExportRecord,
    ImportResult,
)
from agent_eval.models.enums import ConflictStrategy
from agent_eval.services.export_import.handlers import EntityHandler, build_handlers
from agent_eval.services.export_import.refs import ImportIdMap

logger = logging.getLogger(__name__)


class RecordOutcome(str, Enum):
    """Terminal state of one record."""
    CREATED = "created"
    SKIPPED = "skipped"
    OVERWRITTEN = "overwritten"
    RENAMED = "renamed"
    ERRORED = "errored"


class ImportExecutor:
    """Imports bundles into one owner's account."""

    def __init__(self, session: AsyncSession, user_id: UUID):
        self.session = session
        self.user_id = user_id
        self.handlers = build_handlers(session, user_id)

    async def execute(
        self,
        bundle: ExportBundle,
        conflict_strategy: ConflictStrategy,
        id_map: ImportIdMap | None = None,
    ) -> ImportResult:
        """
        Import every record in the bundle.

        Args:
            bundle: Validated bundle
            conflict_strategy: Applied to every natural-key collision
            id_map: Pre-seeded export id bindings (a fresh map by default)

        Returns:
            Per-type counts and per-record error messages
        """
        id_map = id_map if id_map is not None else ImportIdMap()
        result = ImportResult()

        for entity_type, handler in self.handlers.items():
            records = bundle.get_records(entity_type)
            if not records:
                continue

            for record in records:
                outcome = await self._import_record(
                    handler, record, conflict_strategy, id_map, result.errors
                )
                if outcome is not RecordOutcome.ERRORED:
                    counts: dict[str, int] = getattr(result, outcome.value)
                    counts[entity_type.value] += 1

        logger.info(
            f"Import for user {self.user_id} ({conflict_strategy.value}): "
            f"created={sum(result.created.values())} "
            f"skipped={sum(result.skipped.values())} "
            f"overwritten={sum(result.overwritten.values())} "
            f"renamed={sum(result.renamed.values())} "
            f"errors={len(result.errors)}"
        )
        return result

    async def _import_record(
        self,
        handler: EntityHandler,
        record: ExportRecord,
        strategy: ConflictStrategy,
        id_map: ImportIdMap,
        errors: list[str],
    ) -> RecordOutcome:
        try:
            async with self.session.begin_nested():
                outcome, storage_id = await self._apply(handler, record, strategy, id_map)
        except Exception as e:
            message = f'Failed to import {handler.label} "{handler.display_name(record)}": {e}'
            logger.warning(message)
            errors.append(message)
            return RecordOutcome.ERRORED

        id_map.bind(handler.entity_type, record.export_id, storage_id)
        return outcome

    async def _apply(
        self,
        handler: EntityHandler,
        record: ExportRecord,
        strategy: ConflictStrategy,
        id_map: ImportIdMap,
    ) -> tuple[RecordOutcome, UUID]:
        values = await handler.write_values(record, id_map)
        existing = await handler.find_existing(record)

        if existing is None:
            entity = await handler.create(values)
            return RecordOutcome.CREATED, entity.id

        if strategy is ConflictStrategy.SKIP:
            return RecordOutcome.SKIPPED, existing.id

        if strategy is ConflictStrategy.OVERWRITE:
            await handler.overwrite(existing, values)
            return RecordOutcome.OVERWRITTEN, existing.id

        values["name"] = await handler.unique_name(record.name)  # type: ignore[attr-defined]
        entity = await handler.create(values)
        return RecordOutcome.RENAMED, entity.id
