"""
Conflict detection and import preview.

Read-only: nothing here calls a mutating repository method, so preview
can be repeated any number of times without changing state.
"""

import logging
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from agent_eval.models.contracts.export_import import (
    ExportBundle,
    ExportRecord,
    ImportConflict,
    ImportPreviewResult,
)
from agent_eval.models.enums import ExportEntityType
from agent_eval.services.export_import.handlers import EntityHandler, build_handlers

logger = logging.getLogger(__name__)


@dataclass
class DetectionResult:
    to_create: list[ExportRecord] = field(default_factory=list)
    conflicts: list[ImportConflict] = field(default_factory=list)


def build_conflict(handler: EntityHandler, record: ExportRecord, existing: object) -> ImportConflict:
    return ImportConflict(
        type=handler.entity_type,
        export_id=record.export_id,
        name=handler.display_name(record),
        existing_id=str(existing.id),  # type: ignore[attr-defined]
        incoming=record.to_document(),
        existing=handler.summarize(existing),
    )


def find_dangling_references(
    bundle: ExportBundle, handlers: dict[ExportEntityType, EntityHandler]
) -> list[str]:
    """
    Describe every reference to an export id the bundle does not contain.

    Such references are legal (they are nulled on import) but worth
    surfacing before the user commits.
    """
    present: dict[ExportEntityType, set[str]] = {
        entity_type: {record.export_id for record in bundle.get_records(entity_type) or []}
        for entity_type in handlers
    }

    warnings: list[str] = []
    for entity_type, handler in handlers.items():
        for record in bundle.get_records(entity_type) or []:
            for ref_type, export_id in handler.references(record):
                if export_id not in present[ref_type]:
                    warnings.append(
                        f'{handler.label.capitalize()} "{handler.display_name(record)}" '
                        f'references {handlers[ref_type].label} "{export_id}" '
                        f"which is not in the bundle"
                    )
    return warnings


class ConflictDetector:
    """Classifies incoming records as new or conflicting for one owner."""

    def __init__(self, session: AsyncSession, user_id: UUID):
        self.user_id = user_id
        self.handlers = build_handlers(session, user_id)

    async def detect(
        self, entity_type: ExportEntityType, records: list[ExportRecord]
    ) -> DetectionResult:
        """
        Split records of one type into to-create and conflicts.

        Types without a natural key (runs) never conflict.
        """
        handler = self.handlers[entity_type]
        result = DetectionResult()

        for record in records:
            existing = await handler.find_existing(record)
            if existing is None:
                result.to_create.append(record)
            else:
                result.conflicts.append(build_conflict(handler, record, existing))

        return result

    async def preview(self, bundle: ExportBundle) -> ImportPreviewResult:
        """Run detection for every type present in an already validated bundle."""
        result = ImportPreviewResult()

        for entity_type in self.handlers:
            records = bundle.get_records(entity_type)
            if records is None:
                continue
            detection = await self.detect(entity_type, records)
            result.to_create[entity_type.value] = len(detection.to_create)
            result.conflicts.extend(detection.conflicts)

        result.warnings = find_dangling_references(bundle, self.handlers)
        logger.info(
            f"Import preview for user {self.user_id}: "
            f"to_create={sum(result.to_create.values())} "
            f"conflicts={len(result.conflicts)} warnings={len(result.warnings)}"
        )
        return result
