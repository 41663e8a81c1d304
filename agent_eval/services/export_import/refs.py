"""
Reference remapping between storage ids and export ids.

Export direction goes through the ExportIdAllocator: a reference is kept
only if the referenced entity is in the same bundle. Import direction goes
through ImportIdMap, filled in as records are processed in dependency
order. A reference that cannot be resolved in either direction is dropped,
never raised.
"""

import logging
from typing import Iterable
from uuid import UUID

from agent_eval.models.enums import ExportEntityType
from agent_eval.services.export_import.ids import ExportIdAllocator

logger = logging.getLogger(__name__)


def export_ref(
    allocator: ExportIdAllocator,
    entity_type: ExportEntityType,
    storage_id: UUID | None,
) -> str | None:
    """Export id for a single storage reference, or None to omit the field."""
    return allocator.lookup(entity_type, storage_id)


def export_refs(
    allocator: ExportIdAllocator,
    entity_type: ExportEntityType,
    storage_ids: Iterable[UUID],
) -> list[str] | None:
    """Export ids for a list reference; None (omit) when nothing resolves."""
    resolved = [
        export_id
        for export_id in (allocator.lookup(entity_type, sid) for sid in storage_ids)
        if export_id is not None
    ]
    return resolved or None


class ImportIdMap:
    """
    Accumulates export id -> new storage id bindings during one import.

    Bindings are kept per entity type so a test's flowConfigExportId can
    only ever resolve to a flow config.
    """

    def __init__(self) -> None:
        self._bindings: dict[ExportEntityType, dict[str, UUID]] = {}

    def bind(self, entity_type: ExportEntityType, export_id: str, storage_id: UUID) -> None:
        self._bindings.setdefault(entity_type, {})[export_id] = storage_id

    def resolve(self, entity_type: ExportEntityType, export_id: str | None) -> UUID | None:
        if export_id is None:
            return None

        storage_id = self._bindings.get(entity_type, {}).get(export_id)
        if storage_id is None:
            logger.debug(f"Unresolved {entity_type.value} reference {export_id}, leaving unset")
        return storage_id

    def resolve_many(
        self, entity_type: ExportEntityType, export_ids: Iterable[str] | None
    ) -> list[UUID]:
        """Resolve a list reference, dropping members that do not resolve."""
        if not export_ids:
            return []
        resolved = (self.resolve(entity_type, export_id) for export_id in export_ids)
        return [storage_id for storage_id in resolved if storage_id is not None]

    def __len__(self) -> int:
        return sum(len(bindings) for bindings in self._bindings.values())
