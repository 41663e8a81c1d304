"""
Bundle serializer.

Builds an ExportBundle from the requesting owner's entities. Types are
serialized in dependency order so a record's references can only point
at records already placed in the bundle; anything outside the bundle is
omitted rather than leaked as a storage id.
"""

import logging
from typing import Iterable, Mapping
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from agent_eval.models.contracts.export_import import ExportBundle, ExportMetadata
from agent_eval.models.enums import ExportEntityType
from agent_eval.services.export_import.handlers import build_handlers
from agent_eval.services.export_import.ids import ExportIdAllocator

logger = logging.getLogger(__name__)


class BundleSerializer:
    """Serializes one owner's entities into a portable bundle."""

    def __init__(self, session: AsyncSession, user_id: UUID, exported_by: str | None = None):
        self.user_id = user_id
        self.exported_by = exported_by
        self.handlers = build_handlers(session, user_id)

    async def export(
        self,
        types: Iterable[ExportEntityType],
        ids: Mapping[ExportEntityType, list[UUID]] | None = None,
    ) -> ExportBundle:
        """
        Export the requested entity types.

        Args:
            types: Entity types to include; each becomes a bundle key even
                when nothing matches
            ids: Optional per-type storage id filters. Ids the owner does
                not own are silently dropped.

        Returns:
            The assembled bundle
        """
        requested = set(types)
        ids = ids or {}
        allocator = ExportIdAllocator()
        bundle = ExportBundle(metadata=ExportMetadata(exported_by=self.exported_by))

        for entity_type, handler in self.handlers.items():
            if entity_type not in requested:
                continue

            entities = await handler.list_for_export(ids.get(entity_type))
            bundle.set_records(
                entity_type, [handler.to_record(entity, allocator) for entity in entities]
            )

        logger.info(
            f"Exported {len(allocator)} records "
            f"({', '.join(t.value for t in self.handlers if t in requested)}) "
            f"for user {self.user_id}"
        )
        return bundle
