"""
Export id allocation.

Every record placed in a bundle gets a synthetic id of the form
``exp_<32 hex>``. The prefix keeps export ids out of the storage id space:
a UUID string can never start with ``exp_``.
"""

from uuid import UUID, uuid4

from agent_eval.models.enums import ExportEntityType

EXPORT_ID_PREFIX = "exp_"


def new_export_id() -> str:
    return f"{EXPORT_ID_PREFIX}{uuid4().hex}"


def is_export_id(value: str) -> bool:
    return value.startswith(EXPORT_ID_PREFIX) and len(value) == len(EXPORT_ID_PREFIX) + 32


class ExportIdAllocator:
    """
    Hands out bundle-unique export ids and remembers which entity got which.

    One allocator lives for exactly one export call. Allocating twice for
    the same entity returns the id it already has.
    """

    def __init__(self) -> None:
        self._by_entity: dict[tuple[ExportEntityType, UUID], str] = {}
        self._issued: set[str] = set()

    def allocate(self, entity_type: ExportEntityType, storage_id: UUID) -> str:
        key = (entity_type, storage_id)
        existing = self._by_entity.get(key)
        if existing is not None:
            return existing

        export_id = new_export_id()
        while export_id in self._issued:
            export_id = new_export_id()

        self._issued.add(export_id)
        self._by_entity[key] = export_id
        return export_id

    def lookup(self, entity_type: ExportEntityType, storage_id: UUID | None) -> str | None:
        """Export id of an entity already in the bundle, or None."""
        if storage_id is None:
            return None
        return self._by_entity.get((entity_type, storage_id))

    def __len__(self) -> int:
        return len(self._issued)

    def __contains__(self, export_id: object) -> bool:
        return export_id in self._issued
