"""
Bundle export/import.

Export:  BundleSerializer -> ExportBundle (camelCase JSON document)
Preview: validate_bundle -> ConflictDetector.preview
Import:  validate_bundle -> ImportExecutor.execute
"""

from agent_eval.services.export_import.conflicts import ConflictDetector, DetectionResult
from agent_eval.services.export_import.executor import ImportExecutor, RecordOutcome
from agent_eval.services.export_import.handlers import HANDLER_CLASSES, EntityHandler, build_handlers
from agent_eval.services.export_import.ids import ExportIdAllocator, is_export_id
from agent_eval.services.export_import.refs import ImportIdMap
from agent_eval.services.export_import.serializer import BundleSerializer
from agent_eval.services.export_import.validator import validate_bundle

__all__ = [
    "BundleSerializer",
    "ConflictDetector",
    "DetectionResult",
    "EntityHandler",
    "ExportIdAllocator",
    "HANDLER_CLASSES",
    "ImportExecutor",
    "ImportIdMap",
    "RecordOutcome",
    "build_handlers",
    "is_export_id",
    "validate_bundle",
]
