"""
Bundle validation.

Runs before any import logic and never touches the database. Preview and
import both call validate_bundle() with the raw request document.
"""

import re
from typing import Any

from pydantic import ValidationError

from agent_eval.core.exceptions import BundleShapeError, BundleVersionError
from agent_eval.models.contracts.export_import import EXPORT_VERSION, ExportBundle
from agent_eval.models.enums import ExportEntityType

_VERSION_PATTERN = re.compile(r"^(\d+)\.(\d+)\.(\d+)(?:[-+][0-9A-Za-z.-]+)?$")

KNOWN_KEYS = frozenset(entity_type.value for entity_type in ExportEntityType)


def parse_version(version: str) -> tuple[int, int, int] | None:
    """Parse "major.minor.patch" (pre-release/build suffix allowed)."""
    match = _VERSION_PATTERN.match(version.strip())
    if match is None:
        return None
    major, minor, patch = match.groups()
    return int(major), int(minor), int(patch)


SUPPORTED_MAJOR = parse_version(EXPORT_VERSION)[0]


def _describe(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"{location}: {first['msg']}"


def validate_bundle(document: Any) -> ExportBundle:
    """
    Validate a raw bundle document and parse it.

    Checks, in order: metadata with a parseable version, supported major
    version, only known entity-type keys with array values, and finally
    that every record parses.

    Raises:
        BundleVersionError: The bundle's major version is not supported
        BundleShapeError: The document is structurally malformed
    """
    if not isinstance(document, dict):
        raise BundleShapeError("Bundle must be a JSON object")

    metadata = document.get("metadata")
    if not isinstance(metadata, dict):
        raise BundleShapeError("Bundle is missing metadata")

    version = metadata.get("version")
    parsed = parse_version(version) if isinstance(version, str) else None
    if parsed is None:
        raise BundleShapeError(f"Bundle metadata has an invalid version: {version!r}")

    if parsed[0] != SUPPORTED_MAJOR:
        raise BundleVersionError(
            f"Incompatible export version: {version}. Current version: {EXPORT_VERSION}"
        )

    for key, value in document.items():
        if key == "metadata":
            continue
        if key not in KNOWN_KEYS:
            raise BundleShapeError(f"Unknown entity type in bundle: {key}")
        if not isinstance(value, list):
            raise BundleShapeError(f"Bundle entry '{key}' must be an array")

    try:
        return ExportBundle.model_validate(document)
    except ValidationError as e:
        raise BundleShapeError(f"Malformed bundle: {_describe(e)}") from e
