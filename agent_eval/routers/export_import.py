"""
Export/Import Router

Bundle export (JSON download), import preview, and import of a user's
flow configs, question sets, tags, webhooks, personas, evaluators, tests
and runs. Everything is scoped to the authenticated user.
"""

import io
import json
import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse
from pydantic import ValidationError

from agent_eval.core.auth import CurrentUser
from agent_eval.core.database import DbSession
from agent_eval.core.exceptions import BundleValidationError
from agent_eval.models.contracts.export_import import (
    ImportOptions,
    ImportPreviewResult,
    ImportResult,
)
from agent_eval.models.enums import ExportEntityType
from agent_eval.services.export_import import (
    BundleSerializer,
    ConflictDetector,
    ImportExecutor,
    validate_bundle,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/export", tags=["Export/Import"])


def _json_response(data: str, filename: str) -> StreamingResponse:
    """Create a JSON file download response."""
    return StreamingResponse(
        io.BytesIO(data.encode()),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _id_param(entity_type: ExportEntityType) -> str:
    """Query parameter carrying an id filter, e.g. flowConfigs -> flowConfigIds."""
    return f"{entity_type.value[:-1]}Ids"


def _split(values: list[str]) -> list[str]:
    """Accept both repeated parameters and comma separated lists."""
    return [part.strip() for value in values for part in value.split(",") if part.strip()]


def _parse_types(values: list[str] | None) -> list[ExportEntityType]:
    names = _split(values or [])
    if not names:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="At least one entity type is required (types=...)",
        )

    types: list[ExportEntityType] = []
    for name in names:
        try:
            types.append(ExportEntityType(name))
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown entity type: {name}",
            )
    return types


def _parse_id_filters(request: Request) -> dict[ExportEntityType, list[UUID]]:
    filters: dict[ExportEntityType, list[UUID]] = {}
    for entity_type in ExportEntityType:
        param = _id_param(entity_type)
        raw = _split(request.query_params.getlist(param))
        if not raw:
            continue
        try:
            filters[entity_type] = [UUID(value) for value in raw]
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid id in {param}",
            )
    return filters


async def _read_json(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Request body must be valid JSON",
        )


# ============================================================
# EXPORT
# ============================================================


@router.get("")
async def export_bundle(
    request: Request,
    db: DbSession,
    user: CurrentUser,
    types: list[str] | None = Query(None),
) -> StreamingResponse:
    """
    Export the current user's entities as a bundle.

    Query parameters:
        types: Entity types to include (repeat or comma separate)
        <type>Ids: Optional id filter per type, e.g. testIds=<id>,<id>
    """
    entity_types = _parse_types(types)
    id_filters = _parse_id_filters(request)

    serializer = BundleSerializer(db, user.user_id, exported_by=user.email or None)
    bundle = await serializer.export(entity_types, id_filters)

    date = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    return _json_response(
        bundle.model_dump_json(indent=2, by_alias=True, exclude_none=True),
        f"agent-eval-export-{date}.json",
    )


# ============================================================
# IMPORT
# ============================================================


@router.post("/preview")
async def preview_import(
    request: Request,
    db: DbSession,
    user: CurrentUser,
) -> dict[str, Any]:
    """
    Preview an import without changing anything.

    Body is the raw bundle. Returns creation counts, name conflicts and
    warnings about references to records missing from the bundle.
    """
    document = await _read_json(request)
    try:
        bundle = validate_bundle(document)
    except BundleValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    result: ImportPreviewResult = await ConflictDetector(db, user.user_id).preview(bundle)
    return result.to_document()


@router.post("/import", status_code=status.HTTP_201_CREATED)
async def import_bundle(
    request: Request,
    db: DbSession,
    user: CurrentUser,
) -> dict[str, Any]:
    """
    Import a bundle into the current user's account.

    Body: {"bundle": {...}, "options": {"conflictStrategy": "skip" | "overwrite" | "rename"}}

    Row-level failures are reported in `errors`; they never fail the request.
    """
    body = await _read_json(request)
    if not isinstance(body, dict) or "bundle" not in body:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Request body must contain 'bundle'",
        )

    try:
        options = ImportOptions.model_validate(body.get("options"))
    except ValidationError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Request body must contain 'options' with conflictStrategy of skip, overwrite or rename",
        )

    try:
        bundle = validate_bundle(body["bundle"])
    except BundleValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    executor = ImportExecutor(db, user.user_id)
    result: ImportResult = await executor.execute(bundle, options.conflict_strategy)
    await db.commit()

    return result.to_document()
