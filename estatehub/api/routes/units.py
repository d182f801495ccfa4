from __future__ import annotations

from typing import NoReturn
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from estatehub.api.deps import (
    get_field_mapping_service,
    get_unit_import_service,
    get_unit_version_service,
)
from estatehub.schemas.units import (
    FieldMappingApprove,
    FieldMappingCreate,
    FieldMappingListResponse,
    FieldMappingResponse,
    ImportSummaryResponse,
    PendingImportListResponse,
    UnitImportRequest,
    UnitImportSubmitted,
    UnitVersionListResponse,
)
from estatehub.services.exceptions import (
    FieldMappingNotFoundError,
    ImportAlreadyProcessedError,
    ImportNotFoundError,
    MappingNotApprovedError,
    ProjectNotFoundError,
    UnitNotFoundError,
)
from estatehub.services.field_mapping import FieldMappingService
from estatehub.services.unit_import import UnitImportService
from estatehub.services.unit_versions import UnitVersionService

router = APIRouter()

_NOT_FOUND = (
    ProjectNotFoundError,
    FieldMappingNotFoundError,
    ImportNotFoundError,
    UnitNotFoundError,
)
_CONFLICT = (MappingNotApprovedError, ImportAlreadyProcessedError)


def _raise_http(exc: ValueError) -> NoReturn:
    if isinstance(exc, _NOT_FOUND):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if isinstance(exc, _CONFLICT):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.get(
    "/field-mappings",
    response_model=FieldMappingListResponse,
    summary="List column mappings for a project.",
)
async def list_field_mappings(
    project_id: UUID,
    include_pending: bool = Query(
        default=False,
        description="Include mappings that still await approval.",
    ),
    service: FieldMappingService = Depends(get_field_mapping_service),
) -> FieldMappingListResponse:
    try:
        records = await service.list_mappings(project_id, approved_only=not include_pending)
    except ValueError as exc:
        _raise_http(exc)
    return FieldMappingListResponse(
        items=[FieldMappingResponse.model_validate(record) for record in records]
    )


@router.post(
    "/field-mappings",
    response_model=FieldMappingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Save a column mapping for future imports.",
)
async def create_field_mapping(
    project_id: UUID,
    payload: FieldMappingCreate,
    service: FieldMappingService = Depends(get_field_mapping_service),
) -> FieldMappingResponse:
    try:
        record = await service.create_mapping(project_id, payload)
    except ValueError as exc:
        _raise_http(exc)
    return FieldMappingResponse.model_validate(record)


@router.post(
    "/field-mappings/{mapping_id}/approve",
    response_model=FieldMappingResponse,
    summary="Approve a column mapping, optionally overriding columns.",
)
async def approve_field_mapping(
    project_id: UUID,
    mapping_id: UUID,
    payload: FieldMappingApprove | None = Body(default=None),
    service: UnitImportService = Depends(get_unit_import_service),
) -> FieldMappingResponse:
    try:
        record = await service.approve_mapping(
            project_id,
            mapping_id,
            payload.mappings if payload else None,
        )
    except ValueError as exc:
        _raise_http(exc)
    return FieldMappingResponse.model_validate(record)


@router.post(
    "/import",
    response_model=UnitImportSubmitted,
    status_code=status.HTTP_201_CREATED,
    summary="Stage spreadsheet rows as a pending unit import.",
)
async def submit_unit_import(
    project_id: UUID,
    payload: UnitImportRequest,
    service: UnitImportService = Depends(get_unit_import_service),
) -> UnitImportSubmitted:
    try:
        record = await service.submit_import(project_id, payload)
    except ValueError as exc:
        _raise_http(exc)
    mapping = record.field_mapping
    return UnitImportSubmitted(
        import_id=record.id,
        field_mapping_id=mapping.id if mapping else None,
        mapping_approved=bool(mapping and mapping.is_approved),
        total_units=record.total_units,
        mappings=dict(mapping.mappings) if mapping else {},
    )


@router.get(
    "/import/pending",
    response_model=PendingImportListResponse,
    summary="List imports waiting for mapping approval.",
)
async def list_pending_imports(
    project_id: UUID,
    service: UnitImportService = Depends(get_unit_import_service),
) -> PendingImportListResponse:
    try:
        items = await service.list_pending(project_id)
    except ValueError as exc:
        _raise_http(exc)
    return PendingImportListResponse(items=items)


@router.post(
    "/import/{import_id}/process",
    response_model=ImportSummaryResponse,
    summary="Commit an approved import into units and versions.",
)
async def process_unit_import(
    project_id: UUID,
    import_id: UUID,
    service: UnitImportService = Depends(get_unit_import_service),
) -> ImportSummaryResponse:
    try:
        summary = await service.process_import(project_id, import_id)
    except ValueError as exc:
        _raise_http(exc)
    return ImportSummaryResponse.model_validate(summary)


@router.get(
    "/{unit_id}/versions",
    response_model=UnitVersionListResponse,
    summary="Paginated version history of a unit with computed changes.",
)
async def list_unit_versions(
    project_id: UUID,
    unit_id: UUID,
    page: int = Query(default=1, ge=1, description="1-based page number."),
    limit: int = Query(default=10, ge=1, le=100, description="Versions per page."),
    service: UnitVersionService = Depends(get_unit_version_service),
) -> UnitVersionListResponse:
    try:
        return await service.list_versions(project_id, unit_id, page=page, limit=limit)
    except ValueError as exc:
        _raise_http(exc)
