from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from estatehub.models import UnitStatus


class FieldMappingCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    mappings: dict[str, str] = Field(
        default_factory=dict,
        description="Source column name -> unit field (or 'ignore').",
    )
    is_default: bool = False
    is_approved: bool = Field(
        default=True,
        description="Mappings created by hand are approved unless stated otherwise.",
    )
    created_by: str | None = Field(default=None, max_length=120)


class FieldMappingApprove(BaseModel):
    mappings: dict[str, str] | None = Field(
        default=None,
        description="Optional column overrides applied before approval.",
    )


class FieldMappingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    name: str
    mappings: dict[str, str]
    created_by: str | None = None
    is_default: bool
    is_approved: bool
    created_at: datetime


class FieldMappingListResponse(BaseModel):
    items: list[FieldMappingResponse]


class UnitImportRequest(BaseModel):
    data: list[dict[str, Any]] = Field(..., min_length=1, description="Spreadsheet rows.")
    update_existing: bool = True
    default_building_id: UUID | None = None
    currency: str | None = Field(default=None, max_length=8)
    price_update_date: datetime | None = None
    field_mapping_id: UUID | None = Field(
        default=None,
        description="Existing mapping to use; an unapproved one is generated otherwise.",
    )
    mark_missing_as_sold: bool = False
    imported_by: str | None = Field(default=None, max_length=120)


class UnitImportSubmitted(BaseModel):
    import_id: UUID
    field_mapping_id: UUID | None
    mapping_approved: bool
    total_units: int
    mappings: dict[str, str]


class PendingImportItem(BaseModel):
    id: UUID
    import_date: datetime
    imported_by: str | None = None
    currency: str | None = None
    total_units: int
    field_mapping: FieldMappingResponse | None = None
    sample: list[dict[str, Any]] = Field(default_factory=list)


class PendingImportListResponse(BaseModel):
    items: list[PendingImportItem]


class RowStatus(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


class RowOutcomeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    row_index: int
    status: RowStatus
    unit_number: str | None = None
    unit_id: UUID | None = None
    reason: str | None = None


class ImportSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    import_id: UUID
    total: int
    created: int
    updated: int
    skipped: int
    failed: int
    marked_as_sold: int
    warnings: list[str]
    errors: list[str]
    outcomes: list[RowOutcomeResponse]


class PriceChange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: float | None = Field(default=None, alias="from")
    to: float | None = None
    diff: float | None = None
    percent_diff: float | None = None


class StatusChange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: UnitStatus | None = Field(default=None, alias="from")
    to: UnitStatus | None = None


class AreaChange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: float | None = Field(default=None, alias="from")
    to: float | None = None


class VersionChanges(BaseModel):
    price: PriceChange | None = None
    status: StatusChange | None = None
    area: AreaChange | None = None


class UnitVersionImport(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    import_date: datetime
    imported_by: str | None = None
    currency: str | None = None


class UnitVersionItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    unit_id: UUID
    import_id: UUID
    version_date: datetime
    number: str
    floor: int
    building_id: UUID | None = None
    price: float | None = None
    status: UnitStatus
    area: float | None = None
    description: str | None = None
    window_view: str | None = None
    metadata: dict[str, Any] | None = None
    changes: VersionChanges | None = None
    import_: UnitVersionImport | None = Field(default=None, alias="import")


class Pagination(BaseModel):
    page: int
    limit: int
    total_count: int
    total_pages: int


class UnitVersionListResponse(BaseModel):
    data: list[UnitVersionItem]
    pagination: Pagination
