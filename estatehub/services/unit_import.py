from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from estatehub.models import (
    Building,
    Project,
    Unit,
    UnitFieldMapping,
    UnitImport,
    UnitStatus,
    UnitVersion,
)
from estatehub.schemas.units import (
    FieldMappingResponse,
    PendingImportItem,
    RowStatus,
    UnitImportRequest,
)
from estatehub.services.exceptions import (
    FieldMappingNotFoundError,
    ImportAlreadyProcessedError,
    ImportNotFoundError,
    MappingNotApprovedError,
    ProjectNotFoundError,
)
from estatehub.services.field_mapping import (
    FieldMappingService,
    apply_mapping,
    build_auto_mapping,
    parse_float,
    parse_int,
    parse_price,
    parse_status,
    parse_text,
)


logger = logging.getLogger(__name__)

PENDING_SAMPLE_SIZE = 5


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class RowOutcome:
    row_index: int
    status: RowStatus
    unit_number: str | None = None
    unit_id: UUID | None = None
    reason: str | None = None


@dataclass(slots=True)
class ImportSummary:
    import_id: UUID
    total: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    marked_as_sold: int = 0
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    outcomes: list[RowOutcome] = field(default_factory=list)

    def record(self, outcome: RowOutcome) -> None:
        self.outcomes.append(outcome)
        if outcome.status is RowStatus.CREATED:
            self.created += 1
        elif outcome.status is RowStatus.UPDATED:
            self.updated += 1
        elif outcome.status is RowStatus.SKIPPED:
            self.skipped += 1
            if outcome.reason:
                self.warnings.append(outcome.reason)
        else:
            self.failed += 1
            self.errors.append(
                f"Error processing unit {outcome.unit_number or '?'}: {outcome.reason}"
            )


def resolve_building(
    name: Any,
    buildings: Sequence[Building],
    default_building_id: UUID | None = None,
) -> UUID | None:
    """Pick the building a row belongs to.

    Order: exact case-insensitive name, partial name match, the import's
    default building, then the project's first building.
    """
    wanted = parse_text(name)
    named = [(building.name.strip().lower(), building.id) for building in buildings if building.name]
    if wanted:
        wanted = wanted.lower()
        for building_name, building_id in named:
            if building_name == wanted:
                return building_id
        for building_name, building_id in named:
            if building_name in wanted or wanted in building_name:
                return building_id

    known_ids = {building.id for building in buildings}
    if default_building_id is not None and default_building_id in known_ids:
        return default_building_id
    if buildings:
        return buildings[0].id
    return None


def _coerce_uuid(value: Any) -> UUID | None:
    if value in (None, ""):
        return None
    try:
        return value if isinstance(value, UUID) else UUID(str(value))
    except ValueError:
        return None


class UnitImportService:
    """Stage spreadsheet imports and commit them into units with versions."""

    def __init__(self, session: AsyncSession, *, default_user: str = "system") -> None:
        self._session = session
        self._default_user = default_user
        self._mappings = FieldMappingService(session)

    async def submit_import(
        self,
        project_id: UUID,
        payload: UnitImportRequest,
    ) -> UnitImport:
        await self._get_project(project_id)
        imported_by = payload.imported_by or self._default_user

        if payload.field_mapping_id is not None:
            mapping = await self._mappings.get_mapping(project_id, payload.field_mapping_id)
        else:
            mapping = UnitFieldMapping(
                id=uuid.uuid4(),
                project_id=project_id,
                name=f"Auto mapping {_utcnow():%Y-%m-%d %H:%M}",
                mappings=build_auto_mapping(payload.data),
                created_by=imported_by,
                is_default=False,
                is_approved=False,
            )
            self._session.add(mapping)

        record = UnitImport(
            id=uuid.uuid4(),
            project_id=project_id,
            import_date=_utcnow(),
            imported_by=imported_by,
            currency=payload.currency,
            price_update_date=payload.price_update_date,
            total_units=len(payload.data),
            created_units=0,
            updated_units=0,
            skipped_units=0,
            field_mapping=mapping,
            raw_data={
                "rows": [dict(row) for row in payload.data],
                "options": {
                    "update_existing": payload.update_existing,
                    "default_building_id": (
                        str(payload.default_building_id) if payload.default_building_id else None
                    ),
                    "mark_missing_as_sold": payload.mark_missing_as_sold,
                },
            },
            processed=False,
        )
        self._session.add(record)
        await self._session.flush()
        logger.info(
            "Staged import %s for project %s (%s rows, mapping %s approved=%s)",
            record.id,
            project_id,
            record.total_units,
            mapping.id,
            mapping.is_approved,
        )
        return record

    async def list_pending(self, project_id: UUID) -> list[PendingImportItem]:
        await self._get_project(project_id)
        stmt = (
            select(UnitImport)
            .outerjoin(UnitFieldMapping, UnitImport.field_mapping_id == UnitFieldMapping.id)
            .where(
                UnitImport.project_id == project_id,
                UnitImport.processed.is_(False),
                or_(
                    UnitImport.field_mapping_id.is_(None),
                    UnitFieldMapping.is_approved.is_(False),
                ),
            )
            .options(selectinload(UnitImport.field_mapping))
            .order_by(UnitImport.import_date.desc())
        )
        result = await self._session.execute(stmt)
        items: list[PendingImportItem] = []
        for record in result.scalars().all():
            rows = (record.raw_data or {}).get("rows") or []
            items.append(
                PendingImportItem(
                    id=record.id,
                    import_date=record.import_date,
                    imported_by=record.imported_by,
                    currency=record.currency,
                    total_units=record.total_units,
                    field_mapping=(
                        FieldMappingResponse.model_validate(record.field_mapping)
                        if record.field_mapping
                        else None
                    ),
                    sample=list(rows[:PENDING_SAMPLE_SIZE]),
                )
            )
        return items

    async def approve_mapping(
        self,
        project_id: UUID,
        mapping_id: UUID,
        mappings: Mapping[str, str] | None = None,
    ) -> UnitFieldMapping:
        return await self._mappings.approve(project_id, mapping_id, mappings)

    async def process_import(self, project_id: UUID, import_id: UUID) -> ImportSummary:
        record = await self._lock_import(project_id, import_id)
        if record.processed:
            raise ImportAlreadyProcessedError(f"Import {import_id} has already been processed.")
        mapping = record.field_mapping
        if mapping is None or not mapping.is_approved:
            raise MappingNotApprovedError("mappingNotApproved")

        buildings = await self._list_buildings(project_id)
        raw_data = record.raw_data or {}
        rows = list(raw_data.get("rows") or [])
        options = dict(raw_data.get("options") or {})
        update_existing = bool(options.get("update_existing", True))
        default_building_id = _coerce_uuid(options.get("default_building_id"))
        column_mapping = dict(mapping.mappings or {})

        record_id = record.id
        summary = ImportSummary(import_id=record_id, total=len(rows))
        imported_numbers: set[str] = set()

        logger.info(
            "Processing import %s for project %s: %s rows, update_existing=%s",
            record_id,
            project_id,
            len(rows),
            update_existing,
        )

        for index, raw_row in enumerate(rows):
            unit_data = apply_mapping(raw_row, column_mapping) if isinstance(raw_row, Mapping) else {}
            number = parse_text(unit_data.get("unit_number"))
            if number:
                imported_numbers.add(number)
            outcome = await self._process_row(
                index,
                number,
                unit_data,
                raw_row,
                project_id,
                record_id,
                buildings,
                default_building_id=default_building_id,
                update_existing=update_existing,
            )
            summary.record(outcome)

        if options.get("mark_missing_as_sold"):
            await self._mark_missing_as_sold(project_id, record_id, imported_numbers, summary)

        record.created_units = summary.created
        record.updated_units = summary.updated
        record.skipped_units = summary.skipped + summary.failed
        record.processed = True
        await self._session.flush()

        logger.info(
            "Import %s completed: created=%s updated=%s skipped=%s failed=%s marked_as_sold=%s",
            record_id,
            summary.created,
            summary.updated,
            summary.skipped,
            summary.failed,
            summary.marked_as_sold,
        )
        return summary

    async def _process_row(
        self,
        index: int,
        number: str | None,
        unit_data: dict[str, Any],
        raw_row: Any,
        project_id: UUID,
        import_id: UUID,
        buildings: Sequence[Building],
        *,
        default_building_id: UUID | None,
        update_existing: bool,
    ) -> RowOutcome:
        if not number:
            return RowOutcome(index, RowStatus.SKIPPED, reason="Unit without unit_number skipped")

        building_id = resolve_building(unit_data.get("building"), buildings, default_building_id)
        if building_id is None:
            return RowOutcome(
                index,
                RowStatus.SKIPPED,
                unit_number=number,
                reason=f"Unit {number}: no building found in project",
            )

        existing = await self._find_unit(project_id, building_id, number)
        if existing is not None and not update_existing:
            return RowOutcome(
                index,
                RowStatus.SKIPPED,
                unit_number=number,
                unit_id=existing.id,
                reason=f"Unit {number} exists and updates are disabled",
            )

        try:
            async with self._session.begin_nested():
                unit = self._write_unit(existing, project_id, building_id, number, unit_data)
                await self._session.flush()
                await self._write_version(
                    unit,
                    import_id,
                    metadata={
                        "original_data": raw_row,
                        "update_type": "UPDATE" if existing is not None else "CREATE",
                    },
                )
        except Exception as exc:
            logger.exception("Failed to persist unit %s from import %s", number, import_id)
            return RowOutcome(
                index,
                RowStatus.FAILED,
                unit_number=number,
                reason=str(exc) or exc.__class__.__name__,
            )

        return RowOutcome(
            index,
            RowStatus.UPDATED if existing is not None else RowStatus.CREATED,
            unit_number=number,
            unit_id=unit.id,
        )

    def _write_unit(
        self,
        existing: Unit | None,
        project_id: UUID,
        building_id: UUID,
        number: str,
        unit_data: Mapping[str, Any],
    ) -> Unit:
        price = (
            parse_price(unit_data.get("base_price_excl_vat"))
            or parse_price(unit_data.get("final_price_incl_vat"))
            or parse_price(unit_data.get("selling_price"))
        )
        discount_price = parse_price(unit_data.get("discount_price"))
        floor = parse_int(unit_data.get("floor_number"))
        area = parse_float(unit_data.get("area"))
        bedrooms = parse_int(unit_data.get("bedrooms"))
        bathrooms = parse_int(unit_data.get("bathrooms"))
        description = parse_text(unit_data.get("unit_description"))
        window_view = parse_text(unit_data.get("view_description"))
        status = parse_status(unit_data.get("availability_status"))

        if existing is None:
            unit = Unit(
                id=uuid.uuid4(),
                project_id=project_id,
                building_id=building_id,
                number=number,
                floor=floor or 0,
                status=status,
                price=price,
                discount_price=discount_price,
                area=area,
                bedrooms=bedrooms,
                bathrooms=bathrooms,
                description=description,
                window_view=window_view,
            )
            self._session.add(unit)
            return unit

        existing.building_id = building_id
        existing.status = status
        if price is not None:
            existing.price = price
        if floor is not None:
            existing.floor = floor
        if discount_price is not None:
            existing.discount_price = discount_price
        if area is not None:
            existing.area = area
        if bedrooms is not None:
            existing.bedrooms = bedrooms
        if bathrooms is not None:
            existing.bathrooms = bathrooms
        if description:
            existing.description = description
        if window_view:
            existing.window_view = window_view
        return existing

    async def _write_version(
        self,
        unit: Unit,
        import_id: UUID,
        *,
        metadata: dict[str, Any],
    ) -> UnitVersion:
        version = UnitVersion(
            id=uuid.uuid4(),
            unit_id=unit.id,
            import_id=import_id,
            version_date=_utcnow(),
            number=unit.number,
            floor=unit.floor,
            building_id=unit.building_id,
            price=unit.price,
            status=unit.status,
            area=unit.area,
            description=unit.description,
            window_view=unit.window_view,
            metadata_json=metadata,
        )
        self._session.add(version)
        await self._session.flush()
        return version

    async def _mark_missing_as_sold(
        self,
        project_id: UUID,
        import_id: UUID,
        imported_numbers: set[str],
        summary: ImportSummary,
    ) -> None:
        result = await self._session.execute(
            select(Unit).where(
                Unit.project_id == project_id,
                Unit.status != UnitStatus.SOLD,
            )
        )
        for unit in result.scalars().all():
            number = unit.number
            if number in imported_numbers:
                continue
            try:
                async with self._session.begin_nested():
                    previous_status = unit.status
                    unit.status = UnitStatus.SOLD
                    await self._session.flush()
                    await self._write_version(
                        unit,
                        import_id,
                        metadata={
                            "update_type": "MARKED_SOLD",
                            "previous_status": previous_status.value,
                        },
                    )
            except Exception as exc:
                logger.exception("Failed to mark unit %s as sold", number)
                summary.errors.append(f"Error marking unit {number} as sold: {exc}")
                continue
            summary.marked_as_sold += 1

    async def _get_project(self, project_id: UUID) -> Project:
        project = await self._session.get(Project, project_id)
        if project is None:
            raise ProjectNotFoundError(f"Project {project_id} not found.")
        return project

    async def _lock_import(self, project_id: UUID, import_id: UUID) -> UnitImport:
        # A concurrent process call waits on the row lock, then sees the
        # committed processed flag.
        result = await self._session.execute(
            select(UnitImport)
            .where(UnitImport.id == import_id, UnitImport.project_id == project_id)
            .options(selectinload(UnitImport.field_mapping))
            .with_for_update(of=UnitImport)
            .execution_options(populate_existing=True)
        )
        record = result.scalar_one_or_none()
        if record is None:
            raise ImportNotFoundError(f"Import {import_id} not found.")
        return record

    async def _list_buildings(self, project_id: UUID) -> list[Building]:
        result = await self._session.execute(
            select(Building)
            .where(Building.project_id == project_id)
            .order_by(Building.created_at, Building.id)
        )
        return list(result.scalars().all())

    async def _find_unit(self, project_id: UUID, building_id: UUID, number: str) -> Unit | None:
        result = await self._session.execute(
            select(Unit).where(
                Unit.project_id == project_id,
                Unit.building_id == building_id,
                Unit.number == number,
            )
        )
        return result.scalar_one_or_none()


__all__ = [
    "FieldMappingNotFoundError",
    "ImportAlreadyProcessedError",
    "ImportNotFoundError",
    "ImportSummary",
    "MappingNotApprovedError",
    "ProjectNotFoundError",
    "RowOutcome",
    "UnitImportService",
    "resolve_building",
]
