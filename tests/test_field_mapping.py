from __future__ import annotations

import uuid

import pytest

from estatehub.models import Project, UnitStatus
from estatehub.schemas.units import FieldMappingCreate
from estatehub.services.exceptions import FieldMappingNotFoundError, ProjectNotFoundError
from estatehub.services.field_mapping import (
    IGNORE_FIELD,
    FieldMappingService,
    apply_mapping,
    build_auto_mapping,
    normalize_header,
    parse_float,
    parse_int,
    parse_price,
    parse_status,
    parse_text,
    suggest_field,
)


@pytest.mark.parametrize(
    ("header", "expected"),
    [
        ("Unit Number", "unit_number"),
        ("Floor", "floor_number"),
        ("Этаж", "floor_number"),
        ("Status", "availability_status"),
        ("Price, THB", "selling_price"),
        ("Total Area (sqm)", "area"),
        ("Tower", "building"),
        ("base_price_excluding_vat", "base_price_excl_vat"),
        ("Zzz", None),
    ],
)
def test_suggest_field(header: str, expected: str | None) -> None:
    assert suggest_field(header) == expected


def test_normalize_header_strips_punctuation() -> None:
    assert normalize_header("  Unit  No.  ") == "unit no"
    assert normalize_header("Цена, ₽") == "цена"


def test_build_auto_mapping_uses_first_row_columns() -> None:
    rows = [
        {"Unit": "A-101", "Floor": "1", "Price": "1,000", "Zzz": "x"},
        {"Unit": "A-102", "Floor": "1", "Price": "1,100", "Zzz": "y", "Extra": 1},
    ]

    assert build_auto_mapping(rows) == {
        "Unit": "unit_number",
        "Floor": "floor_number",
        "Price": "selling_price",
        "Zzz": IGNORE_FIELD,
    }
    assert build_auto_mapping([]) == {}


def test_apply_mapping_drops_ignored_and_unmapped_columns() -> None:
    mapping = {"Unit": "unit_number", "Zzz": IGNORE_FIELD}

    assert apply_mapping({"Unit": "A-101", "Zzz": 1, "Other": 2}, mapping) == {
        "unit_number": "A-101"
    }


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("฿1,250,000.50", 1250000.5),
        (1500, 1500.0),
        ("N/A", None),
        ("-", None),
        ("", None),
        (None, None),
        ("on request", None),
    ],
)
def test_parse_price(value, expected) -> None:
    assert parse_price(value) == expected


def test_numeric_parsers_take_leading_number() -> None:
    assert parse_int("12th") == 12
    assert parse_int(3.7) == 3
    assert parse_int("floor") is None
    assert parse_float("45.5 sqm") == 45.5
    assert parse_float("NA") is None


def test_parse_status_and_text() -> None:
    assert parse_status("Sold out") is UnitStatus.SOLD
    assert parse_status("Booked") is UnitStatus.RESERVED
    assert parse_status("free") is UnitStatus.AVAILABLE
    assert parse_status(None) is UnitStatus.AVAILABLE
    assert parse_text("  sea view ") == "sea view"
    assert parse_text("   ") is None


async def _project(db_session) -> Project:
    project = Project(id=uuid.uuid4(), name="Palm Residence")
    db_session.add(project)
    await db_session.flush()
    return project


@pytest.mark.asyncio
async def test_create_mapping_keeps_a_single_default(db_session) -> None:
    project = await _project(db_session)
    service = FieldMappingService(db_session)

    first = await service.create_mapping(
        project.id,
        FieldMappingCreate(name="Q1 sheet", mappings={"Unit": "unit_number"}, is_default=True),
    )
    second = await service.create_mapping(
        project.id,
        FieldMappingCreate(name="Q2 sheet", mappings={"No.": "unit_number"}, is_default=True),
    )
    await db_session.refresh(first)

    assert first.is_default is False
    assert second.is_default is True

    mappings = await service.list_mappings(project.id)
    assert [mapping.name for mapping in mappings] == ["Q2 sheet", "Q1 sheet"]


@pytest.mark.asyncio
async def test_create_mapping_rejects_unknown_fields(db_session) -> None:
    project = await _project(db_session)
    service = FieldMappingService(db_session)

    with pytest.raises(ValueError, match="price_per_sqm"):
        await service.create_mapping(
            project.id,
            FieldMappingCreate(name="Bad", mappings={"Price/m2": "price_per_sqm"}),
        )


@pytest.mark.asyncio
async def test_create_mapping_requires_project(db_session) -> None:
    service = FieldMappingService(db_session)

    with pytest.raises(ProjectNotFoundError):
        await service.create_mapping(uuid.uuid4(), FieldMappingCreate(name="Orphan"))


@pytest.mark.asyncio
async def test_approve_merges_overrides_and_lists_approved(db_session) -> None:
    project = await _project(db_session)
    service = FieldMappingService(db_session)
    draft = await service.create_mapping(
        project.id,
        FieldMappingCreate(
            name="Auto",
            mappings={"Unit": "unit_number", "Cost": IGNORE_FIELD},
            is_approved=False,
        ),
    )

    assert await service.list_mappings(project.id) == []
    assert len(await service.list_mappings(project.id, approved_only=False)) == 1

    approved = await service.approve(project.id, draft.id, {"Cost": "selling_price"})

    assert approved.is_approved is True
    assert approved.mappings == {"Unit": "unit_number", "Cost": "selling_price"}
    assert [mapping.id for mapping in await service.list_mappings(project.id)] == [draft.id]


@pytest.mark.asyncio
async def test_approve_unknown_mapping_raises(db_session) -> None:
    project = await _project(db_session)
    service = FieldMappingService(db_session)

    with pytest.raises(FieldMappingNotFoundError):
        await service.approve(project.id, uuid.uuid4())
