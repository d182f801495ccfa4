from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from estatehub.models import Building, Project, Unit, UnitImport, UnitStatus, UnitVersion
from estatehub.services.exceptions import UnitNotFoundError
from estatehub.services.unit_versions import UnitVersionService, compute_version_changes


def _snapshot(price=None, status=UnitStatus.AVAILABLE, area=None) -> SimpleNamespace:
    return SimpleNamespace(price=price, status=status, area=area)


def test_oldest_version_has_no_changes() -> None:
    assert compute_version_changes(_snapshot(price=100.0), None) is None


def test_price_increase_reports_diff_and_percent() -> None:
    changes = compute_version_changes(_snapshot(price=120.0), _snapshot(price=100.0))

    assert changes["price"] == {"from": 100.0, "to": 120.0, "diff": 20.0, "percent_diff": 20.0}
    assert changes["status"] is None
    assert changes["area"] is None


def test_price_from_zero_has_no_percent() -> None:
    changes = compute_version_changes(_snapshot(price=50.0), _snapshot(price=0.0))

    assert changes["price"]["diff"] == 50.0
    assert changes["price"]["percent_diff"] is None


def test_percent_keeps_full_precision_and_status_area_changes_reported() -> None:
    changes = compute_version_changes(
        _snapshot(price=200.0, status=UnitStatus.SOLD, area=41.0),
        _snapshot(price=300.0, status=UnitStatus.RESERVED, area=40.0),
    )

    assert changes["price"]["diff"] == -100.0
    assert changes["price"]["percent_diff"] == pytest.approx(-100 / 3)
    assert changes["price"]["percent_diff"] != round(changes["price"]["percent_diff"], 2)
    assert changes["status"] == {"from": "RESERVED", "to": "SOLD"}
    assert changes["area"] == {"from": 40.0, "to": 41.0}


def test_unchanged_snapshot_reports_only_nones() -> None:
    changes = compute_version_changes(_snapshot(price=10.0), _snapshot(price=10.0))

    assert changes == {"price": None, "status": None, "area": None}


async def _unit_with_history(db_session, prices: list[float]) -> tuple[Project, Unit]:
    project = Project(id=uuid.uuid4(), name="Palm Residence")
    building = Building(id=uuid.uuid4(), project_id=project.id, name="Tower A")
    unit = Unit(
        id=uuid.uuid4(),
        project_id=project.id,
        building_id=building.id,
        number="A-101",
        floor=1,
        price=prices[-1],
    )
    unit_import = UnitImport(
        id=uuid.uuid4(),
        project_id=project.id,
        total_units=1,
        import_date=datetime(2025, 1, 1, tzinfo=timezone.utc),
        imported_by="sales@palm.example",
        currency="THB",
    )
    db_session.add_all([project, building, unit, unit_import])

    start = datetime(2025, 1, 1, tzinfo=timezone.utc)
    for offset, price in enumerate(prices):
        db_session.add(
            UnitVersion(
                id=uuid.uuid4(),
                unit_id=unit.id,
                import_id=unit_import.id,
                version_date=start + timedelta(days=offset),
                number=unit.number,
                floor=1,
                building_id=building.id,
                price=price,
                status=UnitStatus.AVAILABLE,
                metadata_json={"update_type": "UPDATE" if offset else "CREATE"},
            )
        )
    await db_session.flush()
    return project, unit


@pytest.mark.asyncio
async def test_list_versions_newest_first_with_changes(db_session) -> None:
    project, unit = await _unit_with_history(db_session, [100.0, 120.0])

    response = await UnitVersionService(db_session).list_versions(project.id, unit.id)

    assert [item.price for item in response.data] == [120.0, 100.0]
    newest, oldest = response.data
    assert newest.changes.price.from_ == 100.0
    assert newest.changes.price.percent_diff == 20.0
    assert newest.metadata == {"update_type": "UPDATE"}
    assert newest.import_.id == newest.import_id
    assert newest.import_.imported_by == "sales@palm.example"
    assert newest.import_.currency == "THB"
    assert newest.import_.import_date.year == 2025
    assert newest.model_dump(by_alias=True)["import"]["currency"] == "THB"
    assert oldest.changes is None
    assert response.pagination.model_dump() == {
        "page": 1,
        "limit": 10,
        "total_count": 2,
        "total_pages": 1,
    }


@pytest.mark.asyncio
async def test_list_versions_diffs_across_page_boundary(db_session) -> None:
    project, unit = await _unit_with_history(db_session, [100.0, 110.0, 130.0, 160.0, 200.0])
    service = UnitVersionService(db_session)

    first_page = await service.list_versions(project.id, unit.id, page=1, limit=2)
    last_page = await service.list_versions(project.id, unit.id, page=3, limit=2)

    assert [item.price for item in first_page.data] == [200.0, 160.0]
    assert first_page.data[-1].changes.price.from_ == 130.0
    assert first_page.pagination.total_pages == 3
    assert [item.price for item in last_page.data] == [100.0]
    assert last_page.data[0].changes is None


@pytest.mark.asyncio
async def test_list_versions_unknown_unit(db_session) -> None:
    project, _ = await _unit_with_history(db_session, [100.0])

    with pytest.raises(UnitNotFoundError):
        await UnitVersionService(db_session).list_versions(project.id, uuid.uuid4())


@pytest.mark.asyncio
async def test_list_versions_requires_matching_project(db_session) -> None:
    _, unit = await _unit_with_history(db_session, [100.0])

    with pytest.raises(UnitNotFoundError):
        await UnitVersionService(db_session).list_versions(uuid.uuid4(), unit.id)
