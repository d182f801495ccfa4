from __future__ import annotations

import logging
import math
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from estatehub.models import Unit, UnitVersion
from estatehub.schemas.units import (
    Pagination,
    UnitVersionImport,
    UnitVersionItem,
    UnitVersionListResponse,
    VersionChanges,
)
from estatehub.services.exceptions import UnitNotFoundError


logger = logging.getLogger(__name__)


class _VersionLike(Protocol):
    price: float | None
    status: Any
    area: float | None


def _status_value(status: Any) -> Any:
    return getattr(status, "value", status)


def compute_version_changes(
    current: _VersionLike,
    previous: _VersionLike | None,
) -> dict[str, dict[str, Any] | None] | None:
    """Diff a version against its chronological predecessor.

    Returns ``None`` for the oldest version. Each entry of the result is
    ``None`` when that attribute did not change.
    """
    if previous is None:
        return None

    price_change: dict[str, Any] | None = None
    if current.price != previous.price:
        diff = None
        percent_diff = None
        if current.price is not None and previous.price is not None:
            diff = current.price - previous.price
            if previous.price != 0:
                percent_diff = diff * 100 / previous.price
        price_change = {
            "from": previous.price,
            "to": current.price,
            "diff": diff,
            "percent_diff": percent_diff,
        }

    status_change: dict[str, Any] | None = None
    if _status_value(current.status) != _status_value(previous.status):
        status_change = {
            "from": _status_value(previous.status),
            "to": _status_value(current.status),
        }

    area_change: dict[str, Any] | None = None
    if current.area != previous.area:
        area_change = {"from": previous.area, "to": current.area}

    return {"price": price_change, "status": status_change, "area": area_change}


class UnitVersionService:
    """Read a unit's version history with diffs computed on the fly."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_versions(
        self,
        project_id: UUID,
        unit_id: UUID,
        *,
        page: int = 1,
        limit: int = 10,
    ) -> UnitVersionListResponse:
        unit = await self._session.execute(
            select(Unit.id).where(Unit.id == unit_id, Unit.project_id == project_id)
        )
        if unit.scalar_one_or_none() is None:
            raise UnitNotFoundError(f"Unit {unit_id} not found.")

        page = max(page, 1)
        limit = max(limit, 1)

        total = (
            await self._session.execute(
                select(func.count(UnitVersion.id)).where(UnitVersion.unit_id == unit_id)
            )
        ).scalar_one()

        # One extra row is the predecessor of the last version on the page.
        result = await self._session.execute(
            select(UnitVersion)
            .where(UnitVersion.unit_id == unit_id)
            .options(selectinload(UnitVersion.unit_import))
            .order_by(UnitVersion.version_date.desc(), UnitVersion.id.desc())
            .offset((page - 1) * limit)
            .limit(limit + 1)
        )
        versions = list(result.scalars().all())

        items: list[UnitVersionItem] = []
        for index, version in enumerate(versions[:limit]):
            previous = versions[index + 1] if index + 1 < len(versions) else None
            changes = compute_version_changes(version, previous)
            items.append(
                UnitVersionItem(
                    id=version.id,
                    unit_id=version.unit_id,
                    import_id=version.import_id,
                    version_date=version.version_date,
                    number=version.number,
                    floor=version.floor,
                    building_id=version.building_id,
                    price=version.price,
                    status=version.status,
                    area=version.area,
                    description=version.description,
                    window_view=version.window_view,
                    metadata=version.metadata_json,
                    changes=VersionChanges.model_validate(changes) if changes else None,
                    import_=(
                        UnitVersionImport.model_validate(version.unit_import)
                        if version.unit_import is not None
                        else None
                    ),
                )
            )

        total_count = int(total or 0)
        logger.debug("Loaded %s versions for unit %s (page %s)", len(items), unit_id, page)
        return UnitVersionListResponse(
            data=items,
            pagination=Pagination(
                page=page,
                limit=limit,
                total_count=total_count,
                total_pages=math.ceil(total_count / limit),
            ),
        )
