"""Spreadsheet column to unit field mapping and value parsing."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from estatehub.models import Project, UnitFieldMapping, UnitStatus
from estatehub.schemas.units import FieldMappingCreate
from estatehub.services.exceptions import FieldMappingNotFoundError, ProjectNotFoundError


logger = logging.getLogger(__name__)

IGNORE_FIELD = "ignore"

FIELD_KEYWORDS: dict[str, tuple[str, ...]] = {
    "unit_number": ("number", "unit number", "unit", "unit no", "no", "номер", "№", "unit id", "id"),
    "floor_number": ("floor", "этаж", "level", "floor number", "floor no", "storey", "story"),
    "building": ("building", "здание", "tower", "block", "корпус", "башня", "блок"),
    "availability_status": (
        "status",
        "статус",
        "availability",
        "доступность",
        "unit status",
        "available",
    ),
    "base_price_excl_vat": (
        "base price",
        "price excl vat",
        "price excluding vat",
        "base",
        "цена без ндс",
    ),
    "final_price_incl_vat": (
        "final price",
        "price incl vat",
        "price including vat",
        "final",
        "цена с ндс",
    ),
    "selling_price": ("selling price", "sale price", "price", "цена", "стоимость", "cost"),
    "discount_price": (
        "discount",
        "sale price",
        "скидка",
        "цена со скидкой",
        "special price",
        "promo price",
    ),
    "unit_description": ("description", "desc", "описание", "unit description", "about"),
    "view_description": ("view", "вид", "окна", "window view", "unit view", "facing", "outlook"),
    "comment": ("comment", "note", "комментарий", "примечание", "заметка", "notes", "remarks"),
    "area": (
        "area",
        "площадь",
        "size",
        "total area",
        "total size",
        "sqm",
        "м²",
        "sq.m",
        "m2",
        "square meter",
        "square meters",
        "кв.м",
        "кв м",
    ),
    "bedrooms": ("bedrooms", "beds", "спальни", "комнаты", "bed", "br", "bedroom", "bd"),
    "bathrooms": (
        "bathrooms",
        "baths",
        "ванные",
        "санузлы",
        "bath",
        "ba",
        "bathroom",
        "wc",
        "toilet",
    ),
}

UNIT_FIELDS: tuple[str, ...] = tuple(FIELD_KEYWORDS)

_CANONICAL_ALIASES = {
    "floor": "floor_number",
    "base_price_excluding_vat": "base_price_excl_vat",
    "final_price_including_vat": "final_price_incl_vat",
    "view": "view_description",
}

_NON_WORD_PATTERN = re.compile(r"[^a-zа-яё0-9\s]")
_WHITESPACE_PATTERN = re.compile(r"\s+")
_PRICE_STRIP_PATTERN = re.compile(r"[^\d.\-]")
_LEADING_INT_PATTERN = re.compile(r"^\s*([+-]?\d+)")
_LEADING_FLOAT_PATTERN = re.compile(r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+))")
_EMPTY_MARKERS = {"", "NA", "N/A", "-"}


def normalize_header(header: str) -> str:
    """Lowercase, replace punctuation with spaces and collapse whitespace."""
    cleaned = _NON_WORD_PATTERN.sub(" ", str(header).lower())
    return _WHITESPACE_PATTERN.sub(" ", cleaned).strip()


def canonical_field_name(header: str) -> str:
    """Map ``Floor Number`` / ``base_price_excluding_vat`` onto a unit field name."""
    normalized = re.sub(r"\s+", "_", str(header).strip().lower())
    normalized = re.sub(r"_+", "_", normalized.replace("(", "").replace(")", ""))
    return _CANONICAL_ALIASES.get(normalized, normalized)


def _normalized_keywords(field: str) -> list[str]:
    return [keyword for keyword in map(normalize_header, FIELD_KEYWORDS[field]) if keyword]


def suggest_field(header: str) -> str | None:
    """Guess the unit field a spreadsheet column holds.

    Tries the canonical field name, then an exact keyword match, then a
    partial match (longest keywords first), then any shared word.
    """
    canonical = canonical_field_name(header)
    if canonical in FIELD_KEYWORDS:
        return canonical

    raw = str(header).strip().lower()
    normalized = normalize_header(header)

    for field, keywords in FIELD_KEYWORDS.items():
        if raw in keywords or (normalized and normalized in _normalized_keywords(field)):
            return field

    if not normalized:
        return None

    for field in FIELD_KEYWORDS:
        candidates = sorted(_normalized_keywords(field), key=len, reverse=True)
        if any(keyword in normalized or normalized in keyword for keyword in candidates):
            return field

    header_words = normalized.split(" ")
    for field in FIELD_KEYWORDS:
        for keyword in _normalized_keywords(field):
            keyword_words = keyword.split(" ")
            if any(
                header_word == keyword_word
                or header_word in keyword_word
                or keyword_word in header_word
                for header_word in header_words
                for keyword_word in keyword_words
            ):
                return field
    return None


def build_auto_mapping(rows: Sequence[Mapping[str, Any]]) -> dict[str, str]:
    """Suggest a field for every column of the first row."""
    if not rows:
        return {}
    return {str(column): suggest_field(str(column)) or IGNORE_FIELD for column in rows[0]}


def apply_mapping(row: Mapping[str, Any], mapping: Mapping[str, str]) -> dict[str, Any]:
    mapped: dict[str, Any] = {}
    for source, value in row.items():
        target = mapping.get(source)
        if target and target != IGNORE_FIELD:
            mapped[target] = value
    return mapped


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() in _EMPTY_MARKERS)


def parse_price(value: Any) -> float | None:
    if _is_empty(value) or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    digits = _PRICE_STRIP_PATTERN.sub("", str(value))
    try:
        return float(digits)
    except ValueError:
        return None


def parse_int(value: Any) -> int | None:
    if _is_empty(value) or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    match = _LEADING_INT_PATTERN.match(str(value))
    return int(match.group(1)) if match else None


def parse_float(value: Any) -> float | None:
    if _is_empty(value) or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = _LEADING_FLOAT_PATTERN.match(str(value))
    return float(match.group(1)) if match else None


def parse_status(value: Any) -> UnitStatus:
    if value is None:
        return UnitStatus.AVAILABLE
    normalized = str(value).strip().lower()
    if "sold" in normalized:
        return UnitStatus.SOLD
    if "reserved" in normalized or "booked" in normalized:
        return UnitStatus.RESERVED
    return UnitStatus.AVAILABLE


def parse_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _check_targets(mappings: Mapping[str, str]) -> None:
    unknown = sorted(set(mappings.values()) - set(UNIT_FIELDS) - {IGNORE_FIELD})
    if unknown:
        raise ValueError(f"Unknown unit fields in mapping: {', '.join(unknown)}")


class FieldMappingService:
    """Create, list and approve per-project column mappings."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_mapping(
        self,
        project_id: UUID,
        payload: FieldMappingCreate,
    ) -> UnitFieldMapping:
        await self._ensure_project(project_id)
        _check_targets(payload.mappings)

        if payload.is_default:
            await self._clear_default(project_id)

        record = UnitFieldMapping(
            project_id=project_id,
            name=payload.name.strip(),
            mappings=dict(payload.mappings),
            created_by=payload.created_by,
            is_default=payload.is_default,
            is_approved=payload.is_approved,
        )
        self._session.add(record)
        await self._session.flush()
        logger.info("Created field mapping %s for project %s", record.id, project_id)
        return record

    async def list_mappings(
        self,
        project_id: UUID,
        *,
        approved_only: bool = True,
    ) -> list[UnitFieldMapping]:
        await self._ensure_project(project_id)
        stmt = select(UnitFieldMapping).where(UnitFieldMapping.project_id == project_id)
        if approved_only:
            stmt = stmt.where(UnitFieldMapping.is_approved.is_(True))
        stmt = stmt.order_by(
            UnitFieldMapping.is_default.desc(),
            UnitFieldMapping.created_at.desc(),
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_mapping(self, project_id: UUID, mapping_id: UUID) -> UnitFieldMapping:
        result = await self._session.execute(
            select(UnitFieldMapping).where(
                UnitFieldMapping.id == mapping_id,
                UnitFieldMapping.project_id == project_id,
            )
        )
        record = result.scalar_one_or_none()
        if record is None:
            raise FieldMappingNotFoundError(f"Field mapping {mapping_id} not found.")
        return record

    async def approve(
        self,
        project_id: UUID,
        mapping_id: UUID,
        mappings: Mapping[str, str] | None = None,
    ) -> UnitFieldMapping:
        record = await self.get_mapping(project_id, mapping_id)
        if mappings:
            _check_targets(mappings)
            merged = dict(record.mappings or {})
            merged.update(mappings)
            record.mappings = merged
        record.is_approved = True
        await self._session.flush()
        logger.info("Approved field mapping %s for project %s", mapping_id, project_id)
        return record

    async def _ensure_project(self, project_id: UUID) -> Project:
        project = await self._session.get(Project, project_id)
        if project is None:
            raise ProjectNotFoundError(f"Project {project_id} not found.")
        return project

    async def _clear_default(self, project_id: UUID) -> None:
        await self._session.execute(
            update(UnitFieldMapping)
            .where(
                UnitFieldMapping.project_id == project_id,
                UnitFieldMapping.is_default.is_(True),
            )
            .values(is_default=False)
        )
