from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.ext.mutable import MutableDict
from sqlalchemy.orm import Mapped, mapped_column, relationship

from estatehub.models.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UnitStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    RESERVED = "RESERVED"
    SOLD = "SOLD"


class Project(Base):
    """Residential project that owns buildings and units."""

    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(200))
    slug: Mapped[str | None] = mapped_column(String(200), unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    buildings: Mapped[list[Building]] = relationship(
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="Building.created_at",
    )


class Building(Base):
    """Building inside a project; part of a unit's natural key."""

    __tablename__ = "buildings"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    project_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("projects.id", ondelete="cascade"), nullable=False
    )
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    project: Mapped[Project] = relationship(back_populates="buildings")

    __table_args__ = (Index("ix_buildings_project", "project_id"),)


class Unit(Base):
    """Sellable unit (apartment, villa, ...) kept current by imports."""

    __tablename__ = "units"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    project_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("projects.id", ondelete="cascade"), nullable=False
    )
    building_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("buildings.id", ondelete="cascade"), nullable=False
    )
    number: Mapped[str] = mapped_column(String(64))
    slug: Mapped[str | None] = mapped_column(String(200), nullable=True)
    floor: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[UnitStatus] = mapped_column(
        Enum(UnitStatus, name="unit_status", native_enum=False, length=16),
        default=UnitStatus.AVAILABLE,
    )
    price: Mapped[float | None] = mapped_column(Float, nullable=True)
    discount_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    area: Mapped[float | None] = mapped_column(Float, nullable=True)
    bedrooms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    bathrooms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    window_view: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    versions: Mapped[list[UnitVersion]] = relationship(
        back_populates="unit",
        cascade="all, delete-orphan",
        order_by="UnitVersion.version_date.desc()",
    )

    __table_args__ = (
        UniqueConstraint("project_id", "building_id", "number", name="uq_units_natural_key"),
        Index("ix_units_project_status", "project_id", "status"),
    )


class UnitFieldMapping(Base):
    """Spreadsheet column to unit field mapping gating an import."""

    __tablename__ = "unit_field_mappings"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    project_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("projects.id", ondelete="cascade"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(200))
    mappings: Mapped[dict[str, str]] = mapped_column(
        MutableDict.as_mutable(JSON), default=dict
    )
    created_by: Mapped[str | None] = mapped_column(String(120), nullable=True)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)
    is_approved: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (Index("ix_unit_field_mappings_project", "project_id"),)


class UnitImport(Base):
    """One bulk ingest run; kept forever as the audit trail."""

    __tablename__ = "unit_imports"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    project_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("projects.id", ondelete="cascade"), nullable=False
    )
    import_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    imported_by: Mapped[str | None] = mapped_column(String(120), nullable=True)
    currency: Mapped[str | None] = mapped_column(String(8), nullable=True)
    price_update_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    total_units: Mapped[int] = mapped_column(Integer, default=0)
    created_units: Mapped[int] = mapped_column(Integer, default=0)
    updated_units: Mapped[int] = mapped_column(Integer, default=0)
    skipped_units: Mapped[int] = mapped_column(Integer, default=0)
    field_mapping_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("unit_field_mappings.id", ondelete="set null"),
        nullable=True,
    )
    raw_data: Mapped[dict[str, Any]] = mapped_column(
        MutableDict.as_mutable(JSON), default=dict
    )
    processed: Mapped[bool] = mapped_column(Boolean, default=False)

    field_mapping: Mapped[UnitFieldMapping | None] = relationship()
    versions: Mapped[list[UnitVersion]] = relationship(back_populates="unit_import")

    __table_args__ = (
        Index("ix_unit_imports_project_processed", "project_id", "processed"),
    )


class UnitVersion(Base):
    """Immutable snapshot of a unit written by an import."""

    __tablename__ = "unit_versions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    unit_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("units.id", ondelete="cascade"), nullable=False
    )
    import_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("unit_imports.id", ondelete="cascade"), nullable=False
    )
    version_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    number: Mapped[str] = mapped_column(String(64))
    floor: Mapped[int] = mapped_column(Integer, default=0)
    building_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    price: Mapped[float | None] = mapped_column(Float, nullable=True)
    status: Mapped[UnitStatus] = mapped_column(
        Enum(UnitStatus, name="unit_status", native_enum=False, length=16),
        default=UnitStatus.AVAILABLE,
    )
    area: Mapped[float | None] = mapped_column(Float, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    window_view: Mapped[str | None] = mapped_column(String(255), nullable=True)
    metadata_json: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata", JSON, nullable=True
    )

    unit: Mapped[Unit] = relationship(back_populates="versions")
    unit_import: Mapped[UnitImport] = relationship(back_populates="versions")

    __table_args__ = (Index("ix_unit_versions_unit_date", "unit_id", "version_date"),)


class MissingTranslation(Base):
    """Translation key reported missing by a client for a locale."""

    __tablename__ = "missing_translations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    locale: Mapped[str] = mapped_column(String(16))
    key: Mapped[str] = mapped_column(String(512))
    context: Mapped[dict[str, Any] | None] = mapped_column(
        MutableDict.as_mutable(JSON), nullable=True
    )
    occurrences: Mapped[int] = mapped_column(Integer, default=1)
    first_seen_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    last_seen_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        UniqueConstraint("locale", "key", name="uq_missing_translations_locale_key"),
    )
