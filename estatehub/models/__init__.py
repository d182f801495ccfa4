"""SQLAlchemy models and declarative base."""

from estatehub.models.base import Base  # noqa: F401
from estatehub.models.entities import (  # noqa: F401
    Building,
    MissingTranslation,
    Project,
    Unit,
    UnitFieldMapping,
    UnitImport,
    UnitStatus,
    UnitVersion,
)

__all__ = [
    "Base",
    "Project",
    "Building",
    "Unit",
    "UnitStatus",
    "UnitFieldMapping",
    "UnitImport",
    "UnitVersion",
    "MissingTranslation",
]
