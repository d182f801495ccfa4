from __future__ import annotations


class ProjectNotFoundError(ValueError):
    """Raised when a project id does not resolve."""


class FieldMappingNotFoundError(ValueError):
    """Raised when a field mapping is missing or belongs to another project."""


class ImportNotFoundError(ValueError):
    """Raised when a unit import is missing or belongs to another project."""


class UnitNotFoundError(ValueError):
    """Raised when a unit is missing or belongs to another project."""


class MappingNotApprovedError(ValueError):
    """Raised when processing an import whose field mapping awaits review."""


class ImportAlreadyProcessedError(ValueError):
    """Raised when an import has already been committed."""
