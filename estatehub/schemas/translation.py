from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class TranslationResolveRequest(BaseModel):
    locale: str = Field(..., description="Locale whose message catalog should be used.")
    namespace: str | None = Field(
        default=None,
        description="Optional namespace (first key segment) tried before the root catalog.",
    )
    keys: list[str] = Field(
        default_factory=list,
        description="Translation keys to resolve.",
    )
    values: dict[str, Any] | None = Field(
        default=None,
        description="Substitution values for {{name}} tokens; 'default' is used on a miss.",
    )


class TranslationResolveResponse(BaseModel):
    locale: str = Field(..., description="Locale the catalog was loaded for.")
    namespace: str | None = Field(default=None, description="Namespace used for lookup.")
    translations: dict[str, str] = Field(
        default_factory=dict,
        description="Mapping of requested keys to display text.",
    )


MAX_LOCALE_LENGTH = 16
MAX_KEY_LENGTH = 512


def is_reportable_pair(locale: str, key: str) -> bool:
    """Whether the pair fits the missing_translations columns."""
    return 0 < len(locale) <= MAX_LOCALE_LENGTH and 0 < len(key) <= MAX_KEY_LENGTH


class MissingTranslationEntry(BaseModel):
    # Length limits are enforced per entry in MissingTranslationService.record_batch.
    locale: str
    key: str
    context: dict[str, Any] | None = None
    timestamp: datetime | None = None


class MissingTranslationBatch(BaseModel):
    timestamp: datetime
    total: int = Field(..., ge=0)
    translations: list[MissingTranslationEntry] = Field(default_factory=list)


class MissingTranslationAccepted(BaseModel):
    accepted: int = Field(..., description="Number of distinct locale/key pairs stored.")


class MissingTranslationItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    locale: str
    key: str
    context: dict[str, Any] | None = None
    occurrences: int
    first_seen_at: datetime
    last_seen_at: datetime


class MissingTranslationListResponse(BaseModel):
    total: int
    items: list[MissingTranslationItem]
