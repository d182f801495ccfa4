from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from estatehub.api.deps import get_missing_translation_service, get_translation_service
from estatehub.schemas.translation import (
    MissingTranslationAccepted,
    MissingTranslationBatch,
    MissingTranslationListResponse,
    TranslationResolveRequest,
    TranslationResolveResponse,
)
from estatehub.services.missing_translations import MissingTranslationService
from estatehub.services.translation import TranslationService

router = APIRouter()


@router.post(
    "/resolve",
    response_model=TranslationResolveResponse,
    status_code=status.HTTP_200_OK,
    summary="Resolve UI translation keys with flexible fallbacks.",
)
async def resolve_translations(
    payload: TranslationResolveRequest,
    translator: TranslationService = Depends(get_translation_service),
) -> TranslationResolveResponse:
    """Return display text for every requested key; misses degrade to readable labels."""
    locale = translator.resolve_locale(payload.locale)
    translations = translator.resolve_many(
        payload.keys,
        locale=locale,
        namespace=payload.namespace,
        values=payload.values,
    )
    return TranslationResolveResponse(
        locale=locale,
        namespace=payload.namespace,
        translations=translations,
    )


@router.post(
    "/missing/",
    response_model=MissingTranslationAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Record translation keys that clients failed to resolve.",
)
async def report_missing_translations(
    payload: MissingTranslationBatch,
    service: MissingTranslationService = Depends(get_missing_translation_service),
) -> MissingTranslationAccepted:
    accepted = await service.record_batch(payload)
    return MissingTranslationAccepted(accepted=accepted)


@router.get(
    "/missing",
    response_model=MissingTranslationListResponse,
    summary="List reported missing translations, most frequent first.",
)
async def list_missing_translations(
    locale: str | None = Query(default=None, description="Filter by locale code."),
    limit: int = Query(default=100, ge=1, le=500, description="Maximum number of records."),
    offset: int = Query(default=0, ge=0, description="Number of records to skip."),
    service: MissingTranslationService = Depends(get_missing_translation_service),
) -> MissingTranslationListResponse:
    return await service.list_missing(locale=locale, limit=limit, offset=offset)
