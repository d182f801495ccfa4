from collections.abc import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from estatehub.core.config import get_settings
from estatehub.core.database import get_session_factory
from estatehub.services.field_mapping import FieldMappingService
from estatehub.services.missing_translations import (
    MissingTranslationReporter,
    MissingTranslationService,
    MissingTranslationStore,
)
from estatehub.services.translation import TranslationService
from estatehub.services.unit_import import UnitImportService
from estatehub.services.unit_versions import UnitVersionService

_reporter: MissingTranslationReporter | None = None
_translation_service: TranslationService | None = None


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields an AsyncSession."""
    session = get_session_factory()()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


def get_missing_translation_reporter() -> MissingTranslationReporter:
    """Provide the process-wide reporter and its dedup store."""
    global _reporter
    if _reporter is None:
        _reporter = MissingTranslationReporter.from_settings(
            get_settings(),
            MissingTranslationStore(),
        )
    return _reporter


def peek_missing_translation_reporter() -> MissingTranslationReporter | None:
    return _reporter


async def get_translation_service() -> TranslationService:
    """Provide singleton TranslationService instance."""
    global _translation_service
    if _translation_service is None:
        _translation_service = TranslationService.from_settings(
            get_settings(),
            reporter=get_missing_translation_reporter(),
        )
    return _translation_service


async def get_missing_translation_service(
    session: AsyncSession = Depends(get_db_session),
) -> MissingTranslationService:
    return MissingTranslationService(session)


async def get_field_mapping_service(
    session: AsyncSession = Depends(get_db_session),
) -> FieldMappingService:
    return FieldMappingService(session)


async def get_unit_import_service(
    session: AsyncSession = Depends(get_db_session),
) -> UnitImportService:
    """Provide UnitImportService bound to the request session."""
    settings = get_settings()
    return UnitImportService(session, default_user=settings.units_import_default_user)


async def get_unit_version_service(
    session: AsyncSession = Depends(get_db_session),
) -> UnitVersionService:
    return UnitVersionService(session)
