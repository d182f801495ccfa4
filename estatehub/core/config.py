from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_PACKAGE_LOCALES_DIR = Path(__file__).resolve().parents[1] / "locales"


class AppSettings(BaseSettings):
    """Application configuration loaded from environment or .env."""

    app_name: str = Field(default="EstateHub Back Office API")
    app_env: str = Field(default="dev", alias="APP_ENV")
    debug: bool = Field(default=False, alias="APP_DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    api_host: str = Field(default="127.0.0.1", alias="API_HOST")
    api_port: int = Field(default=8000, alias="API_PORT")
    cors_allow_origins: list[str] = Field(
        default_factory=lambda: ["*"], alias="CORS_ALLOW_ORIGINS"
    )

    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")

    locales_dir: Path = Field(default=_PACKAGE_LOCALES_DIR, alias="LOCALES_DIR")
    default_locale: str = Field(default="ru", alias="DEFAULT_LOCALE")
    supported_locales: list[str] = Field(
        default_factory=lambda: ["en", "ru", "th", "es", "ar", "cmn", "fr", "ind"],
        alias="SUPPORTED_LOCALES",
    )
    i18n_verbose: bool = Field(default=False, alias="I18N_VERBOSE")

    missing_translations_endpoint: Optional[str] = Field(
        default=None,
        alias="MISSING_TRANSLATIONS_ENDPOINT",
    )
    missing_translations_max_attempts: int = Field(
        default=3, ge=1, alias="MISSING_TRANSLATIONS_MAX_ATTEMPTS"
    )
    missing_translations_retry_delay: float = Field(
        default=1.0, ge=0, alias="MISSING_TRANSLATIONS_RETRY_DELAY"
    )
    missing_translations_delta_only: bool = Field(
        default=False, alias="MISSING_TRANSLATIONS_DELTA_ONLY"
    )

    units_import_default_user: str = Field(
        default="system", alias="UNITS_IMPORT_DEFAULT_USER"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
    )

    @model_validator(mode="after")
    def _default_missing_translations_endpoint(self) -> "AppSettings":
        if self.missing_translations_endpoint is None:
            host = "127.0.0.1" if self.api_host in {"0.0.0.0", "::"} else self.api_host
            self.missing_translations_endpoint = (
                f"http://{host}:{self.api_port}/api/translations/missing/"
            )
        return self


@lru_cache
def get_settings() -> AppSettings:
    """Return cached application settings."""
    return AppSettings()  # type: ignore[call-arg]
