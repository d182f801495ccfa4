from __future__ import annotations

from datetime import datetime, timezone

import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from estatehub.api.deps import get_db_session, get_translation_service
from estatehub.core.app import create_app
from estatehub.core.config import AppSettings
from estatehub.services.missing_translations import MissingTranslationReporter
from estatehub.services.translation import TranslationService


@pytest_asyncio.fixture()
async def translation_client(db_engine: AsyncEngine):
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    reporter = MissingTranslationReporter(endpoint=None)
    service = TranslationService.from_settings(AppSettings(), reporter=reporter)
    app = create_app()

    async def override_get_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def override_get_translation_service() -> TranslationService:
        return service

    app.dependency_overrides[get_db_session] = override_get_db_session
    app.dependency_overrides[get_translation_service] = override_get_translation_service

    with TestClient(app) as client:
        yield client, reporter

    app.dependency_overrides.clear()


def test_resolve_returns_text_and_readable_fallbacks(translation_client) -> None:
    client, reporter = translation_client

    response = client.post(
        "/api/translations/resolve",
        json={
            "locale": "en-US",
            "namespace": "Projects",
            "keys": ["title", "form.unitNumber", "form.balconyArea"],
        },
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["locale"] == "en"
    assert payload["translations"] == {
        "title": "Projects",
        "form.unitNumber": "Unit number",
        "form.balconyArea": "Form Balcony Area",
    }
    assert ("en", "Projects.form.balconyArea") in reporter.store


def test_resolve_applies_values_and_defaults(translation_client) -> None:
    client, _ = translation_client

    response = client.post(
        "/api/translations/resolve",
        json={
            "locale": "ru",
            "keys": ["Units.versions.priceChange", "Units.versions.missing"],
            "values": {"percent": 20, "default": "Not available"},
        },
    )

    translations = response.json()["translations"]
    assert translations["Units.versions.priceChange"].endswith("20%")
    assert translations["Units.versions.missing"] == "Not available"


def test_missing_translations_are_stored_and_listed(translation_client) -> None:
    client, _ = translation_client
    now = datetime.now(timezone.utc).isoformat()
    batch = {
        "timestamp": now,
        "total": 2,
        "translations": [
            {"locale": "th", "key": "Units.import.title", "timestamp": now},
            {"locale": "th", "key": "Projects.form.floor", "context": {"page": "units"}},
        ],
    }

    accepted = client.post("/api/translations/missing/", json=batch)
    assert accepted.status_code == 202
    assert accepted.json() == {"accepted": 2}

    client.post("/api/translations/missing/", json={**batch, "total": 1, "translations": batch["translations"][:1]})

    listing = client.get("/api/translations/missing", params={"locale": "th"})
    assert listing.status_code == 200
    payload = listing.json()
    assert payload["total"] == 2
    assert payload["items"][0]["key"] == "Units.import.title"
    assert payload["items"][0]["occurrences"] == 2

    assert client.get("/api/translations/missing", params={"locale": "fr"}).json()["total"] == 0


def test_missing_batch_skips_entries_that_do_not_fit(translation_client) -> None:
    client, _ = translation_client
    batch = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "total": 2,
        "translations": [
            {"locale": "en", "key": "Projects." + "x" * 600},
            {"locale": "en", "key": "Projects.form.newField"},
        ],
    }

    response = client.post("/api/translations/missing/", json=batch)

    assert response.status_code == 202
    assert response.json() == {"accepted": 1}
    listing = client.get("/api/translations/missing", params={"locale": "en"}).json()
    assert [item["key"] for item in listing["items"]] == ["Projects.form.newField"]


def test_missing_translation_batch_is_validated(translation_client) -> None:
    client, _ = translation_client

    response = client.post("/api/translations/missing/", json={"total": 1, "translations": []})

    assert response.status_code == 422
