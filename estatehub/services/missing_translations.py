from __future__ import annotations

import asyncio
import enum
import json
import logging
import threading
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import httpx
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from estatehub.core.config import AppSettings
from estatehub.models import MissingTranslation
from estatehub.schemas.translation import (
    MissingTranslationBatch,
    MissingTranslationItem,
    MissingTranslationListResponse,
    is_reportable_pair,
)


logger = logging.getLogger(__name__)

_REQUEST_HEADERS = {
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}

# Client errors that may succeed when sent again.
_RETRYABLE_CLIENT_STATUSES = frozenset({408, 429})


def _json_safe(context: dict[str, Any] | None) -> dict[str, Any] | None:
    if not context:
        return None
    return json.loads(json.dumps(context, default=str))


class ReportState(str, enum.Enum):
    RECORDED = "recorded"
    REPORTING = "reporting"
    REPORTED = "reported"
    FAILED = "failed"


@dataclass(slots=True)
class MissingTranslationRecord:
    locale: str
    key: str
    context: dict[str, Any] | None = None
    first_seen_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    state: ReportState = ReportState.RECORDED

    @property
    def composite_key(self) -> str:
        return f"{self.locale}:{self.key}"

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "locale": self.locale,
            "key": self.key,
            "timestamp": self.first_seen_at.isoformat(),
        }
        if self.context:
            payload["context"] = self.context
        return payload


class MissingTranslationStore:
    """Process-local dedup set of missing ``locale:key`` pairs.

    Owned by whoever builds the reporter, so tests and tenants each get
    their own instance. All mutations go through one lock.
    """

    def __init__(self, max_entries: int | None = None):
        self._entries: dict[str, MissingTranslationRecord] = {}
        self._lock = threading.Lock()
        self._max_entries = max_entries

    def record(
        self,
        locale: str,
        key: str,
        context: dict[str, Any] | None = None,
    ) -> MissingTranslationRecord | None:
        """Add the pair if unseen.

        Returns ``None`` when the pair was already recorded or does not fit
        the receiving table (empty, or longer than its locale/key columns).
        Context values that are not JSON types are stored as strings.
        """
        if not is_reportable_pair(locale, key):
            logger.warning(
                "Ignoring missing translation with invalid length (locale %s chars, key %s chars)",
                len(locale),
                len(key),
            )
            return None
        record = MissingTranslationRecord(locale=locale, key=key, context=_json_safe(context))
        with self._lock:
            if record.composite_key in self._entries:
                return None
            if self._max_entries is not None and len(self._entries) >= self._max_entries:
                oldest = next(iter(self._entries))
                del self._entries[oldest]
            self._entries[record.composite_key] = record
        return record

    def snapshot(self, *, delta_only: bool = False) -> list[MissingTranslationRecord]:
        """Return recorded pairs in first-seen order."""
        with self._lock:
            records = list(self._entries.values())
        if delta_only:
            pending = {ReportState.RECORDED, ReportState.FAILED}
            records = [record for record in records if record.state in pending]
        return records

    def transition(
        self,
        records: list[MissingTranslationRecord],
        state: ReportState,
    ) -> None:
        with self._lock:
            for record in records:
                if record.state is ReportState.REPORTED and state is not ReportState.REPORTED:
                    continue
                record.state = state

    def state_of(self, locale: str, key: str) -> ReportState | None:
        with self._lock:
            record = self._entries.get(f"{locale}:{key}")
            return record.state if record else None

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, item: object) -> bool:
        if not isinstance(item, tuple) or len(item) != 2:
            return False
        locale, key = item
        with self._lock:
            return f"{locale}:{key}" in self._entries


def build_report_payload(records: list[MissingTranslationRecord]) -> dict[str, Any]:
    translations = [record.to_payload() for record in records]
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "total": len(translations),
        "translations": translations,
    }


class MissingTranslationReporter:
    """Best-effort telemetry for translation keys that failed to resolve.

    ``report`` never raises and never blocks: the first sighting of a pair
    schedules a background delivery of the batch to the logging endpoint.
    By default every delivery carries all pairs recorded so far; set
    ``delta_only`` to send only pairs not yet acknowledged.
    """

    def __init__(
        self,
        store: MissingTranslationStore | None = None,
        *,
        endpoint: str | None,
        max_attempts: int = 3,
        retry_delay: float = 1.0,
        delta_only: bool = False,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
    ):
        self._store = store or MissingTranslationStore()
        self._endpoint = endpoint
        self._max_attempts = max(1, max_attempts)
        self._retry_delay = retry_delay
        self._delta_only = delta_only
        self._client_factory = client_factory or (
            lambda: httpx.AsyncClient(timeout=httpx.Timeout(10.0))
        )
        self._sleep = sleep or asyncio.sleep
        self._tasks: set[asyncio.Task[bool]] = set()

    @classmethod
    def from_settings(
        cls,
        settings: AppSettings,
        store: MissingTranslationStore | None = None,
        **kwargs: Any,
    ) -> MissingTranslationReporter:
        return cls(
            store,
            endpoint=settings.missing_translations_endpoint,
            max_attempts=settings.missing_translations_max_attempts,
            retry_delay=settings.missing_translations_retry_delay,
            delta_only=settings.missing_translations_delta_only,
            **kwargs,
        )

    @property
    def store(self) -> MissingTranslationStore:
        return self._store

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def report(
        self,
        key: str,
        locale: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        try:
            record = self._store.record(locale, key, context)
            if record is None:
                return
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                logger.debug("No running event loop; %s recorded only", record.composite_key)
                return
            task = loop.create_task(self.deliver(record))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        except Exception:
            logger.exception("Could not queue missing translation %s:%s", locale, key)

    async def deliver(self, trigger: MissingTranslationRecord | None = None) -> bool:
        """POST the current batch, retrying with exponential backoff."""
        if not self._endpoint:
            logger.debug("Missing translation endpoint not configured; skipping delivery")
            return False

        records = self._store.snapshot(delta_only=self._delta_only)
        if not records:
            return True

        payload = build_report_payload(records)
        self._store.transition(records, ReportState.REPORTING)

        delivered = False
        try:
            delivered = await self._post_with_retries(payload, trigger)
        finally:
            # Anything short of a 2xx leaves the pairs resendable.
            self._store.transition(
                records,
                ReportState.REPORTED if delivered else ReportState.FAILED,
            )
        return delivered

    async def _post_with_retries(
        self,
        payload: dict[str, Any],
        trigger: MissingTranslationRecord | None,
    ) -> bool:
        last_error = ""
        attempt = 0
        while attempt < self._max_attempts:
            attempt += 1
            try:
                async with self._client_factory() as client:
                    response = await client.post(
                        self._endpoint,
                        json=payload,
                        headers=_REQUEST_HEADERS,
                    )
                if 200 <= response.status_code < 300:
                    return True
                last_error = f"HTTP error status {response.status_code}"
                if (
                    400 <= response.status_code < 500
                    and response.status_code not in _RETRYABLE_CLIENT_STATUSES
                ):
                    break
            except Exception as exc:
                last_error = str(exc) or exc.__class__.__name__

            if attempt < self._max_attempts:
                await self._sleep(self._retry_delay * 2**attempt)

        logger.error(
            "Failed to save missing translations after %s attempts (trigger=%s): %s",
            attempt,
            trigger.composite_key if trigger else "-",
            last_error,
        )
        return False

    async def drain(self) -> None:
        """Wait for in-flight deliveries to settle."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class MissingTranslationService:
    """Persist missing-translation batches posted by clients.

    ``occurrences`` counts the reports that carried a pair, not distinct
    page views: a reporter in cumulative mode resends every pair it has seen,
    so a long-lived client bumps the counter on each delivery.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def record_batch(self, batch: MissingTranslationBatch) -> int:
        now = datetime.now(timezone.utc)
        seen: set[tuple[str, str]] = set()
        for entry in batch.translations:
            locale = entry.locale.strip()
            key = entry.key.strip()
            if not is_reportable_pair(locale, key):
                logger.warning(
                    "Skipping missing translation entry with invalid locale/key length (%s chars)",
                    len(key),
                )
                continue
            if (locale, key) in seen:
                continue
            seen.add((locale, key))

            existing = await self._find(locale, key)
            if existing is None:
                try:
                    async with self._session.begin_nested():
                        self._session.add(
                            MissingTranslation(
                                locale=locale,
                                key=key,
                                context=dict(entry.context) if entry.context else None,
                                occurrences=1,
                                first_seen_at=entry.timestamp or now,
                                last_seen_at=now,
                            )
                        )
                    continue
                except IntegrityError:
                    # Inserted concurrently by another request.
                    existing = await self._find(locale, key)
                    if existing is None:
                        raise

            existing.occurrences = (existing.occurrences or 0) + 1
            existing.last_seen_at = now
            if entry.context:
                merged = dict(existing.context or {})
                merged.update(entry.context)
                existing.context = merged

        await self._session.flush()
        logger.info("Stored %s missing translation(s) from batch of %s", len(seen), batch.total)
        return len(seen)

    async def _find(self, locale: str, key: str) -> MissingTranslation | None:
        result = await self._session.execute(
            select(MissingTranslation).where(
                MissingTranslation.locale == locale,
                MissingTranslation.key == key,
            )
        )
        return result.scalar_one_or_none()

    async def list_missing(
        self,
        *,
        locale: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> MissingTranslationListResponse:
        stmt = select(MissingTranslation).order_by(
            MissingTranslation.occurrences.desc(),
            MissingTranslation.last_seen_at.desc(),
        )
        count_stmt = select(func.count(MissingTranslation.id))
        if locale:
            stmt = stmt.where(MissingTranslation.locale == locale)
            count_stmt = count_stmt.where(MissingTranslation.locale == locale)

        result = await self._session.execute(stmt.limit(limit).offset(offset))
        records = result.scalars().all()
        total = (await self._session.execute(count_stmt)).scalar_one()

        return MissingTranslationListResponse(
            total=int(total or 0),
            items=[MissingTranslationItem.model_validate(record) for record in records],
        )
