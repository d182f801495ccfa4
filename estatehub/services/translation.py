from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any

from estatehub.core.config import AppSettings
from estatehub.services.missing_translations import MissingTranslationReporter
from estatehub.utils.message_tree import (
    EMPTY_TREE,
    MessageTree,
    apply_translation_values,
    build_message_tree,
    find_translation_value,
    format_translation_key,
    lookup_exact,
    resolve_node,
)

logger = logging.getLogger(__name__)
i18n_logger = logging.getLogger("estatehub.i18n")


class UnsupportedLocaleError(ValueError):
    """Raised when a locale outside the configured set is requested explicitly."""


class MessageCatalog:
    """Per-locale message trees loaded lazily from ``<locales_dir>/<locale>.json``.

    Each locale is read at most once per process; the resulting trees are
    treated as read-only.
    """

    def __init__(
        self,
        locales_dir: Path | str,
        *,
        supported_locales: Sequence[str],
        default_locale: str,
    ):
        self._locales_dir = Path(locales_dir)
        self._supported = tuple(self.normalize_locale(locale) for locale in supported_locales)
        self._default_locale = self.normalize_locale(default_locale)
        self._cache: dict[str, MessageTree] = {}
        self._lock = threading.Lock()

    @property
    def default_locale(self) -> str:
        return self._default_locale

    @property
    def supported_locales(self) -> tuple[str, ...]:
        return self._supported

    @staticmethod
    def normalize_locale(value: str | None) -> str:
        if not value:
            return ""
        return value.strip().replace("_", "-").lower()

    def match_locale(self, value: str | None) -> str | None:
        """Map ``en-US`` style codes onto a supported locale, if possible."""
        normalized = self.normalize_locale(value)
        if normalized in self._supported:
            return normalized
        language = normalized.split("-", 1)[0]
        if language in self._supported:
            return language
        return None

    def load(self, locale: str) -> MessageTree:
        """Return the catalog for ``locale`` or raise.

        Raises :class:`UnsupportedLocaleError` for unknown locales and lets
        I/O and JSON errors propagate.
        """
        matched = self.match_locale(locale)
        if matched is None:
            raise UnsupportedLocaleError(f"Locale {locale!r} is not supported.")

        with self._lock:
            cached = self._cache.get(matched)
            if cached is not None:
                return cached
            path = self._locales_dir / f"{matched}.json"
            raw = json.loads(path.read_text(encoding="utf-8"))
            tree = build_message_tree(raw)
            if tree is None:
                raise ValueError(f"Locale file {path} must contain a JSON object.")
            self._cache[matched] = tree
            logger.debug("Loaded %s messages from %s", matched, path)
            return tree

    def messages_for(self, locale: str | None) -> MessageTree:
        """Return messages for ``locale``, falling back to the default locale."""
        candidates = [locale] if locale else []
        candidates.append(self._default_locale)
        for candidate in candidates:
            try:
                return self.load(candidate)
            except (OSError, ValueError) as exc:
                logger.warning("Failed to load messages for locale %s: %s", candidate, exc)
        return EMPTY_TREE

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()


class FlexibleTranslator:
    """Resolve keys against a message tree, degrading to readable text.

    Lookup order: exact key in the namespace, exact key at the root, loose
    search in the namespace then the root, the caller's ``default`` value,
    and finally the key itself formatted for display.
    """

    def __init__(
        self,
        messages: MessageTree,
        *,
        locale: str,
        namespace: str | None = None,
        verbose: bool = False,
        reporter: MissingTranslationReporter | None = None,
    ):
        self._messages = messages
        self._locale = locale
        self._namespace = namespace
        self._verbose = verbose
        self._reporter = reporter

    @property
    def locale(self) -> str:
        return self._locale

    @property
    def namespace(self) -> str | None:
        return self._namespace

    def __call__(self, key: str, values: Mapping[str, Any] | None = None) -> str:
        return self.translate(key, values=values)

    def translate(
        self,
        key: str,
        namespace: str | None = None,
        values: Mapping[str, Any] | None = None,
    ) -> str:
        scope_name = namespace if namespace is not None else self._namespace
        try:
            return self._resolve(key, scope_name, values)
        except Exception:
            logger.exception("Error processing translation for %s", key)
            return format_translation_key(key)

    def _resolve(
        self,
        key: str,
        namespace: str | None,
        values: Mapping[str, Any] | None,
    ) -> str:
        self._log("Looking up %s in %s", key, namespace or "root")
        scope = resolve_node(self._messages, namespace) if namespace else None

        if scope is not None:
            text = lookup_exact(scope, key)
            if text is not None:
                self._log("Found %s in namespace %s", key, namespace)
                return apply_translation_values(text, values)
            self._log("Not found in namespace %s, trying root", namespace)

        text = lookup_exact(self._messages, key)
        if text is not None:
            self._log("Found %s in root namespace", key)
            return apply_translation_values(text, values)

        self._report_missing(key, namespace)
        self._log("Not found in root namespace, trying flexible search for %s", key)

        for label, tree in (("namespace", scope), ("root", self._messages)):
            if tree is None:
                continue
            found = find_translation_value(tree, key)
            if found:
                self._log("Found %s via flexible search in %s", key, label)
                return apply_translation_values(found, values)

        default = values.get("default") if values else None
        if default:
            self._log("Using provided default for %s: %s", key, default)
            return str(default)

        fallback = format_translation_key(key)
        self._log("No translation found for %s, using %s", key, fallback)
        return fallback

    def _report_missing(self, key: str, namespace: str | None) -> None:
        if self._reporter is None or not key:
            return
        qualified = f"{namespace}.{key}" if namespace else key
        self._reporter.report(qualified, self._locale)

    def _log(self, message: str, *args: Any) -> None:
        if self._verbose:
            i18n_logger.info("[i18n] " + message, *args)


class TranslationService:
    """Process-wide entry point that hands out translators per locale."""

    def __init__(
        self,
        catalog: MessageCatalog,
        *,
        reporter: MissingTranslationReporter | None = None,
        verbose: bool = False,
    ):
        self._catalog = catalog
        self._reporter = reporter
        self._verbose = verbose

    @classmethod
    def from_settings(
        cls,
        settings: AppSettings,
        *,
        reporter: MissingTranslationReporter | None = None,
    ) -> TranslationService:
        catalog = MessageCatalog(
            settings.locales_dir,
            supported_locales=settings.supported_locales,
            default_locale=settings.default_locale,
        )
        return cls(catalog, reporter=reporter, verbose=settings.i18n_verbose)

    @property
    def catalog(self) -> MessageCatalog:
        return self._catalog

    @property
    def reporter(self) -> MissingTranslationReporter | None:
        return self._reporter

    def resolve_locale(self, locale: str | None) -> str:
        return self._catalog.match_locale(locale) or self._catalog.default_locale

    def translator(self, locale: str | None, namespace: str | None = None) -> FlexibleTranslator:
        resolved = self.resolve_locale(locale)
        return FlexibleTranslator(
            self._catalog.messages_for(resolved),
            locale=resolved,
            namespace=namespace,
            verbose=self._verbose,
            reporter=self._reporter,
        )

    def translate(
        self,
        key: str,
        *,
        locale: str | None,
        namespace: str | None = None,
        values: Mapping[str, Any] | None = None,
    ) -> str:
        return self.translator(locale, namespace).translate(key, values=values)

    def resolve_many(
        self,
        keys: Iterable[str],
        *,
        locale: str | None,
        namespace: str | None = None,
        values: Mapping[str, Any] | None = None,
    ) -> dict[str, str]:
        translator = self.translator(locale, namespace)
        return {key: translator.translate(key, values=values) for key in keys}
