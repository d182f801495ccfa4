"""Lint locale catalogs and check them against the base locale."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Iterable, Sequence

from estatehub.core.config import get_settings
from estatehub.services.translation import MessageCatalog, UnsupportedLocaleError
from estatehub.services.translation_validation import TranslationValidator, ValidationResult


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="estatehub-validate-locales",
        description=(
            "Validate EstateHub locale files: per-string lint rules plus key and "
            "interpolation consistency against a base locale."
        ),
    )
    parser.add_argument(
        "--base",
        default="en",
        help="Locale every other catalog is compared against (default: en).",
    )
    parser.add_argument(
        "--locale",
        dest="locales",
        action="append",
        default=None,
        help="Locale to validate; repeat for several (default: all supported locales).",
    )
    parser.add_argument(
        "--locales-dir",
        type=Path,
        default=None,
        help="Directory holding <locale>.json files (default: LOCALES_DIR setting).",
    )
    parser.add_argument(
        "--format",
        choices=("table", "json"),
        default="table",
        help="Output format for the report (default: table).",
    )
    return parser


def validate_catalogs(
    catalog: MessageCatalog,
    base: str,
    locales: Iterable[str],
    validator: TranslationValidator | None = None,
) -> dict[str, ValidationResult]:
    """Return one result per locale; the base locale is linted but not compared."""
    validator = validator or TranslationValidator()
    base_tree = catalog.load(base)
    results: dict[str, ValidationResult] = {base: validator.validate_translations(base_tree)}
    for locale in locales:
        if locale == base:
            continue
        tree = catalog.load(locale)
        result = validator.validate_translations(tree)
        result.extend(validator.validate_locale_consistency(base_tree, tree))
        results[locale] = result
    return results


def render_table(results: dict[str, ValidationResult]) -> str:
    headers = ("Locale", "Key", "Error")
    rows: list[tuple[str, str, str]] = []
    for locale, result in results.items():
        if result.is_valid:
            rows.append((locale, "-", "ok"))
            continue
        for issue in result.errors:
            message = issue.error
            if issue.context:
                message = f"{message} {json.dumps(issue.context, ensure_ascii=False)}"
            rows.append((locale, issue.key, message))

    widths = [
        max([len(header)] + [len(row[index]) for row in rows])
        for index, header in enumerate(headers)
    ]

    def format_row(values: Iterable[str]) -> str:
        return "  ".join(value.ljust(width) for value, width in zip(values, widths)).rstrip()

    lines = [format_row(headers), "  ".join("-" * width for width in widths)]
    lines.extend(format_row(row) for row in rows)
    return "\n".join(lines)


def _results_to_json(results: dict[str, ValidationResult]) -> str:
    payload = {locale: result.to_dict() for locale, result in results.items()}
    return json.dumps(payload, ensure_ascii=False, indent=2)


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = get_settings()

    catalog = MessageCatalog(
        args.locales_dir or settings.locales_dir,
        supported_locales=settings.supported_locales,
        default_locale=settings.default_locale,
    )
    locales = args.locales or list(catalog.supported_locales)

    try:
        results = validate_catalogs(catalog, args.base, locales)
    except (UnsupportedLocaleError, OSError, ValueError) as exc:
        parser.exit(2, f"error: {exc}\n")

    if args.format == "json":
        print(_results_to_json(results))
    else:
        print(render_table(results))

    exit_code = 0 if all(result.is_valid for result in results.values()) else 1
    raise SystemExit(exit_code)


if __name__ == "__main__":  # pragma: no cover - script entry point
    main()
