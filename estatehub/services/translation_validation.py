from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Pattern

from estatehub.utils.message_tree import (
    MessageTree,
    iter_leaves,
    lookup_exact,
)


_HTML_TAG_PATTERN = re.compile(r"<[^>]+>")
_REPEATED_WHITESPACE_PATTERN = re.compile(r"\s{2,}")
_VARIABLE_PATTERN = re.compile(r"\{\{?\s*([^{}]+?)\s*\}\}?")

DEFAULT_PATTERNS: dict[str, Pattern[str]] = {
    "email": re.compile(r"^[^@]+@[^@]+\.[^@]+$"),
    "phone": re.compile(r"^\+?[\d\s\-()]+$"),
    "url": re.compile(r"^https?://.+"),
}


@dataclass(slots=True)
class ValidationRules:
    max_length: int = 1000
    allow_html: bool = False
    required: tuple[str, ...] = ("common.error.unknown", "common.actions.retry")
    patterns: Mapping[str, Pattern[str]] = field(default_factory=lambda: dict(DEFAULT_PATTERNS))


@dataclass(slots=True)
class ValidationIssue:
    key: str
    error: str
    context: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"key": self.key, "error": self.error}
        if self.context is not None:
            payload["context"] = self.context
        return payload


@dataclass(slots=True)
class ValidationResult:
    errors: list[ValidationIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def extend(self, other: ValidationResult) -> None:
        self.errors.extend(other.errors)

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "errors": [issue.to_dict() for issue in self.errors],
        }


def extract_variables(text: str) -> list[str]:
    """Return interpolation names from ``{name}`` and ``{{ name }}`` tokens."""
    return [match.group(1) for match in _VARIABLE_PATTERN.finditer(text)]


class TranslationValidator:
    """Lint locale catalogs before they ship."""

    def __init__(self, rules: ValidationRules | None = None):
        self._rules = rules or ValidationRules()

    @property
    def rules(self) -> ValidationRules:
        return self._rules

    def validate_translations(self, tree: MessageTree | None) -> ValidationResult:
        result = ValidationResult()
        for key, value in iter_leaves(tree):
            result.extend(self.validate_translation(key, value))
        for key in self._rules.required:
            if lookup_exact(tree, key) is None:
                result.errors.append(ValidationIssue(key, "Required translation is missing"))
        return result

    def validate_translation(self, key: str, value: str) -> ValidationResult:
        rules = self._rules
        errors: list[ValidationIssue] = []

        if key in rules.required and not value:
            errors.append(ValidationIssue(key, "Required translation is missing"))

        if len(value) > rules.max_length:
            errors.append(
                ValidationIssue(
                    key,
                    f"Translation exceeds maximum length of {rules.max_length} characters",
                )
            )

        if not rules.allow_html and _HTML_TAG_PATTERN.search(value):
            errors.append(ValidationIssue(key, "HTML tags are not allowed in translations"))

        for name, pattern in rules.patterns.items():
            if name in key and not pattern.search(value):
                errors.append(ValidationIssue(key, f"Value does not match {name} pattern"))

        if "'" in value and '"' in value:
            errors.append(ValidationIssue(key, "Mixed quote styles detected"))

        if value.startswith(" ") or value.endswith(" "):
            errors.append(
                ValidationIssue(key, "Translation contains leading or trailing spaces")
            )

        if _REPEATED_WHITESPACE_PATTERN.search(value):
            errors.append(
                ValidationIssue(key, "Translation contains multiple consecutive spaces")
            )

        return ValidationResult(errors)

    def validate_locale_consistency(
        self,
        base: MessageTree | None,
        target: MessageTree | None,
    ) -> ValidationResult:
        base_keys = [key for key, _ in iter_leaves(base)]
        target_keys = [key for key, _ in iter_leaves(target)]
        base_set = set(base_keys)
        target_set = set(target_keys)
        errors: list[ValidationIssue] = []

        missing = [key for key in base_keys if key not in target_set]
        if missing:
            errors.append(
                ValidationIssue(
                    "missing_keys",
                    f"Missing translations for keys: {', '.join(missing)}",
                )
            )

        extra = [key for key in target_keys if key not in base_set]
        if extra:
            errors.append(
                ValidationIssue(
                    "extra_keys",
                    f"Extra translations found for keys: {', '.join(extra)}",
                )
            )

        for key in base_keys:
            base_value = lookup_exact(base, key)
            target_value = lookup_exact(target, key)
            if base_value is None or target_value is None:
                continue
            base_vars = extract_variables(base_value)
            target_vars = extract_variables(target_value)
            missing_vars = _difference(base_vars, target_vars)
            extra_vars = _difference(target_vars, base_vars)
            if missing_vars or extra_vars:
                errors.append(
                    ValidationIssue(
                        key,
                        "Interpolation variables mismatch",
                        context={"missing_vars": missing_vars, "extra_vars": extra_vars},
                    )
                )

        return ValidationResult(errors)


def _difference(left: Iterable[str], right: Iterable[str]) -> list[str]:
    right_set = set(right)
    return [item for item in left if item not in right_set]
