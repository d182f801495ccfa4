from __future__ import annotations

import pytest

from estatehub.services.translation_validation import (
    TranslationValidator,
    ValidationRules,
    extract_variables,
)
from estatehub.utils.message_tree import build_message_tree


REQUIRED = {"common": {"error": {"unknown": "Error"}, "actions": {"retry": "Retry"}}}


def _errors(result) -> list[tuple[str, str]]:
    return [(issue.key, issue.error) for issue in result.errors]


def test_clean_catalog_is_valid() -> None:
    tree = build_message_tree({**REQUIRED, "Units": {"title": "Units"}})

    result = TranslationValidator().validate_translations(tree)

    assert result.is_valid
    assert result.to_dict() == {"is_valid": True, "errors": []}


def test_required_keys_must_exist_and_be_non_empty() -> None:
    tree = build_message_tree({"common": {"error": {"unknown": ""}}})

    errors = _errors(TranslationValidator().validate_translations(tree))

    assert ("common.error.unknown", "Required translation is missing") in errors
    assert ("common.actions.retry", "Required translation is missing") in errors


@pytest.mark.parametrize(
    ("value", "message"),
    [
        ("<b>Bold</b>", "HTML tags are not allowed in translations"),
        ("It's \"quoted\"", "Mixed quote styles detected"),
        (" padded", "Translation contains leading or trailing spaces"),
        ("two  spaces", "Translation contains multiple consecutive spaces"),
    ],
)
def test_single_value_rules(value: str, message: str) -> None:
    result = TranslationValidator().validate_translation("Units.title", value)

    assert ("Units.title", message) in _errors(result)


def test_max_length_rule_uses_configured_limit() -> None:
    validator = TranslationValidator(ValidationRules(max_length=5))

    result = validator.validate_translation("Units.title", "Too long")

    assert _errors(result) == [
        ("Units.title", "Translation exceeds maximum length of 5 characters")
    ]


def test_html_allowed_when_configured() -> None:
    validator = TranslationValidator(ValidationRules(allow_html=True))

    assert validator.validate_translation("Units.title", "<b>Units</b>").is_valid


def test_pattern_rules_apply_to_keys_naming_them() -> None:
    validator = TranslationValidator()

    assert validator.validate_translation("contacts.email", "sales@estatehub.test").is_valid
    assert _errors(validator.validate_translation("contacts.email", "not an address")) == [
        ("contacts.email", "Value does not match email pattern")
    ]
    assert _errors(validator.validate_translation("contacts.phone", "call us")) == [
        ("contacts.phone", "Value does not match phone pattern")
    ]


def test_extract_variables_supports_single_and_double_braces() -> None:
    assert extract_variables("{{created}} of {total} and {{ skipped }}") == [
        "created",
        "total",
        "skipped",
    ]


def test_locale_consistency_reports_key_and_variable_drift() -> None:
    base = build_message_tree(
        {
            "title": "Units",
            "summary": "Created {{created}}, updated {{updated}}",
            "subtitle": "All units",
        }
    )
    target = build_message_tree(
        {
            "title": "Юниты",
            "summary": "Создано {{created}}, всего {{total}}",
            "legacy": "Old",
        }
    )

    result = TranslationValidator().validate_locale_consistency(base, target)
    issues = {issue.key: issue for issue in result.errors}

    assert issues["missing_keys"].error == "Missing translations for keys: subtitle"
    assert issues["extra_keys"].error == "Extra translations found for keys: legacy"
    assert issues["summary"].error == "Interpolation variables mismatch"
    assert issues["summary"].context == {"missing_vars": ["updated"], "extra_vars": ["total"]}
    assert "title" not in issues
