from __future__ import annotations

import json
from pathlib import Path

import pytest

from estatehub.core.config import AppSettings
from estatehub.services.translation import MessageCatalog
from scripts.validate_locales import main, render_table, validate_catalogs


BASE = {
    "common": {"error": {"unknown": "Error"}, "actions": {"retry": "Retry"}},
    "Units": {"summary": "Created {{created}}"},
}


def _write(directory: Path, locale: str, payload: dict) -> None:
    (directory / f"{locale}.json").write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")


def test_shipped_catalogs_are_valid(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc:
        main([])

    assert exc.value.code == 0
    output = capsys.readouterr().out
    for locale in AppSettings().supported_locales:
        assert locale in output


def test_validate_catalogs_compares_against_base(tmp_path: Path) -> None:
    _write(tmp_path, "en", BASE)
    _write(
        tmp_path,
        "ru",
        {
            "common": {"error": {"unknown": "Ошибка"}, "actions": {"retry": "Повторить"}},
            "Units": {"summary": "Создано  {{total}}"},
        },
    )
    catalog = MessageCatalog(tmp_path, supported_locales=["en", "ru"], default_locale="en")

    results = validate_catalogs(catalog, "en", ["en", "ru"])

    assert results["en"].is_valid
    errors = [issue.error for issue in results["ru"].errors]
    assert "Translation contains multiple consecutive spaces" in errors
    assert "Interpolation variables mismatch" in errors

    table = render_table(results)
    assert table.splitlines()[0].split() == ["Locale", "Key", "Error"]
    assert "Units.summary" in table
    assert "ok" in table


def test_main_reports_errors_as_json(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _write(tmp_path, "en", BASE)
    _write(tmp_path, "ru", {"common": {"error": {"unknown": "Ошибка"}}})

    with pytest.raises(SystemExit) as exc:
        main(["--locales-dir", str(tmp_path), "--locale", "ru", "--format", "json"])

    assert exc.value.code == 1
    payload = json.loads(capsys.readouterr().out)
    assert payload["en"]["is_valid"] is True
    ru_errors = {item["key"]: item["error"] for item in payload["ru"]["errors"]}
    assert ru_errors["common.actions.retry"] == "Required translation is missing"
    assert ru_errors["missing_keys"].startswith("Missing translations for keys:")


def test_main_rejects_unknown_locale(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _write(tmp_path, "en", BASE)

    with pytest.raises(SystemExit) as exc:
        main(["--locales-dir", str(tmp_path), "--locale", "de"])

    assert exc.value.code == 2
    assert "not supported" in capsys.readouterr().err
