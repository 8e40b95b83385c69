"""Tests covering the command-line entry point."""

from __future__ import annotations

import io
import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from diagfloat import app
from diagfloat.services.settings import Settings, SettingsStore


@pytest.fixture(autouse=True)
def _stub_logging(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    configure = MagicMock()
    monkeypatch.setattr(app, "configure_logging", configure)
    return configure


@pytest.fixture
def workspace(tmp_path: Path) -> tuple[Path, Path]:
    source = tmp_path / "main.ts"
    source.write_text("const a: number = 'x';\nlet b = c;\n", encoding="utf-8")
    diagnostics = tmp_path / "diagnostics.json"
    diagnostics.write_text(
        json.dumps(
            {
                "uri": "file:///main.ts",
                "diagnostics": [
                    {
                        "range": {"start": {"line": 0, "character": 6}},
                        "message": "Type 'string' is not assignable to type 'number'.",
                        "source": "typescript",
                        "code": 2322,
                        "severity": 1,
                    },
                    {
                        "range": {"start": {"line": 1, "character": 8}},
                        "message": "Cannot find name 'c'.",
                        "source": "ts",
                        "code": 2304,
                        "severity": 1,
                    },
                ],
            }
        ),
        encoding="utf-8",
    )
    return source, diagnostics


def test_render_line_formats_requested_line(workspace: tuple[Path, Path]) -> None:
    source, diagnostics = workspace

    lines = app.render_line(source, Settings(), diagnostics=diagnostics, line=2)

    assert lines == ["E ts(2304)", "Cannot find name `c`."]


def test_render_line_without_diagnostics_is_empty(workspace: tuple[Path, Path]) -> None:
    source, _diagnostics = workspace

    assert app.render_line(source, Settings(), line=1) == []


def test_main_print_mode(workspace, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    source, diagnostics = workspace
    argv = [
        str(source),
        "--diagnostics",
        str(diagnostics),
        "--print",
        "--settings-path",
        str(tmp_path / "settings.json"),
        "--set",
        "reformat_hook=none",
    ]

    assert app.main(argv) == 0

    assert capsys.readouterr().out.splitlines() == [
        "E typescript(2322)",
        "Type 'string' is not assignable to type 'number'.",
    ]


def test_main_rejects_bad_override(workspace, capsys: pytest.CaptureFixture[str]) -> None:
    source, _diagnostics = workspace

    assert app.main([str(source), "--print", "--set", "max_width=wide"]) == 2
    assert "Invalid --set override" in capsys.readouterr().err


def test_main_requires_path(capsys: pytest.CaptureFixture[str]) -> None:
    assert app.main(["--print"]) == 2
    assert "file to open is required" in capsys.readouterr().err


def test_main_reports_missing_files(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert app.main([str(tmp_path / "absent.ts"), "--print"]) == 1
    assert "No such file" in capsys.readouterr().err


class TestWindowLaunch:
    @pytest.fixture(autouse=True)
    def _no_qapp(self, monkeypatch: pytest.MonkeyPatch) -> MagicMock:
        pytest.importorskip("PySide6.QtWidgets")
        create = MagicMock()
        monkeypatch.setattr(app, "create_qapp", create)
        return create

    @pytest.mark.parametrize("payload", ["{not json", '{"diagnostics": 3}', "42"])
    def test_invalid_diagnostics_file_aborts_before_qt(
        self, tmp_path: Path, _no_qapp: MagicMock, capsys: pytest.CaptureFixture[str], payload: str
    ) -> None:
        source = tmp_path / "main.ts"
        source.write_text("let b = c;\n", encoding="utf-8")
        diagnostics = tmp_path / "diagnostics.json"
        diagnostics.write_text(payload, encoding="utf-8")

        assert app.launch_window(source, Settings(), diagnostics=diagnostics) == 1

        _no_qapp.assert_not_called()
        assert "Invalid diagnostics file" in capsys.readouterr().err

    def test_main_reports_invalid_diagnostics_in_window_mode(
        self, tmp_path: Path, _no_qapp: MagicMock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        source = tmp_path / "main.ts"
        source.write_text("let b = c;\n", encoding="utf-8")
        diagnostics = tmp_path / "diagnostics.json"
        diagnostics.write_bytes(b"\xff\xfe[]")

        assert app.main([str(source), "--diagnostics", str(diagnostics)]) == 1

        _no_qapp.assert_not_called()
        assert "Invalid diagnostics file" in capsys.readouterr().err


def test_main_enables_debug_logging_from_settings(workspace, tmp_path: Path, _stub_logging: MagicMock) -> None:
    source, _diagnostics = workspace
    settings_path = tmp_path / "settings.json"
    SettingsStore(settings_path).save(Settings(debug_logging=True))

    app.main([str(source), "--print", "--settings-path", str(settings_path)])

    _stub_logging.assert_called_with(True, force=True, console=False)


def test_dump_settings_reports_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DIAGFLOAT_THEME", "daylight")
    store = SettingsStore(tmp_path / "settings.json")
    settings = store.load(overrides={"max_width": 64})
    buffer = io.StringIO()

    app._dump_settings(settings, store, overrides={"max_width": 64}, stream=buffer)

    payload = json.loads(buffer.getvalue())
    assert payload["settings"]["max_width"] == 64
    assert payload["settings"]["theme"] == "daylight"
    assert payload["meta"]["path"] == str(tmp_path / "settings.json")
    assert payload["meta"]["cli_overrides"] == ["max_width"]
    assert "DIAGFLOAT_THEME" in payload["meta"]["environment_variables"]


def test_main_dump_settings_uses_env_settings_path(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    settings_path = tmp_path / "custom.json"
    SettingsStore(settings_path).save(Settings(border="single"))
    monkeypatch.setenv("DIAGFLOAT_SETTINGS_PATH", str(settings_path))

    assert app.main(["--dump-settings"]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["settings"]["border"] == "single"
    assert payload["meta"]["path"] == str(settings_path)


def test_main_dump_settings_survives_undecodable_file(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    settings_path = tmp_path / "settings.json"
    settings_path.write_bytes(b'{"theme": "\xff\xfe"}')

    assert app.main(["--dump-settings", "--settings-path", str(settings_path)]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["settings"]["theme"] == "default"


class TestCliOverrides:
    def test_coerces_by_field_type(self) -> None:
        overrides = app._coerce_cli_overrides(
            [
                "max_width=100",
                "debug_logging=on",
                "toggle_key=Ctrl+Shift+K",
                "reformat_sources=typescript, tsx",
                'signs={"text": {"ERROR": "x"}}',
                "reformat_hook=null",
            ]
        )

        assert overrides == {
            "max_width": 100,
            "debug_logging": True,
            "toggle_key": "Ctrl+Shift+K",
            "reformat_sources": ["typescript", "tsx"],
            "signs": {"text": {"ERROR": "x"}},
            "reformat_hook": None,
        }

    def test_json_list_override(self) -> None:
        assert app._coerce_cli_overrides(['reformat_sources=["ts"]']) == {"reformat_sources": ["ts"]}

    @pytest.mark.parametrize(
        "entry",
        ["max_width", "=3", "nope=1", "debug_logging=maybe", "signs=[1]", "max_width=none"],
    )
    def test_invalid_entries_raise(self, entry: str) -> None:
        with pytest.raises(ValueError):
            app._coerce_cli_overrides([entry])

    def test_string_fields_keep_none_literally(self) -> None:
        assert app._coerce_cli_overrides(["theme=none"]) == {"theme": "none"}


def test_load_settings_falls_back_on_os_error(tmp_path: Path) -> None:
    store = MagicMock(spec=SettingsStore)
    store.load.side_effect = PermissionError("denied")
    store.path = tmp_path / "settings.json"

    assert app.load_settings(store=store) == Settings()
