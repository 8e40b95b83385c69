"""Command-line entry point and Qt bootstrap for diagfloat."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, TextIO, get_args, get_origin, get_type_hints

from .services.diagnostic_store import DiagnosticStore, parse_diagnostics
from .services.settings import ENV_PREFIX, Settings, SettingsStore
from .ui.diagnostic_overlay import DiagnosticOverlayController
from .ui.headless_host import HeadlessHost
from .utils import logging as logging_utils

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}
_LOGGER = logging.getLogger(__name__)


def configure_logging(debug: bool = False, *, force: bool = False, console: bool = True) -> Path:
    """Configure file + console logging for the application."""

    level = logging_utils.level_for(debug)
    log_path = logging_utils.setup_logging(level, force=force, console=console)
    _LOGGER.debug("Logging configured (level=%s)", logging.getLevelName(level))
    return log_path


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings, falling back to defaults when the file is unreadable."""

    active_store = store or SettingsStore(path)
    try:
        return active_store.load(overrides=overrides)
    except OSError as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        return Settings()


def render_line(
    source: Path,
    settings: Settings,
    *,
    diagnostics: Path | None = None,
    line: int = 1,
) -> list[str]:
    """Return the overlay lines the toggle would show for ``line`` (1-based) of ``source``."""

    store = DiagnosticStore()
    host = HeadlessHost(store=store, config_provider=settings.diagnostic_config)
    _window, buffer = host.open_editor(source.read_text(encoding="utf-8").split("\n"))
    if diagnostics is not None:
        store.load_json(buffer, diagnostics)
    host.move_cursor(max(0, line - 1))

    controller = DiagnosticOverlayController(host, settings=settings)
    controller.toggle()
    overlay = controller.state.buffer
    lines = host.buffer_lines(overlay) if overlay is not None else []
    controller.dispose()
    return lines


def create_qapp(settings: Settings) -> Any:
    """Create (or reuse) the ``QApplication`` and apply the configured theme."""

    from PySide6.QtWidgets import QApplication

    from .theme import theme_manager

    os.environ.setdefault("QT_ENABLE_HIGHDPI_SCALING", "1")
    app = QApplication.instance() or QApplication(sys.argv[:1])
    app.setApplicationName("diagfloat")
    app.setApplicationDisplayName("diagfloat")
    _install_qt_message_handler()
    theme_manager.apply_to_application(settings.theme, app=app)
    return app


def launch_window(
    source: Path,
    settings: Settings,
    *,
    diagnostics: Path | None = None,
    line: int = 1,
) -> int:
    """Open ``source`` in a Qt editor window with the overlay bound to ``toggle_key``."""

    from PySide6.QtGui import QKeySequence, QShortcut, QTextCursor
    from PySide6.QtWidgets import QPlainTextEdit

    from .ui.qt_host import QtEditorHost

    records = []
    if diagnostics is not None:
        try:
            records = parse_diagnostics(diagnostics)
        except ValueError as exc:
            print(f"Invalid diagnostics file: {exc}", file=sys.stderr)
            return 1

    app = create_qapp(settings)
    editor = QPlainTextEdit()
    editor.setPlainText(source.read_text(encoding="utf-8"))
    editor.setWindowTitle(source.name)
    editor.resize(960, 640)

    host = QtEditorHost(
        theme=settings.theme,
        config_provider=settings.diagnostic_config,
        parent=app,
    )
    _window, buffer = host.add_editor(editor)
    if diagnostics is not None:
        host.store.set(buffer, records)
        _LOGGER.info("Loaded %d diagnostic(s) from %s", len(records), diagnostics)

    controller = DiagnosticOverlayController(host, settings=settings)
    shortcut = QShortcut(QKeySequence(settings.toggle_key), editor)
    shortcut.activated.connect(controller.toggle)
    app.aboutToQuit.connect(controller.dispose)

    block = editor.document().findBlockByNumber(max(0, line - 1))
    if block.isValid():
        editor.setTextCursor(QTextCursor(block))
    editor.show()
    editor.setFocus()
    return int(app.exec())


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point invoked by the ``diagfloat`` console script."""

    args = _parse_cli_args(argv)

    debug = _env_flag(f"{ENV_PREFIX}DEBUG", default=False)
    configure_logging(debug, console=not args.print_only)

    settings_path = args.settings_path or os.environ.get(f"{ENV_PREFIX}SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    settings_store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        return 2

    settings = load_settings(resolved_path, store=settings_store, overrides=cli_overrides or None)

    if args.dump_settings:
        _dump_settings(settings, settings_store, overrides=cli_overrides)
        return 0

    if settings.debug_logging and not debug:
        configure_logging(True, force=True, console=not args.print_only)

    if args.path is None:
        print("A file to open is required unless --dump-settings is given.", file=sys.stderr)
        return 2
    source = Path(args.path).expanduser()
    diagnostics = Path(args.diagnostics).expanduser() if args.diagnostics else None
    for required in (source, diagnostics):
        if required is not None and not required.is_file():
            print(f"No such file: {required}", file=sys.stderr)
            return 1

    if args.print_only:
        try:
            lines = render_line(source, settings, diagnostics=diagnostics, line=args.line)
        except ValueError as exc:
            print(f"Invalid diagnostics file: {exc}", file=sys.stderr)
            return 1
        for text in lines:
            print(text)
        return 0

    return launch_window(source, settings, diagnostics=diagnostics, line=args.line)


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _install_qt_message_handler() -> None:
    """Route Qt's own warnings into the ``logging`` stack."""

    from PySide6.QtCore import QtMsgType, qInstallMessageHandler

    level_map = {
        QtMsgType.QtDebugMsg: logging.DEBUG,
        QtMsgType.QtInfoMsg: logging.INFO,
        QtMsgType.QtWarningMsg: logging.WARNING,
        QtMsgType.QtCriticalMsg: logging.ERROR,
        QtMsgType.QtFatalMsg: logging.CRITICAL,
    }

    def _handler(mode, context, message):  # type: ignore[no-untyped-def]
        del context
        logging.getLogger("PySide6").log(level_map.get(mode, logging.INFO), message)

    qInstallMessageHandler(_handler)


def _parse_cli_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="diagfloat",
        description="Show the diagnostics of a line in a floating overlay.",
    )
    parser.add_argument("path", nargs="?", help="File to open.")
    parser.add_argument(
        "--diagnostics",
        metavar="FILE",
        help="JSON file with diagnostics for PATH (a list or an LSP publishDiagnostics payload).",
    )
    parser.add_argument(
        "--line",
        type=int,
        default=1,
        metavar="N",
        help="1-based line to place the cursor on (default: 1).",
    )
    parser.add_argument(
        "--print",
        dest="print_only",
        action="store_true",
        help="Print the overlay content for --line instead of opening a window.",
    )
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings payload and exit.",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="Override the default ~/.diagfloat/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override a setting for this run (repeatable).",
    )
    return parser.parse_args(argv)


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    fields = Settings.__dataclass_fields__  # type: ignore[attr-defined]
    type_hints = get_type_hints(Settings)
    for entry in items:
        if "=" not in entry:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        key, raw_value = entry.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError("Override is missing a field name.")
        if key not in fields:
            raise ValueError(f"Unknown setting '{key}'.")
        overrides[key] = _coerce_value(type_hints.get(key, fields[key].type), raw_value.strip())
    return overrides


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    nullable = type(None) in get_args(annotation)
    if nullable and raw_value.lower() in {"none", "null"}:
        return None
    target = _resolve_annotation(annotation)

    if target is str or target is Any:
        return raw_value
    if target is bool:
        return _parse_bool(raw_value)
    if target is int:
        return int(raw_value, 10)
    if target is list:
        try:
            value = json.loads(raw_value or "[]")
        except json.JSONDecodeError:
            value = [part.strip() for part in raw_value.split(",") if part.strip()]
        if not isinstance(value, list):
            raise ValueError("List overrides must be JSON arrays or comma-separated values")
        return value
    if target is dict:
        try:
            value = json.loads(raw_value or "{}")
        except json.JSONDecodeError as exc:
            raise ValueError("Dict overrides must be valid JSON objects") from exc
        if not isinstance(value, dict):
            raise ValueError("Dict overrides must be valid JSON objects")
        return value
    return raw_value


def _resolve_annotation(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is None:
        return annotation
    if origin in {list, dict}:
        return origin
    args = [arg for arg in get_args(annotation) if arg is not type(None)]
    if not args:
        return origin
    return _resolve_annotation(args[0])


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    log_path = logging_utils.get_log_path()
    metadata = {
        "path": str(store.path),
        "log_path": str(log_path) if log_path is not None else None,
        "cli_overrides": sorted(overrides),
        "environment_variables": _active_env_overrides(),
    }
    json.dump({"settings": asdict(settings), "meta": metadata}, destination, indent=2)
    destination.write("\n")


def _active_env_overrides() -> list[str]:
    return sorted(name for name in os.environ if name.startswith(ENV_PREFIX))


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
