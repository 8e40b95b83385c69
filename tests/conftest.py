"""Shared pytest fixtures."""

from __future__ import annotations

import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest

from diagfloat.core.diagnostics import DiagnosticRecord, Severity
from diagfloat.services.settings import Settings
from diagfloat.ui.diagnostic_overlay import DiagnosticOverlayController
from diagfloat.ui.headless_host import HeadlessHost


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    for name in list(os.environ):
        if name.startswith("DIAGFLOAT_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DIAGFLOAT_LOG_DIR", str(tmp_path / "logs"))


@pytest.fixture
def host() -> HeadlessHost:
    return HeadlessHost()


@pytest.fixture
def editor(host: HeadlessHost) -> tuple[int, int]:
    """A focused editor window with diagnostics on lines 0 and 2."""

    window, buffer = host.open_editor(["const a: number = 'x';", "ok", "let b = c;", "end"])
    host.store.set(
        buffer,
        [
            DiagnosticRecord(
                message="Type 'string' is not assignable to type 'number'.",
                source="typescript",
                code=2322,
                severity=Severity.ERROR,
                line=0,
            ),
            DiagnosticRecord(message="Unused variable", source="eslint", severity=Severity.WARN, line=0),
            DiagnosticRecord(message="Cannot find name 'c'.", source="ts", code=2304, severity=Severity.ERROR, line=2),
        ],
    )
    return window, buffer


@pytest.fixture
def controller(host: HeadlessHost) -> DiagnosticOverlayController:
    overlay = DiagnosticOverlayController(host, settings=Settings())
    yield overlay
    overlay.dispose()
