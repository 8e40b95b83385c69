"""In-memory diagnostic storage keyed by buffer and line."""

from __future__ import annotations

import json
import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, Hashable

from ..core.diagnostics import DiagnosticRecord

LOGGER = logging.getLogger(__name__)


class DiagnosticStore:
    """Holds the diagnostics published for each buffer.

    Records keep the order in which they were added, which is the order the
    overlay shows them in.
    """

    def __init__(self) -> None:
        self._records: dict[Hashable, dict[int, list[DiagnosticRecord]]] = {}

    def set(self, buffer: Hashable, records: Iterable[DiagnosticRecord]) -> None:
        """Replace every diagnostic of ``buffer``."""

        by_line: dict[int, list[DiagnosticRecord]] = defaultdict(list)
        for record in records:
            by_line[record.line].append(record)
        self._records[buffer] = dict(by_line)
        LOGGER.debug(
            "DiagnosticStore.set: buffer=%s, lines=%d, records=%d",
            buffer,
            len(by_line),
            sum(len(items) for items in by_line.values()),
        )

    def add(self, buffer: Hashable, record: DiagnosticRecord) -> None:
        self._records.setdefault(buffer, {}).setdefault(record.line, []).append(record)

    def get(self, buffer: Hashable, line: int) -> list[DiagnosticRecord]:
        """Return the diagnostics of ``line`` (0-indexed) in ``buffer``."""

        return list(self._records.get(buffer, {}).get(line, ()))

    def lines(self, buffer: Hashable) -> list[int]:
        return sorted(self._records.get(buffer, {}))

    def clear(self, buffer: Hashable | None = None) -> None:
        if buffer is None:
            self._records.clear()
            return
        self._records.pop(buffer, None)

    def load_json(self, buffer: Hashable, source: Path | str | Any) -> int:
        """Load diagnostics for ``buffer`` from a JSON file or decoded payload.

        Returns:
            The number of records stored.
        """

        records = parse_diagnostics(source)
        self.set(buffer, records)
        return len(records)


def parse_diagnostics(source: Path | str | Any) -> list[DiagnosticRecord]:
    """Decode diagnostics from a JSON file path or an already decoded payload.

    Accepts a list of flat records or an LSP ``publishDiagnostics`` params
    object. Malformed entries are skipped with a warning; a payload of the
    wrong shape (or a file that is not JSON) raises ``ValueError``.
    """

    payload = source
    if isinstance(source, (str, Path)):
        payload = json.loads(Path(source).read_text(encoding="utf-8"))

    entries: Any = payload
    if isinstance(payload, Mapping):
        entries = payload.get("diagnostics", [])
    if not isinstance(entries, list):
        raise ValueError("Diagnostics payload must be a list or contain a 'diagnostics' list")

    records: list[DiagnosticRecord] = []
    for position, entry in enumerate(entries):
        if not isinstance(entry, Mapping):
            LOGGER.warning("Skipping diagnostic #%d: expected an object", position)
            continue
        try:
            records.append(DiagnosticRecord.from_mapping(entry))
        except ValueError as exc:
            LOGGER.warning("Skipping diagnostic #%d: %s", position, exc)
    return records


__all__ = ["DiagnosticStore", "parse_diagnostics"]
