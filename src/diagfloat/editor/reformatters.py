"""Message reformatting hooks applied to selected diagnostic sources."""

from __future__ import annotations

import importlib
import logging
import re
from typing import Any, Callable

LOGGER = logging.getLogger(__name__)

_QUOTED_FRAGMENT = re.compile(r"(?<!\w)'([^'\n]+)'(?!\w)")
_BLOCK_THRESHOLD = 40


def resolve_hook(target: Any) -> Callable[[str], Any] | None:
    """Resolve ``"package.module:attribute"`` (or a callable) into a reformat hook.

    Returns ``None`` and logs a warning when the target cannot be imported or
    is not callable.
    """

    if target is None or target == "":
        return None
    if callable(target):
        return target
    if not isinstance(target, str) or ":" not in target:
        LOGGER.warning("Reformat hook %r must use the 'module:attribute' form", target)
        return None

    module_name, _, attribute = target.partition(":")
    try:
        resolved: Any = importlib.import_module(module_name.strip())
        for part in attribute.strip().split("."):
            resolved = getattr(resolved, part)
    except (ImportError, AttributeError, ValueError) as exc:
        LOGGER.warning("Unable to resolve reformat hook %r: %s", target, exc)
        return None
    if not callable(resolved):
        LOGGER.warning("Reformat hook %r is not callable", target)
        return None
    return resolved


def prettify_typescript_message(message: str) -> str:
    """Rewrite quoted TypeScript fragments as Markdown code.

    Short fragments become inline code; object types and long signatures are
    lifted into fenced ``ts`` blocks on their own lines, keeping the
    indentation of the line they came from.
    """

    result: list[str] = []
    for line in message.split("\n"):
        result.extend(_prettify_line(line))
    return "\n".join(result)


def _prettify_line(line: str) -> list[str]:
    if "'" not in line:
        return [line]

    indent = line[: len(line) - len(line.lstrip())]
    pieces: list[str] = []
    current = ""
    after_block = False
    last = 0
    for match in _QUOTED_FRAGMENT.finditer(line):
        fragment = match.group(1)
        segment = line[last : match.start()]
        current += segment.lstrip() if after_block else segment
        after_block = False
        if _needs_block(fragment):
            if current.strip():
                pieces.append(current.rstrip())
            pieces.extend([f"{indent}```ts", f"{indent}{fragment.strip()}", f"{indent}```"])
            current = indent
            after_block = True
        else:
            current += _inline_code(fragment)
        last = match.end()

    if last == 0:
        return [line]
    tail = line[last:]
    current += tail.lstrip() if after_block else tail
    if current.strip() or not pieces:
        pieces.append(current.rstrip())
    return pieces


def _needs_block(fragment: str) -> bool:
    return "{" in fragment or len(fragment) > _BLOCK_THRESHOLD


def _inline_code(fragment: str) -> str:
    if "`" in fragment:
        return f"`` {fragment} ``"
    return f"`{fragment}`"


__all__ = ["prettify_typescript_message", "resolve_hook"]
