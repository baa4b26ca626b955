from __future__ import annotations

import re

_WS_RE = re.compile(r"\s")


def display_name(name: str | None, display_name: str | None = None) -> str:
    """
    Name shown on shared screens. Falls back to the family name: the part before
    the first space, or the first two characters for names written without one.
    """
    trimmed = (display_name or "").strip()
    if trimmed:
        return trimmed
    full = (name or "").strip()
    if not full:
        return ""
    if _WS_RE.search(full):
        return _WS_RE.split(full, maxsplit=1)[0]
    return full[:2]


def parse_positive_int(raw: str | None, default: int, maximum: int | None = None) -> int:
    """Positive integer from a query string value, else ``default``. Clamped to ``maximum``."""
    if raw is None:
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        return default
    if value <= 0:
        return default
    if maximum is not None and value > maximum:
        return maximum
    return value
