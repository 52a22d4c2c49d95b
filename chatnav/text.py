from __future__ import annotations

import re

ELLIPSIS = "…"

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(text: str | None) -> str:
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", text).strip()


def truncate(text: str | None, max_length: int) -> str:
    """Normalize `text` and cap it at `max_length` characters, ellipsis included."""

    normalized = normalize_text(text)
    if len(normalized) <= max_length:
        return normalized
    if max_length <= 0:
        return ""
    return normalized[: max_length - 1] + ELLIPSIS
