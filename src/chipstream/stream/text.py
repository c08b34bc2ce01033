"""Text helpers shared by the reducer and the renderers."""

from __future__ import annotations

import re

_UNICODE_ESCAPE_RE = re.compile(r"\\u([0-9a-fA-F]{4})")

# Applied in this order. The backslash pass runs last so that control
# characters produced by the earlier passes are not unescaped twice.
_SIMPLE_ESCAPES = (
    ("\\n", "\n"),
    ('\\"', '"'),
    ("\\t", "\t"),
    ("\\r", "\r"),
    ("\\/", "/"),
)


def unescape_text(text: str | None) -> str:
    """Decode escape sequences left in a delta string.

    Upstream deltas sometimes carry JSON escapes that survived one round of
    decoding (``\\n``, ``\\"``, ``\\uXXXX`` ...). ``None`` and empty input
    yield ``""``.
    """
    if not text:
        return ""

    for escaped, plain in _SIMPLE_ESCAPES:
        text = text.replace(escaped, plain)
    text = _UNICODE_ESCAPE_RE.sub(lambda m: chr(int(m.group(1), 16)), text)
    return text.replace("\\\\", "\\")


def truncate(text: str, limit: int, suffix: str = "...") -> str:
    """Cut ``text`` to ``limit`` characters, appending ``suffix`` if cut."""
    if len(text) <= limit:
        return text
    return text[:limit] + suffix


def fold_newlines(text: str) -> str:
    """Replace runs of CR/LF with a single space."""
    return re.sub(r"[\r\n]+", " ", text)


def word_count(text: str) -> int:
    """Number of whitespace-separated words."""
    return len(text.split())
