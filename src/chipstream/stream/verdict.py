"""Verdict extraction from the agent's finished text.

The agent is prompted to end with a block like::

    **Verdict:** Counterfeit
    Reason: Marking font and date code do not match the manufacturer's
    documented format for this lot.
    Citations:
    - https://www.vishay.com/docs/83725/4n35.pdf
    - https://example.org/counterfeit-report

The block is best-effort: if no ``Verdict:`` line is present the result is
``None`` and callers fall back to the raw text.
"""

from __future__ import annotations

import re

from chipstream.stream.state import VerdictData, VerdictLabel

VERDICT_LABELS: tuple[VerdictLabel, ...] = (
    "Authentic",
    "Counterfeit",
    "Review Required",
    "Indeterminate",
)

_LABEL_LOOKUP = {label.lower().replace(" ", ""): label for label in VERDICT_LABELS}
_LABEL_RE = re.compile(
    r"^(authentic|counterfeit|review\s*required|indeterminate)\b", re.IGNORECASE
)

# Optional heading / bullet / emphasis prefix, the label, then the value.
_VERDICT_LINE_RE = re.compile(
    r"^[ \t>#*_\-]*verdict[*_]*[ \t]*:[*_]*[ \t]*(?P<value>.*)$",
    re.IGNORECASE | re.MULTILINE,
)
_FIELD_LINE_RE = re.compile(
    r"^[ \t>#*_\-]*(?P<name>reason|citations|sources)[*_]*[ \t]*:[*_]*[ \t]*(?P<value>.*)$",
    re.IGNORECASE,
)
_BULLET_RE = re.compile(r"^\s*(?:[-*+•]|\d+[.)])\s+")
URL_RE = re.compile(r"https?://[^\s)\"'\]<>]+")


def normalize_label(value: str) -> VerdictLabel | None:
    """Map text such as ``**review required**`` onto a verdict label.

    The label has to lead the value; ``Counterfeit (high confidence)``
    normalizes, ``Likely Authentic`` does not.
    """
    m = _LABEL_RE.match(re.sub(r"[*_`]", "", value).strip())
    if not m:
        return None
    return _LABEL_LOOKUP[re.sub(r"\s+", "", m.group(1).lower())]


def extract_urls(text: str) -> list[str]:
    """All URLs in ``text``, de-duplicated in order of appearance."""
    seen: dict[str, None] = {}
    for url in URL_RE.findall(text):
        seen.setdefault(url.rstrip(".,;:"), None)
    return list(seen)


def _parse_block(block: str) -> VerdictData:
    lines = block.split("\n")
    first = _VERDICT_LINE_RE.match(lines[0])
    verdict = VerdictData(
        is_authentic=normalize_label(first.group("value")) if first else None
    )

    reason_lines: list[str] = []
    explicit_reason: list[str] | None = None
    citation_lines: list[str] = []
    section = "reason"

    for line in lines[1:]:
        field_match = _FIELD_LINE_RE.match(line)
        if field_match:
            name = field_match.group("name").lower()
            value = field_match.group("value").strip()
            if name == "reason":
                section = "explicit_reason"
                explicit_reason = [value] if value else []
            else:
                section = "citations"
                if value:
                    citation_lines.append(value)
            continue

        if section == "citations":
            if _BULLET_RE.match(line) or URL_RE.search(line):
                citation_lines.append(line)
            elif line.strip():
                # First non-bullet line ends the citation list.
                break
        elif section == "explicit_reason" and explicit_reason is not None:
            explicit_reason.append(line.strip())
        else:
            reason_lines.append(line.strip())

    chosen = explicit_reason if explicit_reason is not None else reason_lines
    verdict.reason = " ".join(part for part in chosen if part).strip()
    verdict.citations = extract_urls("\n".join(citation_lines))
    return verdict


def extract_verdict(text: str) -> VerdictData | None:
    """Extract the last verdict block in ``text``, or ``None``."""
    if not text:
        return None
    matches = list(_VERDICT_LINE_RE.finditer(text))
    if not matches:
        return None
    return _parse_block(text[matches[-1].start() :])


def derive_verdict(assistant_text: str, thinking: str = "") -> VerdictData | None:
    """Look for a verdict in the visible text first, then in the thinking."""
    return extract_verdict(assistant_text) or extract_verdict(thinking)
