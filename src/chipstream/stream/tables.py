"""Markdown table detection for streamed assistant text."""

from __future__ import annotations

import re
from dataclasses import dataclass

from chipstream.stream.state import ParsedTable

# Header row, separator row, then one or more data rows.
TABLE_BLOCK_RE = re.compile(r"(\|[^\n]+\|\n\|[-:\s|]+\|\n(?:\|[^\n]+\|\n?)+)")


def _split_cells(line: str) -> list[str]:
    return [cell.strip() for cell in line.split("|") if cell.strip()]


def parse_markdown_table(table_text: str) -> ParsedTable | None:
    """Parse one markdown table block.

    Returns ``None`` when the block has fewer than three non-empty lines
    (header, separator, at least one row).
    """
    lines = [line for line in table_text.strip().split("\n") if line.strip()]
    if len(lines) < 3:
        return None

    headers = _split_cells(lines[0])
    if not headers:
        return None

    rows = [cells for cells in (_split_cells(line) for line in lines[2:]) if cells]
    return ParsedTable(
        headers=headers,
        rows=rows,
        row_count=len(rows),
        column_count=len(headers),
        raw_text=table_text,
    )


@dataclass
class TableCandidate:
    """A matched block and where it ended in the scanned text."""

    end: int
    table: ParsedTable | None


class TableScanner:
    """Finds tables that appeared since the last scan.

    Only text after the end of the last matched block is searched, so a
    block is parsed at most once: emitted tables are never re-parsed and
    rejected blocks are never retried. A table still streaming in may be
    captured early, with the rows it had at that point. Rows that arrive
    later still belong to that block and never start a new one.
    """

    def __init__(self) -> None:
        self._offset: int = 0
        self._last_start: int | None = None

    def scan(self, text: str, delta: str | None = None) -> list[TableCandidate]:
        """Return the blocks that completed in ``text`` since the last call.

        ``delta`` is the text appended since the previous call. A new block
        has to end in ``|`` or a newline, so a delta with neither is skipped.
        """
        if delta is not None and "|" not in delta and "\n" not in delta:
            return []

        if self._last_start is not None:
            # The last block may have grown since it was matched
            current = TABLE_BLOCK_RE.match(text, self._last_start)
            if current is not None and current.end() > self._offset:
                self._offset = current.end()

        candidates: list[TableCandidate] = []
        for match in TABLE_BLOCK_RE.finditer(text, self._offset):
            raw = match.group(1)
            candidates.append(
                TableCandidate(end=match.end(), table=parse_markdown_table(raw))
            )
            self._last_start = match.start()
            self._offset = match.end()
        return candidates

    @property
    def offset(self) -> int:
        return self._offset

    def reset(self) -> None:
        self._offset = 0
        self._last_start = None
