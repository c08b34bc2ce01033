"""Chunk buffer: turns arbitrary text fragments into complete lines."""

from __future__ import annotations


class ChunkBuffer:
    """Accumulates raw chunks and hands out only complete lines.

    Chunk boundaries carry no meaning: a chunk may end in the middle of a
    line, a JSON token or a multi-byte character sequence already decoded
    by the caller. Everything after the last newline is held back until a
    later ``append`` completes it, so the buffer never holds more than the
    longest in-flight partial line.
    """

    def __init__(self) -> None:
        self._pending: str = ""
        self._total_chars: int = 0  # Total characters ever appended

    def append(self, chunk: str) -> None:
        """Append a chunk to the pending text."""
        if not chunk:
            return
        self._pending += chunk
        self._total_chars += len(chunk)

    def drain_complete_lines(self) -> list[str]:
        """Return every complete line and keep the trailing partial one.

        Lines are returned without their newline. A ``\\r`` before the
        newline is left in place; callers strip whitespace anyway.
        """
        lines = self._pending.split("\n")
        self._pending = lines.pop()
        return lines

    def drain_all(self) -> list[str]:
        """Return complete lines plus the partial tail, emptying the buffer.

        Used at end of input, when the tail is known to be final.
        """
        lines = self.drain_complete_lines()
        if self._pending:
            lines.append(self._pending)
            self._pending = ""
        return lines

    @property
    def pending(self) -> str:
        """Text held back because it has no terminating newline yet."""
        return self._pending

    @property
    def total_chars(self) -> int:
        """Total number of characters ever appended."""
        return self._total_chars

    def clear(self) -> None:
        """Drop pending text and counters."""
        self._pending = ""
        self._total_chars = 0
