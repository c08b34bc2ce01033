"""Event extractor: complete log lines in, structured events out.

The consumed log interleaves three kinds of lines::

    Tool Stream Log for session abc (started 2025-10-03T16:27:26.001Z)

    [2025-10-03T16:27:26.729Z] stream_event:
    {
      "type": "content_block_delta",
      "delta": {
        "type": "text_delta",
        "text": "Hello "
      }
    }

JSON payloads are pretty-printed, so one event spans many lines and there is
no delimiter that marks its end. The extractor reassembles them with a brace
heuristic: whenever the accumulated text ends in ``}`` (or ``},``) it tries
to parse, and keeps accumulating if that fails. Timestamp, label and header
lines are flush points that close whatever record came before.

Nothing here raises on bad input. Incomplete JSON is deferred; JSON that is
still unparseable at a flush point is dropped.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable
from typing import Any

from chipstream.config import DEFAULT_RECORD_LABELS
from chipstream.stream.events import LogMarker, StreamEvent, decode_event

logger = logging.getLogger(__name__)

TIMESTAMP_LINE_RE = re.compile(r"^\[([^\]]*)\]\s*(?:([A-Za-z_][\w.-]*)\s*:)?")
HEADER_LINE_RE = re.compile(
    r"^Tool Stream Log for session\s+(\S+)\s+\(started\s+([^)\s]+)\)"
)


def _parse_record(text: str) -> tuple[bool, Any]:
    """Try to parse an accumulated record, tolerating one trailing comma."""
    if text.endswith(","):
        text = text[:-1]
    try:
        return True, json.loads(text)
    except json.JSONDecodeError:
        return False, None


class EventExtractor:
    """Stateful line-to-event converter.

    The JSON accumulator survives across ``extract`` calls, so a record may
    be split over any number of calls. Only the owning reducer should feed
    it, in arrival order.
    """

    def __init__(self, record_labels: Iterable[str] = DEFAULT_RECORD_LABELS) -> None:
        labels = sorted(set(record_labels), key=len, reverse=True)
        self._label_re = (
            re.compile(r"^(" + "|".join(re.escape(label) for label in labels) + r"):")
            if labels
            else None
        )
        self._accumulator: str = ""

    def extract(self, lines: Iterable[str]) -> list[StreamEvent]:
        """Convert complete lines into events, in order."""
        events: list[StreamEvent] = []
        for line in lines:
            trimmed = line.strip()
            if not trimmed:
                continue

            marker = self._match_marker(trimmed)
            if marker is not None:
                self._flush(events)
                events.append(marker)
                continue

            self._accumulator += trimmed
            if trimmed.endswith("}") or trimmed.endswith("},"):
                ok, value = _parse_record(self._accumulator)
                if ok:
                    self._accumulator = ""
                    events.extend(decode_event(value))
        return events

    def _match_marker(self, line: str) -> LogMarker | None:
        if line.startswith("[") and "]" in line:
            m = TIMESTAMP_LINE_RE.match(line)
            if m:
                return LogMarker(timestamp=m.group(1), label=m.group(2) or "")
            return LogMarker()

        if self._label_re is not None:
            m = self._label_re.match(line)
            if m:
                return LogMarker(label=m.group(1))

        m = HEADER_LINE_RE.match(line)
        if m:
            return LogMarker(timestamp=m.group(2), label="header", session_id=m.group(1))
        return None

    def _flush(self, events: list[StreamEvent]) -> None:
        if not self._accumulator:
            return
        ok, value = _parse_record(self._accumulator)
        if ok:
            events.extend(decode_event(value))
        else:
            logger.debug(
                "Dropping unparseable record at flush point: %s",
                self._accumulator[:200],
            )
        self._accumulator = ""

    @property
    def pending(self) -> str:
        """JSON text accumulated but not yet parsed."""
        return self._accumulator

    def clear(self) -> None:
        self._accumulator = ""
