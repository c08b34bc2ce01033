"""Tool stream log: writes the labeled, timestamped log the reducer reads.

Each entry is a timestamp bracket and label on one line followed by the
payload as indented JSON::

    [2025-10-03T16:27:26.729Z] stream_event:
    {
      "type": "message_stop"
    }
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

import aiofiles

from chipstream.config import LogConfig

logger = logging.getLogger(__name__)

MAX_STRING_LENGTH = 20_000
TRUNCATION_MARK = "...<truncated>"


def iso_timestamp(when: datetime | None = None) -> str:
    """ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""
    when = when or datetime.now(timezone.utc)
    return when.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def _clip_strings(value: Any, limit: int) -> Any:
    if isinstance(value, str):
        return value[:limit] + TRUNCATION_MARK if len(value) > limit else value
    if isinstance(value, dict):
        return {key: _clip_strings(item, limit) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_clip_strings(item, limit) for item in value]
    return value


def format_log_entry(
    label: str,
    payload: Any,
    timestamp: str | None = None,
    max_string_length: int = MAX_STRING_LENGTH,
) -> str:
    """Render one log entry, including its leading and trailing newline."""
    body = json.dumps(
        _clip_strings(payload, max_string_length),
        indent=2,
        ensure_ascii=False,
        default=str,
    )
    return f"\n[{timestamp or iso_timestamp()}] {label}:\n{body}\n"


def is_session_init(message: dict[str, Any]) -> bool:
    return message.get("type") == "system" and message.get("subtype") == "init"


def sdk_log_entries(message: dict[str, Any]) -> list[tuple[str, Any]]:
    """Map one agent SDK stream-json message to ``(label, payload)`` entries.

    A ``stream_event`` is logged as-is; a tool use starting inside it, or a
    tool input fragment, also gets its own entry. The final ``result``
    message is left to ``ToolStreamLog.record``, which knows what the
    session has seen so far.
    """
    kind = message.get("type")

    if is_session_init(message):
        return [
            (
                "session_init",
                {
                    "session_id": message.get("session_id"),
                    "model": message.get("model"),
                    "permission_mode": message.get("permissionMode"),
                },
            )
        ]

    if kind == "tool_use":
        return [
            (
                "tool_use",
                {
                    "tool_name": message.get("name"),
                    "tool_input": message.get("input"),
                    "tool_use_id": message.get("id"),
                },
            )
        ]

    if kind == "tool_result":
        return [
            (
                "tool_result",
                {
                    "tool_use_id": message.get("tool_use_id"),
                    "content": message.get("content"),
                    "is_error": message.get("is_error"),
                },
            )
        ]

    if kind != "stream_event" or not isinstance(message.get("event"), dict):
        return []

    event = message["event"]
    entries: list[tuple[str, Any]] = [("stream_event", event)]

    block = event.get("content_block")
    if (
        event.get("type") == "content_block_start"
        and isinstance(block, dict)
        and block.get("type") == "tool_use"
    ):
        entries.append(
            (
                "tool_use_from_stream",
                {
                    "tool_name": block.get("name"),
                    "tool_use_id": block.get("id"),
                    "tool_input": block.get("input"),
                },
            )
        )

    delta = event.get("delta")
    if (
        isinstance(delta, dict)
        and delta.get("type") == "input_json_delta"
        and delta.get("partial_json")
    ):
        entries.append(("input_json_delta", {"partial": delta["partial_json"]}))

    return entries


class ToolStreamLog:
    """Append-only tool stream log for one agent session.

    The full text is kept in memory (``text``) and optionally mirrored to
    ``<log_dir>/tool_stream_<session_id>.log``. ``on_update`` receives the
    whole text after each append, which is what the realtime document
    store is updated with.
    """

    def __init__(
        self,
        session_id: str,
        log_dir: str | None = None,
        max_string_length: int = MAX_STRING_LENGTH,
        on_update: Callable[[str], None] | None = None,
    ) -> None:
        self.session_id = session_id
        self.max_string_length = max_string_length
        self.on_update = on_update
        self.path: Path | None = (
            Path(log_dir) / f"tool_stream_{session_id}.log" if log_dir else None
        )
        self.text: str = ""
        self._opened: bool = False
        self._labels: set[str] = set()
        self._thinking_seen: bool = False

    @classmethod
    def from_config(
        cls,
        session_id: str,
        config: LogConfig,
        on_update: Callable[[str], None] | None = None,
    ) -> ToolStreamLog | None:
        """Build the log for ``session_id``, or ``None`` when logging is disabled."""
        if not config.enabled:
            return None
        return cls(
            session_id,
            log_dir=config.log_dir,
            max_string_length=config.max_string_length,
            on_update=on_update,
        )

    @property
    def opened(self) -> bool:
        """Whether entries are being mirrored to ``path``."""
        return self._opened

    def header(self, started: str | None = None) -> str:
        return (
            f"Tool Stream Log for session {self.session_id} "
            f"(started {started or iso_timestamp()})\n"
        )

    async def open(self) -> None:
        """Create the log file and write the header line."""
        header = self.header()
        self.text = header
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(self.path, "w", encoding="utf-8") as f:
                await f.write(header)
            self._opened = True
        except OSError as e:
            logger.warning("Could not initialize tool stream log %s: %s", self.path, e)

    async def append(self, label: str, payload: Any) -> str:
        """Append one entry. Returns the entry text."""
        entry = format_log_entry(
            label, payload, max_string_length=self.max_string_length
        )
        self.text += entry

        if self._opened and self.path is not None:
            try:
                async with aiofiles.open(self.path, "a", encoding="utf-8") as f:
                    await f.write(entry)
            except OSError as e:
                logger.warning("Failed to append tool stream log: %s", e)

        if self.on_update:
            self.on_update(self.text)
        return entry

    async def record(self, message: dict[str, Any]) -> list[str]:
        """Append the entries for one agent SDK message. Returns their labels."""
        if message.get("type") == "result":
            if message.get("subtype") != "success":
                return []
            entries: list[tuple[str, Any]] = [
                (
                    "session_complete",
                    {
                        "final_response_length": len(message.get("result") or ""),
                        "diagnostics": {
                            "partials_received": "stream_event" in self._labels,
                            "thinking_streamed": self._thinking_seen,
                            "tool_calls_seen": bool(
                                self._labels & {"tool_use", "tool_use_from_stream"}
                            ),
                        },
                    },
                )
            ]
        else:
            entries = sdk_log_entries(message)

        for label, payload in entries:
            delta = payload.get("delta") if label == "stream_event" else None
            if isinstance(delta, dict) and delta.get("type") == "thinking_delta":
                self._thinking_seen = True
            self._labels.add(label)
            await self.append(label, payload)
        return [label for label, _ in entries]
