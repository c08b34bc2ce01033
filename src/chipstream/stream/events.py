"""Decoded stream events.

The upstream SDK emits schema-less JSON objects. ``decode_event`` maps each
object onto a small tagged union keyed by ``type`` / ``delta.type``. Anything
it does not recognize becomes ``Unrecognized``, which is always legal and
ignored by the reducer, so new event kinds pass through harmlessly.

``LogMarker`` is not an SDK event: the extractor emits it for the timestamp,
label and header lines of the log format.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal


@dataclass
class LogMarker:
    """A structural line of the log (timestamp bracket, label or header)."""

    type: Literal["log_marker"] = "log_marker"
    timestamp: str = ""
    label: str = ""
    session_id: str = ""


@dataclass
class SessionInit:
    """Any object carrying a ``session_id``."""

    type: Literal["session_init"] = "session_init"
    session_id: str = ""
    model: str = ""


@dataclass
class MessageStart:
    type: Literal["message_start"] = "message_start"
    message_id: str = ""
    model: str = ""
    usage: dict[str, Any] | None = None


@dataclass
class TextDelta:
    type: Literal["text_delta"] = "text_delta"
    text: str = ""


@dataclass
class ThinkingDelta:
    type: Literal["thinking_delta"] = "thinking_delta"
    thinking: str = ""


@dataclass
class InputJsonDelta:
    type: Literal["input_json_delta"] = "input_json_delta"
    partial_json: str = ""


@dataclass
class ToolUseStart:
    type: Literal["tool_use_start"] = "tool_use_start"
    id: str = ""
    name: str = ""


@dataclass
class ContentBlockStop:
    type: Literal["content_block_stop"] = "content_block_stop"
    index: int | None = None


@dataclass
class MessageDelta:
    type: Literal["message_delta"] = "message_delta"
    usage: dict[str, Any] | None = None
    stop_reason: str | None = None


@dataclass
class MessageStop:
    type: Literal["message_stop"] = "message_stop"


@dataclass
class Unrecognized:
    type: Literal["unrecognized"] = "unrecognized"
    raw: dict[str, Any] = field(default_factory=dict)


StreamEvent = (
    LogMarker
    | SessionInit
    | MessageStart
    | TextDelta
    | ThinkingDelta
    | InputJsonDelta
    | ToolUseStart
    | ContentBlockStop
    | MessageDelta
    | MessageStop
    | Unrecognized
)


def _str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _dict(value: Any) -> dict[str, Any] | None:
    return value if isinstance(value, dict) else None


def decode_event(raw: Any) -> list[StreamEvent]:
    """Decode one parsed JSON value into zero or more typed events.

    An object can yield two events: a ``SessionInit`` for its
    ``session_id`` and the event its ``type`` describes.
    """
    if not isinstance(raw, dict):
        return []

    events: list[StreamEvent] = []
    if raw.get("session_id"):
        events.append(
            SessionInit(session_id=str(raw["session_id"]), model=_str(raw.get("model")))
        )

    event_type = raw.get("type")

    if event_type == "message_start":
        message = _dict(raw.get("message"))
        if message is not None:
            events.append(
                MessageStart(
                    message_id=_str(message.get("id")),
                    model=_str(message.get("model")),
                    usage=_dict(message.get("usage")),
                )
            )
            return events

    elif event_type == "content_block_delta":
        delta = _dict(raw.get("delta")) or {}
        delta_type = delta.get("type")
        if delta_type == "text_delta":
            events.append(TextDelta(text=_str(delta.get("text"))))
            return events
        if delta_type == "thinking_delta":
            events.append(ThinkingDelta(thinking=_str(delta.get("thinking"))))
            return events
        if delta_type == "input_json_delta":
            events.append(InputJsonDelta(partial_json=_str(delta.get("partial_json"))))
            return events

    elif event_type == "content_block_start":
        block = _dict(raw.get("content_block")) or {}
        if block.get("type") == "tool_use":
            events.append(
                ToolUseStart(id=_str(block.get("id")), name=_str(block.get("name")))
            )
            return events

    elif event_type == "content_block_stop":
        index = raw.get("index")
        events.append(ContentBlockStop(index=index if isinstance(index, int) else None))
        return events

    elif event_type == "message_delta":
        usage = _dict(raw.get("usage"))
        delta = _dict(raw.get("delta")) or {}
        if usage is not None:
            events.append(
                MessageDelta(usage=usage, stop_reason=delta.get("stop_reason"))
            )
            return events

    elif event_type == "message_stop":
        events.append(MessageStop())
        return events

    if not events:
        events.append(Unrecognized(raw=raw))
    return events
