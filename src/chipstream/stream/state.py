"""View-model types produced by the stream reducer."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, Literal

ToolInput = dict[str, Any] | str | None

ChronologicalType = Literal[
    "text", "thinking", "tool_command", "tool_use", "tool_complete", "table"
]

VerdictLabel = Literal["Authentic", "Counterfeit", "Review Required", "Indeterminate"]


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class StreamMetadata:
    """Session identity, filled in from early events."""

    session_id: str = ""
    message_id: str = ""
    model: str = ""
    start_time: str = ""


@dataclass
class ToolUse:
    """One tool invocation seen in the stream.

    ``input`` stays ``None`` until the tool's content block closes. It is then
    set exactly once: to the parsed parameter object, or to the raw
    accumulated string when that does not parse.
    """

    id: str = ""
    name: str = ""
    input: ToolInput = None

    @property
    def is_complete(self) -> bool:
        return self.input is not None


@dataclass
class ParsedTable:
    """A markdown table lifted out of the assistant text."""

    headers: list[str] = field(default_factory=list)
    rows: list[list[str]] = field(default_factory=list)
    row_count: int = 0
    column_count: int = 0
    raw_text: str = ""


@dataclass
class TokenUsage:
    """Token usage, overwritten by each usage-bearing event."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    cache_read_tokens: int = 0


@dataclass
class VerdictData:
    """Authenticity conclusion extracted from the finished text."""

    is_authentic: VerdictLabel | None = None
    reason: str = ""
    citations: list[str] = field(default_factory=list)


@dataclass
class ChronologicalEvent:
    """One semantic event in application order."""

    type: ChronologicalType
    content: Any = None
    timestamp: str = field(default_factory=utc_now_iso)


@dataclass
class StreamState:
    """Mutable view model for one logical stream."""

    metadata: StreamMetadata = field(default_factory=StreamMetadata)
    thinking: str = ""
    assistant_text: str = ""
    tool_uses: list[ToolUse] = field(default_factory=list)
    tool_commands: list[str] = field(default_factory=list)
    full_tool_command: str = ""
    tables: list[ParsedTable] = field(default_factory=list)
    tool_activity: list[str] = field(default_factory=list)
    web_search_activity: list[str] = field(default_factory=list)
    chronological_events: list[ChronologicalEvent] = field(default_factory=list)
    usage: TokenUsage = field(default_factory=TokenUsage)
    is_complete: bool = False

    @property
    def current_tool(self) -> ToolUse | None:
        return self.tool_uses[-1] if self.tool_uses else None


@dataclass
class StreamStats:
    """Counters derived from a state on demand."""

    text_length: int = 0
    thinking_length: int = 0
    word_count: int = 0
    tool_count: int = 0
    command_parts: int = 0
    total_events: int = 0


@dataclass
class StreamSnapshot(StreamState):
    """Detached copy of a StreamState plus derived fields."""

    stats: StreamStats = field(default_factory=StreamStats)
    verdict_data: VerdictData | None = None

    @classmethod
    def capture(
        cls,
        state: StreamState,
        stats: StreamStats,
        verdict_data: VerdictData | None = None,
        **extra: Any,
    ) -> StreamSnapshot:
        values = {
            f.name: copy.deepcopy(getattr(state, f.name)) for f in fields(StreamState)
        }
        return cls(**values, stats=stats, verdict_data=verdict_data, **extra)


@dataclass
class LogReplay(StreamSnapshot):
    """Result of replaying a complete log."""

    formatted_output: str = ""
