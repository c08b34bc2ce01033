"""Stream reducer: applies extracted events to a StreamState.

Data flow for every ``process_chunk`` call::

    chunk -> ChunkBuffer -> complete lines -> EventExtractor -> events
          -> _apply (mutates StreamState, notifies listeners)

One reducer owns one stream. It is synchronous and run-to-completion with
no shared state, so independent streams can live on separate threads or
tasks as long as each one receives its own chunks in arrival order.
"""

from __future__ import annotations

import copy
import json
import logging
import re
from typing import Any

from chipstream.config import ParserConfig
from chipstream.stream.buffer import ChunkBuffer
from chipstream.stream.events import (
    ContentBlockStop,
    InputJsonDelta,
    LogMarker,
    MessageDelta,
    MessageStart,
    MessageStop,
    SessionInit,
    StreamEvent,
    TextDelta,
    ThinkingDelta,
    ToolUseStart,
)
from chipstream.stream.extractor import EventExtractor
from chipstream.stream.listener import StreamListener
from chipstream.stream.render import render_formatted_output
from chipstream.stream.state import (
    ChronologicalEvent,
    ChronologicalType,
    StreamSnapshot,
    StreamState,
    StreamStats,
    TokenUsage,
    ToolUse,
    VerdictData,
)
from chipstream.stream.tables import TableScanner
from chipstream.stream.text import fold_newlines, truncate, unescape_text, word_count
from chipstream.stream.verdict import derive_verdict

logger = logging.getLogger(__name__)

# Best-effort sniffing of parameters from tool input that is not valid JSON
# yet. Used for narration only; the parse at content_block_stop is the
# source of truth.
_NARRATED_PARAMS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("query", re.compile(r'"query":\s*"([^"]+)"')),
    ("url", re.compile(r'"url":\s*"([^"]+)"')),
    ("prompt", re.compile(r'"prompt":\s*"([^"]+)"')),
)
_SEARCH_TERM_RE = re.compile(r'"(search_term|query)":\s*"([^"]+)"')

_TOOL_START_ICONS = {"WebSearch": "🔍", "WebFetch": "📄"}


class StreamReducer:
    """Incremental parser for one agent stream log.

    Usage:
        reducer = StreamReducer(StreamCallbacks(on_text_update=show))
        for chunk in transport:
            reducer.process_chunk(chunk)
        state = reducer.get_state()
    """

    def __init__(
        self,
        listener: StreamListener | None = None,
        config: ParserConfig | None = None,
    ) -> None:
        self.config = config or ParserConfig()
        self._listeners: list[StreamListener] = [listener] if listener else []
        self._search_tools = frozenset(self.config.search_tools)

        self.state = StreamState()
        self._buffer = ChunkBuffer()
        self._extractor = EventExtractor(self.config.record_labels)
        self._tables = TableScanner()
        self._reset_tool_tracking()

    def _reset_tool_tracking(self) -> None:
        self._tool_input: str = ""
        self._tool_name: str = ""
        self._tool_active: bool = False
        self._search_active: bool = False
        self._narrated: set[str] = set()
        self._search_narrated: bool = False

    def add_listener(self, listener: StreamListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: StreamListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # --- Input ---

    def process_chunk(self, chunk: str) -> None:
        """Feed newly arrived text. Chunk boundaries may fall anywhere."""
        try:
            self._buffer.append(chunk)
            events = self._extractor.extract(self._buffer.drain_complete_lines())
        except Exception as e:
            self._report_error(e)
            return
        self._apply_all(events)

    def finish(self) -> None:
        """Treat the pending partial line as complete (end of input)."""
        try:
            events = self._extractor.extract(self._buffer.drain_all())
        except Exception as e:
            self._report_error(e)
            return
        self._apply_all(events)

    def _apply_all(self, events: list[StreamEvent]) -> None:
        for event in events:
            try:
                self._apply(event)
            except Exception as e:
                self._report_error(e)

    def _report_error(self, error: Exception) -> None:
        logger.error("Stream processing error: %s", error, exc_info=True)
        for listener in list(self._listeners):
            try:
                listener.on_error(error)
            except Exception as e:
                logger.error("Error listener %r failed: %s", listener, e)

    def _notify(self, method: str, *args: Any) -> None:
        for listener in list(self._listeners):
            getattr(listener, method)(*args)

    # --- State machine ---

    def _apply(self, event: StreamEvent) -> None:
        if isinstance(event, LogMarker):
            self._on_marker(event)
        elif isinstance(event, SessionInit):
            self._on_session(event)
        elif isinstance(event, MessageStart):
            self._on_message_start(event)
        elif isinstance(event, TextDelta):
            self._on_text(event)
        elif isinstance(event, ThinkingDelta):
            self._on_thinking(event)
        elif isinstance(event, InputJsonDelta):
            self._on_input_json(event)
        elif isinstance(event, ToolUseStart):
            self._on_tool_start(event)
        elif isinstance(event, ContentBlockStop):
            self._on_block_stop()
        elif isinstance(event, MessageDelta):
            if event.usage is not None:
                self._update_usage(event.usage)
        elif isinstance(event, MessageStop):
            self._on_message_stop()
        # Unrecognized events are ignored.

    def _record(self, event_type: ChronologicalType, content: Any) -> None:
        self.state.chronological_events.append(
            ChronologicalEvent(type=event_type, content=content)
        )

    def _on_marker(self, marker: LogMarker) -> None:
        metadata = self.state.metadata
        if marker.timestamp and not metadata.start_time:
            metadata.start_time = marker.timestamp
        if marker.session_id and not metadata.session_id:
            metadata.session_id = marker.session_id

    def _on_session(self, event: SessionInit) -> None:
        self.state.metadata.session_id = event.session_id
        if event.model:
            self.state.metadata.model = event.model

    def _on_message_start(self, event: MessageStart) -> None:
        metadata = self.state.metadata
        metadata.message_id = event.message_id
        if event.model and not metadata.model:
            metadata.model = event.model
        if event.usage is not None:
            self._update_usage(event.usage)

    def _on_text(self, event: TextDelta) -> None:
        text = unescape_text(event.text)
        self.state.assistant_text += text
        self._record("text", text)
        self._detect_tables(text)
        self._notify("on_text_update", text, self.state.assistant_text)

    def _on_thinking(self, event: ThinkingDelta) -> None:
        thinking = unescape_text(event.thinking)
        self.state.thinking += thinking
        self._record("thinking", thinking)
        self._notify("on_thinking_update", thinking, self.state.thinking)

    def _on_input_json(self, event: InputJsonDelta) -> None:
        command = unescape_text(event.partial_json)
        self.state.tool_commands.append(command)
        self.state.full_tool_command += command

        if self._tool_active:
            self._tool_input += command
            self._narrate_params()
            if self._search_active:
                self._narrate_search(command)

        self._record("tool_command", command)
        self._notify("on_tool_command", command, self.state.full_tool_command)

    def _narrate_params(self) -> None:
        activity = self.state.tool_activity
        for key, pattern in _NARRATED_PARAMS:
            if key in self._narrated:
                continue
            m = pattern.search(self._tool_input)
            if not m:
                continue
            self._narrated.add(key)
            value = m.group(1)
            if key == "query":
                activity.append(f'  → Query: "{value}"')
            elif key == "url":
                activity.append(f"  → URL: {value}")
            else:
                value = truncate(value, self.config.narration_prompt_chars)
                activity.append(f'  → Prompt: "{value}"')

    def _narrate_search(self, command: str) -> None:
        activity = self.state.web_search_activity
        m = _SEARCH_TERM_RE.search(self._tool_input)
        if m and '"' in command:
            if not self._search_narrated:
                self._search_narrated = True
                activity.append(f'  → Searching for: "{m.group(2)}"')
            return
        chunk = fold_newlines(command)[:50]
        if chunk.strip():
            activity.append(f"  ⚡ Processing: {chunk}...")

    def _on_tool_start(self, event: ToolUseStart) -> None:
        self._reset_tool_tracking()
        self._tool_name = event.name
        self._tool_active = True
        self._search_active = event.name in self._search_tools

        tool = ToolUse(id=event.id, name=event.name, input=None)
        self.state.tool_uses.append(tool)
        self._record("tool_use", copy.deepcopy(tool))

        icon = _TOOL_START_ICONS.get(event.name, "🔧")
        self.state.tool_activity.append(f"{icon} Starting {event.name}...")
        if self._search_active:
            self.state.web_search_activity.append("🔍 Starting web search...")

        self._notify("on_tool_use", tool)

    def _on_block_stop(self) -> None:
        if not (self._tool_active and self._tool_input and self.state.tool_uses):
            return

        tool = self.state.tool_uses[-1]
        try:
            tool.input = json.loads(self._tool_input)
        except json.JSONDecodeError:
            logger.debug(
                "Tool input for %s is not valid JSON, keeping raw: %s",
                tool.name,
                self._tool_input[:200],
            )
            tool.input = self._tool_input

        self.state.tool_activity.append(f"✅ {self._tool_name} completed")
        if self._search_active:
            self.state.web_search_activity.append("✅ Web search completed")

        self._record("tool_complete", copy.deepcopy(tool))
        self._reset_tool_tracking()
        self._notify("on_tool_complete", tool)

    def _on_message_stop(self) -> None:
        self.state.is_complete = True
        self._notify("on_complete", self.get_state())

    def _update_usage(self, usage: dict[str, Any]) -> None:
        """Overwrite token counts field by field and recompute the total."""
        current = self.state.usage

        def pick(key: str, previous: int) -> int:
            value = usage.get(key)
            return value if isinstance(value, int) else previous

        updated = TokenUsage(
            input_tokens=pick("input_tokens", current.input_tokens),
            output_tokens=pick("output_tokens", current.output_tokens),
            cache_read_tokens=pick("cache_read_input_tokens", current.cache_read_tokens),
        )
        updated.total_tokens = updated.input_tokens + updated.output_tokens
        self.state.usage = updated

    def _detect_tables(self, delta: str) -> None:
        for candidate in self._tables.scan(self.state.assistant_text, delta):
            table = candidate.table
            if table is None:
                continue
            self.state.tables.append(table)
            self._record("table", copy.deepcopy(table))
            self._notify("on_table_detected", table, self.state.tables)

    # --- Output ---

    def get_state(self) -> StreamSnapshot:
        """Detached snapshot of the state plus derived stats and verdict."""
        return StreamSnapshot.capture(
            self.state, stats=self.stats(), verdict_data=self.verdict()
        )

    def stats(self) -> StreamStats:
        state = self.state
        return StreamStats(
            text_length=len(state.assistant_text),
            thinking_length=len(state.thinking),
            word_count=word_count(state.assistant_text),
            tool_count=len(state.tool_uses),
            command_parts=len(state.tool_commands),
            total_events=len(state.chronological_events),
        )

    def verdict(self) -> VerdictData | None:
        """Verdict from the finished text; ``None`` until the stream completes."""
        if not self.state.is_complete:
            return None
        return derive_verdict(self.state.assistant_text, self.state.thinking)

    def get_formatted_output(self) -> str:
        return render_formatted_output(self.state, self.config.summary_prompt_chars)

    @property
    def pending_text(self) -> str:
        """Partial line and JSON text not yet turned into events."""
        return self._extractor.pending + self._buffer.pending

    def reset(self) -> None:
        """Clear all state and buffers for reuse on a new stream."""
        self.state = StreamState()
        self._buffer.clear()
        self._extractor.clear()
        self._tables.reset()
        self._reset_tool_tracking()
