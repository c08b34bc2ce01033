"""Bridge between reducer notifications and the Wire event bus.

``WireListener`` turns every reducer notification into a WireEvent:

- TEXT / THINKING carry the delta and the accumulated text
- TOOL_USE fires when a tool block starts (input still unknown)
- TOOL_COMMAND carries each raw parameter fragment
- TOOL_COMPLETE carries the tool with its final input
- TABLE carries the parsed table and the running table count
- COMPLETE carries the snapshot taken at ``message_stop``
- ERROR carries the exception text
"""

from __future__ import annotations

from dataclasses import asdict
from typing import TYPE_CHECKING

from chipstream.session.wire import EventType, Wire, WireEvent
from chipstream.stream.listener import StreamListener
from chipstream.stream.state import ParsedTable, ToolUse

if TYPE_CHECKING:
    from chipstream.stream.state import StreamSnapshot


class WireListener(StreamListener):
    """Publishes reducer notifications on a wire, tagged with a stream id."""

    def __init__(self, wire: Wire, stream_id: str = "") -> None:
        self.wire = wire
        self.stream_id = stream_id

    def _send(self, event_type: EventType, **data: object) -> None:
        self.wire.send(WireEvent(type=event_type, data=data, stream_id=self.stream_id))

    def on_text_update(self, delta: str, full_text: str) -> None:
        self._send(EventType.TEXT, text=delta, full_text=full_text)

    def on_thinking_update(self, delta: str, full_thinking: str) -> None:
        self._send(EventType.THINKING, text=delta, full_text=full_thinking)

    def on_tool_use(self, tool: ToolUse) -> None:
        self._send(EventType.TOOL_USE, id=tool.id, name=tool.name)

    def on_tool_command(self, fragment: str, full_command: str) -> None:
        self._send(EventType.TOOL_COMMAND, fragment=fragment, full_command=full_command)

    def on_tool_complete(self, tool: ToolUse) -> None:
        self._send(EventType.TOOL_COMPLETE, id=tool.id, name=tool.name, input=tool.input)

    def on_table_detected(self, table: ParsedTable, tables: list[ParsedTable]) -> None:
        self._send(EventType.TABLE, table=asdict(table), count=len(tables))

    def on_complete(self, state: StreamSnapshot) -> None:
        self._send(EventType.COMPLETE, state=state)

    def on_error(self, error: Exception) -> None:
        self._send(EventType.ERROR, error=str(error))
