"""Push-style notifications from the reducer."""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from chipstream.stream.state import ParsedTable, ToolUse

if TYPE_CHECKING:
    from chipstream.stream.state import StreamSnapshot

# Callback types
OnDelta = Callable[[str, str], None] | None  # (delta, full_so_far)
OnTool = Callable[[ToolUse], None] | None
OnTable = Callable[[ParsedTable, list[ParsedTable]], None] | None
OnComplete = Callable[["StreamSnapshot"], None] | None
OnError = Callable[[Exception], None] | None


class StreamListener:
    """Observer interface for a StreamReducer.

    All methods are no-ops; subclass and override the ones you need. They
    are called synchronously from ``process_chunk``, in event order. An
    exception raised here is caught by the reducer and reported through
    ``on_error``.
    """

    def on_text_update(self, delta: str, full_text: str) -> None:
        pass

    def on_thinking_update(self, delta: str, full_thinking: str) -> None:
        pass

    def on_tool_use(self, tool: ToolUse) -> None:
        pass

    def on_tool_command(self, fragment: str, full_command: str) -> None:
        pass

    def on_tool_complete(self, tool: ToolUse) -> None:
        pass

    def on_table_detected(self, table: ParsedTable, tables: list[ParsedTable]) -> None:
        pass

    def on_complete(self, state: StreamSnapshot) -> None:
        pass

    def on_error(self, error: Exception) -> None:
        pass


class StreamCallbacks(StreamListener):
    """Listener built from optional plain functions.

    Usage:
        reducer = StreamReducer(
            StreamCallbacks(on_text_update=lambda delta, full: print(delta, end=""))
        )
    """

    def __init__(
        self,
        on_text_update: OnDelta = None,
        on_thinking_update: OnDelta = None,
        on_tool_use: OnTool = None,
        on_tool_command: OnDelta = None,
        on_tool_complete: OnTool = None,
        on_table_detected: OnTable = None,
        on_complete: OnComplete = None,
        on_error: OnError = None,
    ) -> None:
        self.text_update = on_text_update
        self.thinking_update = on_thinking_update
        self.tool_use = on_tool_use
        self.tool_command = on_tool_command
        self.tool_complete = on_tool_complete
        self.table_detected = on_table_detected
        self.complete = on_complete
        self.error = on_error

    def on_text_update(self, delta: str, full_text: str) -> None:
        if self.text_update:
            self.text_update(delta, full_text)

    def on_thinking_update(self, delta: str, full_thinking: str) -> None:
        if self.thinking_update:
            self.thinking_update(delta, full_thinking)

    def on_tool_use(self, tool: ToolUse) -> None:
        if self.tool_use:
            self.tool_use(tool)

    def on_tool_command(self, fragment: str, full_command: str) -> None:
        if self.tool_command:
            self.tool_command(fragment, full_command)

    def on_tool_complete(self, tool: ToolUse) -> None:
        if self.tool_complete:
            self.tool_complete(tool)

    def on_table_detected(self, table: ParsedTable, tables: list[ParsedTable]) -> None:
        if self.table_detected:
            self.table_detected(table, tables)

    def on_complete(self, state: StreamSnapshot) -> None:
        if self.complete:
            self.complete(state)

    def on_error(self, error: Exception) -> None:
        if self.error:
            self.error(error)
