"""Incremental parser for agent stream logs."""

from chipstream.stream.listener import StreamCallbacks, StreamListener
from chipstream.stream.reducer import StreamReducer
from chipstream.stream.render import format_results
from chipstream.stream.replay import parse_complete_log
from chipstream.stream.state import (
    LogReplay,
    ParsedTable,
    StreamSnapshot,
    StreamState,
    TokenUsage,
    ToolUse,
    VerdictData,
)
from chipstream.stream.text import unescape_text

__all__ = [
    "StreamReducer",
    "StreamListener",
    "StreamCallbacks",
    "parse_complete_log",
    "format_results",
    "unescape_text",
    "StreamState",
    "StreamSnapshot",
    "LogReplay",
    "ToolUse",
    "ParsedTable",
    "TokenUsage",
    "VerdictData",
]
