"""Session plumbing around the stream reducer: registry, wire, log writer."""

from chipstream.session.bridge import WireListener
from chipstream.session.log import ToolStreamLog, format_log_entry, sdk_log_entries
from chipstream.session.registry import StreamRegistry
from chipstream.session.wire import EventType, Wire, WireEvent

__all__ = [
    "StreamRegistry",
    "Wire",
    "WireEvent",
    "EventType",
    "WireListener",
    "ToolStreamLog",
    "format_log_entry",
    "sdk_log_entries",
]
