"""Tests for chipstream.session.bridge.WireListener."""

from __future__ import annotations

from chipstream.session.bridge import WireListener
from chipstream.session.wire import EventType, Wire, WireEvent
from chipstream.stream.reducer import StreamReducer

from stream_log import events, message_stop, text_delta, tool_log


def _drain(q) -> list[WireEvent]:
    out = []
    while not q.empty():
        out.append(q.get_nowait())
    return out


class TestWireListener:
    def test_text_events(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        reducer = StreamReducer(WireListener(wire, "chip-1"))
        reducer.process_chunk(events(text_delta("Hello "), text_delta("world!")))
        sent = _drain(q)
        assert [e.type for e in sent] == [EventType.TEXT, EventType.TEXT]
        assert sent[1].data == {"text": "world!", "full_text": "Hello world!"}
        assert all(e.stream_id == "chip-1" for e in sent)

    def test_tool_events(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        reducer = StreamReducer(WireListener(wire))
        reducer.process_chunk(tool_log('{"query":', '"x"}'))
        sent = _drain(q)
        assert [e.type for e in sent] == [
            EventType.TOOL_USE,
            EventType.TOOL_COMMAND,
            EventType.TOOL_COMMAND,
            EventType.TOOL_COMPLETE,
        ]
        assert sent[0].data == {"id": "t1", "name": "WebSearch"}
        assert sent[2].data == {"fragment": '"x"}', "full_command": '{"query":"x"}'}
        assert sent[3].data == {"id": "t1", "name": "WebSearch", "input": {"query": "x"}}

    def test_table_event(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        reducer = StreamReducer(WireListener(wire))
        reducer.process_chunk(events(text_delta("| A | B |\n|---|---|\n| 1 | 2 |\n")))
        table_event = _drain(q)[0]
        assert table_event.type == EventType.TABLE
        assert table_event.data["count"] == 1
        assert table_event.data["table"]["headers"] == ["A", "B"]
        assert table_event.data["table"]["rows"] == [["1", "2"]]

    def test_complete_event(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        reducer = StreamReducer(WireListener(wire))
        reducer.process_chunk(events(text_delta("Verdict: Authentic"), message_stop()))
        complete = _drain(q)[-1]
        assert complete.type == EventType.COMPLETE
        assert complete.data["state"].is_complete
        assert complete.data["state"].verdict_data.is_authentic == "Authentic"

    def test_error_event(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        listener = WireListener(wire)
        listener.on_error(RuntimeError("bad chunk"))
        (event,) = _drain(q)
        assert event.type == EventType.ERROR
        assert event.data == {"error": "bad chunk"}

    def test_closed_wire_drops_events(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        wire.close()
        q.get_nowait()
        reducer = StreamReducer(WireListener(wire))
        reducer.process_chunk(events(text_delta("late")))
        assert q.empty()
        assert reducer.state.assistant_text == "late"
