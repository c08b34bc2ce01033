"""Tests for chipstream.stream.extractor.EventExtractor."""

from __future__ import annotations

import json

from chipstream.stream.events import (
    LogMarker,
    MessageStop,
    SessionInit,
    TextDelta,
)
from chipstream.stream.extractor import EventExtractor

from stream_log import events, header, text_delta


def _lines(text: str) -> list[str]:
    return text.split("\n")


def _payload_events(result: list) -> list:
    return [e for e in result if not isinstance(e, LogMarker)]


class TestMarkers:
    def test_timestamp_and_label(self) -> None:
        ex = EventExtractor()
        (marker,) = ex.extract(["[2025-10-03T18:20:57.434Z] stream_event:"])
        assert marker == LogMarker(timestamp="2025-10-03T18:20:57.434Z", label="stream_event")

    def test_bare_timestamp(self) -> None:
        ex = EventExtractor()
        (marker,) = ex.extract(["[2025-10-03T18:20:57.434Z]"])
        assert marker.timestamp == "2025-10-03T18:20:57.434Z"
        assert marker.label == ""

    def test_label_line(self) -> None:
        ex = EventExtractor()
        assert ex.extract(["session_init:"]) == [LogMarker(label="session_init")]

    def test_unknown_label_is_not_a_marker(self) -> None:
        ex = EventExtractor()
        assert ex.extract(["custom_label:"]) == []
        assert ex.pending == "custom_label:"

    def test_label_must_lead_the_line(self) -> None:
        ex = EventExtractor()
        assert ex.extract(["note stream_event:"]) == []

    def test_custom_labels(self) -> None:
        ex = EventExtractor(record_labels=["custom_label"])
        assert ex.extract(["custom_label:"]) == [LogMarker(label="custom_label")]

    def test_header_line(self) -> None:
        ex = EventExtractor()
        (marker,) = ex.extract([header("abc", "2025-10-03T18:20:53.001Z").strip()])
        assert marker == LogMarker(
            timestamp="2025-10-03T18:20:53.001Z", label="header", session_id="abc"
        )

    def test_blank_lines_skipped(self) -> None:
        ex = EventExtractor()
        assert ex.extract(["", "   ", "\t"]) == []


class TestJsonReassembly:
    def test_single_line_record(self) -> None:
        ex = EventExtractor()
        assert ex.extract([json.dumps(text_delta("Hi"))]) == [TextDelta(text="Hi")]

    def test_pretty_printed_record(self) -> None:
        ex = EventExtractor()
        result = ex.extract(_lines(events(text_delta("Hello "))))
        assert _payload_events(result) == [TextDelta(text="Hello ")]
        assert ex.pending == ""

    def test_record_split_across_calls(self) -> None:
        ex = EventExtractor()
        lines = _lines(json.dumps(text_delta("Hi"), indent=2))
        first = ex.extract(lines[:3])
        assert first == []
        assert ex.pending != ""
        second = ex.extract(lines[3:])
        assert second == [TextDelta(text="Hi")]
        assert ex.pending == ""

    def test_trailing_comma(self) -> None:
        ex = EventExtractor()
        assert ex.extract(['{"type": "message_stop"},']) == [MessageStop()]

    def test_nested_closing_brace_does_not_emit_early(self) -> None:
        ex = EventExtractor()
        result = ex.extract(["{", '"type": "content_block_delta",', '"delta": {'])
        result += ex.extract(['"type": "text_delta", "text": "x"', "}"])
        assert result == []
        assert ex.extract(["}"]) == [TextDelta(text="x")]

    def test_multiple_records(self) -> None:
        ex = EventExtractor()
        result = ex.extract(_lines(events(text_delta("a"), text_delta("b"))))
        assert _payload_events(result) == [TextDelta(text="a"), TextDelta(text="b")]

    def test_marker_order_preserved(self) -> None:
        ex = EventExtractor()
        result = ex.extract(_lines(events(text_delta("a"))))
        assert isinstance(result[0], LogMarker)
        assert result[1] == TextDelta(text="a")

    def test_session_record(self) -> None:
        ex = EventExtractor()
        result = ex.extract(['{"session_id": "s1", "model": "m"}'])
        assert result == [SessionInit(session_id="s1", model="m")]


class TestFlushPoints:
    def test_trailing_garbage_dropped_at_flush(self) -> None:
        ex = EventExtractor()
        # Last line does not end in a brace, so no parse is attempted until the marker
        ex.extract(['{"type": "ping", "n": [1', "]}x"])
        assert ex.pending != ""
        result = ex.extract(["[2025-10-03T18:20:57.434Z] stream_event:"])
        assert result == [LogMarker(timestamp="2025-10-03T18:20:57.434Z", label="stream_event")]
        assert ex.pending == ""

    def test_unparseable_accumulator_dropped(self) -> None:
        ex = EventExtractor()
        ex.extract(['{"type": "content_block_delta", "delta": {'])
        result = ex.extract(["[2025-10-03T18:20:57.434Z] stream_event:", '{"type": "message_stop"}'])
        assert _payload_events(result) == [MessageStop()]
        assert ex.pending == ""

    def test_free_text_does_not_poison_later_records(self) -> None:
        ex = EventExtractor()
        lines = ["some banner text"] + _lines(events(text_delta("ok")))
        result = ex.extract(lines)
        assert _payload_events(result) == [TextDelta(text="ok")]

    def test_non_object_json_emits_nothing(self) -> None:
        ex = EventExtractor()
        assert ex.extract(['"just a string"', "stream_event:"]) == [
            LogMarker(label="stream_event")
        ]
        assert ex.extract(["[1,", "2]", "stream_event:"]) == [LogMarker(label="stream_event")]

    def test_clear(self) -> None:
        ex = EventExtractor()
        ex.extract(["{"])
        ex.clear()
        assert ex.pending == ""
