"""Tests for chipstream.stream.events.decode_event."""

from __future__ import annotations

from chipstream.stream.events import (
    ContentBlockStop,
    InputJsonDelta,
    MessageDelta,
    MessageStart,
    MessageStop,
    SessionInit,
    TextDelta,
    ThinkingDelta,
    ToolUseStart,
    Unrecognized,
    decode_event,
)

from stream_log import (
    block_stop,
    input_json_delta,
    message_delta,
    message_start,
    message_stop,
    text_delta,
    thinking_delta,
    tool_start,
)


class TestDecodeDeltas:
    def test_text_delta(self) -> None:
        assert decode_event(text_delta("Hi")) == [TextDelta(text="Hi")]

    def test_thinking_delta(self) -> None:
        assert decode_event(thinking_delta("hmm")) == [ThinkingDelta(thinking="hmm")]

    def test_input_json_delta(self) -> None:
        assert decode_event(input_json_delta('{"q')) == [InputJsonDelta(partial_json='{"q')]

    def test_unknown_delta_type(self) -> None:
        raw = {"type": "content_block_delta", "delta": {"type": "signature_delta"}}
        assert decode_event(raw) == [Unrecognized(raw=raw)]

    def test_non_string_text_becomes_empty(self) -> None:
        raw = {"type": "content_block_delta", "delta": {"type": "text_delta", "text": 5}}
        assert decode_event(raw) == [TextDelta(text="")]


class TestDecodeLifecycle:
    def test_message_start(self) -> None:
        (event,) = decode_event(message_start("msg_9", "m1", {"input_tokens": 3}))
        assert event == MessageStart(message_id="msg_9", model="m1", usage={"input_tokens": 3})

    def test_message_start_without_message(self) -> None:
        raw = {"type": "message_start"}
        assert decode_event(raw) == [Unrecognized(raw=raw)]

    def test_tool_use_start(self) -> None:
        assert decode_event(tool_start("t1", "WebSearch")) == [
            ToolUseStart(id="t1", name="WebSearch")
        ]

    def test_text_block_start_ignored(self) -> None:
        raw = {"type": "content_block_start", "content_block": {"type": "text", "text": ""}}
        assert decode_event(raw) == [Unrecognized(raw=raw)]

    def test_block_stop(self) -> None:
        assert decode_event(block_stop(2)) == [ContentBlockStop(index=2)]

    def test_message_delta_with_usage(self) -> None:
        (event,) = decode_event(message_delta({"output_tokens": 25}))
        assert isinstance(event, MessageDelta)
        assert event.usage == {"output_tokens": 25}
        assert event.stop_reason == "end_turn"

    def test_message_delta_without_usage(self) -> None:
        raw = {"type": "message_delta", "delta": {"stop_reason": "end_turn"}}
        assert decode_event(raw) == [Unrecognized(raw=raw)]

    def test_message_stop(self) -> None:
        assert decode_event(message_stop()) == [MessageStop()]


class TestDecodeSession:
    def test_session_id_only(self) -> None:
        assert decode_event({"session_id": "s1", "model": "m"}) == [
            SessionInit(session_id="s1", model="m")
        ]

    def test_session_id_with_typed_event(self) -> None:
        raw = {"type": "message_stop", "session_id": "s1"}
        assert decode_event(raw) == [SessionInit(session_id="s1"), MessageStop()]

    def test_empty_session_id_ignored(self) -> None:
        raw = {"session_id": "", "type": "ping"}
        assert decode_event(raw) == [Unrecognized(raw=raw)]


class TestDecodeMalformed:
    def test_non_object(self) -> None:
        assert decode_event([1, 2]) == []
        assert decode_event("text") == []
        assert decode_event(None) == []

    def test_unknown_type(self) -> None:
        raw = {"type": "ping"}
        assert decode_event(raw) == [Unrecognized(raw=raw)]
