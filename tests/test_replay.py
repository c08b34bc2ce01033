"""Tests for chipstream.stream.replay and batch/incremental equivalence."""

from __future__ import annotations

import random
from dataclasses import asdict
from typing import Any

import pytest

from chipstream.config import ParserConfig
from chipstream.stream.reducer import StreamReducer
from chipstream.stream.render import format_results
from chipstream.stream.replay import iter_segments, parse_complete_log
from chipstream.stream.state import LogReplay, ToolUse

from stream_log import events, full_session_log, text_delta, tool_log


def _without_timestamps(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _without_timestamps(v) for k, v in value.items() if k != "timestamp"}
    if isinstance(value, list):
        return [_without_timestamps(v) for v in value]
    return value


def _comparable(state: Any) -> dict[str, Any]:
    data = asdict(state)
    data.pop("formatted_output", None)
    return _without_timestamps(data)


def _incremental(text: str, cuts: list[int], finish: bool = True) -> StreamReducer:
    reducer = StreamReducer()
    start = 0
    for cut in sorted(cuts) + [len(text)]:
        reducer.process_chunk(text[start:cut])
        start = cut
    if finish:
        reducer.finish()
    return reducer


class TestIterSegments:
    def test_segments_end_on_boundaries(self) -> None:
        text = "a\nstream_event:\nb\nc\nsession_complete:\nd"
        segments = list(iter_segments(text, ["stream_event", "session_complete"]))
        assert segments == ["a\nstream_event:\n", "b\nc\nsession_complete:\n", "d\n"]

    def test_concatenation_adds_one_newline(self) -> None:
        text = full_session_log()
        joined = "".join(iter_segments(text, ParserConfig().replay_boundaries))
        assert joined == text + "\n"

    def test_no_boundaries(self) -> None:
        assert list(iter_segments("x\ny", [])) == ["x\ny\n"]


class TestParseCompleteLog:
    def test_result_type(self) -> None:
        result = parse_complete_log(full_session_log())
        assert isinstance(result, LogReplay)
        assert result.is_complete
        assert result.formatted_output.startswith("Comparison:")
        assert result.stats.tool_count == 1

    def test_empty_log(self) -> None:
        result = parse_complete_log("")
        assert result.assistant_text == ""
        assert result.tool_uses == []
        assert not result.is_complete
        assert result.verdict_data is None
        assert result.formatted_output == ""

    def test_log_without_trailing_newline(self) -> None:
        text = events(text_delta("Hello")).rstrip("\n")
        assert not text.endswith("\n")
        assert parse_complete_log(text).assistant_text == "Hello"

    def test_listener_receives_events(self) -> None:
        from chipstream.stream.listener import StreamCallbacks

        seen: list[str] = []
        parse_complete_log(
            events(text_delta("a"), text_delta("b")),
            listener=StreamCallbacks(on_text_update=lambda delta, _full: seen.append(delta)),
        )
        assert seen == ["a", "b"]

    def test_format_results_prefers_formatted_output(self) -> None:
        result = parse_complete_log(full_session_log())
        assert format_results(result) == result.formatted_output

    def test_format_results_fallback(self) -> None:
        result = parse_complete_log(tool_log('{"query":', '"4N35 datasheet"}'))
        result.formatted_output = ""
        output = format_results(result)
        assert "### 🔧 Tools Used:" in output
        assert "**1. WebSearch**" in output
        assert '   - query: "4N35 datasheet"' in output

    def test_format_results_raw_input(self) -> None:
        result = parse_complete_log(tool_log('{"query": "oops'))
        result.formatted_output = ""
        assert '   - Input: {"query": "oops' in format_results(result)


class TestEquivalence:
    def test_whole_log_in_one_chunk(self) -> None:
        text = full_session_log()
        assert _comparable(_incremental(text, []).get_state()) == _comparable(
            parse_complete_log(text)
        )

    @pytest.mark.parametrize("seed", range(8))
    def test_random_split_points(self, seed: int) -> None:
        text = full_session_log()
        rng = random.Random(seed)
        cuts = rng.sample(range(1, len(text)), k=rng.randint(1, 60))
        assert _comparable(_incremental(text, cuts).get_state()) == _comparable(
            parse_complete_log(text)
        )

    def test_every_character(self) -> None:
        text = full_session_log()
        cuts = list(range(1, len(text)))
        assert _comparable(_incremental(text, cuts).get_state()) == _comparable(
            parse_complete_log(text)
        )

    def test_newline_terminated_log_needs_no_finish(self) -> None:
        text = full_session_log()
        assert text.endswith("\n")
        reducer = _incremental(text, [len(text) // 3, len(text) // 2], finish=False)
        assert _comparable(reducer.get_state()) == _comparable(parse_complete_log(text))

    def test_finish_drains_partial_line(self) -> None:
        text = events(text_delta("Hello")).rstrip("\n")
        reducer = _incremental(text, [10], finish=False)
        assert reducer.state.assistant_text == ""
        reducer.finish()
        assert reducer.state.assistant_text == "Hello"
        assert _comparable(reducer.get_state()) == _comparable(parse_complete_log(text))

    def test_formatted_output_matches(self) -> None:
        text = full_session_log()
        reducer = _incremental(text, [17, 400, 401, 1500])
        assert reducer.get_formatted_output() == parse_complete_log(text).formatted_output

    def test_tool_uses_match(self) -> None:
        text = full_session_log()
        assert parse_complete_log(text).tool_uses == [
            ToolUse(id="toolu_01", name="WebSearch", input={"query": "4N35 optocoupler datasheet"})
        ]
