"""Replay a complete log through the incremental reducer."""

from __future__ import annotations

import logging
from collections.abc import Iterator

from chipstream.config import ParserConfig
from chipstream.stream.listener import StreamListener
from chipstream.stream.reducer import StreamReducer
from chipstream.stream.state import LogReplay

logger = logging.getLogger(__name__)


def iter_segments(log_text: str, boundaries: list[str]) -> Iterator[str]:
    """Split a log into segments that each end on a boundary line.

    The segments concatenate back to ``log_text`` plus one trailing newline,
    which closes a final line that had none.
    """
    current: list[str] = []
    for line in log_text.split("\n"):
        current.append(line + "\n")
        if any(boundary in line for boundary in boundaries):
            yield "".join(current)
            current = []
    if current:
        yield "".join(current)


def parse_complete_log(
    log_text: str,
    config: ParserConfig | None = None,
    listener: StreamListener | None = None,
) -> LogReplay:
    """Parse a whole persisted log in one call.

    Feeds the log segment by segment through the same pipeline used for
    live streams, so the result matches incremental feeding of the same
    text (timestamps aside).
    """
    reducer = StreamReducer(listener, config)
    segments = 0
    for segment in iter_segments(log_text, reducer.config.replay_boundaries):
        reducer.process_chunk(segment)
        segments += 1
    reducer.finish()
    logger.debug("Replayed %d segments (%d chars)", segments, len(log_text))

    return LogReplay.capture(
        reducer.state,
        stats=reducer.stats(),
        verdict_data=reducer.verdict(),
        formatted_output=reducer.get_formatted_output(),
    )
