"""Stream registry: one reducer per stream id."""

from __future__ import annotations

import logging
from typing import Callable

from chipstream.config import ParserConfig
from chipstream.stream.listener import StreamListener
from chipstream.stream.reducer import StreamReducer

logger = logging.getLogger(__name__)

ListenerFactory = Callable[[str], StreamListener | None] | None


class StreamRegistry:
    """Registry of live stream reducers.

    Each stream id (a chat message, a chip scan) owns its own reducer, so
    concurrent streams never share state. The registry also remembers how
    much of each stream's text has been fed, for transports that deliver
    the whole accumulated document on every update.
    """

    def __init__(
        self,
        config: ParserConfig | None = None,
        listener_factory: ListenerFactory = None,
    ) -> None:
        self.config = config or ParserConfig()
        self._listener_factory = listener_factory
        self._reducers: dict[str, StreamReducer] = {}
        self._cursors: dict[str, int] = {}

    def get_or_create(self, stream_id: str) -> StreamReducer:
        """Get the reducer for ``stream_id``, creating it on first use."""
        reducer = self._reducers.get(stream_id)
        if reducer is None:
            listener = self._listener_factory(stream_id) if self._listener_factory else None
            reducer = StreamReducer(listener, self.config)
            self._reducers[stream_id] = reducer
            self._cursors[stream_id] = 0
            logger.debug("Created reducer for stream %s", stream_id)
        return reducer

    def get(self, stream_id: str) -> StreamReducer | None:
        """Get a reducer by stream id."""
        return self._reducers.get(stream_id)

    def remove(self, stream_id: str) -> StreamReducer | None:
        """Forget a stream (done or failed). Returns its reducer, if any."""
        self._cursors.pop(stream_id, None)
        return self._reducers.pop(stream_id, None)

    def ids(self) -> list[str]:
        """Get all registered stream ids."""
        return list(self._reducers.keys())

    def feed(self, stream_id: str, chunk: str, create: bool = True) -> StreamReducer:
        """Deliver a chunk of new text to a stream.

        Raises:
            KeyError: ``stream_id`` is unknown and ``create`` is False.
        """
        if create:
            reducer = self.get_or_create(stream_id)
        else:
            reducer = self._reducers[stream_id]
        reducer.process_chunk(chunk)
        self._cursors[stream_id] = self._cursors.get(stream_id, 0) + len(chunk)
        return reducer

    def feed_snapshot(self, stream_id: str, full_text: str) -> StreamReducer:
        """Deliver the whole accumulated text; only the unseen suffix is fed.

        A snapshot no longer than what was already processed is ignored.
        """
        reducer = self.get_or_create(stream_id)
        cursor = self._cursors.get(stream_id, 0)
        if len(full_text) > cursor:
            reducer.process_chunk(full_text[cursor:])
            self._cursors[stream_id] = len(full_text)
        return reducer

    def cursor(self, stream_id: str) -> int:
        """Number of characters fed to ``stream_id`` so far."""
        return self._cursors.get(stream_id, 0)

    def __len__(self) -> int:
        return len(self._reducers)

    def __contains__(self, stream_id: str) -> bool:
        return stream_id in self._reducers
