"""In-process stream hub.

Tracks the open ``SessionAggregate`` of every running invocation so that
late subscribers can replay a stream by session id.  Ephemeral -- empty on
process restart.  An aggregate is dropped from the hub as soon as all of its
channels have completed.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

from loguru import logger

from agentrender.models.events import StreamEvent
from agentrender.streaming.aggregator import DEFAULT_CHANNEL_COUNT, SessionAggregate


class ShuttingDownError(RuntimeError):
    """Raised when attempting to open a stream during shutdown."""


class StreamHub:
    """Registry of currently open session aggregates.

    Each aggregate is fully independent; the hub only indexes them.  It also
    provides a drain mechanism for graceful shutdown: ``wait_until_drained``
    blocks until every open aggregate has closed.
    """

    def __init__(self) -> None:
        self._aggregates: dict[str, SessionAggregate] = {}
        self._drain_event = asyncio.Event()
        self._drain_event.set()  # Starts "drained" (no streams).
        self._shutting_down = False

    # -- Mutation --------------------------------------------------------------

    def open(self, session_id: str, *, expected_channels: int = DEFAULT_CHANNEL_COUNT) -> SessionAggregate:
        """Create and register the aggregate for *session_id*.

        Raises ``ShuttingDownError`` during shutdown and ``ValueError`` if the
        session already has an open aggregate.
        """
        if self._shutting_down:
            raise ShuttingDownError
        if session_id in self._aggregates:
            msg = f"Session {session_id} already has an open stream"
            raise ValueError(msg)

        aggregate = SessionAggregate(session_id, expected_channels=expected_channels)
        self._aggregates[session_id] = aggregate
        self._drain_event.clear()
        aggregate.on_close(self._discard)
        logger.debug("Hub: opened stream {} (channels={})", session_id, expected_channels)
        return aggregate

    def _discard(self, aggregate: SessionAggregate) -> None:
        if self._aggregates.get(aggregate.session_id) is aggregate:
            del self._aggregates[aggregate.session_id]
            logger.debug("Hub: released stream {}", aggregate.session_id)
        if not self._aggregates:
            self._drain_event.set()

    # -- Query -----------------------------------------------------------------

    def get(self, session_id: str) -> SessionAggregate | None:
        return self._aggregates.get(session_id)

    def read(self, session_id: str) -> AsyncIterator[StreamEvent]:
        """Replay + live events of an open stream.  Raises ``LookupError`` if unknown."""
        aggregate = self._aggregates.get(session_id)
        if aggregate is None:
            msg = f"No open stream for session {session_id}"
            raise LookupError(msg)
        return aggregate.read()

    @property
    def active_count(self) -> int:
        return len(self._aggregates)

    # -- Lifecycle -------------------------------------------------------------

    def begin_shutdown(self) -> None:
        """Refuse new streams from now on."""
        self._shutting_down = True
        logger.info("Hub: shutdown initiated, refusing new streams")
        if not self._aggregates:
            self._drain_event.set()

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down

    async def wait_until_drained(self, timeout: float | None = None) -> bool:
        """Wait until every open stream has closed.

        Returns ``True`` if the hub is empty, ``False`` if *timeout* expired
        with streams still open.
        """
        if not self._aggregates:
            return True
        try:
            await asyncio.wait_for(self._drain_event.wait(), timeout=timeout)
        except TimeoutError:
            logger.warning(
                "Hub: drain timed out after {}s with {} streams still open",
                timeout,
                len(self._aggregates),
            )
            return False
        else:
            return True
