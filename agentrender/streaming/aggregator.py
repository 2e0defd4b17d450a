"""Stream aggregator -- fan-in of one invocation's output channels.

A ``SessionAggregate`` is a mailbox for exactly one invocation:

- an append-only replay buffer that every reader consumes from index 0,
- one producer task per attached channel,
- an explicit join counter that closes the buffer once the expected number
  of channels have completed.

Channel faults (selection rejected, nothing to select, error mid-stream) are
logged and counted as that channel's completion.  The aggregate itself never
fails, so every reader sees a cleanly terminated sequence.

Appending, counting and waking readers are synchronous.  The only suspension
points are channel selection and waiting for the next item of a source.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import AsyncIterator, Callable
from typing import TYPE_CHECKING, Any

from loguru import logger

from agentrender.models.events import StreamEvent, initial_record

if TYPE_CHECKING:
    from agentrender.agent.channels import OutputChannel

EventFactory = Callable[[str, Any], StreamEvent]
"""Turns one channel item into a wire event, given the response message id."""

DEFAULT_CHANNEL_COUNT = 2


class SessionAggregate:
    """Ordered, replayable event sequence for one invocation."""

    def __init__(
        self,
        session_id: str,
        *,
        expected_channels: int = DEFAULT_CHANNEL_COUNT,
        message_id: str | None = None,
    ) -> None:
        if expected_channels < 1:
            msg = f"expected_channels must be at least 1, got {expected_channels}"
            raise ValueError(msg)

        self.session_id = session_id
        self.message_id = message_id or uuid.uuid4().hex
        self.expected_channels = expected_channels

        self._buffer: list[StreamEvent] = []
        self._wakeup = asyncio.Event()
        self._closed = asyncio.Event()
        self._attached: list[str] = []
        self._completed: list[str] = []
        self._tasks: set[asyncio.Task[None]] = set()
        self._close_callbacks: list[Callable[[SessionAggregate], None]] = []

        # The placeholder record goes in before any channel can produce.
        self._append(initial_record(self.message_id))

    # -- Introspection ---------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def attached_channels(self) -> int:
        return len(self._attached)

    @property
    def completed_channels(self) -> int:
        return len(self._completed)

    @property
    def events(self) -> list[StreamEvent]:
        """Snapshot of the replay buffer."""
        return list(self._buffer)

    def __len__(self) -> int:
        return len(self._buffer)

    def __repr__(self) -> str:
        return (
            f"SessionAggregate(session_id={self.session_id!r}, events={len(self._buffer)}, "
            f"completed={self.completed_channels}/{self.expected_channels}, closed={self.closed})"
        )

    # -- Channels --------------------------------------------------------------

    def attach(self, channel: OutputChannel[Any], to_event: EventFactory, *, name: str | None = None) -> asyncio.Task[None]:
        """Start consuming *channel* for this session.

        Items are converted with ``to_event(message_id, item)`` and appended in
        arrival order.  Raises ``RuntimeError`` when all expected channels are
        already attached.
        """
        if len(self._attached) >= self.expected_channels:
            msg = f"Session {self.session_id} already has {self.expected_channels} channel(s) attached"
            raise RuntimeError(msg)

        name = name or f"channel-{len(self._attached)}"
        self._attached.append(name)
        task = asyncio.create_task(self._consume(channel, to_event, name), name=f"agentrender-{self.session_id}-{name}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _consume(self, channel: OutputChannel[Any], to_event: EventFactory, name: str) -> None:
        try:
            try:
                source = await channel.select(self.session_id)
            except Exception:
                logger.opt(exception=True).warning("Session {}: selecting channel '{}' failed", self.session_id, name)
                return

            if source is None:
                logger.debug("Session {}: channel '{}' has nothing for this session", self.session_id, name)
                return

            try:
                async for item in source:
                    self._append(to_event(self.message_id, item))
            except Exception:
                logger.opt(exception=True).warning("Session {}: channel '{}' failed mid-stream", self.session_id, name)
        finally:
            self._complete(name)

    def _complete(self, name: str) -> None:
        self._completed.append(name)
        logger.debug(
            "Session {}: channel '{}' completed ({}/{})",
            self.session_id,
            name,
            len(self._completed),
            self.expected_channels,
        )
        if len(self._completed) == self.expected_channels:
            self._close()

    # -- Buffer ----------------------------------------------------------------

    def _append(self, event: StreamEvent) -> None:
        if self.closed:
            logger.warning("Session {}: dropping {} event after close", self.session_id, event.type)
            return
        self._buffer.append(event)
        self._notify()

    def _notify(self) -> None:
        # Wake everyone waiting on the current generation, then start a new one.
        self._wakeup.set()
        self._wakeup = asyncio.Event()

    def _close(self) -> None:
        self._closed.set()
        self._notify()
        logger.info("Session {}: stream closed with {} event(s)", self.session_id, len(self._buffer))
        for callback in self._close_callbacks:
            try:
                callback(self)
            except Exception:
                logger.exception("Session {}: close callback failed", self.session_id)

    def on_close(self, callback: Callable[[SessionAggregate], None]) -> None:
        """Run *callback* once the buffer closes (immediately if already closed)."""
        if self.closed:
            callback(self)
        else:
            self._close_callbacks.append(callback)

    async def wait_closed(self) -> None:
        await self._closed.wait()

    # -- Readers ---------------------------------------------------------------

    async def read(self) -> AsyncIterator[StreamEvent]:
        """Yield the full history from the first event, then live events until close.

        Every call starts a new, independent reader.
        """
        index = 0
        while True:
            while index < len(self._buffer):
                yield self._buffer[index]
                index += 1
            if self.closed:
                return
            await self._wakeup.wait()
