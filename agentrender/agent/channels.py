"""Session output channels.

An output channel carries one kind of output (UI updates, text deltas) for
many invocations, keyed by session id.  Consumers select the per-session
sequence lazily; selecting an unknown session resolves to ``None``.

``SessionChannel`` is the in-process implementation: one unbounded anyio
memory object stream per session, single consumer.  A session is forgotten
once its consumer has drained it; call ``discard`` for sessions that will
never be selected.
"""

from __future__ import annotations

import math
from collections.abc import AsyncIterator
from typing import Generic, Protocol, TypeVar

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
from loguru import logger

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)


class OutputChannel(Protocol[T_co]):
    """Anything the stream aggregator can attach to."""

    async def select(self, session_id: str) -> AsyncIterator[T_co] | None:
        """Return the item sequence for *session_id*, or ``None`` if there is none."""
        ...


class SessionChannel(Generic[T]):
    """In-process output channel backed by anyio memory object streams."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._senders: dict[str, MemoryObjectSendStream[T]] = {}
        self._receivers: dict[str, MemoryObjectReceiveStream[T]] = {}
        self._errors: dict[str, BaseException] = {}

    # -- Producer side ---------------------------------------------------------

    def open(self, session_id: str) -> None:
        """Create the stream for *session_id*.  Items emitted before selection are buffered."""
        if session_id in self._senders or session_id in self._receivers:
            msg = f"Channel '{self.name}' already has session {session_id}"
            raise ValueError(msg)
        send, receive = anyio.create_memory_object_stream(max_buffer_size=math.inf)
        self._senders[session_id] = send
        self._receivers[session_id] = receive

    def emit(self, session_id: str, item: T) -> None:
        sender = self._senders.get(session_id)
        if sender is None:
            msg = f"Channel '{self.name}' has no open session {session_id}"
            raise LookupError(msg)
        try:
            sender.send_nowait(item)
        except anyio.BrokenResourceError:
            logger.warning("Channel '{}': consumer of session {} is gone, dropping item", self.name, session_id)

    def close(self, session_id: str) -> None:
        """Signal normal completion for *session_id*.  No-op if already closed.

        Buffered items stay selectable until a consumer drains them or the
        session is discarded.
        """
        sender = self._senders.pop(session_id, None)
        if sender is not None:
            sender.close()

    def fail(self, session_id: str, error: BaseException) -> None:
        """Signal completion with *error*; the consumer sees it after the buffered items."""
        sender = self._senders.get(session_id)
        # Nobody is left to raise it to once the consumer closed its end.
        if sender is not None and sender.statistics().open_receive_streams > 0:
            self._errors[session_id] = error
        self.close(session_id)

    def discard(self, session_id: str) -> None:
        """Forget *session_id* entirely, dropping anything not yet consumed."""
        self.close(session_id)
        self._errors.pop(session_id, None)
        receiver = self._receivers.pop(session_id, None)
        if receiver is not None:
            receiver.close()
            logger.debug("Channel '{}': discarded unselected session {}", self.name, session_id)

    def is_open(self, session_id: str) -> bool:
        return session_id in self._senders

    @property
    def pending(self) -> int:
        """Sessions opened but not selected yet."""
        return len(self._receivers)

    # -- Consumer side ---------------------------------------------------------

    async def select(self, session_id: str) -> AsyncIterator[T] | None:
        receiver = self._receivers.pop(session_id, None)
        if receiver is None:
            logger.debug("Channel '{}': nothing to select for session {}", self.name, session_id)
            return None
        return self._drain(session_id, receiver)

    async def _drain(self, session_id: str, receiver: MemoryObjectReceiveStream[T]) -> AsyncIterator[T]:
        try:
            async with receiver:
                async for item in receiver:
                    yield item
        finally:
            error = self._errors.pop(session_id, None)
        if error is not None:
            raise error
