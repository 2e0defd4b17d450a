"""Transport encoder -- aggregate events to Server-Sent Events frames.

One event per frame, literally ``"data: " + <compact JSON> + "\\n\\n"``.
Frames are written as UTF-8 bytes into an anyio memory object stream whose
receiving end is served by sse-starlette.  Events that fail to encode, and
writes after the stream was closed (or after the HTTP client went away), are
logged and dropped.
"""

from __future__ import annotations

import asyncio
import json
import math
from collections.abc import AsyncIterable, Mapping
from typing import Any

import anyio
from anyio.streams.memory import MemoryObjectSendStream
from loguru import logger
from pydantic import BaseModel
from sse_starlette.sse import EventSourceResponse

FRAME_PREFIX = "data: "
FRAME_SEPARATOR = "\n\n"
MEDIA_TYPE = "text/event-stream"


def encode_json(event: BaseModel | Mapping[str, Any]) -> str:
    """Compact JSON for *event*: no whitespace, non-ASCII kept as-is."""
    if isinstance(event, BaseModel):
        return event.model_dump_json(by_alias=True)
    return json.dumps(event, separators=(",", ":"), ensure_ascii=False)


def encode_frame(event: BaseModel | Mapping[str, Any]) -> str:
    return f"{FRAME_PREFIX}{encode_json(event)}{FRAME_SEPARATOR}"


class SSETransport:
    """Writes encoded frames into a memory object stream for one response."""

    def __init__(self, send_stream: MemoryObjectSendStream[bytes], *, session_id: str = "") -> None:
        self._send = send_stream
        self._session_id = session_id
        self._closed = False
        self.frames_sent = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, event: BaseModel | Mapping[str, Any]) -> bool:
        """Send one frame.

        Returns ``False`` (and logs) if the event cannot be encoded or the
        transport is gone; the stream carries on with the next event.
        """
        try:
            frame = encode_frame(event).encode("utf-8")
        except (TypeError, ValueError):
            # PydanticSerializationError is a ValueError.
            logger.opt(exception=True).warning("Session {}: error encoding frame, dropping event", self._session_id)
            return False
        try:
            self._send.send_nowait(frame)
        except (anyio.ClosedResourceError, anyio.BrokenResourceError, anyio.WouldBlock) as exc:
            logger.warning(
                "Session {}: error sending frame to stream ({})",
                self._session_id,
                type(exc).__name__,
            )
            return False
        self.frames_sent += 1
        return True

    def close(self) -> None:
        if self._closed:
            logger.debug("Session {}: stream already closed", self._session_id)
            return
        self._closed = True
        try:
            self._send.close()
        except Exception:
            logger.exception("Session {}: error closing stream", self._session_id)


async def forward(events: AsyncIterable[BaseModel | Mapping[str, Any]], transport: SSETransport) -> None:
    """Write every event of *events* to *transport*, then close it."""
    try:
        async for event in events:
            transport.write(event)
    finally:
        transport.close()


_forwarders: set[asyncio.Task[None]] = set()


def spawn_forwarder(
    events: AsyncIterable[BaseModel | Mapping[str, Any]],
    transport: SSETransport,
) -> asyncio.Task[None]:
    """Run :func:`forward` in the background, keeping a reference until it ends."""
    task = asyncio.create_task(forward(events, transport), name="agentrender-forwarder")
    _forwarders.add(task)
    task.add_done_callback(_forwarders.discard)
    return task


def event_stream_response(
    events: AsyncIterable[BaseModel | Mapping[str, Any]],
    *,
    session_id: str = "",
    ping: int | None = None,
) -> EventSourceResponse:
    """Serve *events* as a ``text/event-stream`` response.

    The forwarder writes pre-encoded frames; sse-starlette passes bytes
    through untouched, so the wire format is exactly :func:`encode_frame`.
    """
    send, receive = anyio.create_memory_object_stream(max_buffer_size=math.inf)
    transport = SSETransport(send, session_id=session_id)
    spawn_forwarder(events, transport)
    return EventSourceResponse(receive, ping=ping)
