"""Invocation output streaming.

- **aggregator**: ``SessionAggregate`` (fan-in, replay buffer, completion count)
- **hub**: ``StreamHub`` (open aggregates by session id, shutdown drain)
- **transport**: SSE frame encoding and delivery
"""

from agentrender.streaming.aggregator import SessionAggregate
from agentrender.streaming.hub import ShuttingDownError, StreamHub
from agentrender.streaming.transport import (
    SSETransport,
    encode_frame,
    event_stream_response,
    forward,
    spawn_forwarder,
)

__all__ = [
    "SSETransport",
    "SessionAggregate",
    "ShuttingDownError",
    "StreamHub",
    "encode_frame",
    "event_stream_response",
    "forward",
    "spawn_forwarder",
]
