"""Data models for agentrender."""

from agentrender.models.api import ChatInput, InvokeMessage, InvokeRequest, ModelSelection
from agentrender.models.enums import EventType, MessageRole, ModelProvider
from agentrender.models.events import (
    ContentDeltaEvent,
    ContentEvent,
    RenderEvent,
    StreamEvent,
    TextDelta,
    UIUpdateEvent,
    content_delta_event,
    initial_record,
    stream_event_adapter,
    ui_update_event,
)

__all__ = [
    # API schemas
    "ChatInput",
    # Wire events
    "ContentDeltaEvent",
    "ContentEvent",
    # Enums
    "EventType",
    "InvokeMessage",
    "InvokeRequest",
    "MessageRole",
    "ModelProvider",
    "ModelSelection",
    # Channel items
    "RenderEvent",
    "StreamEvent",
    "TextDelta",
    "UIUpdateEvent",
    "content_delta_event",
    "initial_record",
    "stream_event_adapter",
    "ui_update_event",
]
