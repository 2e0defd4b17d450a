"""Protocol event models.

Two families live here:

- **Channel items** produced by a running invocation (``RenderEvent``,
  ``TextDelta``).  They never leave the server as-is.
- **Wire events** pushed to the client, one per SSE frame.  Field order and
  aliases match the client's JSON shapes exactly::

      {"type": "message/content",       "data": {"id", "message": {"content": ""}, "role", "createdAt"}}
      {"type": "message/ui/update",     "data": {"id", "message": {"ui": {"node", "render"}}}}
      {"type": "message/content/delta", "data": {"id", "message": {"content": {"delta"}}}}
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any, Literal

from pydantic import AliasChoices, BaseModel, Field, TypeAdapter

from agentrender.models.enums import EventType, MessageRole


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ---------------------------------------------------------------------------
# Channel items
# ---------------------------------------------------------------------------


class RenderEvent(BaseModel):
    """A ``context.render`` call made by a running node."""

    session_id: str
    node_id: str
    render_id: str
    data: Any = None


class TextDelta(BaseModel):
    """A chunk of streamed assistant text."""

    delta: str


# ---------------------------------------------------------------------------
# Wire events
# ---------------------------------------------------------------------------


class ContentMessage(BaseModel):
    content: str = ""


class ContentRecord(BaseModel):
    id: str
    message: ContentMessage = Field(default_factory=ContentMessage)
    role: MessageRole = MessageRole.AI
    created_at: str = Field(
        default_factory=utc_timestamp,
        validation_alias=AliasChoices("createdAt", "created_at"),
        serialization_alias="createdAt",
    )


class ContentEvent(BaseModel):
    """Placeholder record sent first on every invocation stream."""

    type: Literal["message/content"] = EventType.CONTENT.value
    data: ContentRecord


class UINode(BaseModel):
    """Client-resolvable reference: node id + render id in that node's registry."""

    id: str
    render_id: str = Field(
        validation_alias=AliasChoices("renderId", "render_id"),
        serialization_alias="renderId",
    )


class UIPayload(BaseModel):
    node: UINode
    render: Any = None


class UIMessage(BaseModel):
    ui: UIPayload


class UIUpdateData(BaseModel):
    id: str
    message: UIMessage


class UIUpdateEvent(BaseModel):
    type: Literal["message/ui/update"] = EventType.UI_UPDATE.value
    data: UIUpdateData


class DeltaContent(BaseModel):
    delta: str


class DeltaMessage(BaseModel):
    content: DeltaContent


class ContentDeltaData(BaseModel):
    id: str
    message: DeltaMessage


class ContentDeltaEvent(BaseModel):
    type: Literal["message/content/delta"] = EventType.CONTENT_DELTA.value
    data: ContentDeltaData


StreamEvent = Annotated[ContentEvent | UIUpdateEvent | ContentDeltaEvent, Field(discriminator="type")]

stream_event_adapter: TypeAdapter[StreamEvent] = TypeAdapter(StreamEvent)
"""Parses a wire event (dict or JSON) back into its model."""


# -- Constructors ------------------------------------------------------------


def initial_record(message_id: str) -> ContentEvent:
    return ContentEvent(data=ContentRecord(id=message_id))


def ui_update_event(message_id: str, update: RenderEvent) -> UIUpdateEvent:
    node = UINode(id=update.node_id, render_id=update.render_id)
    return UIUpdateEvent(
        data=UIUpdateData(id=message_id, message=UIMessage(ui=UIPayload(node=node, render=update.data))),
    )


def content_delta_event(message_id: str, delta: TextDelta) -> ContentDeltaEvent:
    return ContentDeltaEvent(
        data=ContentDeltaData(id=message_id, message=DeltaMessage(content=DeltaContent(delta=delta.delta))),
    )
