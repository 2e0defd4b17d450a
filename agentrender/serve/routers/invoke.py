"""Invoke endpoint.

Thin HTTP adapter: starts the agent, fans its UI and text channels into a
session aggregate and streams that aggregate back as Server-Sent Events.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status
from sse_starlette.sse import EventSourceResponse

from agentrender.models.api import ChatInput, InvokeRequest
from agentrender.models.events import content_delta_event, ui_update_event
from agentrender.serve.deps import Agents, Hub, Settings
from agentrender.streaming.hub import ShuttingDownError
from agentrender.streaming.transport import event_stream_response

router = APIRouter(tags=["invoke"])

# UI updates + text deltas.
INVOKE_CHANNELS = 2


@router.post("/invoke")
async def handle_invoke(body: InvokeRequest, hub: Hub, agents: Agents, settings: Settings) -> EventSourceResponse:
    invoker = agents.get(body.agent_id)
    if invoker is None:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="Agent not found")
    if hub.is_shutting_down:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail="Server is shutting down")

    invocation = invoker.invoke(ChatInput.from_request(body))
    try:
        aggregate = hub.open(invocation.session_id, expected_channels=INVOKE_CHANNELS)
    except ShuttingDownError:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail="Server is shutting down") from None

    aggregate.attach(invocation.ui, ui_update_event, name="ui")
    aggregate.attach(invocation.text, content_delta_event, name="text")

    return event_stream_response(
        aggregate.read(),
        session_id=invocation.session_id,
        ping=settings.sse_ping_interval,
    )
