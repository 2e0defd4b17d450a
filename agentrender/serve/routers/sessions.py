"""Session stream endpoint (replay for late subscribers)."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status
from sse_starlette.sse import EventSourceResponse

from agentrender.serve.deps import Hub, Settings
from agentrender.streaming.transport import event_stream_response

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.get("/{session_id}/stream")
async def handle_stream_session(session_id: str, hub: Hub, settings: Settings) -> EventSourceResponse:
    try:
        events = hub.read(session_id)
    except LookupError:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=f"Session '{session_id}' has no open stream.") from None

    return event_stream_response(events, session_id=session_id, ping=settings.sse_ping_interval)
