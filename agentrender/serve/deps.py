"""FastAPI dependency injection for the stream hub, agents and settings.

Usage in route handlers::

    @router.get("/sessions/{session_id}/stream")
    async def stream(session_id: str, hub: Hub) -> EventSourceResponse:
        ...
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated

from fastapi import Depends, Request

from agentrender.agent.invocation import AgentInvoker
from agentrender.settings import AgentRenderSettings, get_settings
from agentrender.streaming.hub import StreamHub


def get_hub(request: Request) -> StreamHub:
    return request.app.state.hub


def get_agents(request: Request) -> Mapping[str, AgentInvoker]:
    return request.app.state.agents


# -- Annotated type aliases for concise route signatures ---------------------

Hub = Annotated[StreamHub, Depends(get_hub)]
"""Annotated dependency: the process-wide stream hub."""

Agents = Annotated[Mapping[str, AgentInvoker], Depends(get_agents)]
"""Annotated dependency: agent id -> invoker."""

Settings = Annotated[AgentRenderSettings, Depends(get_settings)]
"""Annotated dependency: cached service settings."""
