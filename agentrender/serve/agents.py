"""Agent loading from ``module:Class`` import paths."""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING, Any

from loguru import logger

from agentrender.agent.invocation import NodeInvoker
from agentrender.agent.node import AgentNode

if TYPE_CHECKING:
    from agentrender.agent.invocation import AgentInvoker
    from agentrender.settings import AgentRenderSettings


def import_object(path: str) -> Any:
    """Import ``package.module:attr``.  Raises ``ValueError`` on a malformed path."""
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        msg = f"Expected 'module:attribute', got {path!r}"
        raise ValueError(msg)
    module = importlib.import_module(module_name)
    try:
        return getattr(module, attr)
    except AttributeError:
        msg = f"Module {module_name!r} has no attribute {attr!r}"
        raise ValueError(msg) from None


def load_agents(settings: AgentRenderSettings) -> dict[str, AgentInvoker]:
    """Build one ``NodeInvoker`` per configured agent.

    Each node's render registry is built here, at load time, so a broken
    node definition fails startup instead of the first request.
    """
    agents: dict[str, AgentInvoker] = {}
    for agent_id, path in settings.agents.items():
        node_cls = import_object(path)
        if not (isinstance(node_cls, type) and issubclass(node_cls, AgentNode)):
            msg = f"Agent {agent_id!r}: {path} is not an AgentNode subclass"
            raise TypeError(msg)
        agents[agent_id] = NodeInvoker.for_node_class(
            node_cls,
            method=settings.execute_method,
            render=settings.render_method,
        )
        logger.info("Agent '{}' loaded from {}", agent_id, path)
    return agents
