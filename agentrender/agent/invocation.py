"""In-process agent host.

Runs an ``AgentNode`` for one request and exposes its two output channels
(UI updates and text deltas) under a fresh session id.  The stream
aggregator attaches to those channels; the host never talks to the transport.
"""

from __future__ import annotations

import asyncio
import inspect
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from loguru import logger

from agentrender.agent.channels import OutputChannel, SessionChannel
from agentrender.agent.context import ExecutionContext
from agentrender.build.registry import load_node_registry
from agentrender.models.events import RenderEvent, TextDelta

if TYPE_CHECKING:
    from agentrender.agent.node import AgentNode
    from agentrender.build.registry import RenderRegistry
    from agentrender.models.api import ChatInput


@dataclass
class Invocation:
    """A started invocation: its session id and the channels it writes to."""

    session_id: str
    ui: OutputChannel[RenderEvent]
    text: OutputChannel[TextDelta]
    task: asyncio.Task[None] | None = None


class AgentInvoker(Protocol):
    """Starts invocations.  Implemented by ``NodeInvoker``; replaceable by any host."""

    def invoke(self, input: ChatInput) -> Invocation:  # noqa: A002
        ...


class NodeInvoker:
    """Runs one ``AgentNode`` per invocation as a background task."""

    def __init__(self, node: AgentNode, *, registry: RenderRegistry | None = None) -> None:
        self.node = node
        self.registry = registry
        self.ui: SessionChannel[RenderEvent] = SessionChannel("ui")
        self.text: SessionChannel[TextDelta] = SessionChannel("text")
        self._tasks: set[asyncio.Task[None]] = set()

    @classmethod
    def for_node_class(
        cls,
        node_cls: type[AgentNode],
        *,
        method: str = "execute",
        render: str = "render",
    ) -> NodeInvoker:
        """Instantiate *node_cls* and build its render registry for id validation."""
        registry = load_node_registry(node_cls, method=method, render=render)
        return cls(node_cls(), registry=registry)

    @property
    def running(self) -> int:
        return len(self._tasks)

    def invoke(self, input: ChatInput) -> Invocation:  # noqa: A002
        session_id = uuid.uuid4().hex
        self.ui.open(session_id)
        self.text.open(session_id)

        context = ExecutionContext(
            session_id=session_id,
            node_id=self.node.id,
            ui=self.ui,
            text=self.text,
            registry=self.registry,
        )
        task = asyncio.create_task(self._run(context, input), name=f"agentrender-node-{session_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        logger.info("Invoked node {} (session={})", self.node.id, session_id)
        return Invocation(session_id=session_id, ui=self.ui, text=self.text, task=task)

    async def _run(self, context: ExecutionContext, input: ChatInput) -> None:  # noqa: A002
        session_id = context.session_id
        try:
            result = self.node.execute(context, input)
            if inspect.isasyncgen(result):
                async for _ in result:
                    pass
            else:
                await result
        except Exception as exc:
            # Surfaces to the client as a channel fault on both channels.
            logger.exception("Node {} failed (session={})", self.node.id, session_id)
            self.ui.fail(session_id, exc)
            self.text.fail(session_id, exc)
        else:
            logger.info("Node {} finished (session={}, renders={})", self.node.id, session_id, context.render_count)
            self.ui.close(session_id)
            self.text.close(session_id)
