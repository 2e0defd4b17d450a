"""Execution context handed to a running agent node."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from loguru import logger

from agentrender.build.extractor import render_id
from agentrender.models.events import RenderEvent, TextDelta

if TYPE_CHECKING:
    from agentrender.agent.channels import SessionChannel
    from agentrender.build.registry import RenderRegistry


class ExecutionContext:
    """Per-execution handle for rendering UI and streaming text.

    ``render`` numbers calls in the order they happen during this execution
    (``render-0``, ``render-1``, ...).  The numbering only lines up with the
    build-time registry when the calls run in the same order as they appear in
    the source, which is why every id is checked against the node's registry
    when one is supplied.
    """

    def __init__(
        self,
        *,
        session_id: str,
        node_id: str,
        ui: SessionChannel[RenderEvent],
        text: SessionChannel[TextDelta],
        registry: RenderRegistry | None = None,
    ) -> None:
        self.session_id = session_id
        self.node_id = node_id
        self._ui = ui
        self._text = text
        self._registry = registry
        self._render_count = 0

    @property
    def render_count(self) -> int:
        return self._render_count

    def render(self, component: Any, data: Any = None) -> str:
        """Ask the client to paint *component* with *data*; return the render id.

        *component* stays on this side: only the render id and *data* are sent.
        Raises ``UnknownRenderId`` if the id is not in the node's registry.
        """
        rid = render_id(self._render_count)
        if self._registry is not None:
            self._registry.resolve(rid)
        self._render_count += 1

        logger.debug("Session {}: {} rendered {}", self.session_id, self.node_id, rid)
        self._ui.emit(
            self.session_id,
            RenderEvent(session_id=self.session_id, node_id=self.node_id, render_id=rid, data=data),
        )
        return rid

    def send_text(self, delta: str) -> None:
        """Stream a chunk of assistant text.  Empty chunks are skipped."""
        if delta:
            self._text.emit(self.session_id, TextDelta(delta=delta))
