"""Agent node base class."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from agentrender.agent.context import ExecutionContext


class AgentNode:
    """Unit of agent logic that may render client-side UI.

    Subclasses set ``id`` and implement ``execute``.  Every
    ``context.render(Component, data)`` call in ``execute`` becomes a slot in
    the node's render registry, numbered by its position in the source::

        class ShowError(AgentNode):
            id = "examples/show-error"

            async def execute(self, context, input):
                context.render(ErrorBanner, {"error": input.query})

    ``execute`` may also be an async generator; its yielded values are ignored.
    """

    id: ClassVar[str]
    name: ClassVar[str] = ""
    description: ClassVar[str] = ""
    version: ClassVar[str] = "0.0.1"

    async def execute(self, context: ExecutionContext, input: Any) -> None:  # noqa: A002
        raise NotImplementedError
