"""Runtime side of agent nodes.

- **node**: ``AgentNode`` base class
- **context**: ``ExecutionContext`` (``render`` / ``send_text``)
- **channels**: per-session output channels the aggregator attaches to
- **invocation**: in-process host that runs a node per request
"""

from agentrender.agent.channels import OutputChannel, SessionChannel
from agentrender.agent.context import ExecutionContext
from agentrender.agent.invocation import AgentInvoker, Invocation, NodeInvoker
from agentrender.agent.node import AgentNode

__all__ = [
    "AgentInvoker",
    "AgentNode",
    "ExecutionContext",
    "Invocation",
    "NodeInvoker",
    "OutputChannel",
    "SessionChannel",
]
