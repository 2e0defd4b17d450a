"""Unit tests for ExecutionContext and NodeInvoker."""

from __future__ import annotations

import asyncio

import pytest

from agentrender.agent.channels import SessionChannel
from agentrender.agent.context import ExecutionContext
from agentrender.agent.invocation import NodeInvoker
from agentrender.agent.node import AgentNode
from agentrender.build.registry import RenderRegistry, UnknownRenderId
from agentrender.models.api import ChatInput
from agentrender.models.events import RenderEvent, TextDelta

# ---------------------------------------------------------------------------
# Components and nodes
# ---------------------------------------------------------------------------


def Answer(props):  # noqa: N802
    return props


def Sources(props):  # noqa: N802
    return props


class AnsweringNode(AgentNode):
    id = "tests/answering"

    async def execute(self, context, input):  # noqa: A002
        context.send_text("Looking ")
        context.send_text("it up")
        context.render(Answer, {"query": input.query})
        context.render(Sources, ["a", "b"])


class StreamingNode(AgentNode):
    id = "tests/streaming"

    async def execute(self, context, input):  # noqa: A002
        for word in input.query.split():
            context.send_text(word)
            yield word


class FailingNode(AgentNode):
    id = "tests/failing"

    async def execute(self, context, input):  # noqa: A002
        context.render(Answer, {"partial": True})
        raise RuntimeError("model unavailable")


class LoopingNode(AgentNode):
    id = "tests/looping"

    async def execute(self, context, input):  # noqa: A002
        for _ in range(3):
            context.render(Answer, None)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _context(registry: RenderRegistry | None = None) -> tuple[ExecutionContext, SessionChannel, SessionChannel]:
    ui: SessionChannel[RenderEvent] = SessionChannel("ui")
    text: SessionChannel[TextDelta] = SessionChannel("text")
    ui.open("s1")
    text.open("s1")
    context = ExecutionContext(session_id="s1", node_id="tests/node", ui=ui, text=text, registry=registry)
    return context, ui, text


async def _drain(channel, session_id: str) -> list:
    source = await channel.select(session_id)
    assert source is not None
    return [item async for item in source]


# ---------------------------------------------------------------------------
# ExecutionContext
# ---------------------------------------------------------------------------


async def test_render_numbers_calls_per_execution() -> None:
    context, ui, _ = _context()

    assert context.render(Answer, {"a": 1}) == "render-0"
    assert context.render(Sources) == "render-1"
    assert context.render_count == 2

    ui.close("s1")
    events = await _drain(ui, "s1")
    assert [e.render_id for e in events] == ["render-0", "render-1"]
    assert events[0] == RenderEvent(session_id="s1", node_id="tests/node", render_id="render-0", data={"a": 1})
    assert events[1].data is None


async def test_render_validates_against_registry() -> None:
    registry = RenderRegistry([("render-0", Answer), ("render-1", Sources)])
    context, ui, _ = _context(registry)

    context.render(Answer)
    context.render(Sources)
    with pytest.raises(UnknownRenderId):
        context.render(Answer)

    # The rejected call emits nothing and does not advance the counter.
    assert context.render_count == 2
    ui.close("s1")
    assert len(await _drain(ui, "s1")) == 2


async def test_send_text_skips_empty_chunks() -> None:
    context, _, text = _context()

    context.send_text("")
    context.send_text("hi")

    text.close("s1")
    assert await _drain(text, "s1") == [TextDelta(delta="hi")]


# ---------------------------------------------------------------------------
# NodeInvoker
# ---------------------------------------------------------------------------


async def test_invoker_runs_node_and_closes_channels() -> None:
    invoker = NodeInvoker.for_node_class(AnsweringNode)

    invocation = invoker.invoke(ChatInput(query="weather"))
    assert invocation.task is not None
    await invocation.task

    ui = await _drain(invocation.ui, invocation.session_id)
    text = await _drain(invocation.text, invocation.session_id)
    assert [(e.node_id, e.render_id, e.data) for e in ui] == [
        ("tests/answering", "render-0", {"query": "weather"}),
        ("tests/answering", "render-1", ["a", "b"]),
    ]
    assert [t.delta for t in text] == ["Looking ", "it up"]


async def test_invoker_accepts_async_generator_execute() -> None:
    invoker = NodeInvoker(StreamingNode())

    invocation = invoker.invoke(ChatInput(query="one two"))
    await invocation.task

    assert await _drain(invocation.ui, invocation.session_id) == []
    assert [t.delta for t in await _drain(invocation.text, invocation.session_id)] == ["one", "two"]


async def test_invoker_failure_faults_both_channels() -> None:
    invoker = NodeInvoker.for_node_class(FailingNode)

    invocation = invoker.invoke(ChatInput(query="x"))
    await invocation.task

    with pytest.raises(RuntimeError, match="model unavailable"):
        await _drain(invocation.ui, invocation.session_id)
    with pytest.raises(RuntimeError, match="model unavailable"):
        await _drain(invocation.text, invocation.session_id)


async def test_runtime_numbering_mismatch_is_a_protocol_violation() -> None:
    # One call site in a loop: the build registry has render-0 only.
    invoker = NodeInvoker.for_node_class(LoopingNode)
    assert list(invoker.registry) == ["render-0"]

    invocation = invoker.invoke(ChatInput(query="x"))
    await invocation.task

    source = await invocation.ui.select(invocation.session_id)
    received = []
    with pytest.raises(UnknownRenderId):
        async for item in source:
            received.append(item)
    assert [e.render_id for e in received] == ["render-0"]


async def test_invocations_get_distinct_sessions() -> None:
    invoker = NodeInvoker(AnsweringNode())

    first = invoker.invoke(ChatInput(query="a"))
    second = invoker.invoke(ChatInput(query="b"))
    assert first.session_id != second.session_id

    await asyncio.gather(first.task, second.task)
    await asyncio.sleep(0)
    assert invoker.running == 0
