"""Unit tests for the render-call extractor."""

from __future__ import annotations

import ast
import inspect
import textwrap

import pytest

from agentrender.build.extractor import (
    TransformError,
    context_parameter,
    extract_definition,
    render_id,
    transform_source,
)
from agentrender.build.registry import RenderRegistry

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _src(code: str) -> str:
    return textwrap.dedent(code).strip() + "\n"


def _components(source: str, name: str = "Node", **kwargs: str) -> list[str]:
    extracted = extract_definition(_src(source), name, **kwargs)
    return [ast.unparse(site.component) for site in extracted.sites]


NESTED = """
class Node:
    async def execute(self, context, input):
        logger.info("start")
        if input.flag:
            context.render(A, {"x": 1})
        else:
            context.render(B, compute(input))
        for row in input.rows:
            while row.more():
                context.render(C, row)
        try:
            context.render(D)
        except ValueError:
            context.render(E)
        finally:
            cleanup()
        with lock:
            items = [context.render(F, i) for i in range(3)]

        def later():
            context.render(G)

        match input.kind:
            case "h":
                context.render(H)
        return items
"""


# ---------------------------------------------------------------------------
# render_id
# ---------------------------------------------------------------------------


def test_render_id_is_positional() -> None:
    assert render_id(0) == "render-0"
    assert render_id(12) == "render-12"


def test_render_id_rejects_negative() -> None:
    with pytest.raises(ValueError):
        render_id(-1)


# ---------------------------------------------------------------------------
# Call-site collection
# ---------------------------------------------------------------------------


def test_nested_control_flow_flattened_in_source_order() -> None:
    extracted = extract_definition(_src(NESTED), "Node")

    assert [ast.unparse(s.component) for s in extracted.sites] == ["A", "B", "C", "D", "E", "F", "G", "H"]
    assert extracted.render_ids == [f"render-{i}" for i in range(8)]
    assert [s.index for s in extracted.sites] == list(range(8))


def test_no_render_calls() -> None:
    extracted = extract_definition(
        _src(
            """
            class Node:
                async def execute(self, context, input):
                    if input:
                        do_something(input)
            """
        ),
        "Node",
    )
    assert extracted.sites == []
    assert extracted.render_ids == []


def test_only_context_render_calls_match() -> None:
    components = _components(
        """
        class Node:
            async def execute(self, context, input):
                other.render(X1)
                context.update(X2)
                render(X3)
                self.context.render(X4)
                context.render(Match)
        """
    )
    assert components == ["Match"]


def test_context_parameter_name_is_taken_from_signature() -> None:
    components = _components(
        """
        class Node:
            async def execute(self, ctx, input):
                context.render(NotMe)
                ctx.render(Me)
        """
    )
    assert components == ["Me"]


def test_staticmethod_context_is_first_parameter() -> None:
    components = _components(
        """
        class Node:
            @staticmethod
            async def execute(context, input):
                context.render(A)
        """
    )
    assert components == ["A"]


def test_nested_render_calls_outer_first() -> None:
    components = _components(
        """
        class Node:
            async def execute(self, context, input):
                context.render(Outer, context.render(Inner))
        """
    )
    assert components == ["Outer", "Inner"]


def test_dict_entries_visited_in_source_order() -> None:
    components = _components(
        """
        class Node:
            async def execute(self, context, input):
                payload = {1: context.render(A), context.render(B): 2, **context.render(C), "d": context.render(D)}
        """
    )
    assert components == ["A", "B", "C", "D"]


def test_conditional_expression_in_source_order() -> None:
    components = _components(
        """
        class Node:
            async def execute(self, context, input):
                context.render(A) if context.render(B) else context.render(C)
        """
    )
    assert components == ["A", "B", "C"]


def test_nested_definition_decorators_come_first() -> None:
    components = _components(
        """
        class Node:
            async def execute(self, context, input):
                @hook(context.render(A))
                def helper(value=context.render(B)):
                    context.render(C)
        """
    )
    assert components == ["A", "B", "C"]


def test_keyword_component() -> None:
    components = _components(
        """
        class Node:
            async def execute(self, context, input):
                context.render(data={"a": 1}, component=Card)
        """
    )
    assert components == ["Card"]


def test_missing_component_keeps_slot() -> None:
    components = _components(
        """
        class Node:
            async def execute(self, context, input):
                context.render()
                context.render(B)
        """
    )
    assert components == ["None", "B"]


def test_lambda_component_kept_verbatim() -> None:
    components = _components(
        """
        class Node:
            async def execute(self, context, input):
                context.render(lambda props: Banner(props.data), {"error": input.error})
        """
    )
    assert components == ["lambda props: Banner(props.data)"]


def test_custom_method_and_render_names() -> None:
    components = _components(
        """
        class Node:
            async def run(self, context, input):
                context.render(Ignored)
                context.show(A)
        """,
        method="run",
        render="show",
    )
    assert components == ["A"]


def test_context_parameter_helper() -> None:
    module = ast.parse(_src("async def execute(self, context, input): pass"))
    method = module.body[0]
    assert context_parameter(method) == "context"


# ---------------------------------------------------------------------------
# Rewrite
# ---------------------------------------------------------------------------


def test_rewritten_method_is_sync_generator() -> None:
    extracted = extract_definition(_src(NESTED), "Node")
    method = extracted.definition.body[0]

    assert isinstance(method, ast.FunctionDef)
    assert method.name == "execute"
    assert method.returns is None
    assert len(method.body) == 8
    assert all(isinstance(stmt, ast.Expr) and isinstance(stmt.value, ast.Yield) for stmt in method.body)
    assert ast.unparse(method.body[0].value.value) == "('render-0', A)"


def test_rewritten_body_drops_everything_else() -> None:
    extracted = extract_definition(_src(NESTED), "Node")
    code = ast.unparse(extracted.definition)

    for dropped in ("logger", "compute", "cleanup", "lock", "return", "if ", "for ", "try"):
        assert dropped not in code


def test_rewrite_keeps_other_class_members() -> None:
    extracted = extract_definition(
        _src(
            """
            class Node(AgentNode):
                id = "n"

                def helper(self):
                    return 1

                async def execute(self, context, input) -> None:
                    context.render(A)
            """
        ),
        "Node",
    )
    names = [type(stmt).__name__ for stmt in extracted.definition.body]
    assert names == ["Assign", "FunctionDef", "FunctionDef"]
    assert ast.unparse(extracted.definition.bases[0]) == "AgentNode"


def test_empty_rewrite_is_still_a_generator() -> None:
    extracted = extract_definition(
        _src(
            """
            class Node:
                async def execute(self, context, input):
                    pass
            """
        ),
        "Node",
    )
    namespace: dict = {}
    exec(compile(extracted.to_module(), "<test>", "exec"), namespace)  # noqa: S102

    execute = namespace["Node"].execute
    assert inspect.isgeneratorfunction(execute)
    assert list(execute(None, None, None)) == []


def test_rewritten_definition_yields_pairs() -> None:
    extracted = extract_definition(_src(NESTED), "Node")
    components = {name: object() for name in "ABCDEFGH"}
    namespace = dict(components)
    exec(compile(extracted.to_module(), "<test>", "exec"), namespace)  # noqa: S102

    pairs = list(namespace["Node"].execute(None, None, None))
    assert pairs == [(f"render-{i}", components[name]) for i, name in enumerate("ABCDEFGH")]


def test_module_input_not_mutated() -> None:
    module = ast.parse(_src(NESTED))
    before = ast.dump(module)

    extract_definition(module, "Node")

    assert ast.dump(module) == before


def test_reordering_calls_reassigns_ids() -> None:
    first = _components(
        """
        class Node:
            async def execute(self, context, input):
                context.render(A)
                context.render(B)
        """
    )
    swapped = _components(
        """
        class Node:
            async def execute(self, context, input):
                context.render(B)
                context.render(A)
        """
    )
    assert first == ["A", "B"]
    assert swapped == ["B", "A"]


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


def test_missing_class_raises() -> None:
    with pytest.raises(TransformError, match="no module-level class"):
        extract_definition("x = 1\n", "Node")


def test_missing_method_raises() -> None:
    with pytest.raises(TransformError, match="does not define execute"):
        extract_definition(_src("class Node:\n    def run(self, context): pass"), "Node")


def test_method_without_context_raises() -> None:
    with pytest.raises(TransformError, match="execution context"):
        extract_definition(_src("class Node:\n    async def execute(self): pass"), "Node")


def test_star_args_only_raises() -> None:
    with pytest.raises(TransformError):
        extract_definition(_src("class Node:\n    async def execute(self, *args, **kwargs): pass"), "Node")


def test_syntax_error_raises() -> None:
    with pytest.raises(TransformError, match="Cannot parse"):
        extract_definition("class Node(:\n", "Node")


# ---------------------------------------------------------------------------
# transform_source
# ---------------------------------------------------------------------------

MODULE = """
from dataclasses import dataclass


def Banner(props):
    return f"<div>{props}</div>"


def Card(props):
    return f"<section>{props}</section>"


class Plain:
    def run(self):
        return "untouched"


class ShowError:
    id = "examples/show-error"

    async def execute(self, context, input):
        if input.error:
            context.render(Banner, {"error": input.error})
        context.render(Card, {"detail": input.detail})


class ShowNothing:
    async def execute(self, context, input):
        return None
"""


def test_transform_source_rewrites_every_node() -> None:
    result = transform_source(_src(MODULE))

    assert "async def" not in result
    assert "from dataclasses import dataclass" in result
    assert "return 'untouched'" in result

    namespace: dict = {}
    exec(compile(result, "<client>", "exec"), namespace)  # noqa: S102

    registry = RenderRegistry.from_definition(namespace["ShowError"])
    assert list(registry) == ["render-0", "render-1"]
    assert registry.resolve("render-0") is namespace["Banner"]
    assert registry.resolve("render-1") is namespace["Card"]

    assert len(RenderRegistry.from_definition(namespace["ShowNothing"])) == 0
    assert namespace["Plain"]().run() == "untouched"


def test_transform_source_propagates_bad_signature() -> None:
    with pytest.raises(TransformError):
        transform_source(_src("class Broken:\n    async def execute(self): pass"))
