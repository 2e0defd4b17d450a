"""Render-call extractor.

Reduces an agent node's ``execute`` method to the flat, source-ordered list of
its ``context.render(...)`` call sites, and rewrites the method into a plain
generator that yields one ``("render-N", component)`` pair per call site.

The rewrite is a build artifact for the client: it keeps only the component
references.  Branches, loops, data arguments and every other statement of the
original body are dropped, so two render calls on mutually exclusive branches
still get two distinct, permanent ids.  Ids are positional -- reordering render
calls in the source reassigns every id after the first moved call.
"""

from __future__ import annotations

import ast
import copy
from dataclasses import dataclass

from loguru import logger

RENDER_ID_PREFIX = "render-"

_FunctionNode = ast.FunctionDef | ast.AsyncFunctionDef


class TransformError(Exception):
    """The node definition cannot be reduced to render call sites."""


def render_id(index: int) -> str:
    """Return the render id for the call site at *index* (0-based)."""
    if index < 0:
        msg = f"render call index must be non-negative, got {index}"
        raise ValueError(msg)
    return f"{RENDER_ID_PREFIX}{index}"


@dataclass(frozen=True)
class RenderCallSite:
    """One ``context.render(...)`` call found in an execute method."""

    index: int
    component: ast.expr
    lineno: int | None = None

    @property
    def render_id(self) -> str:
        return render_id(self.index)


@dataclass
class ExtractedDefinition:
    """Result of :func:`extract_definition`: the rewritten class and its call sites."""

    name: str
    definition: ast.ClassDef
    sites: list[RenderCallSite]

    @property
    def render_ids(self) -> list[str]:
        return [site.render_id for site in self.sites]

    def to_module(self) -> ast.Module:
        """Wrap the rewritten class in a module ready for ``compile``."""
        module = ast.Module(body=[self.definition], type_ignores=[])
        return ast.fix_missing_locations(module)


# ---------------------------------------------------------------------------
# Call-site collection
# ---------------------------------------------------------------------------


class _RenderCallCollector(ast.NodeVisitor):
    """Pre-order, depth-first walk that records matching calls in source order."""

    def __init__(self, context_name: str, render_name: str) -> None:
        self._context_name = context_name
        self._render_name = render_name
        self.sites: list[RenderCallSite] = []

    def visit_Call(self, node: ast.Call) -> None:
        if self._is_render_call(node):
            self.sites.append(
                RenderCallSite(index=len(self.sites), component=_component_of(node), lineno=node.lineno),
            )
        # Arguments may hold further render calls; the outer call keeps the lower index.
        self.generic_visit(node)

    def visit_Dict(self, node: ast.Dict) -> None:
        # generic_visit would walk every key before any value.
        for key, value in zip(node.keys, node.values, strict=True):
            if key is not None:
                self.visit(key)
            self.visit(value)

    def visit_IfExp(self, node: ast.IfExp) -> None:
        # Source order is ``body if test else orelse``.
        self.visit(node.body)
        self.visit(node.test)
        self.visit(node.orelse)

    def _visit_definition(self, node: ast.FunctionDef | ast.AsyncFunctionDef | ast.ClassDef) -> None:
        # Decorators come first in the source but last in the node's fields.
        for decorator in node.decorator_list:
            self.visit(decorator)
        for field, value in ast.iter_fields(node):
            if field == "decorator_list":
                continue
            if isinstance(value, list):
                for item in value:
                    if isinstance(item, ast.AST):
                        self.visit(item)
            elif isinstance(value, ast.AST):
                self.visit(value)

    visit_FunctionDef = _visit_definition
    visit_AsyncFunctionDef = _visit_definition
    visit_ClassDef = _visit_definition

    def _is_render_call(self, node: ast.Call) -> bool:
        func = node.func
        return (
            isinstance(func, ast.Attribute)
            and func.attr == self._render_name
            and isinstance(func.value, ast.Name)
            and func.value.id == self._context_name
        )


def _component_of(call: ast.Call) -> ast.expr:
    if call.args and not isinstance(call.args[0], ast.Starred):
        return copy.deepcopy(call.args[0])
    for keyword in call.keywords:
        if keyword.arg == "component":
            return copy.deepcopy(keyword.value)
    logger.warning("Render call at line {} has no component reference; recording None", call.lineno)
    return ast.Constant(value=None)


def context_parameter(method: _FunctionNode) -> str:
    """Return the name of the execution-context parameter of *method*.

    That is the first positional parameter after ``self``/``cls``, or the very
    first one for a ``@staticmethod``.
    """
    positional = [*method.args.posonlyargs, *method.args.args]
    if not _is_staticmethod(method):
        positional = positional[1:]
    if not positional:
        msg = (
            f"{method.name}() at line {method.lineno} must take the execution context "
            "as its first parameter"
        )
        raise TransformError(msg)
    return positional[0].arg


def _is_staticmethod(method: _FunctionNode) -> bool:
    return any(isinstance(d, ast.Name) and d.id == "staticmethod" for d in method.decorator_list)


def find_render_calls(method: _FunctionNode, context_name: str, render_name: str = "render") -> list[RenderCallSite]:
    """Collect every ``<context_name>.<render_name>(...)`` call in *method*'s body.

    Control flow is ignored: calls under conditionals, loops, ``try`` blocks,
    comprehensions or nested functions are all collected, in the order they
    appear in the source.
    """
    collector = _RenderCallCollector(context_name, render_name)
    for statement in method.body:
        collector.visit(statement)
    return collector.sites


# ---------------------------------------------------------------------------
# Rewrite
# ---------------------------------------------------------------------------


def rewrite_method(method: _FunctionNode, sites: list[RenderCallSite]) -> ast.FunctionDef:
    """Return *method* as a synchronous generator yielding ``(render_id, component)``."""
    body: list[ast.stmt] = [
        ast.Expr(
            value=ast.Yield(
                value=ast.Tuple(
                    elts=[ast.Constant(value=site.render_id), copy.deepcopy(site.component)],
                    ctx=ast.Load(),
                ),
            ),
        )
        for site in sites
    ]
    if not body:
        # Still a generator, just an empty one.
        body = [ast.Expr(value=ast.YieldFrom(value=ast.Tuple(elts=[], ctx=ast.Load())))]

    # FunctionDef and AsyncFunctionDef share their fields; copy whatever this
    # interpreter defines (type_params only exists on 3.12+).
    fields = {name: getattr(method, name) for name in method._fields if hasattr(method, name)}
    fields.update(body=body, returns=None)
    rewritten = ast.FunctionDef(**fields)
    ast.copy_location(rewritten, method)
    return ast.fix_missing_locations(rewritten)


def _find_method(definition: ast.ClassDef, method_name: str) -> int | None:
    for position, statement in enumerate(definition.body):
        if isinstance(statement, _FunctionNode) and statement.name == method_name:
            return position
    return None


def _rewrite_class(definition: ast.ClassDef, method_name: str, render_name: str) -> list[RenderCallSite]:
    position = _find_method(definition, method_name)
    if position is None:
        msg = f"{definition.name} does not define {method_name}()"
        raise TransformError(msg)

    method = definition.body[position]
    context_name = context_parameter(method)
    sites = find_render_calls(method, context_name, render_name)
    definition.body[position] = rewrite_method(method, sites)

    logger.debug(
        "Extracted {} render call site(s) from {}.{} (context parameter '{}')",
        len(sites),
        definition.name,
        method_name,
        context_name,
    )
    return sites


def _parse(source: str | ast.Module, filename: str) -> ast.Module:
    if isinstance(source, ast.Module):
        # Never mutate the caller's tree.
        return copy.deepcopy(source)
    try:
        return ast.parse(source, filename=filename)
    except SyntaxError as exc:
        msg = f"Cannot parse {filename}: {exc.msg} (line {exc.lineno})"
        raise TransformError(msg) from exc


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------


def extract_definition(
    source: str | ast.Module,
    name: str,
    *,
    method: str = "execute",
    render: str = "render",
    filename: str = "<agent>",
) -> ExtractedDefinition:
    """Extract and rewrite the module-level class *name* from *source*.

    Raises ``TransformError`` if the class or its *method* is missing, or if the
    method does not take an execution-context parameter.
    """
    module = _parse(source, filename)
    for statement in module.body:
        if isinstance(statement, ast.ClassDef) and statement.name == name:
            sites = _rewrite_class(statement, method, render)
            return ExtractedDefinition(name=name, definition=statement, sites=sites)

    msg = f"{filename} has no module-level class named {name!r}"
    raise TransformError(msg)


def transform_source(
    source: str | ast.Module,
    *,
    method: str = "execute",
    render: str = "render",
    filename: str = "<agent>",
) -> str:
    """Rewrite every module-level class that defines *method*; return the new source.

    Classes without the method and all other module statements (imports,
    component definitions, helpers) are kept as they are.  This is the
    artifact shipped to the client.
    """
    module = _parse(source, filename)
    rewritten = 0
    for statement in module.body:
        if isinstance(statement, ast.ClassDef) and _find_method(statement, method) is not None:
            _rewrite_class(statement, method, render)
            rewritten += 1

    logger.debug("Rewrote {} node definition(s) in {}", rewritten, filename)
    return ast.unparse(ast.fix_missing_locations(module))
