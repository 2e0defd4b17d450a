"""Render registry -- render id -> component lookup built from extracted call sites.

A registry is built once per node definition by draining the generator that
:mod:`agentrender.build.extractor` produces, and is read-only afterwards.
Construction is explicit: callers build the registry and hand it to whatever
renders (the client) or validates (the execution context); nothing registers
itself globally on import.
"""

from __future__ import annotations

import __future__
import inspect
import sys
import textwrap
from collections.abc import Iterable, Iterator, Mapping
from functools import lru_cache
from types import MappingProxyType
from typing import Any

from loguru import logger

from agentrender.build.extractor import TransformError, extract_definition


class UnknownRenderId(LookupError):
    """A render id was looked up that the registry never recorded.

    Signals a mismatch between the ids assigned at build time and the ids
    emitted at run time.
    """

    def __init__(self, render_id: str, known: Iterable[str] = ()) -> None:
        self.render_id = render_id
        self.known = list(known)
        super().__init__(f"Unknown render id {render_id!r} (registry has {self.known})")


class RenderRegistry(Mapping[str, Any]):
    """Ordered, read-only mapping of render id to component reference."""

    def __init__(self, pairs: Iterable[tuple[str, Any]] = ()) -> None:
        table: dict[str, Any] = {}
        for render_id, component in pairs:
            if render_id in table:
                msg = f"Duplicate render id {render_id!r}"
                raise ValueError(msg)
            table[render_id] = component
        self._table = MappingProxyType(table)

    @classmethod
    def from_definition(cls, definition: Any, method: str = "execute") -> RenderRegistry:
        """Build a registry from a class whose *method* was rewritten by the extractor."""
        return cls(iter_render_pairs(definition, method))

    def resolve(self, render_id: str) -> Any:
        """Return the component for *render_id*.  Raises ``UnknownRenderId``."""
        try:
            return self._table[render_id]
        except KeyError:
            raise UnknownRenderId(render_id, self._table) from None

    def __getitem__(self, render_id: str) -> Any:
        return self._table[render_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def __repr__(self) -> str:
        return f"RenderRegistry({list(self._table)})"


def iter_render_pairs(definition: Any, method: str = "execute") -> Iterator[tuple[str, Any]]:
    """Run the rewritten *method* of *definition* and return its pair iterator.

    Required parameters (``self``, the context, the input) are filled with
    ``None``; the rewritten body never touches them.  Each call starts a fresh
    iteration.
    """
    func = getattr(definition, method)
    if not inspect.isgeneratorfunction(func):
        msg = f"{method}() of {definition!r} is not a rewritten render generator"
        raise TypeError(msg)

    args: list[None] = []
    kwargs: dict[str, None] = {}
    for param in inspect.signature(func).parameters.values():
        if param.default is not param.empty:
            continue
        if param.kind in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD):
            args.append(None)
        elif param.kind is param.KEYWORD_ONLY:
            kwargs[param.name] = None
    return func(*args, **kwargs)


def compile_definition(
    source: str,
    name: str,
    namespace: Mapping[str, Any],
    *,
    method: str = "execute",
    render: str = "render",
    filename: str = "<agent>",
) -> type:
    """Rewrite class *name* from *source* and execute it in a copy of *namespace*.

    Class decorators are dropped: the result is a build artifact and must not
    re-run registration side effects of the original definition.
    """
    extracted = extract_definition(source, name, method=method, render=render, filename=filename)
    extracted.definition.decorator_list = []
    code = compile(
        extracted.to_module(),
        filename,
        "exec",
        flags=__future__.annotations.compiler_flag,
        dont_inherit=True,
    )
    scope = dict(namespace)
    exec(code, scope)  # noqa: S102
    return scope[name]


def load_node_registry(node_cls: type, *, method: str = "execute", render: str = "render") -> RenderRegistry:
    """Build (once) the render registry of an agent node class.

    Reads the class source, rewrites its *method* and evaluates the component
    references in the globals of the module that defines the class.
    """
    return _load_node_registry(node_cls, method, render)


@lru_cache(maxsize=None)
def _load_node_registry(node_cls: type, method: str, render: str) -> RenderRegistry:
    try:
        source = textwrap.dedent(inspect.getsource(node_cls))
        filename = inspect.getsourcefile(node_cls) or "<agent>"
    except (OSError, TypeError) as exc:
        msg = f"Source of {node_cls.__qualname__} is not available"
        raise TransformError(msg) from exc

    module = sys.modules.get(node_cls.__module__)
    namespace = vars(module) if module is not None else {}
    rewritten = compile_definition(
        source,
        node_cls.__name__,
        namespace,
        method=method,
        render=render,
        filename=filename,
    )
    registry = RenderRegistry.from_definition(rewritten, method)
    logger.info("Built render registry for {} ({} id(s))", node_cls.__qualname__, len(registry))
    return registry
