"""Build-time tooling: render-call extraction and render registries.

- **extractor**: ``execute`` method -> ordered ``(render-N, component)`` generator
- **registry**: generator -> read-only ``RenderRegistry``
"""

from agentrender.build.extractor import (
    ExtractedDefinition,
    RenderCallSite,
    TransformError,
    extract_definition,
    render_id,
    transform_source,
)
from agentrender.build.registry import (
    RenderRegistry,
    UnknownRenderId,
    compile_definition,
    iter_render_pairs,
    load_node_registry,
)

__all__ = [
    "ExtractedDefinition",
    "RenderCallSite",
    "RenderRegistry",
    "TransformError",
    "UnknownRenderId",
    "compile_definition",
    "extract_definition",
    "iter_render_pairs",
    "load_node_registry",
    "render_id",
    "transform_source",
]
