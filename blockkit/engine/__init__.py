"""Engine primitives for building, rendering and persisting block trees."""

from blockkit.engine.render import (
    DefaultRenderRecorder,
    DualRenderer,
    EditView,
    NullRenderRecorder,
    RenderRecorder,
    RenderResult,
)
from blockkit.engine.serialization import parse, parse_nodes, serialize
from blockkit.engine.tree import BlockNode, CompositionTree, placement_problems

__all__ = [
    "BlockNode",
    "CompositionTree",
    "DefaultRenderRecorder",
    "DualRenderer",
    "EditView",
    "NullRenderRecorder",
    "RenderRecorder",
    "RenderResult",
    "parse",
    "parse_nodes",
    "placement_problems",
    "serialize",
]
