"""Reusable block composition kernel (descriptors, registry, placement, render).

This package is intentionally independent of `block_editor.*`. Concrete block
types, configuration and logging setup belong to the consuming application.
"""

from blockkit.block_registry import BlockRegistry
from blockkit.block_types import (
    AttributeSpec,
    BlockDescriptor,
    BlockSupports,
    CallbackRenderer,
    Renderable,
    descriptor_from_metadata,
)
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
from blockkit.errors import (
    BlockKitError,
    InvalidAttributes,
    InvalidDescriptor,
    InvalidPath,
    NonDeterministicSave,
    NotFound,
    ParseError,
    PlacementRejected,
    RenderCancelled,
)
from blockkit.placement import PlacementValidator

__all__ = [
    "AttributeSpec",
    "BlockDescriptor",
    "BlockKitError",
    "BlockNode",
    "BlockRegistry",
    "BlockSupports",
    "CallbackRenderer",
    "CompositionTree",
    "DefaultRenderRecorder",
    "DualRenderer",
    "EditView",
    "InvalidAttributes",
    "InvalidDescriptor",
    "InvalidPath",
    "NonDeterministicSave",
    "NotFound",
    "NullRenderRecorder",
    "ParseError",
    "PlacementRejected",
    "PlacementValidator",
    "Renderable",
    "RenderCancelled",
    "RenderRecorder",
    "RenderResult",
    "descriptor_from_metadata",
    "parse",
    "parse_nodes",
    "placement_problems",
    "serialize",
]
