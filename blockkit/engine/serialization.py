"""Persisted block format.

Each block is framed by comment delimiters carrying its type name and its
attributes as JSON; the block's save markup (which already contains the framed
children) sits between them:

    <!-- wp:column {"width":"50%"} -->
    <div class="wp-block-column">...</div>
    <!-- /wp:column -->

Blocks in the `core` namespace are written without the namespace. A block with
no inner markup is written in the void form `<!-- wp:spacer /-->`. Text outside
delimiters is not part of the tree and is ignored by the parser.
"""

from __future__ import annotations

import json
import re
from typing import Any, Mapping, Sequence

from blockkit.block_registry import BlockRegistry
from blockkit.engine.tree import BlockNode, CompositionTree
from blockkit.errors import ParseError

DEFAULT_NAMESPACE = "core"

_DELIMITER = re.compile(
    r"<!--\s+(?P<closer>/)?wp:(?P<name>[a-z][a-z0-9_-]*(?:/[a-z][a-z0-9_-]*)?)\s+"
    r"(?:(?P<attrs>\{.*?\})\s+)?(?P<void>/)?-->",
    re.DOTALL,
)

_JSON_ESCAPES = (
    ("--", "\\u002d\\u002d"),
    ("<", "\\u003c"),
    (">", "\\u003e"),
    ("&", "\\u0026"),
)


def serialize_name(name: str) -> str:
    prefix = f"{DEFAULT_NAMESPACE}/"
    if name.startswith(prefix):
        return name[len(prefix) :]
    return name


def expand_name(raw: str) -> str:
    if "/" in raw:
        return raw
    return f"{DEFAULT_NAMESPACE}/{raw}"


def serialize_attributes(attributes: Mapping[str, Any]) -> str:
    text = json.dumps(dict(attributes), sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    for needle, replacement in _JSON_ESCAPES:
        text = text.replace(needle, replacement)
    return text


def opening_delimiter(name: str, attributes: Mapping[str, Any], *, void: bool = False) -> str:
    parts = [f"wp:{serialize_name(name)}"]
    if attributes:
        parts.append(serialize_attributes(attributes))
    if void:
        parts.append("/")
    return f"<!-- {' '.join(parts)} -->"


def closing_delimiter(name: str) -> str:
    return f"<!-- /wp:{serialize_name(name)} -->"


def frame_block(name: str, attributes: Mapping[str, Any], inner: str) -> str:
    if not inner:
        return opening_delimiter(name, attributes, void=True)
    return f"{opening_delimiter(name, attributes)}\n{inner}\n{closing_delimiter(name)}"


def serialize(tree: CompositionTree, renderer: Any) -> str:
    """Persist a tree through the renderer's save traversal."""

    result = renderer.render_save(tree)
    result.raise_for_problems()
    return result.output


def parse_nodes(text: str) -> list[BlockNode]:
    """Parse persisted content into detached nodes without consulting a registry."""

    if not isinstance(text, str):
        raise TypeError(f"parse expects a string (type={type(text).__name__})")

    roots: list[BlockNode] = []
    stack: list[BlockNode] = []

    for match in _DELIMITER.finditer(text):
        name = expand_name(match.group("name"))
        raw_attrs = match.group("attrs")

        if match.group("closer"):
            if raw_attrs or match.group("void"):
                raise ParseError(f"Closing delimiter for {name} cannot carry attributes", offset=match.start())
            if not stack:
                raise ParseError(f"Unexpected closing delimiter for {name}", offset=match.start())
            if stack[-1].name != name:
                raise ParseError(
                    f"Mismatched closing delimiter: expected {stack[-1].name} got {name}",
                    offset=match.start(),
                )
            stack.pop()
            continue

        attributes: dict[str, Any] = {}
        if raw_attrs:
            try:
                decoded = json.loads(raw_attrs)
            except json.JSONDecodeError as exc:
                raise ParseError(f"Invalid attributes JSON for {name}: {exc.msg}", offset=match.start()) from exc
            if not isinstance(decoded, dict):
                raise ParseError(f"Attributes for {name} must be a JSON object", offset=match.start())
            attributes = decoded

        node = BlockNode(name=name, attributes=attributes)
        (stack[-1].children if stack else roots).append(node)
        if not match.group("void"):
            stack.append(node)

    if stack:
        raise ParseError(f"Unclosed block: {stack[-1].name}")
    return roots


def parse(text: str, registry: BlockRegistry, **tree_kwargs: Any) -> CompositionTree:
    """Parse persisted content into a tree; placements are validated on the way in."""

    nodes: Sequence[BlockNode] = parse_nodes(text)
    return CompositionTree(registry, nodes=nodes, **tree_kwargs)
