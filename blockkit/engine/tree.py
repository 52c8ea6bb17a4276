"""Composition tree of block instances.

Nodes reference their block type by name only; the descriptor is looked up in
the registry whenever the tree is validated or rendered, so descriptors can be
replaced or removed without rebuilding the tree.
"""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping, Sequence

from blockkit.block_registry import BlockRegistry
from blockkit.engine.locking import ReadWriteLock
from blockkit.errors import (
    BlockKitError,
    InvalidPath,
    NotFound,
    PlacementRejected,
    format_path,
)
from blockkit.placement import PlacementValidator

Path = tuple[int, ...]


@dataclass(eq=False)
class BlockNode:
    name: str
    attributes: dict[str, Any] = field(default_factory=dict)
    children: list["BlockNode"] = field(default_factory=list)
    client_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise TypeError("BlockNode.name must be a non-empty string")
        self.name = self.name.strip()
        if not isinstance(self.attributes, dict):
            raise TypeError(f"BlockNode.attributes must be a dict (type={type(self.attributes).__name__})")
        self.children = list(self.children)
        for child in self.children:
            if not isinstance(child, BlockNode):
                raise TypeError(f"BlockNode children must be BlockNode (type={type(child).__name__})")

    def structure(self) -> tuple[str, dict[str, Any], tuple[Any, ...]]:
        return (
            self.name,
            dict(self.attributes),
            tuple(child.structure() for child in self.children),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name}
        if self.attributes:
            out["attributes"] = dict(self.attributes)
        if self.children:
            out["children"] = [child.to_dict() for child in self.children]
        return out

    def iter_subtree(self) -> Iterator["BlockNode"]:
        yield self
        for child in self.children:
            yield from child.iter_subtree()


class CompositionTree:
    """Ordered sequence of top-level nodes plus their descendants.

    Paths are tuples of 0-based child indices; `()` addresses the top-level
    sequence itself. Every structural mutation is validated first and only
    then applied, so a rejected operation leaves the tree untouched.

    One editing session owns the tree. Mutations take the write side of a
    read/write lock; render traversals take the read side via `reading()`.
    """

    def __init__(
        self,
        registry: BlockRegistry,
        *,
        validator: PlacementValidator | None = None,
        nodes: Sequence[BlockNode] = (),
    ) -> None:
        if not isinstance(registry, BlockRegistry):
            raise TypeError(f"registry must be a BlockRegistry (type={type(registry).__name__})")
        if validator is not None and validator.registry is not registry:
            raise ValueError("validator must be bound to the same registry as the tree")
        self._registry = registry
        self._validator = validator or PlacementValidator(registry)
        self._lock = ReadWriteLock()
        self._roots: list[BlockNode] = []
        self._revision = 0
        for node in nodes:
            self.insert(node)

    @property
    def registry(self) -> BlockRegistry:
        return self._registry

    @property
    def validator(self) -> PlacementValidator:
        return self._validator

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def roots(self) -> tuple[BlockNode, ...]:
        return tuple(self._roots)

    def __len__(self) -> int:
        return len(self._roots)

    @contextmanager
    def reading(self) -> Iterator[tuple[BlockNode, ...]]:
        with self._lock.read():
            yield tuple(self._roots)

    def create_node(
        self,
        name: str,
        attributes: Mapping[str, Any] | None = None,
        children: Sequence[BlockNode] = (),
    ) -> BlockNode:
        """New detached node with schema defaults applied and attributes checked."""

        descriptor = self._registry.lookup(name)
        values = descriptor.default_attributes()
        values.update(dict(attributes or {}))
        descriptor.check_attributes(values)
        return BlockNode(name=descriptor.name, attributes=values, children=list(children))

    def get(self, path: Sequence[int]) -> BlockNode:
        with self._lock.read():
            return self._node_at(tuple(path))

    def path_of(self, node: BlockNode) -> Path:
        with self._lock.read():
            found = self._find(node)
        if found is None:
            raise InvalidPath(f"Node {node.name} ({node.client_id}) is not part of this tree")
        return found

    def walk(self) -> Iterator[tuple[Path, BlockNode]]:
        with self._lock.read():
            items = list(self._walk(self._roots, ()))
        return iter(items)

    def structure(self) -> tuple[Any, ...]:
        with self._lock.read():
            return tuple(node.structure() for node in self._roots)

    def to_dict(self) -> dict[str, Any]:
        with self._lock.read():
            return {"blocks": [node.to_dict() for node in self._roots]}

    def insert(self, node: BlockNode, parent_path: Sequence[int] = (), index: int | None = None) -> Path:
        if not isinstance(node, BlockNode):
            raise TypeError(f"insert() expects a BlockNode (type={type(node).__name__})")
        parent_key = tuple(parent_path)
        with self._lock.write():
            parent = self._node_at(parent_key) if parent_key else None
            attached = {id(existing) for _path, existing in self._walk(self._roots, ())}
            if any(id(member) in attached for member in node.iter_subtree()):
                raise ValueError(f"Node {node.name} ({node.client_id}) is already part of this tree")
            self._validate_subtree(node, parent.name if parent is not None else None)

            siblings = parent.children if parent is not None else self._roots
            position = self._clamp(index, len(siblings))
            siblings.insert(position, node)
            self._revision += 1
            return (*parent_key, position)

    def remove(self, path: Sequence[int]) -> BlockNode:
        key = tuple(path)
        if not key:
            raise InvalidPath("Cannot remove the root sequence")
        with self._lock.write():
            siblings = self._siblings_of(key)
            node = siblings.pop(key[-1])
            self._revision += 1
            return node

    def set_attributes(self, path: Sequence[int], patch: Mapping[str, Any]) -> BlockNode:
        """Merge `patch` into a node's attributes; `None` values delete keys.

        An attribute typed `"null"` therefore cannot be set to `None` here; it
        only holds `None` when the node is created or parsed with that value.
        """

        if not isinstance(patch, Mapping):
            raise TypeError(f"patch must be a mapping (type={type(patch).__name__})")
        key = tuple(path)
        with self._lock.write():
            node = self._node_at(key)
            descriptor = self._registry.lookup(node.name)
            updated = dict(node.attributes)
            for attr, value in patch.items():
                if value is None:
                    updated.pop(attr, None)
                else:
                    updated[attr] = value
            descriptor.check_attributes(updated)
            node.attributes = updated
            self._revision += 1
            return node

    def move(self, path: Sequence[int], new_parent_path: Sequence[int] = (), new_index: int | None = None) -> Path:
        """Re-parent a node. `new_index` is a position among the new siblings
        once the node has been detached from its old place."""

        key = tuple(path)
        target_key = tuple(new_parent_path)
        if not key:
            raise InvalidPath("Cannot move the root sequence")
        with self._lock.write():
            node = self._node_at(key)
            new_parent = self._node_at(target_key) if target_key else None
            if target_key[: len(key)] == key:
                raise PlacementRejected(
                    node.name,
                    new_parent.name if new_parent is not None else None,
                    message=f"Cannot move {node.name} at {format_path(key)} into its own subtree",
                )
            self._validator.check_placement(node.name, new_parent.name if new_parent is not None else None)

            old_siblings = self._siblings_of(key)
            old_siblings.pop(key[-1])
            new_siblings = new_parent.children if new_parent is not None else self._roots
            position = self._clamp(new_index, len(new_siblings))
            new_siblings.insert(position, node)
            self._revision += 1
            found = self._find(node)
            assert found is not None
            return found

    def validate(self) -> list[BlockKitError]:
        """Re-check every placement against the current registry state."""

        with self._lock.read():
            return placement_problems(self._validator, self._roots)

    def _validate_subtree(self, node: BlockNode, parent_name: str | None) -> None:
        self._validator.check_placement(node.name, parent_name)
        self._registry.lookup(node.name).check_attributes(node.attributes)
        for child in node.children:
            self._validate_subtree(child, node.name)

    def _node_at(self, path: Path) -> BlockNode:
        if not path:
            raise InvalidPath("Path must address a node (got the root sequence)")
        siblings: list[BlockNode] = self._roots
        node: BlockNode | None = None
        for depth, index in enumerate(path):
            if not isinstance(index, int) or isinstance(index, bool) or index < 0 or index >= len(siblings):
                raise InvalidPath(f"No node at {format_path(path[: depth + 1])}")
            node = siblings[index]
            siblings = node.children
        assert node is not None
        return node

    def _siblings_of(self, path: Path) -> list[BlockNode]:
        parent = self._node_at(path[:-1]) if len(path) > 1 else None
        siblings = parent.children if parent is not None else self._roots
        index = path[-1]
        if not isinstance(index, int) or index < 0 or index >= len(siblings):
            raise InvalidPath(f"No node at {format_path(path)}")
        return siblings

    def _find(self, target: BlockNode) -> Path | None:
        for node_path, node in self._walk(self._roots, ()):
            if node is target:
                return node_path
        return None

    def _walk(self, nodes: Sequence[BlockNode], prefix: Path) -> Iterator[tuple[Path, BlockNode]]:
        for index, node in enumerate(nodes):
            node_path = (*prefix, index)
            yield node_path, node
            yield from self._walk(node.children, node_path)

    @staticmethod
    def _clamp(index: int | None, size: int) -> int:
        if index is None or index > size:
            return size
        if index < 0:
            return 0
        return index


def placement_problems(validator: PlacementValidator, nodes: Sequence[BlockNode]) -> list[BlockKitError]:
    """Every placement failure in a node forest, in document order.

    Works on detached nodes too, e.g. freshly parsed content that has not been
    loaded into a tree.
    """

    problems: list[BlockKitError] = []
    _collect_problems(validator, nodes, None, (), problems)
    return problems


def _collect_problems(
    validator: PlacementValidator,
    nodes: Sequence[BlockNode],
    parent_name: str | None,
    prefix: Path,
    problems: list[BlockKitError],
) -> None:
    for index, node in enumerate(nodes):
        node_path = (*prefix, index)
        try:
            validator.check_placement(node.name, parent_name)
        except (NotFound, PlacementRejected) as exc:
            exc.path = node_path
            problems.append(exc)
        _collect_problems(validator, node.children, node.name, node_path, problems)
