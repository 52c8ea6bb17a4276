"""Dual edit/save render traversals over a composition tree.

Both traversals are depth-first: children are rendered first and their outputs
are handed to the parent's render function. The two passes share the tree's
node data but no render state. Neither pass mutates the tree; descriptors see a
deep copy of each node's attributes.
"""

from __future__ import annotations

import copy
import html
import logging
import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Literal, Mapping, Protocol, Sequence

from blockkit.block_registry import BlockRegistry
from blockkit.block_types import BlockDescriptor
from blockkit.engine.serialization import frame_block
from blockkit.engine.tree import BlockNode, CompositionTree, Path
from blockkit.errors import NonDeterministicSave, NotFound, RenderCancelled, format_path

RenderMode = Literal["edit", "save"]


@dataclass(frozen=True)
class EditView:
    name: str
    path: Path
    client_id: str
    attributes: Mapping[str, Any]
    output: Any
    children: tuple["EditView", ...] = ()
    placeholder: bool = False

    def iter_views(self):
        yield self
        for child in self.children:
            yield from child.iter_views()


@dataclass(frozen=True)
class RenderResult:
    mode: RenderMode
    output: Any
    revision: int
    problems: tuple[NotFound, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.problems

    def raise_for_problems(self) -> None:
        if self.problems:
            raise self.problems[0]


class RenderRecorder(Protocol):
    def on_node_start(self, mode: RenderMode, path: Path, name: str) -> None:
        ...

    def on_node_end(self, mode: RenderMode, path: Path, name: str, **metrics: Any) -> None:
        ...

    def on_node_error(self, mode: RenderMode, path: Path, name: str, exc: Exception) -> None:
        ...


class DefaultRenderRecorder:
    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger(__name__)

    def on_node_start(self, mode: RenderMode, path: Path, name: str) -> None:
        self.logger.debug("Render %s: %s (%s)", mode, format_path(path), name)

    def on_node_end(self, mode: RenderMode, path: Path, name: str, **metrics: Any) -> None:
        tokens: list[str] = [f"name={name}"]
        chars = metrics.get("chars")
        if chars is not None:
            tokens.append(f"chars={int(chars)}")
        if metrics.get("placeholder"):
            tokens.append("placeholder=true")
        self.logger.debug("Rendered %s %s (%s)", mode, format_path(path), ", ".join(tokens))
        appended = metrics.get("appended_children")
        if appended:
            self.logger.warning(
                "Block %s at %s left %d child block(s) out of its save markup; appended them",
                name,
                format_path(path),
                int(appended),
            )

    def on_node_error(self, mode: RenderMode, path: Path, name: str, exc: Exception) -> None:
        if isinstance(exc, NotFound):
            self.logger.warning("Unresolvable block during %s render: %s", mode, exc)
            return
        self.logger.error("Render %s failed: %s (%s): %s", mode, format_path(path), name, exc)


class NullRenderRecorder:
    def on_node_start(self, mode: RenderMode, path: Path, name: str) -> None:
        return

    def on_node_end(self, mode: RenderMode, path: Path, name: str, **metrics: Any) -> None:
        return

    def on_node_error(self, mode: RenderMode, path: Path, name: str, exc: Exception) -> None:
        return


@dataclass
class _Pass:
    """Per-traversal state; never shared between passes."""

    mode: RenderMode
    cancel: threading.Event | None
    problems: list[NotFound] = field(default_factory=list)
    outputs: dict[Path, str] = field(default_factory=dict)


class DualRenderer:
    def __init__(
        self,
        registry: BlockRegistry,
        *,
        container_tag: str = "div",
        class_prefix: str = "wp-block-",
        recorder: RenderRecorder | None = None,
    ) -> None:
        if not isinstance(registry, BlockRegistry):
            raise TypeError(f"registry must be a BlockRegistry (type={type(registry).__name__})")
        if not isinstance(container_tag, str) or not container_tag.strip().isalnum():
            raise ValueError(f"container_tag must be an alphanumeric tag name (got {container_tag!r})")
        self._registry = registry
        self._container_tag = container_tag.strip().lower()
        self._class_prefix = class_prefix
        self._recorder = recorder or DefaultRenderRecorder()
        self._validate_recorder(self._recorder)

    @property
    def registry(self) -> BlockRegistry:
        return self._registry

    def render_edit(self, tree: CompositionTree, *, cancel: threading.Event | None = None) -> RenderResult:
        state = _Pass(mode="edit", cancel=cancel)
        with tree.reading() as roots:
            revision = tree.revision
            views = tuple(self._edit_node(state, node, (index,)) for index, node in enumerate(roots))
        return RenderResult(mode="edit", output=views, revision=revision, problems=tuple(state.problems))

    def render_save(self, tree: CompositionTree, *, cancel: threading.Event | None = None) -> RenderResult:
        state = _Pass(mode="save", cancel=cancel)
        with tree.reading() as roots:
            revision = tree.revision
            output = self._save_sequence(state, roots, ())
        return RenderResult(mode="save", output=output, revision=revision, problems=tuple(state.problems))

    def verify_save(self, tree: CompositionTree) -> str:
        """Run two save traversals and require byte-identical output."""

        with tree.reading() as roots:
            first = _Pass(mode="save", cancel=None)
            first_output = self._save_sequence(first, roots, ())
            second = _Pass(mode="save", cancel=None)
            second_output = self._save_sequence(second, roots, ())

        if first_output == second_output:
            return first_output

        diverging = sorted(
            path
            for path in set(first.outputs) | set(second.outputs)
            if first.outputs.get(path) != second.outputs.get(path)
        )
        # Report the deepest diverging node; its ancestors differ only because it does.
        for path in diverging:
            if not any(other != path and other[: len(path)] == path for other in diverging):
                raise NonDeterministicSave(path, self._name_at(roots, path))
        raise NonDeterministicSave((), None)

    def container_class(self, name: str) -> str:
        namespace, _, slug = name.partition("/")
        if namespace == "core":
            return f"{self._class_prefix}{slug}"
        return f"{self._class_prefix}{namespace}-{slug}"

    def _edit_node(self, state: _Pass, node: BlockNode, path: Path) -> EditView:
        self._check_cancel(state, path)
        self._recorder.on_node_start("edit", path, node.name)
        children = tuple(
            self._edit_node(state, child, (*path, index)) for index, child in enumerate(node.children)
        )
        attributes = self._frozen_attributes(node)

        descriptor = self._resolve(state, node, path)
        if descriptor is None:
            view = EditView(
                name=node.name,
                path=path,
                client_id=node.client_id,
                attributes=attributes,
                output={"missing": node.name},
                children=children,
                placeholder=True,
            )
            self._recorder.on_node_end("edit", path, node.name, placeholder=True)
            return view

        try:
            output = descriptor.renderer.render_edit(attributes, children)
        except Exception as exc:
            self._fail(state, path, node, exc)
            raise

        self._recorder.on_node_end("edit", path, node.name)
        return EditView(
            name=node.name,
            path=path,
            client_id=node.client_id,
            attributes=attributes,
            output=output,
            children=children,
        )

    def _save_sequence(self, state: _Pass, nodes: Sequence[BlockNode], prefix: Path) -> str:
        return "\n\n".join(self._save_node(state, node, (*prefix, index)) for index, node in enumerate(nodes))

    def _save_node(self, state: _Pass, node: BlockNode, path: Path) -> str:
        self._check_cancel(state, path)
        self._recorder.on_node_start("save", path, node.name)
        child_outputs = tuple(
            self._save_node(state, child, (*path, index)) for index, child in enumerate(node.children)
        )

        descriptor = self._resolve(state, node, path)
        if descriptor is None:
            # Keep the node and its children in the persisted output so the
            # content survives until the block type is available again.
            inner = "\n".join(child_outputs)
            framed = frame_block(node.name, node.attributes, inner)
            state.outputs[path] = framed
            self._recorder.on_node_end("save", path, node.name, chars=len(framed), placeholder=True)
            return framed

        try:
            markup = descriptor.renderer.render_save(self._frozen_attributes(node), child_outputs)
            if not isinstance(markup, str):
                raise TypeError(
                    f"Block {node.name} save produced non-string output (type={type(markup).__name__})"
                )
        except Exception as exc:
            self._fail(state, path, node, exc)
            raise

        dropped = _dropped_children(markup, child_outputs)
        if dropped:
            # Children always reach the persisted text, even when the
            # block's save markup leaves them out.
            markup = "\n".join([markup, *dropped]) if markup else "\n".join(dropped)

        if not descriptor.supports.light_block_wrapper and (markup or child_outputs):
            markup = self._wrap(descriptor, markup)

        framed = frame_block(node.name, node.attributes, markup)
        state.outputs[path] = framed
        self._recorder.on_node_end(
            "save", path, node.name, chars=len(framed), appended_children=len(dropped)
        )
        return framed

    def _wrap(self, descriptor: BlockDescriptor, markup: str) -> str:
        tag = self._container_tag
        css = html.escape(self.container_class(descriptor.name), quote=True)
        return f'<{tag} class="{css}">{markup}</{tag}>'

    def _resolve(self, state: _Pass, node: BlockNode, path: Path) -> BlockDescriptor | None:
        try:
            return self._registry.lookup(node.name)
        except NotFound as exc:
            exc.path = path
            state.problems.append(exc)
            self._recorder.on_node_error(state.mode, path, node.name, exc)
            return None

    def _fail(self, state: _Pass, path: Path, node: BlockNode, exc: Exception) -> None:
        try:
            self._recorder.on_node_error(state.mode, path, node.name, exc)
        except Exception:
            logging.getLogger(__name__).exception(
                "Render recorder failed during error handling for %s", format_path(path)
            )
        if not hasattr(exc, "render_path"):
            try:
                setattr(exc, "render_path", path)
            except Exception:
                pass

    def _check_cancel(self, state: _Pass, path: Path) -> None:
        if state.cancel is not None and state.cancel.is_set():
            raise RenderCancelled(f"{state.mode} render cancelled at {format_path(path)}")

    def _frozen_attributes(self, node: BlockNode) -> Mapping[str, Any]:
        return MappingProxyType(copy.deepcopy(node.attributes))

    def _name_at(self, roots: Sequence[BlockNode], path: Path) -> str | None:
        siblings = roots
        node: BlockNode | None = None
        for index in path:
            if index >= len(siblings):
                return None
            node = siblings[index]
            siblings = node.children
        return node.name if node is not None else None

    def _validate_recorder(self, recorder: RenderRecorder) -> None:
        required = ("on_node_start", "on_node_end", "on_node_error")
        for name in required:
            method = getattr(recorder, name, None)
            if method is None or not callable(method):
                raise TypeError(f"Render recorder missing required method: {name}")


def _dropped_children(markup: str, child_outputs: Sequence[str]) -> list[str]:
    """Framed children that do not occur in `markup`, in child order.

    Each occurrence is consumed once, longest output first, so identical
    siblings and a sibling nested inside another one are each accounted for.
    """

    remaining = markup
    missing: set[int] = set()
    for index in sorted(range(len(child_outputs)), key=lambda i: -len(child_outputs[i])):
        output = child_outputs[index]
        if output in remaining:
            remaining = remaining.replace(output, "", 1)
        else:
            missing.add(index)
    return [output for index, output in enumerate(child_outputs) if index in missing]
