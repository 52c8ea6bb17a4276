"""Editing session: one composition tree plus the services that guard and render it."""

from __future__ import annotations

import logging
import threading
import uuid
from typing import Any, Mapping, Sequence

from blockkit.block_registry import BlockRegistry
from blockkit.engine.render import DefaultRenderRecorder, DualRenderer, EditView, RenderResult
from blockkit.engine.serialization import parse_nodes
from blockkit.engine.tree import BlockNode, CompositionTree, Path
from blockkit.errors import BlockKitError, NotFound, PlacementRejected, format_path
from blockkit.placement import PlacementValidator

from block_editor.framework.config import EditorConfig


class EditingSession:
    def __init__(
        self,
        registry: BlockRegistry,
        *,
        config: EditorConfig | None = None,
        logger: logging.Logger | None = None,
        session_id: str | None = None,
    ) -> None:
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self.config = config or EditorConfig()
        self.logger = logger or logging.getLogger(f"block_editor.{self.session_id}")
        self.registry = registry
        self.validator = PlacementValidator(registry)
        self.tree = CompositionTree(registry, validator=self.validator)
        self.renderer = DualRenderer(
            registry,
            container_tag=self.config.render.container_tag,
            class_prefix=self.config.render.class_prefix,
            recorder=DefaultRenderRecorder(self.logger),
        )
        self._closed = False

    @classmethod
    def from_content(
        cls,
        registry: BlockRegistry,
        content: str,
        **kwargs: Any,
    ) -> "EditingSession":
        session = cls(registry, **kwargs)
        for node in parse_nodes(content):
            session._guard("load", lambda node=node: session.tree.insert(node))
        session.logger.info(
            "Loaded %d top-level block(s) into session %s", len(session.tree), session.session_id
        )
        return session

    def close(self) -> None:
        if self._closed:
            return
        self.validator.close()
        self._closed = True
        self.logger.debug("Session %s closed", self.session_id)

    def __enter__(self) -> "EditingSession":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def insert_block(
        self,
        name: str,
        attributes: Mapping[str, Any] | None = None,
        *,
        parent_path: Sequence[int] = (),
        index: int | None = None,
        children: Sequence[BlockNode] = (),
    ) -> Path:
        node = self._guard("insert", lambda: self.tree.create_node(name, attributes, children))
        path = self._guard("insert", lambda: self.tree.insert(node, parent_path, index))
        self.logger.info("Inserted %s at %s", node.name, format_path(path))
        return path

    def remove_block(self, path: Sequence[int]) -> BlockNode:
        node = self._guard("remove", lambda: self.tree.remove(path))
        self.logger.info("Removed %s from %s", node.name, format_path(tuple(path)))
        return node

    def update_attributes(self, path: Sequence[int], patch: Mapping[str, Any]) -> BlockNode:
        node = self._guard("set_attributes", lambda: self.tree.set_attributes(path, patch))
        self.logger.debug("Updated attributes of %s at %s: %s", node.name, format_path(tuple(path)), sorted(patch))
        return node

    def move_block(
        self, path: Sequence[int], new_parent_path: Sequence[int] = (), new_index: int | None = None
    ) -> Path:
        new_path = self._guard("move", lambda: self.tree.move(path, new_parent_path, new_index))
        self.logger.info("Moved block from %s to %s", format_path(tuple(path)), format_path(new_path))
        return new_path

    def capabilities(self, path: Sequence[int]) -> dict[str, bool | str]:
        node = self.tree.get(path)
        return self.registry.lookup(node.name).supports.as_dict()

    def render_edit(self, *, cancel: threading.Event | None = None) -> tuple[EditView, ...]:
        result = self.renderer.render_edit(self.tree, cancel=cancel)
        self._report_problems(result)
        return result.output

    def save(self, *, cancel: threading.Event | None = None, strict: bool = False) -> str:
        """Persisted content of the tree.

        Unresolvable blocks keep their framed content in the output and are
        logged; with `strict=True` the first one is raised instead.
        """

        if self.config.render.check_determinism:
            self.renderer.verify_save(self.tree)
        result = self.renderer.render_save(self.tree, cancel=cancel)
        self._report_problems(result)
        if strict:
            result.raise_for_problems()
        return result.output

    def validate(self) -> list[BlockKitError]:
        problems = self.tree.validate()
        for problem in problems:
            self.logger.warning("Validation problem: %s", problem)
        return problems

    def _report_problems(self, result: RenderResult) -> None:
        for problem in result.problems:
            self.logger.warning(
                "Rendered placeholder for %s at %s during %s",
                problem.name,
                format_path(problem.path or ()),
                result.mode,
            )

    def _guard(self, operation: str, fn: Any) -> Any:
        try:
            return fn()
        except PlacementRejected as exc:
            self.logger.warning("Rejected %s: %s", operation, exc)
            raise
        except NotFound as exc:
            self.logger.warning("Cannot %s: %s", operation, exc)
            raise
        except BlockKitError:
            self.logger.exception("Failed to %s in session %s", operation, self.session_id)
            raise
