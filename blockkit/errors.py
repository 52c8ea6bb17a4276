"""Error taxonomy shared by the registry, validator, tree and render engine."""

from __future__ import annotations

from typing import Iterable


class BlockKitError(Exception):
    """Base class for every error raised by `blockkit`."""


class InvalidDescriptor(BlockKitError, ValueError):
    pass


class NotFound(BlockKitError, LookupError):
    def __init__(self, name: str, message: str | None = None, *, path: tuple[int, ...] | None = None):
        self.name = name
        self.path = path
        super().__init__(message or f"Unknown block type: {name}")

    def __str__(self) -> str:
        base = super().__str__()
        if self.path is None:
            return base
        return f"{base} (at {format_path(self.path)})"


class PlacementRejected(BlockKitError, ValueError):
    def __init__(
        self,
        child: str,
        parent: str | None,
        allowed: Iterable[str] = (),
        message: str | None = None,
        *,
        path: tuple[int, ...] | None = None,
    ):
        self.child = child
        self.parent = parent
        self.allowed = tuple(sorted(allowed))
        self.path = path
        if message is None:
            target = parent if parent is not None else "<root>"
            allowed_text = ", ".join(self.allowed) or "<any>"
            message = f"Block {child} cannot be placed in {target} (allowed parents: {allowed_text})"
        super().__init__(message)

    def __str__(self) -> str:
        base = super().__str__()
        if self.path is None:
            return base
        return f"{base} (at {format_path(self.path)})"


class NonDeterministicSave(BlockKitError, RuntimeError):
    def __init__(self, path: tuple[int, ...], name: str | None = None):
        self.path = path
        self.name = name
        label = f" ({name})" if name else ""
        super().__init__(
            f"Save output diverged between two traversals at {format_path(path)}{label}"
        )


class InvalidAttributes(BlockKitError, ValueError):
    pass


class InvalidPath(BlockKitError, IndexError):
    pass


class ParseError(BlockKitError, ValueError):
    def __init__(self, message: str, *, offset: int | None = None):
        self.offset = offset
        if offset is not None:
            message = f"{message} (offset {offset})"
        super().__init__(message)


class RenderCancelled(BlockKitError):
    pass


def format_path(path: tuple[int, ...]) -> str:
    if not path:
        return "<root>"
    return "/".join(str(index) for index in path)
