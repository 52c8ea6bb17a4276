from __future__ import annotations

import importlib
from functools import lru_cache
from typing import Sequence

from blockkit.block_registry import BlockRegistry
from blockkit.block_types import BlockDescriptor

from block_editor.framework.config import LIBRARY_MODULES


def library_descriptors(modules: Sequence[str] = LIBRARY_MODULES) -> list[BlockDescriptor]:
    descriptors: list[BlockDescriptor] = []
    for name in modules:
        if name not in LIBRARY_MODULES:
            raise ValueError(
                f"Unknown block library module: {name} (available: {', '.join(LIBRARY_MODULES)})"
            )
        module = importlib.import_module(f"block_editor.library.{name}")
        exported = getattr(module, "__all_blocks__", None)
        if not isinstance(exported, (list, tuple)):
            raise TypeError(f"block_editor.library.{name} must export __all_blocks__ as a list")
        descriptors.extend(exported)
    return descriptors


def build_block_registry(modules: Sequence[str] = LIBRARY_MODULES) -> BlockRegistry:
    """Fresh registry holding the descriptors of the given library modules."""

    return BlockRegistry.from_descriptors(library_descriptors(modules))


@lru_cache(maxsize=1)
def get_block_registry() -> BlockRegistry:
    # Process-wide instance: built on first use, shared by every session that
    # does not inject its own registry. `reset_block_registry` tears it down.
    return build_block_registry()


def reset_block_registry() -> None:
    get_block_registry.cache_clear()
