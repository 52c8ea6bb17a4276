"""Parent/child admissibility checks backed by the block registry."""

from __future__ import annotations

import threading

from blockkit.block_registry import BlockRegistry, RegistryEvent
from blockkit.errors import PlacementRejected


class PlacementValidator:
    def __init__(self, registry: BlockRegistry) -> None:
        if not isinstance(registry, BlockRegistry):
            raise TypeError(f"registry must be a BlockRegistry (type={type(registry).__name__})")
        self._registry = registry
        self._cache: dict[tuple[str, str | None], bool] = {}
        self._cache_lock = threading.Lock()
        self._closed = False
        self._unsubscribe = registry.subscribe(self._on_registry_change)

    @property
    def registry(self) -> BlockRegistry:
        return self._registry

    def close(self) -> None:
        """Stop listening to the registry.

        A closed validator still answers `can_place`, but always from the
        current registry state; it no longer caches decisions.
        """

        with self._cache_lock:
            if self._closed:
                return
            self._closed = True
            self._cache.clear()
        self._unsubscribe()

    @property
    def closed(self) -> bool:
        return self._closed

    def clear_cache(self) -> None:
        with self._cache_lock:
            self._cache.clear()

    def cached_decisions(self) -> dict[tuple[str, str | None], bool]:
        with self._cache_lock:
            return dict(self._cache)

    def can_place(self, child: str, parent: str | None) -> bool:
        """True when `child` may sit directly inside `parent` (None is the root).

        Raises NotFound when `child` is not registered. The parent does not
        need to be registered: only the child's allow-list is consulted.
        """

        descriptor = self._registry.lookup(child)
        parent_key = parent.strip() if isinstance(parent, str) else None
        key = (descriptor.name, parent_key)
        with self._cache_lock:
            cached = None if self._closed else self._cache.get(key)
        if cached is not None:
            return cached

        if descriptor.unrestricted:
            allowed = True
        else:
            allowed = parent_key is not None and parent_key in descriptor.parent

        with self._cache_lock:
            # A write may have landed between lookup and here; only cache if the
            # descriptor we decided on is still the registered one.
            if not self._closed and self._registry.get(descriptor.name) is descriptor:
                self._cache[key] = allowed
        return allowed

    def check_placement(self, child: str, parent: str | None) -> None:
        if not self.can_place(child, parent):
            descriptor = self._registry.lookup(child)
            raise PlacementRejected(descriptor.name, parent, descriptor.parent)

    def _on_registry_change(self, event: RegistryEvent, name: str) -> None:
        if event == "registered":
            return
        with self._cache_lock:
            stale = [key for key in self._cache if name in key]
            for key in stale:
                del self._cache[key]
