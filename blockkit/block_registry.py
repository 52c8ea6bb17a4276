from __future__ import annotations

import difflib
import logging
import threading
from collections import defaultdict
from typing import Any, Callable, Iterable, Literal, Mapping

from blockkit.block_types import BlockDescriptor
from blockkit.errors import InvalidDescriptor, NotFound

logger = logging.getLogger(__name__)

RegistryEvent = Literal["registered", "replaced", "unregistered"]
RegistryListener = Callable[[RegistryEvent, str], None]


class BlockRegistry:
    """Process-wide table of block descriptors keyed by name.

    Writers are serialized by a lock. The table itself is never mutated in
    place: every write publishes a fresh dict, so `lookup` always reads one
    complete snapshot without taking the lock.
    """

    def __init__(self, descriptors: Iterable[BlockDescriptor] = ()) -> None:
        self._lock = threading.RLock()
        self._by_name: Mapping[str, BlockDescriptor] = {}
        self._generation = 0
        self._listeners: list[RegistryListener] = []
        for descriptor in descriptors:
            self.register(descriptor)

    @classmethod
    def from_descriptors(cls, descriptors: Iterable[BlockDescriptor]) -> "BlockRegistry":
        entries: dict[str, BlockDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.name in entries:
                raise InvalidDescriptor(f"Duplicate block type name: {descriptor.name}")
            entries[descriptor.name] = descriptor
        return cls(entries.values())

    @property
    def generation(self) -> int:
        return self._generation

    def __len__(self) -> int:
        return len(self._by_name)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.strip() in self._by_name

    def subscribe(self, listener: RegistryListener) -> Callable[[], None]:
        if not callable(listener):
            raise TypeError(f"listener must be callable (type={type(listener).__name__})")
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def register(self, descriptor: BlockDescriptor) -> BlockDescriptor | None:
        """Insert or replace a descriptor; returns the one it replaced, if any."""

        if not isinstance(descriptor, BlockDescriptor):
            raise InvalidDescriptor(
                f"register() expects a BlockDescriptor (type={type(descriptor).__name__})"
            )
        if not descriptor.name:
            raise InvalidDescriptor("Block descriptor name must be a non-empty string")

        with self._lock:
            previous = self._by_name.get(descriptor.name)
            table = dict(self._by_name)
            table[descriptor.name] = descriptor
            self._by_name = table
            self._generation += 1
            event: RegistryEvent = "registered" if previous is None else "replaced"
            logger.debug("Block type %s: %s (generation=%d)", event, descriptor.name, self._generation)
            self._notify(event, descriptor.name)
        return previous

    def unregister(self, name: str) -> BlockDescriptor:
        key = self._normalize(name)
        with self._lock:
            previous = self._by_name.get(key)
            if previous is None:
                raise self._not_found(key)
            table = dict(self._by_name)
            del table[key]
            self._by_name = table
            self._generation += 1
            logger.debug("Block type unregistered: %s (generation=%d)", key, self._generation)
            self._notify("unregistered", key)
        return previous

    def lookup(self, name: str) -> BlockDescriptor:
        key = self._normalize(name)
        descriptor = self._by_name.get(key)
        if descriptor is None:
            raise self._not_found(key)
        return descriptor

    def get(self, name: str) -> BlockDescriptor | None:
        if not isinstance(name, str):
            return None
        return self._by_name.get(name.strip())

    def is_registered(self, name: str) -> bool:
        return name in self

    def snapshot(self) -> Mapping[str, BlockDescriptor]:
        return dict(self._by_name)

    def available(self) -> tuple[str, ...]:
        return tuple(sorted(self._by_name.keys()))

    def describe(self) -> tuple[dict[str, Any], ...]:
        rows: list[dict[str, Any]] = []
        for descriptor in sorted(self._by_name.values(), key=lambda d: d.name):
            rows.append(
                {
                    "name": descriptor.name,
                    "title": descriptor.title,
                    "description": descriptor.description,
                    "category": descriptor.category,
                    "parent": sorted(descriptor.parent),
                    "supports": descriptor.supports.as_dict(),
                    "attributes": sorted(descriptor.attributes.keys()),
                }
            )
        return tuple(rows)

    def suggest(self, name: str, *, limit: int = 3) -> tuple[str, ...]:
        key = (name or "").strip()
        if not key:
            return ()

        available = self.available()
        if not available:
            return ()

        slug_to_full: dict[str, list[str]] = defaultdict(list)
        for full in available:
            slug_to_full[full.split("/", 1)[-1]].append(full)

        suggestions = list(difflib.get_close_matches(key, list(slug_to_full.keys()), n=limit))
        expanded: list[str] = []
        for suggestion in suggestions:
            expanded.extend(slug_to_full.get(suggestion, []))
        if expanded:
            return tuple(expanded[:limit])
        return tuple(difflib.get_close_matches(key, list(available), n=limit))

    def _normalize(self, name: str) -> str:
        if not isinstance(name, str) or not name.strip():
            raise NotFound(str(name), "Block type name must be a non-empty string")
        return name.strip()

    def _not_found(self, key: str) -> NotFound:
        suggestions = self.suggest(key)
        hint = f" (did you mean: {', '.join(suggestions)})" if suggestions else ""
        return NotFound(key, f"Unknown block type: {key}{hint}")

    def _notify(self, event: RegistryEvent, name: str) -> None:
        for listener in list(self._listeners):
            listener(event, name)
