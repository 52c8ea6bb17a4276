from __future__ import annotations

import copy
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Protocol, Sequence, runtime_checkable

from blockkit.errors import InvalidAttributes, InvalidDescriptor

NAME_PATTERN = re.compile(r"^[a-z][a-z0-9-]*/[a-z][a-z0-9-]*$")

ATTRIBUTE_TYPES: tuple[str, ...] = (
    "string",
    "number",
    "integer",
    "boolean",
    "object",
    "array",
    "null",
)

# canonical field -> accepted spellings in a registration record
CAPABILITY_ALIASES: dict[str, tuple[str, ...]] = {
    "reusable": ("reusable",),
    "html": ("html", "serializeAsHtml"),
    "light_block_wrapper": ("lightBlockWrapper", "wrapsInLightContainer"),
}

_NO_DEFAULT = object()


@runtime_checkable
class Renderable(Protocol):
    def render_edit(self, attributes: Mapping[str, Any], children: Sequence[Any]) -> Any:
        ...

    def render_save(self, attributes: Mapping[str, Any], children: Sequence[str]) -> str:
        ...


@dataclass(frozen=True)
class CallbackRenderer:
    """Adapts a pair of plain edit/save callables to `Renderable`."""

    edit: Callable[[Mapping[str, Any], Sequence[Any]], Any]
    save: Callable[[Mapping[str, Any], Sequence[str]], str]

    def __post_init__(self) -> None:
        if not callable(self.edit):
            raise TypeError(f"edit must be callable (type={type(self.edit).__name__})")
        if not callable(self.save):
            raise TypeError(f"save must be callable (type={type(self.save).__name__})")

    def render_edit(self, attributes: Mapping[str, Any], children: Sequence[Any]) -> Any:
        return self.edit(attributes, children)

    def render_save(self, attributes: Mapping[str, Any], children: Sequence[str]) -> str:
        return self.save(attributes, children)


@dataclass(frozen=True)
class BlockSupports:
    reusable: bool = True
    html: bool = True
    light_block_wrapper: bool = False
    extra: Mapping[str, bool | str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name in ("reusable", "html", "light_block_wrapper"):
            value = getattr(self, name)
            if not isinstance(value, bool):
                raise InvalidDescriptor(
                    f"Capability {name} must be a boolean (type={type(value).__name__})"
                )

        if not isinstance(self.extra, Mapping):
            raise InvalidDescriptor(
                f"Capability extras must be a mapping (type={type(self.extra).__name__})"
            )
        known = {alias for aliases in CAPABILITY_ALIASES.values() for alias in aliases}
        known.update(CAPABILITY_ALIASES.keys())
        extra: dict[str, bool | str] = {}
        for key, value in self.extra.items():
            if not isinstance(key, str) or not key.strip():
                raise InvalidDescriptor("Capability names must be non-empty strings")
            if key.strip() in known:
                raise InvalidDescriptor(
                    f"Capability {key.strip()} must be declared directly, not as an extra"
                )
            if not isinstance(value, (bool, str)):
                raise InvalidDescriptor(
                    f"Capability {key.strip()} must be a boolean or string (type={type(value).__name__})"
                )
            extra[key.strip()] = value
        object.__setattr__(self, "extra", MappingProxyType(extra))

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None, *, path: str = "supports") -> "BlockSupports":
        if raw is None:
            return cls()
        if not isinstance(raw, Mapping):
            raise InvalidDescriptor(f"{path} must be a mapping (type={type(raw).__name__})")

        values: dict[str, bool] = {}
        consumed: set[str] = set()
        for canonical, aliases in CAPABILITY_ALIASES.items():
            seen: dict[str, Any] = {alias: raw[alias] for alias in aliases if alias in raw}
            consumed.update(seen)
            if not seen:
                continue
            for alias, value in seen.items():
                if not isinstance(value, bool):
                    raise InvalidDescriptor(
                        f"{path}.{alias} must be a boolean (type={type(value).__name__})"
                    )
            distinct = set(seen.values())
            if len(distinct) > 1:
                detail = ", ".join(f"{alias}={value}" for alias, value in sorted(seen.items()))
                raise InvalidDescriptor(f"Contradictory capability values under {path}: {detail}")
            values[canonical] = distinct.pop()

        extra = {key: value for key, value in raw.items() if key not in consumed}
        return cls(extra=extra, **values)

    def get(self, name: str, default: Any = None) -> Any:
        for canonical, aliases in CAPABILITY_ALIASES.items():
            if name == canonical or name in aliases:
                return getattr(self, canonical)
        return self.extra.get(name, default)

    def as_dict(self) -> dict[str, bool | str]:
        out: dict[str, bool | str] = {
            "reusable": self.reusable,
            "serializeAsHtml": self.html,
            "wrapsInLightContainer": self.light_block_wrapper,
        }
        out.update(self.extra)
        return out


def _value_matches(kind: str, value: Any) -> bool:
    if kind == "string":
        return isinstance(value, str)
    if kind == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if kind == "integer":
        return isinstance(value, int) and not isinstance(value, bool)
    if kind == "boolean":
        return isinstance(value, bool)
    if kind == "object":
        return isinstance(value, Mapping)
    if kind == "array":
        return isinstance(value, (list, tuple))
    if kind == "null":
        return value is None
    return False


@dataclass(frozen=True)
class AttributeSpec:
    type: str | tuple[str, ...]
    default: Any = _NO_DEFAULT
    enum: tuple[Any, ...] | None = None

    def __post_init__(self) -> None:
        kinds = (self.type,) if isinstance(self.type, str) else tuple(self.type)
        if not kinds:
            raise InvalidDescriptor("Attribute type cannot be empty")
        for kind in kinds:
            if kind not in ATTRIBUTE_TYPES:
                raise InvalidDescriptor(
                    f"Unknown attribute type: {kind!r} (expected one of: {', '.join(ATTRIBUTE_TYPES)})"
                )
        object.__setattr__(self, "type", kinds[0] if len(kinds) == 1 else kinds)
        if self.enum is not None:
            object.__setattr__(self, "enum", tuple(self.enum))
        if self.has_default and not self.accepts(self.default):
            raise InvalidDescriptor(f"Attribute default {self.default!r} does not match its type")

    @property
    def types(self) -> tuple[str, ...]:
        return (self.type,) if isinstance(self.type, str) else self.type

    @property
    def has_default(self) -> bool:
        return self.default is not _NO_DEFAULT

    def accepts(self, value: Any) -> bool:
        if not any(_value_matches(kind, value) for kind in self.types):
            return False
        if self.enum is not None and value not in self.enum:
            return False
        return True

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], *, path: str) -> "AttributeSpec":
        if not isinstance(raw, Mapping):
            raise InvalidDescriptor(f"{path} must be a mapping (type={type(raw).__name__})")
        unknown = sorted(set(raw) - {"type", "default", "enum"})
        if unknown:
            raise InvalidDescriptor(f"Unknown keys under {path}: {', '.join(unknown)}")
        if "type" not in raw:
            raise InvalidDescriptor(f"Missing required key: {path}.type")
        raw_type = raw["type"]
        kind: str | tuple[str, ...] = raw_type if isinstance(raw_type, str) else tuple(raw_type)
        enum = raw.get("enum")
        return cls(
            type=kind,
            default=raw["default"] if "default" in raw else _NO_DEFAULT,
            enum=tuple(enum) if enum is not None else None,
        )


@dataclass(frozen=True)
class BlockDescriptor:
    name: str
    renderer: Renderable
    title: str | None = None
    description: str | None = None
    icon: str | None = None
    category: str | None = None
    keywords: tuple[str, ...] = ()
    parent: frozenset[str] = frozenset()
    supports: BlockSupports = field(default_factory=BlockSupports)
    attributes: Mapping[str, AttributeSpec] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise InvalidDescriptor("BlockDescriptor.name must be a non-empty string")
        name = self.name.strip()
        if not NAME_PATTERN.match(name):
            raise InvalidDescriptor(
                f"BlockDescriptor.name must look like 'namespace/block-name' (got {name!r})"
            )
        object.__setattr__(self, "name", name)

        if not isinstance(self.renderer, Renderable):
            raise InvalidDescriptor(
                f"Block {name} renderer must provide render_edit and render_save "
                f"(type={type(self.renderer).__name__})"
            )

        if isinstance(self.parent, str):
            raise InvalidDescriptor(f"Block {name} parent must be a collection of names, not a string")
        parents: set[str] = set()
        for parent in self.parent:
            if not isinstance(parent, str) or not parent.strip():
                raise InvalidDescriptor(f"Block {name} parent entries must be non-empty strings")
            parents.add(parent.strip())
        object.__setattr__(self, "parent", frozenset(parents))

        if not isinstance(self.supports, BlockSupports):
            raise InvalidDescriptor(
                f"Block {name} supports must be BlockSupports (type={type(self.supports).__name__})"
            )

        for label in ("title", "description", "icon", "category"):
            value = getattr(self, label)
            if value is not None and (not isinstance(value, str) or not value.strip()):
                raise InvalidDescriptor(f"Block {name} {label} must be a non-empty string or None")

        object.__setattr__(
            self, "keywords", tuple(str(word).strip() for word in self.keywords if str(word).strip())
        )

        attributes: dict[str, AttributeSpec] = {}
        for key, spec in dict(self.attributes).items():
            if not isinstance(key, str) or not key.strip():
                raise InvalidDescriptor(f"Block {name} attribute names must be non-empty strings")
            if not isinstance(spec, AttributeSpec):
                raise InvalidDescriptor(
                    f"Block {name} attribute {key} must be an AttributeSpec (type={type(spec).__name__})"
                )
            attributes[key.strip()] = spec
        object.__setattr__(self, "attributes", MappingProxyType(attributes))

    @property
    def unrestricted(self) -> bool:
        return not self.parent

    def default_attributes(self) -> dict[str, Any]:
        return {
            key: copy.deepcopy(spec.default) for key, spec in self.attributes.items() if spec.has_default
        }

    def check_attributes(self, values: Mapping[str, Any]) -> None:
        # Blocks without a declared schema accept arbitrary attributes.
        if not self.attributes:
            return
        unknown = sorted(key for key in values if key not in self.attributes)
        if unknown:
            raise InvalidAttributes(f"Unknown attributes for {self.name}: {', '.join(unknown)}")
        for key, value in values.items():
            spec = self.attributes[key]
            if not spec.accepts(value):
                expected = " | ".join(spec.types)
                if spec.enum is not None:
                    expected = f"{expected} in {list(spec.enum)!r}"
                raise InvalidAttributes(
                    f"Invalid value for {self.name}.{key}: {value!r} (expected {expected})"
                )


_METADATA_KEYS = frozenset(
    {
        "name",
        "title",
        "description",
        "icon",
        "category",
        "keywords",
        "parent",
        "supports",
        "attributes",
    }
)
_IGNORED_METADATA_KEYS = frozenset({"$schema", "apiVersion", "textdomain", "editorStyle", "style"})


def descriptor_from_metadata(
    metadata: Mapping[str, Any],
    renderer: Renderable | None = None,
    *,
    edit: Callable[[Mapping[str, Any], Sequence[Any]], Any] | None = None,
    save: Callable[[Mapping[str, Any], Sequence[str]], str] | None = None,
) -> BlockDescriptor:
    """Build a descriptor from a block registration record.

    Either pass a `renderer` or both `edit` and `save` callables.
    """

    if not isinstance(metadata, Mapping):
        raise InvalidDescriptor(f"Block metadata must be a mapping (type={type(metadata).__name__})")

    unknown = sorted(set(metadata) - _METADATA_KEYS - _IGNORED_METADATA_KEYS)
    if unknown:
        raise InvalidDescriptor(f"Unknown block metadata keys: {', '.join(unknown)}")

    if renderer is None:
        if edit is None or save is None:
            raise InvalidDescriptor("Block metadata needs a renderer or both edit and save callables")
        renderer = CallbackRenderer(edit=edit, save=save)
    elif edit is not None or save is not None:
        raise InvalidDescriptor("Pass either a renderer or edit/save callables, not both")

    name = metadata.get("name")
    if not isinstance(name, str) or not name.strip():
        raise InvalidDescriptor("Block metadata name must be a non-empty string")

    parent = metadata.get("parent") or ()
    if isinstance(parent, str):
        parent = (parent,)

    raw_attributes = metadata.get("attributes") or {}
    if not isinstance(raw_attributes, Mapping):
        raise InvalidDescriptor(f"{name}.attributes must be a mapping")
    attributes = {
        key: AttributeSpec.from_mapping(spec, path=f"{name}.attributes.{key}")
        for key, spec in raw_attributes.items()
    }

    return BlockDescriptor(
        name=name,
        renderer=renderer,
        title=metadata.get("title"),
        description=metadata.get("description"),
        icon=metadata.get("icon"),
        category=metadata.get("category"),
        keywords=tuple(metadata.get("keywords") or ()),
        parent=frozenset(parent),
        supports=BlockSupports.from_mapping(metadata.get("supports"), path=f"{name}.supports"),
        attributes=attributes,
    )
