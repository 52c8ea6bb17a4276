"""Columns layout: a `core/columns` container holding `core/column` blocks."""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from blockkit.block_types import descriptor_from_metadata

from ._shared import attr, class_names, edit_element, join_children

VERTICAL_ALIGNMENTS = ["top", "center", "bottom"]

COLUMNS_METADATA: dict[str, Any] = {
    "name": "core/columns",
    "title": "Columns",
    "icon": "columns",
    "category": "design",
    "description": "Display content in multiple columns, with blocks added to each column.",
    "keywords": ["layout", "grid"],
    "supports": {"html": False, "lightBlockWrapper": True},
    "attributes": {
        "verticalAlignment": {"type": "string", "enum": VERTICAL_ALIGNMENTS},
        "isStackedOnMobile": {"type": "boolean", "default": True},
    },
}

COLUMN_METADATA: dict[str, Any] = {
    "name": "core/column",
    "title": "Column",
    "parent": ["core/columns"],
    "icon": "column",
    "category": "design",
    "description": "A single column within a columns block.",
    "supports": {"reusable": False, "html": False, "lightBlockWrapper": True},
    "attributes": {
        "verticalAlignment": {"type": "string", "enum": VERTICAL_ALIGNMENTS},
        "width": {"type": ["string", "number"]},
    },
}


def _alignment_class(attributes: Mapping[str, Any]) -> str | None:
    alignment = attributes.get("verticalAlignment")
    return f"are-vertically-aligned-{alignment}" if alignment else None


def _flex_basis(width: Any) -> str | None:
    if width is None:
        return None
    if isinstance(width, (int, float)):
        return f"flex-basis:{width:g}%"
    return f"flex-basis:{width}"


def columns_edit(attributes: Mapping[str, Any], children: Sequence[Any]) -> dict[str, Any]:
    return edit_element(
        "Columns",
        attributes,
        children,
        allowed_blocks=["core/column"],
        column_count=len(children),
    )


def columns_save(attributes: Mapping[str, Any], children: Sequence[str]) -> str:
    classes = class_names(
        "wp-block-columns",
        _alignment_class(attributes),
        None if attributes.get("isStackedOnMobile", True) else "is-not-stacked-on-mobile",
    )
    return f'<div{attr("class", classes)}>{join_children(children)}</div>'


def column_edit(attributes: Mapping[str, Any], children: Sequence[Any]) -> dict[str, Any]:
    return edit_element("Column", attributes, children, flex_basis=_flex_basis(attributes.get("width")))


def column_save(attributes: Mapping[str, Any], children: Sequence[str]) -> str:
    alignment = attributes.get("verticalAlignment")
    classes = class_names("wp-block-column", f"is-vertically-aligned-{alignment}" if alignment else None)
    style = _flex_basis(attributes.get("width"))
    return f'<div{attr("class", classes)}{attr("style", style)}>{join_children(children)}</div>'


COLUMNS = descriptor_from_metadata(COLUMNS_METADATA, edit=columns_edit, save=columns_save)
COLUMN = descriptor_from_metadata(COLUMN_METADATA, edit=column_edit, save=column_save)

__all_blocks__ = [COLUMNS, COLUMN]
