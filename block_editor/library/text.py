from __future__ import annotations

from typing import Any, Mapping, Sequence

from blockkit.block_types import descriptor_from_metadata

from ._shared import attr, edit_element, escape_text

PARAGRAPH_METADATA: dict[str, Any] = {
    "name": "core/paragraph",
    "title": "Paragraph",
    "icon": "paragraph",
    "category": "text",
    "description": "Start with the basic building block of all narrative.",
    "keywords": ["text"],
    "supports": {"lightBlockWrapper": True},
    "attributes": {
        "content": {"type": "string", "default": ""},
        "align": {"type": "string", "enum": ["left", "center", "right"]},
    },
}

HEADING_METADATA: dict[str, Any] = {
    "name": "core/heading",
    "title": "Heading",
    "icon": "heading",
    "category": "text",
    "description": "Introduce new sections and organize content.",
    "keywords": ["title", "subtitle"],
    "supports": {"lightBlockWrapper": True},
    "attributes": {
        "content": {"type": "string", "default": ""},
        "level": {"type": "integer", "default": 2, "enum": [1, 2, 3, 4, 5, 6]},
    },
}


def _align_class(attributes: Mapping[str, Any]) -> str | None:
    align = attributes.get("align")
    return f"has-text-align-{align}" if align else None


def paragraph_edit(attributes: Mapping[str, Any], children: Sequence[Any]) -> dict[str, Any]:
    return edit_element("RichText", attributes, children, tag_name="p", placeholder="Type / to choose a block")


def paragraph_save(attributes: Mapping[str, Any], children: Sequence[str]) -> str:
    return f'<p{attr("class", _align_class(attributes))}>{escape_text(attributes.get("content"))}</p>'


def heading_edit(attributes: Mapping[str, Any], children: Sequence[Any]) -> dict[str, Any]:
    return edit_element("RichText", attributes, children, tag_name=f"h{attributes.get('level', 2)}")


def heading_save(attributes: Mapping[str, Any], children: Sequence[str]) -> str:
    tag = f"h{attributes.get('level', 2)}"
    return f"<{tag}>{escape_text(attributes.get('content'))}</{tag}>"


PARAGRAPH = descriptor_from_metadata(PARAGRAPH_METADATA, edit=paragraph_edit, save=paragraph_save)
HEADING = descriptor_from_metadata(HEADING_METADATA, edit=heading_edit, save=heading_save)

__all_blocks__ = [PARAGRAPH, HEADING]
