from __future__ import annotations

from typing import Any, Mapping, Sequence

from blockkit.block_types import descriptor_from_metadata

from ._shared import attr, edit_element, escape_text, join_children

BUTTONS_METADATA: dict[str, Any] = {
    "name": "core/buttons",
    "title": "Buttons",
    "icon": "buttons",
    "category": "design",
    "description": "Prompt visitors to take action with a group of button-style links.",
    "supports": {"html": False},
}

BUTTON_METADATA: dict[str, Any] = {
    "name": "core/button",
    "title": "Button",
    "parent": ["core/buttons"],
    "icon": "button",
    "category": "design",
    "description": "Prompt visitors to take action with a button-style link.",
    "supports": {"reusable": False, "lightBlockWrapper": True},
    "attributes": {
        "text": {"type": "string", "default": ""},
        "url": {"type": "string"},
    },
}


def buttons_edit(attributes: Mapping[str, Any], children: Sequence[Any]) -> dict[str, Any]:
    return edit_element("InnerBlocks", attributes, children, allowed_blocks=["core/button"])


def buttons_save(attributes: Mapping[str, Any], children: Sequence[str]) -> str:
    return join_children(children)


def button_edit(attributes: Mapping[str, Any], children: Sequence[Any]) -> dict[str, Any]:
    return edit_element("RichText", attributes, children, tag_name="a")


def button_save(attributes: Mapping[str, Any], children: Sequence[str]) -> str:
    link = f'<a class="wp-block-button__link"{attr("href", attributes.get("url"))}>{escape_text(attributes.get("text"))}</a>'
    return f'<div class="wp-block-button">{link}</div>'


BUTTONS = descriptor_from_metadata(BUTTONS_METADATA, edit=buttons_edit, save=buttons_save)
BUTTON = descriptor_from_metadata(BUTTON_METADATA, edit=button_edit, save=button_save)

__all_blocks__ = [BUTTONS, BUTTON]
