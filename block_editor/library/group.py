from __future__ import annotations

from typing import Any, Mapping, Sequence

from blockkit.block_types import descriptor_from_metadata

from ._shared import edit_element, join_children

GROUP_METADATA: dict[str, Any] = {
    "name": "core/group",
    "title": "Group",
    "icon": "group",
    "category": "design",
    "description": "Combine blocks into a group.",
    "keywords": ["container", "wrapper", "row", "section"],
    "supports": {"html": False},
    "attributes": {
        "anchor": {"type": "string"},
    },
}


def group_edit(attributes: Mapping[str, Any], children: Sequence[Any]) -> dict[str, Any]:
    return edit_element("InnerBlocks", attributes, children)


def group_save(attributes: Mapping[str, Any], children: Sequence[str]) -> str:
    # The outer container element comes from the render engine.
    return f'<div class="wp-block-group__inner-container">{join_children(children)}</div>'


GROUP = descriptor_from_metadata(GROUP_METADATA, edit=group_edit, save=group_save)

__all_blocks__ = [GROUP]
