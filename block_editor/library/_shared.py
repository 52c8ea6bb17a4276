from __future__ import annotations

import html
from typing import Any, Iterable, Mapping, Sequence


def class_names(*names: str | None) -> str:
    return " ".join(name for name in names if name)


def attr(name: str, value: str | None) -> str:
    if value is None or value == "":
        return ""
    return f' {name}="{html.escape(value, quote=True)}"'


def join_children(children: Sequence[str]) -> str:
    if not children:
        return ""
    return "\n" + "\n\n".join(children) + "\n"


def escape_text(value: Any) -> str:
    return html.escape(str(value if value is not None else ""), quote=False)


def edit_element(component: str, attributes: Mapping[str, Any], children: Iterable[Any], **props: Any) -> dict[str, Any]:
    """Editable view model handed to the UI layer."""

    out: dict[str, Any] = {"component": component, "attributes": dict(attributes)}
    if props:
        out["props"] = props
    child_outputs = [getattr(child, "output", child) for child in children]
    if child_outputs:
        out["children"] = child_outputs
    return out
