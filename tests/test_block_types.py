import pytest

from blockkit.block_types import (
    AttributeSpec,
    BlockDescriptor,
    BlockSupports,
    CallbackRenderer,
    descriptor_from_metadata,
)
from blockkit.errors import InvalidAttributes, InvalidDescriptor

COLUMN_METADATA = {
    "name": "core/column",
    "title": "Column",
    "parent": ["core/columns"],
    "icon": "column",
    "description": "A single column within a columns block.",
    "supports": {"reusable": False, "html": False, "lightBlockWrapper": True},
}


def _edit(attributes, children):
    return {"attributes": dict(attributes)}


def _save(attributes, children):
    return "".join(children)


def test_descriptor_from_column_registration_record():
    descriptor = descriptor_from_metadata(COLUMN_METADATA, edit=_edit, save=_save)

    assert descriptor.name == "core/column"
    assert descriptor.title == "Column"
    assert descriptor.parent == frozenset({"core/columns"})
    assert descriptor.supports.reusable is False
    assert descriptor.supports.html is False
    assert descriptor.supports.light_block_wrapper is True
    assert descriptor.supports.get("serializeAsHtml") is False
    assert descriptor.supports.get("wrapsInLightContainer") is True
    assert descriptor.unrestricted is False


def test_descriptor_rejects_empty_or_malformed_names():
    renderer = CallbackRenderer(edit=_edit, save=_save)
    with pytest.raises(InvalidDescriptor, match=r"non-empty string"):
        BlockDescriptor(name="  ", renderer=renderer)
    with pytest.raises(InvalidDescriptor, match=r"namespace/block-name"):
        BlockDescriptor(name="column", renderer=renderer)


def test_descriptor_requires_renderable():
    with pytest.raises(InvalidDescriptor, match=r"render_edit and render_save"):
        BlockDescriptor(name="acme/card", renderer=object())  # type: ignore[arg-type]


def test_descriptor_parent_string_is_rejected():
    renderer = CallbackRenderer(edit=_edit, save=_save)
    with pytest.raises(InvalidDescriptor, match=r"not a string"):
        BlockDescriptor(name="acme/card", renderer=renderer, parent="acme/deck")  # type: ignore[arg-type]


def test_supports_accepts_portable_spelling():
    supports = BlockSupports.from_mapping({"serializeAsHtml": False, "wrapsInLightContainer": True})
    assert supports.html is False
    assert supports.light_block_wrapper is True
    assert supports.reusable is True


def test_supports_contradictory_aliases_raise():
    with pytest.raises(InvalidDescriptor, match=r"Contradictory capability values"):
        BlockSupports.from_mapping({"html": True, "serializeAsHtml": False})


def test_supports_agreeing_aliases_are_accepted():
    supports = BlockSupports.from_mapping({"html": False, "serializeAsHtml": False})
    assert supports.html is False


def test_supports_keeps_unknown_capabilities_as_extras():
    supports = BlockSupports.from_mapping({"anchor": True, "align": "wide"})
    assert supports.extra == {"anchor": True, "align": "wide"}
    assert supports.as_dict()["align"] == "wide"


def test_supports_rejects_non_boolean_known_capability():
    with pytest.raises(InvalidDescriptor, match=r"must be a boolean"):
        BlockSupports.from_mapping({"reusable": "no"})


def test_attribute_spec_checks_types_and_enum():
    spec = AttributeSpec(type="integer", default=2, enum=(1, 2, 3))
    assert spec.accepts(3)
    assert not spec.accepts(4)
    assert not spec.accepts(True)
    assert not spec.accepts("2")

    union = AttributeSpec(type=("string", "number"))
    assert union.accepts("50%")
    assert union.accepts(33.3)
    assert not union.has_default


def test_attribute_spec_rejects_bad_default_and_unknown_type():
    with pytest.raises(InvalidDescriptor, match=r"does not match its type"):
        AttributeSpec(type="boolean", default="yes")
    with pytest.raises(InvalidDescriptor, match=r"Unknown attribute type"):
        AttributeSpec(type="text")


def test_descriptor_defaults_and_attribute_checks():
    descriptor = descriptor_from_metadata(
        {
            "name": "core/heading",
            "attributes": {
                "content": {"type": "string", "default": ""},
                "level": {"type": "integer", "default": 2},
                "anchor": {"type": "string"},
            },
        },
        edit=_edit,
        save=_save,
    )

    assert descriptor.default_attributes() == {"content": "", "level": 2}
    descriptor.check_attributes({"content": "Hi", "level": 3})
    with pytest.raises(InvalidAttributes, match=r"Unknown attributes for core/heading: color"):
        descriptor.check_attributes({"color": "red"})
    with pytest.raises(InvalidAttributes, match=r"core/heading.level"):
        descriptor.check_attributes({"level": "3"})


def test_metadata_unknown_keys_raise():
    with pytest.raises(InvalidDescriptor, match=r"Unknown block metadata keys: usesContext"):
        descriptor_from_metadata({"name": "acme/card", "usesContext": []}, edit=_edit, save=_save)


def test_metadata_requires_renderer_or_both_callbacks():
    with pytest.raises(InvalidDescriptor, match=r"renderer or both edit and save"):
        descriptor_from_metadata({"name": "acme/card"}, edit=_edit)
