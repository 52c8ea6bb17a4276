import pytest

from block_editor.framework.config import EditorConfig, LIBRARY_MODULES, parse_bool


def test_defaults_from_empty_mapping():
    cfg, warnings = EditorConfig.from_dict({})

    assert warnings == []
    assert cfg.render.container_tag == "div"
    assert cfg.render.class_prefix == "wp-block-"
    assert cfg.render.check_determinism is False
    assert cfg.registry.library == LIBRARY_MODULES
    assert cfg.logging.log_dir is None
    assert cfg.logging.level == "INFO"


def test_parses_all_sections(tmp_path):
    cfg, warnings = EditorConfig.from_dict(
        {
            "render": {"container_tag": "section", "check_determinism": "yes"},
            "registry": {"library": ["text", "columns", "text"]},
            "logging": {"log_dir": str(tmp_path), "level": "debug"},
        }
    )

    assert warnings == []
    assert cfg.render.container_tag == "section"
    assert cfg.render.check_determinism is True
    assert cfg.registry.library == ("text", "columns")
    assert cfg.logging.log_dir == str(tmp_path)
    assert cfg.logging.level == "DEBUG"
    assert cfg.logging.level_number == 10


def test_unknown_keys_warn_or_raise_when_strict():
    _cfg, warnings = EditorConfig.from_dict({"render": {"colour": "red"}, "extra": 1})
    assert warnings == ["Unknown config key: extra", "Unknown config key: render.colour"]

    with pytest.raises(ValueError, match=r"Unknown config keys: render.colour"):
        EditorConfig.from_dict({"strict": True, "render": {"colour": "red"}})


def test_invalid_values_raise_with_paths():
    with pytest.raises(ValueError, match=r"render.check_determinism"):
        EditorConfig.from_dict({"render": {"check_determinism": "maybe"}})
    with pytest.raises(ValueError, match=r"registry.library: embeds"):
        EditorConfig.from_dict({"registry": {"library": ["embeds"]}})
    with pytest.raises(ValueError, match=r"logging.level"):
        EditorConfig.from_dict({"logging": {"level": "LOUD"}})
    with pytest.raises(ValueError, match=r"render.container_tag"):
        EditorConfig.from_dict({"render": {"container_tag": "my-div"}})
    with pytest.raises(ValueError, match=r"expected a mapping"):
        EditorConfig.from_dict({"render": "div"})


def test_empty_library_warns():
    cfg, warnings = EditorConfig.from_dict({"registry": {"library": []}})
    assert cfg.registry.library == ()
    assert warnings == ["registry.library is empty; no block types will be registered"]


@pytest.mark.parametrize("value, expected", [(True, True), (0, False), (" Yes ", True), ("false", False)])
def test_parse_bool_accepts_common_spellings(value, expected):
    assert parse_bool(value, "x") is expected


def test_parse_bool_rejects_everything_else():
    with pytest.raises(ValueError, match=r"Invalid boolean for x"):
        parse_bool(2, "x")
