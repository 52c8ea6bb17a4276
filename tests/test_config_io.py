import os

import pytest

from block_editor.foundation.config_io import apply_overlay, find_config_dir, load_config


def test_load_config_base_only(tmp_path, monkeypatch):
    monkeypatch.delenv("TEST_BLOCK_EDITOR_CONFIG", raising=False)
    (tmp_path / "config.yaml").write_text("render:\n  container_tag: section\n", encoding="utf-8")

    cfg, meta = load_config(config_dir=str(tmp_path), env_var="TEST_BLOCK_EDITOR_CONFIG")

    assert cfg == {"render": {"container_tag": "section"}}
    assert meta["mode"] == "base"
    assert os.path.basename(meta["paths"][0]) == "config.yaml"


def test_load_config_base_plus_local_overlay(tmp_path, monkeypatch):
    monkeypatch.delenv("TEST_BLOCK_EDITOR_CONFIG", raising=False)
    (tmp_path / "config.yaml").write_text(
        "render:\n  container_tag: div\n  check_determinism: true\n", encoding="utf-8"
    )
    (tmp_path / "config.local.yaml").write_text("render:\n  container_tag: section\n", encoding="utf-8")

    cfg, meta = load_config(config_dir=str(tmp_path), env_var="TEST_BLOCK_EDITOR_CONFIG")

    assert cfg == {"render": {"container_tag": "section", "check_determinism": True}}
    assert meta["mode"] == "base+local"
    assert len(meta["paths"]) == 2


def test_load_config_overlay_type_mismatch_raises(tmp_path, monkeypatch):
    monkeypatch.delenv("TEST_BLOCK_EDITOR_CONFIG", raising=False)
    (tmp_path / "config.yaml").write_text("registry:\n  library: [text]\n", encoding="utf-8")
    (tmp_path / "config.local.yaml").write_text("registry: text\n", encoding="utf-8")

    with pytest.raises(ValueError, match=r"Invalid config overlay merge at registry"):
        load_config(config_dir=str(tmp_path), env_var="TEST_BLOCK_EDITOR_CONFIG")


def test_load_config_invalid_yaml_raises(tmp_path, monkeypatch):
    monkeypatch.delenv("TEST_BLOCK_EDITOR_CONFIG", raising=False)
    (tmp_path / "config.yaml").write_text("a: [1, 2\n", encoding="utf-8")

    with pytest.raises(ValueError, match=r"Invalid YAML"):
        load_config(config_dir=str(tmp_path), env_var="TEST_BLOCK_EDITOR_CONFIG")


def test_load_config_env_var_wins(tmp_path, monkeypatch):
    env_file = tmp_path / "env.yaml"
    env_file.write_text("strict: true\n", encoding="utf-8")
    monkeypatch.setenv("TEST_BLOCK_EDITOR_CONFIG", str(env_file))

    cfg, meta = load_config(config_dir=str(tmp_path / "missing"), env_var="TEST_BLOCK_EDITOR_CONFIG")

    assert cfg == {"strict": True}
    assert meta["mode"] == "env"


def test_load_config_rejects_non_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(ValueError, match=r"must contain a YAML mapping"):
        load_config(config_path=str(path))


def test_missing_base_config_raises(tmp_path, monkeypatch):
    monkeypatch.delenv("TEST_BLOCK_EDITOR_CONFIG", raising=False)
    with pytest.raises(FileNotFoundError, match=r"Missing base config file"):
        load_config(config_dir=str(tmp_path), env_var="TEST_BLOCK_EDITOR_CONFIG")


def test_find_config_dir_searches_parent_directories(tmp_path):
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "config.yaml").write_text("strict: false\n", encoding="utf-8")
    nested = tmp_path / "docs" / "posts"
    nested.mkdir(parents=True)

    assert find_config_dir(start=nested) == str((tmp_path / "config").resolve())

    cfg, meta = load_config(start_dir=str(nested), env_var=None)
    assert cfg == {"strict": False}
    assert meta["mode"] == "base"


def test_find_config_dir_reports_missing_base(tmp_path):
    with pytest.raises(FileNotFoundError, match=r"Missing base config file"):
        find_config_dir(start=tmp_path)


def test_overlay_replaces_lists_and_null_restores_default():
    base = {
        "render": {"container_tag": "div", "check_determinism": True},
        "registry": {"library": ["buttons", "columns", "group", "text"]},
    }
    overlay = {"render": {"check_determinism": None}, "registry": {"library": ["text"]}}

    merged = apply_overlay(base, overlay)

    assert merged == {"render": {"container_tag": "div"}, "registry": {"library": ["text"]}}
    assert base["render"] == {"container_tag": "div", "check_determinism": True}


def test_config_keys_must_be_strings(tmp_path):
    path = tmp_path / "numbers.yaml"
    path.write_text("1: a\n", encoding="utf-8")

    with pytest.raises(ValueError, match=r"Config keys must be strings"):
        load_config(config_path=str(path))
