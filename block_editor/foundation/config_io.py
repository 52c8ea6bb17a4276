from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

CONFIG_ENV_VAR = "BLOCK_EDITOR_CONFIG"
LOCAL_OVERLAY_NAME = "config.local.yaml"


def find_config_dir(
    config_dir: str | os.PathLike[str] = "config",
    config_name: str = "config.yaml",
    start: str | os.PathLike[str] | None = None,
) -> str:
    """Nearest `<ancestor>/<config_dir>` holding `config_name`, searching upwards.

    The editor's base config file marks the project root, so the editor can be
    started from any subdirectory of a checkout.
    """

    start_path = Path(start or os.getcwd()).resolve()
    if start_path.is_file():
        start_path = start_path.parent

    for candidate in (start_path, *start_path.parents):
        directory = candidate / config_dir
        if (directory / config_name).is_file():
            return str(directory)

    raise FileNotFoundError(
        f"Missing base config file: no {Path(config_dir) / config_name} above {start_path}"
    )


def read_config_file(path: str) -> dict[str, Any]:
    """One YAML config file as a mapping with string keys (empty file -> {})."""

    try:
        with open(path, "r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc

    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise ValueError(f"Config file must contain a YAML mapping: {path}")
    bad_keys = [repr(key) for key in payload if not isinstance(key, str)]
    if bad_keys:
        raise ValueError(f"Config keys must be strings in {path}: {', '.join(bad_keys)}")
    return dict(payload)


def apply_overlay(base: Mapping[str, Any], overlay: Mapping[str, Any], *, path: str = "") -> dict[str, Any]:
    """Layer a local overlay onto the base config.

    Sections merge key by key. Scalars and lists are replaced wholesale, so an
    overlay can swap `registry.library` for a shorter list. A `null` in the
    overlay drops the key, which brings back the built-in default.
    """

    merged: dict[str, Any] = dict(base)
    for key, value in overlay.items():
        dotted = f"{path}.{key}" if path else str(key)
        if value is None:
            merged.pop(key, None)
            continue
        current = merged.get(key)
        if isinstance(current, Mapping) != isinstance(value, Mapping) and current is not None:
            raise ValueError(
                f"Invalid config overlay merge at {dotted}: base is {type(current).__name__} "
                f"but overlay is {type(value).__name__}"
            )
        if isinstance(value, Mapping) and current:
            merged[key] = apply_overlay(current, value, path=dotted)
        else:
            merged[key] = value
    return merged


def load_config(
    *,
    config_path: str | os.PathLike[str] | None = None,
    env_var: str | None = CONFIG_ENV_VAR,
    config_dir: str | os.PathLike[str] = "config",
    config_name: str = "config.yaml",
    start_dir: str | os.PathLike[str] | None = None,
) -> tuple[dict[str, Any], dict[str, Any]]:
    """
    Load editor configuration from YAML, returning (config, meta).

    Resolution order: explicit `config_path`, then the `env_var` environment
    variable (both load a single file), then `<config_dir>/<config_name>` with
    `config.local.yaml` from the same directory layered on top. A relative
    `config_dir` is looked up in `start_dir` and its ancestors.
    """

    explicit_path = None
    if config_path is not None:
        explicit_path = str(config_path).strip() or None
    elif env_var:
        explicit_path = os.environ.get(env_var, "").strip() or None

    if explicit_path:
        expanded = os.path.abspath(os.path.expandvars(os.path.expanduser(explicit_path)))
        meta = {
            "mode": "env" if config_path is None else "explicit",
            "paths": [expanded],
            "env_var": env_var,
        }
        return read_config_file(expanded), meta

    if os.path.isabs(str(config_dir)):
        directory = str(config_dir)
        if not os.path.isfile(os.path.join(directory, config_name)):
            raise FileNotFoundError(f"Missing base config file: {os.path.join(directory, config_name)}")
    else:
        directory = find_config_dir(config_dir, config_name, start_dir)

    base_path = os.path.abspath(os.path.join(directory, config_name))
    cfg = read_config_file(base_path)
    meta = {"mode": "base", "paths": [base_path], "env_var": env_var}

    overlay_path = os.path.abspath(os.path.join(directory, LOCAL_OVERLAY_NAME))
    if os.path.isfile(overlay_path):
        cfg = apply_overlay(cfg, read_config_file(overlay_path))
        meta["mode"] = "base+local"
        meta["paths"].append(overlay_path)

    return cfg, meta
