from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Mapping

LIBRARY_MODULES: tuple[str, ...] = ("buttons", "columns", "group", "text")
LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass(frozen=True)
class RenderConfig:
    container_tag: str = "div"
    class_prefix: str = "wp-block-"
    check_determinism: bool = False


@dataclass(frozen=True)
class RegistryConfig:
    library: tuple[str, ...] = LIBRARY_MODULES


@dataclass(frozen=True)
class LoggingConfig:
    log_dir: str | None = None
    level: str = "INFO"

    @property
    def level_number(self) -> int:
        return logging.getLevelName(self.level)


def parse_bool(value: Any, path: str) -> bool:
    """
    Strict boolean parsing to avoid bool('false') footguns.

    Accepts True/False, 0/1 and the strings true/false/1/0/yes/no
    (case-insensitive, surrounding whitespace ignored).
    """

    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        if value in (0, 1):
            return bool(value)
        raise ValueError(f"Invalid boolean for {path}: {value!r}")
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"true", "1", "yes"}:
            return True
        if normalized in {"false", "0", "no"}:
            return False
        raise ValueError(f"Invalid boolean for {path}: {value!r}")

    raise ValueError(f"Invalid boolean for {path}: {value!r}")


def parse_str(value: Any, path: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid config value for {path}: must be a non-empty string")
    return value.strip()


def parse_str_list(value: Any, path: str) -> tuple[str, ...]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"Invalid config type for {path}: expected a list of strings")
    return tuple(parse_str(item, f"{path}[{idx}]") for idx, item in enumerate(value))


_SCHEMA: Mapping[str, Any] = {
    "strict": None,
    "render": {"container_tag": None, "class_prefix": None, "check_determinism": None},
    "registry": {"library": None},
    "logging": {"log_dir": None, "level": None},
}


def _collect_unknown_keys(mapping: Any, schema: Mapping[str, Any], *, prefix: str) -> list[str]:
    if not isinstance(mapping, Mapping):
        return []
    unknown: list[str] = []
    for key, value in mapping.items():
        dotted = f"{prefix}.{key}" if prefix else str(key)
        if key not in schema:
            unknown.append(dotted)
            continue
        subschema = schema.get(key)
        if isinstance(subschema, Mapping):
            unknown.extend(_collect_unknown_keys(value, subschema, prefix=dotted))
    return unknown


def _section(cfg: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    raw = cfg.get(key)
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ValueError(f"Invalid config type for {key}: expected a mapping")
    return raw


@dataclass(frozen=True)
class EditorConfig:
    render: RenderConfig = field(default_factory=RenderConfig)
    registry: RegistryConfig = field(default_factory=RegistryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @staticmethod
    def from_dict(cfg: Mapping[str, Any]) -> tuple["EditorConfig", list[str]]:
        """
        Parse and validate configuration, returning (EditorConfig, warnings).

        Unknown keys are warnings unless `strict: true`, in which case they
        raise ValueError.
        """

        if not isinstance(cfg, Mapping):
            raise ValueError("Config must be a mapping")

        warnings: list[str] = []
        strict = parse_bool(cfg["strict"], "strict") if "strict" in cfg else False

        unknown = sorted(set(_collect_unknown_keys(cfg, _SCHEMA, prefix="")))
        if unknown:
            if strict:
                raise ValueError("Unknown config keys: " + ", ".join(unknown))
            warnings.extend(f"Unknown config key: {key}" for key in unknown)

        render_raw = _section(cfg, "render")
        render = RenderConfig(
            container_tag=(
                parse_str(render_raw["container_tag"], "render.container_tag")
                if "container_tag" in render_raw
                else RenderConfig.container_tag
            ),
            class_prefix=(
                parse_str(render_raw["class_prefix"], "render.class_prefix")
                if "class_prefix" in render_raw
                else RenderConfig.class_prefix
            ),
            check_determinism=(
                parse_bool(render_raw["check_determinism"], "render.check_determinism")
                if "check_determinism" in render_raw
                else RenderConfig.check_determinism
            ),
        )
        if not render.container_tag.isalnum():
            raise ValueError(
                f"Invalid config value for render.container_tag: {render.container_tag!r} (must be alphanumeric)"
            )

        registry_raw = _section(cfg, "registry")
        library = LIBRARY_MODULES
        if "library" in registry_raw:
            library = parse_str_list(registry_raw["library"], "registry.library")
            bad = [name for name in library if name not in LIBRARY_MODULES]
            if bad:
                raise ValueError(
                    f"Unknown block library module(s) under registry.library: {', '.join(bad)} "
                    f"(available: {', '.join(LIBRARY_MODULES)})"
                )
            if not library:
                warnings.append("registry.library is empty; no block types will be registered")

        logging_raw = _section(cfg, "logging")
        log_dir: str | None = None
        if logging_raw.get("log_dir") is not None:
            log_dir = os.path.abspath(
                os.path.expandvars(os.path.expanduser(parse_str(logging_raw["log_dir"], "logging.log_dir")))
            )
        level = LoggingConfig.level
        if "level" in logging_raw:
            level = parse_str(logging_raw["level"], "logging.level").upper()
            if level not in LOG_LEVELS:
                raise ValueError(
                    f"Invalid config value for logging.level: {level!r} (expected one of: {', '.join(LOG_LEVELS)})"
                )

        return (
            EditorConfig(
                render=render,
                registry=RegistryConfig(library=tuple(dict.fromkeys(library))),
                logging=LoggingConfig(log_dir=log_dir, level=level),
            ),
            warnings,
        )
