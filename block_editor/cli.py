from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Sequence
from typing import Any

from blockkit.engine.render import EditView
from blockkit.engine.serialization import parse_nodes
from blockkit.engine.tree import placement_problems
from blockkit.errors import BlockKitError
from blockkit.placement import PlacementValidator

from .foundation.config_io import load_config
from .foundation.logging_utils import setup_operational_logger
from .framework.config import EditorConfig
from .framework.session import EditingSession
from .library.registry import build_block_registry


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="block-editor", add_help=True)
    parser.add_argument("--config", default=None, help="Path to a YAML config file")
    sub = parser.add_subparsers(dest="command", required=True)

    list_blocks = sub.add_parser("list-blocks", help="List registered block types")
    list_blocks.add_argument("--json", action="store_true", help="Print full descriptions as JSON")

    describe = sub.add_parser("describe", help="Describe one block type")
    describe.add_argument("name")

    render = sub.add_parser("render", help="Render persisted content")
    render.add_argument("path")
    render.add_argument("--mode", choices=("edit", "save"), default="save")

    validate = sub.add_parser("validate", help="Check every placement in persisted content")
    validate.add_argument("path")

    determinism = sub.add_parser("check-determinism", help="Save content twice and compare")
    determinism.add_argument("path")

    return parser


def _load_editor_config(config_path: str | None, logger: logging.Logger) -> EditorConfig:
    try:
        raw, meta = load_config(config_path=config_path)
    except FileNotFoundError:
        if config_path is not None:
            raise
        logger.debug("No config file found; using defaults")
        return EditorConfig()
    cfg, warnings = EditorConfig.from_dict(raw)
    for warning in warnings:
        logger.warning("%s", warning)
    logger.debug("Loaded config (%s): %s", meta["mode"], ", ".join(meta["paths"]))
    return cfg


def _view_to_json(view: EditView) -> dict[str, Any]:
    out: dict[str, Any] = {
        "name": view.name,
        "path": list(view.path),
        "output": view.output,
    }
    if view.placeholder:
        out["placeholder"] = True
    if view.children:
        out["children"] = [_view_to_json(child) for child in view.children]
    return out


def _read(path: str) -> str:
    with open(path, "r", encoding="utf-8") as handle:
        return handle.read()


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(list(argv) if argv is not None else None)

    bootstrap = logging.getLogger("block_editor.cli")
    cfg = _load_editor_config(args.config, bootstrap)
    logger, _log_file = setup_operational_logger(
        cfg.logging.log_dir, "cli", level=cfg.logging.level_number
    )
    registry = build_block_registry(cfg.registry.library)

    if args.command == "list-blocks":
        if args.json:
            print(json.dumps(list(registry.describe()), indent=2, sort_keys=True))
        else:
            for row in registry.describe():
                print(f"{row['name']}\t{row['title'] or ''}")
        return 0

    if args.command == "describe":
        descriptor = registry.get(args.name)
        if descriptor is None:
            suggestions = registry.suggest(args.name)
            hint = f" (did you mean: {', '.join(suggestions)})" if suggestions else ""
            print(f"Unknown block type: {args.name}{hint}", file=sys.stderr)
            return 2
        row = next(r for r in registry.describe() if r["name"] == descriptor.name)
        print(json.dumps(row, indent=2, sort_keys=True))
        return 0

    content = _read(args.path)

    if args.command == "validate":
        try:
            nodes = parse_nodes(content)
        except BlockKitError as exc:
            print(f"Invalid content: {exc}", file=sys.stderr)
            return 1
        validator = PlacementValidator(registry)
        try:
            problems = placement_problems(validator, nodes)
        finally:
            validator.close()
        for problem in problems:
            logger.warning("Validation problem: %s", problem)
            print(str(problem))
        if problems:
            return 1
        print("OK")
        return 0

    try:
        session = EditingSession.from_content(registry, content, config=cfg, logger=logger)
    except BlockKitError as exc:
        print(f"Invalid content: {exc}", file=sys.stderr)
        return 1

    with session:
        if args.command == "render":
            if args.mode == "edit":
                views = session.render_edit()
                print(json.dumps([_view_to_json(view) for view in views], indent=2, sort_keys=True))
            else:
                print(session.save())
            return 0

        if args.command == "check-determinism":
            try:
                session.renderer.verify_save(session.tree)
            except BlockKitError as exc:
                print(str(exc), file=sys.stderr)
                return 1
            print("OK")
            return 0

    raise AssertionError(f"Unhandled command: {args.command}")


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main(sys.argv[1:]))
