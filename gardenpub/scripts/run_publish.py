"""Publish the notes of a vault to the garden repository, or mirror them to a folder.

Commands:
- ``scan``: list the notes and images marked for publishing.
- ``publish``: compile every marked note and push them in one commit.
- ``export``: compile every marked note and write it below the export path.
- ``snapshot``: write compiled notes and a snapshot listing to the dev folder.
- ``delete PATH...``: remove notes (``.md``) or assets from the repository.

Settings come from ``garden.yaml`` (or ``--config``/``GARDEN_CONFIG``) overlaid
with ``GARDEN_*`` environment variables; see :mod:`gardenpub.services.config`.
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path

from pydantic import ValidationError

from gardenpub.models.publisher import BatchResult
from gardenpub.models.settings import PublishSettings
from gardenpub.services.compiler import MarkdownCompiler
from gardenpub.services.config import load_settings
from gardenpub.services.notifications import LoggingNotifier
from gardenpub.services.pipeline import GardenPipeline, PipelineResult
from gardenpub.services.publisher import Publisher
from gardenpub.services.selection import PublishSelector
from gardenpub.services.snapshot import generate_garden_export
from gardenpub.services.vault import Vault

LOGGER = logging.getLogger("gardenpub.publish")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def _configure_logging() -> None:
    level_name = os.getenv("GARDEN_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Publish flagged vault notes to a digital garden.")
    parser.add_argument(
        "command",
        choices=["scan", "publish", "export", "snapshot", "delete"],
        help="Operation to run.",
    )
    parser.add_argument("paths", nargs="*", help="Paths to delete (delete command only).")
    parser.add_argument("--config", type=Path, default=None, help="Path to a YAML settings file.")
    parser.add_argument("--vault", type=Path, default=None, help="Vault directory (overrides settings).")
    parser.add_argument(
        "--export-path",
        type=Path,
        default=None,
        help="Root of the local mirror used by the export command (overrides settings).",
    )
    return parser.parse_args(argv)


def _build_pipeline(settings: PublishSettings) -> tuple[PublishSelector, GardenPipeline]:
    vault = Vault(settings.vault_path)
    compiler = MarkdownCompiler(vault)
    selector = PublishSelector(vault, compiler, settings)
    publisher = Publisher(settings, notifier=LoggingNotifier())
    return selector, GardenPipeline(selector=selector, publisher=publisher)


def _print_json(payload: object) -> None:
    json.dump(payload, sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")


def _report(result: PipelineResult) -> int:
    for warning in result.warnings:
        LOGGER.warning(warning)
    for error in result.errors:
        LOGGER.error(error)

    if result.result is not None:
        _print_json(result.result.to_dict())

    if not result.succeeded:
        return EXIT_FAILED

    LOGGER.info("Delivered %d notes", len(result.compiled))
    return EXIT_OK


def _report_batch(result: BatchResult) -> int:
    _print_json(result.to_dict())
    for path, outcome in result.failed.items():
        LOGGER.error("%s: %s", path, outcome.value)
    return EXIT_OK if result.succeeded else EXIT_FAILED


def run(argv: list[str] | None = None) -> int:
    _configure_logging()
    args = _parse_args(argv)

    try:
        settings = load_settings(args.config, vault_path=args.vault, export_path=args.export_path)
    except (FileNotFoundError, ValidationError, ValueError) as exc:
        LOGGER.error("Invalid configuration: %s", exc)
        return EXIT_CONFIG

    if args.command in {"publish", "delete"}:
        problems = settings.remote_configuration_errors()
        if problems:
            for problem in problems:
                LOGGER.error(problem)
            return EXIT_CONFIG

    if args.command == "export" and settings.export_path is None:
        LOGGER.error("Config error: You need to define an export path in the settings")
        return EXIT_CONFIG

    if args.command != "delete" and not settings.vault_path.is_dir():
        LOGGER.error("Config error: vault path '%s' does not exist", settings.vault_path)
        return EXIT_CONFIG

    selector, pipeline = _build_pipeline(settings)

    if args.command == "scan":
        marked = selector.scan()
        _print_json({"notes": [note.get_path() for note in marked.notes], "images": marked.images})
        return EXIT_OK

    if args.command == "snapshot":
        snapshot = generate_garden_export(settings, selector, LoggingNotifier())
        return EXIT_OK if snapshot is not None else EXIT_CONFIG

    if args.command == "delete":
        if not args.paths:
            LOGGER.error("The delete command needs at least one path")
            return EXIT_CONFIG
        return _report_batch(asyncio.run(pipeline.delete(args.paths)))

    if args.command == "export":
        return _report(asyncio.run(pipeline.export()))

    return _report(asyncio.run(pipeline.publish()))


if __name__ == "__main__":  # pragma: no cover - script entry point
    raise SystemExit(run())
