"""Extract command - fetch node packs and write their node descriptions."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

import typer
from rich.console import Console

from node_extractor.config.loader import ConfigError, apply_overrides, load_config
from node_extractor.config.schema import ExtractorConfig
from node_extractor.errors import ExtractionError
from node_extractor.extractors.multi import MultiPackageExtractor
from node_extractor.extractors.single import NodeExtractor
from node_extractor.output.delivery import deliver
from node_extractor.output.summary import print_multi_summary, print_summary
from node_extractor.output.writer import ResultWriter
from node_extractor.registry.specifier import split_specifiers

console = Console()

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(verbose: bool) -> None:
    """Route library logging to stderr; DEBUG when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def read_package_list(packages: str) -> list[str]:
    """Package specifiers from a comma-separated string or a ``.json`` list file."""
    if not packages.endswith(".json"):
        return split_specifiers(packages)

    path = Path(packages).expanduser()
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise ValueError(f"Could not read package list {path}: {e}") from e

    if not isinstance(data, list) or not all(isinstance(item, str) for item in data):
        raise ValueError(f"Package list {path} must be a JSON array of strings")
    return [item.strip() for item in data if item.strip()]


async def _run(
    names: list[str], config: ExtractorConfig, webhook: str | None
) -> Path:
    writer = ResultWriter(config.output.directory, config.output.multi_filename)

    if len(names) == 1:
        extractor = NodeExtractor(config)
        nodes = await extractor.extract(names[0])
        print_summary(nodes, out=console)
        path = extractor.save_results(writer)
    else:
        multi = MultiPackageExtractor(config)
        packages = await multi.extract(names)
        print_multi_summary(packages, multi.failed, out=console)
        path = multi.save_results(writer)
        console.print(f"Processed {len(names)} packages")

    console.print(f"\n[green]Extraction finished![/green] File saved: {path}")

    if webhook:
        status = await deliver(path, webhook, timeout=config.output.webhook_timeout)
        console.print(f"Delivered to webhook ({status})")
    return path


def extract_command(
    packages: str,
    verbose: bool = False,
    output_dir: str | None = None,
    config_path: str | None = None,
    registry: str | None = None,
    timeout: float | None = None,
    webhook: str | None = None,
) -> None:
    """Run an extraction for one or more packages."""
    try:
        config = load_config(Path(config_path).expanduser() if config_path else None)
        config = apply_overrides(
            config,
            output_dir=output_dir,
            registry_url=registry,
            load_timeout=timeout,
            verbose=verbose or None,
        )
        names = read_package_list(packages)
    except (ConfigError, ValueError) as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e

    configure_logging(config.verbose)

    if not names:
        console.print("[red]No valid package names provided[/red]")
        raise typer.Exit(1)

    try:
        asyncio.run(_run(names, config, webhook))
    except ExtractionError as e:
        console.print(f"[red]Extraction failed: {e}[/red]")
        raise typer.Exit(1) from e
