"""Main CLI application using Typer."""

import sys

import typer
from rich.console import Console

from node_extractor import __version__

app = typer.Typer(
    name="node-extractor",
    help="Extract node descriptions from workflow node packs",
    no_args_is_help=True,
)

console = Console()


@app.command()
def version():
    """Show node-extractor version."""
    console.print(f"node-extractor version {__version__}")


@app.command()
def extract(
    packages: str = typer.Argument(
        ...,
        help="Comma-separated specifiers (pkg, pkg@1.2.0, @scope/pkg) or a .json list file",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show detailed logs"),
    output_dir: str = typer.Option(
        None, "--output", "-o", help="Output directory (default: current)"
    ),
    config_path: str = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file (default: ~/.node-extractor/config.yaml)",
    ),
    registry: str = typer.Option(None, "--registry", help="Package registry URL"),
    timeout: float = typer.Option(
        None, "--timeout", help="Per-module import timeout in seconds"
    ),
    webhook: str = typer.Option(
        None, "--webhook", help="POST the resulting JSON file to this URL"
    ),
):
    """Extract node descriptions from one or more node packs.

    One package writes <package>.json; several write multiple-packages.json
    keyed by package name.
    """
    from node_extractor.cli.extract_cmd import extract_command

    extract_command(
        packages,
        verbose=verbose,
        output_dir=output_dir,
        config_path=config_path,
        registry=registry,
        timeout=timeout,
        webhook=webhook,
    )


def main():
    """Entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
