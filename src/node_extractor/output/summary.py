"""Console summaries of extracted node descriptions."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape

from node_extractor.models import NodeDescription

console = Console()


def _version_text(version) -> str:
    if isinstance(version, list):
        return ", ".join(str(v) for v in version)
    return "-" if version is None else str(version)


def print_node(
    node: NodeDescription, index: int, indent: str = "", out: Console | None = None
) -> None:
    """Print one node's summary block."""
    out = out if out is not None else console
    pad = indent + "   "
    title = f"[bold cyan]{escape(node.displayName)}[/bold cyan] ({escape(node.name)})"
    out.print(f"\n{indent}{index}. {title}")
    out.print(f"{pad}Description: {escape(node.description)}")
    out.print(f"{pad}Groups: {escape(', '.join(node.group))}")
    out.print(f"{pad}Version: {escape(_version_text(node.version))}")
    out.print(f"{pad}Properties: {len(node.properties)}")
    out.print(f"{pad}Credentials: {len(node.credentials or [])}")
    out.print(f"{pad}Webhooks: {'Yes' if node.webhooks else 'No'}")
    out.print(f"{pad}Load Options: {len(node.loadOptionsMethods or [])}")
    if node.icon:
        out.print(f"{pad}Icon: {escape(node.icon)}")
    if node.iconUrl:
        out.print(f"{pad}Icon URL: {escape(node.iconUrl)}")


def print_summary(nodes: list[NodeDescription], out: Console | None = None) -> None:
    """Summarize a single-package result."""
    out = out if out is not None else console
    if not nodes:
        out.print("\n[yellow]No nodes found[/yellow]")
        return

    out.print("\n[bold]Node Descriptions Extracted:[/bold]")
    for index, node in enumerate(nodes, start=1):
        print_node(node, index, out=out)


def print_multi_summary(
    packages: dict[str, list[NodeDescription]],
    failed: dict[str, str] | None = None,
    out: Console | None = None,
) -> None:
    """Summarize a multi-package result, grouped by package."""
    out = out if out is not None else console
    if not packages:
        out.print("\n[yellow]No nodes found[/yellow]")
    else:
        out.print("\n[bold]Node Descriptions Extracted:[/bold]")
        index = 1
        for package, nodes in packages.items():
            out.print(f"\n[bold green]Package: {escape(package)}[/bold green] ({len(nodes)} nodes)")
            for node in nodes:
                print_node(node, index, indent="  ", out=out)
                index += 1

    for package, error in (failed or {}).items():
        out.print(f"[red]Failed: {escape(package)}: {escape(error)}[/red]")
