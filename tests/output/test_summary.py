"""Tests for console summaries."""

from rich.console import Console

from node_extractor.models import NodeDescription
from node_extractor.output.summary import print_multi_summary, print_summary


def _console() -> Console:
    return Console(record=True, width=200, force_terminal=False)


def _node(name: str, **fields) -> NodeDescription:
    return NodeDescription(name=name, displayName="Badge", **fields)


def test_summary_lists_nodes():
    out = _console()
    node = _node(
        "n8n-nodes-badges.badge",
        description="Make badges",
        group=["transform"],
        version=[1, 2],
        properties=[{"name": "a"}, {"name": "b"}],
        webhooks=[{"name": "default"}],
        iconUrl="icons/n8n-nodes-badges/badge.svg",
    )

    print_summary([node], out=out)

    text = out.export_text()
    assert "1. Badge (n8n-nodes-badges.badge)" in text
    assert "Description: Make badges" in text
    assert "Version: 1, 2" in text
    assert "Properties: 2" in text
    assert "Webhooks: Yes" in text
    assert "Icon URL: icons/n8n-nodes-badges/badge.svg" in text


def test_summary_empty():
    out = _console()

    print_summary([], out=out)

    assert "No nodes found" in out.export_text()


def test_multi_summary_groups_and_failures():
    out = _console()
    packages = {
        "pkg-a": [_node("n8n-nodes-pkg-a.alpha")],
        "pkg-b": [_node("n8n-nodes-pkg-b.beta")],
    }

    print_multi_summary(packages, {"pkg-missing": "Package not found"}, out=out)

    text = out.export_text()
    assert "Package: pkg-a (1 nodes)" in text
    assert "2. Badge (n8n-nodes-pkg-b.beta)" in text
    assert "Failed: pkg-missing: Package not found" in text


def test_multi_summary_empty():
    out = _console()

    print_multi_summary({}, out=out)

    assert "No nodes found" in out.export_text()
