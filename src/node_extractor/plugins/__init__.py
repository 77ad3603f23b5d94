"""Node module discovery, loading and description.

A pack's manifest declares node module paths. The locator maps each one
to a file on disk, the loader imports it, and the describer instantiates
the node and normalizes its description.
"""

from node_extractor.plugins.contract import (
    DescribableNode,
    read_description,
    resolve_node_factory,
)
from node_extractor.plugins.describer import IconResolver, NodeNamer, PluginDescriber
from node_extractor.plugins.loader import ModuleCache, ModuleLoader, SearchPath
from node_extractor.plugins.locator import ModuleLocator

__all__ = [
    "DescribableNode",
    "IconResolver",
    "ModuleCache",
    "ModuleLoader",
    "ModuleLocator",
    "NodeNamer",
    "PluginDescriber",
    "SearchPath",
    "read_description",
    "resolve_node_factory",
]
