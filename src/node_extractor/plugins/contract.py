"""The describable-node contract between node modules and the extractor.

A node module registers its node explicitly by exposing ``get_node``, a
callable returning the node class (or a ready instance). Modules written
without the entry point are still accepted: a callable ``default``
attribute is used, then the first callable export.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Mapping
from types import ModuleType
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

ENTRY_POINT = "get_node"
DEFAULT_EXPORT = "default"


@runtime_checkable
class DescribableNode(Protocol):
    """Anything exposing a node description mapping."""

    description: Mapping[str, Any]


def module_exports(module: ModuleType) -> list[tuple[str, Any]]:
    """Exported names of a module in enumeration order.

    ``__all__`` when declared, otherwise the public names the module
    defines itself (imported classes and functions are not exports).
    """
    exported = getattr(module, "__all__", None)
    if exported is not None:
        return [(name, getattr(module, name)) for name in exported if hasattr(module, name)]

    exports = []
    for name, value in vars(module).items():
        if name.startswith("_") or name == DEFAULT_EXPORT:
            continue
        if getattr(value, "__module__", None) != module.__name__:
            continue
        exports.append((name, value))
    return exports


def resolve_node_factory(module: ModuleType) -> Any | None:
    """Find the callable that produces the module's node.

    Returns:
        The node class or factory, or None if the module offers none
    """
    entry = getattr(module, ENTRY_POINT, None)
    if callable(entry):
        node = entry()
        if inspect.isclass(node):
            return node
        # get_node() may hand back an instance directly
        return lambda: node

    default = getattr(module, DEFAULT_EXPORT, None)
    if callable(default):
        return default

    for name, value in module_exports(module):
        if callable(value) and not inspect.ismodule(value):
            logger.debug("Using export %s of %s", name, module.__name__)
            return value

    return None


def read_description(node: Any) -> dict[str, Any] | None:
    """Description mapping of a node instance, None when absent or malformed."""
    describe = getattr(node, "describe", None)
    if callable(describe):
        description = describe()
    elif isinstance(node, DescribableNode):
        description = node.description
    else:
        return None

    if not isinstance(description, Mapping):
        return None
    return dict(description)


def load_options_methods(node: Any) -> list[str] | None:
    """Names of the node's dynamic option loaders; the loaders are not called."""
    methods = getattr(node, "methods", None)
    if methods is None:
        return None

    if isinstance(methods, Mapping):
        load_options = methods.get("loadOptions") or methods.get("load_options")
    else:
        load_options = getattr(methods, "loadOptions", None) or getattr(
            methods, "load_options", None
        )

    if not load_options:
        return None
    if isinstance(load_options, Mapping):
        return list(load_options.keys())

    owner = load_options if inspect.isclass(load_options) else type(load_options)
    names = [name for name in vars(owner) if not name.startswith("_")]
    for name in getattr(load_options, "__dict__", {}):
        if not name.startswith("_") and name not in names:
            names.append(name)
    return names
