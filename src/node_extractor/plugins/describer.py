"""Node instantiation and description normalization.

Raw descriptions are rewritten so they can live side by side with the
descriptions of other packs:

- ``name`` becomes ``<namespace>-<package>.<name>``
- file icons become ``icons/<package>/<path>`` URLs; ``fa:`` icons stay
  symbolic. A description never carries both forms.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from node_extractor.errors import ModuleLoadError
from node_extractor.models import NodeDescription, StagedPackage
from node_extractor.plugins.contract import (
    load_options_methods,
    read_description,
    resolve_node_factory,
)
from node_extractor.plugins.loader import ModuleLoader
from node_extractor.plugins.locator import ModuleLocator
from node_extractor.registry.specifier import DEFAULT_STRIP_PREFIX, PackageSpecifier

logger = logging.getLogger(__name__)

SYMBOLIC_ICON_PREFIX = "fa:"
FILE_ICON_PREFIX = "file:"
_ICON_FIELDS = ("icon", "iconUrl", "iconUrlLight", "iconUrlDark")


def _as_list(value: Any) -> list[Any]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)


def _copy_sequence(value: Any, default: list[Any]) -> Any:
    """Copy of a list or tuple; other values (expression strings) pass through."""
    if not value:
        return list(default)
    if isinstance(value, (list, tuple)):
        return list(value)
    return value


class NodeNamer:
    """Builds globally unique node names."""

    def __init__(
        self, namespace_prefix: str = "n8n-nodes", strip_prefix: str = DEFAULT_STRIP_PREFIX
    ) -> None:
        self.namespace_prefix = namespace_prefix
        self.strip_prefix = strip_prefix

    def node_name(self, spec: PackageSpecifier, original: str) -> str:
        return f"{self.namespace_prefix}-{spec.clean_id(self.strip_prefix)}.{original}"


class IconResolver:
    """Turns icon references into package-scoped icon URLs."""

    def __init__(self, icon_root: str = "icons") -> None:
        self.icon_root = icon_root.strip("/")

    @staticmethod
    def resolve_path(reference: str, module_path: Path, package_root: Path) -> str:
        """Package-relative path of an icon file.

        ``/x.svg`` is already package-relative. ``./x.svg``, ``../x.svg``
        and bare file names are relative to the node module. Anything else
        is assumed to be package-relative already.
        """
        reference = reference.replace("\\", "/")
        if reference.startswith("/"):
            return reference[1:]
        if reference.startswith(("./", "../")) or "/" not in reference:
            absolute = os.path.normpath(module_path.parent / reference)
            return Path(os.path.relpath(absolute, package_root)).as_posix()
        return reference

    def url(
        self, reference: str, spec: PackageSpecifier, module_path: Path, package_root: Path
    ) -> str:
        if reference.startswith(FILE_ICON_PREFIX):
            reference = reference[len(FILE_ICON_PREFIX):]
        path = self.resolve_path(reference, module_path, package_root)
        return f"{self.icon_root}/{spec.icon_id}/{path}"

    def _themed(
        self,
        themed: Mapping[str, Any],
        spec: PackageSpecifier,
        module_path: Path,
        package_root: Path,
    ) -> dict[str, str]:
        fields: dict[str, str] = {}
        light, dark = themed.get("light"), themed.get("dark")
        if isinstance(light, str) and light:
            fields["iconUrlLight"] = self.url(light, spec, module_path, package_root)
        if isinstance(dark, str) and dark:
            fields["iconUrlDark"] = self.url(dark, spec, module_path, package_root)
        canonical = fields.get("iconUrlDark") or fields.get("iconUrlLight")
        if canonical:
            fields["iconUrl"] = canonical
        return fields

    def icon_fields(
        self,
        raw: Mapping[str, Any],
        spec: PackageSpecifier,
        module_path: Path,
        package_root: Path,
    ) -> dict[str, str]:
        """Icon fields for a normalized description.

        Returns either ``{"icon": ...}`` or some of ``iconUrl``,
        ``iconUrlLight`` and ``iconUrlDark``, never both kinds.
        """
        fields: dict[str, str] = {}
        icon = raw.get("icon")

        if isinstance(icon, str) and icon:
            if icon.startswith(SYMBOLIC_ICON_PREFIX):
                fields["icon"] = icon
            else:
                fields["iconUrl"] = self.url(icon, spec, module_path, package_root)
        elif isinstance(icon, Mapping):
            fields.update(self._themed(icon, spec, module_path, package_root))

        # An explicit iconUrl on the node overrides whatever icon produced
        explicit = raw.get("iconUrl")
        if isinstance(explicit, str) and explicit:
            fields.pop("icon", None)
            fields["iconUrl"] = self.url(explicit, spec, module_path, package_root)
        elif isinstance(explicit, Mapping):
            themed = self._themed(explicit, spec, module_path, package_root)
            if themed:
                fields.pop("icon", None)
                fields.update(themed)

        return fields


class PluginDescriber:
    """Loads node modules and produces normalized descriptions.

    Every per-module failure is logged and reported as ``None``; nothing
    raised while handling one module reaches the caller.
    """

    def __init__(
        self,
        loader: ModuleLoader,
        locator: ModuleLocator | None = None,
        namer: NodeNamer | None = None,
        icons: IconResolver | None = None,
    ) -> None:
        self.loader = loader
        self.locator = locator or ModuleLocator()
        self.namer = namer or NodeNamer()
        self.icons = icons or IconResolver()

    def normalize(
        self,
        raw: Mapping[str, Any],
        package: StagedPackage,
        module_path: Path,
        load_options: list[str] | None = None,
    ) -> NodeDescription:
        """Build the normalized description for one raw description."""
        record = {
            key: value
            for key, value in raw.items()
            if not key.startswith("__") and key not in _ICON_FIELDS
        }
        record.update(
            displayName=raw.get("displayName") or "",
            name=self.namer.node_name(package.spec, raw["name"]),
            group=_as_list(raw.get("group")),
            version=raw.get("version"),
            description=raw.get("description") or "",
            defaults=dict(raw.get("defaults") or {}),
            inputs=_copy_sequence(raw.get("inputs"), ["main"]),
            outputs=_copy_sequence(raw.get("outputs"), ["main"]),
            properties=_copy_sequence(raw.get("properties"), []),
        )
        record.update(self.icons.icon_fields(raw, package.spec, module_path, package.root_path))
        if load_options is not None:
            record["__loadOptionsMethods"] = load_options
        return NodeDescription.model_validate(record)

    async def describe_module(
        self, module_path: Path, package: StagedPackage, search_dirs: list[Path]
    ) -> NodeDescription | None:
        """Load, instantiate and describe one node module."""
        logger.debug("Extracting description from %s", module_path.name)
        try:
            module = await self.loader.load(module_path, search_dirs)

            factory = resolve_node_factory(module)
            if factory is None:
                logger.warning("No node class found in %s", module_path.name)
                return None

            node = factory()
            raw = read_description(node)
            if not raw or not raw.get("name"):
                logger.warning("No valid description in %s", module_path.name)
                return None

            description = self.normalize(raw, package, module_path, load_options_methods(node))
        except ModuleLoadError as e:
            logger.warning("Could not load %s: %s", module_path.name, e)
            return None
        except ValidationError as e:
            logger.warning("Invalid description in %s: %s", module_path.name, e)
            return None
        except Exception as e:
            logger.warning("Extraction error in %s: %r", module_path.name, e)
            return None

        logger.info("Extracted description for: %s", description.displayName or description.name)
        return description

    async def describe_declared(
        self, package: StagedPackage, declared: str, search_dirs: list[Path]
    ) -> NodeDescription | None:
        """Locate and describe one declared node entry."""
        logger.debug("[%s] Processing %s", package.spec.full_name, declared)
        module_path = await self.locator.locate(package.root_path, declared)
        if module_path is None:
            return None

        description = await self.describe_module(module_path, package, search_dirs)
        if description is None:
            logger.warning("Could not extract %s from %s", declared, package.spec.full_name)
        return description

    async def describe_package(
        self, package: StagedPackage, search_dirs: list[Path]
    ) -> list[NodeDescription]:
        """Describe every declared node of a package concurrently.

        The result keeps declaration order and omits failed nodes.
        """
        results = await asyncio.gather(
            *(
                self.describe_declared(package, declared, search_dirs)
                for declared in package.declared_plugin_paths
            )
        )
        return [description for description in results if description is not None]
