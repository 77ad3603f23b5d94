"""Node pack manifest (``package.json``) model."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

MANIFEST_NAME = "package.json"


class PlatformSection(BaseModel):
    """The platform-specific ``n8n`` block of a manifest."""

    model_config = ConfigDict(extra="allow")

    nodes: list[str] = Field(default_factory=list)
    credentials: list[str] = Field(default_factory=list)


class PackageManifest(BaseModel):
    """Subset of ``package.json`` the extractor relies on.

    Unknown keys are preserved so a rewritten manifest keeps them.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str = "temp"
    version: str = "1.0.0"
    dependencies: dict[str, str] = Field(default_factory=dict)
    peerDependencies: dict[str, str] = Field(default_factory=dict)  # noqa: N815
    devDependencies: dict[str, str] = Field(default_factory=dict)  # noqa: N815
    n8n: PlatformSection | None = None

    @property
    def declared_nodes(self) -> list[str]:
        """Declared plugin entry paths, empty when the pack declares none."""
        if self.n8n is None:
            return []
        return list(self.n8n.nodes)

    def runtime_dependencies(self, core_packages: list[str]) -> dict[str, str]:
        """Dependencies needed to import the pack's nodes.

        Peer dependencies are folded into regular dependencies and missing
        core packages are added unpinned. Development dependencies are
        never part of the result.
        """
        deps = dict(self.dependencies)
        deps.update(self.peerDependencies)
        for package in core_packages:
            deps.setdefault(package, "latest")
        return deps

    def to_runtime_manifest(self, core_packages: list[str]) -> dict[str, Any]:
        """Manifest document with runtime dependencies and no dev section."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        data["dependencies"] = self.runtime_dependencies(core_packages)
        data.pop("devDependencies", None)
        return data


def read_manifest(root: Path) -> PackageManifest:
    """Read the manifest of a staged package.

    A missing or unreadable manifest yields a placeholder manifest
    rather than an error.
    """
    path = root / MANIFEST_NAME
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("manifest is not a JSON object")
        return PackageManifest.model_validate(data)
    except FileNotFoundError:
        logger.debug("No manifest at %s", path)
    except (OSError, ValueError, ValidationError) as e:
        logger.warning("Unreadable manifest %s: %s", path, e)
    return PackageManifest()


def write_manifest(root: Path, data: dict[str, Any]) -> Path:
    """Write ``data`` as ``<root>/package.json``."""
    root.mkdir(parents=True, exist_ok=True)
    path = root / MANIFEST_NAME
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    return path


def write_runtime_manifest(
    root: Path, manifest: PackageManifest, core_packages: list[str]
) -> Path:
    """Rewrite ``package.json`` for a runtime-only install."""
    return write_manifest(root, manifest.to_runtime_manifest(core_packages))
