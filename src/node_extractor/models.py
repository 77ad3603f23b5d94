"""Data models shared across the extraction pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

if TYPE_CHECKING:
    from node_extractor.registry.specifier import PackageSpecifier
    from node_extractor.staging.manifest import PackageManifest

RESULT_FORMAT = "node-descriptions"

# Optional description fields left out of the JSON output when unset
_OPTIONAL_FIELDS = (
    "version",
    "credentials",
    "webhooks",
    "icon",
    "iconUrl",
    "iconUrlLight",
    "iconUrlDark",
    "loadOptionsMethods",
)


@dataclass(frozen=True)
class PackageInfo:
    """Registry record for one resolved package version."""

    name: str
    resolved_version: str
    archive_url: str


@dataclass
class StagedPackage:
    """A package unpacked on local disk, ready for plugin discovery."""

    spec: PackageSpecifier
    root_path: Path
    manifest: PackageManifest
    info: PackageInfo | None = None
    declared_plugin_paths: list[str] = field(default_factory=list)


class NodeDescription(BaseModel):
    """Normalized description of one node.

    Fields the node reports beyond the typed ones below (``subtitle``,
    ``codex``, ``usableAsTool`` ...) are passed through untouched.
    """

    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    displayName: str = ""  # noqa: N815
    name: str
    group: list[str] = Field(default_factory=list)
    version: int | float | list[int | float] | None = None
    description: str = ""
    defaults: dict[str, Any] = Field(default_factory=dict)
    inputs: str | list[Any] = Field(default_factory=lambda: ["main"])
    outputs: str | list[Any] = Field(default_factory=lambda: ["main"])
    properties: list[dict[str, Any]] = Field(default_factory=list)
    credentials: list[dict[str, Any]] | None = None
    webhooks: list[dict[str, Any]] | None = None
    icon: str | None = None
    iconUrl: str | None = None  # noqa: N815
    iconUrlLight: str | None = None  # noqa: N815
    iconUrlDark: str | None = None  # noqa: N815
    loadOptionsMethods: list[str] | None = Field(  # noqa: N815
        None, alias="__loadOptionsMethods"
    )

    @model_validator(mode="after")
    def _check_invariants(self) -> NodeDescription:
        if not self.name:
            raise ValueError("node description requires a non-empty name")
        has_url = any((self.iconUrl, self.iconUrlLight, self.iconUrlDark))
        if self.icon and has_url:
            raise ValueError("node description cannot carry both icon and iconUrl")
        return self

    def to_json_dict(self) -> dict[str, Any]:
        """Serialize using the wire field names, omitting unset optionals."""
        exclude = {name for name in _OPTIONAL_FIELDS if getattr(self, name) is None}
        return self.model_dump(by_alias=True, exclude=exclude, mode="json")


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class ExtractionResult(BaseModel):
    """Single-package extraction artifact."""

    model_config = ConfigDict(frozen=True)

    extractedAt: str = Field(default_factory=_utc_now)  # noqa: N815
    totalNodes: int = 0  # noqa: N815
    format: str = RESULT_FORMAT
    nodes: list[NodeDescription] = Field(default_factory=list)

    @classmethod
    def from_nodes(cls, nodes: list[NodeDescription]) -> ExtractionResult:
        return cls(totalNodes=len(nodes), nodes=list(nodes))

    def to_json_dict(self) -> dict[str, Any]:
        return {
            "extractedAt": self.extractedAt,
            "totalNodes": self.totalNodes,
            "format": self.format,
            "nodes": [node.to_json_dict() for node in self.nodes],
        }


class MultiExtractionResult(BaseModel):
    """Multi-package extraction artifact keyed by package id."""

    model_config = ConfigDict(frozen=True)

    extractedAt: str = Field(default_factory=_utc_now)  # noqa: N815
    totalPackages: int = 0  # noqa: N815
    totalNodes: int = 0  # noqa: N815
    format: str = RESULT_FORMAT
    packages: dict[str, list[NodeDescription]] = Field(default_factory=dict)

    @classmethod
    def from_packages(cls, packages: dict[str, list[NodeDescription]]) -> MultiExtractionResult:
        return cls(
            totalPackages=len(packages),
            totalNodes=sum(len(nodes) for nodes in packages.values()),
            packages={name: list(nodes) for name, nodes in packages.items()},
        )

    def to_json_dict(self) -> dict[str, Any]:
        return {
            "extractedAt": self.extractedAt,
            "totalPackages": self.totalPackages,
            "totalNodes": self.totalNodes,
            "format": self.format,
            "packages": {
                name: [node.to_json_dict() for node in nodes]
                for name, nodes in self.packages.items()
            },
        }
