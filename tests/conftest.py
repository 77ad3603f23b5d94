"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import io
import json
import re
import tarfile
import textwrap
from pathlib import Path
from urllib.parse import quote

import httpx
import pytest
import respx

from node_extractor.config.schema import ExtractorConfig
from node_extractor.models import StagedPackage
from node_extractor.registry.specifier import PackageSpecifier
from node_extractor.staging.dependencies import DependencyInstaller, InstallResult
from node_extractor.staging.manifest import read_manifest

REGISTRY_URL = "https://registry.test"


def node_source(
    name: str,
    display_name: str | None = None,
    icon: str | None = "file:icon.svg",
    extra: str = "",
    class_name: str = "Node",
) -> str:
    """Source of a node module exposing one node class."""
    icon_line = f'"icon": {icon!r},' if icon is not None else ""
    return textwrap.dedent(
        f'''
        class {class_name}:
            description = {{
                "displayName": {(display_name or name.title())!r},
                "name": {name!r},
                {icon_line}
                "group": ["transform"],
                "version": 1,
                "description": "The {name} node",
                "properties": [{{"displayName": "Value", "name": "value", "type": "string"}}],
            }}
        '''
    ) + textwrap.dedent(extra)


def manifest_json(name: str, nodes: list[str], **extra) -> str:
    data = {"name": name, "version": "1.0.0", "n8n": {"nodes": nodes}}
    data.update(extra)
    return json.dumps(data)


def build_tarball(files: dict[str, str | bytes], wrapper: str = "package") -> bytes:
    """Gzipped tarball with every file under a ``wrapper/`` directory."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for name, content in files.items():
            data = content.encode("utf-8") if isinstance(content, str) else content
            info = tarfile.TarInfo(f"{wrapper}/{name}")
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


def write_files(root: Path, files: dict[str, str]) -> Path:
    for name, content in files.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return root


class RecordingInstaller(DependencyInstaller):
    """Installer that records requests instead of running pip."""

    def __init__(self, fail: bool = False) -> None:
        super().__init__(python="python")
        self.fail = fail
        self.calls: list[tuple[list[str], Path]] = []

    def run(self, requirements: list[str], target: Path) -> InstallResult:
        from node_extractor.errors import DependencyInstallFailed

        self.calls.append((list(requirements), target))
        target.mkdir(parents=True, exist_ok=True)
        result = InstallResult(
            command=self.command(requirements, target),
            returncode=1 if self.fail else 0,
            stderr="boom" if self.fail else "",
            requirements=list(requirements),
        )
        if self.fail:
            raise DependencyInstallFailed("Dependency installation failed", result=result)
        return result


@pytest.fixture
def config(tmp_path: Path) -> ExtractorConfig:
    """Configuration pointing at a fake registry and private temp/output dirs."""
    cfg = ExtractorConfig()
    cfg.registry.url = REGISTRY_URL
    cfg.staging.temp_dir = str(tmp_path / "work")
    cfg.output.directory = str(tmp_path / "out")
    cfg.loader.timeout = 5.0
    return cfg


@pytest.fixture
def installer() -> RecordingInstaller:
    return RecordingInstaller()


@pytest.fixture
def make_package(tmp_path: Path):
    """Factory creating a staged package directory on disk."""

    def _make(
        specifier: str,
        files: dict[str, str],
        nodes: list[str] | None = None,
    ) -> StagedPackage:
        spec = PackageSpecifier.parse(specifier)
        root = tmp_path / "packages" / spec.file_stem
        root.mkdir(parents=True, exist_ok=True)
        write_files(root, files)
        if nodes is not None:
            (root / "package.json").write_text(manifest_json(spec.full_name, nodes))
        manifest = read_manifest(root)
        return StagedPackage(
            spec=spec,
            root_path=root,
            manifest=manifest,
            declared_plugin_paths=manifest.declared_nodes,
        )

    return _make


def mock_registry_package(
    name: str, files: dict[str, str], version: str = "1.0.0", **manifest
) -> None:
    """Register respx routes serving ``name`` as a tarball.

    ``files`` maps package paths to contents; ``package.json`` is added
    from ``manifest`` (``nodes`` plus any extra manifest keys) unless given.
    """
    files = dict(files)
    if "package.json" not in files:
        nodes = manifest.pop("nodes", [])
        files["package.json"] = manifest_json(name, nodes, **manifest)

    tarball_url = f"{REGISTRY_URL}/{name}/-/archive-{version}.tgz"
    document = {"name": name, "version": version, "dist": {"tarball": tarball_url}}
    path = re.escape(f"{REGISTRY_URL}/{quote(name, safe='@')}")
    respx.get(url__regex=rf"^{path}/(latest|{re.escape(version)})$").mock(
        return_value=httpx.Response(200, json=document)
    )
    respx.get(tarball_url).mock(return_value=httpx.Response(200, content=build_tarball(files)))
