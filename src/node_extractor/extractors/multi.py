"""Extraction of node descriptions from several node packs at once.

All packs are staged side by side and share one dependency installation,
which is far cheaper than installing per pack. A pack that cannot be
staged or described is left out of the result and reported in
:attr:`MultiPackageExtractor.failed`; the shared installation failing
aborts the run.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from pathlib import Path

from node_extractor.errors import ExtractionError
from node_extractor.extractors.base import BaseExtractor
from node_extractor.models import NodeDescription, StagedPackage
from node_extractor.output.writer import ResultWriter
from node_extractor.registry.specifier import PackageSpecifier
from node_extractor.staging.archive import PackageStager
from node_extractor.staging.dependencies import build_requirements
from node_extractor.staging.manifest import PackageManifest, write_manifest

logger = logging.getLogger(__name__)

PACKAGES_DIR = "packages"
COMBINED_MANIFEST_NAME = "node-extractor-batch"


class MultiPackageExtractor(BaseExtractor[dict[str, list[NodeDescription]]]):
    """Extracts node descriptions from many packs, keyed by package id."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._packages: dict[str, list[NodeDescription]] = {}
        self.failed: dict[str, str] = {}

    @property
    def items(self) -> dict[str, list[NodeDescription]]:
        return self._packages

    @staticmethod
    def parse_all(packages: Iterable[str | PackageSpecifier]) -> list[PackageSpecifier]:
        """Parse specifiers, dropping repeated package ids (first one wins)."""
        specs: dict[str, PackageSpecifier] = {}
        for package in packages:
            spec = PackageSpecifier.parse(package) if isinstance(package, str) else package
            if spec.full_name in specs:
                logger.warning("Ignoring duplicate package %s", spec)
                continue
            specs[spec.full_name] = spec
        return list(specs.values())

    def combined_manifest(self, staged: list[StagedPackage]) -> PackageManifest:
        """Manifest of the shared installation.

        ``dependencies`` merges the runtime dependencies of every staged
        pack with the core packages; ``nodePackages`` records the packs
        themselves with the version each was requested at.
        """
        dependencies: dict[str, str] = {}
        for package in staged:
            dependencies.update(package.manifest.runtime_dependencies(self.core_packages))
        return PackageManifest(
            name=COMBINED_MANIFEST_NAME,
            dependencies=dependencies,
            nodePackages=dict(package.spec.requirement for package in staged),
        )

    async def _stage_all(
        self, stager: PackageStager, specs: list[PackageSpecifier], work_dir: Path
    ) -> list[StagedPackage]:
        results = await asyncio.gather(
            *(stager.stage(spec, work_dir / PACKAGES_DIR / spec.file_stem) for spec in specs),
            return_exceptions=True,
        )
        staged = []
        for spec, result in zip(specs, results):
            if isinstance(result, Exception):
                logger.error("Could not stage %s: %s", spec, result)
                self.failed[spec.full_name] = str(result)
            elif isinstance(result, BaseException):
                raise result
            else:
                staged.append(result)
        return staged

    async def _describe(self, package: StagedPackage, deps_dir: Path) -> list[NodeDescription]:
        logger.debug(
            "[%s] Declared nodes: %s", package.spec.full_name, package.declared_plugin_paths
        )
        nodes = await self.describer.describe_package(package, [deps_dir])
        logger.info("Extracted %d node(s) from %s", len(nodes), package.spec.full_name)
        return nodes

    async def extract(
        self, packages: Iterable[str | PackageSpecifier]
    ) -> dict[str, list[NodeDescription]]:
        """
        Extract node descriptions from several packages.

        Args:
            packages: Package specifier strings or parsed specifiers

        Returns:
            Mapping of package id to its descriptions, in request order

        Raises:
            ExtractionError: No package could be staged, or the shared
                dependency installation failed
        """
        specs = self.parse_all(packages)
        self.failed = {}
        logger.info(
            "Extracting node descriptions from %d packages: %s",
            len(specs),
            ", ".join(str(spec) for spec in specs),
        )

        try:
            async with self.session() as (client, work_dir):
                staged = await self._stage_all(PackageStager(client), specs, work_dir)
                if not staged:
                    raise ExtractionError("None of the requested packages could be staged")

                deps_dir = work_dir / self.config.staging.site_packages_dir
                manifest = self.combined_manifest(staged)
                await asyncio.to_thread(
                    write_manifest, work_dir, manifest.model_dump(by_alias=True, exclude_none=True)
                )
                requirements = build_requirements(manifest.dependencies)
                logger.info("Installing dependencies for %d packages", len(staged))
                await self.installer.install(requirements, deps_dir)

                results = await asyncio.gather(
                    *(self._describe(package, deps_dir) for package in staged),
                    return_exceptions=True,
                )
        except ExtractionError as e:
            logger.error("Extraction failed: %s", e)
            raise

        extracted: dict[str, list[NodeDescription]] = {}
        for package, result in zip(staged, results):
            name = package.spec.full_name
            if isinstance(result, Exception):
                logger.error("Could not extract nodes from %s: %s", name, result)
                self.failed[name] = str(result)
            elif isinstance(result, BaseException):
                raise result
            else:
                extracted[name] = result

        self._packages = extracted
        total = sum(len(nodes) for nodes in extracted.values())
        logger.info(
            "Found %d total node description(s) across %d packages", total, len(extracted)
        )
        return extracted

    def save_results(self, writer: ResultWriter) -> Path:
        return writer.write_multi(self._packages)
