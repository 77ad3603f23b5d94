"""Extraction of node descriptions from one node pack."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from node_extractor.errors import ExtractionError
from node_extractor.extractors.base import BaseExtractor
from node_extractor.models import NodeDescription, StagedPackage
from node_extractor.output.writer import ResultWriter
from node_extractor.registry.specifier import PackageSpecifier
from node_extractor.staging.archive import PackageStager
from node_extractor.staging.dependencies import build_requirements
from node_extractor.staging.manifest import write_runtime_manifest

logger = logging.getLogger(__name__)


class NodeExtractor(BaseExtractor[list[NodeDescription]]):
    """
    Extracts complete node descriptions from a single node pack.

    Usage:
        extractor = NodeExtractor(config)
        nodes = await extractor.extract("n8n-nodes-badges")
        extractor.save_results(ResultWriter("out"))
    """

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.spec: PackageSpecifier | None = None
        self._nodes: list[NodeDescription] = []

    @property
    def items(self) -> list[NodeDescription]:
        return self._nodes

    async def install_dependencies(self, staged: StagedPackage) -> Path:
        """Install the pack's runtime dependencies next to it.

        Returns:
            The dependency directory to import node modules against
        """
        await asyncio.to_thread(
            write_runtime_manifest, staged.root_path, staged.manifest, self.core_packages
        )
        deps_dir = staged.root_path / self.config.staging.site_packages_dir
        requirements = build_requirements(staged.manifest.runtime_dependencies(self.core_packages))
        await self.installer.install(requirements, deps_dir)
        logger.info("Dependencies ready for %s", staged.spec.full_name)
        return deps_dir

    async def extract(self, packages: str | PackageSpecifier) -> list[NodeDescription]:
        """
        Extract node descriptions from one package.

        Args:
            packages: Package specifier string or parsed specifier

        Returns:
            Descriptions in declaration order; nodes that failed are omitted

        Raises:
            ExtractionError: Resolution, download, unpacking or dependency
                installation failed
        """
        spec = PackageSpecifier.parse(packages) if isinstance(packages, str) else packages
        self.spec = spec
        logger.info("Extracting node descriptions from: %s", spec)

        try:
            async with self.session() as (client, work_dir):
                staged = await PackageStager(client).stage(spec, work_dir)
                deps_dir = await self.install_dependencies(staged)
                nodes = await self.describer.describe_package(staged, [deps_dir])
        except ExtractionError as e:
            logger.error("Extraction of %s failed: %s", spec, e)
            raise

        self._nodes = nodes
        logger.info("Found %d node description(s) in %s", len(nodes), spec.full_name)
        return nodes

    def save_results(self, writer: ResultWriter) -> Path:
        if self.spec is None:
            raise RuntimeError("extract() has not been run")
        return writer.write_single(self.spec, self._nodes)
