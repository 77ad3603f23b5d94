"""Shared extractor plumbing: components, working directory and cleanup."""

from __future__ import annotations

import asyncio
import logging
import shutil
import tempfile
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Generic, TypeVar

from node_extractor.config.schema import ExtractorConfig
from node_extractor.plugins.describer import IconResolver, NodeNamer, PluginDescriber
from node_extractor.plugins.loader import ModuleCache, ModuleLoader
from node_extractor.plugins.locator import ModuleLocator
from node_extractor.registry.client import RegistryClient
from node_extractor.staging.dependencies import DependencyInstaller

if TYPE_CHECKING:
    from node_extractor.output.writer import ResultWriter

logger = logging.getLogger(__name__)

T = TypeVar("T")

WORK_DIR_PREFIX = "node-extractor-"


class BaseExtractor(ABC, Generic[T]):
    """Base class for extractors.

    Each run gets its own working directory which is removed when the run
    ends, whatever the outcome. Removal failures are logged, never raised.
    """

    def __init__(
        self,
        config: ExtractorConfig | None = None,
        *,
        client: RegistryClient | None = None,
        installer: DependencyInstaller | None = None,
        describer: PluginDescriber | None = None,
    ) -> None:
        self.config = config or ExtractorConfig()
        self._client = client
        self.installer = installer or DependencyInstaller(
            python=self.config.staging.python,
            extra_args=self.config.staging.pip_args,
        )
        self.cache = ModuleCache()
        self.describer = describer or self._build_describer()
        self.work_dir: Path | None = None

    def _build_describer(self) -> PluginDescriber:
        loader_config = self.config.loader
        naming = self.config.naming
        return PluginDescriber(
            loader=ModuleLoader(self.cache, timeout=loader_config.timeout),
            locator=ModuleLocator(
                source_suffix=loader_config.source_suffix,
                compiled_suffix=loader_config.compiled_suffix,
                source_dir=loader_config.source_dir,
                build_dirs=loader_config.build_dirs,
            ),
            namer=NodeNamer(naming.namespace_prefix, naming.strip_prefix),
            icons=IconResolver(naming.icon_root),
        )

    @property
    def core_packages(self) -> list[str]:
        return self.config.staging.core_packages

    def _create_work_dir(self) -> Path:
        parent = self.config.staging.temp_dir
        if parent:
            Path(parent).expanduser().mkdir(parents=True, exist_ok=True)
            parent = str(Path(parent).expanduser())
        return Path(tempfile.mkdtemp(prefix=WORK_DIR_PREFIX, dir=parent))

    async def cleanup(self) -> None:
        """Remove the working directory and forget loaded modules."""
        if len(self.cache):
            logger.debug("Evicting %d loaded node module(s)", len(self.cache))
        self.cache.clear()
        work_dir, self.work_dir = self.work_dir, None
        if work_dir is None:
            return
        try:
            await asyncio.to_thread(shutil.rmtree, work_dir)
            logger.debug("Removed working directory %s", work_dir)
        except OSError as e:
            logger.warning("Could not remove working directory %s: %s", work_dir, e)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[tuple[RegistryClient, Path]]:
        """Registry client and working directory for one run."""
        self.work_dir = self._create_work_dir()
        owns_client = self._client is None
        client = self._client or RegistryClient(
            base_url=self.config.registry.url,
            timeout=self.config.registry.timeout,
        )
        try:
            yield client, self.work_dir
        finally:
            if owns_client:
                await client.close()
            await self.cleanup()

    @abstractmethod
    async def extract(self, packages) -> T:
        """Run the extraction."""

    @property
    @abstractmethod
    def items(self) -> T:
        """Result of the last successful run."""

    @abstractmethod
    def save_results(self, writer: ResultWriter) -> Path:
        """Write the last result as a JSON artifact."""
