"""Package archive download and unpacking."""

from __future__ import annotations

import asyncio
import logging
import tarfile
from pathlib import Path, PurePosixPath

from node_extractor.errors import ExtractFailed
from node_extractor.models import StagedPackage
from node_extractor.registry.client import RegistryClient
from node_extractor.registry.specifier import PackageSpecifier
from node_extractor.staging.manifest import read_manifest

logger = logging.getLogger(__name__)

ARCHIVE_NAME = "package.tgz"
EXTRACT_DIR = "extracted"


def _strip_top_level(name: str) -> str | None:
    """Member path without its wrapper directory, None if nothing remains."""
    parts = PurePosixPath(name.replace("\\", "/")).parts
    if parts and parts[0] == "/":
        return None
    parts = parts[1:]
    if not parts or ".." in parts:
        return None
    return str(PurePosixPath(*parts))


def unpack_archive(archive: Path, destination: Path) -> Path:
    """Unpack a gzipped tarball, dropping its top-level directory.

    Only regular files and directories are extracted; links, devices and
    members that would land outside ``destination`` are skipped.

    Raises:
        ExtractFailed: If the archive is missing, corrupt or not a tarball
    """
    destination.mkdir(parents=True, exist_ok=True)
    root = destination.resolve()
    extracted = 0

    try:
        with tarfile.open(archive, "r:*") as tar:
            for member in tar:
                if not (member.isfile() or member.isdir()):
                    logger.debug("Skipping non-regular archive member %s", member.name)
                    continue

                relative = _strip_top_level(member.name)
                if relative is None:
                    continue

                target = (root / relative).resolve()
                if not target.is_relative_to(root):
                    logger.warning("Skipping archive member outside package: %s", member.name)
                    continue

                if member.isdir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue

                target.parent.mkdir(parents=True, exist_ok=True)
                source = tar.extractfile(member)
                if source is None:
                    continue
                with source, open(target, "wb") as f:
                    while chunk := source.read(64 * 1024):
                        f.write(chunk)
                extracted += 1
    except (tarfile.TarError, EOFError, OSError) as e:
        raise ExtractFailed(f"Could not unpack {archive.name}: {e}") from e

    logger.debug("Unpacked %d file(s) into %s", extracted, destination)
    return destination


class PackageStager:
    """Downloads and unpacks node packs into a working directory."""

    def __init__(self, client: RegistryClient) -> None:
        self.client = client

    async def stage(self, spec: PackageSpecifier, work_dir: Path) -> StagedPackage:
        """
        Resolve, download and unpack one package.

        Args:
            spec: Package to stage
            work_dir: Exclusively owned directory for this package

        Returns:
            StagedPackage rooted at ``<work_dir>/extracted``

        Raises:
            PackageNotFound, RegistryError: Resolution failed
            DownloadFailed: Archive download failed
            ExtractFailed: Archive could not be unpacked
        """
        info = await self.client.resolve(spec)

        work_dir.mkdir(parents=True, exist_ok=True)
        archive = await self.client.download(info.archive_url, work_dir / ARCHIVE_NAME)

        root = await asyncio.to_thread(unpack_archive, archive, work_dir / EXTRACT_DIR)
        manifest = await asyncio.to_thread(read_manifest, root)

        staged = StagedPackage(
            spec=spec,
            root_path=root,
            manifest=manifest,
            info=info,
            declared_plugin_paths=manifest.declared_nodes,
        )
        logger.info(
            "Staged %s@%s with %d declared node(s)",
            info.name,
            info.resolved_version,
            len(staged.declared_plugin_paths),
        )
        return staged
