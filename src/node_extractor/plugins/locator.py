"""Resolution of declared node entry paths to files on disk.

Packs declare node modules by path, but the declared path does not always
match the published layout. Each declared path is expanded into a fixed,
ordered list of variations and the first one that exists wins.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path, PurePosixPath

logger = logging.getLogger(__name__)


class ModuleLocator:
    """Finds the file behind each declared node path."""

    def __init__(
        self,
        source_suffix: str = ".py",
        compiled_suffix: str = ".pyc",
        source_dir: str = "src",
        build_dirs: list[str] | None = None,
    ) -> None:
        self.source_suffix = source_suffix
        self.compiled_suffix = compiled_suffix
        self.source_dir = source_dir
        self.build_dirs = list(build_dirs) if build_dirs is not None else ["dist", "lib"]

    def _swap_directory(self, declared: str, replacement: str) -> str:
        """Replace the first ``source_dir`` segment of a path."""
        parts = list(PurePosixPath(declared).parts)
        if self.source_dir not in parts:
            return declared
        parts[parts.index(self.source_dir)] = replacement
        return str(PurePosixPath(*parts))

    def candidate_paths(self, declared: str) -> list[str]:
        """Ordered, de-duplicated path variations for a declared entry.

        1. the declared path
        2. compiled suffix in place of the source suffix
        3. each build directory in place of the source directory
        """
        declared = declared.replace("\\", "/")
        variations = [declared]

        if declared.endswith(self.source_suffix):
            variations.append(declared[: -len(self.source_suffix)] + self.compiled_suffix)

        for build_dir in self.build_dirs:
            variations.append(self._swap_directory(declared, build_dir))

        candidates: list[str] = []
        for variation in variations:
            if variation not in candidates:
                candidates.append(variation)
        return candidates

    async def locate(self, root: Path, declared: str) -> Path | None:
        """
        Resolve one declared entry.

        Existence checks for all candidates run concurrently; the winner is
        chosen by candidate order, not by which check finishes first.

        Args:
            root: Package root directory
            declared: Path as written in the manifest

        Returns:
            Absolute path of the first existing candidate, or None
        """
        candidates = [(root / variation).resolve() for variation in self.candidate_paths(declared)]
        exists = await asyncio.gather(
            *(asyncio.to_thread(candidate.is_file) for candidate in candidates)
        )

        for candidate, found in zip(candidates, exists):
            logger.debug("Checked %s: %s", candidate, "found" if found else "missing")
            if found:
                return candidate

        logger.warning("Could not locate declared node %s in %s", declared, root)
        return None

    async def locate_all(self, root: Path, declared: list[str]) -> list[Path | None]:
        """Resolve every declared entry; results are positional."""
        return list(await asyncio.gather(*(self.locate(root, path) for path in declared)))
