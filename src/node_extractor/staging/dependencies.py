"""Runtime dependency installation for staged node packs.

Manifest dependency entries are translated to pip requirements and
installed with ``pip install --target`` into a directory that is put on
``sys.path`` while the pack's modules are imported.
"""

from __future__ import annotations

import asyncio
import logging
import re
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path

from node_extractor.errors import DependencyInstallFailed

logger = logging.getLogger(__name__)

_UNPINNED = {"", "*", "x", "latest"}
_PEP440_OPERATORS = ("===", "==", "!=", "~=", ">=", "<=", ">", "<")
_VERSION_RE = re.compile(r"^v?(\d+(?:\.\d+)*)$")
_CARET_RE = re.compile(r"^\^(\d+)((?:\.\d+)*)$")
_TILDE_RE = re.compile(r"^~(\d+(?:\.\d+)+)$")

# Output kept on failures
MAX_OUTPUT_CHARS = 4_000


def to_requirement(name: str, spec: str) -> str:
    """Convert a manifest dependency entry to a pip requirement string.

    Args:
        name: Dependency name
        spec: Version specifier as written in the manifest

    Returns:
        Requirement string such as ``requests>=2.31.0,<3``
    """
    spec = (spec or "").strip()
    if spec in _UNPINNED:
        return name
    if spec.startswith(_PEP440_OPERATORS):
        return f"{name}{spec.replace(' ', '')}"

    match = _VERSION_RE.match(spec)
    if match:
        return f"{name}=={match.group(1)}"

    match = _CARET_RE.match(spec)
    if match:
        major = int(match.group(1))
        return f"{name}>={major}{match.group(2)},<{major + 1}"

    match = _TILDE_RE.match(spec)
    if match:
        return f"{name}~={match.group(1)}"

    logger.debug("Unsupported version spec %r for %s, installing unpinned", spec, name)
    return name


def build_requirements(dependencies: dict[str, str]) -> list[str]:
    """Sorted requirement list for a dependency mapping."""
    return sorted({to_requirement(name, spec) for name, spec in dependencies.items()})


@dataclass
class InstallResult:
    """Captured outcome of one installer run."""

    command: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    requirements: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class DependencyInstaller:
    """Runs pip as a blocking subprocess, off the event loop."""

    def __init__(
        self,
        python: str | None = None,
        extra_args: list[str] | None = None,
        timeout: float | None = None,
    ) -> None:
        self.python = python or sys.executable
        self.extra_args = list(extra_args or [])
        self.timeout = timeout

    def command(self, requirements: list[str], target: Path) -> list[str]:
        """Build the pip command line."""
        return [
            self.python,
            "-m",
            "pip",
            "install",
            "--no-input",
            "--upgrade",
            "--target",
            str(target),
            *self.extra_args,
            *requirements,
        ]

    def run(self, requirements: list[str], target: Path) -> InstallResult:
        """Install synchronously and capture the outcome.

        Raises:
            DependencyInstallFailed: On a non-zero exit status or when pip
                cannot be started
        """
        target.mkdir(parents=True, exist_ok=True)
        if not requirements:
            logger.info("No runtime dependencies to install")
            return InstallResult(command=[], returncode=0)

        cmd = self.command(requirements, target)
        logger.info("Installing %d requirement(s) into %s", len(requirements), target)
        logger.debug("Installer command: %s", " ".join(cmd))

        try:
            completed = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise DependencyInstallFailed(f"Could not run dependency installer: {e}") from e

        result = InstallResult(
            command=cmd,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
            requirements=list(requirements),
        )
        if not result.ok:
            logger.error("Installer stderr:\n%s", result.stderr[-MAX_OUTPUT_CHARS:])
            raise DependencyInstallFailed(
                f"Dependency installation failed with exit code {result.returncode}",
                result=result,
            )
        return result

    async def install(self, requirements: list[str], target: Path) -> InstallResult:
        """Run :meth:`run` in a worker thread."""
        return await asyncio.to_thread(self.run, requirements, target)
