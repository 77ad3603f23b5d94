"""Node pack staging.

Downloads a pack archive, unpacks it into a working directory, reads its
manifest and installs its runtime dependencies so the pack's node modules
can be imported standalone.
"""

from node_extractor.staging.archive import PackageStager, unpack_archive
from node_extractor.staging.dependencies import (
    DependencyInstaller,
    InstallResult,
    build_requirements,
    to_requirement,
)
from node_extractor.staging.manifest import PackageManifest, read_manifest

__all__ = [
    "DependencyInstaller",
    "InstallResult",
    "PackageManifest",
    "PackageStager",
    "build_requirements",
    "read_manifest",
    "to_requirement",
    "unpack_archive",
]
