"""Exception hierarchy for the extraction pipeline."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from node_extractor.staging.dependencies import InstallResult


class ExtractionError(Exception):
    """Base class for extraction failures."""


class InvalidSpecifier(ExtractionError, ValueError):
    """A package specifier string could not be parsed."""


class RegistryError(ExtractionError):
    """The registry returned an unexpected response."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PackageNotFound(RegistryError):
    """The registry has no record of the requested package or version."""


class DownloadFailed(ExtractionError):
    """The package archive could not be downloaded."""


class ExtractFailed(ExtractionError):
    """The package archive is corrupt or in an unsupported format."""


class DependencyInstallFailed(ExtractionError):
    """The dependency installer exited with a non-zero status."""

    def __init__(self, message: str, result: InstallResult | None = None) -> None:
        super().__init__(message)
        self.result = result


class ModuleLoadError(ExtractionError):
    """A plugin module could not be imported."""


class ModuleLoadTimeout(ModuleLoadError):
    """Importing a plugin module took longer than the configured timeout."""


class DeliveryFailed(ExtractionError):
    """The result file could not be delivered to the webhook."""
