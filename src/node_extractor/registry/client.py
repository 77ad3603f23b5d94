"""Async client for npm-compatible package registries."""

from __future__ import annotations

import logging
from pathlib import Path
from urllib.parse import quote

import httpx

from node_extractor.errors import DownloadFailed, PackageNotFound, RegistryError
from node_extractor.models import PackageInfo
from node_extractor.registry.specifier import PackageSpecifier

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_URL = "https://registry.npmjs.org"


class RegistryClient:
    """
    Resolves package specifiers against a registry and downloads archives.

    Speaks the npm registry protocol: ``GET /<package>/<version|latest>``
    returns a JSON document with ``name``, ``version`` and ``dist.tarball``.
    """

    def __init__(self, base_url: str = DEFAULT_REGISTRY_URL, timeout: float = 60.0):
        """
        Initialize registry client.

        Args:
            base_url: Registry root URL
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    def package_url(self, spec: PackageSpecifier) -> str:
        """Build the version document URL for a specifier."""
        # Scoped names keep the '@' but encode the '/' separator
        name = quote(spec.full_name, safe="@")
        return f"{self.base_url}/{name}/{quote(spec.version or 'latest', safe='')}"

    async def resolve(self, spec: PackageSpecifier) -> PackageInfo:
        """
        Resolve a specifier to a concrete package version.

        Args:
            spec: Parsed package specifier

        Returns:
            PackageInfo with a downloadable archive URL

        Raises:
            PackageNotFound: Registry answered 404
            RegistryError: Any other failure or a malformed document
        """
        url = self.package_url(spec)
        logger.debug("Resolving %s via %s", spec, url)

        try:
            response = await self._client.get(url, headers={"Accept": "application/json"})
        except httpx.HTTPError as e:
            raise RegistryError(f"Registry request for {spec} failed: {e}") from e

        if response.status_code == 404:
            raise PackageNotFound(
                f"Package not found: {spec} ({response.status_code})",
                status_code=response.status_code,
            )
        if not response.is_success:
            raise RegistryError(
                f"Registry returned {response.status_code} for {spec}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
            tarball = data["dist"]["tarball"]
        except (ValueError, KeyError, TypeError) as e:
            raise RegistryError(f"Malformed registry document for {spec}: {e}") from e

        if not tarball:
            raise RegistryError(f"Registry document for {spec} has no archive URL")

        info = PackageInfo(
            name=data.get("name", spec.full_name),
            resolved_version=str(data.get("version", spec.version or "")),
            archive_url=tarball,
        )
        logger.info("Resolved %s to version %s", info.name, info.resolved_version)
        return info

    async def download(self, url: str, destination: Path) -> Path:
        """
        Stream an archive to disk.

        Args:
            url: Archive URL
            destination: File to write

        Returns:
            The destination path

        Raises:
            DownloadFailed: On transport errors or non-success responses
        """
        logger.debug("Downloading %s to %s", url, destination)
        try:
            async with self._client.stream("GET", url) as response:
                if not response.is_success:
                    raise DownloadFailed(f"Download of {url} returned {response.status_code}")
                with open(destination, "wb") as f:
                    async for chunk in response.aiter_bytes():
                        f.write(chunk)
        except httpx.HTTPError as e:
            raise DownloadFailed(f"Download of {url} failed: {e}") from e
        except OSError as e:
            raise DownloadFailed(f"Could not write {destination}: {e}") from e

        return destination

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
