"""Package specifier parsing.

A specifier names one node pack as the user typed it:

- ``n8n-nodes-badges``
- ``n8n-nodes-badges@1.2.0``
- ``@acme/n8n-nodes-crm``
- ``@acme/n8n-nodes-crm@2.0.1``
"""

from __future__ import annotations

from dataclasses import dataclass

from node_extractor.errors import InvalidSpecifier

DEFAULT_STRIP_PREFIX = "n8n-nodes-"


@dataclass(frozen=True)
class PackageSpecifier:
    """Parsed package specifier. Omitted parts are ``None``."""

    name: str
    scope: str | None = None
    version: str | None = None

    @classmethod
    def parse(cls, raw: str) -> PackageSpecifier:
        """Parse ``[@scope/]name[@version]``.

        Raises:
            InvalidSpecifier: If the string is empty or malformed
        """
        text = raw.strip()
        if not text:
            raise InvalidSpecifier("Empty package specifier")

        scope = None
        rest = text
        if text.startswith("@"):
            scope, sep, rest = text[1:].partition("/")
            if not sep or not scope:
                raise InvalidSpecifier(f"Scoped specifier without a package name: {raw!r}")

        name, _, version = rest.partition("@")
        if not name or "/" in name:
            raise InvalidSpecifier(f"Invalid package name in specifier: {raw!r}")

        return cls(name=name, scope=scope, version=version or None)

    @property
    def full_name(self) -> str:
        """Registry package id, ``@scope/name`` or ``name``."""
        if self.scope:
            return f"@{self.scope}/{self.name}"
        return self.name

    @property
    def icon_id(self) -> str:
        """Package id without its scope, used in icon URLs."""
        return self.name

    def clean_id(self, strip_prefix: str = DEFAULT_STRIP_PREFIX) -> str:
        """Package id without scope and conventional name prefix."""
        if strip_prefix and self.name.startswith(strip_prefix):
            return self.name[len(strip_prefix):]
        return self.name

    @property
    def file_stem(self) -> str:
        """Package id with ``@`` and ``/`` removed, for output file names."""
        return self.full_name.replace("@", "").replace("/", "")

    @property
    def requirement(self) -> tuple[str, str]:
        """``(full_name, version)`` pair, ``latest`` when unpinned."""
        return self.full_name, self.version or "latest"

    def __str__(self) -> str:
        if self.version:
            return f"{self.full_name}@{self.version}"
        return self.full_name


def split_specifiers(raw: str) -> list[str]:
    """Split a comma-separated specifier list, dropping blanks."""
    return [part.strip() for part in raw.split(",") if part.strip()]
