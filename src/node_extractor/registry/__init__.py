"""Package registry access.

Parses user-supplied package specifiers and resolves them against an
npm-compatible registry.
"""

from node_extractor.registry.client import RegistryClient
from node_extractor.registry.specifier import PackageSpecifier, split_specifiers

__all__ = [
    "PackageSpecifier",
    "RegistryClient",
    "split_specifiers",
]
