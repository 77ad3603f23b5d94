"""Extraction orchestration.

- :class:`NodeExtractor` - one pack, dependencies installed into the pack
- :class:`MultiPackageExtractor` - many packs sharing one installation
"""

from node_extractor.extractors.base import BaseExtractor
from node_extractor.extractors.multi import MultiPackageExtractor
from node_extractor.extractors.single import NodeExtractor

__all__ = [
    "BaseExtractor",
    "MultiPackageExtractor",
    "NodeExtractor",
]
