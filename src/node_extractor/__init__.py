"""node-extractor - Node description extraction for workflow node packs.

node-extractor fetches third-party node packs from an npm-compatible
registry, imports their declared plugin modules, instantiates each node,
and writes the normalized node descriptions to a JSON artifact.

Key modules:

- :mod:`node_extractor.registry` - Specifier parsing and registry client
- :mod:`node_extractor.staging` - Archive unpacking, manifests, dependency installation
- :mod:`node_extractor.plugins` - Module location, loading and description normalization
- :mod:`node_extractor.extractors` - Single- and multi-package orchestration
- :mod:`node_extractor.output` - JSON result writer, console summary, webhook delivery
"""

__version__ = "0.1.0"
