"""JSON result artifacts."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Union

from node_extractor.models import ExtractionResult, MultiExtractionResult, NodeDescription
from node_extractor.registry.specifier import PackageSpecifier

logger = logging.getLogger(__name__)

MULTI_FILENAME = "multiple-packages.json"


def output_filename(spec: PackageSpecifier) -> str:
    """File name of a single-package result, e.g. ``acmen8n-nodes-crm.json``."""
    return f"{spec.file_stem}.json"


class ResultWriter:
    """Writes extraction results into an output directory."""

    def __init__(self, output_dir: Union[str, Path] = ".", multi_filename: str = MULTI_FILENAME):
        self.output_dir = Path(output_dir).expanduser()
        self.multi_filename = multi_filename

    def write(self, result: ExtractionResult | MultiExtractionResult, filename: str) -> Path:
        """Serialize a result to ``<output_dir>/<filename>``."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / filename
        with open(path, "w", encoding="utf-8") as f:
            json.dump(result.to_json_dict(), f, indent=2, ensure_ascii=False)
            f.write("\n")
        logger.info("Saved descriptions to %s", path)
        return path

    def write_single(self, spec: PackageSpecifier, nodes: list[NodeDescription]) -> Path:
        return self.write(ExtractionResult.from_nodes(nodes), output_filename(spec))

    def write_multi(self, packages: dict[str, list[NodeDescription]]) -> Path:
        return self.write(MultiExtractionResult.from_packages(packages), self.multi_filename)
