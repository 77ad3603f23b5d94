"""Result output: JSON artifacts, console summaries and webhook delivery."""

from node_extractor.output.delivery import deliver
from node_extractor.output.summary import print_multi_summary, print_summary
from node_extractor.output.writer import ResultWriter, output_filename

__all__ = [
    "ResultWriter",
    "deliver",
    "output_filename",
    "print_multi_summary",
    "print_summary",
]
