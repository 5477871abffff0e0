"""badblocks output pipeline: line_reader → badblocks_patterns → output_classifier → ScanState."""

from checkdisk.parsing.models import ErrorCounts, LineKind, ScanState  # noqa: F401

__all__ = ["ErrorCounts", "LineKind", "ScanState"]
