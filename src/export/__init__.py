"""Full-set export package."""

from src.export.exporter import (
    ExportFailedError,
    ExportIncompleteError,
    ExportResult,
    FullSetExporter,
    TransactionPageSequence,
)

__all__ = [
    "ExportFailedError",
    "ExportIncompleteError",
    "ExportResult",
    "FullSetExporter",
    "TransactionPageSequence",
]
