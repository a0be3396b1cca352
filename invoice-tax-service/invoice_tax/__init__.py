"""
Top-level package for the Invoice Tax Export Service.

This package exposes:
- Tax extraction and jurisdiction-aware classification
- Diagnostic events emitted while classifying
- Summary aggregation and CSV report rendering
- CLI entrypoints
- HTTP API (FastAPI)
"""

__all__ = [
    "schema",
    "extractor",
    "classifier",
    "aggregator",
    "events",
    "payload",
    "report",
]

__version__ = "1.0.0"
