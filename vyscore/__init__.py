"""
Core package init for VyScore Aggregator.

Makes the `vyscore` modules importable without requiring an editable install.
"""

__all__ = [
    "aggregation",
    "errors",
    "ingest",
    "io_utils",
    "scoring",
    "session",
    "storage",
    "taxonomy",
    "types",
]
