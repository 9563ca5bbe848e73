"""Top-level package for the spreadsheet audit tool.

The audit engine lives in `pipeline`; `api`, `core` and `repo` wrap it in
an HTTP service with SQLite persistence.
"""
__all__ = ["api", "core", "pipeline", "repo"]
__version__ = "0.1.0"
