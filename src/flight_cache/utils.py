"""Utility functions for flight-cache."""

from typing import Optional


def humanize_size(size: float) -> str:
    """Convert bytes to human-readable format."""
    for unit in ["B", "KB", "MB", "GB"]:
        if size < 1024.:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TB"


def display(value: Optional[str]) -> str:
    """Render an optional metadata field for tables."""
    return "-" if value is None else value
