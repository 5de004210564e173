"""Service layer types for flight-cache."""

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel


class CollisionPolicy(str, Enum):
    """How a download resolves an already existing destination path."""
    OVERWRITE = "overwrite"  # Refuse unless forced, then replace
    RENAME = "rename"        # Write to <path>.<n+1> instead


class DownloadResult(BaseModel):
    """Result of a download operation."""
    path: Optional[Path] = None  # None when written to standard output
    size: int
    to_stdout: bool = False
    overwritten: bool = False
