"""Custom exceptions for flight-cache.

Every error the client raises derives from FlightCacheError so the CLI can
report it with a single handler and a nonzero exit.
"""

from pathlib import Path
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Blob


class FlightCacheError(RuntimeError):
    """Base class for all flight-cache errors."""
    pass


# Configuration Errors
class ConfigError(FlightCacheError):
    """Configuration could not be read or is invalid."""
    pass


class MissingTokenError(ConfigError):
    """No auth token could be resolved for an authenticated request."""

    def __init__(self):
        super().__init__(
            "Can not determine your flight credentials as you are not logged in"
        )


# Usage Errors
class UsageError(FlightCacheError):
    """Client-side validation failure; never sent to the server."""
    pass


class InvalidFilterCombination(UsageError):
    """List filters that cannot be combined."""
    pass


class InvalidScopeError(UsageError):
    """Scope outside of user/group/public."""

    def __init__(self, scope: str):
        self.scope = scope
        super().__init__(
            f"Unrecognised scope '{scope}'. Expected one of: user, group, public"
        )


class MissingFilenameError(UsageError):
    """Upload source has no real filename (e.g. read from standard input)."""

    def __init__(self):
        super().__init__(
            "A FILENAME must be given when uploading from standard input"
        )


# Transport Errors
class NetworkError(FlightCacheError):
    """Network connectivity issue with the cache server."""
    pass


# Server Errors
class ServerError(FlightCacheError):
    """Request rejected by the server; carries the server's message verbatim."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        self.message = message
        super().__init__(message)


class AuthError(ServerError):
    """Authentication or authorization failed (401/403)."""
    pass


class NotFoundError(ServerError):
    """Resource not found on the server (404)."""
    pass


class MalformedResponseError(FlightCacheError):
    """Server payload is missing required fields (incompatible server version)."""
    pass


# Local Filesystem Errors
class ExistingFileError(FlightCacheError):
    """Download destination already exists."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(
            f"Refusing to overwrite existing file: {path}\n"
            f"Use --force to replace it."
        )


class LocalFileError(FlightCacheError):
    """Local file could not be written."""

    def __init__(self, path: Path, cause: OSError):
        self.path = path
        self.cause = cause
        super().__init__(f"Cannot write {path}: {cause.strerror or cause}")


# Edit Errors
class EditorError(FlightCacheError):
    """External editor exited unsuccessfully."""

    def __init__(self, command: str, returncode: int):
        self.command = command
        self.returncode = returncode
        super().__init__(f"Editor '{command}' exited with status {returncode}")


class ContentEditError(FlightCacheError):
    """Content step of an edit failed after the metadata step completed.

    ``blob`` reflects the server state after the metadata step, so callers can
    report which half was committed and retry only the content.
    """

    def __init__(self, blob: "Blob", metadata_committed: bool, cause: Exception):
        self.blob = blob
        self.metadata_committed = metadata_committed
        self.cause = cause
        if metadata_committed:
            prefix = f"Metadata for blob {blob.id} was updated, but the content edit failed"
        else:
            prefix = f"Content edit of blob {blob.id} failed"
        super().__init__(f"{prefix}: {cause}")
