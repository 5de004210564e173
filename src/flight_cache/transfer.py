"""Upload and download of blob content."""

from pathlib import Path
from typing import BinaryIO, Optional
import logging
import os
import re
import sys

from .client import CacheClient
from .constants import DEFAULT_SCOPE, SCOPES, STDIO
from .errors import ExistingFileError, InvalidScopeError, LocalFileError, MissingFilenameError
from .models import Blob
from .service_types import CollisionPolicy, DownloadResult

logger = logging.getLogger(__name__)


# ============= Upload =============

def upload(
    client: CacheClient,
    name: Optional[str],
    source: BinaryIO,
    tag: Optional[str],
    scope: str = DEFAULT_SCOPE,
    admin: bool = False,
    label: Optional[str] = None,
    title: Optional[str] = None,
    container: Optional[str] = None,
) -> Blob:
    """Upload ``source`` as a new blob.

    The stream is read once and left open; closing it is the caller's job.

    Args:
        client: Cache client
        name: Filename to store the blob under
        source: Readable binary stream (file or standard input)
        tag: Tag to upload into
        scope: Ownership scope, defaults to "user"
        admin: Request an admin upload (checked by the server)
        label: Optional label
        title: Optional title
        container: Optional container id to upload into

    Returns:
        The created Blob with its server-assigned id

    Raises:
        MissingFilenameError: If name is empty or the stdin sentinel "-"
        InvalidScopeError: If scope is not a recognised scope
    """
    if not name or name == STDIO:
        raise MissingFilenameError()
    if scope not in SCOPES:
        raise InvalidScopeError(scope)

    logger.debug("Uploading %s to tag=%s scope=%s container=%s", name, tag, scope, container)
    return client.create_blob(
        name,
        source,
        tag=tag,
        scope=scope,
        admin=admin,
        label=label,
        title=title,
        container=container,
    )


# ============= Download =============

def next_available_path(path: Path) -> Path:
    """Return ``<path>.<n>`` where n is one past the highest existing suffix.

    Only siblings named exactly ``<name>.<integer>`` are considered; gaps are
    not reused, so report.txt.1 and report.txt.3 give report.txt.4.
    """
    pattern = re.compile(re.escape(path.name) + r"\.(\d+)")
    highest = 0
    if path.parent.is_dir():
        for sibling in path.parent.iterdir():
            match = pattern.fullmatch(sibling.name)
            if match:
                highest = max(highest, int(match.group(1)))
    return path.with_name(f"{path.name}.{highest + 1}")


def resolve_collision(path: Path, policy: CollisionPolicy, force: bool = False) -> Path:
    """Apply the collision policy to a destination path.

    Raises:
        ExistingFileError: Under the overwrite policy when the path exists and
            force was not given
    """
    if not path.exists():
        return path
    if policy == CollisionPolicy.RENAME:
        renamed = next_available_path(path)
        logger.debug("%s exists, downloading to %s", path, renamed)
        return renamed
    if not force:
        raise ExistingFileError(path)
    logger.warning("Overwriting existing file %s", path)
    return path


def _safe_filename(blob: Blob) -> str:
    # Server filenames are display names; never let them escape the target dir
    name = Path(blob.filename or "").name
    return name or f"blob-{blob.id}"


def resolve_destination(
    client: CacheClient,
    blob_id: str,
    destination: Optional[str],
    cwd: Optional[Path] = None,
) -> Path:
    """Turn the destination argument into a concrete file path.

    No destination means the blob's own filename in ``cwd``; an existing
    directory means the blob's filename inside it.
    """
    base = cwd or Path.cwd()
    if destination is None:
        return base / _safe_filename(client.get_blob(blob_id))

    path = Path(destination).expanduser()
    if not path.is_absolute():
        path = base / path
    if path.is_dir():
        return path / _safe_filename(client.get_blob(blob_id))
    return path


def download(
    client: CacheClient,
    blob_id: str,
    destination: Optional[str] = None,
    policy: CollisionPolicy = CollisionPolicy.RENAME,
    force: bool = False,
    stdout: Optional[BinaryIO] = None,
    cwd: Optional[Path] = None,
) -> DownloadResult:
    """Download a blob's content.

    Args:
        client: Cache client
        blob_id: Blob to download
        destination: File path, "-" for standard output, or None to use the
            blob's filename in the current directory
        policy: How to handle an existing destination file
        force: Allow overwriting under the overwrite policy
        stdout: Binary stream used for "-" (defaults to sys.stdout.buffer)
        cwd: Directory for relative destinations (defaults to the process cwd)

    Returns:
        DownloadResult with the final path and byte count

    Raises:
        ExistingFileError: If the overwrite policy refuses the destination
        LocalFileError: If the destination cannot be written
    """
    if destination == STDIO:
        out = stdout if stdout is not None else sys.stdout.buffer
        size = 0
        for chunk in client.iter_download(blob_id):
            out.write(chunk)
            size += len(chunk)
        out.flush()
        return DownloadResult(size=size, to_stdout=True)

    path = resolve_destination(client, blob_id, destination, cwd=cwd)
    existed = path.exists()
    target = resolve_collision(path, policy, force=force)

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        tmppath, size = client.download_to_tempfile(blob_id, target.parent)
    except OSError as e:
        raise LocalFileError(target, e) from e
    try:
        # Same directory, so this is a rename rather than a copy
        os.replace(tmppath, target)
    except OSError as e:
        tmppath.unlink(missing_ok=True)
        raise LocalFileError(target, e) from e

    logger.debug("Downloaded blob %s to %s (%d bytes)", blob_id, target, size)
    return DownloadResult(path=target, size=size, overwritten=existed and target == path)
