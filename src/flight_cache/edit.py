"""Edit workflow: metadata update, then edit-and-reupload of content.

The two halves are not transactional. Metadata is committed first; if the
content half fails afterwards, ContentEditError reports the committed blob so
only the content step needs retrying.
"""

from pathlib import Path
from typing import Callable, Dict, Optional
import logging
import os
import shlex
import subprocess
import tempfile

from pydantic import BaseModel

from .client import CacheClient
from .errors import ContentEditError, EditorError, FlightCacheError
from .models import Blob

logger = logging.getLogger(__name__)

Editor = Callable[[Path], None]


class MetadataChanges(BaseModel):
    """Sparse set of blob metadata changes.

    A field counts as supplied when it was passed to the constructor, whatever
    its value, so ``MetadataChanges(label="")`` clears the label while
    ``MetadataChanges()`` leaves it untouched.
    """

    filename: Optional[str] = None
    label: Optional[str] = None
    title: Optional[str] = None

    def to_patch(self) -> Dict[str, Optional[str]]:
        """Only the supplied fields, ready to send as a sparse update."""
        return self.model_dump(exclude_unset=True)

    def __bool__(self) -> bool:
        return bool(self.model_fields_set)


def run_editor(path: Path) -> None:
    """Open ``path`` in the user's editor and wait for it to exit.

    Uses $VISUAL, then $EDITOR, then vi.

    Raises:
        EditorError: If the editor exits nonzero or cannot be started
    """
    command = os.environ.get("VISUAL") or os.environ.get("EDITOR") or "vi"
    argv = shlex.split(command) + [str(path)]
    logger.debug("Launching editor: %s", argv)
    try:
        result = subprocess.run(argv, check=False)
    except OSError as e:
        raise EditorError(command, 127) from e
    if result.returncode != 0:
        raise EditorError(command, result.returncode)


def _edit_content(client: CacheClient, blob: Blob, editor: Editor) -> Blob:
    filename = Path(blob.filename or "").name or f"blob-{blob.id}"
    with tempfile.TemporaryDirectory(prefix="flight-cache-edit-") as tmpdir:
        tmp_dir = Path(tmpdir)
        downloaded, _ = client.download_to_tempfile(blob.id, tmp_dir)
        path = tmp_dir / filename
        os.replace(downloaded, path)

        editor(path)

        with path.open("rb") as f:
            return client.replace_content(blob.id, f, filename)


def edit(
    client: CacheClient,
    blob_id: str,
    changes: Optional[MetadataChanges] = None,
    editor: Editor = run_editor,
) -> Blob:
    """Update a blob's metadata, then edit its content in an external editor.

    The content is downloaded into a temporary directory that is removed on
    every exit path, handed to ``editor``, and re-uploaded under the same id.

    Args:
        client: Cache client
        blob_id: Blob to edit
        changes: Metadata fields to update; unsupplied fields are not sent
        editor: Callable that mutates the file at the given path

    Returns:
        The blob after its content was re-uploaded

    Raises:
        ContentEditError: If anything after the metadata step fails; carries
            the blob as it stands on the server and whether metadata changed
        FlightCacheError: If the metadata step itself fails (nothing committed)
    """
    changes = changes or MetadataChanges()
    if changes:
        patch = changes.to_patch()
        logger.debug("Updating metadata of blob %s: %s", blob_id, sorted(patch))
        blob = client.update_blob(blob_id, **patch)
    else:
        blob = client.get_blob(blob_id)

    try:
        return _edit_content(client, blob, editor)
    except (FlightCacheError, OSError) as e:
        raise ContentEditError(blob, metadata_committed=bool(changes), cause=e) from e
