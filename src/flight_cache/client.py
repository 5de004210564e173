"""HTTP client for the Flight cache API."""

from contextlib import closing
from pathlib import Path
from typing import Any, BinaryIO, Dict, Iterator, List, Optional, Tuple
import logging
import os
import tempfile

import requests

from .config import CacheConfig
from .constants import API_PREFIX, CHUNK_SIZE, DEFAULT_HOST, DEFAULT_TIMEOUT
from .errors import (
    AuthError,
    MalformedResponseError,
    MissingTokenError,
    NetworkError,
    NotFoundError,
    ServerError,
)
from .models import Blob, Container, Tag
from .query import ListQuery, sort_blobs, sort_tags

logger = logging.getLogger(__name__)


def _server_message(response: requests.Response) -> str:
    """Extract the server's human readable error message from a response."""
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        errors = body.get("errors")
        if isinstance(errors, list):
            details = [
                str(err.get("detail") or err.get("title"))
                for err in errors
                if isinstance(err, dict) and (err.get("detail") or err.get("title"))
            ]
            if details:
                return "; ".join(details)
        for key in ("error", "message"):
            if body.get(key):
                return str(body[key])

    text = (response.text or "").strip()
    if text:
        return text
    return f"HTTP {response.status_code} {response.reason or ''}".strip()


def _error_for(response: requests.Response) -> ServerError:
    message = _server_message(response)
    status = response.status_code
    if status in (401, 403):
        return AuthError(message, status)
    if status == 404:
        return NotFoundError(message, status)
    return ServerError(message, status)


class CacheClient:
    """Synchronous client for one cache server.

    A client is constructed once per invocation and passed to every operation;
    nothing about it is global.
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the client.

        Args:
            host: Base URL of the cache server
            token: Auth token; only required when a request is made
            timeout: Per-request timeout in seconds
            session: Optional requests session (injected in tests)
        """
        self.host = host.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config: CacheConfig, session: Optional[requests.Session] = None) -> "CacheClient":
        return cls(host=config.host, token=config.token, timeout=config.timeout, session=session)

    # ============= Request plumbing =============

    def _url(self, path: str) -> str:
        return f"{self.host}{API_PREFIX}{path}"

    def _headers(self) -> Dict[str, str]:
        # Checked lazily so that no token is needed until a request is made
        if not self.token:
            raise MissingTokenError()
        return {"Authorization": f"Bearer {self.token}", "Accept": "application/json"}

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        """Send a request and map failures onto flight-cache errors.

        Raises:
            MissingTokenError: If no token is configured
            NetworkError: On connection failure or timeout
            ServerError: On any 4xx/5xx response
        """
        headers = self._headers()
        url = self._url(path)
        logger.debug("%s %s params=%s", method, url, kwargs.get("params"))
        try:
            response = self.session.request(
                method, url, headers=headers, timeout=self.timeout, **kwargs
            )
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"Cannot connect to cache server at {self.host}: {e}") from e

        logger.debug("%s %s -> %s", method, url, response.status_code)
        if response.status_code >= 400:
            error = _error_for(response)
            response.close()
            raise error
        return response

    def _data(self, response: requests.Response) -> Tuple[Any, Dict[str, Any]]:
        """Return the ``data`` member of a JSON:API body and the full body."""
        try:
            body = response.json()
        except ValueError as e:
            raise MalformedResponseError(f"Server returned invalid JSON: {e}") from e
        if not isinstance(body, dict) or "data" not in body:
            raise MalformedResponseError("Server response has no 'data' member")
        return body["data"], body

    def _data_list(self, response: requests.Response) -> List[Dict[str, Any]]:
        data, _ = self._data(response)
        if not isinstance(data, list):
            raise MalformedResponseError("Expected a list of resources in 'data'")
        return data

    # ============= Queries =============

    def get_blob(self, blob_id: str) -> Blob:
        data, _ = self._data(self._request("GET", f"/blobs/{blob_id}"))
        return Blob.build(data)

    def get_container(self, container_id: str) -> Container:
        response = self._request("GET", f"/containers/{container_id}", params={"include": "blobs"})
        data, body = self._data(response)
        return Container.build(data, included=body.get("included"))

    def list_blobs(self, query: ListQuery) -> List[Blob]:
        """List blobs matching ``query`` in ascending id order."""
        response = self._request("GET", "/blobs", params=query.to_params())
        blobs = [Blob.build(item) for item in self._data_list(response)]
        return sort_blobs(blob for blob in blobs if query.matches(blob))

    def list_tags(self) -> List[Tag]:
        """List all tags in ascending name order."""
        response = self._request("GET", "/tags")
        return sort_tags(Tag.build(item) for item in self._data_list(response))

    # ============= Mutations =============

    def create_blob(
        self,
        filename: str,
        source: BinaryIO,
        tag: Optional[str],
        scope: str,
        admin: bool = False,
        label: Optional[str] = None,
        title: Optional[str] = None,
        container: Optional[str] = None,
    ) -> Blob:
        """Create a blob from ``source`` under a tag or inside a container."""
        fields = {"filename": filename, "scope": scope}
        if tag is not None:
            fields["tag"] = tag
        if admin:
            fields["admin"] = "true"
        if label is not None:
            fields["label"] = label
        if title is not None:
            fields["title"] = title

        path = f"/containers/{container}/blobs" if container else "/blobs"
        response = self._request(
            "POST", path, data=fields, files={"payload": (filename, source)}
        )
        data, _ = self._data(response)
        return Blob.build(data)

    def update_blob(self, blob_id: str, **fields: Optional[str]) -> Blob:
        """Send a sparse metadata update; only the given fields are sent."""
        payload = {"data": {"id": blob_id, "type": "blobs", "attributes": fields}}
        data, _ = self._data(self._request("PATCH", f"/blobs/{blob_id}", json=payload))
        return Blob.build(data)

    def replace_content(self, blob_id: str, source: BinaryIO, filename: str) -> Blob:
        """Replace the content of an existing blob, keeping its id."""
        response = self._request(
            "PATCH", f"/blobs/{blob_id}", files={"payload": (filename, source)}
        )
        data, _ = self._data(response)
        return Blob.build(data)

    def delete_blob(self, blob_id: str) -> Optional[Blob]:
        """Delete a blob, returning its final state if the server sent one."""
        response = self._request("DELETE", f"/blobs/{blob_id}")
        if response.status_code == 204 or not response.content:
            return None
        data, _ = self._data(response)
        return Blob.build(data)

    # ============= Content transfer =============

    def iter_download(self, blob_id: str) -> Iterator[bytes]:
        """Stream the raw content of a blob."""
        response = self._request("GET", f"/blobs/{blob_id}/download", stream=True)
        with closing(response):
            try:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        yield chunk
            except requests.exceptions.RequestException as e:
                raise NetworkError(f"Download of blob {blob_id} interrupted: {e}") from e

    def download_to_tempfile(self, blob_id: str, directory: Path) -> Tuple[Path, int]:
        """Materialize blob content as a temporary file inside ``directory``.

        The caller owns the returned file and usually moves it into place.
        """
        fd, tmppath = tempfile.mkstemp(prefix=".flight-cache-", suffix=".partial", dir=directory)
        size = 0
        try:
            with os.fdopen(fd, "wb") as f:
                for chunk in self.iter_download(blob_id):
                    f.write(chunk)
                    size += len(chunk)
        except Exception:
            Path(tmppath).unlink(missing_ok=True)
            raise
        return Path(tmppath), size
