"""Resource models for flight-cache.

Server responses use the JSON:API resource shape::

    {"id": "12", "type": "blobs", "attributes": {...}, "relationships": {...}}

Each model is a frozen projection of one such resource, rebuilt from every
response. Nothing here performs I/O.
"""

from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ValidationError

from .errors import MalformedResponseError


Scope = Literal["user", "group", "public"]


def _attributes(payload: Dict[str, Any]) -> Dict[str, Any]:
    return payload.get("attributes") or {}


def _relationship_data(payload: Dict[str, Any], name: str) -> Any:
    """Return ``relationships.<name>.data`` or None if any level is absent."""
    relationship = (payload.get("relationships") or {}).get(name) or {}
    return relationship.get("data")


def _require_id(payload: Dict[str, Any], kind: str) -> str:
    if not isinstance(payload, dict):
        raise MalformedResponseError(f"Expected a {kind} resource, got {type(payload).__name__}")
    resource_id = payload.get("id")
    if resource_id is None or resource_id == "":
        raise MalformedResponseError(f"{kind} payload is missing its 'id'")
    return str(resource_id)


class Tag(BaseModel):
    """A named namespace that owns a size quota."""

    model_config = {"frozen": True}

    name: str
    max_size: int = 0
    restricted: bool = False

    @classmethod
    def build(cls, payload: Dict[str, Any]) -> "Tag":
        """Build a Tag from a server resource.

        Raises:
            MalformedResponseError: If the payload has no name
        """
        if not isinstance(payload, dict):
            raise MalformedResponseError(f"Expected a tag resource, got {type(payload).__name__}")
        attrs = _attributes(payload)
        name = attrs.get("name", payload.get("name"))
        if name is None:
            raise MalformedResponseError("Tag payload is missing its 'name'")
        try:
            return cls(
                name=name,
                max_size=attrs.get("max_size") or 0,
                restricted=bool(attrs.get("restricted", False)),
            )
        except ValidationError as e:
            raise MalformedResponseError(f"Invalid tag payload: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()


class Blob(BaseModel):
    """A single stored file and its metadata."""

    model_config = {"frozen": True}

    id: str
    filename: Optional[str] = None
    title: Optional[str] = None
    label: Optional[str] = None
    tag_name: Optional[str] = None
    scope: Scope = "user"
    protected: bool = False
    size: int = 0

    @classmethod
    def build(cls, payload: Dict[str, Any]) -> "Blob":
        """Build a Blob from a server resource.

        Only ``id`` is required; every other field falls back to its default.

        Raises:
            MalformedResponseError: If the id is missing or a field has the wrong type
        """
        blob_id = _require_id(payload, "Blob")
        attrs = _attributes(payload)

        tag_name = attrs.get("tag_name")
        if tag_name is None:
            tag_ref = _relationship_data(payload, "tag")
            if isinstance(tag_ref, dict):
                tag_name = tag_ref.get("id")

        fields: Dict[str, Any] = {"id": blob_id, "tag_name": tag_name}
        for key in ("filename", "title", "label", "scope", "protected", "size"):
            if attrs.get(key) is not None:
                fields[key] = attrs[key]

        try:
            return cls(**fields)
        except ValidationError as e:
            raise MalformedResponseError(f"Invalid blob payload for id {blob_id}: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()


class Container(BaseModel):
    """Server-side grouping of blobs under a tag.

    ``blobs`` is a snapshot in server order; the container does not own them.
    """

    model_config = {"frozen": True}

    id: str
    tag: Optional[str] = None
    blobs: Tuple[Blob, ...] = ()

    @classmethod
    def build(
        cls,
        payload: Dict[str, Any],
        included: Optional[List[Dict[str, Any]]] = None,
    ) -> "Container":
        """Build a Container, eagerly building its related blobs.

        Relationship entries are resolved against ``included`` resources when
        the server sent them; otherwise the entry itself is built.

        Raises:
            MalformedResponseError: If the container or any related blob has no id
        """
        container_id = _require_id(payload, "Container")
        attrs = _attributes(payload)

        lookup = {}
        for resource in included or []:
            if isinstance(resource, dict) and resource.get("id") is not None:
                lookup[(resource.get("type"), str(resource["id"]))] = resource

        blobs = []
        for entry in _relationship_data(payload, "blobs") or []:
            if isinstance(entry, dict) and entry.get("id") is not None:
                entry = lookup.get((entry.get("type"), str(entry["id"])), entry)
            blobs.append(Blob.build(entry))

        tag = attrs.get("tag")
        if isinstance(tag, dict):
            tag = Tag.build(tag).name
        try:
            return cls(id=container_id, tag=tag, blobs=tuple(blobs))
        except ValidationError as e:
            raise MalformedResponseError(f"Invalid container payload for id {container_id}: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "tag": self.tag,
            "blobs": [blob.to_dict() for blob in self.blobs],
        }
