"""List query composition and result ordering."""

from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel

from .constants import SCOPES
from .errors import InvalidFilterCombination, InvalidScopeError
from .models import Blob, Tag


LABEL_SEPARATOR = "/"


class ListQuery(BaseModel):
    """A validated set of blob list filters.

    ``scopes`` is the union of all scopes unless a single scope was requested.
    """

    model_config = {"frozen": True}

    tag: Optional[str] = None
    scopes: Tuple[str, ...] = SCOPES
    label: Optional[str] = None
    wildcard: bool = False
    admin: bool = False

    @property
    def scope(self) -> Optional[str]:
        """The single restricted scope, or None when spanning all scopes."""
        return self.scopes[0] if len(self.scopes) == 1 else None

    def to_params(self) -> Dict[str, str]:
        """Request parameters, containing only the filters that were set."""
        params: Dict[str, str] = {}
        if self.tag is not None:
            params["tag"] = self.tag
        if self.scope is not None:
            params["scope"] = self.scope
        if self.label is not None:
            params["label"] = self.label
        if self.wildcard:
            params["wild"] = "true"
        if self.admin:
            params["admin"] = "true"
        return params

    def matches_label(self, label: Optional[str]) -> bool:
        """Check a blob label against the label filter.

        With ``wildcard`` the filter matches the label itself and any label
        nested below it (``ci`` matches ``ci/nightly`` but not ``cinema``).
        """
        if self.label is None:
            return True
        if label is None:
            return False
        if label == self.label:
            return True
        return self.wildcard and label.startswith(self.label + LABEL_SEPARATOR)

    def matches(self, blob: Blob) -> bool:
        return self.matches_label(blob.label)


def build_list_query(
    tag: Optional[str] = None,
    scope: Optional[str] = None,
    label: Optional[str] = None,
    wildcard: bool = False,
    admin: bool = False,
) -> ListQuery:
    """Validate filter arguments and build a ListQuery.

    Args:
        tag: Restrict to one tag (None spans all visible tags)
        scope: Restrict to one scope (None spans user, group and public)
        label: Label filter (None disables label filtering)
        wildcard: Also match labels nested under ``label``
        admin: Request elevated listing; permission is checked by the server

    Raises:
        InvalidFilterCombination: If wildcard is requested without a label
        InvalidScopeError: If scope is not a recognised scope
    """
    if wildcard and label is None:
        raise InvalidFilterCombination("--wild requires a --label to match against")
    if scope is None:
        scopes = SCOPES
    elif scope in SCOPES:
        scopes = (scope,)
    else:
        raise InvalidScopeError(scope)
    return ListQuery(tag=tag, scopes=scopes, label=label, wildcard=wildcard, admin=admin)


def _blob_sort_key(blob: Blob) -> Tuple[int, int, str]:
    # Numeric ids first in numeric order, anything else after in lexical order
    if blob.id.isdigit():
        return (0, int(blob.id), "")
    return (1, 0, blob.id)


def sort_blobs(blobs: Iterable[Blob]) -> List[Blob]:
    """Order blobs by ascending numeric id, independent of server order."""
    return sorted(blobs, key=_blob_sort_key)


def sort_tags(tags: Iterable[Tag]) -> List[Tag]:
    """Order tags by ascending name, independent of server order."""
    return sorted(tags, key=lambda tag: tag.name)
