"""Tests for list query building and ordering."""

import pytest

from flight_cache.errors import InvalidFilterCombination, InvalidScopeError, UsageError
from flight_cache.models import Blob, Tag
from flight_cache.query import build_list_query, sort_blobs, sort_tags


class TestBuildListQuery:
    """Test filter validation and request parameters."""

    def test_defaults_span_all_scopes(self):
        query = build_list_query()

        assert query.tag is None
        assert query.scopes == ("user", "group", "public")
        assert query.scope is None
        assert query.to_params() == {}

    def test_scope_restricts_to_exactly_one(self):
        query = build_list_query(scope="group")

        assert query.scopes == ("group",)
        assert query.to_params() == {"scope": "group"}

    def test_all_filters_in_params(self):
        query = build_list_query(tag="builds", scope="public", label="ci", wildcard=True, admin=True)

        assert query.to_params() == {
            "tag": "builds",
            "scope": "public",
            "label": "ci",
            "wild": "true",
            "admin": "true",
        }

    def test_unknown_scope(self):
        with pytest.raises(InvalidScopeError, match="world"):
            build_list_query(scope="world")

    @pytest.mark.parametrize("kwargs", [
        {},
        {"tag": "builds"},
        {"scope": "user"},
        {"admin": True},
        {"tag": "builds", "scope": "group", "admin": True},
    ])
    def test_wildcard_without_label_always_fails(self, kwargs):
        with pytest.raises(InvalidFilterCombination):
            build_list_query(wildcard=True, **kwargs)

    def test_invalid_combination_is_usage_error(self):
        with pytest.raises(UsageError):
            build_list_query(wildcard=True)

    def test_empty_label_is_a_real_filter(self):
        query = build_list_query(label="", wildcard=True)

        assert query.to_params()["label"] == ""


class TestLabelMatching:
    """Test exact and hierarchical label matching."""

    def test_wildcard_matches_label_and_children(self):
        query = build_list_query(label="ci", wildcard=True)

        assert query.matches_label("ci")
        assert query.matches_label("ci/nightly")
        assert query.matches_label("ci/nightly/linux")
        assert not query.matches_label("cinema")
        assert not query.matches_label("c")
        assert not query.matches_label(None)

    def test_exact_match_without_wildcard(self):
        query = build_list_query(label="ci")

        assert query.matches_label("ci")
        assert not query.matches_label("ci/nightly")

    def test_no_label_matches_everything(self):
        query = build_list_query()

        assert query.matches(Blob(id="1"))
        assert query.matches(Blob(id="2", label="anything"))


class TestOrdering:
    """Test deterministic client-side ordering."""

    def test_blobs_sorted_by_numeric_id(self):
        blobs = [Blob(id="10"), Blob(id="9"), Blob(id="100"), Blob(id="1")]

        assert [b.id for b in sort_blobs(blobs)] == ["1", "9", "10", "100"]

    def test_non_numeric_ids_after_numeric(self):
        blobs = [Blob(id="b"), Blob(id="2"), Blob(id="a")]

        assert [b.id for b in sort_blobs(blobs)] == ["2", "a", "b"]

    def test_sorting_is_idempotent(self):
        blobs = [Blob(id="3"), Blob(id="1"), Blob(id="2")]
        once = sort_blobs(blobs)

        assert sort_blobs(once) == once
        assert sort_blobs(reversed(blobs)) == once

    def test_tags_sorted_by_name(self):
        tags = [Tag(name="scratch"), Tag(name="builds"), Tag(name="logs")]

        assert [t.name for t in sort_tags(tags)] == ["builds", "logs", "scratch"]
