"""Tests for path access, variable resolution and config."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from restql.core.config import RestQLOptions
from restql.core.errors import MissingVariableError
from restql.core.paths import get_path, split_path
from restql.core.variables import is_variable_reference, resolve_arguments

PAYLOAD = {
    "data": {
        "user": {"id": 1, "tags": ["a", "b"]},
        "items": [{"id": 10}, {"id": 20}],
        "a.b": "dotted",
    },
}


# =============================================================================
# Paths
# =============================================================================


class TestSplitPath:
    """Tests for split_path."""

    def test_dotted(self):
        assert split_path("data.user.id") == ["data", "user", "id"]

    def test_brackets(self):
        assert split_path("data.items[1].id") == ["data", "items", 1, "id"]

    def test_quoted_key(self):
        assert split_path('data["a.b"]') == ["data", "a.b"]


class TestGetPath:
    """Tests for get_path."""

    def test_empty_path_returns_data(self):
        assert get_path(PAYLOAD, "") is PAYLOAD
        assert get_path(PAYLOAD, None) is PAYLOAD

    def test_nested_key(self):
        assert get_path(PAYLOAD, "data.user.id") == 1

    def test_list_index(self):
        assert get_path(PAYLOAD, "data.items[1].id") == 20
        assert get_path(PAYLOAD, "data.user.tags.0") == "a"

    def test_quoted_key(self):
        assert get_path(PAYLOAD, "data['a.b']") == "dotted"

    @pytest.mark.parametrize("path", [
        "data.missing",
        "data.missing.deeper",
        "data.items[5]",
        "data.items[-1]",
        "data.user.id.x",
        "data.items.first",
    ])
    def test_missing_yields_none(self, path):
        assert get_path(PAYLOAD, path) is None


# =============================================================================
# Variables
# =============================================================================


class TestResolveArguments:
    """Tests for resolve_arguments."""

    def test_literals_and_references(self):
        args = {"id": "$id", "role": "admin"}
        assert resolve_arguments(args, {"id": 7}) == {"id": 7, "role": "admin"}

    def test_unsupplied_reference_dropped(self):
        assert resolve_arguments({"id": "$id", "page": "2"}, {}) == {"page": "2"}

    def test_strict_raises(self):
        with pytest.raises(MissingVariableError) as exc_info:
            resolve_arguments({"id": "$id"}, {}, strict=True)
        assert exc_info.value.variable == "id"

    def test_is_variable_reference(self):
        assert is_variable_reference("$x")
        assert not is_variable_reference("x")
        assert not is_variable_reference(5)

    def test_none_is_a_supplied_value(self):
        assert resolve_arguments({"nickname": "$nick"}, {"nick": None}, strict=True) == {"nickname": None}


# =============================================================================
# Options
# =============================================================================


class TestRestQLOptions:
    """Tests for RestQLOptions."""

    def test_defaults(self):
        options = RestQLOptions()
        assert options.cache_timeout == 300
        assert options.headers == {}
        assert options.max_retries == 3
        assert options.retry_delay == 1
        assert options.max_batch_size is None

    def test_from_mapping(self):
        options = RestQLOptions.model_validate({"cache_timeout": 5, "headers": {"X-Key": "k"}})
        assert options.cache_timeout == 5
        assert options.headers == {"X-Key": "k"}

    def test_rejects_unknown_option(self):
        with pytest.raises(PydanticValidationError):
            RestQLOptions(cache_ttl=5)

    def test_rejects_negative_retries(self):
        with pytest.raises(PydanticValidationError):
            RestQLOptions(max_retries=-1)

    def test_rejects_zero_batch_size(self):
        with pytest.raises(PydanticValidationError):
            RestQLOptions(max_batch_size=0)
