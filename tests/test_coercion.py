"""Tests for scalar coercion."""

import pytest

from restql.core.coercion import (
    SCALAR_COERCERS,
    BooleanCoercer,
    IntCoercer,
    ScalarCoercer,
    StringCoercer,
    coerce_value,
)
from restql.core.errors import ValidationError
from restql.core.ir import SchemaField


class TestStringCoercer:
    """Tests for StringCoercer."""

    @pytest.mark.parametrize("value,expected", [
        (1, "1"),
        (2.0, "2"),
        (2.5, "2.5"),
        (True, "true"),
        (False, "false"),
        ("abc", "abc"),
    ])
    def test_coerce(self, value, expected):
        assert StringCoercer().coerce(value) == expected

    @pytest.mark.parametrize("value", [{"a": 1}, [], ["x"]])
    def test_rejects(self, value):
        with pytest.raises(ValidationError, match="Invalid string value"):
            StringCoercer().coerce(value)


class TestIntCoercer:
    """Tests for IntCoercer."""

    @pytest.mark.parametrize("value,expected", [
        (5, 5),
        (5.0, 5),
        ("42", 42),
        (" 7 ", 7),
        ("", 0),
        (True, 1),
    ])
    def test_coerce(self, value, expected):
        assert IntCoercer().coerce(value) == expected

    @pytest.mark.parametrize("value", ["abc", 1.5, "2.5", float("inf"), [1]])
    def test_rejects(self, value):
        with pytest.raises(ValidationError, match="Invalid integer value"):
            IntCoercer().coerce(value)


class TestBooleanCoercer:
    """Tests for BooleanCoercer."""

    @pytest.mark.parametrize("value,expected", [
        (1, True),
        (0, False),
        ("", False),
        ("no", True),
        ([], False),
    ])
    def test_truthiness(self, value, expected):
        assert BooleanCoercer().coerce(value) is expected


class TestCoerceValue:
    """Tests for coerce_value."""

    def test_null_for_nullable_field(self):
        assert coerce_value(None, SchemaField(type="Int")) is None

    def test_null_for_non_nullable_field(self):
        with pytest.raises(ValidationError, match="Non-nullable field"):
            coerce_value(None, SchemaField(type="Int!", is_nullable=False))

    def test_non_null_scalar(self):
        assert coerce_value(3, SchemaField(type="String!", is_nullable=False)) == "3"

    def test_list_elements(self):
        assert coerce_value(["1", 2, None], SchemaField(type="[Int]")) == [1, 2, None]

    def test_nested_lists(self):
        assert coerce_value([[1], [2, 3]], SchemaField(type="[[String]]")) == [["1"], ["2", "3"]]

    def test_non_scalar_passes_through(self):
        payload = {"city": "Paris"}
        assert coerce_value(payload, SchemaField(type="Address")) is payload

    def test_coercers_follow_protocol(self):
        assert set(SCALAR_COERCERS) == {"Boolean", "String", "Int"}
        for coercer in SCALAR_COERCERS.values():
            assert isinstance(coercer, ScalarCoercer)

    @pytest.mark.parametrize("value", [{"a": 1}, [1, 2]])
    def test_string_rejects_objects_and_arrays(self, value):
        with pytest.raises(ValidationError, match="Invalid string value"):
            coerce_value(value, SchemaField(type="String"))
