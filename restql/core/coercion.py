"""Scalar coercion for shaped values.

Only Boolean, String and Int are built in. Resource and value types pass
through untouched. Objects and arrays never coerce to a String.

Example:
    coerce_value("42", SchemaField(type="Int"))   # -> 42
    coerce_value(None, SchemaField(type="Int!", is_nullable=False))  # raises
"""

import math
from typing import Any, Protocol, runtime_checkable

from .errors import ValidationError
from .ir import SchemaField, base_type_name


@runtime_checkable
class ScalarCoercer(Protocol):
    """Protocol for converting a raw JSON value to a scalar type."""

    def coerce(self, value: Any) -> Any:
        ...


class BooleanCoercer:
    """Truthiness, as JSON consumers expect."""

    def coerce(self, value: Any) -> bool:
        return bool(value)


class StringCoercer:
    """Renders JSON values the way they appear on the wire."""

    def coerce(self, value: Any) -> str:
        if isinstance(value, (dict, list)):
            raise ValidationError(f"Invalid string value: {value!r}")
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value)


class IntCoercer:
    """Accepts ints, integral floats and numeric strings."""

    def coerce(self, value: Any) -> int:
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, int):
            return value
        number = value
        if isinstance(value, str):
            try:
                number = float(value.strip() or "0")
            except ValueError:
                raise ValidationError(f"Invalid integer value: {value}") from None
        if isinstance(number, float) and math.isfinite(number) and number.is_integer():
            return int(number)
        raise ValidationError(f"Invalid integer value: {value}")


SCALAR_COERCERS: dict[str, ScalarCoercer] = {
    "Boolean": BooleanCoercer(),
    "String": StringCoercer(),
    "Int": IntCoercer(),
}


def coerce_value(value: Any, schema_field: SchemaField) -> Any:
    """Coerce a raw value against a field's declared type and nullability."""
    if value is None:
        if not schema_field.is_nullable:
            raise ValidationError("Non-nullable field received null or undefined value")
        return None

    coercer = SCALAR_COERCERS.get(base_type_name(schema_field.type))
    if coercer is None:
        return value
    if schema_field.is_list and isinstance(value, list):
        return _coerce_list(value, coercer)
    return coercer.coerce(value)


def _coerce_list(values: list, coercer: ScalarCoercer) -> list:
    return [
        _coerce_list(item, coercer) if isinstance(item, list)
        else None if item is None
        else coercer.coerce(item)
        for item in values
    ]
