"""Resolution of `$name` argument references against supplied variables."""

from collections.abc import Mapping
from typing import Any

from .errors import MissingVariableError


def is_variable_reference(value: Any) -> bool:
    return isinstance(value, str) and value.startswith("$")


def resolve_arguments(
    args: Mapping[str, Any],
    variables: Mapping[str, Any],
    strict: bool = False,
) -> dict[str, Any]:
    """Substitute `$name` references in `args`.

    With `strict`, a reference to an unsupplied variable raises
    MissingVariableError; otherwise the argument is dropped.
    """
    resolved: dict[str, Any] = {}
    for name, value in args.items():
        if not is_variable_reference(value):
            resolved[name] = value
            continue
        var_name = value[1:]
        if var_name in variables:
            resolved[name] = variables[var_name]
        elif strict:
            raise MissingVariableError(
                f"Argument {name} references variable ${var_name} which was not provided",
                variable=var_name,
            )
    return resolved

