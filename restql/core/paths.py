"""Dotted/bracketed path access into decoded JSON.

    get_path({"data": {"items": [{"id": 1}]}}, "data.items[0].id")  # -> 1

Missing keys, out-of-range indexes and non-container intermediates all
yield None instead of raising.
"""

import re
from typing import Any

_SEGMENT = re.compile(r"[^.\[\]]+|\[(-?\d+|\"[^\"]*\"|'[^']*')\]")


def split_path(path: str) -> list[str | int]:
    segments: list[str | int] = []
    for match in _SEGMENT.finditer(path):
        bracket = match.group(1)
        if bracket is None:
            segments.append(match.group(0))
        elif bracket[0] in "\"'":
            segments.append(bracket[1:-1])
        else:
            segments.append(int(bracket))
    return segments


def get_path(data: Any, path: str | None) -> Any:
    """Return the value at `path`, or `data` itself for an empty path."""
    if not path:
        return data
    current = data
    for segment in split_path(path):
        if current is None:
            return None
        if isinstance(current, dict):
            current = current.get(segment if isinstance(segment, str) else str(segment))
        elif isinstance(current, list):
            index = _as_index(segment)
            if index is None or not 0 <= index < len(current):
                return None
            current = current[index]
        else:
            return None
    return current


def _as_index(segment: str | int) -> int | None:
    if isinstance(segment, int):
        return segment
    if segment.lstrip("-").isdigit():
        return int(segment)
    return None
