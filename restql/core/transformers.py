"""User-supplied transform functions referenced by `@transform` directives.

A field transform is called as `fn(raw, {field_name: value}, raw_responses)`
and the `field_name` key of its result becomes the field value. A type
transform is called as `fn(raw, shaped, raw_responses)` and its result
replaces the shaped object.

Example:
    registry = TransformerRegistry({"fullName": lambda raw, shaped, _: ...})
    registry.register("upper", Upper())
"""

import inspect
from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Transformer(Protocol):
    """Protocol for transform callables."""

    def __call__(self, raw: Any, shaped: Any, raw_responses: dict[str, Any]) -> Any:
        ...


class TransformerRegistry(Mapping):
    """Name -> transformer lookup shared by the validator and the engine."""

    def __init__(self, transformers: Mapping[str, Transformer] | None = None):
        self._transformers: dict[str, Transformer] = {}
        for name, fn in (transformers or {}).items():
            self.register(name, fn)

    def register(self, name: str, transformer: Transformer):
        if not callable(transformer):
            raise TypeError(f"Transformer {name!r} must be callable")
        self._transformers[name] = transformer

    def has(self, name: str) -> bool:
        return name in self._transformers

    def names(self) -> list[str]:
        return sorted(self._transformers)

    def __getitem__(self, name: str) -> Transformer:
        return self._transformers[name]

    def __iter__(self):
        return iter(self._transformers)

    def __len__(self) -> int:
        return len(self._transformers)

    async def apply(self, name: str, raw: Any, shaped: Any, raw_responses: dict[str, Any]) -> Any:
        """Call a transformer, awaiting it if it returns an awaitable."""
        result = self._transformers[name](raw, shaped, raw_responses)
        if inspect.isawaitable(result):
            result = await result
        return result
