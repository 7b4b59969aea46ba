"""Tests for the transformer registry."""

import pytest

from restql.core.transformers import Transformer, TransformerRegistry


def full_name(raw, shaped, raw_responses):
    return {"name": f"{raw['first']} {raw['last']}"}


async def async_upper(raw, shaped, raw_responses):
    return {key: value.upper() for key, value in shaped.items()}


class TestTransformerRegistry:
    """Tests for TransformerRegistry."""

    def test_register_and_lookup(self):
        registry = TransformerRegistry({"fullName": full_name})
        assert registry.has("fullName")
        assert registry["fullName"] is full_name
        assert "fullName" in registry
        assert len(registry) == 1

    def test_names_sorted(self):
        registry = TransformerRegistry()
        registry.register("b", full_name)
        registry.register("a", async_upper)
        assert registry.names() == ["a", "b"]
        assert list(registry) == ["b", "a"]

    def test_rejects_non_callable(self):
        with pytest.raises(TypeError, match="must be callable"):
            TransformerRegistry({"bad": 42})

    def test_functions_follow_protocol(self):
        assert isinstance(full_name, Transformer)

    async def test_apply_sync(self):
        registry = TransformerRegistry({"fullName": full_name})
        result = await registry.apply("fullName", {"first": "Ann", "last": "Lee"}, {}, {})
        assert result == {"name": "Ann Lee"}

    async def test_apply_async(self):
        registry = TransformerRegistry({"upper": async_upper})
        result = await registry.apply("upper", {}, {"name": "ann"}, {})
        assert result == {"name": "ANN"}

    async def test_apply_passes_raw_responses(self):
        seen = {}

        def capture(raw, shaped, raw_responses):
            seen.update(raw_responses)
            return shaped

        registry = TransformerRegistry({"capture": capture})
        await registry.apply("capture", {}, {}, {"user": {"id": 1}})
        assert seen == {"user": {"id": 1}}
