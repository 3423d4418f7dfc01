from __future__ import annotations

import pytest

from faux_foundry.config import _Registry, build_source, source_registry
from faux_foundry.core.exceptions import UnsupportedProviderError
from faux_foundry.sources.litellm import LiteLLMBatchSource
from faux_foundry.sources.synthetic import SyntheticBatchSource


class TestSourceRegistry:
    def test_builtin_providers(self) -> None:
        names = source_registry.names()
        for provider in ("synthetic", "ollama", "openai", "anthropic", "gemini"):
            assert provider in names

    def test_builds_synthetic_source(self) -> None:
        assert isinstance(build_source("synthetic"), SyntheticBatchSource)

    def test_builds_litellm_source_with_provider(self) -> None:
        source = build_source("anthropic", api_key="key", seed=3)
        assert isinstance(source, LiteLLMBatchSource)

    def test_unknown_provider(self) -> None:
        with pytest.raises(UnsupportedProviderError, match="Unknown source provider"):
            build_source("carrier-pigeon")


class TestRegistry:
    def test_factory_without_from_config_gets_kwargs(self) -> None:
        class Plain:
            def __init__(self, size: int) -> None:
                self.size = size

        registry: _Registry[Plain] = _Registry("widget")
        registry.register("plain", Plain)

        assert registry.build("plain", {"size": 4}).size == 4
        assert registry.names() == ["plain"]

    def test_unknown_lists_available(self) -> None:
        registry: _Registry[object] = _Registry("widget")
        registry.register("a", object)
        with pytest.raises(UnsupportedProviderError, match=r"Available: \['a'\]"):
            registry.build("b", {})
