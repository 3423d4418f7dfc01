from __future__ import annotations

from typing import Any, Generic, TypeVar

from faux_foundry.core.exceptions import UnsupportedProviderError
from faux_foundry.sources.base import BatchSource

T = TypeVar("T")


class _Registry(Generic[T]):
    """Lazily-populated factory registry.

    Each backend module registers itself via :meth:`register`.
    :meth:`build` resolves a provider name to a factory, calling
    ``factory.from_config(config)`` if available, otherwise
    ``factory(**config)``.
    """

    def __init__(self, label: str) -> None:
        self._label = label
        self._factories: dict[str, type[T]] = {}
        self._defaults_loaded = False

    def register(self, name: str, cls: type[T]) -> None:
        self._factories[name] = cls

    def names(self) -> list[str]:
        self._ensure_defaults()
        return sorted(self._factories)

    def build(self, provider: str, config: dict[str, Any]) -> T:
        self._ensure_defaults()
        factory = self._factories.get(provider)
        if factory is None:
            raise UnsupportedProviderError(
                f"Unknown {self._label} provider '{provider}'. "
                f"Available: {sorted(self._factories)}"
            )
        if hasattr(factory, "from_config"):
            return factory.from_config(config)  # type: ignore[return-value]
        return factory(**config)  # type: ignore[return-value]

    def _ensure_defaults(self) -> None:
        if not self._defaults_loaded:
            self._load_defaults()
            self._defaults_loaded = True

    def _load_defaults(self) -> None:
        """Override point; subclasses populate built-in factories here."""


class _SourceRegistry(_Registry[BatchSource]):
    def _load_defaults(self) -> None:
        from faux_foundry.sources.litellm import LiteLLMBatchSource
        from faux_foundry.sources.synthetic import SyntheticBatchSource

        self.register("synthetic", SyntheticBatchSource)
        for provider in ("ollama", "openai", "anthropic", "gemini"):
            self.register(provider, LiteLLMBatchSource)

    def build(self, provider: str, config: dict[str, Any]) -> BatchSource:
        return super().build(provider, {**config, "provider": provider})


# Singleton instance
source_registry = _SourceRegistry("source")


def build_source(
    provider: str,
    *,
    api_key: str | None = None,
    seed: int | None = None,
) -> BatchSource:
    """Build the batch source for ``provider`` (e.g. ``"ollama"``, ``"synthetic"``)."""
    return source_registry.build(provider, {"api_key": api_key, "seed": seed})
