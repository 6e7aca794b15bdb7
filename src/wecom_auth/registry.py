"""Name-based lookup of provider adapters.

Adapters are registered with a factory that takes no arguments; the returned
instance is unconfigured and receives its credentials through ``configure()``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from .contracts import ProviderAdapter
from .providers.wecom import WecomProviderAdapter

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[], ProviderAdapter]


class ProviderRegistry:
    """Maps provider names to adapter factories."""

    def __init__(self) -> None:
        self._factories: dict[str, ProviderFactory] = {}

    def register(self, name: str, factory: ProviderFactory, *, replace: bool = False) -> None:
        if name in self._factories and not replace:
            raise ValueError(f"Provider '{name}' is already registered")
        self._factories[name] = factory
        logger.debug("Registered provider adapter", extra={"provider": name})

    def create(self, name: str) -> ProviderAdapter:
        try:
            factory = self._factories[name]
        except KeyError:
            raise ValueError(f"Unsupported provider for adapter: {name}") from None
        return factory()

    def names(self) -> list[str]:
        return sorted(self._factories)

    def __contains__(self, name: object) -> bool:
        return name in self._factories


default_registry = ProviderRegistry()
default_registry.register(WecomProviderAdapter.provider_name, WecomProviderAdapter)


def register_provider(name: str, factory: ProviderFactory, *, replace: bool = False) -> None:
    """Register ``factory`` under ``name`` in the default registry."""
    default_registry.register(name, factory, replace=replace)


def create_provider(name: str) -> ProviderAdapter:
    """Instantiate an unconfigured adapter registered under ``name``."""
    return default_registry.create(name)


def available_providers() -> list[str]:
    return default_registry.names()


__all__ = [
    "ProviderFactory",
    "ProviderRegistry",
    "available_providers",
    "create_provider",
    "default_registry",
    "register_provider",
]
