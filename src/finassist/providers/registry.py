from __future__ import annotations

import logging
from typing import Iterable

from .base import LlmProvider
from ..config import Settings

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Ordered collection of configured providers; the first one supporting a model wins."""

    def __init__(self, providers: Iterable[LlmProvider] | None = None):
        self.providers: list[LlmProvider] = list(providers or [])

    def register(self, provider: LlmProvider) -> None:
        if not isinstance(provider, LlmProvider):
            raise TypeError(f"Registry requires LlmProvider objects. Received {provider}: {type(provider)}")
        self.providers.append(provider)

    def get_provider(self, model: str) -> LlmProvider | None:
        provider = next((p for p in self.providers if p.supports_model(model)), None)
        if provider is None:
            logger.warning(f"No provider supports model '{model}'")
        return provider


def build_registry(settings: Settings) -> ProviderRegistry:
    """Register every provider whose credentials are present in ``settings``."""
    registry = ProviderRegistry()

    if settings.openai_api_key:
        from .openai_responses import OpenAIProvider

        registry.register(OpenAIProvider(api_key=settings.openai_api_key, base_url=settings.openai_base_url))

    if settings.aisuite_providers:
        from .aisuite_chat import AISuiteProvider

        registry.register(AISuiteProvider(providers=settings.aisuite_providers))

    return registry
