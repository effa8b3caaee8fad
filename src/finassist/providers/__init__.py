"""LLM and search providers used by the assistant."""

from .base import LlmProvider, Streamer
from .registry import ProviderRegistry, build_registry

__all__ = [
    "LlmProvider",
    "Streamer",
    "ProviderRegistry",
    "build_registry",
]
