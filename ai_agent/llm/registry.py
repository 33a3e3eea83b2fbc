"""
Provider Registry

Holds the configured provider adapters. The registry is populated once at
startup and only read afterwards.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .client import AnthropicAdapter, ConfigurationError, MockAdapter, ProviderAdapter

logger = logging.getLogger(__name__)

REQUIRED_CAPABILITIES = ("complete", "complete_streaming", "health_check")


class ProviderRegistry:
    """
    Registry of provider adapters keyed by provider id.

    Availability here only means "an adapter is registered"; whether the
    provider currently answers is a separate question for the gateway's
    health check.
    """

    def __init__(self) -> None:
        self._adapters: dict[str, ProviderAdapter] = {}

    def register(self, provider_id: str, adapter: ProviderAdapter) -> None:
        """
        Register (or replace) the adapter for a provider.

        Raises:
            ConfigurationError: If the id is empty or the adapter lacks a
                required capability.
        """
        if not provider_id:
            raise ConfigurationError("Provider id must be a non-empty string")
        if adapter is None:
            raise ConfigurationError(f"No adapter given for provider '{provider_id}'")

        missing = [
            name
            for name in REQUIRED_CAPABILITIES
            if not callable(getattr(adapter, name, None))
        ]
        if missing:
            raise ConfigurationError(
                f"Adapter for provider '{provider_id}' is missing required "
                f"capabilities: {', '.join(missing)}"
            )

        if provider_id in self._adapters:
            logger.info("Replacing adapter for provider %s", provider_id)
        self._adapters[provider_id] = adapter
        logger.info("Registered adapter for provider %s", provider_id)

    def get_adapter(self, provider_id: str | None) -> ProviderAdapter | None:
        """Get the adapter for a provider, or None if unknown."""
        if not provider_id:
            return None
        return self._adapters.get(provider_id)

    def has_provider(self, provider_id: str) -> bool:
        return provider_id in self._adapters

    def list_available(self) -> list[str]:
        """Provider ids with a registered adapter, in registration order."""
        return list(self._adapters.keys())

    def all_models(self) -> dict[str, list[dict[str, Any]]]:
        """All known models grouped by provider."""
        return {
            provider_id: adapter.get_models()
            for provider_id, adapter in self._adapters.items()
        }


def build_registry(config: Mapping[str, Any]) -> ProviderRegistry:
    """
    Build a registry from application config.

    Only providers with credentials configured are registered. In testing
    mode the registry holds a single MockAdapter.
    """
    registry = ProviderRegistry()

    if config.get("TESTING"):
        registry.register("mock", MockAdapter(default_model=config.get("AI_MODEL") or "mock-model"))
        return registry

    default_provider = config.get("AI_PROVIDER", "anthropic")
    default_model = config.get("AI_MODEL")

    def model_for(provider_id: str, fallback: str) -> str:
        if provider_id == default_provider and default_model:
            return default_model
        return fallback

    anthropic_key = config.get("ANTHROPIC_API_KEY")
    if anthropic_key:
        registry.register(
            "anthropic",
            AnthropicAdapter(
                api_key=anthropic_key,
                default_model=model_for("anthropic", "claude-sonnet-4"),
            ),
        )
    else:
        logger.warning("ANTHROPIC_API_KEY not configured. Anthropic provider unavailable.")

    openai_key = config.get("OPENAI_API_KEY")
    deepseek_key = config.get("DEEPSEEK_API_KEY")
    if openai_key or deepseek_key:
        from .openai_client import DEEPSEEK_MODELS, OpenAIAdapter

        if openai_key:
            registry.register(
                "openai",
                OpenAIAdapter(
                    api_key=openai_key,
                    default_model=model_for("openai", config.get("OPENAI_MODEL") or "gpt-4o"),
                    base_url=config.get("OPENAI_BASE_URL"),
                ),
            )
        if deepseek_key:
            registry.register(
                "deepseek",
                OpenAIAdapter(
                    api_key=deepseek_key,
                    default_model=model_for(
                        "deepseek", config.get("DEEPSEEK_MODEL") or "deepseek-chat"
                    ),
                    base_url=config.get("DEEPSEEK_BASE_URL"),
                    provider_id="deepseek",
                    models=DEEPSEEK_MODELS,
                ),
            )

    if config.get("ENABLE_OLLAMA"):
        from .ollama_client import OllamaAdapter

        registry.register(
            "ollama",
            OllamaAdapter(
                base_url=config.get("OLLAMA_BASE_URL") or "http://localhost:11434",
                default_model=model_for("ollama", config.get("OLLAMA_MODEL") or "llama3.2"),
            ),
        )

    logger.info(f"Provider registry initialized: {registry.list_available()}")
    return registry
