"""
Provider Adapters

Abstract capability interface shared by all LLM providers, the gateway error
taxonomy, and the Anthropic and mock implementations.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import Any

from .models import CompletionRequest, CompletionResult, ProviderHealth, StreamChunk

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """Base exception for completion gateway errors."""


class ConfigurationError(GatewayError):
    """Raised when an adapter is registered without the required capabilities."""


class ProviderNotFoundError(GatewayError):
    """Raised when neither the requested nor the default provider is registered."""


class ProviderError(GatewayError):
    """Raised when a provider fails to complete a request."""

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.cause = cause


class APIKeyMissingError(ProviderError):
    """Raised when API key is not configured or rejected."""


class RateLimitError(ProviderError):
    """Raised when rate limited by provider."""


def translate_provider_error(provider: str, label: str, error: Exception) -> ProviderError:
    """Map an SDK/transport exception onto the provider error taxonomy."""
    if isinstance(error, ProviderError):
        return error
    error_str = str(error).lower()
    if "rate" in error_str and "limit" in error_str:
        return RateLimitError(f"Rate limited by {label}: {error}", provider, error)
    if "api key" in error_str or "authentication" in error_str:
        return APIKeyMissingError(f"API key error: {error}", provider, error)
    return ProviderError(f"{label} API error: {error}", provider, error)


class ProviderAdapter(ABC):
    """
    Uniform capability wrapper around one provider's native call shape.

    Every variant implements ``complete``, ``complete_streaming`` and
    ``health_check``. ``MODELS`` lists the model identifiers the adapter
    accepts; requests for other models are passed through unchanged.
    """

    provider_id: str = "base"
    MODELS: dict[str, dict[str, Any]] = {}
    default_model: str = ""

    @abstractmethod
    def complete(self, request: CompletionRequest) -> CompletionResult:
        """
        Execute a blocking completion.

        Args:
            request: Request with provider and model already resolved

        Returns:
            CompletionResult with content, model and usage info
        """
        ...

    @abstractmethod
    def complete_streaming(self, request: CompletionRequest) -> Iterator[StreamChunk]:
        """
        Stream a completion.

        Yields ``done=False`` chunks in provider order followed by a single
        ``done=True`` chunk carrying usage. Closing the generator must release
        the underlying connection.
        """
        ...

    @abstractmethod
    def health_check(self) -> ProviderHealth:
        """Probe the provider with a fresh round-trip."""
        ...

    @property
    def models(self) -> dict[str, dict[str, Any]]:
        return self.MODELS

    def get_models(self) -> list[dict[str, Any]]:
        """Get available models for this provider."""
        return [{"id": model_id, **info} for model_id, info in self.models.items()]

    def supports_model(self, model: str) -> bool:
        return model in self.models


class AnthropicAdapter(ProviderAdapter):
    """Anthropic Claude API adapter."""

    provider_id = "anthropic"
    MODELS = {
        "claude-opus-4": {
            "name": "Claude Opus 4",
            "max_tokens": 200000,
            "tier": "enterprise",
            "description": "Most capable model for complex scientific reasoning",
        },
        "claude-sonnet-4": {
            "name": "Claude Sonnet 4",
            "max_tokens": 200000,
            "tier": "pro",
            "description": "Balanced model for scientific writing",
        },
        "claude-3-5-haiku": {
            "name": "Claude 3.5 Haiku",
            "max_tokens": 200000,
            "tier": "free",
            "description": "Fast and cost-effective for simple tasks",
        },
    }

    # Short names -> dated API identifiers
    MODEL_ALIASES = {
        "claude-opus-4": "claude-opus-4-20250514",
        "claude-sonnet-4": "claude-sonnet-4-20250514",
        "claude-3-5-haiku": "claude-3-5-haiku-20241022",
    }

    def __init__(
        self,
        api_key: str | None = None,
        default_model: str = "claude-sonnet-4",
    ):
        """
        Initialize the Anthropic adapter.

        Args:
            api_key: Anthropic API key (required for actual API calls)
            default_model: Model used when the request does not name one
        """
        self.api_key = api_key
        self.default_model = default_model
        self._client = None

    @property
    def client(self):
        """Lazy initialization of the Anthropic client."""
        if self._client is None:
            if not self.api_key:
                raise APIKeyMissingError(
                    "ANTHROPIC_API_KEY is not configured. "
                    "Set the environment variable or provide api_key parameter.",
                    provider=self.provider_id,
                )
            import anthropic

            self._client = anthropic.Anthropic(api_key=self.api_key)
        return self._client

    def map_model_name(self, model: str | None) -> str:
        model = model or self.default_model
        return self.MODEL_ALIASES.get(model, model)

    def _build_params(self, request: CompletionRequest) -> dict[str, Any]:
        params: dict[str, Any] = {
            "model": self.map_model_name(request.model),
            "max_tokens": request.options.max_tokens,
            "messages": request.conversation,
            "temperature": request.options.temperature,
        }
        system_prompt = request.system_prompt
        if system_prompt:
            params["system"] = system_prompt
        return params

    def complete(self, request: CompletionRequest) -> CompletionResult:
        """
        Send a completion request.

        Raises:
            APIKeyMissingError: If API key is not configured
            RateLimitError: If rate limited by Anthropic
            ProviderError: If Anthropic returns an error
        """
        model = request.model or self.default_model
        try:
            response = self.client.messages.create(**self._build_params(request))

            # Concatenate text blocks
            content = "".join(
                block.text
                for block in response.content
                if getattr(block, "type", "text") == "text"
            )

            return CompletionResult(
                content=content,
                model=model,
                provider=self.provider_id,
                usage={
                    "input": response.usage.input_tokens,
                    "output": response.usage.output_tokens,
                },
                finish_reason=response.stop_reason or "stop",
            )

        except Exception as e:
            raise translate_provider_error(self.provider_id, "Anthropic", e) from e

    def complete_streaming(self, request: CompletionRequest) -> Iterator[StreamChunk]:
        """Stream a completion; closing the generator closes the HTTP stream."""
        model = request.model or self.default_model
        try:
            with self.client.messages.stream(**self._build_params(request)) as stream:
                for text in stream.text_stream:
                    yield StreamChunk(
                        content=text,
                        done=False,
                        model=model,
                        provider=self.provider_id,
                    )

                # Get final message for usage info
                final_message = stream.get_final_message()
                yield StreamChunk(
                    content="",
                    done=True,
                    model=model,
                    provider=self.provider_id,
                    usage={
                        "input": final_message.usage.input_tokens,
                        "output": final_message.usage.output_tokens,
                    },
                )

        except Exception as e:
            raise translate_provider_error(self.provider_id, "Anthropic", e) from e

    def health_check(self) -> ProviderHealth:
        self.client.models.list(limit=1)
        return ProviderHealth(
            healthy=True,
            details={"models_available": len(self.models)},
        )


class MockAdapter(ProviderAdapter):
    """Mock adapter for testing."""

    provider_id = "mock"
    MODELS = {
        "mock-model": {
            "name": "Mock Model",
            "max_tokens": 4096,
            "tier": "free",
            "description": "Deterministic test model",
        }
    }

    def __init__(
        self,
        response_content: str = "Mock response",
        default_model: str = "mock-model",
        healthy: bool = True,
        health_error: Exception | None = None,
        health_delay: float = 0.0,
        fail_with: Exception | None = None,
    ):
        """
        Initialize mock adapter.

        Args:
            response_content: Content to return in responses
            default_model: Model reported when the request does not name one
            healthy: Value reported by health_check
            health_error: Exception raised by health_check instead of reporting
            health_delay: Seconds health_check sleeps before answering
            fail_with: Exception raised by complete/complete_streaming
        """
        self.response_content = response_content
        self.default_model = default_model
        self.healthy = healthy
        self.health_error = health_error
        self.health_delay = health_delay
        self.fail_with = fail_with
        self.call_history: list[dict] = []
        self.closed_streams = 0

    def complete(self, request: CompletionRequest) -> CompletionResult:
        """Record call and return mock response."""
        self.call_history.append({"request": request, "streaming": False})
        if self.fail_with is not None:
            raise self.fail_with
        return CompletionResult(
            content=self.response_content,
            model=request.model or self.default_model,
            provider=self.provider_id,
            usage={"input": 10, "output": 20},
        )

    def complete_streaming(self, request: CompletionRequest) -> Iterator[StreamChunk]:
        """Record call and yield mock streaming response word by word."""
        self.call_history.append({"request": request, "streaming": True})
        model = request.model or self.default_model
        try:
            if self.fail_with is not None:
                raise self.fail_with

            words = self.response_content.split()
            for i, word in enumerate(words):
                content = word + (" " if i < len(words) - 1 else "")
                yield StreamChunk(
                    content=content,
                    done=False,
                    model=model,
                    provider=self.provider_id,
                )

            yield StreamChunk(
                content="",
                done=True,
                model=model,
                provider=self.provider_id,
                usage={"input": 10, "output": 20},
            )
        finally:
            self.closed_streams += 1

    def health_check(self) -> ProviderHealth:
        if self.health_delay:
            time.sleep(self.health_delay)
        if self.health_error is not None:
            raise self.health_error
        return ProviderHealth(healthy=self.healthy)
