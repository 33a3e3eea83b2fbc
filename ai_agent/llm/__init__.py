"""
LLM Module

Provider adapters, the provider registry and the completion gateway.

Usage:
    from ai_agent.llm import get_gateway, CompletionRequest

    gateway = get_gateway()
    result = gateway.complete(
        CompletionRequest(messages=[{"role": "user", "content": "Hello"}])
    )

    # Streaming response
    with gateway.complete_streaming(request) as stream:
        for chunk in stream:
            print(chunk.content, end="")
"""

from .client import (
    AnthropicAdapter,
    APIKeyMissingError,
    ConfigurationError,
    GatewayError,
    MockAdapter,
    ProviderAdapter,
    ProviderError,
    ProviderNotFoundError,
    RateLimitError,
)
from .gateway import CompletionGateway, CompletionStream, get_gateway, init_gateway
from .models import (
    CompletionOptions,
    CompletionRequest,
    CompletionResult,
    ProviderHealth,
    StreamChunk,
)
from .registry import ProviderRegistry, build_registry
from .router import ModelRouter

__all__ = [
    # Models
    "CompletionOptions",
    "CompletionRequest",
    "CompletionResult",
    "ProviderHealth",
    "StreamChunk",
    # Adapters
    "ProviderAdapter",
    "AnthropicAdapter",
    "MockAdapter",
    # Exceptions
    "GatewayError",
    "ConfigurationError",
    "ProviderNotFoundError",
    "ProviderError",
    "APIKeyMissingError",
    "RateLimitError",
    # Registry and gateway
    "ProviderRegistry",
    "build_registry",
    "CompletionGateway",
    "CompletionStream",
    "get_gateway",
    "init_gateway",
    "ModelRouter",
]
