"""
OpenAI Adapter

Implementation of ProviderAdapter for OpenAI's API and OpenAI-compatible APIs
such as DeepSeek.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

from openai import OpenAI as OpenAISDK

from .client import APIKeyMissingError, ProviderAdapter, translate_provider_error
from .models import CompletionRequest, CompletionResult, ProviderHealth, StreamChunk

logger = logging.getLogger(__name__)

DEEPSEEK_MODELS = {
    "deepseek-chat": {
        "name": "DeepSeek Chat (V3)",
        "max_tokens": 64000,
        "tier": "free",
        "description": "Fast and cost-effective chat model",
    },
    "deepseek-reasoner": {
        "name": "DeepSeek Reasoner (R1)",
        "max_tokens": 64000,
        "tier": "pro",
        "description": "Advanced reasoning model for complex tasks",
    },
}


class OpenAIAdapter(ProviderAdapter):
    """OpenAI API adapter (also serves OpenAI-compatible APIs like DeepSeek)."""

    provider_id = "openai"
    MODELS = {
        "gpt-4o": {
            "name": "GPT-4o",
            "max_tokens": 128000,
            "tier": "pro",
            "description": "General purpose multimodal model",
        },
        "gpt-4o-mini": {
            "name": "GPT-4o mini",
            "max_tokens": 128000,
            "tier": "free",
            "description": "Small, fast and cost-effective",
        },
    }

    def __init__(
        self,
        api_key: str | None = None,
        default_model: str = "gpt-4o",
        base_url: str | None = None,
        provider_id: str | None = None,
        models: dict[str, dict[str, Any]] | None = None,
    ):
        """
        Initialize the OpenAI adapter.

        Args:
            api_key: API key (required for actual API calls)
            default_model: Model used when the request does not name one
            base_url: Optional custom base URL for OpenAI-compatible APIs
            provider_id: Registry id override (e.g. "deepseek")
            models: Model table override for OpenAI-compatible providers
        """
        self.api_key = api_key
        self.default_model = default_model
        self.base_url = base_url
        if provider_id:
            self.provider_id = provider_id
        self._models = models
        self._client = None

    @property
    def models(self) -> dict[str, dict[str, Any]]:
        return self._models if self._models is not None else self.MODELS

    @property
    def label(self) -> str:
        return "DeepSeek" if self.provider_id == "deepseek" else "OpenAI"

    @property
    def client(self):
        """Lazy initialization of the OpenAI client."""
        if self._client is None:
            if not self.api_key:
                raise APIKeyMissingError(
                    "API key is not configured. "
                    "Set the environment variable or provide api_key parameter.",
                    provider=self.provider_id,
                )
            if self.base_url:
                self._client = OpenAISDK(api_key=self.api_key, base_url=self.base_url)
            else:
                self._client = OpenAISDK(api_key=self.api_key)
        return self._client

    def _build_messages(self, request: CompletionRequest) -> list[dict[str, str]]:
        all_messages = []
        system_prompt = request.system_prompt
        if system_prompt:
            all_messages.append({"role": "system", "content": system_prompt})
        all_messages.extend(request.conversation)
        return all_messages

    def complete(self, request: CompletionRequest) -> CompletionResult:
        """
        Send a completion request.

        Raises:
            APIKeyMissingError: If API key is not configured
            RateLimitError: If rate limited by the provider
            ProviderError: If the provider returns an error
        """
        model = request.model or self.default_model
        try:
            response = self.client.chat.completions.create(
                model=model,
                messages=self._build_messages(request),
                max_tokens=request.options.max_tokens,
                temperature=request.options.temperature,
            )

            choice = response.choices[0]
            return CompletionResult(
                content=choice.message.content or "",
                model=model,
                provider=self.provider_id,
                usage={
                    "input": response.usage.prompt_tokens,
                    "output": response.usage.completion_tokens,
                },
                finish_reason=choice.finish_reason or "stop",
            )

        except Exception as e:
            raise translate_provider_error(self.provider_id, self.label, e) from e

    def complete_streaming(self, request: CompletionRequest) -> Iterator[StreamChunk]:
        """Stream a completion; closing the generator closes the HTTP stream."""
        model = request.model or self.default_model
        stream = None
        try:
            stream = self.client.chat.completions.create(
                model=model,
                messages=self._build_messages(request),
                max_tokens=request.options.max_tokens,
                temperature=request.options.temperature,
                stream=True,
                stream_options={"include_usage": True},
            )

            usage = {"input": 0, "output": 0}

            for chunk in stream:
                if chunk.choices and chunk.choices[0].delta.content:
                    yield StreamChunk(
                        content=chunk.choices[0].delta.content,
                        done=False,
                        model=model,
                        provider=self.provider_id,
                    )

                # Usage arrives on the last chunk, after finish_reason
                if chunk.usage:
                    usage = {
                        "input": chunk.usage.prompt_tokens,
                        "output": chunk.usage.completion_tokens,
                    }

            yield StreamChunk(
                content="",
                done=True,
                model=model,
                provider=self.provider_id,
                usage=usage,
            )

        except Exception as e:
            raise translate_provider_error(self.provider_id, self.label, e) from e
        finally:
            if stream is not None:
                stream.close()

    def health_check(self) -> ProviderHealth:
        self.client.models.list()
        return ProviderHealth(
            healthy=True,
            details={"models_available": len(self.models)},
        )
