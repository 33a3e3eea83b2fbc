"""
Ollama Adapter

Implementation of ProviderAdapter for a local Ollama server. No API key is
required; requests go over plain HTTP with ``requests``.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from typing import Any

import requests

from .client import ProviderAdapter, ProviderError
from .models import CompletionRequest, CompletionResult, ProviderHealth, StreamChunk

logger = logging.getLogger(__name__)

# Seconds to wait for Ollama to start answering a chat request
REQUEST_TIMEOUT = 120
HEALTH_TIMEOUT = 5


class OllamaAdapter(ProviderAdapter):
    """Local Ollama adapter (Llama, Mistral, Qwen, ...)."""

    provider_id = "ollama"
    MODELS = {
        "llama3.2": {
            "name": "Llama 3.2",
            "max_tokens": 128000,
            "tier": "free",
            "description": "Meta Llama 3.2 - general purpose",
        },
        "mistral": {
            "name": "Mistral 7B",
            "max_tokens": 32000,
            "tier": "free",
            "description": "Mistral AI - fast and capable",
        },
        "qwen2.5": {
            "name": "Qwen 2.5",
            "max_tokens": 32000,
            "tier": "free",
            "description": "Alibaba Qwen - multilingual",
        },
    }

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        default_model: str = "llama3.2",
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.default_model = default_model
        self.session = session or requests.Session()

    def _build_payload(self, request: CompletionRequest, stream: bool) -> dict[str, Any]:
        messages = []
        system_prompt = request.system_prompt
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.extend(request.conversation)
        return {
            "model": request.model or self.default_model,
            "messages": messages,
            "options": {
                "temperature": request.options.temperature,
                "num_predict": request.options.max_tokens,
            },
            "stream": stream,
        }

    def complete(self, request: CompletionRequest) -> CompletionResult:
        model = request.model or self.default_model
        try:
            resp = self.session.post(
                f"{self.base_url}/api/chat",
                json=self._build_payload(request, stream=False),
                timeout=REQUEST_TIMEOUT,
            )
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as e:
            raise ProviderError(f"Ollama error: {e}", self.provider_id, e) from e

        return CompletionResult(
            content=(data.get("message") or {}).get("content", ""),
            model=model,
            provider=self.provider_id,
            usage={
                "input": data.get("prompt_eval_count", 0),
                "output": data.get("eval_count", 0),
            },
            finish_reason=data.get("done_reason") or "stop",
        )

    def complete_streaming(self, request: CompletionRequest) -> Iterator[StreamChunk]:
        """Stream NDJSON lines from /api/chat; the response is closed on exit."""
        model = request.model or self.default_model
        try:
            resp = self.session.post(
                f"{self.base_url}/api/chat",
                json=self._build_payload(request, stream=True),
                timeout=REQUEST_TIMEOUT,
                stream=True,
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            raise ProviderError(f"Ollama error: {e}", self.provider_id, e) from e

        usage = {"input": 0, "output": 0}
        try:
            for line in resp.iter_lines(decode_unicode=True):
                if not line or not line.strip():
                    continue
                try:
                    data = json.loads(line)
                except ValueError:
                    logger.debug("Skipping malformed Ollama stream line: %r", line)
                    continue

                if data.get("error"):
                    raise ProviderError(
                        f"Ollama error: {data['error']}", self.provider_id
                    )
                if data.get("done"):
                    usage = {
                        "input": data.get("prompt_eval_count", 0),
                        "output": data.get("eval_count", 0),
                    }
                    continue

                content = (data.get("message") or {}).get("content")
                if content:
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
                usage=usage,
            )
        except requests.RequestException as e:
            raise ProviderError(f"Ollama stream failed: {e}", self.provider_id, e) from e
        finally:
            resp.close()

    def health_check(self) -> ProviderHealth:
        resp = self.session.get(f"{self.base_url}/api/tags", timeout=HEALTH_TIMEOUT)
        if not resp.ok:
            return ProviderHealth(
                healthy=False,
                error=f"Ollama not responding: {resp.status_code}",
                details={"base_url": self.base_url},
            )
        installed = [m.get("name") for m in resp.json().get("models", [])]
        return ProviderHealth(
            healthy=True,
            details={"base_url": self.base_url, "installed_models": installed},
        )
