"""
Completion Gateway

Selects a provider adapter per request, executes blocking or streaming
completions, normalizes errors and aggregates provider health.

The gateway never retries a failed request against another provider; callers
that want a different provider re-invoke with an explicit provider id.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from .client import ProviderAdapter, ProviderError, ProviderNotFoundError
from .models import CompletionRequest, CompletionResult, ProviderHealth, StreamChunk
from .registry import ProviderRegistry, build_registry

if TYPE_CHECKING:
    from flask import Flask

logger = logging.getLogger(__name__)


class CompletionStream:
    """
    Cancellable, single-consumer iterator over one streaming completion.

    Chunks are handed out in the order the provider emits them. ``cancel()``
    may be called any number of times, from any thread; it stops iteration
    and closes the upstream generator so the provider connection is released.
    """

    def __init__(self, chunks: Iterator[StreamChunk], provider: str, model: str):
        self._chunks = chunks
        self.provider = provider
        self.model = model
        self._parts: list[str] = []
        self._cancelled = False
        self._finished = False
        self.result: CompletionResult | None = None

    def __iter__(self) -> CompletionStream:
        return self

    def __next__(self) -> StreamChunk:
        if self._cancelled or self._finished:
            raise StopIteration

        try:
            chunk = next(self._chunks)
        except StopIteration:
            self._finished = True
            raise
        except ProviderError as e:
            self._finished = True
            if e.provider is None:
                e.provider = self.provider
            logger.error(f"Stream from {self.provider} failed: {e}")
            raise
        except Exception as e:
            self._finished = True
            logger.error(f"Stream from {self.provider} failed: {e}")
            raise ProviderError(
                f"Provider '{self.provider}' stream failed: {e}", self.provider, e
            ) from e

        # cancel() arrived while we were blocked on the provider
        if self._cancelled:
            self._close_upstream()
            raise StopIteration

        if chunk.done:
            self._finished = True
            self.result = CompletionResult(
                content=self.content,
                model=chunk.model or self.model,
                provider=self.provider,
                usage=chunk.usage or {"input": 0, "output": 0},
            )
            self._close_upstream()
        else:
            self._parts.append(chunk.content)

        return chunk

    @property
    def content(self) -> str:
        """Content accumulated so far."""
        return "".join(self._parts)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def finished(self) -> bool:
        return self._finished

    def cancel(self) -> None:
        """Stop consuming the provider stream. Idempotent."""
        if self._cancelled:
            return
        self._cancelled = True
        if not self._finished:
            logger.debug(f"Cancelling stream from {self.provider}")
        self._close_upstream()

    close = cancel

    def _close_upstream(self) -> None:
        close = getattr(self._chunks, "close", None)
        if close is None:
            return
        try:
            close()
        except ValueError:
            # Generator is executing in the consumer thread; __next__ closes it
            logger.debug(f"Deferring close of running stream from {self.provider}")

    def __enter__(self) -> CompletionStream:
        return self

    def __exit__(self, *exc_info) -> None:
        self.cancel()


class CompletionGateway:
    """
    Routes completion requests to provider adapters.

    Usage:
        gateway = CompletionGateway(registry, default_provider="anthropic")
        result = gateway.complete(CompletionRequest(messages=[...]))

        with gateway.complete_streaming(request) as stream:
            for chunk in stream:
                print(chunk.content, end="")
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        default_provider: str = "anthropic",
        default_model: str | None = None,
        health_timeout: float = 5.0,
    ):
        """
        Initialize the gateway.

        Args:
            registry: Registry holding the configured adapters
            default_provider: Provider used when a request names none (or an
                unregistered one)
            default_model: Model used with the default provider when the
                request names none
            health_timeout: Seconds the aggregate health check waits for probes
        """
        self.registry = registry
        self.default_provider = default_provider
        self.default_model = default_model
        self.health_timeout = health_timeout

    def resolve(self, request: CompletionRequest) -> tuple[str, ProviderAdapter, str]:
        """
        Resolve the provider id, adapter and model for a request.

        Raises:
            ProviderNotFoundError: If neither the requested nor the default
                provider is registered.
        """
        provider_id = request.provider
        adapter = self.registry.get_adapter(provider_id)
        model = request.model

        if adapter is None:
            if provider_id:
                logger.warning(
                    "Provider %s not registered, using default provider %s",
                    provider_id,
                    self.default_provider,
                )
            provider_id = self.default_provider
            adapter = self.registry.get_adapter(provider_id)
            if adapter is None:
                raise ProviderNotFoundError(
                    f'Provider "{request.provider or self.default_provider}" not available'
                )
            # A model chosen for another provider means nothing here
            if request.provider and model and not adapter.supports_model(model):
                model = None

        if not model:
            if provider_id == self.default_provider and self.default_model:
                model = self.default_model
            else:
                model = adapter.default_model

        return provider_id, adapter, model

    def complete(self, request: CompletionRequest) -> CompletionResult:
        """
        Execute a blocking completion.

        Raises:
            ProviderNotFoundError: If no provider resolves
            ProviderError: If the adapter fails; ``cause`` holds the original error
        """
        provider_id, adapter, model = self.resolve(request)
        resolved = replace(
            request,
            provider=provider_id,
            model=model,
            options=replace(request.options, stream=False),
        )

        logger.debug(
            f"Executing completion: provider={provider_id} model={model} "
            f"messages={len(request.messages)} user={request.user_id}"
        )

        try:
            result = adapter.complete(resolved)
        except ProviderError as e:
            if e.provider is None:
                e.provider = provider_id
            logger.error(f"Completion failed on {provider_id} ({model}): {e}")
            raise
        except Exception as e:
            logger.error(f"Completion failed on {provider_id} ({model}): {e}")
            raise ProviderError(
                f"Provider '{provider_id}' completion failed: {e}", provider_id, e
            ) from e

        if not result.provider:
            result.provider = provider_id
        return result

    def complete_streaming(self, request: CompletionRequest) -> CompletionStream:
        """
        Start a streaming completion.

        Provider resolution happens immediately; provider errors surface while
        iterating the returned stream.
        """
        provider_id, adapter, model = self.resolve(request)
        resolved = replace(
            request,
            provider=provider_id,
            model=model,
            options=replace(request.options, stream=True),
        )

        logger.debug(
            f"Starting stream: provider={provider_id} model={model} "
            f"messages={len(request.messages)} user={request.user_id}"
        )

        try:
            chunks = adapter.complete_streaming(resolved)
        except ProviderError as e:
            if e.provider is None:
                e.provider = provider_id
            raise
        except Exception as e:
            raise ProviderError(
                f"Provider '{provider_id}' stream failed: {e}", provider_id, e
            ) from e

        return CompletionStream(iter(chunks), provider_id, model)

    def health_check_all(self, timeout: float | None = None) -> dict[str, ProviderHealth]:
        """
        Probe every registered provider concurrently.

        A probe that raises or does not answer within the timeout marks only
        its own provider unhealthy.
        """
        timeout = self.health_timeout if timeout is None else timeout
        provider_ids = self.registry.list_available()
        if not provider_ids:
            return {}

        results: dict[str, ProviderHealth] = {}
        executor = ThreadPoolExecutor(
            max_workers=len(provider_ids), thread_name_prefix="provider-health"
        )
        try:
            futures = {
                provider_id: executor.submit(
                    self.registry.get_adapter(provider_id).health_check
                )
                for provider_id in provider_ids
            }
            deadline = time.monotonic() + timeout

            for provider_id, future in futures.items():
                remaining = max(0.0, deadline - time.monotonic())
                try:
                    results[provider_id] = future.result(timeout=remaining)
                except FuturesTimeoutError:
                    logger.warning(f"Health check timed out for provider {provider_id}")
                    results[provider_id] = ProviderHealth(
                        healthy=False,
                        error=f"Health check timed out after {timeout}s",
                    )
                except Exception as e:
                    logger.warning(f"Health check failed for provider {provider_id}: {e}")
                    results[provider_id] = ProviderHealth(healthy=False, error=str(e))
        finally:
            # Hung probes are abandoned, not awaited
            executor.shutdown(wait=False, cancel_futures=True)

        return results

    def available_providers(self) -> list[str]:
        return self.registry.list_available()

    def all_models(self) -> dict[str, list[dict[str, Any]]]:
        return self.registry.all_models()


# Module-level gateway instance
_gateway: CompletionGateway | None = None


def get_gateway() -> CompletionGateway | None:
    """Get the configured gateway singleton."""
    return _gateway


def init_gateway(app: Flask) -> CompletionGateway:
    """
    Initialize the completion gateway from Flask app config.

    Raises:
        ConfigurationError: If an adapter cannot be registered
    """
    global _gateway

    _gateway = None
    registry = build_registry(app.config)
    _gateway = CompletionGateway(
        registry,
        default_provider=app.config.get("AI_PROVIDER", "anthropic"),
        default_model=app.config.get("AI_MODEL"),
        health_timeout=app.config.get("PROVIDER_HEALTH_TIMEOUT", 5.0),
    )
    logger.info(
        f"Completion gateway initialized (default: {_gateway.default_provider}, "
        f"providers: {registry.list_available()})"
    )
    return _gateway
