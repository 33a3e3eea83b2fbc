"""
Tests for LLM Provider Adapters

Tests cover:
- Request/result dataclasses
- Error translation
- MockAdapter behaviour
- AnthropicAdapter, OpenAIAdapter and OllamaAdapter with mocked transports
"""

import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from ai_agent.llm import (
    AnthropicAdapter,
    APIKeyMissingError,
    CompletionRequest,
    MockAdapter,
    ProviderError,
    ProviderHealth,
    RateLimitError,
    StreamChunk,
)
from ai_agent.llm.client import translate_provider_error
from ai_agent.llm.ollama_client import OllamaAdapter
from ai_agent.llm.openai_client import DEEPSEEK_MODELS, OpenAIAdapter


def make_request(**kwargs):
    messages = kwargs.pop(
        "messages",
        [
            {"role": "system", "content": "Be concise."},
            {"role": "user", "content": "Hello"},
        ],
    )
    return CompletionRequest(messages=messages, **kwargs)


class TestCompletionRequest:
    """Tests for CompletionRequest helpers."""

    def test_system_prompt_joins_system_messages(self):
        """Test that system messages are collected into one prompt."""
        request = make_request(
            messages=[
                {"role": "system", "content": "First."},
                {"role": "user", "content": "Hi"},
                {"role": "system", "content": "Second."},
            ]
        )

        assert "First." in request.system_prompt
        assert "Second." in request.system_prompt
        assert request.conversation == [{"role": "user", "content": "Hi"}]

    def test_no_system_prompt(self):
        """Test that a request without system messages has no system prompt."""
        request = make_request(messages=[{"role": "user", "content": "Hi"}])

        assert request.system_prompt is None

    def test_default_options(self):
        """Test default completion options."""
        request = make_request()

        assert request.options.max_tokens == 4096
        assert request.options.temperature == 0.7
        assert request.options.stream is False


class TestProviderHealth:
    """Tests for ProviderHealth serialization."""

    def test_healthy_to_dict(self):
        health = ProviderHealth(healthy=True, details={"models_available": 3})

        assert health.to_dict() == {"healthy": True, "models_available": 3}

    def test_unhealthy_includes_error(self):
        health = ProviderHealth(healthy=False, error="timeout")

        assert health.to_dict() == {"healthy": False, "error": "timeout"}


class TestTranslateProviderError:
    """Tests for SDK error translation."""

    def test_rate_limit(self):
        error = translate_provider_error("anthropic", "Anthropic", Exception("Rate limit exceeded"))

        assert isinstance(error, RateLimitError)
        assert error.provider == "anthropic"

    def test_authentication(self):
        error = translate_provider_error("openai", "OpenAI", Exception("Authentication failed"))

        assert isinstance(error, APIKeyMissingError)

    def test_generic_error_keeps_cause(self):
        cause = Exception("Server exploded")
        error = translate_provider_error("openai", "OpenAI", cause)

        assert type(error) is ProviderError
        assert error.cause is cause
        assert "Server exploded" in str(error)

    def test_provider_error_passes_through(self):
        original = ProviderError("already translated", "mock")

        assert translate_provider_error("openai", "OpenAI", original) is original


class TestMockAdapter:
    """Tests for MockAdapter."""

    def test_complete(self):
        """Test blocking completion."""
        adapter = MockAdapter(response_content="Test response")

        result = adapter.complete(make_request())

        assert result.content == "Test response"
        assert result.model == "mock-model"
        assert result.provider == "mock"
        assert result.usage == {"input": 10, "output": 20}

    def test_records_call_history(self):
        """Test that calls are recorded."""
        adapter = MockAdapter()
        request = make_request()

        adapter.complete(request)

        assert len(adapter.call_history) == 1
        assert adapter.call_history[0]["request"] is request
        assert adapter.call_history[0]["streaming"] is False

    def test_streaming_yields_words_then_done(self):
        """Test that streaming yields word chunks and one final chunk."""
        adapter = MockAdapter(response_content="Hello world test")

        chunks = list(adapter.complete_streaming(make_request()))

        assert all(isinstance(c, StreamChunk) for c in chunks)
        assert "".join(c.content for c in chunks) == "Hello world test"
        assert [c.done for c in chunks] == [False, False, False, True]
        assert chunks[-1].usage == {"input": 10, "output": 20}
        assert adapter.closed_streams == 1

    def test_fail_with(self):
        """Test configured failures are raised."""
        adapter = MockAdapter(fail_with=RuntimeError("boom"))

        with pytest.raises(RuntimeError):
            adapter.complete(make_request())

    def test_health_check(self):
        assert MockAdapter().health_check().healthy is True
        assert MockAdapter(healthy=False).health_check().healthy is False

    def test_get_models(self):
        models = MockAdapter().get_models()

        assert models[0]["id"] == "mock-model"
        assert MockAdapter().supports_model("mock-model")
        assert not MockAdapter().supports_model("gpt-4o")


class TestAnthropicAdapter:
    """Tests for AnthropicAdapter with a mocked SDK client."""

    def _adapter_with_client(self):
        adapter = AnthropicAdapter(api_key="test-key")
        mock_client = MagicMock()
        adapter._client = mock_client
        return adapter, mock_client

    def test_init_with_defaults(self):
        adapter = AnthropicAdapter(api_key="test-key")

        assert adapter.default_model == "claude-sonnet-4"
        assert adapter.provider_id == "anthropic"

    def test_missing_api_key_raises_error(self):
        """Test that accessing the client without a key raises."""
        adapter = AnthropicAdapter(api_key=None)

        with pytest.raises(APIKeyMissingError):
            adapter.complete(make_request())

    def test_client_built_lazily(self):
        with patch("anthropic.Anthropic") as mock_sdk:
            adapter = AnthropicAdapter(api_key="test-key")
            mock_sdk.assert_not_called()

            client = adapter.client

        mock_sdk.assert_called_once_with(api_key="test-key")
        assert client is mock_sdk.return_value

    def test_complete(self):
        """Test a blocking completion maps params and usage."""
        adapter, mock_client = self._adapter_with_client()
        mock_response = MagicMock()
        mock_response.content = [MagicMock(type="text", text="Mocked response")]
        mock_response.usage.input_tokens = 12
        mock_response.usage.output_tokens = 34
        mock_response.stop_reason = "end_turn"
        mock_client.messages.create.return_value = mock_response

        result = adapter.complete(make_request(model="claude-3-5-haiku"))

        assert result.content == "Mocked response"
        assert result.model == "claude-3-5-haiku"
        assert result.usage == {"input": 12, "output": 34}
        assert result.finish_reason == "end_turn"

        params = mock_client.messages.create.call_args.kwargs
        assert params["model"] == "claude-3-5-haiku-20241022"
        assert params["system"] == "Be concise."
        assert params["messages"] == [{"role": "user", "content": "Hello"}]

    def test_complete_without_system_prompt(self):
        """Test that no system param is sent when there is no system message."""
        adapter, mock_client = self._adapter_with_client()
        mock_client.messages.create.return_value = MagicMock(
            content=[], stop_reason=None
        )

        adapter.complete(make_request(messages=[{"role": "user", "content": "Hi"}]))

        assert "system" not in mock_client.messages.create.call_args.kwargs

    def test_rate_limit_error(self):
        adapter, mock_client = self._adapter_with_client()
        mock_client.messages.create.side_effect = Exception("rate_limit: Rate limit reached")

        with pytest.raises(RateLimitError) as exc_info:
            adapter.complete(make_request())

        assert exc_info.value.provider == "anthropic"

    def test_streaming(self):
        """Test streaming yields text deltas and a final usage chunk."""
        adapter, mock_client = self._adapter_with_client()
        mock_stream = MagicMock()
        mock_stream.text_stream = iter(["Hello", " world"])
        mock_stream.get_final_message.return_value.usage.input_tokens = 5
        mock_stream.get_final_message.return_value.usage.output_tokens = 2
        mock_client.messages.stream.return_value.__enter__.return_value = mock_stream

        chunks = list(adapter.complete_streaming(make_request()))

        assert [c.content for c in chunks] == ["Hello", " world", ""]
        assert chunks[-1].done is True
        assert chunks[-1].usage == {"input": 5, "output": 2}
        mock_client.messages.stream.return_value.__exit__.assert_called_once()

    def test_closing_stream_exits_sdk_context(self):
        """Test that closing the generator early releases the SDK stream."""
        adapter, mock_client = self._adapter_with_client()
        mock_stream = MagicMock()
        mock_stream.text_stream = iter(["a", "b", "c"])
        mock_client.messages.stream.return_value.__enter__.return_value = mock_stream

        chunks = adapter.complete_streaming(make_request())
        next(chunks)
        chunks.close()

        mock_client.messages.stream.return_value.__exit__.assert_called_once()

    def test_health_check(self):
        adapter, mock_client = self._adapter_with_client()

        health = adapter.health_check()

        assert health.healthy is True
        mock_client.models.list.assert_called_once_with(limit=1)


class TestOpenAIAdapter:
    """Tests for OpenAIAdapter."""

    def test_init_default_values(self):
        adapter = OpenAIAdapter(api_key="test-key")

        assert adapter.default_model == "gpt-4o"
        assert adapter.provider_id == "openai"
        assert adapter.label == "OpenAI"

    def test_deepseek_variant(self):
        adapter = OpenAIAdapter(
            api_key="test-key",
            default_model="deepseek-chat",
            base_url="https://api.deepseek.com",
            provider_id="deepseek",
            models=DEEPSEEK_MODELS,
        )

        assert adapter.provider_id == "deepseek"
        assert adapter.label == "DeepSeek"
        assert adapter.supports_model("deepseek-reasoner")
        assert not adapter.supports_model("gpt-4o")

    def test_client_property_requires_api_key(self):
        adapter = OpenAIAdapter(api_key=None)

        with pytest.raises(APIKeyMissingError):
            _ = adapter.client

    @patch("ai_agent.llm.openai_client.OpenAISDK")
    def test_client_passes_base_url(self, mock_openai):
        adapter = OpenAIAdapter(api_key="test-key", base_url="https://example.test/v1")

        _ = adapter.client

        mock_openai.assert_called_once_with(api_key="test-key", base_url="https://example.test/v1")

    @patch("ai_agent.llm.openai_client.OpenAISDK")
    def test_complete(self, mock_openai):
        """Test a blocking completion."""
        mock_response = MagicMock()
        mock_response.choices = [MagicMock()]
        mock_response.choices[0].message.content = "OpenAI says hi"
        mock_response.choices[0].finish_reason = "stop"
        mock_response.usage.prompt_tokens = 7
        mock_response.usage.completion_tokens = 3
        mock_openai.return_value.chat.completions.create.return_value = mock_response

        adapter = OpenAIAdapter(api_key="test-key")
        result = adapter.complete(make_request())

        assert result.content == "OpenAI says hi"
        assert result.provider == "openai"
        assert result.usage == {"input": 7, "output": 3}

        messages = mock_openai.return_value.chat.completions.create.call_args.kwargs["messages"]
        assert messages[0] == {"role": "system", "content": "Be concise."}
        assert messages[1] == {"role": "user", "content": "Hello"}

    @patch("ai_agent.llm.openai_client.OpenAISDK")
    def test_complete_generic_error(self, mock_openai):
        mock_openai.return_value.chat.completions.create.side_effect = Exception("Bad gateway")

        adapter = OpenAIAdapter(api_key="test-key")
        with pytest.raises(ProviderError) as exc_info:
            adapter.complete(make_request())

        assert exc_info.value.provider == "openai"
        assert str(exc_info.value.cause) == "Bad gateway"

    @patch("ai_agent.llm.openai_client.OpenAISDK")
    def test_streaming(self, mock_openai):
        """Test streaming with usage on the final chunk."""

        def delta_chunk(text):
            chunk = MagicMock()
            chunk.choices = [MagicMock()]
            chunk.choices[0].delta.content = text
            chunk.usage = None
            return chunk

        usage_chunk = MagicMock()
        usage_chunk.choices = []
        usage_chunk.usage.prompt_tokens = 4
        usage_chunk.usage.completion_tokens = 2

        mock_stream = MagicMock()
        mock_stream.__iter__.return_value = iter(
            [delta_chunk("Hello"), delta_chunk(" there"), usage_chunk]
        )
        mock_openai.return_value.chat.completions.create.return_value = mock_stream

        adapter = OpenAIAdapter(api_key="test-key")
        chunks = list(adapter.complete_streaming(make_request()))

        assert [c.content for c in chunks] == ["Hello", " there", ""]
        assert chunks[-1].done is True
        assert chunks[-1].usage == {"input": 4, "output": 2}
        mock_stream.close.assert_called_once()

        kwargs = mock_openai.return_value.chat.completions.create.call_args.kwargs
        assert kwargs["stream"] is True
        assert kwargs["stream_options"] == {"include_usage": True}


class TestOllamaAdapter:
    """Tests for OllamaAdapter with a mocked requests session."""

    def test_complete(self):
        session = MagicMock()
        session.post.return_value.json.return_value = {
            "message": {"content": "Local answer"},
            "prompt_eval_count": 8,
            "eval_count": 4,
            "done_reason": "stop",
        }

        adapter = OllamaAdapter(base_url="http://ollama.test:11434/", session=session)
        result = adapter.complete(make_request())

        assert result.content == "Local answer"
        assert result.model == "llama3.2"
        assert result.usage == {"input": 8, "output": 4}
        url = session.post.call_args.args[0]
        assert url == "http://ollama.test:11434/api/chat"
        assert session.post.call_args.kwargs["json"]["stream"] is False

    def test_complete_transport_error(self):
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("refused")

        adapter = OllamaAdapter(session=session)
        with pytest.raises(ProviderError) as exc_info:
            adapter.complete(make_request())

        assert exc_info.value.provider == "ollama"

    def test_streaming_reads_ndjson(self):
        lines = [
            json.dumps({"message": {"content": "Hi"}, "done": False}),
            "",
            json.dumps({"message": {"content": " you"}, "done": False}),
            json.dumps({"done": True, "prompt_eval_count": 3, "eval_count": 2}),
        ]
        session = MagicMock()
        session.post.return_value.iter_lines.return_value = iter(lines)

        adapter = OllamaAdapter(session=session)
        chunks = list(adapter.complete_streaming(make_request()))

        assert [c.content for c in chunks] == ["Hi", " you", ""]
        assert chunks[-1].usage == {"input": 3, "output": 2}
        session.post.return_value.close.assert_called_once()

    def test_streaming_error_line(self):
        session = MagicMock()
        session.post.return_value.iter_lines.return_value = iter(
            [json.dumps({"error": "model not found"})]
        )

        adapter = OllamaAdapter(session=session)
        with pytest.raises(ProviderError, match="model not found"):
            list(adapter.complete_streaming(make_request()))

    def test_health_check_lists_installed_models(self):
        session = MagicMock()
        session.get.return_value.ok = True
        session.get.return_value.json.return_value = {"models": [{"name": "llama3.2:latest"}]}

        health = OllamaAdapter(session=session).health_check()

        assert health.healthy is True
        assert health.details["installed_models"] == ["llama3.2:latest"]

    def test_health_check_not_ok(self):
        session = MagicMock()
        session.get.return_value.ok = False
        session.get.return_value.status_code = 500

        health = OllamaAdapter(session=session).health_check()

        assert health.healthy is False
        assert "500" in health.error
