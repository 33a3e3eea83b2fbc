"""
Chat Blueprint

Free-form chat and model listing endpoints.

Endpoints:
- POST /api/chat - Send message and get a response
- POST /api/chat/stream - Send message with SSE streaming response
- GET /api/models - Registered providers and their models
- GET /api/models/recommend - Recommended provider/model for a task
"""

import json
import logging

from flask import Blueprint, Response, current_app, jsonify, request

from ai_agent.llm import (
    CompletionOptions,
    CompletionRequest,
    ModelRouter,
    ProviderError,
    ProviderNotFoundError,
    get_gateway,
)
from ai_agent.llm.router import TIERS
from ai_agent.skills import PromptBuilder

logger = logging.getLogger(__name__)

chat_bp = Blueprint("chat", __name__)

MAX_MESSAGE_LENGTH = 32000

model_router = ModelRouter()


def _gateway_unavailable():
    return (
        jsonify({"error": "Chat service not available. AI provider may not be configured."}),
        503,
    )


def _provider_error_response(error):
    return (
        jsonify(
            {
                "error": "Completion failed",
                "provider": error.provider,
                "details": str(error.cause or error),
            }
        ),
        500,
    )


def validate_chat_request(data):
    """Validate common chat request parameters. Returns (error_response, status) or (None, None)."""
    if not isinstance(data, dict):
        return jsonify({"error": "JSON body required"}), 400

    message = data.get("message")
    if not isinstance(message, str) or not message.strip():
        return jsonify({"error": "Message is required"}), 400

    if len(message) > MAX_MESSAGE_LENGTH:
        return (
            jsonify({"error": f"Message too long. Maximum {MAX_MESSAGE_LENGTH} characters."}),
            400,
        )

    history = data.get("history", [])
    if not isinstance(history, list):
        return jsonify({"error": "History must be a list"}), 400

    for msg in history:
        if not isinstance(msg, dict):
            return jsonify({"error": "History entries must be objects"}), 400
        if "role" not in msg or "content" not in msg:
            return (
                jsonify({"error": "History entries must have 'role' and 'content' keys"}),
                400,
            )
        if msg["role"] not in ("user", "assistant"):
            return (
                jsonify({"error": "History role must be 'user' or 'assistant'"}),
                400,
            )

    context = data.get("context")
    if context is not None and not isinstance(context, dict):
        return jsonify({"error": "Context must be an object"}), 400

    return None, None


def build_chat_request(data):
    """Assemble the completion request for a validated chat payload."""
    system_prompt = current_app.config.get("DEFAULT_SYSTEM_PROMPT") or ""
    document_context = PromptBuilder.build_document_context(data.get("context"))
    if document_context:
        system_prompt = f"{system_prompt}\n\n{document_context}" if system_prompt else document_context

    messages = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.extend(
        {"role": msg["role"], "content": str(msg["content"])} for msg in data.get("history", [])
    )
    messages.append({"role": "user", "content": data["message"].strip()})

    return CompletionRequest(
        messages=messages,
        model=data.get("model"),
        provider=data.get("provider"),
        options=CompletionOptions(
            max_tokens=current_app.config.get("AI_MAX_TOKENS", 4096),
            temperature=current_app.config.get("AI_TEMPERATURE", 0.7),
        ),
        user_id=request.headers.get("X-User-Id"),
        project_id=request.headers.get("X-Project-Id"),
    )


def _sse(event, payload):
    return f"event: {event}\ndata: {json.dumps(payload)}\n\n"


# =============================================================================
# API Routes
# =============================================================================


@chat_bp.route("/api/chat", methods=["POST"])
def api_chat():
    """
    Send a message and get a response.

    Request (JSON):
        - message: User message (required)
        - history: Conversation history (optional)
        - provider: Provider id override (optional)
        - model: Model override (optional)
        - context: Editor context with the current selection (optional)

    Response:
        - response: AI response content
        - model: Model used
        - provider: Provider used
        - usage: Token usage stats
    """
    data = request.get_json(silent=True)

    error_response, status = validate_chat_request(data)
    if error_response:
        return error_response, status

    gateway = get_gateway()
    if gateway is None:
        return _gateway_unavailable()

    try:
        result = gateway.complete(build_chat_request(data))
    except ProviderNotFoundError as e:
        logger.error(f"Chat error: {e}")
        return jsonify({"error": str(e)}), 503
    except ProviderError as e:
        logger.error(f"Chat completion failed on {e.provider}: {e}")
        return _provider_error_response(e)

    return jsonify(
        {
            "response": result.content,
            "model": result.model,
            "provider": result.provider,
            "usage": result.usage,
        }
    )


@chat_bp.route("/api/chat/stream", methods=["POST"])
def api_chat_stream():
    """
    Send a message and get a streaming SSE response.

    Request (JSON): same as /api/chat

    Response (SSE):
        event: token
        data: {"content": "partial..."}

        event: done
        data: {"content": "full response", "model": "...", "provider": "...", "usage": {...}}

        event: error
        data: {"error": "...", "provider": "..."}

    The provider stream is cancelled when the client disconnects.
    """
    data = request.get_json(silent=True)

    error_response, status = validate_chat_request(data)
    if error_response:
        return error_response, status

    gateway = get_gateway()
    if gateway is None:
        return _gateway_unavailable()

    try:
        stream = gateway.complete_streaming(build_chat_request(data))
    except ProviderNotFoundError as e:
        logger.error(f"Chat stream error: {e}")
        return jsonify({"error": str(e)}), 503
    except ProviderError as e:
        logger.error(f"Chat stream failed on {e.provider}: {e}")
        return _provider_error_response(e)

    def generate():
        """Generate SSE events from stream."""
        try:
            for chunk in stream:
                if chunk.done:
                    result = stream.result
                    yield _sse(
                        "done",
                        {
                            "content": result.content,
                            "model": result.model,
                            "provider": result.provider,
                            "usage": result.usage,
                        },
                    )
                elif chunk.content:
                    yield _sse("token", {"content": chunk.content})
        except ProviderError as e:
            yield _sse(
                "error",
                {"error": str(e.cause or e), "provider": e.provider or stream.provider},
            )
        finally:
            # Runs on client disconnect too, when the server closes this generator
            stream.cancel()

    return Response(
        generate(),
        mimetype="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@chat_bp.route("/api/models", methods=["GET"])
def api_models():
    """
    Registered providers and their models.

    Response:
        - providers: Provider ids with a registered adapter
        - models: Models grouped by provider
        - default: {"provider": ..., "model": ...}
    """
    gateway = get_gateway()
    if gateway is None:
        return _gateway_unavailable()

    return jsonify(
        {
            "providers": gateway.available_providers(),
            "models": gateway.all_models(),
            "default": {
                "provider": gateway.default_provider,
                "model": gateway.default_model,
            },
        }
    )


@chat_bp.route("/api/models/recommend", methods=["GET"])
def api_recommend_model():
    """
    Recommend a provider/model.

    Query params:
        - task: Task type (optional; detected from message when absent)
        - message: Text to classify when no task is given (optional)
        - tier: User tier, one of free/pro/team/enterprise (default: free)
    """
    tier = request.args.get("tier", "free")
    if tier not in TIERS:
        return jsonify({"error": f"tier must be one of: {', '.join(TIERS)}"}), 400

    task_type = request.args.get("task") or model_router.detect_task_type(
        request.args.get("message", "")
    )
    recommendation = model_router.recommend(task_type, tier)

    gateway = get_gateway()
    available = gateway is not None and recommendation["provider"] in gateway.available_providers()

    return jsonify(
        {
            "taskType": task_type,
            "tier": tier,
            "recommendation": recommendation,
            "available": available,
        }
    )
