"""
LLM Data Models

Dataclasses for completion requests, results, streaming chunks and provider health.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class CompletionOptions:
    """Generation options shared by every provider."""

    max_tokens: int = 4096
    temperature: float = 0.7
    stream: bool = False


@dataclass
class CompletionRequest:
    """
    A provider-agnostic completion request.

    ``provider`` and ``model`` may be left unset, in which case the gateway
    falls back to its configured defaults. ``user_id`` and ``project_id`` are
    carried for accounting only.
    """

    messages: list[dict[str, str]]
    model: str | None = None
    provider: str | None = None
    options: CompletionOptions = field(default_factory=CompletionOptions)
    user_id: str | None = None
    project_id: str | None = None

    @property
    def system_prompt(self) -> str | None:
        """Concatenated content of all system messages, if any."""
        parts = [m["content"] for m in self.messages if m.get("role") == "system"]
        return "\n\n".join(parts) if parts else None

    @property
    def conversation(self) -> list[dict[str, str]]:
        """Messages without the system role."""
        return [
            {"role": m["role"], "content": m["content"]}
            for m in self.messages
            if m.get("role") != "system"
        ]


@dataclass
class CompletionResult:
    """Normalized response from a provider."""

    content: str
    model: str
    provider: str = ""
    usage: dict[str, int] = field(default_factory=lambda: {"input": 0, "output": 0})
    finish_reason: str = "stop"


@dataclass
class StreamChunk:
    """A single chunk from a streaming response."""

    content: str
    done: bool = False
    model: str = ""
    provider: str = ""
    usage: dict[str, int] = field(default_factory=dict)
    error: str | None = None


@dataclass
class ProviderHealth:
    """Result of one health probe against a provider."""

    healthy: bool
    error: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"healthy": self.healthy, **self.details}
        if self.error is not None:
            data["error"] = self.error
        return data
