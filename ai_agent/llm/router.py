"""
Model Router

Advisory model recommendations by task type and user tier. The gateway never
consults the router on its own; clients ask for a recommendation and then pass
the provider/model explicitly.
"""

from __future__ import annotations

TIERS = ("free", "pro", "team", "enterprise")

RECOMMENDATIONS: dict[str, dict[str, dict[str, str]]] = {
    "simple-edit": {
        "free": {"provider": "anthropic", "model": "claude-3-5-haiku"},
        "pro": {"provider": "anthropic", "model": "claude-sonnet-4"},
        "team": {"provider": "anthropic", "model": "claude-sonnet-4"},
        "enterprise": {"provider": "anthropic", "model": "claude-sonnet-4"},
    },
    "scientific-analysis": {
        "free": {"provider": "anthropic", "model": "claude-3-5-haiku"},
        "pro": {"provider": "anthropic", "model": "claude-sonnet-4"},
        "team": {"provider": "anthropic", "model": "claude-sonnet-4"},
        "enterprise": {"provider": "anthropic", "model": "claude-opus-4"},
    },
    "latex-generation": {
        "free": {"provider": "deepseek", "model": "deepseek-chat"},
        "pro": {"provider": "anthropic", "model": "claude-sonnet-4"},
        "team": {"provider": "anthropic", "model": "claude-sonnet-4"},
        "enterprise": {"provider": "anthropic", "model": "claude-sonnet-4"},
    },
    "literature-search": {
        "free": {"provider": "anthropic", "model": "claude-3-5-haiku"},
        "pro": {"provider": "anthropic", "model": "claude-sonnet-4"},
        "team": {"provider": "anthropic", "model": "claude-sonnet-4"},
        "enterprise": {"provider": "anthropic", "model": "claude-opus-4"},
    },
    "peer-review": {
        "free": {"provider": "ollama", "model": "llama3.2"},
        "pro": {"provider": "anthropic", "model": "claude-sonnet-4"},
        "team": {"provider": "anthropic", "model": "claude-opus-4"},
        "enterprise": {"provider": "anthropic", "model": "claude-opus-4"},
    },
    "code-generation": {
        "free": {"provider": "deepseek", "model": "deepseek-chat"},
        "pro": {"provider": "openai", "model": "gpt-4o"},
        "team": {"provider": "anthropic", "model": "claude-sonnet-4"},
        "enterprise": {"provider": "anthropic", "model": "claude-sonnet-4"},
    },
    "translation": {
        "free": {"provider": "ollama", "model": "qwen2.5"},
        "pro": {"provider": "anthropic", "model": "claude-sonnet-4"},
        "team": {"provider": "anthropic", "model": "claude-sonnet-4"},
        "enterprise": {"provider": "anthropic", "model": "claude-sonnet-4"},
    },
}

DEFAULT_RECOMMENDATION = RECOMMENDATIONS["simple-edit"]

# Checked in order; first match wins
TASK_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("peer-review", ("review", "critique", "feedback")),
    ("latex-generation", ("latex", "equation", "table", "figure")),
    ("literature-search", ("research", "literature", "citation", "reference")),
    ("scientific-analysis", ("analyze", "analysis", "interpret")),
    ("translation", ("translate", "translation")),
    ("code-generation", ("code", "script", "algorithm")),
    ("simple-edit", ("improve", "rewrite", "edit")),
]


class ModelRouter:
    """Recommends a provider/model pair for a task."""

    def __init__(self, recommendations: dict[str, dict[str, dict[str, str]]] | None = None):
        self.recommendations = recommendations or RECOMMENDATIONS

    def task_types(self) -> list[str]:
        return list(self.recommendations.keys())

    def detect_task_type(self, message: str) -> str:
        """Classify a user message into a task type by keyword."""
        lower = (message or "").lower()
        for task_type, keywords in TASK_KEYWORDS:
            if any(keyword in lower for keyword in keywords):
                return task_type
        return "simple-edit"

    def recommend(self, task_type: str, tier: str = "free") -> dict[str, str]:
        """
        Recommend a provider/model for a task.

        Unknown task types use the default table; unknown tiers fall back to
        the free tier.
        """
        table = self.recommendations.get(task_type, DEFAULT_RECOMMENDATION)
        return dict(table.get(tier) or table["free"])
