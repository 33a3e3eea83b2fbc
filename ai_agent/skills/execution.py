"""
Skill Execution

Runs one skill against user input through the completion gateway.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..llm.models import CompletionOptions, CompletionRequest
from .prompt_builder import PromptBuilder

if TYPE_CHECKING:
    from flask import Flask

    from ..llm.gateway import CompletionGateway
    from .store import SkillStore

logger = logging.getLogger(__name__)


class SkillExecutionError(Exception):
    """Base exception for skill execution."""


class SkillNotFoundError(SkillExecutionError):
    """Raised when the skill id is not in the catalog."""

    def __init__(self, skill_id: str):
        super().__init__(f"Skill not found: {skill_id}")
        self.skill_id = skill_id


class InvalidInputError(SkillExecutionError):
    """Raised when the input is missing, blank or not text."""


@dataclass
class SkillExecutionResult:
    """Outcome of one skill execution."""

    skill_id: str
    skill_name: str
    result: str
    model: str
    provider: str = ""
    usage: dict[str, int] = field(default_factory=lambda: {"input": 0, "output": 0})

    def to_dict(self) -> dict[str, Any]:
        return {
            "skillId": self.skill_id,
            "skillName": self.skill_name,
            "result": self.result,
            "usage": self.usage,
            "model": self.model,
        }


class SkillExecutionService:
    """
    Executes skills.

    Usage:
        service = SkillExecutionService(store, gateway)
        result = service.execute('latex-table-formatter', 'a,b\\n1,2')
    """

    def __init__(
        self,
        store: SkillStore,
        gateway: CompletionGateway,
        prompt_builder: PromptBuilder | None = None,
        max_tokens: int = 8192,
        temperature: float = 0.7,
    ):
        self.store = store
        self.gateway = gateway
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.max_tokens = max_tokens
        self.temperature = temperature

    def execute(
        self,
        skill_id: str,
        input_text: Any,
        context: dict[str, Any] | None = None,
        provider: str | None = None,
        model: str | None = None,
        user_id: str | None = None,
        project_id: str | None = None,
    ) -> SkillExecutionResult:
        """
        Execute a skill with one non-streaming completion.

        Raises:
            SkillNotFoundError: Unknown skill id
            InvalidInputError: Input is not a non-blank string
            ProviderNotFoundError, ProviderError: Propagated from the gateway
        """
        skill = self.store.get(skill_id)
        if skill is None:
            raise SkillNotFoundError(skill_id)

        if not isinstance(input_text, str) or not input_text.strip():
            raise InvalidInputError("Input is required")

        system_prompt = self.prompt_builder.build(skill, context)
        request = CompletionRequest(
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": input_text},
            ],
            model=model,
            provider=provider,
            options=CompletionOptions(max_tokens=self.max_tokens, temperature=self.temperature),
            user_id=user_id,
            project_id=project_id,
        )

        logger.info(f"Executing skill {skill.id} for user={user_id} project={project_id}")
        completion = self.gateway.complete(request)

        return SkillExecutionResult(
            skill_id=skill.id,
            skill_name=skill.name,
            result=completion.content,
            model=completion.model,
            provider=completion.provider,
            usage=completion.usage,
        )


# Module-level service instance
_execution_service: SkillExecutionService | None = None


def get_skill_execution_service() -> SkillExecutionService | None:
    """Get the configured skill execution service singleton."""
    return _execution_service


def init_skill_execution_service(app: Flask) -> SkillExecutionService | None:
    """
    Wire the execution service to the skill store and gateway.

    Returns None when either dependency has not been initialized.
    """
    global _execution_service

    from ..llm.gateway import get_gateway
    from .store import get_skill_store

    store = get_skill_store()
    gateway = get_gateway()
    if store is None or gateway is None:
        logger.warning("Skill execution unavailable: store or gateway not initialized")
        _execution_service = None
        return None

    _execution_service = SkillExecutionService(
        store,
        gateway,
        max_tokens=app.config.get("SKILL_MAX_TOKENS", 8192),
        temperature=app.config.get("AI_TEMPERATURE", 0.7),
    )
    return _execution_service
