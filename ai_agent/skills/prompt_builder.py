"""
Prompt Builder

Turns a skill plus optional editor context into a system prompt. Output is a
pure function of its inputs.
"""

from __future__ import annotations

import re
from typing import Any

from .models import Skill

OVERVIEW_FALLBACK_CHARS = 4000

GUIDELINES = """## Guidelines
- Follow the skill instructions above precisely
- Keep the author's voice and meaning unless asked to change them
- Return only the requested output, without commentary
- Use LaTeX syntax when the document is a LaTeX source"""

BACKTICK_RUN = re.compile(r"`+")


def fence_for(text: str) -> str:
    """A backtick fence longer than any backtick run inside ``text``."""
    longest = max((len(run) for run in BACKTICK_RUN.findall(text)), default=0)
    return "`" * max(3, longest + 1)


class PromptBuilder:
    """Builds skill system prompts."""

    def build(self, skill: Skill, context: dict[str, Any] | None = None) -> str:
        """
        Build the system prompt for a skill.

        Args:
            skill: The skill to apply
            context: Optional editor context, e.g.
                {"doc_name": "main.tex", "selection": {"text": "...", "from": 0, "to": 10}}
        """
        instructions = skill.overview or skill.content[:OVERVIEW_FALLBACK_CHARS]

        sections = [
            f"You are an AI assistant specialized in: {skill.name}",
            f"## Skill Description\n{skill.description}",
            f"## Detailed Instructions\n{instructions}",
            GUIDELINES,
        ]

        document_context = self.build_document_context(context)
        if document_context:
            sections.append(document_context)

        return "\n\n".join(sections)

    @staticmethod
    def build_document_context(context: dict[str, Any] | None) -> str | None:
        """Document context block, or None when there is no selection."""
        if not context:
            return None
        selection = context.get("selection")
        if not selection:
            return None

        if isinstance(selection, dict):
            selected_text = str(selection.get("text") or "")
        else:
            selected_text = str(selection)

        lines = ["## Document Context", f"File: {context.get('doc_name') or 'Unknown'}"]
        if isinstance(selection, dict) and selection.get("from") is not None:
            lines.append(f"Range: {selection.get('from')}-{selection.get('to')}")

        fence = fence_for(selected_text)
        lines.append("Selected text:")
        lines.append(f"{fence}\n{selected_text}\n{fence}")
        return "\n".join(lines)
