"""
Skills Data Models

Dataclasses for representing skills, their references, and search results.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SkillReference:
    """A named reference document attached to a skill, read on demand."""

    name: str
    path: str | None = None
    content: str | None = None

    def resolve(self) -> str | None:
        """Return the reference content, reading it from disk if needed."""
        if self.content is not None:
            return self.content
        if not self.path:
            return None
        try:
            return Path(self.path).read_text(encoding="utf-8")
        except OSError as e:
            logger.warning(f"Failed to read reference {self.name} ({self.path}): {e}")
            return None


@dataclass(frozen=True)
class Skill:
    """A complete skill. Immutable once loaded."""

    id: str
    name: str
    description: str
    content: str
    category: str = "Other"
    tier: str = "free"
    overview: str | None = None
    references: tuple[SkillReference, ...] = field(default_factory=tuple)
    source: str = "library"
    path: str = "memory"

    @property
    def reference_names(self) -> list[str]:
        return [ref.name for ref in self.references]

    def find_reference(self, name: str) -> SkillReference | None:
        for ref in self.references:
            if ref.name == name:
                return ref
        return None

    def to_summary(self) -> dict[str, Any]:
        """Short form used in listings."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description[:200],
            "category": self.category,
            "tier": self.tier,
            "source": self.source,
        }

    def to_dict(self) -> dict[str, Any]:
        """Convert skill to dictionary for API responses."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "tier": self.tier,
            "source": self.source,
            "overview": self.overview,
            "references": self.reference_names,
        }


@dataclass(frozen=True)
class SkillSearchResult:
    """A skill with its relevance score for a query (higher is better)."""

    skill: Skill
    score: int

    def to_dict(self) -> dict[str, Any]:
        return {**self.skill.to_summary(), "relevanceScore": self.score}
