"""
Skill Store

In-memory catalog of loaded skills: lookup by id, grouping by category and
relevance search.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from .models import Skill, SkillSearchResult
from .sources import DirectorySkillSource, SkillSource

if TYPE_CHECKING:
    from flask import Flask

logger = logging.getLogger(__name__)

# Relevance weights
SCORE_EXACT = 100
SCORE_NAME_CONTAINS = 40
SCORE_CATEGORY = 20
SCORE_WORD_IN_NAME = 10
SCORE_WORD_IN_DESCRIPTION = 5
SCORE_WORD_IN_CONTENT = 1
MIN_WORD_LENGTH = 3


class SkillStore:
    """
    Loads skills from a source at most once and answers catalog queries.

    Usage:
        store = SkillStore(DirectorySkillSource(['/srv/skills']))
        store.load_all()
        skill = store.get('latex-table-formatter')
        results = store.search('latex table', limit=5)
    """

    def __init__(self, source: SkillSource):
        self.source = source
        self._skills: list[Skill] = []
        self._by_id: dict[str, Skill] = {}
        self._loaded = False
        self._lock = threading.Lock()

    def load_all(self) -> list[Skill]:
        """Load skills from the source. Later calls reuse the first load."""
        if self._loaded:
            return list(self._skills)

        with self._lock:
            if not self._loaded:
                self._index(self.source.load())
                self._loaded = True
        return list(self._skills)

    def reload(self) -> list[Skill]:
        """Re-scan the source, replacing the catalog."""
        with self._lock:
            self._index(self.source.load())
            self._loaded = True
        logger.info(f"Skill catalog reloaded ({len(self._skills)} skills)")
        return list(self._skills)

    def _index(self, skills: list[Skill]) -> None:
        by_id: dict[str, Skill] = {}
        for skill in skills:
            if skill.id in by_id:
                logger.warning(f"Duplicate skill id {skill.id}, keeping first")
                continue
            by_id[skill.id] = skill
        # Readers see either the old or the new catalog
        self._skills = list(by_id.values())
        self._by_id = by_id

    def all(self) -> list[Skill]:
        self.load_all()
        return list(self._skills)

    def get(self, skill_id: str) -> Skill | None:
        """Exact id lookup."""
        self.load_all()
        return self._by_id.get(skill_id)

    def by_category(self) -> dict[str, list[Skill]]:
        """Group skills by category in catalog order, omitting empty categories."""
        from . import CATEGORY_ORDER

        self.load_all()
        grouped: dict[str, list[Skill]] = {}
        for skill in self._skills:
            grouped.setdefault(skill.category, []).append(skill)

        ordered = {name: grouped.pop(name) for name in CATEGORY_ORDER if name in grouped}
        # Custom categories from frontmatter follow the known ones
        for name in sorted(grouped):
            ordered[name] = grouped[name]
        return ordered

    def search(self, query: str, limit: int = 10) -> list[SkillSearchResult]:
        """
        Rank skills against a free-text query.

        Returns only skills with a positive score, best first; ties keep
        catalog order.
        """
        query = (query or "").strip().lower()
        if not query or limit <= 0:
            return []

        self.load_all()
        words = [w for w in query.split() if len(w) >= MIN_WORD_LENGTH]

        scored: list[tuple[int, int, Skill]] = []
        for position, skill in enumerate(self._skills):
            score = self._score(skill, query, words)
            if score > 0:
                scored.append((-score, position, skill))

        scored.sort(key=lambda item: (item[0], item[1]))
        return [SkillSearchResult(skill=skill, score=-neg) for neg, _, skill in scored[:limit]]

    def _score(self, skill: Skill, query: str, words: list[str]) -> int:
        name = skill.name.lower()
        description = skill.description.lower()
        content = skill.content.lower()
        score = 0

        if query == name or query == skill.id.lower():
            score += SCORE_EXACT
        elif query in name:
            score += SCORE_NAME_CONTAINS

        category_words = [w for w in skill.category.lower().replace("&", " ").split() if w]
        if any(w in query.split() for w in category_words):
            score += SCORE_CATEGORY

        for word in words:
            if word in name:
                score += SCORE_WORD_IN_NAME
            if word in description:
                score += SCORE_WORD_IN_DESCRIPTION
            if word in content:
                score += SCORE_WORD_IN_CONTENT

        return score

    def get_reference(self, skill: Skill | str, ref_name: str) -> str | None:
        """Content of a skill's named reference document, or None."""
        if isinstance(skill, str):
            skill = self.get(skill)
            if skill is None:
                return None
        reference = skill.find_reference(ref_name)
        if reference is None:
            return None
        return reference.resolve()


# Module-level store instance
_skill_store: SkillStore | None = None


def get_skill_store() -> SkillStore | None:
    """Get the configured skill store singleton."""
    return _skill_store


def init_skill_store(app: Flask) -> SkillStore:
    """Initialize the skill store from app config and load the catalog."""
    global _skill_store

    directories = app.config.get("SKILLS_DIRS") or []
    _skill_store = SkillStore(DirectorySkillSource(directories))
    _skill_store.load_all()
    logger.info(f"Skill store initialized with {len(_skill_store.all())} skills")
    return _skill_store
