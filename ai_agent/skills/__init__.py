"""
Skills System

Markdown-based skill playbooks (scientific analysis, writing, LaTeX) that
ground completions in a specific task domain.

Usage:
    from ai_agent.skills import SkillLoader, SkillStore, DirectorySkillSource

    # Load a single skill from file
    loader = SkillLoader()
    skill = loader.load_from_path('/path/to/latex-table-formatter/SKILL.md')

    # Index a skill library once at startup
    store = SkillStore(DirectorySkillSource(['/path/to/library']))
    store.load_all()
    results = store.search('format a results table', limit=5)

    # Build a system prompt and run it
    prompt = PromptBuilder().build(skill, {'selection': {'text': '...'}})
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

import yaml

from .models import Skill, SkillReference, SkillSearchResult

logger = logging.getLogger(__name__)

# Ordered: the first rule whose keywords occur in name + description wins
CATEGORY_RULES: list[tuple[str, tuple[str, ...]]] = [
    ("Scientific Writing", ("writing", "latex", "paper", "manuscript")),
    ("Bioinformatics", ("bio", "gene", "protein", "sequence")),
    ("Chemistry & Drug Discovery", ("chem", "drug", "molecule", "compound")),
    ("Clinical & Medical", ("clinical", "medical", "treatment", "patient")),
    ("Databases", ("database",)),
    ("Machine Learning", ("machine learning", "neural", "deep learning")),
    ("Visualization", ("plot", "visual", "chart", "figure")),
    ("Research Tools", ("research", "literature", "citation")),
    ("Data Analysis", ("data", "analysis", "statistic")),
]
DEFAULT_CATEGORY = "Other"
CATEGORY_ORDER = [name for name, _ in CATEGORY_RULES] + [DEFAULT_CATEGORY]

OVERVIEW_MAX_CHARS = 1000
UNSTRUCTURED_DESCRIPTION_CHARS = 500


def infer_category(name: str, description: str) -> str:
    """Guess a catalog category from a skill's name and description."""
    text = f"{name} {description}".lower()
    for category, keywords in CATEGORY_RULES:
        if any(keyword in text for keyword in keywords):
            return category
    return DEFAULT_CATEGORY


class SkillLoader:
    """
    Parses SKILL.md files into Skill objects.

    SKILL.md files use YAML frontmatter for metadata followed by markdown
    content for the skill instructions. Reference documents live next to the
    skill in a ``references/`` directory.

    Example SKILL.md format:
        ---
        name: latex-table-formatter
        description: Formats tabular data as publication-ready LaTeX tables
        category: Scientific Writing
        tier: free
        ---

        # LaTeX Table Formatter

        Instructions for the AI...
    """

    FRONTMATTER_PATTERN = re.compile(r"^---\s*\n(.*?)\n---\s*\n", re.DOTALL)
    # First paragraph under the top-level heading
    OVERVIEW_PATTERN = re.compile(r"^#[^#].*?\n\n([\s\S]*?)(?=\n##|\n$)", re.MULTILINE)

    def load_from_path(
        self,
        path: str | Path,
        skill_id: str | None = None,
        source: str = "library",
    ) -> Skill | None:
        """
        Parse a SKILL.md file into a Skill object.

        Args:
            path: Path to the SKILL.md file
            skill_id: Catalog id; defaults to the skill directory name
            source: Name of the library the skill came from

        Returns:
            Skill object or None if parsing fails
        """
        path_obj = Path(path)
        if not path_obj.exists():
            logger.warning(f"Skill file not found: {path_obj}")
            return None

        try:
            content = path_obj.read_text(encoding="utf-8")
        except OSError as e:
            logger.error(f"Error loading skill from {path}: {e}")
            return None

        skill_dir = path_obj.parent
        return self.load_from_content(
            content,
            skill_id=skill_id or skill_dir.name,
            path=str(skill_dir),
            source=source,
            references=self._discover_references(skill_dir),
        )

    def load_from_content(
        self,
        content: str,
        skill_id: str,
        path: str = "memory",
        source: str = "memory",
        references: tuple[SkillReference, ...] = (),
    ) -> Skill | None:
        """
        Parse SKILL.md content string into a Skill object.

        Content without frontmatter is accepted: the id doubles as the name
        and the opening text becomes the description.
        """
        metadata, body = self._parse_frontmatter(content)
        if metadata is None:
            return self._unstructured_skill(content, skill_id, path, source, references)
        if not isinstance(metadata, dict):
            logger.warning(f"Frontmatter is not a mapping in skill: {path}")
            return None

        name = str(metadata.get("name") or skill_id)
        description = str(metadata.get("description") or "")
        body = body.strip()
        overview = metadata.get("overview")
        overview = str(overview) if overview else self.extract_overview(body)
        category = metadata.get("category")

        return Skill(
            id=skill_id,
            name=name,
            description=description,
            content=body,
            category=str(category) if category else infer_category(name, description),
            tier=str(metadata.get("tier") or "free"),
            overview=overview,
            references=references,
            source=source,
            path=path,
        )

    def _unstructured_skill(
        self,
        content: str,
        skill_id: str,
        path: str,
        source: str,
        references: tuple[SkillReference, ...],
    ) -> Skill:
        description = content[:UNSTRUCTURED_DESCRIPTION_CHARS]
        return Skill(
            id=skill_id,
            name=skill_id,
            description=description,
            content=content,
            category=infer_category(skill_id, description),
            overview=self.extract_overview(content),
            references=references,
            source=source,
            path=path,
        )

    def _parse_frontmatter(self, content: str) -> tuple[Any, str]:
        """
        Extract YAML frontmatter and body from content.

        Returns:
            Tuple of (metadata, body) or (None, content) if there is no
            parseable frontmatter
        """
        match = self.FRONTMATTER_PATTERN.match(content)
        if not match:
            return None, content

        try:
            metadata = yaml.safe_load(match.group(1))
        except yaml.YAMLError as e:
            logger.error(f"YAML parse error in frontmatter: {e}")
            return None, content

        return metadata, content[match.end() :]

    def extract_overview(self, body: str) -> str | None:
        """Curated overview: the first paragraph under the top heading."""
        match = self.OVERVIEW_PATTERN.search(body)
        if not match:
            return None
        overview = match.group(1).strip()[:OVERVIEW_MAX_CHARS]
        return overview or None

    def _discover_references(self, skill_dir: Path) -> tuple[SkillReference, ...]:
        references_dir = skill_dir / "references"
        if not references_dir.is_dir():
            return ()
        return tuple(
            SkillReference(name=md_file.stem, path=str(md_file))
            for md_file in sorted(references_dir.glob("*.md"))
        )


# Export public API (must be after SkillLoader class definition)
from .execution import (  # noqa: E402
    InvalidInputError,
    SkillExecutionError,
    SkillExecutionResult,
    SkillExecutionService,
    SkillNotFoundError,
    get_skill_execution_service,
    init_skill_execution_service,
)
from .prompt_builder import PromptBuilder  # noqa: E402
from .sources import DirectorySkillSource, InMemorySkillSource, SkillSource  # noqa: E402
from .store import SkillStore, get_skill_store, init_skill_store  # noqa: E402

__all__ = [
    "SkillLoader",
    "infer_category",
    "Skill",
    "SkillReference",
    "SkillSearchResult",
    "SkillSource",
    "DirectorySkillSource",
    "InMemorySkillSource",
    "SkillStore",
    "get_skill_store",
    "init_skill_store",
    "PromptBuilder",
    "SkillExecutionService",
    "SkillExecutionResult",
    "SkillExecutionError",
    "SkillNotFoundError",
    "InvalidInputError",
    "get_skill_execution_service",
    "init_skill_execution_service",
]
