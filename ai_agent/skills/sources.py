"""
Skill Sources

Where skills come from. A source enumerates skills once; the store decides
when to call it.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path

from .models import Skill

logger = logging.getLogger(__name__)

SKILL_FILENAME = "SKILL.md"
NESTED_ID_SEPARATOR = ":"


class SkillSource(ABC):
    """Abstract provider of skills."""

    @abstractmethod
    def load(self) -> list[Skill]:
        """Return every skill this source knows, in a stable order."""
        ...


class DirectorySkillSource(SkillSource):
    """
    Scans skill library directories.

    Layout:
        <dir>/<skill>/SKILL.md               -> id "<skill>"
        <dir>/<group>/<skill>/SKILL.md       -> id "<group>:<skill>"

    Directories are scanned in the given order and entries sorted by name, so
    load order is stable. When two skills share a name or id, the first one
    loaded wins.
    """

    def __init__(self, directories: Iterable[str | Path]):
        self.directories = [Path(d) for d in directories]

    def load(self) -> list[Skill]:
        # Imported here: the loader lives in the package __init__
        from . import SkillLoader

        loader = SkillLoader()
        skills: list[Skill] = []
        seen: set[str] = set()

        for directory in self.directories:
            if not directory.is_dir():
                logger.warning(f"Skills directory not found: {directory}")
                continue

            source = directory.name
            for skill_id, skill_file in self._scan(directory):
                skill = loader.load_from_path(skill_file, skill_id=skill_id, source=source)
                if skill is None:
                    continue
                if skill.name in seen or skill.id in seen:
                    logger.debug(f"Skipping duplicate skill {skill.id} from {directory}")
                    continue
                seen.update((skill.name, skill.id))
                skills.append(skill)

        logger.info(f"Loaded {len(skills)} skills from {len(self.directories)} directories")
        return skills

    def _scan(self, directory: Path) -> list[tuple[str, Path]]:
        found: list[tuple[str, Path]] = []
        for entry in sorted(directory.iterdir()):
            if not entry.is_dir() or entry.name.startswith("."):
                continue

            skill_file = entry / SKILL_FILENAME
            if skill_file.is_file():
                found.append((entry.name, skill_file))
                continue

            # One level of grouping only
            for nested in sorted(entry.iterdir()):
                nested_file = nested / SKILL_FILENAME
                if nested.is_dir() and nested_file.is_file():
                    found.append((f"{entry.name}{NESTED_ID_SEPARATOR}{nested.name}", nested_file))
        return found


class InMemorySkillSource(SkillSource):
    """Serves a fixed list of skills. Used by tests and embedders."""

    def __init__(self, skills: Iterable[Skill]):
        self._skills = list(skills)

    def load(self) -> list[Skill]:
        return list(self._skills)
