"""Word-level diff between an original passage and its proposed replacement."""

from __future__ import annotations

import difflib
import re
from dataclasses import dataclass

UNCHANGED = "unchanged"
ADDITION = "addition"
DELETION = "deletion"

# Words and the whitespace that follows them stay together
TOKEN_PATTERN = re.compile(r"\S+\s*|\s+")


@dataclass(frozen=True)
class DiffChange:
    type: str
    value: str


def tokenize(text: str) -> list[str]:
    return TOKEN_PATTERN.findall(text)


def word_diff(original: str, proposed: str) -> list[DiffChange]:
    """
    Diff two texts word by word.

    Concatenating the unchanged and deletion values gives back the original;
    unchanged and addition values give the proposed text.
    """
    old_tokens = tokenize(original)
    new_tokens = tokenize(proposed)
    matcher = difflib.SequenceMatcher(a=old_tokens, b=new_tokens, autojunk=False)

    changes: list[DiffChange] = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            _append(changes, UNCHANGED, "".join(old_tokens[i1:i2]))
            continue
        if tag in ("delete", "replace"):
            _append(changes, DELETION, "".join(old_tokens[i1:i2]))
        if tag in ("insert", "replace"):
            _append(changes, ADDITION, "".join(new_tokens[j1:j2]))
    return changes


def _append(changes: list[DiffChange], change_type: str, value: str) -> None:
    if not value:
        return
    if changes and changes[-1].type == change_type:
        changes[-1] = DiffChange(change_type, changes[-1].value + value)
    else:
        changes.append(DiffChange(change_type, value))


def diff_stats(changes: list[DiffChange]) -> dict[str, int]:
    """Count added, removed and unchanged words."""
    stats = {"additions": 0, "deletions": 0, "unchanged": 0}
    keys = {ADDITION: "additions", DELETION: "deletions", UNCHANGED: "unchanged"}
    for change in changes:
        stats[keys[change.type]] += len(change.value.split())
    return stats
