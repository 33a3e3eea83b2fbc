"""
Editor Module

Previewing and applying assistant output on a live document.

Usage:
    from ai_agent.editor import DocumentPatchController, TextDocument

    document = TextDocument("The results was significant.")
    document.select(0, 28)

    controller = DocumentPatchController(document)
    controller.open_preview("```latex\\nThe results were significant.\\n```")
    controller.commit()
"""

from .diff import DiffChange, diff_stats, word_diff
from .document import DocumentRange, DocumentView, TextDocument
from .patch import (
    DocumentPatchController,
    InlineEditSession,
    PatchProposal,
    PatchState,
    StalePatchError,
    TrackedChange,
    normalize_proposed_text,
)

__all__ = [
    "DocumentRange",
    "DocumentView",
    "TextDocument",
    "DiffChange",
    "word_diff",
    "diff_stats",
    "DocumentPatchController",
    "InlineEditSession",
    "PatchProposal",
    "PatchState",
    "StalePatchError",
    "TrackedChange",
    "normalize_proposed_text",
]
