"""
Document Patch Controller

Turns a completion result into a single edit on a live document:

    IDLE --open_preview--> PREVIEWING --commit--> APPLYING --> IDLE
                           PREVIEWING --cancel_preview--> IDLE

A proposal captures its target range and the text in it when the preview
opens. If the document changed in the meantime the commit is rejected with
StalePatchError; the patch is never re-anchored.

One controller serves one editor session and is not safe for concurrent use.
"""

from __future__ import annotations

import enum
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .diff import DiffChange, diff_stats, word_diff
from .document import DocumentRange, DocumentView

logger = logging.getLogger(__name__)

APPLY_USER_EVENT = "ai-apply"
DEFAULT_AUTHOR = "ai-assistant"

CODE_FENCE_PATTERN = re.compile(r"```[\w+-]*[ \t]*\n?(.*?)\n?```", re.DOTALL)
# An opening or closing fence line left without its partner
STRAY_FENCE_PATTERN = re.compile(r"^[ \t]*```[\w+-]*[ \t]*$\n?", re.MULTILINE)


class StalePatchError(Exception):
    """The document changed after the preview opened; the patch was not applied."""

    def __init__(self, message: str = "Document changed since the preview was opened; redo the preview"):
        super().__init__(message)


class PatchState(enum.Enum):
    IDLE = "idle"
    PREVIEWING = "previewing"
    APPLYING = "applying"


def normalize_proposed_text(text: str) -> str:
    """
    Remove markdown code fence markers (any language tag) and surrounding
    whitespace. Every fenced body and any text around the fences is kept.
    """
    text = CODE_FENCE_PATTERN.sub(lambda m: m.group(1), text or "")
    text = STRAY_FENCE_PATTERN.sub("", text)
    return text.strip()


@dataclass(frozen=True)
class PatchProposal:
    """A captured, not yet committed replacement of one document range."""

    range: DocumentRange
    original_text: str
    proposed_text: str
    document_length: int
    with_track_changes: bool = False

    def diff(self) -> list[DiffChange]:
        return word_diff(self.original_text, self.proposed_text)

    def diff_stats(self) -> dict[str, int]:
        return diff_stats(self.diff())


@dataclass(frozen=True)
class TrackedChange:
    """Announcement of an assistant edit for change tracking."""

    start: int
    end: int
    content: str
    author: str = DEFAULT_AUTHOR

    def to_dict(self) -> dict[str, Any]:
        return {"from": self.start, "to": self.end, "content": self.content, "author": self.author}


@dataclass(frozen=True)
class InlineEditSession:
    is_open: bool = False
    position: DocumentRange | None = None


TrackedChangeListener = Callable[[TrackedChange], None]


class DocumentPatchController:
    """
    Previews and commits assistant edits against one document view.

    Usage:
        controller = DocumentPatchController(document)
        controller.subscribe(track_changes.record)
        controller.open_preview(result.content, with_track_changes=True)
        controller.commit()
    """

    def __init__(self, view: DocumentView | None = None, author: str = DEFAULT_AUTHOR):
        self._view = view
        self.author = author
        self._state = PatchState.IDLE
        self._proposal: PatchProposal | None = None
        self._listeners: list[TrackedChangeListener] = []

    @property
    def view(self) -> DocumentView | None:
        return self._view

    @property
    def state(self) -> PatchState:
        return self._state

    @property
    def proposal(self) -> PatchProposal | None:
        return self._proposal

    @property
    def session(self) -> InlineEditSession:
        if self._state is PatchState.IDLE or self._proposal is None:
            return InlineEditSession()
        return InlineEditSession(is_open=True, position=self._proposal.range)

    def attach(self, view: DocumentView) -> None:
        """Bind the controller to a view that became ready after construction."""
        if self._view is not view:
            self._reset()
        self._view = view

    def detach(self) -> None:
        self._view = None
        self._reset()

    def subscribe(self, listener: TrackedChangeListener) -> Callable[[], None]:
        """
        Register a tracked-change listener.

        Listeners are called in registration order. Returns a function that
        unregisters the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def open_preview(self, text: str, with_track_changes: bool = False) -> PatchProposal | None:
        """
        Capture the target range and hold ``text`` as its proposed replacement.

        The target is the current selection, or the caret's line when nothing
        is selected (an empty selection marks the caret). An existing proposal is replaced wholesale. Returns None
        (and changes nothing) when no view is attached.
        """
        view = self._view
        if view is None:
            logger.warning("Cannot open preview: no document view attached")
            return None

        target = view.selection
        if target is None:
            target = view.line_at(view.cursor)
        elif target.empty:
            target = view.line_at(target.start)

        if self._proposal is not None:
            logger.debug("Replacing open preview at %s", self._proposal.range)

        self._proposal = PatchProposal(
            range=target,
            original_text=view.slice(target.start, target.end),
            proposed_text=normalize_proposed_text(text),
            document_length=view.length,
            with_track_changes=with_track_changes,
        )
        self._state = PatchState.PREVIEWING
        return self._proposal

    def cancel_preview(self) -> None:
        """Discard the proposal. Never touches the document."""
        self._reset()

    def commit(self, with_track_changes: bool | None = None) -> PatchProposal | None:
        """
        Apply the open proposal as one document transaction.

        Returns the applied proposal, or None when no preview is open.

        Raises:
            StalePatchError: The document changed since the preview opened;
                nothing was applied.
        """
        if self._state is not PatchState.PREVIEWING or self._proposal is None:
            return None

        proposal = self._proposal
        tracked = proposal.with_track_changes if with_track_changes is None else with_track_changes
        self._state = PatchState.APPLYING

        try:
            view = self._view
            self._check_fresh(view, proposal)
            view.replace(
                proposal.range.start,
                proposal.range.end,
                proposal.proposed_text,
                {"user_event": APPLY_USER_EVENT, "track_changes": tracked},
            )
        finally:
            self._reset()

        logger.info(
            "Applied patch at %d-%d (%d chars)",
            proposal.range.start,
            proposal.range.end,
            len(proposal.proposed_text),
        )

        if tracked:
            self._publish(
                TrackedChange(
                    start=proposal.range.start,
                    end=proposal.range.start + len(proposal.proposed_text),
                    content=proposal.proposed_text,
                    author=self.author,
                )
            )
        return proposal

    def _check_fresh(self, view: DocumentView | None, proposal: PatchProposal) -> None:
        if view is None:
            raise StalePatchError("Document view detached before commit")
        if view.length != proposal.document_length:
            logger.warning(
                "Rejecting stale patch: length %d != %d", view.length, proposal.document_length
            )
            raise StalePatchError()
        if not proposal.range.within(view.length):
            raise StalePatchError()
        if view.slice(proposal.range.start, proposal.range.end) != proposal.original_text:
            logger.warning("Rejecting stale patch: captured text changed")
            raise StalePatchError()

    def _publish(self, change: TrackedChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception("Tracked change listener failed")

    def _reset(self) -> None:
        self._proposal = None
        self._state = PatchState.IDLE
