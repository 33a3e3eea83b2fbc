"""
Document View

The slice of a live editor document that the patch controller depends on,
plus a plain-text implementation used server-side and in tests.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True)
class DocumentRange:
    """Half-open character range [start, end) in a document."""

    start: int
    end: int

    def __post_init__(self):
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"Invalid document range: {self.start}-{self.end}")

    @property
    def empty(self) -> bool:
        return self.start == self.end

    def within(self, length: int) -> bool:
        return 0 <= self.start <= self.end <= length


@runtime_checkable
class DocumentView(Protocol):
    """What a document must offer for patches to be previewed and applied."""

    @property
    def length(self) -> int: ...

    @property
    def selection(self) -> DocumentRange | None: ...

    @property
    def cursor(self) -> int: ...

    def slice(self, start: int, end: int) -> str: ...

    def line_at(self, position: int) -> DocumentRange: ...

    def replace(
        self,
        start: int,
        end: int,
        text: str,
        annotations: dict[str, Any] | None = None,
    ) -> None:
        """Replace [start, end) with text as a single transaction."""
        ...


ChangeListener = Callable[["TextDocument", dict[str, Any]], None]


class TextDocument:
    """
    In-memory DocumentView.

    Every replace() is one transaction: the version is bumped and change
    listeners see the transaction after the text has been updated.
    """

    def __init__(self, text: str = "", selection: DocumentRange | None = None):
        self._text = text
        self._selection = selection
        self._cursor = 0
        self.version = 0
        self._listeners: list[ChangeListener] = []
        self._ready_callbacks: list[Callable[[TextDocument], None]] = []
        self._ready = False

    @property
    def text(self) -> str:
        return self._text

    @property
    def length(self) -> int:
        return len(self._text)

    @property
    def selection(self) -> DocumentRange | None:
        return self._selection

    @property
    def cursor(self) -> int:
        return self._cursor

    def select(self, start: int, end: int) -> None:
        selection = DocumentRange(start, end)
        if not selection.within(self.length):
            raise ValueError(f"Selection {start}-{end} outside document of length {self.length}")
        self._selection = None if selection.empty else selection
        self._cursor = end

    def move_cursor(self, position: int) -> None:
        self._cursor = max(0, min(position, self.length))
        self._selection = None

    def slice(self, start: int, end: int) -> str:
        return self._text[start:end]

    def line_at(self, position: int) -> DocumentRange:
        position = max(0, min(position, self.length))
        start = self._text.rfind("\n", 0, position) + 1
        end = self._text.find("\n", position)
        if end == -1:
            end = self.length
        return DocumentRange(start, end)

    def replace(
        self,
        start: int,
        end: int,
        text: str,
        annotations: dict[str, Any] | None = None,
    ) -> None:
        if not DocumentRange(start, end).within(self.length):
            raise ValueError(f"Range {start}-{end} outside document of length {self.length}")

        self._text = self._text[:start] + text + self._text[end:]
        self._selection = None
        self._cursor = start + len(text)
        self.version += 1

        transaction = {
            "from": start,
            "to": end,
            "insert": text,
            "version": self.version,
            "annotations": dict(annotations or {}),
        }
        for listener in list(self._listeners):
            listener(self, transaction)

    def insert(self, position: int, text: str) -> None:
        self.replace(position, position, text)

    def on_change(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a change listener. Returns a function that removes it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def on_ready(self, callback: Callable[[TextDocument], None]) -> None:
        """Run callback once the document is ready (immediately if it already is)."""
        if self._ready:
            callback(self)
            return
        self._ready_callbacks.append(callback)

    def mark_ready(self) -> None:
        if self._ready:
            return
        self._ready = True
        callbacks, self._ready_callbacks = self._ready_callbacks, []
        for callback in callbacks:
            callback(self)
