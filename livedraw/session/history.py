"""Undo/redo history of generated outputs.

The history is an immutable value; every operation returns a new
``OutputHistory`` so transitions can be tested without a running session.
Entries are image references (stored filenames), most recent first.
"""
from dataclasses import dataclass
from typing import Optional

DEFAULT_HISTORY_LIMIT = 10


@dataclass(frozen=True)
class OutputHistory:
    entries: tuple[str, ...] = ()
    cursor: int = -1
    limit: int = DEFAULT_HISTORY_LIMIT

    def __post_init__(self):
        if self.limit < 1:
            raise ValueError("history limit must be at least 1")
        if len(self.entries) > self.limit:
            raise ValueError("history holds more entries than its limit")
        if self.entries:
            if not 0 <= self.cursor < len(self.entries):
                raise ValueError(f"cursor {self.cursor} out of range")
        elif self.cursor != -1:
            raise ValueError("cursor must be -1 for an empty history")

    @property
    def current(self) -> Optional[str]:
        """The displayed reference, or None when empty."""
        if self.cursor < 0:
            return None
        return self.entries[self.cursor]

    @property
    def can_undo(self) -> bool:
        return 0 <= self.cursor < len(self.entries) - 1

    @property
    def can_redo(self) -> bool:
        return self.cursor > 0

    def __len__(self) -> int:
        return len(self.entries)


def reset(ref: str, limit: int = DEFAULT_HISTORY_LIMIT) -> OutputHistory:
    """Single-entry history holding ``ref``."""
    return OutputHistory(entries=(ref,), cursor=0, limit=limit)


def push(history: OutputHistory, ref: str) -> OutputHistory:
    """Insert ``ref`` as the newest entry and display it; drops the oldest past the limit."""
    entries = ((ref,) + history.entries)[:history.limit]
    return OutputHistory(entries=entries, cursor=0, limit=history.limit)


def undo(history: OutputHistory) -> OutputHistory:
    """Step the cursor one entry older, if there is one."""
    if not history.can_undo:
        return history
    return OutputHistory(entries=history.entries, cursor=history.cursor + 1, limit=history.limit)


def redo(history: OutputHistory) -> OutputHistory:
    """Step the cursor one entry newer, if there is one."""
    if not history.can_redo:
        return history
    return OutputHistory(entries=history.entries, cursor=history.cursor - 1, limit=history.limit)
