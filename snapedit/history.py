"""Linear undo/redo history over immutable image snapshots."""

import logging
import threading
from typing import List, Optional

from snapedit.models import HistoryEntry, ImageBuffer

log = logging.getLogger(__name__)


class HistoryStack:
    """Ordered list of snapshots plus a pointer to the one on screen.

    `pointer` is -1 while empty, otherwise 0 <= pointer < len(entries). Adding an
    edit always drops every entry after the pointer, so history never branches.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._entries: List[HistoryEntry] = []
        self._pointer = -1

    @property
    def entries(self) -> List[HistoryEntry]:
        with self._lock:
            return list(self._entries)

    @property
    def pointer(self) -> int:
        return self._pointer

    def __len__(self) -> int:
        return len(self._entries)

    def is_empty(self) -> bool:
        return self._pointer < 0

    def add_edit(self, snapshot: ImageBuffer, label: str = "") -> HistoryEntry:
        with self._lock:
            entry = HistoryEntry(snapshot=snapshot, label=label)
            discarded = len(self._entries) - (self._pointer + 1)
            del self._entries[self._pointer + 1:]
            self._entries.append(entry)
            self._pointer = len(self._entries) - 1
            if discarded:
                log.debug(f"Discarded {discarded} redo entries")
            log.debug(f"History: added '{label}', pointer={self._pointer}, size={len(self._entries)}")
            return entry

    def can_undo(self) -> bool:
        return self._pointer > 0

    def can_redo(self) -> bool:
        return self._pointer < len(self._entries) - 1

    def undo(self) -> Optional[ImageBuffer]:
        with self._lock:
            if self.can_undo():
                self._pointer -= 1
            return self.current()

    def redo(self) -> Optional[ImageBuffer]:
        with self._lock:
            if self.can_redo():
                self._pointer += 1
            return self.current()

    def current(self) -> Optional[ImageBuffer]:
        entry = self.current_entry()
        return entry.snapshot if entry else None

    def current_entry(self) -> Optional[HistoryEntry]:
        with self._lock:
            if self._pointer < 0:
                return None
            return self._entries[self._pointer]

    def undo_label(self) -> Optional[str]:
        """Label of the edit an undo would revert."""
        with self._lock:
            if not self.can_undo():
                return None
            return self._entries[self._pointer].label

    def redo_label(self) -> Optional[str]:
        with self._lock:
            if not self.can_redo():
                return None
            return self._entries[self._pointer + 1].label

    def reset(self):
        with self._lock:
            self._entries.clear()
            self._pointer = -1


def history_add(stack: HistoryStack, image: ImageBuffer, label: str = "") -> HistoryStack:
    stack.add_edit(image, label)
    return stack


def history_undo(stack: HistoryStack) -> HistoryStack:
    stack.undo()
    return stack


def history_redo(stack: HistoryStack) -> HistoryStack:
    stack.redo()
    return stack
