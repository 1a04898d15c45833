"""Snapshot-based undo/redo history."""

import copy
from typing import Generic, List, Optional, TypeVar

T = TypeVar("T")


class HistoryManager(Generic[T]):
    """
    Linear undo/redo stack of deep-copied snapshots.

    Every value entering or leaving the manager is an independent deep copy,
    so callers may keep mutating their live state after `push` and may mutate
    values returned by `undo`/`redo` without touching stored history.
    Intended for a single synchronous writer.
    """

    def __init__(self):
        self._snapshots: List[T] = []
        self._cursor = -1

    def init(self, state: T) -> None:
        self._snapshots = [copy.deepcopy(state)]
        self._cursor = 0

    def push(self, state: T) -> None:
        snapshot = copy.deepcopy(state)

        # Skip no-op edits
        if self._cursor >= 0 and self._snapshots[self._cursor] == snapshot:
            return

        # Abandon the redo branch
        del self._snapshots[self._cursor + 1:]
        self._snapshots.append(snapshot)
        self._cursor = len(self._snapshots) - 1

    def undo(self) -> Optional[T]:
        if not self.can_undo:
            return None
        self._cursor -= 1
        return copy.deepcopy(self._snapshots[self._cursor])

    def redo(self) -> Optional[T]:
        if not self.can_redo:
            return None
        self._cursor += 1
        return copy.deepcopy(self._snapshots[self._cursor])

    @property
    def can_undo(self) -> bool:
        return self._cursor > 0

    @property
    def can_redo(self) -> bool:
        return self._cursor < len(self._snapshots) - 1

    @property
    def current(self) -> Optional[T]:
        if self._cursor < 0:
            return None
        return copy.deepcopy(self._snapshots[self._cursor])

    @property
    def cursor(self) -> int:
        return self._cursor

    def clear(self) -> None:
        self._snapshots = []
        self._cursor = -1

    def __len__(self) -> int:
        return len(self._snapshots)
