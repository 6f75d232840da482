"""Active turn selection."""

from __future__ import annotations

from typing import Optional


class SelectionTracker:
    """Keeps the selected turn index valid across inserts and deletes."""

    def __init__(self, count: int = 0, index: Optional[int] = None) -> None:
        self.count = count
        if index is None and count:
            index = 0
        self.index = index

    def select(self, index: int) -> None:
        if index < 0 or index >= self.count:
            raise IndexError(f"Turn {index} does not exist.")
        self.index = index

    def on_insert(self, position: int) -> Optional[int]:
        self.count += 1
        if self.index is None:
            self.index = 0
        elif self.index >= position:
            self.index += 1
        return self.index

    def on_delete(self, position: int) -> Optional[int]:
        self.count = max(0, self.count - 1)
        if self.count == 0:
            self.index = None
        elif self.index is None:
            self.index = 0
        elif self.index == position:
            self.index = 0
        elif self.index > position:
            self.index -= 1
        return self.index

    def next(self) -> Optional[int]:
        if self.index is not None and self.index < self.count - 1:
            self.index += 1
        return self.index

    def previous(self) -> Optional[int]:
        if self.index is not None and self.index > 0:
            self.index -= 1
        return self.index
