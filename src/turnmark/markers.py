"""Provisional marker state machine."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from .models import ProvisionalPair, Segment
from .segments import BOUNDARY_TOLERANCE_S

logger = logging.getLogger("turnmark")

START = "start"
END = "end"


class MarkerState(Enum):
    IDLE = "idle"
    AWAITING_START = "awaiting_start"
    AWAITING_END = "awaiting_end"
    READY_TO_COMMIT = "ready_to_commit"


@dataclass
class PendingCommit:
    provisional: Optional[ProvisionalPair] = None
    moved_boundaries: Dict[int, Segment] = field(default_factory=dict)


def _check_role(which: str) -> None:
    if which not in (START, END):
        raise ValueError(f"Unknown marker role: {which!r}")


class ProvisionalMarkers:
    """Stages a start/end pair before it becomes a committed segment.

    Marker placement happens in two steps: the first placement sets the
    start, the second sets the end and is only accepted after the start.
    Drags on committed segments are kept as pending boundary edits until the
    next commit. ``has_unsaved_changes`` tells the caller whether a commit
    would change anything.
    """

    def __init__(self) -> None:
        self.state = MarkerState.IDLE
        self.pair = ProvisionalPair()
        self.boundary_edits: Dict[int, Segment] = {}
        self.has_unsaved_changes = False

    @property
    def active(self) -> bool:
        return self.state is not MarkerState.IDLE

    def _refresh(self) -> None:
        self.has_unsaved_changes = self.active and (
            self.pair.is_complete or bool(self.boundary_edits)
        )

    def _reset_pair(self) -> None:
        self.pair = ProvisionalPair()

    def enter_annotation_mode(self) -> None:
        self._reset_pair()
        self.boundary_edits = {}
        self.state = MarkerState.AWAITING_START
        self._refresh()

    def exit_annotation_mode(self) -> None:
        if self.pair.is_complete or self.boundary_edits:
            logger.info("Discarding uncommitted markers on leaving annotation mode.")
        self._reset_pair()
        self.boundary_edits = {}
        self.state = MarkerState.IDLE
        self._refresh()

    def toggle_annotation_mode(self) -> None:
        if self.active:
            self.exit_annotation_mode()
        else:
            self.enter_annotation_mode()

    def cancel(self) -> None:
        if not self.active:
            return
        self._reset_pair()
        self.state = MarkerState.AWAITING_START
        self._refresh()

    def place_marker(self, time: float) -> bool:
        """Place the next provisional marker; returns False when ignored."""
        if self.state is MarkerState.AWAITING_START:
            self.pair = ProvisionalPair(start=time)
            self.state = MarkerState.AWAITING_END
        elif self.state is MarkerState.AWAITING_END:
            if not time > self.pair.start:
                logger.debug(
                    "Rejected end marker at %.3fs (start %.3fs).", time, self.pair.start
                )
                return False
            self.pair = ProvisionalPair(start=self.pair.start, end=time)
            self.state = MarkerState.READY_TO_COMMIT
        else:
            return False
        self._refresh()
        return True

    def drag_marker(self, which: str, time: float) -> Optional[float]:
        """Move a provisional marker, keeping start before end.

        Returns the clamped position, or None when there is no such marker.
        """
        _check_role(which)
        if self.state not in (MarkerState.AWAITING_END, MarkerState.READY_TO_COMMIT):
            return None
        start, end = self.pair.start, self.pair.end
        if which == START:
            if end is not None:
                time = min(time, end - BOUNDARY_TOLERANCE_S)
            start = max(0.0, time)
        else:
            if end is None:
                return None
            end = max(time, start + BOUNDARY_TOLERANCE_S)
        self.pair = ProvisionalPair(start=start, end=end)
        self._refresh()
        return start if which == START else end

    def drag_boundary(
        self, index: int, which: str, time: float, segment: Segment
    ) -> Optional[float]:
        """Record a drag of a committed segment's start or end marker."""
        _check_role(which)
        if not self.active:
            return None
        edit = self.boundary_edits.get(index, Segment(segment.start, segment.end))
        if which == START:
            edit = Segment(
                start=max(0.0, min(time, edit.end - BOUNDARY_TOLERANCE_S)),
                end=edit.end,
            )
            position = edit.start
        else:
            edit = Segment(
                start=edit.start, end=max(time, edit.start + BOUNDARY_TOLERANCE_S)
            )
            position = edit.end
        self.boundary_edits[index] = edit
        self._refresh()
        return position

    def discard_boundary_edits(self) -> None:
        self.boundary_edits = {}
        self._refresh()

    def take_commit(self) -> Optional[PendingCommit]:
        """Hand over staged changes and reset.

        The provisional pair is only handed over in READY_TO_COMMIT; pending
        boundary edits are handed over whenever annotation mode is on.
        """
        if not self.active:
            return None
        ready = self.state is MarkerState.READY_TO_COMMIT
        if not ready and not self.boundary_edits:
            return None
        pending = PendingCommit(
            provisional=self.pair if ready else None,
            moved_boundaries=dict(self.boundary_edits),
        )
        if ready:
            self._reset_pair()
            self.state = MarkerState.AWAITING_START
        self.boundary_edits = {}
        self._refresh()
        return pending
