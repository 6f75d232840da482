"""Committed segment store and the commit/merge algorithm."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import InvalidSegmentError
from .models import ProvisionalPair, Segment

logger = logging.getLogger("turnmark")

# Two boundaries closer than this are the same boundary.
BOUNDARY_TOLERANCE_S = 0.001


def same_time(a: float, b: float) -> bool:
    return abs(a - b) < BOUNDARY_TOLERANCE_S


def validate_segment(segment: Segment, duration: Optional[float] = None) -> None:
    if segment.start < 0:
        raise InvalidSegmentError(
            f"Segment start {segment.start:.3f}s is before the recording begins."
        )
    if not segment.start < segment.end:
        raise InvalidSegmentError(
            f"Segment end {segment.end:.3f}s must be after start {segment.start:.3f}s."
        )
    if duration is not None and segment.end > duration + BOUNDARY_TOLERANCE_S:
        raise InvalidSegmentError(
            f"Segment end {segment.end:.3f}s is past the recording end {duration:.3f}s."
        )


class SegmentStore:
    """Ordered committed segments of one conversation."""

    def __init__(
        self,
        segments: Optional[Sequence[Segment]] = None,
        duration: Optional[float] = None,
    ) -> None:
        self.duration = duration
        self._segments: List[Segment] = []
        if segments:
            self.replace(segments)

    def __len__(self) -> int:
        return len(self._segments)

    def current_segments(self) -> List[Segment]:
        return [Segment(seg.start, seg.end) for seg in self._segments]

    def replace(self, new_segments: Sequence[Segment]) -> None:
        for segment in new_segments:
            validate_segment(segment, self.duration)
        self._segments = [Segment(seg.start, seg.end) for seg in new_segments]

    def overlaps(self) -> List[Tuple[int, int]]:
        pairs = []
        for idx in range(len(self._segments) - 1):
            current = self._segments[idx]
            following = self._segments[idx + 1]
            if current.end - following.start > BOUNDARY_TOLERANCE_S:
                pairs.append((idx, idx + 1))
        return pairs


@dataclass
class CommitResult:
    segments: List[Segment]
    inserted_index: Optional[int] = None
    changed: bool = False
    moved_indices: List[int] = field(default_factory=list)
    # Previous index of each resulting segment, None for the inserted one.
    origins: List[Optional[int]] = field(default_factory=list)


def _apply_moved_boundaries(
    segments: List[Segment], moved_boundaries: Dict[int, Segment]
) -> List[int]:
    moved: List[int] = []
    for index, position in sorted(moved_boundaries.items()):
        if index < 0 or index >= len(segments):
            logger.warning("Ignoring boundary edit for unknown segment %d", index)
            continue
        current = segments[index]
        start, end = current.start, current.end
        if abs(start - position.start) > BOUNDARY_TOLERANCE_S:
            start = position.start
        if abs(end - position.end) > BOUNDARY_TOLERANCE_S:
            end = position.end
        if (start, end) == (current.start, current.end):
            continue
        updated = Segment(start=start, end=end)
        validate_segment(updated)
        segments[index] = updated
        moved.append(index)
    return moved


def find_insert_position(segments: Sequence[Segment], start: float) -> int:
    for idx, segment in enumerate(segments):
        if segment.start > start:
            return idx
    return len(segments)


def find_matching_indices(segments: Sequence[Segment], target: Segment) -> List[int]:
    return [
        idx
        for idx, segment in enumerate(segments)
        if same_time(segment.start, target.start) and same_time(segment.end, target.end)
    ]


def commit_segments(
    segments: Sequence[Segment],
    provisional: Optional[ProvisionalPair] = None,
    moved_boundaries: Optional[Dict[int, Segment]] = None,
) -> CommitResult:
    """Merge boundary edits and a provisional pair into ``segments``.

    Boundary edits overwrite the moved start/end of existing segments in
    place, the provisional pair is inserted before the first segment that
    starts later, and the whole list is stably re-sorted by start. The input
    sequence is never mutated; on error InvalidSegmentError is raised.

    ``origins`` in the result lets callers carry per-segment data along
    when a boundary edit changed the relative order.
    """
    updated = [Segment(seg.start, seg.end) for seg in segments]
    new_segment: Optional[Segment] = None
    if provisional is not None and provisional.is_complete:
        new_segment = Segment(start=provisional.start, end=provisional.end)
        if not new_segment.start < new_segment.end:
            raise InvalidSegmentError(
                f"Provisional end {new_segment.end:.3f}s must be after "
                f"start {new_segment.start:.3f}s."
            )

    moved = _apply_moved_boundaries(updated, moved_boundaries or {})
    origins: List[Optional[int]] = list(range(len(updated)))

    if new_segment is not None:
        position = find_insert_position(updated, new_segment.start)
        updated.insert(position, new_segment)
        origins.insert(position, None)

    changed = bool(moved) or new_segment is not None
    if not changed:
        return CommitResult(segments=updated, origins=origins)

    ordered = sorted(zip(updated, origins), key=lambda item: item[0].start)
    updated = [seg for seg, _ in ordered]
    origins = [origin for _, origin in ordered]
    inserted_index = None
    if new_segment is not None:
        # The inserted pair is the only entry without an origin. Several
        # segments can match it by time when it duplicates an existing one.
        inserted_index = origins.index(None)
        if inserted_index not in find_matching_indices(updated, new_segment):
            logger.warning("Inserted segment moved during commit (index %d).", inserted_index)
    return CommitResult(
        segments=updated,
        inserted_index=inserted_index,
        changed=True,
        moved_indices=moved,
        origins=origins,
    )
