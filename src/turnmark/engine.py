"""Segment annotation engine."""

from __future__ import annotations

import logging
from typing import Dict, Hashable, List, Optional

from .errors import InvalidSegmentError
from .markers import MarkerState, ProvisionalMarkers
from .models import DialogueAnnotation, Segment, SlotValue, Turn
from .renderer import ANNOTATION_WINDOW_S, MarkerId, WaveformView, draw_annotation
from .segments import CommitResult, SegmentStore, commit_segments
from .selection import SelectionTracker
from .turns import TurnAggregator

logger = logging.getLogger("turnmark")


class AnnotationEngine:
    """Turns marker events into committed segments bound to turns.

    The engine owns the segment store, the provisional marker state machine,
    the turn aggregator and the selection of one conversation. The view is a
    sink: it is redrawn from engine state after every change and only ever
    reports clicks, playback time and marker drags back.
    """

    def __init__(
        self,
        annotation: DialogueAnnotation,
        view: Optional[WaveformView] = None,
        duration: Optional[float] = None,
        window_s: float = ANNOTATION_WINDOW_S,
        select_inserted: bool = True,
    ) -> None:
        if duration is None and view is not None:
            duration = view.get_duration() or None
        unbound = [i for i, turn in enumerate(annotation.turns) if len(turn.segments) != 1]
        if unbound:
            raise InvalidSegmentError(
                f"Turns {unbound} do not carry exactly one segment."
            )
        self.annotation = annotation
        self.view = view
        self.window_s = window_s
        self.select_inserted = select_inserted
        self.store = SegmentStore(annotation.segments(), duration=duration)
        self.markers = ProvisionalMarkers()
        self.aggregator = TurnAggregator(annotation)
        self.aggregator.dirty = False
        self.selection = SelectionTracker(len(annotation.turns))
        self._handles: Dict[Hashable, MarkerId] = {}
        self.redraw()

    # -- state -----------------------------------------------------------

    @property
    def duration(self) -> Optional[float]:
        return self.store.duration

    @property
    def annotation_mode(self) -> bool:
        return self.markers.active

    @property
    def marker_state(self) -> MarkerState:
        return self.markers.state

    @property
    def has_unsaved_marker_changes(self) -> bool:
        return self.markers.has_unsaved_changes

    @property
    def dirty(self) -> bool:
        return self.aggregator.dirty

    def mark_saved(self) -> None:
        self.aggregator.dirty = False

    @property
    def selected_index(self) -> Optional[int]:
        return self.selection.index

    @property
    def selected_turn(self) -> Optional[Turn]:
        if self.selection.index is None:
            return None
        return self.annotation.turns[self.selection.index]

    def segments(self) -> List[Segment]:
        return self.store.current_segments()

    def _display_segments(self) -> List[Segment]:
        segments = self.store.current_segments()
        for index, edit in self.markers.boundary_edits.items():
            if 0 <= index < len(segments):
                segments[index] = Segment(edit.start, edit.end)
        return segments

    def _clamp(self, time: float) -> float:
        time = max(0.0, time)
        if self.duration is not None:
            time = min(self.duration, time)
        return time

    def redraw(self) -> None:
        if self.view is None:
            return
        self._handles = draw_annotation(
            self.view,
            self._display_segments(),
            selected_index=self.selection.index,
            provisional=self.markers.pair if self.annotation_mode else None,
            annotation_mode=self.annotation_mode,
            window_s=self.window_s,
        )

    def marker_for(self, handle: Hashable) -> Optional[MarkerId]:
        return self._handles.get(handle)

    # -- annotation mode -------------------------------------------------

    def enter_annotation_mode(self) -> None:
        self.markers.enter_annotation_mode()
        self.redraw()

    def exit_annotation_mode(self) -> None:
        self.markers.exit_annotation_mode()
        self.redraw()

    def toggle_annotation_mode(self) -> bool:
        self.markers.toggle_annotation_mode()
        self.redraw()
        return self.annotation_mode

    def cancel_markers(self) -> None:
        self.markers.cancel()
        self.markers.discard_boundary_edits()
        self.redraw()

    # -- view events -----------------------------------------------------

    def on_click(self, time: float) -> bool:
        if not self.annotation_mode:
            return False
        placed = self.markers.place_marker(self._clamp(time))
        if placed:
            self.redraw()
        return placed

    def add_marker_at_current_time(self) -> bool:
        if self.view is None:
            raise RuntimeError("A waveform view is required to read the playback time.")
        return self.on_click(self.view.get_current_time())

    def on_marker_drag_start(self, handle: Hashable) -> Optional[int]:
        # No redraw here: the dragged marker handle has to stay valid.
        marker = self.marker_for(handle)
        if marker is None or marker.provisional:
            return self.selection.index
        self.selection.select(marker.index)
        return marker.index

    def on_marker_drag(self, handle: Hashable, time: float) -> Optional[float]:
        """Track a marker drag; returns the clamped marker position."""
        marker = self.marker_for(handle)
        if marker is None:
            return None
        time = self._clamp(time)
        if marker.provisional:
            return self.markers.drag_marker(marker.role, time)
        segments = self.store.current_segments()
        if marker.index >= len(segments):
            return None
        return self.markers.drag_boundary(
            marker.index, marker.role, time, segments[marker.index]
        )

    def on_marker_drag_end(self, handle: Hashable) -> bool:
        if self.marker_for(handle) is not None:
            self.redraw()
        return self.has_unsaved_marker_changes

    # -- commit ----------------------------------------------------------

    def confirm(self) -> Optional[CommitResult]:
        """Commit the staged pair and pending boundary edits."""
        pending = self.markers.take_commit()
        if pending is None:
            return None
        previous = self.store.current_segments()
        result = commit_segments(
            previous, pending.provisional, pending.moved_boundaries
        )
        if not result.changed:
            self.redraw()
            return result

        self.store.replace(result.segments)
        self.aggregator.apply_order(result.segments, result.origins)
        self._follow_selection(result)

        logger.info(
            "Committed %d segments (inserted=%s, moved=%s).",
            len(result.segments),
            result.inserted_index,
            result.moved_indices,
        )
        for left, right in self.store.overlaps():
            logger.warning("Segments %d and %d overlap.", left, right)
        self.redraw()
        return result

    def _follow_selection(self, result: CommitResult) -> None:
        current = self.selection.index
        if result.moved_indices:
            # Boundary edits can reorder segments; follow the selected one.
            self.selection.count = len(result.segments)
            if current is not None and current in result.origins:
                self.selection.index = result.origins.index(current)
        elif result.inserted_index is not None:
            self.selection.on_insert(result.inserted_index)
        if result.inserted_index is not None and self.select_inserted:
            self.selection.select(result.inserted_index)

    # -- turns -----------------------------------------------------------

    def delete_turn(self, turn_index: int) -> Turn:
        removed = self.aggregator.delete_turn(turn_index)
        self.store.replace(self.annotation.segments())
        if self.markers.boundary_edits:
            logger.info("Dropping pending boundary edits after deleting a turn.")
            self.markers.discard_boundary_edits()
        self.selection.on_delete(turn_index)
        self.redraw()
        return removed

    def select_turn(self, turn_index: int) -> None:
        self.selection.select(turn_index)
        self.redraw()

    def next_turn(self) -> Optional[int]:
        index = self.selection.next()
        self.redraw()
        return index

    def previous_turn(self) -> Optional[int]:
        index = self.selection.previous()
        self.redraw()
        return index

    def _target(self, turn_index: Optional[int]) -> int:
        if turn_index is not None:
            return turn_index
        if self.selection.index is None:
            raise IndexError("No turn is selected.")
        return self.selection.index

    def set_intent(self, intent: str, turn_index: Optional[int] = None) -> None:
        self.aggregator.set_intent(self._target(turn_index), intent.strip())

    def attach_slot(
        self, key: str, value: str, turn_index: Optional[int] = None
    ) -> None:
        key, value = key.strip(), value.strip()
        if not key or not value:
            raise ValueError("Slots need a non-empty key and value.")
        self.aggregator.attach_slot(self._target(turn_index), SlotValue(key, value))

    def remove_slot(self, slot_index: int, turn_index: Optional[int] = None) -> SlotValue:
        return self.aggregator.remove_slot(self._target(turn_index), slot_index)

    def reorder_slot(
        self, from_index: int, to_index: int, turn_index: Optional[int] = None
    ) -> None:
        self.aggregator.reorder_slot(self._target(turn_index), from_index, to_index)

    def add_dialogue_slot(self, key: str, value: str) -> bool:
        key, value = key.strip(), value.strip()
        if not key or not value:
            raise ValueError("Slots need a non-empty key and value.")
        return self.aggregator.add_dialogue_slot(SlotValue(key, value))

    def remove_dialogue_slot(self, slot_index: int) -> SlotValue:
        return self.aggregator.remove_dialogue_slot(slot_index)

    def reorder_dialogue_slot(self, from_index: int, to_index: int) -> None:
        self.aggregator.reorder_dialogue_slot(from_index, to_index)
