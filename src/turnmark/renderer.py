"""Waveform drawing and text timelines."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, List, Optional, Protocol, Sequence

from .markers import END, START
from .models import DialogueAnnotation, ProvisionalPair, Segment

ANNOTATION_WINDOW_S = 0.1

SELECTED_START_COLOR = "#4CAF50"
SELECTED_END_COLOR = "#ff0000"
IDLE_MARKER_COLOR = "#999999"
PROVISIONAL_START_COLOR = "#4CAF50"
PROVISIONAL_END_COLOR = "#999999"
SELECTED_REGION_COLOR = "rgba(76, 175, 80, 0.15)"
REGION_COLOR = "rgba(129, 199, 132, 0.1)"
SELECTED_WINDOW_COLOR = "rgba(255, 0, 0, 0.15)"
WINDOW_COLOR = "rgba(100, 100, 100, 0.1)"


@dataclass(frozen=True)
class MarkerId:
    """Which boundary a drawn marker stands for.

    ``index`` is the turn index, or None for a provisional marker.
    """

    role: str
    index: Optional[int] = None

    @property
    def provisional(self) -> bool:
        return self.index is None


class WaveformView(Protocol):
    def get_duration(self) -> float: ...

    def get_current_time(self) -> float: ...

    def add_marker(self, time: float, label: str, style: Dict[str, Any]) -> Hashable: ...

    def add_region(self, start: float, end: float, style: Dict[str, Any]) -> Any: ...

    def clear_markers(self) -> None: ...

    def clear_regions(self) -> None: ...


@dataclass
class RecordingView:
    """In-memory view that keeps whatever was drawn on it."""

    duration: float = 0.0
    current_time: float = 0.0
    markers: List[dict] = field(default_factory=list)
    regions: List[dict] = field(default_factory=list)
    _next_id: int = 0

    def get_duration(self) -> float:
        return self.duration

    def get_current_time(self) -> float:
        return self.current_time

    def add_marker(self, time: float, label: str, style: Dict[str, Any]) -> int:
        self._next_id += 1
        self.markers.append(
            {"id": self._next_id, "time": time, "label": label, "style": style}
        )
        return self._next_id

    def add_region(self, start: float, end: float, style: Dict[str, Any]) -> int:
        self.regions.append({"start": start, "end": end, "style": style})
        return len(self.regions) - 1

    def clear_markers(self) -> None:
        self.markers = []

    def clear_regions(self) -> None:
        self.regions = []

    def marker_ids(self, label_prefix: str) -> List[int]:
        return [m["id"] for m in self.markers if m["label"].startswith(label_prefix)]


def annotation_window(
    segment: Segment, duration: Optional[float], window_s: float = ANNOTATION_WINDOW_S
) -> tuple:
    start = max(segment.end - window_s, segment.start)
    end = segment.end + window_s
    if duration:
        end = min(duration, end)
    return start, end


def draw_annotation(
    view: WaveformView,
    segments: Sequence[Segment],
    selected_index: Optional[int] = None,
    provisional: Optional[ProvisionalPair] = None,
    annotation_mode: bool = False,
    window_s: float = ANNOTATION_WINDOW_S,
) -> Dict[Hashable, MarkerId]:
    """Redraw every region and marker; returns the marker handle map."""
    view.clear_markers()
    view.clear_regions()
    duration = view.get_duration()
    handles: Dict[Hashable, MarkerId] = {}

    for index, segment in enumerate(segments):
        selected = index == selected_index
        view.add_region(
            segment.start,
            segment.end,
            {"color": SELECTED_REGION_COLOR if selected else REGION_COLOR},
        )
        window_start, window_end = annotation_window(segment, duration, window_s)
        view.add_region(
            window_start,
            window_end,
            {"color": SELECTED_WINDOW_COLOR if selected else WINDOW_COLOR},
        )
        start_handle = view.add_marker(
            segment.start,
            f"Utterance start {index + 1}",
            {
                "color": SELECTED_START_COLOR if selected else IDLE_MARKER_COLOR,
                "draggable": annotation_mode,
            },
        )
        end_handle = view.add_marker(
            segment.end,
            f"Utterance end {index + 1}",
            {
                "color": SELECTED_END_COLOR if selected else IDLE_MARKER_COLOR,
                "draggable": annotation_mode,
            },
        )
        handles[start_handle] = MarkerId(START, index)
        handles[end_handle] = MarkerId(END, index)

    if provisional is not None:
        if provisional.start is not None:
            handle = view.add_marker(
                provisional.start,
                "Provisional start",
                {"color": PROVISIONAL_START_COLOR, "draggable": True},
            )
            handles[handle] = MarkerId(START)
        if provisional.end is not None:
            handle = view.add_marker(
                provisional.end,
                "Provisional end",
                {"color": PROVISIONAL_END_COLOR, "draggable": True},
            )
            handles[handle] = MarkerId(END)
    return handles


def format_seconds(seconds: float) -> str:
    return f"{seconds:0>8.2f}"


def _slots_text(slots) -> str:
    return ", ".join(f"{slot.key}={slot.value}" for slot in slots)


def render_timeline(annotation: DialogueAnnotation) -> str:
    lines: List[str] = []
    lines.append(f"Customer: {annotation.customer_id}")
    lines.append(f"Conversation: {annotation.conversation_id}")
    lines.append(f"Turns: {len(annotation.turns)}")
    lines.append("")
    for index, turn in enumerate(annotation.turns):
        if not turn.segments:
            continue
        segment = turn.segment
        line = (
            f"[{format_seconds(segment.start)} - {format_seconds(segment.end)}]"
            f" #{index + 1} {turn.intent or '(no intent)'}"
        )
        if turn.slots:
            line = f"{line} | {_slots_text(turn.slots)}"
        lines.append(line)
    if annotation.dialogue_slots:
        lines.append("")
        lines.append(f"Dialogue slots: {_slots_text(annotation.dialogue_slots)}")
    return "\n".join(lines)
