import pytest

from turnmark.markers import END, START
from turnmark.models import DialogueAnnotation, ProvisionalPair, Segment, SlotValue, Turn
from turnmark.renderer import (
    SELECTED_START_COLOR,
    MarkerId,
    RecordingView,
    annotation_window,
    draw_annotation,
    render_timeline,
)


def test_draw_annotation_returns_marker_handles():
    view = RecordingView(duration=10.0)
    handles = draw_annotation(
        view,
        [Segment(0.0, 1.0), Segment(2.0, 3.0)],
        selected_index=1,
        provisional=ProvisionalPair(start=4.0),
        annotation_mode=True,
    )
    assert len(view.regions) == 4
    assert len(view.markers) == 5
    assert sorted(handles.values(), key=repr) == sorted(
        [
            MarkerId(START, 0),
            MarkerId(END, 0),
            MarkerId(START, 1),
            MarkerId(END, 1),
            MarkerId(START),
        ],
        key=repr,
    )
    selected_start = view.markers[2]
    assert selected_start["label"] == "Utterance start 2"
    assert selected_start["style"]["color"] == SELECTED_START_COLOR
    assert selected_start["style"]["draggable"] is True


def test_redraw_replaces_previous_drawing():
    view = RecordingView(duration=10.0)
    draw_annotation(view, [Segment(0.0, 1.0)])
    draw_annotation(view, [])
    assert view.markers == []
    assert view.regions == []


def test_annotation_window_is_clipped():
    assert annotation_window(Segment(9.0, 9.95), 10.0, 0.1) == pytest.approx((9.85, 10.0))
    assert annotation_window(Segment(1.0, 1.05), None, 0.1) == pytest.approx((1.0, 1.15))


def test_render_timeline():
    annotation = DialogueAnnotation(
        customer_id="c1",
        conversation_id="v1",
        turns=[
            Turn(segments=[Segment(0.0, 1.5)], intent="greet", slots=[SlotValue("a", "1")]),
            Turn(segments=[Segment(2.0, 3.0)]),
        ],
        dialogue_slots=[SlotValue("a", "1")],
    )
    text = render_timeline(annotation)
    assert "Customer: c1" in text
    assert "Turns: 2" in text
    assert "[00000.00 - 00001.50] #1 greet | a=1" in text
    assert "#2 (no intent)" in text
    assert "Dialogue slots: a=1" in text
