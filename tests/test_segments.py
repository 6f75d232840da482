import pytest

from turnmark.errors import InvalidSegmentError
from turnmark.models import ProvisionalPair, Segment
from turnmark.segments import (
    BOUNDARY_TOLERANCE_S,
    SegmentStore,
    commit_segments,
    find_insert_position,
)


def _pairs(segments):
    return [(s.start, s.end) for s in segments]


def test_store_rejects_inverted_segment_and_keeps_previous():
    store = SegmentStore([Segment(0.0, 1.0)])
    with pytest.raises(InvalidSegmentError):
        store.replace([Segment(0.0, 1.0), Segment(3.0, 3.0)])
    assert _pairs(store.current_segments()) == [(0.0, 1.0)]


def test_store_checks_duration_when_known():
    store = SegmentStore(duration=5.0)
    with pytest.raises(InvalidSegmentError):
        store.replace([Segment(4.0, 6.0)])
    store.replace([Segment(4.0, 5.0)])
    assert len(store) == 1


def test_store_returns_copies():
    store = SegmentStore([Segment(0.0, 1.0)])
    store.current_segments()[0].end = 9.0
    assert store.current_segments()[0].end == 1.0


def test_store_reports_overlaps():
    store = SegmentStore([Segment(0.0, 2.0), Segment(1.5, 3.0), Segment(3.0, 4.0)])
    assert store.overlaps() == [(0, 1)]


def test_commit_inserts_between_existing_segments():
    result = commit_segments(
        [Segment(0, 2), Segment(5, 7)], ProvisionalPair(start=3, end=4)
    )
    assert _pairs(result.segments) == [(0, 2), (3, 4), (5, 7)]
    assert result.inserted_index == 1
    assert result.origins == [0, None, 1]
    assert result.changed


def test_commit_appends_after_last_segment():
    result = commit_segments([Segment(0, 2)], ProvisionalPair(start=3, end=4))
    assert result.inserted_index == 1
    assert find_insert_position([Segment(0, 2)], 0) == 1


def test_commit_with_equal_start_goes_after_existing():
    result = commit_segments([Segment(1, 2)], ProvisionalPair(start=1, end=3))
    assert _pairs(result.segments) == [(1, 2), (1, 3)]
    assert result.inserted_index == 1


def test_commit_without_changes_is_noop():
    segments = [Segment(0, 2), Segment(5, 7)]
    for provisional in (None, ProvisionalPair(), ProvisionalPair(start=1.0)):
        result = commit_segments(segments, provisional)
        assert _pairs(result.segments) == _pairs(segments)
        assert result.inserted_index is None
        assert not result.changed


def test_commit_rejects_inverted_provisional_pair():
    segments = [Segment(0, 2)]
    with pytest.raises(InvalidSegmentError):
        commit_segments(segments, ProvisionalPair(start=4, end=4))
    assert _pairs(segments) == [(0, 2)]


def test_small_boundary_moves_are_ignored():
    moved = {0: Segment(0.0 + BOUNDARY_TOLERANCE_S / 2, 2.0)}
    result = commit_segments([Segment(0.0, 2.0)], moved_boundaries=moved)
    assert not result.changed
    assert result.segments[0].start == 0.0


def test_moved_boundary_reorders_segments():
    segments = [Segment(0, 2), Segment(3, 4), Segment(5, 7)]
    result = commit_segments(segments, moved_boundaries={0: Segment(4.5, 4.8)})
    assert _pairs(result.segments) == [(3, 4), (4.5, 4.8), (5, 7)]
    assert result.origins == [1, 0, 2]
    assert result.moved_indices == [0]


def test_moved_boundary_and_insert_together():
    segments = [Segment(0, 2), Segment(5, 7)]
    result = commit_segments(
        segments,
        ProvisionalPair(start=3, end=4),
        moved_boundaries={1: Segment(5, 8)},
    )
    assert _pairs(result.segments) == [(0, 2), (3, 4), (5, 8)]
    assert result.inserted_index == 1


def test_moved_boundary_that_inverts_segment_is_rejected():
    with pytest.raises(InvalidSegmentError):
        commit_segments([Segment(0, 2)], moved_boundaries={0: Segment(3, 2)})


def test_committed_sequences_stay_sorted_and_valid():
    segments = []
    for start, end in [(8, 9), (1, 2), (5, 6), (3, 4), (0.5, 0.7)]:
        segments = commit_segments(segments, ProvisionalPair(start, end)).segments
        assert all(s.start < s.end for s in segments)
        assert segments == sorted(segments, key=lambda s: s.start)


def test_commit_of_duplicate_segment_points_at_new_entry():
    result = commit_segments([Segment(1, 2)], ProvisionalPair(start=1, end=2))
    assert _pairs(result.segments) == [(1, 2), (1, 2)]
    assert result.origins == [0, None]
    assert result.inserted_index == 1
