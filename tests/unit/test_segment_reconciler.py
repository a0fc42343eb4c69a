"""Unit tests for SegmentReconciler."""

import pytest

from meetingbot.transcription.reconciler import SegmentReconciler


@pytest.fixture
def reconciler(clock):
    return SegmentReconciler(tolerance_ms=1000, clock=clock)


@pytest.mark.unit
class TestSegmentReconciler:
    """Test cases for SegmentReconciler."""

    def test_first_event_appends(self, reconciler, make_event):
        result = reconciler.apply(make_event(speaker=0, text="hello", start_ms=0, end_ms=400))

        assert result.slot == 0
        assert result.is_update is False
        assert len(reconciler) == 1
        assert reconciler.segments[0].speaker_label == "Speaker 0"

    def test_redelivery_is_idempotent(self, reconciler, make_event):
        event = make_event(speaker=0, text="hello there", start_ms=0, end_ms=800, is_final=True)

        first = reconciler.apply(event)
        second = reconciler.apply(event)

        assert first is not None
        assert second is None
        assert len(reconciler) == 1

    def test_start_within_window_merges(self, reconciler, make_event):
        reconciler.apply(make_event(speaker=0, text="we should", start_ms=1000, end_ms=1600))
        result = reconciler.apply(make_event(speaker=0, text="we should ship", start_ms=1500, end_ms=2400))

        assert result.slot == 0
        assert result.is_update is True
        assert result.previous.text == "we should"
        assert len(reconciler) == 1
        assert reconciler.segments[0].text == "we should ship"

    def test_start_outside_window_appends(self, reconciler, make_event):
        reconciler.apply(make_event(speaker=0, text="first thought", start_ms=1000, end_ms=1800))
        result = reconciler.apply(make_event(speaker=0, text="second thought", start_ms=2500, end_ms=3200))

        assert result.slot == 1
        assert result.is_update is False
        assert len(reconciler) == 2

    def test_exact_tolerance_boundary_does_not_merge(self, reconciler, make_event):
        reconciler.apply(make_event(speaker=0, text="one", start_ms=1000, end_ms=1200))
        result = reconciler.apply(make_event(speaker=0, text="two", start_ms=2000, end_ms=2200))

        assert result.slot == 1

    def test_other_speaker_never_merges(self, reconciler, make_event):
        reconciler.apply(make_event(speaker=0, text="hi", start_ms=1000, end_ms=1200))
        result = reconciler.apply(make_event(speaker=1, text="hey", start_ms=1100, end_ms=1300))

        assert result.slot == 1
        assert [s.speaker_index for s in reconciler.segments] == [0, 1]

    def test_interim_then_final_revision_keeps_one_slot(self, reconciler, make_event):
        reconciler.apply(make_event(speaker=0, text="the budget", start_ms=0, end_ms=500))
        reconciler.apply(make_event(speaker=1, text="right", start_ms=300, end_ms=600, is_final=True))
        result = reconciler.apply(
            make_event(speaker=0, text="the budget is approved", start_ms=100, end_ms=1400, is_final=True)
        )

        assert result.slot == 0
        assert [s.text for s in reconciler.segments] == ["the budget is approved", "right"]
        assert reconciler.segments[0].is_final is True

    def test_late_interim_does_not_overwrite_final(self, reconciler, make_event):
        reconciler.apply(make_event(speaker=0, text="final words", start_ms=0, end_ms=900, is_final=True))
        result = reconciler.apply(make_event(speaker=0, text="final wor", start_ms=0, end_ms=700))

        assert result is None
        assert reconciler.segments[0].text == "final words"

    def test_final_revision_of_final_segment_applies(self, reconciler, make_event):
        reconciler.apply(make_event(speaker=0, text="ship it", start_ms=0, end_ms=600, is_final=True))
        result = reconciler.apply(make_event(speaker=0, text="ship it today", start_ms=0, end_ms=900, is_final=True))

        assert result.is_update is True
        assert reconciler.segments[0].text == "ship it today"

    def test_revision_moves_index_entry(self, reconciler, make_event):
        reconciler.apply(make_event(speaker=0, text="a", start_ms=1000, end_ms=1100))
        # Revised start drifts to 1800; the next lookup is relative to the new start
        reconciler.apply(make_event(speaker=0, text="a b", start_ms=1800, end_ms=2000))
        result = reconciler.apply(make_event(speaker=0, text="a b c", start_ms=2600, end_ms=2900))

        assert result.slot == 0
        assert len(reconciler) == 1

    def test_missing_word_timing_uses_wall_clock(self, reconciler, make_event, clock):
        result = reconciler.apply(make_event(speaker=2, text="no timing", end_ms=None))

        segment = result.segment
        assert segment.degraded_timing is True
        assert segment.start_time_ms == segment.end_time_ms == clock.now_ms
        assert reconciler.degraded_count == 1

    def test_segment_timing_from_words(self, reconciler, make_event):
        result = reconciler.apply(make_event(speaker=0, text="one two three", start_ms=300, end_ms=1200))

        assert result.segment.start_time_ms == 300
        assert result.segment.end_time_ms == 1200
        assert result.segment.duration_ms == 900
        assert result.segment.degraded_timing is False

    def test_reset(self, reconciler, make_event):
        reconciler.apply(make_event(text="one", end_ms=None))
        reconciler.reset()

        assert len(reconciler) == 0
        assert reconciler.degraded_count == 0
