"""Tests for the fallback distributor."""

import pytest

from clip_segmenter.fallback import (
    FALLBACK_REASONING,
    MIN_SLICE_WORDS,
    calculate_start_times,
    distribute_segments,
    slice_transcript,
)
from clip_segmenter.models import GenerationSettings, SegmentStatus


TRANSCRIPT_100 = " ".join(f"w{i}" for i in range(100))


# --- Test calculate_start_times ---


class TestCalculateStartTimes:
    """Tests for evenly spaced start offsets."""

    def test_fits_without_overlap(self):
        """When N*L <= D, first starts at 0 and last ends at D."""
        starts = calculate_start_times(300, 60, 5)
        assert starts == pytest.approx([0, 60, 120, 180, 240])

    def test_exact_fit(self):
        """N*L == D tiles the media back to back."""
        starts = calculate_start_times(120, 60, 2)
        assert starts == pytest.approx([0, 60])

    def test_single_segment_starts_at_zero(self):
        """One segment starts at the beginning of the media."""
        assert calculate_start_times(300, 60, 1) == [0.0]

    def test_overlap_when_exceeding_runtime(self):
        """N=10, L=60, D=120 still yields 10 offsets, overlapping."""
        starts = calculate_start_times(120, 60, 10)
        assert len(starts) == 10
        assert starts[0] == 0.0
        assert starts[-1] == pytest.approx(60.0)
        assert all(b - a < 60 for a, b in zip(starts, starts[1:]))

    def test_minimum_spacing_is_tenth_of_length(self):
        """Spacing never drops below 0.1 * L while room remains."""
        starts = calculate_start_times(100, 60, 50)
        assert starts[1] - starts[0] == pytest.approx(6.0)
        assert max(starts) == pytest.approx(40.0)

    def test_length_longer_than_media(self):
        """If L > D, every segment starts at 0."""
        starts = calculate_start_times(30, 60, 3)
        assert starts == [0.0, 0.0, 0.0]

    def test_zero_count(self):
        """A non-positive count yields no start times."""
        assert calculate_start_times(300, 60, 0) == []

    @pytest.mark.parametrize("duration", [1, 30, 120, 300, 3600])
    @pytest.mark.parametrize("count", [1, 2, 5, 10, 25])
    @pytest.mark.parametrize("length", [0.5, 5, 60, 400])
    def test_properties(self, duration, count, length):
        """Exactly N offsets, each >= 0, ascending, segment fits inside D."""
        starts = calculate_start_times(duration, length, count)
        assert len(starts) == count
        assert starts == sorted(starts)
        for start in starts:
            assert start >= 0
            assert start + min(length, duration - start) <= duration + 1e-9


# --- Test slice_transcript ---


class TestSliceTranscript:
    """Tests for proportional transcript slicing."""

    def test_proportional_window(self):
        """First 60s of 300s covers the first 20% of words."""
        text = slice_transcript(TRANSCRIPT_100, 0, 60, 300)
        assert text.split() == [f"w{i}" for i in range(20)]

    def test_middle_window(self):
        """A mid-media window maps to the proportional word range."""
        text = slice_transcript(TRANSCRIPT_100, 150, 30, 300)
        assert text.split() == [f"w{i}" for i in range(50, 60)]

    def test_minimum_words_when_degenerate(self):
        """A window mapping to fewer than 10 words still yields 10."""
        text = slice_transcript(TRANSCRIPT_100, 0, 1, 300)
        assert len(text.split()) == MIN_SLICE_WORDS

    def test_tail_window_truncated_to_available_words(self):
        """The last window stops at the end of the transcript."""
        text = slice_transcript(TRANSCRIPT_100, 290, 60, 300)
        assert text.split() == ["w96", "w97", "w98", "w99"]

    def test_empty_transcript(self):
        """An empty transcript slices to an empty string."""
        assert slice_transcript("", 0, 60, 300) == ""
        assert slice_transcript("   \n ", 0, 60, 300) == ""

    def test_unknown_duration_defaults(self):
        """Missing duration behaves like 300s instead of dividing by zero."""
        assert slice_transcript(TRANSCRIPT_100, 0, 60, None) == slice_transcript(TRANSCRIPT_100, 0, 60, 300)
        assert slice_transcript(TRANSCRIPT_100, 0, 60, 0) == slice_transcript(TRANSCRIPT_100, 0, 60, 300)

    def test_splits_on_any_whitespace(self):
        """Newlines and tabs separate words like spaces do."""
        text = slice_transcript("a\nb\tc  d e f g h i j k l", 0, 300, 300)
        assert text == "a b c d e f g h i j k l"


# --- Test distribute_segments ---


class TestDistributeSegments:
    """Tests for fallback segment construction."""

    def test_even_distribution(self):
        """N segments covering the full duration, ascending."""
        settings = GenerationSettings(segment_count=5, segment_length_s=60)
        segments = distribute_segments("proj-1", TRANSCRIPT_100, settings, 300)

        assert len(segments) == 5
        assert [s.start_offset for s in segments] == pytest.approx([0, 60, 120, 180, 240])
        assert segments[-1].end_offset == pytest.approx(300)
        for seg in segments:
            assert seg.project_id == "proj-1"
            assert seg.reasoning == FALLBACK_REASONING
            assert seg.status == SegmentStatus.GENERATED
            assert seg.transcript_excerpt

    def test_summary_format(self):
        """Fallback summaries are numbered with a text preview."""
        settings = GenerationSettings(segment_count=2, segment_length_s=60)
        segments = distribute_segments("p", TRANSCRIPT_100, settings, 300)
        assert segments[0].summary.startswith("Segment 1: w0 w1")
        assert segments[0].summary.endswith("...")
        assert segments[1].summary.startswith("Segment 2: ")

    def test_end_clamped_when_length_exceeds_media(self):
        """Segments longer than the media end at the media duration."""
        settings = GenerationSettings(segment_count=2, segment_length_s=60)
        segments = distribute_segments("p", TRANSCRIPT_100, settings, 45)
        assert all(s.start_offset == 0 and s.end_offset == 45 for s in segments)

    def test_overlapping_count_guaranteed(self):
        """The requested count is returned even when segments must overlap."""
        settings = GenerationSettings(segment_count=10, segment_length_s=60)
        segments = distribute_segments("p", TRANSCRIPT_100, settings, 120)
        assert len(segments) == 10
        for seg in segments:
            assert 0 <= seg.start_offset < seg.end_offset <= 120

    def test_unknown_duration_uses_default(self):
        """Without a media duration the 300s default is used."""
        settings = GenerationSettings(segment_count=3, segment_length_s=60)
        segments = distribute_segments("p", TRANSCRIPT_100, settings, None)
        assert segments[-1].end_offset == pytest.approx(300)
