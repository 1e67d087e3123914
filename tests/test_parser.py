"""Tests for strict and loose segment parsing."""

import json

import pytest

from clip_segmenter.models import GenerationSettings
from clip_segmenter.parser import (
    StructuralParseError,
    parse_descriptors,
    parse_loose,
    parse_strict,
)
from clip_segmenter.timing import parse_clock_time


TRANSCRIPT_100 = " ".join(f"w{i}" for i in range(100))

SETTINGS = GenerationSettings(segment_count=5, segment_length_s=60)

TYPED_ARRAY = json.dumps(
    [
        {"Start": "00:00:10", "End": "00:00:50", "Duration": 40, "Reasoning": "Hook", "Excerpt": "First"},
        {"Start": "00:01:00", "End": "00:01:45", "Duration": 45, "Reasoning": "Tip", "Excerpt": "Second"},
    ]
)


# --- Test parse_strict ---


class TestParseStrict:
    """Tests for the typed parsing tier."""

    def test_typed_array(self):
        """A typed array parses into descriptors field by field."""
        descriptors = parse_strict(TYPED_ARRAY)
        assert len(descriptors) == 2
        first = descriptors[0]
        assert first.start == "00:00:10"
        assert first.end == "00:00:50"
        assert first.duration == 40
        assert first.reasoning == "Hook"
        assert first.excerpt == "First"

    def test_unknown_fields_ignored(self):
        """Extra keys in an element are ignored."""
        text = json.dumps([{"Start": "00:00:01", "End": "00:00:09", "Score": 0.9, "Tags": ["a"]}])
        descriptors = parse_strict(text)
        assert descriptors[0].start == "00:00:01"

    def test_lowercase_keys_accepted(self):
        """Lowercase key spellings are accepted."""
        text = json.dumps([{"start": "00:00:01", "end": "00:00:09", "excerpt": "hi", "reasoning": "r"}])
        descriptor = parse_strict(text)[0]
        assert (descriptor.start, descriptor.end, descriptor.excerpt) == ("00:00:01", "00:00:09", "hi")

    def test_missing_fields_default_empty(self):
        """Missing fields are a per-element issue, not a structural one."""
        descriptor = parse_strict('[{"Reasoning": "no times"}]')[0]
        assert descriptor.start == ""
        assert descriptor.end == ""

    def test_trailing_commas_tolerated(self):
        """Trailing commas do not break parsing."""
        text = '[{"Start": "00:00:01", "End": "00:00:09",}, {"Start": "00:00:10", "End": "00:00:20"},]'
        assert len(parse_strict(text)) == 2

    def test_empty_array(self):
        """An empty array parses to no descriptors."""
        assert parse_strict("[]") == []

    @pytest.mark.parametrize(
        "text",
        [
            "not json at all",
            '[{"Start": "00:00:01"',
            '{"Start": "00:00:01", "End": "00:00:09"}',
            '[{"Start": 10, "End": 20}]',
            '[null]',
            '["a string element"]',
            '[{"Start": "00:00:01", "End": "00:00:09", "Excerpt": null}]',
            '[{"Start": "00:00:01", "End": "00:00:09", "Duration": "about a minute"}]',
        ],
    )
    def test_structural_failures(self, text):
        """Invalid JSON, non-arrays and type mismatches are structural."""
        with pytest.raises(StructuralParseError):
            parse_strict(text)


# --- Test parse_loose ---


class TestParseLoose:
    """Tests for the field-bag parsing tier."""

    def test_alternate_field_names(self):
        """Alternate key names fill the descriptor fields."""
        text = json.dumps(
            [{"start_time": "00:00:05", "end_time": "00:00:35", "text": "hello", "reason": "good", "title": "Intro"}]
        )
        descriptor = parse_loose(text, TRANSCRIPT_100, SETTINGS, 300)[0]
        assert descriptor.start == "00:00:05"
        assert descriptor.end == "00:00:35"
        assert descriptor.excerpt == "hello"
        assert descriptor.reasoning == "good"
        assert descriptor.summary == "Intro"

    def test_numeric_timestamps_are_seconds(self):
        """JSON numbers are read as seconds."""
        descriptor = parse_loose('[{"start": 30, "end": 75.5}]', TRANSCRIPT_100, SETTINGS, 300)[0]
        assert parse_clock_time(descriptor.start) == 30
        assert parse_clock_time(descriptor.end) == 75.5

    def test_missing_times_synthesized_by_position(self):
        """Elements without start/end get the fallback offset for their index."""
        text = json.dumps([{"summary": "A"}, {"summary": "B"}])
        descriptors = parse_loose(text, TRANSCRIPT_100, SETTINGS, 300)

        assert [parse_clock_time(d.start) for d in descriptors] == [0, 240]
        assert [parse_clock_time(d.end) for d in descriptors] == [60, 300]
        assert descriptors[0].excerpt.split() == [f"w{i}" for i in range(20)]
        assert descriptors[1].excerpt.split() == [f"w{i}" for i in range(80, 100)]

    def test_existing_excerpt_kept_when_synthesizing(self):
        """A given excerpt survives time synthesis."""
        descriptor = parse_loose('[{"excerpt": "keep me"}]', TRANSCRIPT_100, SETTINGS, 300)[0]
        assert descriptor.excerpt == "keep me"

    def test_non_object_elements_synthesized(self):
        """Non-object elements still produce positioned descriptors."""
        descriptors = parse_loose('[null, "text"]', TRANSCRIPT_100, SETTINGS, 300)
        assert len(descriptors) == 2
        assert all(parse_clock_time(d.start) is not None for d in descriptors)

    def test_unparsable_time_synthesized(self):
        """Unparsable times are replaced by the positional start."""
        descriptor = parse_loose('[{"start": "soon", "end": "later"}]', TRANSCRIPT_100, SETTINGS, 300)[0]
        assert parse_clock_time(descriptor.start) == 0

    def test_default_summary(self):
        """A missing summary defaults to the segment number."""
        descriptor = parse_loose('[{"start": "00:00:01", "end": "00:00:02"}]', TRANSCRIPT_100, SETTINGS, 300)[0]
        assert descriptor.summary == "Segment 1"

    def test_bad_duration_ignored(self):
        """A non-numeric duration falls back to zero."""
        descriptor = parse_loose(
            '[{"start": "00:00:01", "end": "00:00:02", "duration": "n/a"}]', TRANSCRIPT_100, SETTINGS, 300
        )[0]
        assert descriptor.duration == 0.0

    def test_not_an_array_returns_empty(self):
        """Non-array input yields no descriptors."""
        assert parse_loose("garbage", TRANSCRIPT_100, SETTINGS, 300) == []
        assert parse_loose('{"a": 1}', TRANSCRIPT_100, SETTINGS, 300) == []


# --- Test parse_descriptors ---


class TestParseDescriptors:
    """Tests for strict-then-loose tiering."""

    def test_strict_path(self):
        """Well-typed input goes through the strict tier."""
        assert len(parse_descriptors(TYPED_ARRAY, TRANSCRIPT_100, SETTINGS, 300)) == 2

    def test_falls_back_to_loose_on_type_mismatch(self):
        """A type mismatch falls through to the loose tier."""
        text = '[{"Start": "00:00:10", "End": "00:00:40", "Excerpt": null, "Reasoning": "ok"}]'
        descriptor = parse_descriptors(text, TRANSCRIPT_100, SETTINGS, 300)[0]
        assert descriptor.start == "00:00:10"
        assert descriptor.excerpt == ""
        assert descriptor.reasoning == "ok"

    def test_garbage_yields_no_descriptors(self):
        """Unparsable text yields no descriptors."""
        assert parse_descriptors("I cannot do that.", TRANSCRIPT_100, SETTINGS, 300) == []
