"""Tests for Caption Timing service."""

import pytest

from beatreel.models.schemas import (
    BeatMedia,
    CaptionSplit,
    ImageBeat,
    MovieScript,
    PaddingPolicy,
    ReconciledBeat,
)
from beatreel.services.caption_timing import (
    CaptionTimingPlanner,
    calculate_cumulative_ratios,
    calculate_timing_ratios,
    get_split_texts,
    split_text_by_delimiters,
)


@pytest.fixture
def planner(settings, logger):
    """Create CaptionTimingPlanner instance for testing."""
    return CaptionTimingPlanner(settings, logger)


def test_split_keeps_delimiter_with_preceding_text():
    assert split_text_by_delimiters("Hello. World! Bye", [".", "!"]) == ["Hello.", "World!", "Bye"]


def test_split_without_delimiters_returns_whole_text():
    assert split_text_by_delimiters("Hello. World", []) == ["Hello. World"]


def test_split_japanese_sentences():
    assert split_text_by_delimiters("こんにちは。元気？", ["。", "？"]) == ["こんにちは。", "元気？"]


def test_manual_texts_win_over_splitting():
    split = CaptionSplit(type="delimiters")
    assert get_split_texts("A. B.", ["one", "two", "three"], split) == ["one", "two", "three"]


def test_no_split_keeps_text():
    assert get_split_texts("A. B.", None, CaptionSplit()) == ["A. B."]
    assert get_split_texts("A. B.", None, None) == ["A. B."]


def test_default_delimiters():
    assert get_split_texts("A. B? C", None, CaptionSplit(type="delimiters")) == ["A.", "B?", "C"]


def test_custom_delimiters():
    split = CaptionSplit(type="delimiters", delimiters=[","])
    assert get_split_texts("a,b. c", None, split) == ["a,", "b. c"]


def test_timing_ratios_follow_text_length():
    assert calculate_timing_ratios(["ab", "abcd"]) == pytest.approx([1 / 3, 2 / 3])


def test_timing_ratios_for_empty_texts_are_even():
    assert calculate_timing_ratios(["", "", "", ""]) == [0.25, 0.25, 0.25, 0.25]


def test_cumulative_ratios():
    assert calculate_cumulative_ratios([0.25, 0.5, 0.25]) == [0.0, 0.25, 0.75, 1.0]


def test_plan_beat_captions_are_offset_by_start_and_intro(planner):
    beat = ReconciledBeat(duration=4.0, start_at=2.0)
    segments = planner.plan_beat_captions(beat, 1.0, "Hello. World!", split=CaptionSplit(type="delimiters"))

    assert [(s.text, s.start_at, s.end_at) for s in segments] == [
        ("Hello.", 3.0, 5.0),
        ("World!", 5.0, 7.0),
    ]


def test_segments_cover_the_whole_beat(planner):
    beat = ReconciledBeat(duration=7.3, start_at=10.0)
    segments = planner.plan_beat_captions(beat, 0.0, "", texts=["a", "bb", "ccc", "dddd"])

    assert segments[0].start_at == 10.0
    assert segments[-1].end_at == pytest.approx(17.3)
    for previous, following in zip(segments, segments[1:]):
        assert previous.end_at == following.start_at


def test_plan_script_captions(planner):
    script = MovieScript(
        beats=[
            ImageBeat(text="One. Two.", caption_split=CaptionSplit(type="delimiters")),
            ImageBeat(text="No captions here"),
        ],
        media=[
            BeatMedia(image_file="/i0.png", caption_images=["/c0.png", "/c1.png"]),
            BeatMedia(image_file="/i1.png"),
        ],
        padding=PaddingPolicy(intro_padding=0),
    )
    reconciled = [ReconciledBeat(duration=4.0, start_at=0.0), ReconciledBeat(duration=2.0, start_at=4.0)]

    captions = planner.plan_script_captions(script, reconciled)

    assert [(c.file, c.start_at, c.end_at) for c in captions[0]] == [
        ("/c0.png", 0.0, 2.0),
        ("/c1.png", 2.0, 4.0),
    ]
    assert captions[1] == []


def test_image_count_mismatch_spreads_images_evenly(planner):
    script = MovieScript(
        beats=[ImageBeat(text="One sentence only")],
        media=[BeatMedia(image_file="/i.png", caption_images=["/a.png", "/b.png", "/c.png"])],
        padding=PaddingPolicy(intro_padding=1.0),
    )

    captions = planner.plan_script_captions(script, [ReconciledBeat(duration=3.0, start_at=0.0)])

    assert [c.file for c in captions[0]] == ["/a.png", "/b.png", "/c.png"]
    assert [c.start_at for c in captions[0]] == pytest.approx([1.0, 2.0, 3.0])
    assert captions[0][-1].end_at == pytest.approx(4.0)
