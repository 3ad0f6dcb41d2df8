"""Tests for Narration Track Builder service."""

import pytest

from beatreel.models.schemas import (
    BeatMedia,
    ImageBeat,
    MediaFacts,
    MovieBeat,
    MovieScript,
    PaddingPolicy,
    ReconciledBeat,
    VoiceOverBeat,
)
from beatreel.services.narration_track_builder import NarrationTrackBuilder

AUDIO_FORMAT = "aformat=sample_fmts=fltp:sample_rates=44100:channel_layouts=stereo"
ANULLSRC = "anullsrc=channel_layout=stereo:sample_rate=44100"


@pytest.fixture
def builder(settings, logger):
    """Create NarrationTrackBuilder instance for testing."""
    return NarrationTrackBuilder(settings, logger)


def test_narration_alternates_audio_and_silence(builder):
    script = MovieScript(
        beats=[ImageBeat(), ImageBeat()],
        media=[BeatMedia(audio_file="/a0.mp3"), BeatMedia(audio_file="/a1.mp3")],
        padding=PaddingPolicy(intro_padding=1, outro_padding=1),
    )
    facts = [MediaFacts(audio_duration=3, has_media=True), MediaFacts(audio_duration=4, has_media=True)]
    reconciled = [
        ReconciledBeat(duration=3.5, start_at=0, silence_duration=0.5),
        ReconciledBeat(duration=4, start_at=3.5),
    ]

    graph = builder.build_narration_graph(script, reconciled, facts)

    assert graph.serialize_chains() == [
        f"{ANULLSRC},atrim=duration=1,{AUDIO_FORMAT}[s_intro]",
        f"[0:a]{AUDIO_FORMAT}[b0]",
        f"{ANULLSRC},atrim=duration=0.5,{AUDIO_FORMAT}[s0]",
        f"[1:a]{AUDIO_FORMAT}[b1]",
        f"{ANULLSRC},atrim=duration=1,{AUDIO_FORMAT}[s_outro]",
        "[s_intro][b0][s0][b1][s_outro]concat=n=5:v=0:a=1[narration]",
    ]
    assert graph.audio_label == "narration"
    assert [spec.path for spec in graph.inputs] == ["/a0.mp3", "/a1.mp3"]


def test_narration_without_padding(builder):
    script = MovieScript(
        beats=[ImageBeat(), ImageBeat(duration=2)],
        media=[BeatMedia(audio_file="/a0.mp3")],
    )
    facts = [MediaFacts(audio_duration=3, has_media=True), MediaFacts()]
    reconciled = [ReconciledBeat(duration=3, start_at=0), ReconciledBeat(duration=2, start_at=3, silence_duration=2)]

    graph = builder.build_narration_graph(script, reconciled, facts, include_padding=False)

    assert graph.serialize_chains()[-1] == "[b0][s1]concat=n=2:v=0:a=1[narration]"


def test_audio_longer_than_its_slot_is_trimmed(builder):
    script = MovieScript(
        beats=[ImageBeat(), ImageBeat()],
        media=[BeatMedia(audio_file="/a0.mp3"), BeatMedia(audio_file="/a1.mp3")],
    )
    facts = [MediaFacts(audio_duration=5, has_media=True), MediaFacts(audio_duration=2, has_media=True)]
    reconciled = [ReconciledBeat(duration=3, start_at=0), ReconciledBeat(duration=2, start_at=3)]

    chains = builder.build_narration_graph(script, reconciled, facts, include_padding=False).serialize_chains()

    assert f"[0:a]atrim=duration=3,{AUDIO_FORMAT}[b0]" in chains
    assert f"[1:a]{AUDIO_FORMAT}[b1]" in chains


def test_zero_length_beat_drops_its_audio(builder):
    script = MovieScript(
        beats=[MovieBeat(), VoiceOverBeat(start_at=150)],
        media=[BeatMedia(movie_file="/m.mp4", audio_file="/a0.mp3"), BeatMedia(audio_file="/a1.mp3")],
    )
    facts = [MediaFacts(movie_duration=100, audio_duration=30, has_media=True), MediaFacts(audio_duration=10)]
    reconciled = [
        ReconciledBeat(duration=150, start_at=0, silence_duration=120),
        ReconciledBeat(duration=0, start_at=150),
    ]

    graph = builder.build_narration_graph(script, reconciled, facts, include_padding=False)

    assert [spec.path for spec in graph.inputs] == ["/a0.mp3"]
    assert not any("atrim=duration=0," in chain for chain in graph.serialize_chains())
    assert graph.serialize_chains()[-1] == "[b0][s0]concat=n=2:v=0:a=1[narration]"


def test_spillover_audio_is_not_trimmed(builder):
    script = MovieScript(
        beats=[ImageBeat(duration=2), ImageBeat(duration=2)],
        media=[BeatMedia(audio_file="/a0.mp3")],
    )
    facts = [MediaFacts(audio_duration=4, has_media=True), MediaFacts()]
    reconciled = [ReconciledBeat(duration=2, start_at=0), ReconciledBeat(duration=2, start_at=2)]

    chains = builder.build_narration_graph(script, reconciled, facts, include_padding=False).serialize_chains()

    assert chains == [
        f"[0:a]{AUDIO_FORMAT}[b0]",
        "[b0]concat=n=1:v=0:a=1[narration]",
    ]


def test_bgm_graph(builder):
    policy = PaddingPolicy(intro_padding=1, outro_padding=2)
    graph = builder.build_bgm_graph("/work/voice.wav", "/music.mp3", 10, policy, bgm_volume=0.2, voice_volume=2.0)

    assert [spec.path for spec in graph.inputs] == ["/music.mp3", "/work/voice.wav"]
    assert graph.serialize_chains() == [
        f"[0:a]{AUDIO_FORMAT},volume=0.2[music]",
        f"[1:a]{AUDIO_FORMAT},volume=2,adelay=1000|1000[voice]",
        "[music][voice]amix=inputs=2:duration=longest[mixed]",
        "[mixed]atrim=start=0:end=13[trimmed]",
        "[trimmed]afade=t=out:st=11:d=2[faded]",
    ]
    assert graph.audio_label == "faded"
