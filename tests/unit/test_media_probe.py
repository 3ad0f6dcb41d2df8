"""Tests for Media Probe service."""

import json
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from beatreel.models.schemas import BeatMedia, ImageBeat, MovieBeat, MovieScript, VoiceOverBeat
from beatreel.services.media_probe import MediaFactsProbe
from beatreel.utils.error_handler import ProbeError


def ffprobe_output(duration=None, streams=()):
    info = {"streams": list(streams), "format": {}}
    if duration is not None:
        info["format"]["duration"] = str(duration)
    return MagicMock(stdout=json.dumps(info), stderr="", returncode=0)


@pytest.fixture
def probe(settings, logger):
    """Create MediaFactsProbe instance for testing."""
    return MediaFactsProbe(settings, logger)


@pytest.fixture
def media_dir(tmp_path):
    for name in ("movie.mp4", "voice.mp3", "image.png"):
        (tmp_path / name).write_bytes(b"fake")
    return tmp_path


def test_get_duration_from_format():
    assert MediaFactsProbe.get_duration({"format": {"duration": "12.5"}}) == 12.5


def test_get_duration_falls_back_to_longest_stream():
    info = {"format": {}, "streams": [{"duration": "3.0"}, {"duration": "4.25"}, {}]}
    assert MediaFactsProbe.get_duration(info) == 4.25


def test_get_duration_of_nothing():
    assert MediaFactsProbe.get_duration(None) == 0.0
    assert MediaFactsProbe.get_duration({"format": {}, "streams": []}) == 0.0


def test_has_audio_stream():
    assert MediaFactsProbe.has_audio_stream({"streams": [{"codec_type": "video"}, {"codec_type": "audio"}]})
    assert not MediaFactsProbe.has_audio_stream({"streams": [{"codec_type": "video"}]})
    assert not MediaFactsProbe.has_audio_stream(None)


@patch("beatreel.services.media_probe.subprocess.run")
def test_probe_file_runs_ffprobe(mock_run, probe, media_dir):
    mock_run.return_value = ffprobe_output(7.5)
    path = str(media_dir / "voice.mp3")

    info = probe.probe_file(path, 0)

    assert info["format"]["duration"] == "7.5"
    command = mock_run.call_args[0][0]
    assert command[0] == "ffprobe"
    assert command[-1] == path
    assert "-show_streams" in command


def test_missing_file_raises(probe, tmp_path):
    with pytest.raises(ProbeError) as exc_info:
        probe.probe_file(str(tmp_path / "missing.mp3"), 2)

    assert exc_info.value.beat_index == 2
    assert "not found" in str(exc_info.value)


def test_missing_file_is_allowed_for_mock_scripts(mock_settings, logger, tmp_path):
    probe = MediaFactsProbe(mock_settings, logger)
    assert probe.probe_file(str(tmp_path / "missing.mp3"), 0) is None


@patch("beatreel.services.media_probe.subprocess.run")
def test_ffprobe_failure_raises(mock_run, probe, media_dir):
    mock_run.side_effect = subprocess.CalledProcessError(1, ["ffprobe"], stderr="Invalid data found")

    with pytest.raises(ProbeError, match="Invalid data found"):
        probe.probe_file(str(media_dir / "voice.mp3"), 0)


@patch("beatreel.services.media_probe.subprocess.run")
def test_ffprobe_not_installed_raises(mock_run, probe, media_dir):
    mock_run.side_effect = FileNotFoundError("ffprobe")

    with pytest.raises(ProbeError, match="executable not found"):
        probe.probe_file(str(media_dir / "voice.mp3"), 0)


@patch("beatreel.services.media_probe.subprocess.run")
def test_unreadable_output_raises(mock_run, probe, media_dir):
    mock_run.return_value = MagicMock(stdout="not json", stderr="", returncode=0)

    with pytest.raises(ProbeError, match="unreadable"):
        probe.probe_file(str(media_dir / "voice.mp3"), 0)


@patch("beatreel.services.media_probe.subprocess.run")
def test_probe_movie_beat_with_narration(mock_run, probe, media_dir):
    mock_run.side_effect = [
        ffprobe_output(20.0, [{"codec_type": "video"}, {"codec_type": "audio"}]),
        ffprobe_output(8.0, [{"codec_type": "audio"}]),
    ]
    media = BeatMedia(movie_file=str(media_dir / "movie.mp4"), audio_file=str(media_dir / "voice.mp3"))

    facts = probe.probe_beat(MovieBeat(), media, 0)

    assert facts.movie_duration == 20.0
    assert facts.audio_duration == 8.0
    assert facts.has_media is True
    assert facts.has_movie_audio is True


@patch("beatreel.services.media_probe.subprocess.run")
def test_movie_only_beat_owns_media(mock_run, probe, media_dir):
    mock_run.return_value = ffprobe_output(10.0, [{"codec_type": "video"}])

    facts = probe.probe_beat(MovieBeat(), BeatMedia(movie_file=str(media_dir / "movie.mp4")), 0)

    assert facts.movie_duration == 10.0
    assert facts.has_media is True
    assert facts.has_movie_audio is False


def test_missing_movie_in_mock_mode_owns_nothing(mock_settings, logger, tmp_path):
    probe = MediaFactsProbe(mock_settings, logger)
    facts = probe.probe_beat(MovieBeat(), BeatMedia(movie_file=str(tmp_path / "missing.mp4")), 0)

    assert facts.movie_duration == 0.0
    assert facts.has_media is False


@patch("beatreel.services.media_probe.subprocess.run")
def test_voice_over_audio_is_not_owned_media(mock_run, probe, media_dir):
    mock_run.return_value = ffprobe_output(4.0)

    facts = probe.probe_beat(VoiceOverBeat(), BeatMedia(audio_file=str(media_dir / "voice.mp3")), 1)

    assert facts.audio_duration == 4.0
    assert facts.has_media is False


def test_image_beat_without_audio_needs_no_ffprobe(probe, media_dir):
    with patch("beatreel.services.media_probe.subprocess.run") as mock_run:
        facts = probe.probe_beat(ImageBeat(), BeatMedia(image_file=str(media_dir / "image.png")), 0)

    mock_run.assert_not_called()
    assert facts.has_media is False
    assert facts.audio_duration == 0.0


@patch("beatreel.services.media_probe.subprocess.run")
def test_probe_all_returns_one_fact_per_beat(mock_run, probe, media_dir):
    mock_run.return_value = ffprobe_output(3.0)
    script = MovieScript(
        beats=[ImageBeat(), ImageBeat()],
        media=[BeatMedia(audio_file=str(media_dir / "voice.mp3"))],
    )

    facts = probe.probe_all(script)

    assert len(facts) == 2
    assert facts[0].audio_duration == 3.0
    assert facts[1].has_media is False
