"""Media Probe - reads durations and stream layout of produced media with ffprobe."""

import json
import subprocess
from pathlib import Path
from typing import Any, Optional

from beatreel.core.config import Settings
from beatreel.models.schemas import BeatMedia, MediaFacts, MovieScript, VoiceOverBeat
from beatreel.utils.error_handler import ProbeError


class MediaFactsProbe:
    """Produces one MediaFacts per beat from the files generated for it."""

    def __init__(self, settings: Settings, logger: Any):
        """
        Initialize the media probe.

        Args:
            settings: Application settings
            logger: Logger instance
        """
        self.settings = settings
        self.logger = logger

    def probe_file(self, path: str, beat_index: Optional[int] = None) -> Optional[dict[str, Any]]:
        """
        Run ffprobe on a file.

        Args:
            path: Media file
            beat_index: Beat the file belongs to (for error messages)

        Returns:
            Parsed ffprobe JSON, or None for a missing file when missing media is allowed
        """
        if not Path(path).is_file():
            if self.settings.allow_missing_media:
                self.logger.warning(f"Beat {beat_index}: {path} not found, treating it as zero length")
                return None
            raise ProbeError(path, beat_index, "file not found")

        command = [
            self.settings.ffprobe_path,
            "-v",
            "error",
            "-print_format",
            "json",
            "-show_format",
            "-show_streams",
            path,
        ]
        try:
            result = subprocess.run(command, capture_output=True, text=True, check=True)
        except FileNotFoundError as e:
            raise ProbeError(path, beat_index, f"ffprobe executable not found: {self.settings.ffprobe_path}") from e
        except subprocess.CalledProcessError as e:
            raise ProbeError(path, beat_index, e.stderr.strip() or f"ffprobe exited with {e.returncode}") from e

        try:
            return json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise ProbeError(path, beat_index, f"unreadable ffprobe output: {e}") from e

    @staticmethod
    def get_duration(info: Optional[dict[str, Any]]) -> float:
        """Container duration in seconds, falling back to the longest stream."""
        if not info:
            return 0.0
        duration = info.get("format", {}).get("duration")
        if duration is not None:
            return max(0.0, float(duration))
        stream_durations = [float(s["duration"]) for s in info.get("streams", []) if s.get("duration") is not None]
        return max(stream_durations, default=0.0)

    @staticmethod
    def has_audio_stream(info: Optional[dict[str, Any]]) -> bool:
        if not info:
            return False
        return any(stream.get("codec_type") == "audio" for stream in info.get("streams", []))

    def probe_beat(self, beat: Any, media: BeatMedia, index: int) -> MediaFacts:
        """
        Probe the files of one beat.

        Args:
            beat: The beat
            media: Files produced for the beat
            index: Beat index

        Returns:
            MediaFacts for the beat
        """
        movie_duration = 0.0
        has_movie_audio = False
        if media.movie_file:
            info = self.probe_file(media.movie_file, index)
            movie_duration = self.get_duration(info)
            has_movie_audio = self.has_audio_stream(info)

        audio_duration = 0.0
        if media.audio_file:
            audio_duration = self.get_duration(self.probe_file(media.audio_file, index))

        # Voice-over audio is narrated over the group's movie, so it never owns a timeline slot.
        has_media = not isinstance(beat, VoiceOverBeat) and (media.audio_file is not None or movie_duration > 0)

        facts = MediaFacts(
            movie_duration=movie_duration,
            audio_duration=audio_duration,
            has_media=has_media,
            has_movie_audio=has_movie_audio,
        )
        self.logger.debug(
            f"Beat {index}: movie={movie_duration:.2f}s audio={audio_duration:.2f}s "
            f"has_media={has_media} movie_audio={has_movie_audio}"
        )
        return facts

    def probe_all(self, script: MovieScript) -> list[MediaFacts]:
        """Probe every beat of a script, in order."""
        self.logger.info(f"Probing media for {len(script.beats)} beats")
        return [self.probe_beat(beat, script.media_for(index), index) for index, beat in enumerate(script.beats)]
