"""Composition Engine - runs ffmpeg once over a built filter graph."""

import subprocess
from pathlib import Path
from typing import Any, Optional, Sequence

from beatreel.core.config import Settings
from beatreel.models.filter_graph import FilterGraph
from beatreel.utils.error_handler import EncoderError


class CompositionEngine:
    """Encodes a FilterGraph into a media file with a single ffmpeg invocation."""

    def __init__(self, settings: Settings, logger: Any):
        """
        Initialize the composition engine.

        Args:
            settings: Application settings
            logger: Logger instance
        """
        self.settings = settings
        self.logger = logger

    def get_movie_output_options(self, graph: FilterGraph) -> list[str]:
        """H.264/AAC output options for the final movie."""
        s = self.settings
        options = ["-preset", s.video_preset, "-map", graph.map_label(graph.video_label)]
        if graph.audio_label is not None:
            options += ["-map", graph.map_label(graph.audio_label)]
        options += ["-c:v", s.video_codec]
        if s.video_codec == "libx264":
            options += ["-crf", str(s.video_crf)]
        options += [
            "-threads",
            str(s.encoder_threads),
            "-filter_threads",
            str(s.encoder_threads),
            "-b:v",
            s.video_bitrate,
            "-bufsize",
            s.video_bufsize,
            "-maxrate",
            s.video_maxrate,
            "-r",
            str(s.video_fps),
            "-pix_fmt",
            s.pixel_format,
        ]
        if graph.audio_label is not None:
            options += ["-c:a", s.audio_codec, "-b:a", s.audio_bitrate]
        return options

    def build_command(self, graph: FilterGraph, output_path: str, output_options: Sequence[str]) -> list[str]:
        command = [self.settings.ffmpeg_path, "-y"]
        for spec in graph.inputs:
            command += [*spec.options, "-i", spec.path]
        if graph.chains:
            command += ["-filter_complex", graph.serialize()]
        command += [*output_options, output_path]
        return command

    def run(
        self,
        graph: FilterGraph,
        output_path: str,
        output_options: Sequence[str],
        timeout: Optional[float] = None,
    ) -> str:
        """
        Run ffmpeg exactly once.

        Args:
            graph: Filter graph with its inputs
            output_path: File to write
            output_options: Options placed before the output path
            timeout: Seconds before the encoder is killed (defaults to settings)

        Returns:
            Path to the written file

        Raises:
            EncoderError: ffmpeg is missing, timed out, failed, or wrote nothing
        """
        command = self.build_command(graph, output_path, output_options)
        if timeout is None:
            timeout = self.settings.encoder_timeout_seconds

        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        self.logger.info(f"Encoding {output_path} ({len(graph.inputs)} inputs, {len(graph.chains)} filter chains)")
        self.logger.debug(f"filter_complex: {graph.serialize()}")

        try:
            result = subprocess.run(command, capture_output=True, text=True, timeout=timeout)
        except FileNotFoundError as e:
            raise EncoderError(f"ffmpeg executable not found: {self.settings.ffmpeg_path}", command=command) from e
        except subprocess.TimeoutExpired as e:
            raise EncoderError(
                f"ffmpeg timed out after {timeout}s",
                command=command,
                stdout=self._text(e.stdout),
                stderr=self._text(e.stderr),
            ) from e

        if result.returncode != 0:
            raise EncoderError(
                "ffmpeg failed",
                command=command,
                returncode=result.returncode,
                stdout=result.stdout,
                stderr=result.stderr,
            )
        if not Path(output_path).is_file():
            raise EncoderError(
                f"ffmpeg exited cleanly but {output_path} was not written",
                command=command,
                returncode=result.returncode,
                stdout=result.stdout,
                stderr=result.stderr,
            )

        self.logger.info(f"Encoded {output_path}")
        return output_path

    def encode_movie(self, graph: FilterGraph, output_path: str, timeout: Optional[float] = None) -> str:
        """Encode the final movie built by the CompositionGraphBuilder."""
        if graph.video_label is None:
            raise EncoderError("filter graph has no video output")
        return self.run(graph, output_path, self.get_movie_output_options(graph), timeout=timeout)

    def encode_audio(self, graph: FilterGraph, output_path: str, timeout: Optional[float] = None) -> str:
        """Encode an audio-only graph (narration track, music mix)."""
        if graph.audio_label is None:
            raise EncoderError("filter graph has no audio output")
        options = ["-map", graph.map_label(graph.audio_label)]
        return self.run(graph, output_path, options, timeout=timeout)

    @staticmethod
    def _text(stream: Any) -> str:
        if stream is None:
            return ""
        if isinstance(stream, bytes):
            return stream.decode("utf-8", errors="replace")
        return stream
