"""Narration Track Builder - lays the beats' audio and silences end to end.

The narration track is the audio clock of the movie: every beat contributes
its own audio (if any) followed by its reconciled silence, so the track ends
exactly where the last beat's visual ends.
"""

from typing import Any, Sequence

from beatreel.core.config import Settings
from beatreel.models.filter_graph import Filter, FilterGraph, format_number
from beatreel.models.schemas import GroupKind, MediaFacts, MovieScript, PaddingPolicy, ReconciledBeat
from beatreel.services.composition_graph_builder import audio_format
from beatreel.services.timeline_reconciler import group_beats
from beatreel.utils.error_handler import invariant

NARRATION_ID = "narration"


def silence(duration: float) -> list[Filter]:
    return [
        Filter.of("anullsrc", channel_layout="stereo", sample_rate=44100),
        Filter.of("atrim", duration=duration),
        audio_format(),
    ]


class NarrationTrackBuilder:
    """Builds the ffmpeg graphs for the narration track and the music mix."""

    def __init__(self, settings: Settings, logger: Any):
        """
        Initialize the narration track builder.

        Args:
            settings: Application settings
            logger: Logger instance
        """
        self.settings = settings
        self.logger = logger

    def build_narration_graph(
        self,
        script: MovieScript,
        reconciled: Sequence[ReconciledBeat],
        facts: Sequence[MediaFacts],
        include_padding: bool = True,
    ) -> FilterGraph:
        """
        Build the graph concatenating every beat's audio and silence.

        Args:
            script: Movie script with the produced audio files
            reconciled: Reconciled timeline
            facts: Media facts, one per beat
            include_padding: Add intro/outro silence (off when music mixing adds it)

        Returns:
            Audio-only FilterGraph labelled ``narration``
        """
        invariant(
            len(reconciled) == len(script.beats) == len(facts),
            "narration needs one timeline entry and one media fact per beat",
        )

        # A spillover owner's audio runs on into the following beats; every other audio is cut at its beat's end.
        spillover_owners = {
            group.indices[0] for group in group_beats(script.beats, facts) if group.kind == GroupKind.SPILLOVER
        }

        graph = FilterGraph()
        segments: list[str] = []

        if include_padding and script.padding.intro_padding > 0:
            segments.append(graph.push((), silence(script.padding.intro_padding), "s_intro"))

        for index, timing in enumerate(reconciled):
            media = script.media_for(index)
            fact = facts[index]
            if media.audio_file and fact.audio_duration > 0 and timing.duration <= 0:
                # atrim=duration=0 would mean "no limit".
                self.logger.warning(f"Beat {index}: no time left on the timeline, dropping its audio")
            elif media.audio_file and fact.audio_duration > 0:
                input_index = graph.add_input(media.audio_file)
                filters = [audio_format()]
                if index not in spillover_owners and fact.audio_duration > timing.duration:
                    self.logger.warning(
                        f"Beat {index}: {fact.audio_duration:.2f}s of audio cut to its {timing.duration:.2f}s slot"
                    )
                    filters.insert(0, Filter.of("atrim", duration=timing.duration))
                segments.append(graph.push(f"{input_index}:a", filters, f"b{index}"))
            if timing.silence_duration > 0:
                segments.append(graph.push((), silence(timing.silence_duration), f"s{index}"))

        if include_padding and script.padding.outro_padding > 0:
            segments.append(graph.push((), silence(script.padding.outro_padding), "s_outro"))

        invariant(len(segments) > 0, "narration track would be empty")
        graph.audio_label = graph.push(segments, [Filter.of("concat", n=len(segments), v=0, a=1)], NARRATION_ID)
        self.logger.info(f"Built narration graph with {len(segments)} segments")
        return graph

    def build_bgm_graph(
        self,
        voice_file: str,
        music_file: str,
        speech_duration: float,
        policy: PaddingPolicy,
        bgm_volume: float,
        voice_volume: float,
    ) -> FilterGraph:
        """
        Mix background music under the narration.

        The voice is delayed by the intro padding, the mix is cut to
        ``speech + intro + outro`` and faded out over the outro.

        Args:
            voice_file: Narration track without intro/outro silence
            music_file: Background music
            speech_duration: Length of the narration track in seconds
            policy: Padding policy providing intro/outro lengths
            bgm_volume: Music volume
            voice_volume: Voice volume

        Returns:
            Audio-only FilterGraph labelled ``faded``
        """
        total_duration = speech_duration + policy.intro_padding + policy.outro_padding
        delay = format_number(policy.intro_padding * 1000)
        self.logger.debug(f"Music mix: speech {speech_duration:.2f}s, total {total_duration:.2f}s")

        graph = FilterGraph()
        music_index = graph.add_input(music_file)
        voice_index = graph.add_input(voice_file)

        music = graph.push(f"{music_index}:a", [audio_format(), Filter.of("volume", bgm_volume)], "music")
        voice = graph.push(
            f"{voice_index}:a",
            [audio_format(), Filter.of("volume", voice_volume), Filter.of("adelay", f"{delay}|{delay}")],
            "voice",
        )
        mixed = graph.push([music, voice], [Filter.of("amix", inputs=2, duration="longest")], "mixed")
        trimmed = graph.push(mixed, [Filter.of("atrim", start=0, end=total_duration)], "trimmed")
        graph.audio_label = graph.push(
            trimmed,
            [Filter.of("afade", t="out", st=total_duration - policy.outro_padding, d=policy.outro_padding)],
            "faded",
        )
        return graph
