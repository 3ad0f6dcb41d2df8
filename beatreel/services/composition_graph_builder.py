"""Composition Graph Builder - turns the reconciled timeline into one ffmpeg filter graph.

The graph is assembled in stages, each consuming the label produced by the
previous one:

1. one video chain per visual beat (``v{i}``), plus split/extracted first and
   last frames where a transition needs them;
2. ``concat_video``: all visual beats back to back;
3. caption overlays (``oc{n}``);
4. transition overlays (``trans_{i}_o``);
5. the audio mix (``composite``) of the narration track and movie audio.
"""

from pathlib import Path
from typing import Any, Optional, Sequence

from beatreel.core.config import Settings
from beatreel.models.filter_graph import Filter, FilterGraph, format_number
from beatreel.models.schemas import (
    CanvasSize,
    CaptionFile,
    FillOption,
    MediaFacts,
    MovieScript,
    PaddingPolicy,
    ReconciledBeat,
    TransitionPlan,
    TransitionPlanEntry,
    TransitionType,
)
from beatreel.utils.error_handler import MissingMediaError, invariant
from beatreel.utils.video_filters import convert_video_filters

# Transitions start slightly before the cut so the first frame of the next beat never flashes.
TRANSITION_LEAD = 0.05

CONCAT_VIDEO_ID = "concat_video"
MAIN_AUDIO_ID = "mainaudio"
COMPOSITE_AUDIO_ID = "composite"


def audio_format() -> Filter:
    return Filter.of("aformat", sample_fmts="fltp", sample_rates=44100, channel_layouts="stereo")


def select_first_frame() -> Filter:
    return Filter.of("select", "'eq(n,0)'")


def between(start: float, end: float) -> str:
    return f"'between(t,{format_number(start)},{format_number(end)})'"


def shift_to(start: float) -> Filter:
    """Move a stream so that its first frame plays at ``start`` seconds."""
    return Filter.of("setpts", f"PTS-STARTPTS+{format_number(start)}/TB")


def get_extra_padding(index: int, total: int, policy: PaddingPolicy) -> float:
    """Intro silence is shown over the first beat, outro silence over the last one."""
    extra = 0.0
    if index == 0:
        extra += policy.intro_padding
    if index == total - 1:
        extra += policy.outro_padding
    return extra


def get_fit_filters(canvas: CanvasSize, fill_option: FillOption) -> list[Filter]:
    """Letterbox (aspectFit) or crop (aspectFill) onto the canvas."""
    if fill_option == FillOption.ASPECT_FILL:
        return [
            Filter.of("scale", w=canvas.width, h=canvas.height, force_original_aspect_ratio="increase"),
            Filter.of("crop", canvas.width, canvas.height),
        ]
    return [
        Filter.of("scale", w=canvas.width, h=canvas.height, force_original_aspect_ratio="decrease"),
        Filter.of("pad", canvas.width, canvas.height, "(ow-iw)/2", "(oh-ih)/2", color="black"),
    ]


def get_video_part(
    is_movie: bool,
    duration: float,
    canvas: CanvasSize,
    fill_option: FillOption,
    fps: int = 30,
    speed: float = 1.0,
    extra_filters: Sequence[Filter] = (),
) -> list[Filter]:
    """
    Filters turning one image or movie input into exactly ``duration`` seconds of canvas video.

    Movies shorter than the beat are held on their last frame; images are looped.
    """
    source_duration = duration * speed
    if is_movie:
        lead = Filter.of("tpad", stop_mode="clone", stop_duration=source_duration * 2)
    else:
        lead = Filter.of("loop", loop=-1, size=1, start=0)

    if speed == 1.0:
        timing = Filter.of("setpts", "PTS-STARTPTS")
    else:
        timing = Filter.of("setpts", f"{format_number(1 / speed)}*PTS")

    return [
        lead,
        Filter.of("trim", duration=source_duration),
        Filter.of("fps", fps),
        timing,
        *get_fit_filters(canvas, fill_option),
        Filter.of("setsar", 1),
        Filter.of("format", "yuv420p"),
        *extra_filters,
    ]


def get_audio_part(duration: float, delay: float, volume: float) -> list[Filter]:
    """Filters placing a movie's own audio at ``delay`` seconds into the movie."""
    delay_ms = int(round(delay * 1000))
    return [
        Filter.of("atrim", duration=duration),
        Filter.of("adelay", f"{delay_ms}|{delay_ms}"),
        Filter.of("volume", volume),
        audio_format(),
    ]


def get_out_overlay_coords(transition_type: TransitionType, duration: float, start: float) -> tuple[str, str]:
    """(x, y) overlay expressions moving the previous beat's last frame off the canvas."""
    t, d = format_number(start), format_number(duration)
    if transition_type == TransitionType.SLIDEOUT_LEFT:
        return f"'-(t-{t})*W/{d}'", "0"
    if transition_type == TransitionType.SLIDEOUT_RIGHT:
        return f"'(t-{t})*W/{d}'", "0"
    if transition_type == TransitionType.SLIDEOUT_UP:
        return "0", f"'-(t-{t})*H/{d}'"
    if transition_type == TransitionType.SLIDEOUT_DOWN:
        return "0", f"'(t-{t})*H/{d}'"
    raise ValueError(f"Unknown slideout transition: {transition_type}")


def get_in_overlay_coords(transition_type: TransitionType, duration: float, start: float) -> tuple[str, str]:
    """(x, y) overlay expressions moving this beat's first frame onto the canvas."""
    t, d = format_number(start), format_number(duration)
    if transition_type == TransitionType.SLIDEIN_LEFT:
        return f"'-W+(t-{t})*W/{d}'", "0"
    if transition_type == TransitionType.SLIDEIN_RIGHT:
        return f"'W-(t-{t})*W/{d}'", "0"
    if transition_type == TransitionType.SLIDEIN_UP:
        return "0", f"'H-(t-{t})*H/{d}'"
    if transition_type == TransitionType.SLIDEIN_DOWN:
        return "0", f"'-H+(t-{t})*H/{d}'"
    raise ValueError(f"Unknown slidein transition: {transition_type}")


class CompositionGraphBuilder:
    """Builds the single filter graph that renders the final movie."""

    def __init__(self, settings: Settings, logger: Any):
        """
        Initialize the composition graph builder.

        Args:
            settings: Application settings
            logger: Logger instance
        """
        self.settings = settings
        self.logger = logger

    @property
    def fps(self) -> int:
        return self.settings.video_fps

    def validate_sources(self, script: MovieScript) -> None:
        """Every visual beat needs an existing image or movie file."""
        for index, beat in enumerate(script.beats):
            if not beat.has_visual:
                continue
            source = script.media_for(index).visual_file
            if not source:
                raise MissingMediaError(index)
            if not self.settings.allow_missing_media and not Path(source).is_file():
                raise MissingMediaError(index, source)

    def build(
        self,
        script: MovieScript,
        reconciled: Sequence[ReconciledBeat],
        facts: Sequence[MediaFacts],
        plan: TransitionPlan,
        narration_audio_file: Optional[str] = None,
        captions: Optional[Sequence[Sequence[CaptionFile]]] = None,
    ) -> FilterGraph:
        """
        Build the composition graph.

        Args:
            script: Movie script with the produced media
            reconciled: Reconciled timeline, one entry per beat
            facts: Media facts, one entry per beat
            plan: Transition plan
            narration_audio_file: Narration track; the movie is silent when omitted
            captions: Caption images with their display windows, one list per beat

        Returns:
            FilterGraph with ``video_label`` and ``audio_label`` set
        """
        beat_count = len(script.beats)
        invariant(len(reconciled) == beat_count, f"timeline has {len(reconciled)} entries for {beat_count} beats")
        invariant(len(facts) == beat_count, f"{len(facts)} media facts for {beat_count} beats")
        if plan.needs_last_frame:
            invariant(len(plan.needs_last_frame) == beat_count, "transition plan does not cover every beat")

        self.validate_sources(script)

        graph = FilterGraph()
        video_ids: list[Optional[str]] = []
        timestamps: list[float] = []
        audio_ids: list[str] = []

        timestamp = 0.0
        for index, beat in enumerate(script.beats):
            if not beat.has_visual:
                # Voice-over beats play over the previous movie; they only mark a point in time.
                video_ids.append(None)
                timestamps.append(timestamp)
                continue

            media = script.media_for(index)
            fact = facts[index]
            is_movie = media.movie_file is not None
            duration = max(
                reconciled[index].duration + get_extra_padding(index, beat_count, script.padding),
                fact.movie_duration,
            )

            input_index = graph.add_input(media.visual_file)
            video_id = graph.push(
                f"{input_index}:v",
                get_video_part(
                    is_movie,
                    duration,
                    script.canvas,
                    script.fill_option_for(index),
                    fps=self.fps,
                    speed=beat.speed,
                    extra_filters=convert_video_filters(beat.filters),
                ),
                f"v{index}",
            )

            need_first = self._flag(plan.needs_first_frame, index)
            need_last = self._flag(plan.needs_last_frame, index)
            if need_first or need_last:
                first_duration, last_duration = plan.frame_duration_for(index, 1 / self.fps)
                self.add_split_and_extract_frames(
                    graph, video_id, first_duration, last_duration, is_movie, need_first, need_last, script.canvas
                )

            movie_volume = beat.audio_params.movie_volume
            if is_movie and fact.has_movie_audio and movie_volume > 0:
                if beat.speed == 1.0:
                    audio_ids.append(
                        graph.push(f"{input_index}:a", get_audio_part(duration, timestamp, movie_volume), f"a{index}")
                    )
                else:
                    self.logger.warning(f"Beat {index}: movie audio is dropped when speed is {beat.speed}")

            video_ids.append(video_id)
            timestamps.append(timestamp)
            timestamp += duration

        invariant(len(video_ids) == beat_count, "video id count does not match beat count")
        invariant(len(timestamps) == beat_count, "timestamp count does not match beat count")

        self.add_concat(graph, video_ids)
        video_label = self.add_captions(graph, CONCAT_VIDEO_ID, captions or [])
        video_label = self.add_transitions(graph, video_label, plan, video_ids, timestamps)
        graph.video_label = video_label

        if narration_audio_file is not None:
            graph.audio_label = self.add_audio_mix(graph, narration_audio_file, audio_ids)

        self.logger.info(
            f"Built filter graph: {len(graph.inputs)} inputs, {len(graph.chains)} chains, "
            f"{timestamp:.2f}s of video"
        )
        return graph

    @staticmethod
    def _flag(flags: Sequence[bool], index: int) -> bool:
        return index < len(flags) and flags[index]

    def add_split_and_extract_frames(
        self,
        graph: FilterGraph,
        video_id: str,
        first_duration: float,
        last_duration: float,
        is_movie: bool,
        need_first: bool,
        need_last: bool,
        canvas: CanvasSize,
    ) -> None:
        """
        Split a beat's video and turn its first/last frame into a still clip.

        Each still is overlaid on a ``nullsrc`` canvas so that it keeps a proper
        frame rate and time base for the transition filters downstream.
        """
        outputs = [video_id]
        if need_first:
            outputs.append(f"{video_id}_first_src")
        if need_last:
            outputs.append(f"{video_id}_last_src")
        graph.push(video_id, [Filter.of("split", len(outputs))], outputs)

        size = f"{canvas.width}x{canvas.height}"
        scale = Filter.of("scale", canvas.width, canvas.height)

        if need_first:
            graph.push(
                (),
                [Filter.of("nullsrc", size=size, duration=first_duration, rate=self.fps)],
                f"{video_id}_first_null",
            )
            graph.push(f"{video_id}_first_src", [select_first_frame(), scale], f"{video_id}_first_frame")
            graph.push(
                [f"{video_id}_first_null", f"{video_id}_first_frame"],
                [Filter.of("overlay", format="auto"), Filter.of("fps", self.fps)],
                f"{video_id}_first",
            )

        if need_last:
            graph.push(
                (),
                [Filter.of("nullsrc", size=size, duration=last_duration, rate=self.fps)],
                f"{video_id}_last_null",
            )
            if is_movie:
                pick = [Filter("reverse"), select_first_frame(), Filter("reverse")]
            else:
                # Every frame of a looped image is the same.
                pick = [select_first_frame()]
            graph.push(f"{video_id}_last_src", [*pick, scale], f"{video_id}_last_frame")
            graph.push(
                [f"{video_id}_last_null", f"{video_id}_last_frame"],
                [Filter.of("overlay", format="auto"), Filter.of("fps", self.fps)],
                f"{video_id}_last",
            )

    def add_concat(self, graph: FilterGraph, video_ids: Sequence[Optional[str]]) -> str:
        visual_ids = [video_id for video_id in video_ids if video_id is not None]
        invariant(len(visual_ids) > 0, "the script has no visual beats")
        return graph.push(visual_ids, [Filter.of("concat", n=len(visual_ids), v=1, a=0)], CONCAT_VIDEO_ID)

    def add_captions(self, graph: FilterGraph, video_label: str, captions: Sequence[Sequence[CaptionFile]]) -> str:
        """Overlay every caption image during its display window."""
        caption_index = 0
        for beat_captions in captions:
            for caption in beat_captions:
                input_index = graph.add_input(caption.file)
                video_label = graph.push(
                    [video_label, f"{input_index}:v"],
                    [Filter.of("overlay", format="auto", enable=between(caption.start_at, caption.end_at))],
                    f"oc{caption_index}",
                )
                caption_index += 1
        if caption_index:
            self.logger.debug(f"Added {caption_index} caption overlays")
        return video_label

    def add_transitions(
        self,
        graph: FilterGraph,
        video_label: str,
        plan: TransitionPlan,
        video_ids: Sequence[Optional[str]],
        timestamps: Sequence[float],
    ) -> str:
        """Overlay each planned transition on top of the concatenated video."""
        for entry in plan.entries:
            video_label = self.add_transition(graph, video_label, entry, video_ids, timestamps)
        return video_label

    def add_transition(
        self,
        graph: FilterGraph,
        video_label: str,
        entry: TransitionPlanEntry,
        video_ids: Sequence[Optional[str]],
        timestamps: Sequence[float],
    ) -> str:
        source_id = video_ids[entry.source_index]
        current_id = video_ids[entry.beat_index]
        invariant(
            source_id is not None and current_id is not None,
            f"beat {entry.beat_index}: transition between beats without video",
        )

        start = timestamps[entry.beat_index] - TRANSITION_LEAD
        duration = entry.duration
        enable = between(start, start + duration)
        last_frame = f"{source_id}_last"
        first_frame = f"{current_id}_first"
        output = f"trans_{entry.beat_index}_o"
        kind = entry.type

        if kind == TransitionType.FADE:
            faded = graph.push(
                last_frame,
                [
                    Filter.of("format", "yuva420p"),
                    Filter.of("fade", t="out", d=duration, alpha=1),
                    shift_to(start),
                ],
                f"{last_frame}_f",
            )
            return graph.push([video_label, faded], [Filter.of("overlay", enable=enable)], output)

        if kind.is_slideout:
            moving = graph.push(last_frame, [Filter.of("format", "yuva420p"), shift_to(start)], f"{last_frame}_f")
            x, y = get_out_overlay_coords(kind, duration, start)
            return graph.push([video_label, moving], [Filter.of("overlay", x=x, y=y, enable=enable)], output)

        if kind.is_slidein:
            background = graph.push(last_frame, [Filter.of("format", "yuva420p"), shift_to(start)], f"{last_frame}_bg")
            sliding = graph.push(first_frame, [Filter.of("format", "yuva420p"), shift_to(start)], f"{first_frame}_f")
            covered = graph.push([video_label, background], [Filter.of("overlay", enable=enable)], f"{background}_o")
            x, y = get_in_overlay_coords(kind, duration, start)
            return graph.push([covered, sliding], [Filter.of("overlay", x=x, y=y, enable=enable)], output)

        if kind.is_wipe:
            # offset=0: the whole 0-100% wipe happens inside the transition window.
            previous = graph.push(last_frame, [Filter.of("format", "yuv420p")], f"{last_frame}_fmt")
            following = graph.push(first_frame, [Filter.of("format", "yuv420p")], f"{first_frame}_fmt")
            wiped = graph.push(
                [previous, following],
                [Filter.of("xfade", transition=kind.value, duration=duration, offset=0)],
                f"{last_frame}_xfade",
            )
            timed = graph.push(wiped, [shift_to(start)], f"{wiped}_t")
            return graph.push([video_label, timed], [Filter.of("overlay", enable=enable)], output)

        raise ValueError(f"Unknown transition type: {kind}")

    def add_audio_mix(self, graph: FilterGraph, narration_audio_file: str, audio_ids: Sequence[str]) -> str:
        """Mix movie audio under the narration; the narration decides the length."""
        narration_index = graph.add_input(narration_audio_file)
        narration = f"{narration_index}:a"
        if not audio_ids:
            return narration

        main = graph.push(narration, [audio_format()], MAIN_AUDIO_ID)
        return graph.push(
            [main, *audio_ids],
            [Filter.of("amix", inputs=len(audio_ids) + 1, duration="first", dropout_transition=2)],
            COMPOSITE_AUDIO_ID,
        )
