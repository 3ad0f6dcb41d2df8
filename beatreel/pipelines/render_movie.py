"""Render pipeline - movie script → probed facts → timeline → filter graph → movie file."""

import argparse
import sys
import time
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

from beatreel.core.config import Settings, settings
from beatreel.core.logging_config import configure_from_settings, get_logger
from beatreel.models.filter_graph import FilterGraph
from beatreel.models.schemas import MovieScript
from beatreel.services.caption_timing import CaptionTimingPlanner
from beatreel.services.composition_engine import CompositionEngine
from beatreel.services.composition_graph_builder import CompositionGraphBuilder
from beatreel.services.media_probe import MediaFactsProbe
from beatreel.services.narration_track_builder import NarrationTrackBuilder
from beatreel.services.timeline_reconciler import TimelineReconciler
from beatreel.services.transition_planner import TransitionPlanner
from beatreel.utils.error_handler import BeatReelError, format_error_message, get_fallback_suggestion
from beatreel.utils.io_utils import create_run_output_dir, load_movie_script, slugify

T = TypeVar("T")


def run_stage(stage: str, operation: str, logger: Any, func: Callable[[], T], **context: Any) -> T:
    """Run one pipeline step, logging a readable error before re-raising."""
    try:
        return func()
    except BeatReelError as e:
        logger.error(format_error_message(operation, e, context or None, get_fallback_suggestion(stage, e)))
        raise


def render_movie(
    script: MovieScript,
    output_path: str,
    settings: Settings,
    logger: Any,
    work_dir: Optional[Path] = None,
    dry_run: bool = False,
) -> dict[str, Any]:
    """
    Render a movie script into one video file.

    Args:
        script: Movie script with every beat's produced media
        output_path: Final movie file
        settings: App settings
        logger: Logger instance
        work_dir: Directory for intermediate audio (defaults to a timestamped dir under outputs/)
        dry_run: Build every graph but do not run the encoder

    Returns:
        Dict with the output path, total duration, reconciled timeline and filter graph
    """
    start_time = time.time()

    probe = MediaFactsProbe(settings, logger)
    reconciler = TimelineReconciler(settings, logger)
    planner = TransitionPlanner(settings, logger)
    caption_planner = CaptionTimingPlanner(settings, logger)
    narration_builder = NarrationTrackBuilder(settings, logger)
    graph_builder = CompositionGraphBuilder(settings, logger)
    engine = CompositionEngine(settings, logger)

    if work_dir is None:
        work_dir = create_run_output_dir("outputs", slugify(script.title))
    work_dir = Path(work_dir)
    work_dir.mkdir(parents=True, exist_ok=True)

    logger.info(f"Step 1: Probing media for {len(script.beats)} beats...")
    facts = run_stage("Probe", "Probing beat media", logger, lambda: probe.probe_all(script), title=script.title)

    logger.info("Step 2: Reconciling timeline...")
    reconciled = run_stage(
        "Composition",
        "Reconciling timeline",
        logger,
        lambda: reconciler.reconcile(script.beats, facts, script.padding),
    )
    speech_duration = sum(beat.duration for beat in reconciled)

    logger.info("Step 3: Planning transitions and captions...")
    plan = planner.plan(reconciled, script.beats)
    captions = caption_planner.plan_script_captions(script, reconciled)

    logger.info("Step 4: Building narration track...")
    narration_path = str(work_dir / "narration.wav")
    audio_graphs: list[tuple[FilterGraph, str]] = []
    if script.bgm_file:
        voice_path = str(work_dir / "voice.wav")
        voice_graph = narration_builder.build_narration_graph(script, reconciled, facts, include_padding=False)
        bgm_graph = narration_builder.build_bgm_graph(
            voice_path,
            script.bgm_file,
            speech_duration,
            script.padding,
            settings.bgm_volume,
            settings.voice_volume,
        )
        audio_graphs += [(voice_graph, voice_path), (bgm_graph, narration_path)]
    else:
        audio_graphs.append((narration_builder.build_narration_graph(script, reconciled, facts), narration_path))

    logger.info("Step 5: Building composition graph...")
    graph = run_stage(
        "Composition",
        "Building composition graph",
        logger,
        lambda: graph_builder.build(script, reconciled, facts, plan, narration_path, captions),
        title=script.title,
    )

    if dry_run:
        logger.info("DRY RUN - skipping the encoder")
    else:
        logger.info("Step 6: Encoding...")
        for audio_graph, audio_path in audio_graphs:
            run_stage(
                "Encoder",
                f"Encoding {Path(audio_path).name}",
                logger,
                lambda g=audio_graph, p=audio_path: engine.encode_audio(g, p),
            )
        run_stage("Encoder", "Encoding final movie", logger, lambda: engine.encode_movie(graph, output_path))

    elapsed = time.time() - start_time
    logger.info("=" * 60)
    logger.info(f"Movie: {output_path}")
    logger.info(f"Duration: {speech_duration:.2f}s speech, {len(script.beats)} beats, {len(plan.entries)} transitions")
    logger.info(f"Rendered in {elapsed:.2f}s")
    logger.info("=" * 60)

    return {
        "video_path": output_path,
        "duration_seconds": speech_duration,
        "timeline": reconciled,
        "graph": graph,
        "dry_run": dry_run,
    }


def main(argv: Optional[list[str]] = None):
    """Main entrypoint for rendering a movie script."""
    parser = argparse.ArgumentParser(
        description="beatreel - render a beat script into a movie with ffmpeg",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("script", type=str, help="Path to the movie script JSON")
    parser.add_argument(
        "--output",
        "-o",
        type=str,
        default=None,
        help="Output movie path (default: <script name>.mp4 next to the script)",
    )
    parser.add_argument(
        "--work-dir",
        type=str,
        default=None,
        help="Directory for intermediate audio (default: outputs/<timestamp>_<title>)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Build and log the filter graphs without running ffmpeg",
    )
    parser.add_argument(
        "--allow-missing-media",
        action="store_true",
        help="Treat missing media files as zero-length (mock scripts)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Kill ffmpeg after this many seconds",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override LOG_LEVEL",
    )

    args = parser.parse_args(argv)

    script_path = Path(args.script)
    if not script_path.is_file():
        parser.error(f"Movie script not found: {script_path}")

    updates: dict[str, Any] = {}
    if args.allow_missing_media:
        updates["allow_missing_media"] = True
    if args.timeout is not None:
        updates["encoder_timeout_seconds"] = args.timeout
    if args.log_level:
        updates["log_level"] = args.log_level
    run_settings = settings.model_copy(update=updates)

    configure_from_settings(run_settings)
    logger = get_logger(__name__, script=script_path.name)

    output_path = args.output or str(script_path.with_suffix(".mp4"))

    try:
        script = load_movie_script(script_path, run_settings)
        logger.info("=" * 60)
        logger.info(f"beatreel {run_settings.app_version} - {script.title or script_path.stem}")
        logger.info("=" * 60)
        render_movie(
            script,
            output_path,
            run_settings,
            logger,
            work_dir=Path(args.work_dir) if args.work_dir else None,
            dry_run=args.dry_run,
        )
        return 0
    except KeyboardInterrupt:
        logger.warning("Render interrupted by user")
        return 1
    except BeatReelError as e:
        logger.error(f"\n❌ Error: {e}")
        return 1
    except Exception as e:
        logger.exception(f"Render failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
