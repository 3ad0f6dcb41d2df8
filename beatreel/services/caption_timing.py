"""Caption Timing - splits caption text into segments and times them inside a beat."""

from typing import Any, Optional, Sequence

from beatreel.core.config import Settings
from beatreel.models.schemas import CaptionFile, CaptionSegment, CaptionSplit, MovieScript, ReconciledBeat

DEFAULT_DELIMITERS = ("。", "？", "！", ".", "?", "!")


def split_text_by_delimiters(text: str, delimiters: Sequence[str]) -> list[str]:
    """Split after each delimiter, keeping the delimiter with the text before it."""
    if not text or not delimiters:
        return [text]

    segments: list[str] = []
    current = ""
    for char in text:
        current += char
        if char in delimiters:
            if current.strip():
                segments.append(current.strip())
            current = ""
    if current.strip():
        segments.append(current.strip())
    return segments or [text]


def get_split_texts(text: str, texts: Optional[Sequence[str]], split: Optional[CaptionSplit]) -> list[str]:
    # Manual segments always win.
    if texts:
        return list(texts)
    if split is None or split.type == "none":
        return [text]
    delimiters = split.delimiters if split.delimiters is not None else DEFAULT_DELIMITERS
    return split_text_by_delimiters(text, delimiters)


def calculate_timing_ratios(texts: Sequence[str]) -> list[float]:
    """Share of the beat each segment gets, proportional to its length."""
    total_length = sum(len(t) for t in texts)
    if total_length == 0:
        return [1 / len(texts)] * len(texts)
    return [len(t) / total_length for t in texts]


def calculate_cumulative_ratios(ratios: Sequence[float]) -> list[float]:
    """[0.3, 0.5, 0.2] -> [0, 0.3, 0.8, 1.0]"""
    cumulative = [0.0]
    for ratio in ratios:
        cumulative.append(cumulative[-1] + ratio)
    return cumulative


class CaptionTimingPlanner:
    """Computes absolute caption windows on the final movie's clock."""

    def __init__(self, settings: Settings, logger: Any):
        """
        Initialize the caption timing planner.

        Args:
            settings: Application settings
            logger: Logger instance
        """
        self.settings = settings
        self.logger = logger

    def plan_beat_captions(
        self,
        beat: ReconciledBeat,
        intro_padding: float,
        text: str,
        texts: Optional[Sequence[str]] = None,
        split: Optional[CaptionSplit] = None,
    ) -> list[CaptionSegment]:
        """
        Time the caption segments of one beat.

        Args:
            beat: Reconciled timing of the beat
            intro_padding: Intro silence shifting the whole narration
            text: Full caption text
            texts: Manual segments; override splitting
            split: How to split ``text`` when no manual segments exist

        Returns:
            Segments covering the beat from its start to its end
        """
        split_texts = get_split_texts(text, texts, split)
        cumulative = calculate_cumulative_ratios(calculate_timing_ratios(split_texts))
        offset = beat.start_at + intro_padding

        return [
            CaptionSegment(
                text=segment,
                start_at=offset + beat.duration * cumulative[i],
                end_at=offset + beat.duration * cumulative[i + 1],
            )
            for i, segment in enumerate(split_texts)
        ]

    def plan_script_captions(
        self,
        script: MovieScript,
        reconciled: Sequence[ReconciledBeat],
    ) -> list[list[CaptionFile]]:
        """
        Pair every beat's rendered caption images with their display windows.

        Args:
            script: Movie script with ``caption_images`` in its media
            reconciled: Reconciled timeline

        Returns:
            One list of CaptionFile per beat (empty for beats without captions)
        """
        captions: list[list[CaptionFile]] = []
        for index, beat in enumerate(script.beats):
            images = script.media_for(index).caption_images
            if not images:
                captions.append([])
                continue

            segments = self.plan_beat_captions(
                reconciled[index],
                script.padding.intro_padding,
                beat.text,
                beat.caption_texts,
                beat.caption_split,
            )
            if len(segments) != len(images):
                self.logger.warning(
                    f"Beat {index}: {len(images)} caption images for {len(segments)} caption segments, "
                    "spreading the images evenly over the beat"
                )
                segments = self.plan_beat_captions(
                    reconciled[index], script.padding.intro_padding, "", texts=[""] * len(images)
                )

            captions.append(
                [
                    CaptionFile(file=image, start_at=segment.start_at, end_at=segment.end_at)
                    for image, segment in zip(images, segments)
                ]
            )
        return captions
