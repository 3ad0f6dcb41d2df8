"""Transition Planner - decides frame extraction and clamps transition durations."""

from typing import Any, Optional, Sequence

from beatreel.core.config import Settings
from beatreel.models.schemas import ReconciledBeat, TransitionPlan, TransitionPlanEntry
from beatreel.utils.error_handler import invariant

# A transition never eats more than this share of either neighbouring beat.
MAX_TRANSITION_SHARE = 0.9


def clamp_transition_duration(requested: float, beat_duration: float, min_duration: float) -> float:
    return max(min(requested, beat_duration * MAX_TRANSITION_SHARE), min_duration)


class TransitionPlanner:
    """Plans which frames each transition needs and how long it runs."""

    def __init__(self, settings: Settings, logger: Any):
        """
        Initialize the transition planner.

        Args:
            settings: Application settings
            logger: Logger instance
        """
        self.settings = settings
        self.logger = logger

    @property
    def min_duration(self) -> float:
        """One video frame."""
        return 1 / self.settings.video_fps

    def get_transition_frame_durations(
        self,
        reconciled: Sequence[ReconciledBeat],
        beats: Sequence[Any],
        index: int,
    ) -> tuple[float, float]:
        """
        Clamped (first, last) durations of the transition declared on ``index``.

        ``first`` is taken from the previous beat, ``last`` from this one. Both
        are floored at one frame and capped at 90% of the beat they eat into.
        """
        transition = beats[index].transition
        requested = transition.duration if transition is not None else 0.0

        if index > 0:
            first = clamp_transition_duration(requested, reconciled[index - 1].duration, self.min_duration)
        else:
            first = self.min_duration
        last = clamp_transition_duration(requested, reconciled[index].duration, self.min_duration)
        return first, last

    def plan(self, reconciled: Sequence[ReconciledBeat], beats: Sequence[Any]) -> TransitionPlan:
        """
        Build the transition plan.

        Args:
            reconciled: Reconciled timeline
            beats: Beats in script order

        Returns:
            TransitionPlan with one entry per usable transition
        """
        invariant(
            len(reconciled) == len(beats),
            f"timeline/beats length mismatch: {len(reconciled)} vs {len(beats)}",
        )

        count = len(beats)
        needs_first = [False] * count
        needs_last = [False] * count
        entries: list[TransitionPlanEntry] = []

        for index, beat in enumerate(beats):
            transition = beat.transition
            if transition is None:
                continue
            if index == 0:
                self.logger.warning("Beat 0: a transition on the first beat has nothing to transition from, ignoring it")
                continue
            if not beat.has_visual:
                self.logger.warning(f"Beat {index}: voice-over beats have no visual, ignoring {transition.type.value}")
                continue

            source_index = self._previous_visual_index(beats, index)
            if source_index is None:
                self.logger.warning(f"Beat {index}: no earlier beat with a visual, ignoring {transition.type.value}")
                continue

            first, last = self.get_transition_frame_durations(reconciled, beats, index)
            entries.append(
                TransitionPlanEntry(
                    beat_index=index,
                    source_index=source_index,
                    type=transition.type,
                    first_duration=first,
                    last_duration=last,
                )
            )
            needs_last[source_index] = True
            if transition.type.is_slidein or transition.type.is_wipe:
                needs_first[index] = True

        if entries:
            self.logger.info(f"Planned {len(entries)} transitions")
        return TransitionPlan(entries=entries, needs_first_frame=needs_first, needs_last_frame=needs_last)

    @staticmethod
    def _previous_visual_index(beats: Sequence[Any], index: int) -> Optional[int]:
        for candidate in range(index - 1, -1, -1):
            if beats[candidate].has_visual:
                return candidate
        return None
