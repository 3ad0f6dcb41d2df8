"""Timeline Reconciler - turns media facts into one authoritative beat timeline.

Every beat ends up with a ``duration``, a ``start_at`` (the running sum of the
durations before it) and a ``silence_duration`` (the silence the narration
track must append after the beat's own audio so that the two line up).

Beats are resolved in groups:

* voice-over group: a movie beat followed by voice-over beats. The group spans
  exactly the movie, and each beat's share is decided by the next beat's
  ``start_at`` or, failing that, by its own speech length.
* spillover group: a beat that owns produced audio followed by beats that own
  none. The single audio asset is spread across the whole run.
* single beat: its own audio plus padding, stretched to the movie or to the
  explicit duration when either is longer.
"""

from typing import Any, Optional, Sequence

from beatreel.core.config import Settings
from beatreel.models.schemas import (
    BeatGroup,
    GroupKind,
    MediaFacts,
    MovieBeat,
    PaddingPolicy,
    ReconciledBeat,
    VoiceOverBeat,
)
from beatreel.utils.error_handler import invariant

MIN_BEAT_DURATION = 1.0


def get_padding(beat: Any, index: int, total: int, policy: PaddingPolicy) -> float:
    """
    Padding appended after a beat.

    An explicit per-beat padding (including 0) always wins. The last beat gets
    none (intro/outro padding is added around the whole track by the caller),
    the second-to-last gets the closing padding, everything else the default.
    """
    if beat.padding is not None:
        return beat.padding
    if index == total - 1:
        return 0.0
    if index == total - 2:
        return policy.closing_padding
    return policy.default_padding


def get_total_padding(
    padding: float,
    movie_duration: float,
    audio_duration: float,
    explicit_duration: Optional[float] = None,
) -> float:
    """Time to add after the beat's audio. A movie always wins over the explicit duration."""
    if movie_duration > 0:
        return padding + max(0.0, movie_duration - audio_duration)
    if explicit_duration is not None and explicit_duration > audio_duration:
        return padding + (explicit_duration - audio_duration)
    return padding


def _starts_voice_over_group(beats: Sequence[Any], facts: Sequence[MediaFacts], index: int) -> bool:
    return (
        isinstance(beats[index], MovieBeat)
        and facts[index].movie_duration > 0
        and index + 1 < len(beats)
        and isinstance(beats[index + 1], VoiceOverBeat)
    )


def _is_voice_over_member(beats: Sequence[Any], facts: Sequence[MediaFacts], index: int) -> bool:
    return isinstance(beats[index], VoiceOverBeat)


def _starts_spillover_group(beats: Sequence[Any], facts: Sequence[MediaFacts], index: int) -> bool:
    # Only spoken audio can spill over; a movie-only beat keeps its own length.
    return (
        facts[index].has_media
        and facts[index].audio_duration > 0
        and not isinstance(beats[index], VoiceOverBeat)
        and index + 1 < len(beats)
        and _is_spillover_member(beats, facts, index + 1)
    )


def _is_spillover_member(beats: Sequence[Any], facts: Sequence[MediaFacts], index: int) -> bool:
    return not facts[index].has_media and not isinstance(beats[index], VoiceOverBeat)


_GROUP_RULES = (
    (GroupKind.VOICE_OVER, _starts_voice_over_group, _is_voice_over_member),
    (GroupKind.SPILLOVER, _starts_spillover_group, _is_spillover_member),
)


def group_beats(beats: Sequence[Any], facts: Sequence[MediaFacts]) -> list[BeatGroup]:
    """Split the beat list into consecutive groups in a single left-to-right scan."""
    groups: list[BeatGroup] = []
    index = 0
    while index < len(beats):
        indices = [index]
        kind = GroupKind.SINGLE
        for rule_kind, starts, is_member in _GROUP_RULES:
            if starts(beats, facts, index):
                kind = rule_kind
                cursor = index + 1
                while cursor < len(beats) and is_member(beats, facts, cursor):
                    indices.append(cursor)
                    cursor += 1
                break
        groups.append(BeatGroup(kind=kind, indices=indices))
        index = indices[-1] + 1
    return groups


def plan_spillover_durations(explicit_durations: Sequence[Optional[float]], total_audio: float) -> list[float]:
    """
    Durations for a spillover run before silence is accounted for.

    Beats with an explicit duration keep it. The rest share what is left of
    the audio evenly, but never get less than one second each. Audio left over
    after every beat is planned goes to the last beat.
    """
    specified_sum = sum(d for d in explicit_durations if d is not None)
    unspecified = sum(1 for d in explicit_durations if d is None)
    share = 0.0
    if unspecified:
        share = max((total_audio - specified_sum) / unspecified, MIN_BEAT_DURATION)

    durations = [d if d is not None else share for d in explicit_durations]
    excess = total_audio - sum(durations)
    if excess > 0 and durations:
        durations[-1] += excess
    return durations


class TimelineReconciler:
    """Computes duration, start time and silence for every beat."""

    def __init__(self, settings: Settings, logger: Any):
        """
        Initialize the timeline reconciler.

        Args:
            settings: Application settings
            logger: Logger instance
        """
        self.settings = settings
        self.logger = logger

    def reconcile(
        self,
        beats: Sequence[Any],
        facts: Sequence[MediaFacts],
        policy: PaddingPolicy,
    ) -> list[ReconciledBeat]:
        """
        Reconcile per-beat timing.

        Args:
            beats: Beats in script order
            facts: One MediaFacts per beat
            policy: Padding policy of the script

        Returns:
            One ReconciledBeat per beat
        """
        invariant(
            len(beats) == len(facts),
            f"beats/facts length mismatch: {len(beats)} beats, {len(facts)} media facts",
        )

        durations: list[Optional[float]] = [None] * len(beats)
        silences: list[float] = [0.0] * len(beats)

        for group in group_beats(beats, facts):
            if group.kind == GroupKind.VOICE_OVER:
                resolved = self.resolve_voice_over_group(beats, facts, group.indices)
            elif group.kind == GroupKind.SPILLOVER:
                resolved = self.resolve_spillover_group(beats, facts, group.indices)
            else:
                resolved = [self.resolve_single_beat(beats, facts, group.indices[0], policy)]

            for index, (duration, silence) in zip(group.indices, resolved):
                durations[index] = duration
                silences[index] = silence

        invariant(
            all(d is not None for d in durations),
            "some beats were not assigned a duration",
        )

        reconciled: list[ReconciledBeat] = []
        start_at = 0.0
        for duration, silence in zip(durations, silences):
            reconciled.append(ReconciledBeat(duration=duration, start_at=start_at, silence_duration=silence))
            start_at += duration

        self.logger.info(f"Reconciled {len(reconciled)} beats, total duration {start_at:.2f}s")
        return reconciled

    def resolve_single_beat(
        self,
        beats: Sequence[Any],
        facts: Sequence[MediaFacts],
        index: int,
        policy: PaddingPolicy,
    ) -> tuple[float, float]:
        """Duration and silence of a beat that shares nothing with its neighbours."""
        beat = beats[index]
        fact = facts[index]
        owns_media = fact.has_media or (isinstance(beat, VoiceOverBeat) and fact.audio_duration > 0)

        if owns_media:
            if isinstance(beat, VoiceOverBeat):
                self.logger.warning(f"Beat {index}: voice-over without a preceding movie, timing it as a normal beat")
            padding = get_padding(beat, index, len(beats), policy)
            total_padding = get_total_padding(padding, fact.movie_duration, fact.audio_duration, beat.duration)
            return fact.audio_duration + total_padding, total_padding

        # No audio of its own: the movie, the author, or the one-second floor decides.
        if fact.movie_duration > 0:
            duration = fact.movie_duration
        elif beat.duration is not None:
            duration = beat.duration
        else:
            duration = MIN_BEAT_DURATION
        return duration, duration

    def resolve_spillover_group(
        self,
        beats: Sequence[Any],
        facts: Sequence[MediaFacts],
        indices: Sequence[int],
    ) -> list[tuple[float, float]]:
        """Spread the owner's audio over the run; report silence where it runs out."""
        total_audio = facts[indices[0]].audio_duration
        durations = plan_spillover_durations([beats[i].duration for i in indices], total_audio)

        resolved: list[tuple[float, float]] = []
        audio_remaining = total_audio
        for duration in durations:
            if audio_remaining <= 0:
                silence = duration
            else:
                silence = max(0.0, duration - audio_remaining)
                audio_remaining = max(0.0, audio_remaining - duration)
            resolved.append((duration, silence))

        self.logger.debug(
            f"Spillover group {list(indices)}: {total_audio:.2f}s audio over {[round(d, 3) for d in durations]}"
        )
        return resolved

    def resolve_voice_over_group(
        self,
        beats: Sequence[Any],
        facts: Sequence[MediaFacts],
        indices: Sequence[int],
    ) -> list[tuple[float, float]]:
        """Split the owner's movie between the movie beat and its voice-overs."""
        movie_duration = facts[indices[0]].movie_duration
        movie_remaining = movie_duration
        elapsed = 0.0

        resolved: list[tuple[float, float]] = []
        for position, index in enumerate(indices):
            audio_duration = facts[index].audio_duration
            if position == len(indices) - 1:
                duration = max(0.0, movie_remaining)
            else:
                duration = audio_duration
                next_beat = beats[indices[position + 1]]
                if next_beat.start_at is not None:
                    if next_beat.start_at > elapsed:
                        duration = next_beat.start_at - elapsed
                    else:
                        self.logger.warning(
                            f"Beat {indices[position + 1]}: start_at {next_beat.start_at}s is not after "
                            f"{elapsed:.2f}s, using the audio length of beat {index}"
                        )
            movie_remaining -= duration
            elapsed += duration
            resolved.append((duration, max(0.0, duration - audio_duration)))

        if movie_remaining < 0:
            self.logger.warning(
                f"Voice-over group {list(indices)} overruns its {movie_duration:.2f}s movie by {-movie_remaining:.2f}s"
            )
        return resolved
