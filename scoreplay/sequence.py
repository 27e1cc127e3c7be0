"""Sequences: time-ordered playable entries for one part of a score."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from fractions import Fraction
from typing import Iterator, Literal

from scoreplay.config import DEFAULT_CONFIG, PlaybackConfig
from scoreplay.measure_sequence import MeasureJumps, MeasureSequenceIterator
from scoreplay.score_models import Fragment, Measure, PlaybackElement, Score
from scoreplay.timing import Duration, DurationRange

logger = logging.getLogger(__name__)

TransitionKind = Literal["start", "stop"]

# Stops sort ahead of starts at the same instant.
_KIND_ORDER: dict[str, int] = {"stop": 0, "start": 1}


@dataclass(frozen=True)
class SequenceTransition:
    """A single element starting or stopping at an absolute time."""

    kind: TransitionKind
    time: Duration
    element: PlaybackElement


@dataclass(frozen=True)
class SequenceEntry:
    """
    One step of a sequence.

    Attributes:
        element:         The most recently started element; what a cursor points at.
        active_elements: Every element sounding during ``duration_range``.
        duration_range:  Half-open time span owned by this entry.
    """

    element: PlaybackElement
    active_elements: tuple[PlaybackElement, ...]
    duration_range: DurationRange


class Sequence:
    """
    Immutable, indexable entries for one part.

    Entries tile ``[0, duration)``: the first starts at zero, each one ends
    where the next begins and the last ends at the sequence duration.
    """

    def __init__(
        self,
        part_index: int,
        entries: tuple[SequenceEntry, ...] = (),
        transitions: tuple[SequenceTransition, ...] = (),
        jumps: tuple[Duration, ...] = (),
        system_ends: tuple[Duration, ...] = (),
    ) -> None:
        self._part_index = part_index
        self._entries = tuple(entries)
        self._transitions = tuple(transitions)
        self._jumps = tuple(jumps)
        self._system_ends = tuple(system_ends)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[SequenceEntry]:
        return iter(self._entries)

    def __repr__(self) -> str:
        return f"Sequence(part_index={self._part_index}, length={len(self)}, duration={self.get_duration_ms():g}ms)"

    def get_part_index(self) -> int:
        return self._part_index

    def get_length(self) -> int:
        return len(self._entries)

    def get_duration(self) -> Duration:
        if not self._entries:
            return Duration.zero()
        return self._entries[-1].duration_range.end

    def get_duration_ms(self) -> float:
        return self.get_duration().ms

    def get_entry(self, index: int) -> SequenceEntry | None:
        """Return the entry at a non-negative ``index``, or ``None`` when out of range."""
        if 0 <= index < len(self._entries):
            return self._entries[index]
        return None

    def at(self, index: int) -> SequenceEntry | None:
        """Like ``get_entry`` but negative indexes count from the end."""
        if -len(self._entries) <= index < len(self._entries):
            return self._entries[index]
        return None

    def get_entries(self) -> tuple[SequenceEntry, ...]:
        return self._entries

    def get_transitions(self) -> tuple[SequenceTransition, ...]:
        return self._transitions

    def get_jumps(self) -> tuple[Duration, ...]:
        return self._jumps

    def get_system_ends(self) -> tuple[Duration, ...]:
        return self._system_ends

    def covers(self, index: int, time: Duration) -> bool:
        """
        Whether the entry at ``index`` owns ``time``.

        Ranges are half-open, except that the last entry also owns the
        sequence's closing instant so that every time in ``[0, duration]``
        belongs to exactly one entry.
        """
        entry = self.get_entry(index)
        if entry is None:
            return False
        if entry.duration_range.includes(time):
            return True
        return index == len(self._entries) - 1 and time == entry.duration_range.end


@dataclass(frozen=True)
class _PlayedMeasure:
    measure: Measure
    will_jump: bool


class SequenceFactory:
    """
    Builds one ``Sequence`` per part from a finalized ``Score``.

    All parts are timed against one shared clock. A fragment lasts for its
    ``beat_length`` at its own tempo, and a measure ends at the later of its
    last fragment boundary and the latest stop among every part's entries, so
    measure boundaries (and the jump / system-end instants recorded at them)
    agree across sequences.
    """

    def __init__(self, score: Score, config: PlaybackConfig = DEFAULT_CONFIG) -> None:
        self.score = score
        self.config = config

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def create(self, part_indexes: list[int] | None = None) -> list[Sequence]:
        """
        Build sequences for the given parts (all parts by default).

        Raises:
            ValueError: If a part index does not exist in the score.
        """
        if part_indexes is None:
            part_indexes = list(range(self.score.part_count))
        for part_index in part_indexes:
            if not 0 <= part_index < self.score.part_count:
                raise ValueError(f"Part index {part_index} is out of range for {self.score.part_count} part(s).")

        transitions, jumps, system_ends = self._schedule()

        sequences: list[Sequence] = []
        for part_index in part_indexes:
            part_transitions = sorted(transitions.get(part_index, []), key=self._sort_key)
            entries = self._to_entries(part_transitions)
            sequences.append(
                Sequence(
                    part_index,
                    entries=tuple(entries),
                    transitions=tuple(part_transitions),
                    jumps=tuple(jumps),
                    system_ends=tuple(system_ends),
                )
            )
            logger.debug(
                "Built sequence for part %d: %d entries, %d transitions",
                part_index,
                len(entries),
                len(part_transitions),
            )

        return sequences

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _measures_in_playback_order(self) -> list[_PlayedMeasure]:
        measures = self.score.get_measures()
        order = list(
            MeasureSequenceIterator([MeasureJumps(position, measure.jumps) for position, measure in enumerate(measures)])
        )

        played: list[_PlayedMeasure] = []
        for position, measure_index in enumerate(order):
            next_index = order[position + 1] if position + 1 < len(order) else None
            will_jump = next_index is not None and next_index != measure_index + 1
            played.append(_PlayedMeasure(measures[measure_index], will_jump))
        return played

    def _schedule(
        self,
    ) -> tuple[dict[int, list[SequenceTransition]], list[Duration], list[Duration]]:
        """Walk the measures in play order and time every entry of every part."""
        transitions: dict[int, list[SequenceTransition]] = {}
        jumps: list[Duration] = []
        system_ends: list[Duration] = []

        bpm: float = self.config.default_bpm
        measure_start = Duration.zero()

        for played in self._measures_in_playback_order():
            fragment_start = measure_start
            latest_stop = measure_start
            for fragment in played.measure.fragments:
                if fragment.bpm is not None:
                    if fragment.bpm > 0:
                        bpm = fragment.bpm
                    else:
                        logger.warning(
                            "Ignoring non-positive tempo %r in measure %d",
                            fragment.bpm,
                            played.measure.index,
                        )
                fragment_start, stop = self._schedule_fragment(fragment, fragment_start, bpm, transitions)
                latest_stop = Duration.max(latest_stop, stop)

            # Notes held past the last tempo boundary extend the measure.
            measure_start = Duration.max(fragment_start, latest_stop)

            if played.will_jump:
                jumps.append(measure_start)
            if played.measure.is_last_in_system:
                system_ends.append(measure_start)

        return transitions, jumps, system_ends

    def _schedule_fragment(
        self,
        fragment: Fragment,
        fragment_start: Duration,
        bpm: float,
        transitions: dict[int, list[SequenceTransition]],
    ) -> tuple[Duration, Duration]:
        """
        Record start/stop transitions for a fragment.

        Returns when the next fragment starts and the latest stop in this one.
        Entries that sound past the next tempo boundary do not delay it.
        """
        latest_stop = fragment_start

        for part in fragment.parts:
            for entry in part.get_entries():
                beat = self._clamp(entry.measure_beat, "start beat", entry.id)
                count = self._clamp(entry.beat_count, "beat count", entry.id)
                if count == 0:
                    # Grace notes and the like take no playback time.
                    continue

                start = fragment_start + Duration.from_beats(beat, bpm)
                stop = start + Duration.from_beats(count, bpm)

                part_transitions = transitions.setdefault(part.index, [])
                part_transitions.append(SequenceTransition("start", start, entry))
                part_transitions.append(SequenceTransition("stop", stop, entry))

                latest_stop = Duration.max(latest_stop, stop)

        if fragment.beat_length is None:
            return latest_stop, latest_stop
        length = self._clamp(fragment.beat_length, "fragment length", "fragment")
        return fragment_start + Duration.from_beats(length, bpm), latest_stop

    def _clamp(self, beats: Fraction, label: str, element_id: str) -> Fraction:
        if beats < 0:
            logger.warning("Clamping negative %s %s of %s to zero", label, beats, element_id)
            return Fraction(0)
        return beats

    def _sort_key(self, transition: SequenceTransition) -> tuple[Duration, int]:
        return transition.time, _KIND_ORDER[transition.kind]

    def _to_entries(self, transitions: list[SequenceTransition]) -> list[SequenceEntry]:
        """
        Sweep sorted transitions into contiguous entries.

        All transitions sharing an instant are applied together, so chord
        members and simultaneous voices collapse into one entry. Silent gaps
        are absorbed by the following entry to keep the tiling gap-free.
        """
        entries: list[SequenceEntry] = []
        active: list[PlaybackElement] = []
        most_recent: PlaybackElement | None = None
        time = Duration.zero()

        position = 0
        while position < len(transitions):
            instant = transitions[position].time
            started: list[PlaybackElement] = []

            while position < len(transitions) and transitions[position].time == instant:
                transition = transitions[position]
                if transition.kind == "start":
                    active.append(transition.element)
                    started.append(transition.element)
                elif transition.element in active:
                    active.remove(transition.element)
                position += 1

            if started:
                most_recent = min(started, key=lambda element: element.rect.left())
            elif most_recent not in active and active:
                most_recent = active[-1]

            if position >= len(transitions) or not active or most_recent is None:
                continue

            stop = transitions[position].time
            entries.append(SequenceEntry(most_recent, tuple(active), DurationRange(time, stop)))
            time = stop

        return entries
