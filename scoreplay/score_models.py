"""Data models for the finalized, laid-out score consumed by playback."""

from __future__ import annotations

from dataclasses import dataclass, field
from fractions import Fraction
from typing import Literal, Union

from scoreplay.spatial import Rect

EndingBracketType = Literal["begin", "mid", "end", "both"]
ElementKind = Literal["note", "chord", "rest"]


# ------------------------------------------------------------------
# Jumps
# ------------------------------------------------------------------


@dataclass(frozen=True)
class RepeatStart:
    """A forward repeat barline at the start of a measure."""


@dataclass(frozen=True)
class RepeatEnd:
    """A backward repeat barline; the span is played ``times`` more times."""

    times: int = 1


@dataclass(frozen=True)
class RepeatEnding:
    """
    A measure inside an ending bracket.

    ``times`` is the number of passes that take this ending before the music
    continues past it. It is non-zero only on the measure that closes the
    bracket with a backward repeat.
    """

    times: int = 0
    label: str = ""
    bracket_type: EndingBracketType = "both"


Jump = Union[RepeatStart, RepeatEnd, RepeatEnding]


# ------------------------------------------------------------------
# Playback elements
# ------------------------------------------------------------------


@dataclass(frozen=True)
class Pitch:
    step: str
    octave: int
    alter: float = 0.0


@dataclass(frozen=True)
class VoiceEntry:
    """
    A playable note, chord or rest.

    Equality and hashing use ``id`` only, so the same engraved element is
    recognised wherever a repeat replays it.

    ``measure_beat`` is the start in quarter notes relative to the start of the
    owning fragment; ``beat_count`` is the sounding length in quarter notes.
    """

    id: str
    kind: ElementKind = field(compare=False)
    measure_beat: Fraction = field(compare=False)
    beat_count: Fraction = field(compare=False)
    rect: Rect = field(compare=False)
    system_index: int = field(compare=False)
    measure_index: int = field(compare=False)
    part_index: int = field(compare=False)
    pitches: tuple[Pitch, ...] = field(default=(), compare=False)
    curve_ids: frozenset[str] = field(default=frozenset(), compare=False)

    def shares_a_curve_with(self, other: VoiceEntry) -> bool:
        """Whether a tie or slur joins this entry to ``other``."""
        return bool(self.curve_ids & other.curve_ids)


PlaybackElement = VoiceEntry


# ------------------------------------------------------------------
# Structure
# ------------------------------------------------------------------


@dataclass(frozen=True)
class Voice:
    entries: tuple[VoiceEntry, ...] = ()


@dataclass(frozen=True)
class Stave:
    voices: tuple[Voice, ...] = ()


@dataclass(frozen=True)
class FragmentPart:
    """One part's staves within a measure fragment."""

    index: int
    rect: Rect
    staves: tuple[Stave, ...] = ()

    def get_entries(self) -> list[VoiceEntry]:
        return [entry for stave in self.staves for voice in stave.voices for entry in voice.entries]


@dataclass(frozen=True)
class Fragment:
    """
    A tempo-homogeneous slice of a measure.

    ``bpm`` is the tempo that takes effect at the start of this fragment;
    ``None`` keeps whatever tempo is already active. ``beat_length`` is the
    distance in quarter notes to the next fragment (or the end of the
    measure); ``None`` means the fragment lasts until its latest stop.
    """

    parts: tuple[FragmentPart, ...] = ()
    bpm: float | None = None
    beat_length: Fraction | None = None

    def get_entries(self, part_index: int) -> list[VoiceEntry]:
        return [entry for part in self.parts if part.index == part_index for entry in part.get_entries()]


@dataclass(frozen=True)
class Measure:
    index: int
    system_index: int
    rect: Rect
    fragments: tuple[Fragment, ...] = ()
    jumps: tuple[Jump, ...] = ()
    is_last_in_system: bool = False


@dataclass(frozen=True)
class System:
    index: int
    rect: Rect
    measures: tuple[Measure, ...] = ()


@dataclass(frozen=True)
class Score:
    """Neutral score representation produced by the parsing and layout stages."""

    part_count: int
    systems: tuple[System, ...] = ()

    def get_measures(self) -> list[Measure]:
        return [measure for system in self.systems for measure in system.measures]

    def get_part_rects(self, system_index: int, from_part_index: int, to_part_index: int) -> list[Rect]:
        """Return the rects of the parts in ``[from_part_index, to_part_index]`` within a system."""
        if not 0 <= system_index < len(self.systems):
            return []
        return [
            part.rect
            for measure in self.systems[system_index].measures
            for fragment in measure.fragments
            for part in fragment.parts
            if from_part_index <= part.index <= to_part_index
        ]
