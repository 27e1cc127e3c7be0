"""Exact musical durations and their conversion to playback time."""

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction
from typing import Union

MS_PER_MINUTE = 60_000

Number = Union[int, float, Fraction]


def to_beats(divisions: Number, quarter_note_divisions: int) -> Fraction:
    """
    Convert source-format divisions into quarter-note beats.

    Raises:
        ValueError: If ``quarter_note_divisions`` is not positive.
    """
    if quarter_note_divisions <= 0:
        raise ValueError(f"quarter_note_divisions must be positive, got {quarter_note_divisions}.")
    return Fraction(divisions) / quarter_note_divisions


@dataclass(frozen=True, order=True)
class Duration:
    """
    An immutable span of playback time.

    The value is kept as an exact number of milliseconds so that sums of
    tuplet-sized durations never drift; ``ms`` exposes it as a float.
    """

    value: Fraction

    @classmethod
    def zero(cls) -> Duration:
        return cls(Fraction(0))

    @classmethod
    def from_ms(cls, ms: Number) -> Duration:
        return cls(Fraction(ms))

    @classmethod
    def from_minutes(cls, minutes: Number) -> Duration:
        return cls(Fraction(minutes) * MS_PER_MINUTE)

    @classmethod
    def from_beats(cls, beats: Number, bpm: Number) -> Duration:
        """Return how long ``beats`` quarter notes last at ``bpm`` quarter notes per minute."""
        return cls.from_minutes(Fraction(beats) / Fraction(bpm))

    @classmethod
    def max(cls, *durations: Duration) -> Duration:
        return max(durations)

    @property
    def ms(self) -> float:
        return float(self.value)

    def round_ms(self) -> int:
        """Round half up to the nearest whole millisecond."""
        return int((self.value + Fraction(1, 2)) // 1)

    def __add__(self, other: Duration) -> Duration:
        return Duration(self.value + other.value)

    def __sub__(self, other: Duration) -> Duration:
        return Duration(self.value - other.value)

    def __repr__(self) -> str:
        return f"Duration({self.ms:g}ms)"


@dataclass(frozen=True)
class DurationRange:
    """A half-open time interval ``[start, end)``."""

    start: Duration
    end: Duration

    def get_size(self) -> Duration:
        return self.end - self.start

    def includes(self, time: Duration) -> bool:
        return self.start <= time < self.end
