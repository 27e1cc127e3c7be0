"""Locators: strategies that map a playback time to a sequence index."""

from __future__ import annotations

from typing import Protocol, Union

import numpy as np

from scoreplay.sequence import Sequence
from scoreplay.timing import Duration

TimeLike = Union[Duration, int, float]


def _as_duration(time: TimeLike) -> Duration:
    if isinstance(time, Duration):
        return time
    return Duration.from_ms(time)


class Locator(Protocol):
    def locate(self, time: TimeLike) -> int | None: ...


class CheapLocator:
    """
    O(1) locator for frame-by-frame playback.

    Probes the entries just before, at, and just after the last known index.
    A miss returns ``None``; it never guesses.
    """

    def __init__(self, sequence: Sequence) -> None:
        self.sequence = sequence
        self.index = 0

    def set_index(self, index: int) -> CheapLocator:
        self.index = index
        return self

    def set_starting_index(self, index: int) -> CheapLocator:
        return self.set_index(index)

    def locate(self, time: TimeLike) -> int | None:
        time = _as_duration(time)
        for candidate in (self.index - 1, self.index, self.index + 1):
            if candidate >= 0 and self.sequence.covers(candidate, time):
                return candidate
        return None


class ExpensiveLocator:
    """
    O(log n) locator using a binary search over entry start times.

    Used after a ``CheapLocator`` miss, e.g. when the user scrubs.
    """

    def __init__(self, sequence: Sequence) -> None:
        self.sequence = sequence
        self._starts = np.array(
            [entry.duration_range.start.ms for entry in sequence],
            dtype=np.float64,
        )

    def locate(self, time: TimeLike) -> int | None:
        time = _as_duration(time)
        if self._starts.size == 0:
            return None

        index = int(np.searchsorted(self._starts, time.ms, side="right")) - 1
        # Float rounding can land one step off near a boundary.
        for candidate in (index, index - 1, index + 1):
            if self.sequence.covers(candidate, time):
                return candidate
        return None
