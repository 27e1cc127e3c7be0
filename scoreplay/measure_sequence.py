"""MeasureSequenceIterator: expands repeat structure into measure play order."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Protocol, Sequence

from scoreplay.score_models import Jump, RepeatEnd, RepeatEnding, RepeatStart


class MeasureLike(Protocol):
    @property
    def index(self) -> int: ...

    @property
    def jumps(self) -> Sequence[Jump]: ...


@dataclass(frozen=True)
class MeasureJumps:
    """Minimal measure description accepted by the iterator."""

    index: int
    jumps: tuple[Jump, ...] = ()


@dataclass(frozen=True)
class _Repeat:
    id: int
    start: int
    end: int
    times: int
    excluding: frozenset[int] = frozenset()


class MeasureSequenceIterator:
    """
    Iterates over measure indexes in playback order.

    Algorithm overview
    ------------------
    1. **Collection** - Every backward repeat becomes a ``_Repeat`` spanning
       ``[start..end]``. ``start`` is the innermost open ``RepeatStart``; without
       one it is the implicit boundary, which begins at measure 0 and moves
       just past each repeat as it is collected.

    2. **Endings** - A ``RepeatEnding`` with ``times=N`` plays its span N times
       with the ending, then once more with the ending skipped. This is
       modelled as a plain repeat of ``N - 1`` followed by a one-shot repeat
       that excludes the ending measure. The whole span is replayed, so
       ``times=2`` gives ``0 1 0 1 0 2`` rather than replaying only the
       ending measure (``0 1 1 0 2``).

    3. **Playback** - A stack of active repeats tracks how many replays remain.
       Each repeat is consumed a finite number of times before playback moves
       strictly forward, so iteration always terminates.
    """

    def __init__(self, measures: Sequence[MeasureLike]) -> None:
        self.measures = list(measures)

    def __iter__(self) -> Iterator[int]:
        repeats_by_end = self._collect_repeats()
        active: list[tuple[_Repeat, int]] = []

        position = 0
        while position < len(self.measures):
            top = active[-1] if active else None

            if top is not None and position in top[0].excluding:
                # The ending is skipped on the final pass.
                if top[1] == 0:
                    active.pop()
                position += 1
                continue

            yield self.measures[position].index

            repeats = repeats_by_end.get(position, [])
            if not repeats:
                position += 1
                continue

            if top is not None and top[0] in repeats:
                repeat, remaining = active.pop()
                if remaining > 0:
                    active.append((repeat, remaining - 1))
                    position = repeat.start
                    continue
                following = repeats[repeats.index(repeat) + 1 :]
                if not following:
                    position += 1
                    continue
                upcoming = following[0]
            else:
                upcoming = repeats[0]

            if upcoming.times == 0:
                position += 1
                continue
            active.append((upcoming, upcoming.times - 1))
            position = upcoming.start

    def _collect_repeats(self) -> dict[int, list[_Repeat]]:
        """Return the repeats keyed by the position of the measure that closes them."""
        result: dict[int, list[_Repeat]] = {}
        open_starts: list[int] = []
        boundary = 0
        next_id = 1

        for position, measure in enumerate(self.measures):
            for jump in measure.jumps:
                if isinstance(jump, RepeatStart):
                    open_starts.append(position)
                elif isinstance(jump, RepeatEnd):
                    start = open_starts.pop() if open_starts else boundary
                    repeats = result.setdefault(position, [])
                    repeats.append(_Repeat(next_id, start, position, max(jump.times, 0)))
                    next_id += 1
                    boundary = position + 1
                elif isinstance(jump, RepeatEnding):
                    if jump.times <= 0:
                        continue
                    start = open_starts.pop() if open_starts else boundary
                    repeats = result.setdefault(position, [])
                    if jump.times > 1:
                        repeats.append(_Repeat(next_id, start, position, jump.times - 1))
                        next_id += 1
                    repeats.append(_Repeat(next_id, start, position, 1, frozenset({position})))
                    next_id += 1
                    boundary = position + 1
                else:
                    raise TypeError(f"Unknown jump: {jump!r}")

        return result
