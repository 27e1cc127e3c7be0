"""Cursor frames: the space-time boxes a highlight animates across."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Union

from scoreplay.config import DEFAULT_CONFIG, PlaybackConfig
from scoreplay.lazy import Lazy
from scoreplay.score_models import Pitch, PlaybackElement, Score
from scoreplay.sequence import Sequence, SequenceEntry
from scoreplay.spatial import NumberRange, Rect
from scoreplay.timing import Duration, DurationRange


@dataclass(frozen=True)
class CursorVerticalSpan:
    """The inclusive range of parts a cursor highlight covers vertically."""

    from_part_index: int
    to_part_index: int

    @classmethod
    def single(cls, part_index: int) -> CursorVerticalSpan:
        return cls(part_index, part_index)


@dataclass(frozen=True)
class CursorFrame:
    t_range: DurationRange
    x_range: NumberRange
    y_range: NumberRange
    active_elements: tuple[PlaybackElement, ...] = ()

    def is_empty(self) -> bool:
        return False


class EmptyCursorFrame(CursorFrame):
    """Sentinel frame for a cursor with nothing to point at."""

    def __init__(self) -> None:
        super().__init__(
            DurationRange(Duration.zero(), Duration.zero()),
            NumberRange(0.0, 0.0),
            NumberRange(0.0, 0.0),
            (),
        )

    def is_empty(self) -> bool:
        return True


class CursorFrameFactory:
    """
    Builds the frame of each sequence entry on demand.

    A frame spans from the left edge of its element to the left edge of the
    next entry's element. It stops at the right edge of the element's measure
    instead whenever the next entry is not a plain step forward on the same
    system.
    """

    def __init__(
        self,
        score: Score,
        sequence: Sequence,
        span: CursorVerticalSpan,
        config: PlaybackConfig = DEFAULT_CONFIG,
    ) -> None:
        self.score = score
        self.sequence = sequence
        self.span = span
        self.config = config
        self._measure_rects = Lazy(lambda: [measure.rect for measure in score.get_measures()])
        self._y_ranges = Lazy(self._compute_y_ranges)
        self._frames = [Lazy(self._frame_factory(index)) for index in range(sequence.get_length())]

    def get(self, index: int) -> CursorFrame:
        if 0 <= index < len(self._frames):
            return self._frames[index].get()
        return EmptyCursorFrame()

    def lazy(self, index: int) -> Lazy[CursorFrame]:
        if 0 <= index < len(self._frames):
            return self._frames[index]
        return Lazy.of(EmptyCursorFrame())

    def _frame_factory(self, index: int):
        return lambda: self._create(index)

    def _create(self, index: int) -> CursorFrame:
        entry = self.sequence.get_entry(index)
        if entry is None:
            return EmptyCursorFrame()
        return CursorFrame(
            t_range=entry.duration_range,
            x_range=self._get_x_range(index, entry),
            y_range=self._get_y_range(entry.element.system_index),
            active_elements=entry.active_elements,
        )

    def _get_x_range(self, index: int, entry: SequenceEntry) -> NumberRange:
        element = entry.element
        left = element.rect.left()
        measure_right = self._get_measure_right(element.measure_index, fallback=element.rect.right())

        next_entry = self.sequence.get_entry(index + 1)
        if next_entry is None:
            return self._x_range(left, measure_right - self.config.last_measure_x_padding_px)

        following = next_entry.element
        next_left = following.rect.left()

        if following.system_index != element.system_index:
            return self._x_range(left, measure_right)
        # A one-element measure repeating itself.
        if following == element:
            return self._x_range(left, measure_right)
        is_changing_measures = following.measure_index != element.measure_index
        is_jumping_measures = following.measure_index != element.measure_index + 1
        if is_changing_measures and is_jumping_measures:
            return self._x_range(left, measure_right)
        if next_left < left:
            return self._x_range(left, measure_right)

        return self._x_range(left, next_left)

    def _x_range(self, left: float, right: float) -> NumberRange:
        return NumberRange(left, max(left, right))

    def _get_measure_right(self, measure_index: int, fallback: float) -> float:
        rects = self._measure_rects.get()
        if 0 <= measure_index < len(rects):
            return rects[measure_index].right()
        return fallback

    def _get_y_range(self, system_index: int) -> NumberRange:
        y_ranges = self._y_ranges.get()
        if 0 <= system_index < len(y_ranges):
            return y_ranges[system_index]
        return NumberRange(0.0, 0.0)

    def _compute_y_ranges(self) -> list[NumberRange]:
        y_ranges: list[NumberRange] = []
        for system in self.score.systems:
            rect = Rect.merge(
                self.score.get_part_rects(system.index, self.span.from_part_index, self.span.to_part_index)
            )
            y_ranges.append(NumberRange(rect.top(), rect.bottom()))
        return y_ranges


# ------------------------------------------------------------------
# Hints
# ------------------------------------------------------------------


@dataclass(frozen=True)
class StartHint:
    element: PlaybackElement
    type: Literal["start"] = "start"


@dataclass(frozen=True)
class StopHint:
    element: PlaybackElement
    type: Literal["stop"] = "stop"


@dataclass(frozen=True)
class RetriggerHint:
    untrigger_element: PlaybackElement
    retrigger_element: PlaybackElement
    type: Literal["retrigger"] = "retrigger"


@dataclass(frozen=True)
class SustainHint:
    previous_element: PlaybackElement
    current_element: PlaybackElement
    type: Literal["sustain"] = "sustain"


CursorStateHint = Union[StartHint, StopHint, RetriggerHint, SustainHint]


class LazyCursorStateHintProvider:
    """
    Describes what changed between two cursor frames.

    The hints are computed on the first ``get()`` and cached. Missing or
    identical frames produce no hints.
    """

    def __init__(self, current_frame: CursorFrame | None, previous_frame: CursorFrame | None) -> None:
        self.current_frame = current_frame
        self.previous_frame = previous_frame
        self._hints: Lazy[list[CursorStateHint]] = Lazy(self._compute)

    def get(self) -> list[CursorStateHint]:
        return self._hints.get()

    def _compute(self) -> list[CursorStateHint]:
        if self.current_frame is None or self.previous_frame is None:
            return []
        if self.current_frame is self.previous_frame:
            return []

        previous_elements = self.previous_frame.active_elements
        current_elements = self.current_frame.active_elements

        previous_notes = [element for element in previous_elements if element.kind != "rest"]
        current_notes = [element for element in current_elements if element.kind != "rest"]

        hints: list[CursorStateHint] = []
        hints.extend(StartHint(element) for element in current_elements if element not in previous_elements)
        hints.extend(StopHint(element) for element in previous_elements if element not in current_elements)

        # N is the number of sounding notes, so the quadratic scan stays small.
        for current_note in current_notes:
            previous_note = next(
                (note for note in previous_notes if _shares_pitch(note, current_note) and note != current_note),
                None,
            )
            if previous_note is None:
                continue
            if previous_note.shares_a_curve_with(current_note):
                hints.append(SustainHint(previous_note, current_note))
            else:
                hints.append(RetriggerHint(previous_note, current_note))

        return hints


def _shares_pitch(a: PlaybackElement, b: PlaybackElement) -> bool:
    return bool(set(_pitch_keys(a.pitches)) & set(_pitch_keys(b.pitches)))


def _pitch_keys(pitches: tuple[Pitch, ...]) -> list[tuple[str, int, float]]:
    return [(pitch.step, pitch.octave, pitch.alter) for pitch in pitches]
