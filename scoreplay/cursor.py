"""Cursors: stateful pointers into a sequence that a UI steps and seeks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterator

from scoreplay.config import DEFAULT_CONFIG, PlaybackConfig
from scoreplay.cursor_frame import (
    CursorFrame,
    CursorFrameFactory,
    CursorVerticalSpan,
    LazyCursorStateHintProvider,
)
from scoreplay.errors import LocatorCoverageError
from scoreplay.events import Topic
from scoreplay.lazy import Lazy
from scoreplay.locators import CheapLocator, ExpensiveLocator
from scoreplay.score_models import PlaybackElement, Score
from scoreplay.sequence import Sequence
from scoreplay.spatial import Rect
from scoreplay.timing import Duration

CHANGE_EVENT = "change"


# ------------------------------------------------------------------
# DiscreteCursor
# ------------------------------------------------------------------


@dataclass(frozen=True)
class DiscreteCursorState:
    index: int
    length: int
    element: PlaybackElement | None


class DiscreteCursor:
    """Steps through a sequence one entry at a time."""

    def __init__(self, sequence: Sequence) -> None:
        self.sequence = sequence
        self._index = 0
        self._topic: Topic[DiscreteCursorState] = Topic()

    def get_part_index(self) -> int:
        return self.sequence.get_part_index()

    def get_current_index(self) -> int:
        return self._index

    def get_current_element(self) -> PlaybackElement | None:
        entry = self.sequence.get_entry(self._index)
        return entry.element if entry is not None else None

    def get_current(self) -> DiscreteCursorState:
        return DiscreteCursorState(self._index, self.sequence.get_length(), self.get_current_element())

    def next(self) -> None:
        if self.has_next():
            self._update(self._index + 1)

    def previous(self) -> None:
        if self.has_previous():
            self._update(self._index - 1)

    def has_next(self) -> bool:
        length = self.sequence.get_length()
        return length > 1 and self._index < length - 1

    def has_previous(self) -> bool:
        return self.sequence.get_length() > 1 and self._index > 0

    def add_listener(self, listener: Callable[[DiscreteCursorState], None]) -> int:
        return self._topic.subscribe(CHANGE_EVENT, listener)

    def remove_listener(self, *handles: int) -> None:
        for handle in handles:
            self._topic.unsubscribe(handle)

    def _update(self, index: int) -> None:
        if index != self._index:
            self._index = index
            self._topic.publish(CHANGE_EVENT, self.get_current())


# ------------------------------------------------------------------
# Cursor
# ------------------------------------------------------------------


class CursorState:
    """
    A snapshot of a ``Cursor``.

    ``frame``, ``rect`` and ``hints`` are derived only when first read.
    """

    def __init__(
        self,
        index: int,
        length: int,
        alpha: float,
        element: PlaybackElement | None,
        frame: Lazy[CursorFrame],
        previous_frame: Lazy[CursorFrame] | None,
        cursor_width: float,
    ) -> None:
        self.index = index
        self.length = length
        self.alpha = alpha
        self.element = element
        self.has_next = index < length - 1
        self.has_previous = 0 < index < length
        self._frame = frame
        self._rect = Lazy(lambda: self._compute_rect(cursor_width))
        self._hints = Lazy(
            lambda: LazyCursorStateHintProvider(
                frame.get(),
                previous_frame.get() if previous_frame is not None else None,
            )
        )

    def __repr__(self) -> str:
        return f"CursorState(index={self.index}, length={self.length}, alpha={self.alpha})"

    @property
    def frame(self) -> CursorFrame:
        return self._frame.get()

    @property
    def rect(self) -> Rect:
        return self._rect.get()

    @property
    def hints(self) -> LazyCursorStateHintProvider:
        return self._hints.get()

    def _compute_rect(self, cursor_width: float) -> Rect:
        frame = self.frame
        x = frame.x_range.lerp(self.alpha)
        return Rect(x, frame.y_range.start, cursor_width, frame.y_range.get_size())


class Cursor:
    """
    A sequence cursor that also seeks by time.

    ``seek`` clamps the time to the sequence, tries the ``CheapLocator`` around
    the current index and falls back to the ``ExpensiveLocator``. ``alpha``
    records how far into the current entry the seek landed, from 0 to 1.
    """

    def __init__(
        self,
        sequence: Sequence,
        frames: CursorFrameFactory,
        config: PlaybackConfig = DEFAULT_CONFIG,
    ) -> None:
        self.sequence = sequence
        self.frames = frames
        self.config = config
        self.cheap_locator = CheapLocator(sequence)
        self.expensive_locator = ExpensiveLocator(sequence)
        self._topic: Topic[CursorState] = Topic()
        self._index = 0
        self._alpha = 0.0
        self._previous_index: int | None = None
        self._previous_alpha = 0.0

    @classmethod
    def create(
        cls,
        score: Score,
        sequence: Sequence,
        span: CursorVerticalSpan | None = None,
        config: PlaybackConfig = DEFAULT_CONFIG,
    ) -> Cursor:
        if span is None:
            span = CursorVerticalSpan.single(sequence.get_part_index())
        return cls(sequence, CursorFrameFactory(score, sequence, span, config), config)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def get_part_index(self) -> int:
        return self.sequence.get_part_index()

    def get_current_index(self) -> int:
        return self._index

    def get_alpha(self) -> float:
        return self._alpha

    def get_state(self) -> CursorState:
        return self._get_state(self._index, self._alpha, self._previous_index)

    def get_previous_state(self) -> CursorState | None:
        if self._previous_index is None:
            return None
        return self._get_state(self._previous_index, self._previous_alpha, None)

    def has_next(self) -> bool:
        return self._index < self.sequence.get_length() - 1

    def has_previous(self) -> bool:
        return 0 < self._index < self.sequence.get_length()

    def iterable(self) -> Iterator[CursorState]:
        """Yield the state of every entry from the first to the last, moving the cursor."""
        if self.sequence.get_length() == 0:
            return
        self.go_to(0)
        yield self.get_state()
        while self.has_next():
            self.next()
            yield self.get_state()

    # ------------------------------------------------------------------
    # Movement
    # ------------------------------------------------------------------

    def next(self) -> None:
        if self.has_next():
            self._update(self._index + 1, 0.0)

    def previous(self) -> None:
        if self.has_previous():
            self._update(self._index - 1, 0.0)

    def go_to(self, index: int) -> None:
        self._update(index, 0.0)

    def snap(self, time_ms: float) -> None:
        """Move to the entry sounding at ``time_ms``, without interpolating."""
        if self.sequence.get_length() == 0:
            return
        self._update(self._locate(self._normalize(time_ms)), 0.0)

    def seek(self, time_ms: float) -> None:
        """
        Move to the exact position of ``time_ms``, interpolating within the entry.

        Raises:
            LocatorCoverageError: If no entry owns a time inside the sequence.
        """
        if self.sequence.get_length() == 0:
            return
        time = self._normalize(time_ms)
        index = self._locate(time)

        entry = self.sequence.get_entry(index)
        if entry is None:
            raise LocatorCoverageError(time.ms, self.sequence.get_duration_ms())
        size = entry.duration_range.get_size()
        alpha = 0.0
        if size > Duration.zero():
            alpha = float((time - entry.duration_range.start).value / size.value)

        self._update(index, alpha)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: Callable[[CursorState], None], emit_bootstrap_event: bool = False) -> int:
        handle = self._topic.subscribe(CHANGE_EVENT, listener)
        if emit_bootstrap_event:
            listener(self.get_state())
        return handle

    def remove_listener(self, *handles: int) -> None:
        for handle in handles:
            self._topic.unsubscribe(handle)

    def remove_all_listeners(self) -> None:
        self._topic.unsubscribe_all()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _get_state(self, index: int, alpha: float, previous_index: int | None) -> CursorState:
        entry = self.sequence.get_entry(index)
        return CursorState(
            index=index,
            length=self.sequence.get_length(),
            alpha=alpha,
            element=entry.element if entry is not None else None,
            frame=self.frames.lazy(index),
            previous_frame=self.frames.lazy(previous_index) if previous_index is not None else None,
            cursor_width=self.config.cursor_width_px,
        )

    def _normalize(self, time_ms: float) -> Duration:
        duration = self.sequence.get_duration()
        time = Duration.from_ms(time_ms)
        if time < Duration.zero():
            return Duration.zero()
        if time > duration:
            return duration
        return time

    def _locate(self, time: Duration) -> int:
        index = self.cheap_locator.set_starting_index(self._index).locate(time)
        if index is None:
            index = self.expensive_locator.locate(time)
        if index is None:
            raise LocatorCoverageError(time.ms, self.sequence.get_duration_ms())
        return index

    def _update(self, index: int, alpha: float) -> None:
        length = self.sequence.get_length()
        if length == 0:
            return
        index = min(max(index, 0), length - 1)
        alpha = round(min(max(alpha, 0.0), 1.0), self.config.alpha_decimals)
        if index != self._index or alpha != self._alpha:
            self._previous_index = self._index
            self._previous_alpha = self._alpha
            self._index = index
            self._alpha = alpha
            self._topic.publish(CHANGE_EVENT, self.get_state())
