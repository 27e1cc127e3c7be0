"""ScorePlayback: the entry point a UI uses to build cursors over a score."""

from __future__ import annotations

import logging

from scoreplay.config import DEFAULT_CONFIG, PlaybackConfig
from scoreplay.cursor import Cursor, DiscreteCursor
from scoreplay.cursor_frame import CursorFrameFactory, CursorVerticalSpan
from scoreplay.lazy import Lazy
from scoreplay.score_models import Score
from scoreplay.sequence import Sequence, SequenceFactory
from scoreplay.spatial import Point
from scoreplay.timeline import Timeline
from scoreplay.timestamp_locator import TimestampLocator
from scoreplay.timing import Duration

logger = logging.getLogger(__name__)


class ScorePlayback:
    """
    Playback models for one finalized score.

    Sequences and the timeline are built on first use and reused by every
    cursor. Build a new ``ScorePlayback`` when the score is re-rendered.
    """

    def __init__(self, score: Score, config: PlaybackConfig = DEFAULT_CONFIG) -> None:
        self.score = score
        self.config = config
        self._sequences: Lazy[list[Sequence]] = Lazy(lambda: SequenceFactory(score, config).create())
        self._timeline: Lazy[Timeline] = Lazy(lambda: Timeline.create(self.get_sequences()))
        self._timestamp_locator: Lazy[TimestampLocator] = Lazy(self._create_timestamp_locator)
        self._cursors: list[Cursor] = []

    def get_sequences(self) -> list[Sequence]:
        return self._sequences.get()

    def get_sequence(self, part_index: int) -> Sequence:
        """
        Raises:
            ValueError: If the score has no such part.
        """
        sequences = self.get_sequences()
        if not 0 <= part_index < len(sequences):
            raise ValueError(f"Part index {part_index} is out of range for {len(sequences)} part(s).")
        return sequences[part_index]

    def get_timeline(self) -> Timeline:
        return self._timeline.get()

    def get_duration_ms(self) -> float:
        return max((sequence.get_duration_ms() for sequence in self.get_sequences()), default=0.0)

    def get_cursors(self) -> list[Cursor]:
        return list(self._cursors)

    def add_cursor(self, part_index: int = 0, span: CursorVerticalSpan | None = None) -> Cursor:
        """
        Create a cursor over one part's sequence.

        Raises:
            ValueError: If the part or the span does not exist in the score.
        """
        sequence = self.get_sequence(part_index)
        if span is not None and not 0 <= span.from_part_index <= span.to_part_index < self.score.part_count:
            raise ValueError(f"Invalid cursor span {span} for {self.score.part_count} part(s).")
        cursor = Cursor.create(self.score, sequence, span, self.config)
        self._cursors.append(cursor)
        logger.debug("Added cursor for part %d (%d entries)", part_index, sequence.get_length())
        return cursor

    def add_discrete_cursor(self, part_index: int = 0) -> DiscreteCursor:
        return DiscreteCursor(self.get_sequence(part_index))

    def locate_timestamp(self, point: Point) -> Duration | None:
        """Return the playback time under ``point``, or ``None`` if no frame is there."""
        return self._timestamp_locator.get().locate(point)

    def _create_timestamp_locator(self) -> TimestampLocator:
        factories = [
            CursorFrameFactory(
                self.score,
                sequence,
                CursorVerticalSpan.single(sequence.get_part_index()),
                self.config,
            )
            for sequence in self.get_sequences()
        ]
        return TimestampLocator.create(self.score, factories)
