"""TimestampLocator: maps a point on the rendered score back to a playback time."""

from __future__ import annotations

from dataclasses import dataclass

from scoreplay.cursor_frame import CursorFrame, CursorFrameFactory
from scoreplay.score_models import Score
from scoreplay.spatial import NumberRange, Point
from scoreplay.timing import Duration


@dataclass(frozen=True)
class _SystemFrames:
    y_range: NumberRange
    frames: tuple[CursorFrame, ...]


class TimestampLocator:
    """
    Finds the playback time under a point.

    When a passage is played more than once (repeats), the first pass wins.
    """

    def __init__(self, systems: list[_SystemFrames]) -> None:
        self._systems = systems

    @classmethod
    def create(cls, score: Score, frame_factories: list[CursorFrameFactory]) -> TimestampLocator:
        systems: list[_SystemFrames] = []
        for system in score.systems:
            frames: list[CursorFrame] = []
            for factory in frame_factories:
                for index in range(factory.sequence.get_length()):
                    frame = factory.get(index)
                    if any(element.system_index == system.index for element in frame.active_elements):
                        frames.append(frame)
            y_range = NumberRange(system.rect.top(), system.rect.bottom())
            systems.append(_SystemFrames(y_range, tuple(frames)))
        return cls(systems)

    def locate(self, point: Point) -> Duration | None:
        # O(systems * frames); both stay in the hundreds for real scores.
        for system in self._systems:
            if not system.y_range.includes(point.y):
                continue
            for frame in system.frames:
                if not frame.x_range.includes(point.x):
                    continue
                width = frame.x_range.get_size()
                alpha = (point.x - frame.x_range.start) / width if width > 0 else 0.0
                start_ms = frame.t_range.start.ms
                stop_ms = frame.t_range.end.ms
                return Duration.from_ms(start_ms + (stop_ms - start_ms) * alpha)
        return None
