"""Spatial primitives for the bounding regions attached to playback elements."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class NumberRange:
    """A closed numeric span ``[start, end]``."""

    start: float
    end: float

    def get_size(self) -> float:
        return self.end - self.start

    def includes(self, value: float) -> bool:
        return self.start <= value <= self.end

    def lerp(self, alpha: float) -> float:
        """Linearly interpolate between ``start`` (alpha=0) and ``end`` (alpha=1)."""
        return self.start + (self.end - self.start) * alpha


@dataclass(frozen=True)
class Rect:
    """An axis-aligned rectangle with its origin at the top-left corner."""

    x: float
    y: float
    w: float
    h: float

    @classmethod
    def empty(cls) -> Rect:
        return cls(0.0, 0.0, 0.0, 0.0)

    @classmethod
    def merge(cls, rects: Iterable[Rect]) -> Rect:
        """
        Return the smallest rectangle containing every rect.

        An empty iterable merges into ``Rect.empty()``.
        """
        rects = list(rects)
        if not rects:
            return cls.empty()
        left = min(rect.left() for rect in rects)
        top = min(rect.top() for rect in rects)
        right = max(rect.right() for rect in rects)
        bottom = max(rect.bottom() for rect in rects)
        return cls(left, top, right - left, bottom - top)

    def left(self) -> float:
        return self.x

    def right(self) -> float:
        return self.x + self.w

    def top(self) -> float:
        return self.y

    def bottom(self) -> float:
        return self.y + self.h

    def center(self) -> Point:
        return Point(self.x + self.w / 2, self.y + self.h / 2)

    def contains(self, point: Point) -> bool:
        return self.left() <= point.x <= self.right() and self.top() <= point.y <= self.bottom()
