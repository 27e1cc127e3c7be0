"""Timeline: one ordered event log merged from the sequences of a score."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal, Union

from scoreplay.config import DEFAULT_CONFIG, PlaybackConfig
from scoreplay.score_models import PlaybackElement, Score
from scoreplay.sequence import Sequence, SequenceFactory
from scoreplay.timing import Duration

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transition:
    kind: Literal["start", "stop"]
    element: PlaybackElement


@dataclass(frozen=True)
class TransitionEvent:
    time: Duration
    transitions: tuple[Transition, ...] = field(default=())


@dataclass(frozen=True)
class JumpEvent:
    time: Duration


@dataclass(frozen=True)
class SystemEndEvent:
    time: Duration


TimelineEvent = Union[TransitionEvent, JumpEvent, SystemEndEvent]

_TRANSITION_ORDER: dict[str, int] = {"stop": 0, "start": 1}


def _event_order(event: TimelineEvent) -> int:
    if isinstance(event, TransitionEvent):
        return 0
    if isinstance(event, JumpEvent):
        return 1
    if isinstance(event, SystemEndEvent):
        return 2
    raise TypeError(f"Unknown timeline event: {event!r}")


class Timeline:
    """
    Immutable, time-ascending events across every sequence of a score.

    Instants are rounded to whole milliseconds. Transitions that land on the
    same millisecond share one ``TransitionEvent`` with stops listed before
    starts. Events at the same time are ordered transition, jump, system end.
    """

    def __init__(self, events: tuple[TimelineEvent, ...] = ()) -> None:
        self._events = tuple(events)

    @classmethod
    def create(cls, sequences: list[Sequence]) -> Timeline:
        transitions: dict[int, list[Transition]] = {}
        jump_times: set[int] = set()
        system_end_times: set[int] = set()

        for sequence in sequences:
            for transition in sequence.get_transitions():
                ms = transition.time.round_ms()
                transitions.setdefault(ms, []).append(Transition(transition.kind, transition.element))
            jump_times.update(time.round_ms() for time in sequence.get_jumps())
            system_end_times.update(time.round_ms() for time in sequence.get_system_ends())

        events: list[TimelineEvent] = []
        for ms, group in transitions.items():
            ordered = sorted(group, key=lambda transition: _TRANSITION_ORDER[transition.kind])
            events.append(TransitionEvent(Duration.from_ms(ms), tuple(ordered)))
        events.extend(JumpEvent(Duration.from_ms(ms)) for ms in jump_times)
        events.extend(SystemEndEvent(Duration.from_ms(ms)) for ms in system_end_times)

        events.sort(key=lambda event: (event.time, _event_order(event)))

        logger.debug("Built timeline from %d sequence(s): %d events", len(sequences), len(events))
        return cls(tuple(events))

    @classmethod
    def from_score(cls, score: Score, config: PlaybackConfig = DEFAULT_CONFIG) -> Timeline:
        return cls.create(SequenceFactory(score, config).create())

    def get_events(self) -> tuple[TimelineEvent, ...]:
        return self._events

    def get_event(self, index: int) -> TimelineEvent | None:
        if 0 <= index < len(self._events):
            return self._events[index]
        return None

    def get_count(self) -> int:
        return len(self._events)

    def get_duration(self) -> Duration:
        if not self._events:
            return Duration.zero()
        return self._events[-1].time

    def to_human_readable(self) -> list[str]:
        """
        Describe each instant on one line, e.g. ``"[600ms] stop(n0), start(n1)"``.

        Events sharing a time are joined onto the same line.
        """
        lines: list[str] = []
        current_time: Duration | None = None
        parts: list[str] = []

        for event in self._events:
            if event.time != current_time:
                if current_time is not None:
                    lines.append(f"[{current_time.round_ms()}ms] " + ", ".join(parts))
                current_time = event.time
                parts = []

            if isinstance(event, TransitionEvent):
                parts.extend(f"{transition.kind}({transition.element.id})" for transition in event.transitions)
            elif isinstance(event, JumpEvent):
                parts.append("jump")
            elif isinstance(event, SystemEndEvent):
                parts.append("systemend")

        if current_time is not None:
            lines.append(f"[{current_time.round_ms()}ms] " + ", ".join(parts))

        return lines
