"""Player: a playback clock the host advances once per animation frame."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Literal

from scoreplay.events import Topic

logger = logging.getLogger(__name__)

PlayerState = Literal["playing", "paused"]

PROGRESS_EVENT = "progress"
STATE_CHANGE_EVENT = "statechange"


class Player:
    """
    Tracks the current playback time without owning a loop.

    The host calls ``tick()`` from its own frame or timer callback; the time
    elapsed since the previous tick is read from the injected ``clock`` (in
    seconds, ``time.monotonic`` by default) and broadcast as ``progress`` in
    milliseconds. Wire a cursor with ``player.add_listener("progress", cursor.seek)``.
    """

    def __init__(self, duration_ms: float, clock: Callable[[], float] = time.monotonic) -> None:
        if duration_ms < 0:
            raise ValueError(f"duration_ms cannot be negative, got {duration_ms}.")
        self.duration_ms = duration_ms
        self._clock = clock
        self._state: PlayerState = "paused"
        self._current_time_ms = 0.0
        self._last_tick_s: float | None = None
        self._topic: Topic[Any] = Topic()

    def get_state(self) -> PlayerState:
        return self._state

    def get_current_time_ms(self) -> float:
        return self._current_time_ms

    def add_listener(self, name: str, listener: Callable[[Any], None]) -> int:
        return self._topic.subscribe(name, listener)

    def remove_listener(self, *handles: int) -> None:
        for handle in handles:
            self._topic.unsubscribe(handle)

    def play(self) -> None:
        if self._current_time_ms >= self.duration_ms:
            self._current_time_ms = 0.0
        if self._state == "playing":
            return
        self._state = "playing"
        self._last_tick_s = self._clock()
        self._topic.publish(STATE_CHANGE_EVENT, self._state)

    def pause(self) -> None:
        if self._state == "paused":
            return
        self._state = "paused"
        self._last_tick_s = None
        self._topic.publish(STATE_CHANGE_EVENT, self._state)

    def seek(self, time_ms: float, broadcast: bool = True) -> None:
        time_ms = min(max(time_ms, 0.0), self.duration_ms)
        if time_ms != self._current_time_ms:
            self._current_time_ms = time_ms
            if broadcast:
                self._topic.publish(PROGRESS_EVENT, self._current_time_ms)

    def tick(self) -> float:
        """Advance by the clock time since the last tick and return the current time."""
        if self._state != "playing" or self._last_tick_s is None:
            return self._current_time_ms

        now = self._clock()
        delta_ms = max(now - self._last_tick_s, 0.0) * 1000
        self._last_tick_s = now

        self._current_time_ms = min(self._current_time_ms + delta_ms, self.duration_ms)
        self._topic.publish(PROGRESS_EVENT, self._current_time_ms)

        if self._current_time_ms >= self.duration_ms:
            logger.debug("Reached the end of playback at %gms", self._current_time_ms)
            self.pause()

        return self._current_time_ms
