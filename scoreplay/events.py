"""A small typed publish/subscribe registry."""

from __future__ import annotations

import itertools
from typing import Callable, Generic, TypeVar

T = TypeVar("T")

Listener = Callable[[T], None]


class Topic(Generic[T]):
    """
    Holds listeners keyed by event name.

    ``subscribe`` returns an opaque integer handle; pass it to ``unsubscribe``
    to stop receiving events. Listeners are called in subscription order.
    """

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._listeners: dict[int, tuple[str, Listener[T]]] = {}

    def subscribe(self, name: str, listener: Listener[T]) -> int:
        handle = next(self._ids)
        self._listeners[handle] = (name, listener)
        return handle

    def unsubscribe(self, handle: int) -> None:
        self._listeners.pop(handle, None)

    def unsubscribe_all(self) -> None:
        self._listeners.clear()

    def count(self, name: str | None = None) -> int:
        return sum(1 for event_name, _ in self._listeners.values() if name is None or event_name == name)

    def publish(self, name: str, payload: T) -> None:
        # Copy so listeners may unsubscribe while being notified.
        for event_name, listener in list(self._listeners.values()):
            if event_name == name:
                listener(payload)
