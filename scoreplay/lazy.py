"""Lazy: a value computed on first read and cached afterwards."""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

T = TypeVar("T")

_UNSET = object()


class Lazy(Generic[T]):
    """
    Deferred computation wrapper.

    The factory runs at most once, on the first ``get()``. If it raises, nothing
    is cached and the next ``get()`` tries again.
    """

    def __init__(self, factory: Callable[[], T]) -> None:
        self._factory = factory
        self._value: object = _UNSET

    @classmethod
    def of(cls, value: T) -> Lazy[T]:
        """Wrap an already-known value."""
        lazy: Lazy[T] = cls(lambda: value)
        lazy._value = value
        return lazy

    def is_resolved(self) -> bool:
        return self._value is not _UNSET

    def get(self) -> T:
        if self._value is _UNSET:
            self._value = self._factory()
        return self._value  # type: ignore[return-value]
