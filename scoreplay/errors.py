"""Errors raised by the playback subsystem."""


class LocatorCoverageError(RuntimeError):
    """
    Neither locator resolved a time that lies inside a sequence's bounds.

    This means the sequence entries do not tile their duration, which is a
    construction bug rather than bad input, so callers should not recover.
    """

    def __init__(self, time_ms: float, duration_ms: float) -> None:
        super().__init__(
            f"locator coverage is insufficient to locate time {time_ms:g}ms "
            f"in a sequence lasting {duration_ms:g}ms"
        )
        self.time_ms = time_ms
        self.duration_ms = duration_ms
