"""Injectable time source.

Components that sleep, measure durations or stamp filenames take a
``Clock`` so tests can run a full cycle without waiting minutes.

Example:
    class FakeClock:
        def __init__(self):
            self.t = 0.0
            self.sleeps = []

        def monotonic(self) -> float:
            return self.t

        def sleep(self, seconds: float) -> None:
            self.sleeps.append(seconds)
            self.t += seconds

        def now(self) -> datetime:
            return datetime(2026, 10, 19, 10, 30, tzinfo=UTC)

    scheduler = FleetScheduler(registry, orchestrator, 280, 300, clock=FakeClock())
"""

from __future__ import annotations

import time
from datetime import datetime
from typing import Protocol


class Clock(Protocol):  # pragma: no cover
    """Protocol for time functions (injectable for testing)."""

    def monotonic(self) -> float:
        """Return monotonic seconds, for elapsed-time measurement only."""
        ...

    def sleep(self, seconds: float) -> None:
        """Block the calling thread for ``seconds``."""
        ...

    def now(self) -> datetime:
        """Return the current wall-clock time as an aware datetime."""
        ...


class SystemClock:
    """Default clock backed by the time module and the local timezone."""

    def monotonic(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)

    def now(self) -> datetime:
        """Current local time with the system UTC offset attached.

        Example:
            >>> SystemClock().now().tzinfo is not None
            True
        """
        return datetime.now().astimezone()
