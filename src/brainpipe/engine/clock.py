# src/brainpipe/engine/clock.py
"""Clock abstraction for testable timeout logic.

Budgets read time through a Clock so timeout clamping can be tested
deterministically.

Production code uses SystemClock (the default).
Tests inject MockClock to control time advancement.
"""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Abstract monotonic clock."""

    def monotonic(self) -> float:
        """Return monotonic time in seconds (never goes backwards)."""
        ...


class SystemClock:
    """Production clock using time.monotonic()."""

    def monotonic(self) -> float:
        return time.monotonic()


class MockClock:
    """Controllable clock for deterministic testing.

    Example:
        clock = MockClock(start=0.0)
        budget = Budget.start(10.0, clock=clock, scope="pipe")
        clock.advance(4.0)
        assert budget.remaining() == 6.0
    """

    def __init__(self, start: float = 0.0) -> None:
        self._current = start

    def monotonic(self) -> float:
        return self._current

    def advance(self, seconds: float) -> None:
        """Advance mock time.

        Raises:
            ValueError: If seconds is negative.
        """
        if seconds < 0:
            raise ValueError(f"Cannot advance time by negative amount: {seconds}")
        self._current += seconds


DEFAULT_CLOCK: Clock = SystemClock()
