# src/brainpipe/engine/budget.py
"""Nested timeout budgets.

A pipe, each of its stages, and each operation can declare a timeout. The
three nest: an inner budget never outlives its parent. If 10s remain on
the pipe and a stage asks for 30s, the stage gets 10s.

    pipe_budget = Budget.start(10.0, scope="pipe")
    stage_budget = pipe_budget.child(30.0, scope="stage")
    assert stage_budget.remaining() <= 10.0

When a parent is the binding constraint, the child keeps the parent's
scope, so a timeout reports the budget that actually ran out.
"""

from __future__ import annotations

from dataclasses import dataclass

from brainpipe.contracts.errors import PipelineTimeoutError
from brainpipe.engine.clock import DEFAULT_CLOCK, Clock


@dataclass(frozen=True, slots=True)
class Budget:
    """An absolute deadline on a clock, or no deadline at all.

    Attributes:
        deadline: Clock time at which the budget expires, None if unbounded
        scope: "pipe", "stage" or "operation"
        seconds: The nominal timeout this deadline came from
        clock: Time source
    """

    deadline: float | None
    scope: str
    seconds: float | None = None
    clock: Clock = DEFAULT_CLOCK

    @classmethod
    def unbounded(cls, *, scope: str = "pipe", clock: Clock = DEFAULT_CLOCK) -> Budget:
        return cls(deadline=None, scope=scope, seconds=None, clock=clock)

    @classmethod
    def start(cls, timeout: float | None, *, scope: str = "pipe", clock: Clock = DEFAULT_CLOCK) -> Budget:
        """Start a budget of `timeout` seconds from now (None = unbounded)."""
        if timeout is None:
            return cls.unbounded(scope=scope, clock=clock)
        return cls(deadline=clock.monotonic() + timeout, scope=scope, seconds=timeout, clock=clock)

    def remaining(self) -> float | None:
        """Seconds left (may be negative once expired), or None if unbounded."""
        if self.deadline is None:
            return None
        return self.deadline - self.clock.monotonic()

    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def child(self, requested: float | None, *, scope: str) -> Budget:
        """Derive an inner budget that cannot outlive this one."""
        remaining = self.remaining()
        if requested is not None and (remaining is None or requested < remaining):
            return Budget(
                deadline=self.clock.monotonic() + requested,
                scope=scope,
                seconds=requested,
                clock=self.clock,
            )
        if remaining is None:
            return Budget.unbounded(scope=scope, clock=self.clock)
        return self

    def timeout_error(self, message: str) -> PipelineTimeoutError:
        return PipelineTimeoutError(message, scope=self.scope, seconds=self.seconds)

    def check(self, what: str) -> None:
        """Raise if the budget is already spent.

        Raises:
            PipelineTimeoutError: If no time remains
        """
        if self.expired():
            raise self.timeout_error(f"{what} could not start: {self.scope} budget of {self.seconds}s exhausted")
