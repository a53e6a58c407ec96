"""
Replay pacing.

Maps wall-clock elapsed time to event time under a speedup factor. The pacing
reference points are captured once; every decision is a pure function of
them and "now".
"""

import threading
import time
from dataclasses import dataclass
from typing import Optional

from .errors import ConfigError

MIN_SLEEP_MILLIS = 10


@dataclass(frozen=True)
class PacingDecision:
    """
    Outcome of a pacing check.

    Fields:
        due: True if the event should be dispatched now
        sleep_ms: How long to sleep before re-evaluating (0 when due)
        gap_ms: Simulated elapsed time minus event elapsed time (negative = early)
    """
    due: bool
    sleep_ms: float
    gap_ms: float


@dataclass(frozen=True)
class ReplayClock:
    """
    Immutable pacing reference.

    wall_zero_ms: wall clock at replay start
    log_zero_ms: event time of the first event
    speedup: simulated milliseconds per wall millisecond (1 = real time)
    """
    wall_zero_ms: float
    log_zero_ms: int
    speedup: float
    min_sleep_ms: float = MIN_SLEEP_MILLIS

    def __post_init__(self) -> None:
        if not self.speedup > 0:
            raise ConfigError(f"speedup must be > 0, got {self.speedup}")
        if self.min_sleep_ms <= 0:
            raise ConfigError(f"min_sleep_ms must be > 0, got {self.min_sleep_ms}")

    def gap(self, now_ms: float, timestamp: int) -> float:
        wall_elapsed = (now_ms - self.wall_zero_ms) * self.speedup
        log_elapsed = timestamp - self.log_zero_ms
        return wall_elapsed - log_elapsed

    def decide(self, now_ms: float, timestamp: int) -> PacingDecision:
        """
        Decide whether the event with `timestamp` is due.

        An early event is never skipped: the caller sleeps and asks again
        with the same event.
        """
        gap = self.gap(now_ms, timestamp)
        if gap < 0:
            return PacingDecision(
                due=False,
                sleep_ms=max(-gap / self.speedup, self.min_sleep_ms),
                gap_ms=gap,
            )
        return PacingDecision(due=True, sleep_ms=0.0, gap_ms=gap)

    def lag_seconds(self, gap_ms: float) -> int:
        """Wall seconds the replay is running behind its target pace."""
        return round(gap_ms / self.speedup / 1000)


class SystemClock:
    """Monotonic wall clock with interruptible sleep."""

    def now_ms(self) -> float:
        return time.monotonic() * 1000.0

    def sleep(self, ms: float, stop: Optional[threading.Event] = None) -> bool:
        """
        Sleep for `ms` milliseconds.

        Returns:
            False if `stop` was set before the duration elapsed
        """
        if stop is None:
            time.sleep(ms / 1000.0)
            return True
        return not stop.wait(ms / 1000.0)


class ManualClock:
    """
    Deterministic wall clock.

    In tests: sleep() advances time instantly, advance() moves it manually.
    """

    def __init__(self, start_ms: float = 0.0) -> None:
        self.current = start_ms
        self.sleeps = []

    def now_ms(self) -> float:
        return self.current

    def advance(self, ms: float) -> None:
        self.current += ms

    def sleep(self, ms: float, stop: Optional[threading.Event] = None) -> bool:
        if stop is not None and stop.is_set():
            return False
        self.sleeps.append(ms)
        self.current += ms
        return True
