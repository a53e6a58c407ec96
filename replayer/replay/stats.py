"""
Periodic throughput and lag reporting.
"""

import logging
from typing import Optional

from ..core.clock import ReplayClock
from ..core.events import millis_to_iso
from ..metrics import set_progress

logger = logging.getLogger(__name__)


class StatisticsReporter:
    """
    Logs one status line per stats interval of wall time.

    The line reports the last watermark, the event rate over the interval,
    and how far the replay is behind its target pace.
    """

    def __init__(self, replay_clock: ReplayClock, interval_ms: int = 60_000) -> None:
        self.replay_clock = replay_clock
        self.interval_ms = interval_ms
        self.batch_events = 0
        self.last_slot = 0
        self.reports = 0

    def record_event(self) -> None:
        self.batch_events += 1

    def maybe_report(
        self, now_ms: float, gap_ms: float, last_watermark: Optional[int], inflight: int = 0
    ) -> bool:
        slot = int((now_ms - self.replay_clock.wall_zero_ms) // self.interval_ms)
        if slot == self.last_slot:
            return False

        rate = round(1000.0 * self.batch_events / self.interval_ms)
        lag = self.replay_clock.lag_seconds(gap_ms)
        watermark = millis_to_iso(last_watermark) if last_watermark is not None else "N/A"

        logger.info(
            f"all events with event time before {watermark} have been sent "
            f"({rate} events/sec, {lag} sec replay lag)",
            extra={
                "watermark": last_watermark,
                "events_per_sec": rate,
                "replay_lag_sec": lag,
                "inflight": inflight,
            },
        )
        set_progress(inflight, lag)

        self.batch_events = 0
        self.last_slot = slot
        self.reports += 1
        return True
