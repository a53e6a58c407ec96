"""
Watermark emission.

A watermark is the oldest in-flight event's timestamp minus one: every
strictly older event has been acknowledged or has failed. When nothing is in
flight, the next event about to be sent stands in for the oldest one.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ..core.errors import ThrottledError
from ..core.events import Event, WatermarkEvent, WATERMARK_PARTITION_KEY, millis_to_iso
from ..core.inflight import InFlightTracker
from ..logging_config import TRACE
from ..metrics import track_watermark
from ..stream.destination import StreamDestination

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmissionResult:
    """
    Outcome of one watermark cycle.

    Fields:
        watermark: Computed watermark (epoch millis)
        partitions: Shards a watermark record was written to
        skipped: True if the destination throttled and the cycle was abandoned
    """
    watermark: int
    partitions: int
    skipped: bool = False


class WatermarkEmitter:
    """
    Decides when a watermark is due, computes it, and fans it out to every shard.

    Fires when interval_ms of wall time or event_count dispatched events have
    passed since the previous cycle, whichever comes first. The first check
    always fires.
    """

    def __init__(
        self,
        destination: StreamDestination,
        tracker: InFlightTracker,
        interval_ms: int = 10_000,
        event_count: int = 10_000,
        enabled: bool = True,
    ) -> None:
        self.destination = destination
        self.tracker = tracker
        self.interval_ms = interval_ms
        self.event_count = event_count
        self.enabled = enabled

        self.last_watermark: Optional[int] = None
        self.last_fired_ms: Optional[float] = None
        self.events_since = 0
        self.emitted = 0
        self.skipped = 0

    def record_event(self) -> None:
        self.events_since += 1

    def due(self, now_ms: float) -> bool:
        if self.last_fired_ms is None:
            return True
        return (
            now_ms - self.last_fired_ms >= self.interval_ms
            or self.events_since >= self.event_count
        )

    def ms_until_due(self, now_ms: float) -> float:
        """Wall milliseconds until the interval trigger fires (0 if already due)."""
        if self.last_fired_ms is None:
            return 0.0
        return max(0.0, self.last_fired_ms + self.interval_ms - now_ms)

    def compute(self, next_pending: Optional[Event]) -> Optional[int]:
        oldest = self.tracker.peek_oldest()
        if oldest is not None:
            return oldest.timestamp - 1
        if next_pending is not None:
            return next_pending.timestamp - 1
        return None

    def maybe_emit(self, now_ms: float, next_pending: Optional[Event]) -> Optional[EmissionResult]:
        """
        Run a watermark cycle if one is due.

        Returns:
            EmissionResult, or None if no cycle ran

        Raises:
            DestinationError: If shard listing or a write fails for a reason
                other than throttling
        """
        if not self.due(now_ms):
            return None
        watermark = self.compute(next_pending)
        if watermark is None:
            return None

        if self.enabled:
            result = self.emit(watermark)
        else:
            result = EmissionResult(watermark=watermark, partitions=0)

        self.events_since = 0
        self.last_watermark = watermark
        self.last_fired_ms = now_ms
        return result

    def emit(self, watermark: int) -> EmissionResult:
        """Write one watermark record to every shard of the destination."""
        record = WatermarkEvent(watermark)
        sent = 0
        try:
            for partition in self.destination.list_partitions():
                shard_id = self.destination.put_explicit(
                    record.payload, WATERMARK_PARTITION_KEY, partition.starting_hash_key
                )
                sent += 1
                logger.log(TRACE, f"send watermark {millis_to_iso(watermark)} to shard {shard_id}")
        except ThrottledError as e:
            self.skipped += 1
            track_watermark(watermark, skipped=True)
            logger.warning(f"skipping watermark due to limit exceeded exception ({e.code})")
            return EmissionResult(watermark=watermark, partitions=sent, skipped=True)

        self.emitted += 1
        track_watermark(watermark)
        logger.debug(f"send watermark {millis_to_iso(watermark)}")
        return EmissionResult(watermark=watermark, partitions=sent)
