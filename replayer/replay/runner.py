"""
Replay runner: paced, watermarked replay of an event source into a stream.

The loop is single-threaded. Only the pacing sleep and the final drain block;
sends are fire-and-forget and their completions arrive on producer threads.
"""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from ..config import ReplayConfig
from ..core.clock import ReplayClock, SystemClock
from ..core.events import Event
from ..core.inflight import InFlightTracker
from ..logging_config import get_logger
from ..source.store import EventSource
from ..stream.destination import StreamDestination
from .dispatcher import Dispatcher
from .stats import StatisticsReporter
from .watermark import EmissionResult, WatermarkEmitter


class ReplayState(str, Enum):
    AWAITING = "awaiting"
    DISPATCHING = "dispatching"
    DRAINING = "draining"
    TERMINAL = "terminal"


@dataclass(frozen=True)
class ReplayResult:
    """
    Result of a replay.

    Fields:
        events_sent: Events handed to the destination
        send_failures: Events the destination failed to acknowledge
        watermarks_emitted: Watermark cycles written to every shard
        watermarks_skipped: Watermark cycles abandoned due to throttling
        last_watermark: Most recent watermark computed (epoch millis)
        cancelled: True if a stop request ended the replay before the source did
        drained: True if every outstanding send completed during the drain
    """
    events_sent: int
    send_failures: int
    watermarks_emitted: int
    watermarks_skipped: int
    last_watermark: Optional[int]
    cancelled: bool
    drained: bool


class StreamPopulator:
    """
    Drives a replay from an EventSource into a StreamDestination.

    Usage:
        populator = StreamPopulator(source, destination, config)
        result = populator.populate()
    """

    def __init__(
        self,
        source: EventSource,
        destination: StreamDestination,
        config: Optional[ReplayConfig] = None,
        clock=None,
        drain_timeout: Optional[float] = None,
        keep_watermark_history: bool = False,
    ) -> None:
        self.source = source
        self.destination = destination
        self.config = (config or ReplayConfig()).validate()
        self.clock = clock or SystemClock()
        self.drain_timeout = drain_timeout

        self.tracker = InFlightTracker()
        self.dispatcher = Dispatcher(destination, self.tracker)
        self.emitter = WatermarkEmitter(
            destination,
            self.tracker,
            interval_ms=self.config.watermark_interval_ms,
            event_count=self.config.watermark_event_count,
            enabled=self.config.watermarks_enabled,
        )
        self.last_emission: Optional[EmissionResult] = None
        # Every cycle's result, only when keep_watermark_history is set.
        self.watermarks: List[EmissionResult] = []
        self.keep_watermark_history = keep_watermark_history
        self.state = ReplayState.AWAITING
        self._stop = threading.Event()
        self.log = get_logger(__name__, stream=self.config.stream_name)

    def request_stop(self) -> None:
        """Stop before the next iteration (safe from signal handlers and other threads)."""
        self._stop.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    def populate(self) -> ReplayResult:
        self.log.info(f"Starting to populate stream {self.config.stream_name}")
        cancelled = False
        try:
            if self.source.has_next():
                cancelled = self._replay(self.source.next())
            else:
                self.log.info("Event source is empty, nothing to replay")
        finally:
            self.state = ReplayState.DRAINING
            self.log.debug(f"Draining {len(self.tracker)} in-flight events")
            drained = self.destination.flush(self.drain_timeout)
            self.state = ReplayState.TERMINAL

        result = ReplayResult(
            events_sent=self.dispatcher.sent,
            send_failures=self.dispatcher.failed,
            watermarks_emitted=self.emitter.emitted,
            watermarks_skipped=self.emitter.skipped,
            last_watermark=self.emitter.last_watermark,
            cancelled=cancelled,
            drained=drained,
        )
        self.log.info(
            f"Replay finished: {result.events_sent} events sent, "
            f"{result.send_failures} failed, {result.watermarks_emitted} watermarks "
            f"(cancelled={cancelled}, drained={drained})"
        )
        return result

    def _replay(self, pending: Event) -> bool:
        """
        Run the pacing loop starting with `pending`.

        Returns:
            True if stopped by request, False if the source was exhausted
        """
        wall_zero = self.clock.now_ms()
        replay_clock = ReplayClock(
            wall_zero_ms=wall_zero,
            log_zero_ms=pending.timestamp,
            speedup=self.config.speedup,
            min_sleep_ms=self.config.min_sleep_ms,
        )
        stats = StatisticsReporter(replay_clock, self.config.stats_interval_ms)

        next_event: Optional[Event] = pending
        while not self._stop.is_set():
            now = self.clock.now_ms()
            decision = replay_clock.decide(now, next_event.timestamp)

            if not decision.due:
                self.state = ReplayState.AWAITING
                # Wake up for the next watermark cycle even during long pacing stalls.
                sleep_ms = min(
                    decision.sleep_ms,
                    max(self.emitter.ms_until_due(now), self.config.min_sleep_ms),
                )
                if not self.clock.sleep(sleep_ms, self._stop):
                    self.log.debug("Pacing sleep interrupted")
                    continue
            else:
                self.state = ReplayState.DISPATCHING
                self.dispatcher.send(next_event)
                self.emitter.record_event()
                stats.record_event()
                if not self.source.has_next():
                    return False
                next_event = self.source.next()
                self.state = ReplayState.AWAITING

            emission = self.emitter.maybe_emit(self.clock.now_ms(), next_event)
            if emission is not None:
                self.last_emission = emission
                if self.keep_watermark_history:
                    self.watermarks.append(emission)

            stats.maybe_report(
                self.clock.now_ms(),
                decision.gap_ms,
                self.emitter.last_watermark,
                inflight=len(self.tracker),
            )

        self.log.info("Stop requested, ending replay")
        return True
