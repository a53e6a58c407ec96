"""
End-to-end replay tests with a manual clock and an in-memory destination.
"""

import json
import logging
from concurrent.futures import Future

import pytest

from replayer.config import ReplayConfig
from replayer.core.clock import ManualClock
from replayer.core.errors import DestinationError, RecordFailedError, SourceError, ThrottledError
from replayer.core.events import Event, WATERMARK_PARTITION_KEY
from replayer.replay.runner import ReplayState, StreamPopulator
from replayer.source.store import IterableEventSource
from replayer.stream.memory import MemoryDestination


def _events(*timestamps):
    return [
        Event(
            timestamp=ts,
            seq=seq,
            payload=json.dumps({"n": seq, "ts": ts}).encode(),
            partition_key=f"pk-{seq}",
        )
        for seq, ts in enumerate(timestamps)
    ]


def _config(**kw) -> ReplayConfig:
    return ReplayConfig(**kw)


def _stream(destination: MemoryDestination, shard_id: str = "shardId-000000000000"):
    """Decoded records of one shard in write order: ("event", ts) or ("watermark", wm)."""
    out = []
    for key, data in destination.records[shard_id]:
        body = json.loads(data)
        if key == WATERMARK_PARTITION_KEY:
            out.append(("watermark", body["watermark"]))
        else:
            out.append(("event", body["ts"]))
    return out


class ThrottlingDestination(MemoryDestination):
    def __init__(self, shard_count: int = 1, throttle_cycles: int = 1) -> None:
        super().__init__(shard_count=shard_count)
        self.throttle_cycles = throttle_cycles

    def list_partitions(self):
        if self.throttle_cycles > 0:
            self.throttle_cycles -= 1
            raise ThrottledError("throttled", code="LimitExceededException")
        return super().list_partitions()


def test_fast_replay_sends_all_in_order():
    destination = MemoryDestination()
    populator = StreamPopulator(
        IterableEventSource(_events(100, 200, 300)),
        destination,
        _config(speedup=1_000_000),
        clock=ManualClock(),
    )

    result = populator.populate()

    assert result.events_sent == 3
    assert result.send_failures == 0
    assert not result.cancelled
    assert result.drained
    assert [ts for kind, ts in _stream(destination) if kind == "event"] == [100, 200, 300]
    assert len(populator.tracker) == 0
    assert populator.state is ReplayState.TERMINAL


def test_watermarks_between_sparse_events():
    destination = MemoryDestination()
    clock = ManualClock()
    populator = StreamPopulator(
        IterableEventSource(_events(0, 20_000, 40_000)),
        destination,
        _config(speedup=1, watermark_interval_ms=10_000),
        clock=clock,
    )

    result = populator.populate()
    assert result.events_sent == 3

    records = _stream(destination)
    first = records.index(("event", 0))
    second = records.index(("event", 20_000))
    between = [value for kind, value in records[first + 1:second] if kind == "watermark"]

    assert between
    assert set(between) == {19_999}
    # Pacing sleeps never overshoot the watermark interval.
    assert clock.sleeps and max(clock.sleeps) <= 10_000


def test_throttled_watermark_cycle_skipped():
    destination = ThrottlingDestination(shard_count=2, throttle_cycles=1)
    populator = StreamPopulator(
        IterableEventSource(_events(0, 20_000, 40_000)),
        destination,
        _config(speedup=1, watermark_interval_ms=10_000),
        clock=ManualClock(),
        keep_watermark_history=True,
    )

    result = populator.populate()

    assert result.events_sent == 3
    assert result.watermarks_skipped == 1
    assert result.watermarks_emitted >= 1
    assert populator.watermarks[0].skipped
    assert not populator.watermarks[1].skipped
    assert populator.watermarks[1].partitions == 2


def test_empty_source_terminates_immediately():
    destination = MemoryDestination(shard_count=3)
    populator = StreamPopulator(
        IterableEventSource([]), destination, _config(), clock=ManualClock()
    )

    result = populator.populate()

    assert result.events_sent == 0
    assert result.watermarks_emitted == 0
    assert result.last_watermark is None
    assert destination.all_records() == []
    assert populator.state is ReplayState.TERMINAL


def test_stop_before_start_sends_nothing():
    destination = MemoryDestination()
    populator = StreamPopulator(
        IterableEventSource(_events(100, 200)), destination, _config(), clock=ManualClock()
    )
    populator.request_stop()

    result = populator.populate()

    assert result.cancelled
    assert result.events_sent == 0
    assert populator.state is ReplayState.TERMINAL


def test_stop_mid_replay_drains_outstanding_sends():
    class StoppingDestination(MemoryDestination):
        populator = None

        def submit(self, partition_key, data):
            future = super().submit(partition_key, data)
            if len(self.pending) == 2:
                self.populator.request_stop()
            return future

    destination = StoppingDestination(auto_complete=False)
    populator = StreamPopulator(
        IterableEventSource(_events(*range(0, 1_000, 10))),
        destination,
        _config(speedup=1_000_000),
        clock=ManualClock(),
    )
    destination.populator = populator

    result = populator.populate()

    assert result.cancelled
    assert result.events_sent == 2
    assert result.drained
    assert destination.pending == []
    assert len(populator.tracker) == 0


def test_send_failures_are_counted_not_fatal(caplog):
    class FailingDestination(MemoryDestination):
        def submit(self, partition_key, data):
            future = Future()
            future.set_running_or_notify_cancel()
            future.set_exception(RecordFailedError("InternalFailure", "boom"))
            return future

    populator = StreamPopulator(
        IterableEventSource(_events(100, 200, 300)),
        FailingDestination(),
        _config(speedup=1_000_000),
        clock=ManualClock(),
    )

    with caplog.at_level(logging.WARNING):
        result = populator.populate()

    assert result.events_sent == 3
    assert result.send_failures == 3
    assert len(populator.tracker) == 0


def test_out_of_order_source_is_fatal():
    destination = MemoryDestination()
    populator = StreamPopulator(
        IterableEventSource(_events(200, 100)),
        destination,
        _config(speedup=1_000_000),
        clock=ManualClock(),
    )

    with pytest.raises(SourceError):
        populator.populate()

    assert populator.state is ReplayState.TERMINAL


def test_unreachable_destination_is_fatal():
    class Unreachable(MemoryDestination):
        def list_partitions(self):
            raise DestinationError("stream not found", code="ResourceNotFoundException")

    populator = StreamPopulator(
        IterableEventSource(_events(100, 200)),
        Unreachable(),
        _config(speedup=1_000_000),
        clock=ManualClock(),
    )

    with pytest.raises(DestinationError):
        populator.populate()


def test_disabled_watermarks_send_only_events():
    destination = MemoryDestination(shard_count=2)
    populator = StreamPopulator(
        IterableEventSource(_events(0, 20_000, 40_000)),
        destination,
        _config(speedup=1, watermarks_enabled=False, watermark_interval_ms=10_000),
        clock=ManualClock(),
    )

    result = populator.populate()

    assert result.events_sent == 3
    assert result.watermarks_emitted == 0
    assert result.last_watermark is not None
    assert all(key != WATERMARK_PARTITION_KEY for _, key, _ in destination.all_records())


def test_statistics_logged_each_interval(caplog):
    populator = StreamPopulator(
        IterableEventSource(_events(0, 20_000, 40_000)),
        MemoryDestination(),
        _config(speedup=1, watermark_interval_ms=10_000, stats_interval_ms=15_000),
        clock=ManualClock(),
    )

    with caplog.at_level(logging.INFO, logger="replayer.replay.stats"):
        populator.populate()

    lines = [r for r in caplog.records if "have been sent" in r.message]
    assert len(lines) >= 2
    assert all(hasattr(r, "replay_lag_sec") for r in lines)


def test_watermarks_non_decreasing_across_replay():
    populator = StreamPopulator(
        IterableEventSource(_events(*range(0, 100_000, 700))),
        MemoryDestination(shard_count=3),
        _config(speedup=10, watermark_interval_ms=1_000, watermark_event_count=5),
        clock=ManualClock(),
        keep_watermark_history=True,
    )

    populator.populate()

    values = [w.watermark for w in populator.watermarks]
    assert len(values) > 2
    assert values == sorted(values)


def test_watermark_history_off_by_default():
    populator = StreamPopulator(
        IterableEventSource(_events(0, 20_000, 40_000)),
        MemoryDestination(),
        _config(speedup=1, watermark_interval_ms=10_000),
        clock=ManualClock(),
    )

    result = populator.populate()

    assert result.watermarks_emitted > 1
    assert populator.watermarks == []
    assert populator.last_emission is not None
    assert populator.last_emission.watermark == result.last_watermark


def test_drain_timeout_reports_undrained():
    class StuckDestination(MemoryDestination):
        def flush(self, timeout=None):
            self.flush_timeout = timeout
            return False

    destination = StuckDestination(auto_complete=False)
    populator = StreamPopulator(
        IterableEventSource(_events(100, 200)),
        destination,
        _config(speedup=1_000_000),
        clock=ManualClock(),
        drain_timeout=0.5,
    )

    result = populator.populate()

    assert not result.drained
    assert destination.flush_timeout == 0.5
    assert len(populator.tracker) == 2
    assert populator.state is ReplayState.TERMINAL
