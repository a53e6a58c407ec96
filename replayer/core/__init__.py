"""
Core replay primitives.

This module provides the building blocks the replay loop is assembled from:
- Event: Immutable, time-ordered domain record
- WatermarkEvent: Per-shard low-watermark marker
- ReplayClock: Wall-clock to event-time pacing
- InFlightTracker: Thread-safe ordered set of unacknowledged events
- Canonical: Deterministic serialization
- IDs: Stable partition key generation
"""

from .events import Event, WatermarkEvent, PartitionDescriptor, WATERMARK_PARTITION_KEY
from .clock import ReplayClock, PacingDecision, SystemClock, ManualClock, MIN_SLEEP_MILLIS
from .inflight import InFlightTracker
from .canonical import canonical_json_bytes
from .ids import partition_key_for
from .errors import (
    ReplayError,
    ConfigError,
    SourceError,
    DestinationError,
    ThrottledError,
    RecordFailedError,
)

__all__ = [
    "Event",
    "WatermarkEvent",
    "PartitionDescriptor",
    "WATERMARK_PARTITION_KEY",
    "ReplayClock",
    "PacingDecision",
    "SystemClock",
    "ManualClock",
    "MIN_SLEEP_MILLIS",
    "InFlightTracker",
    "canonical_json_bytes",
    "partition_key_for",
    "ReplayError",
    "ConfigError",
    "SourceError",
    "DestinationError",
    "ThrottledError",
    "RecordFailedError",
]
