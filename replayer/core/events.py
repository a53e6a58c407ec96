"""
Record types replayed into the destination stream.

Events are immutable and totally ordered by event time. Watermark records are
synthesized per shard and never stored.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from .canonical import canonical_json_bytes

# Reserved routing key for watermark records; the explicit hash key decides the shard.
WATERMARK_PARTITION_KEY = "23"


@dataclass(frozen=True, order=True)
class Event:
    """
    Immutable event record.

    Fields:
        timestamp: Event time in epoch milliseconds (e.g., drop-off time)
        seq: Position assigned by the EventSource, unique within a replay
        payload: Opaque record bytes sent to the stream
        partition_key: Routing key used by the stream to pick a shard

    Ordering, equality and hashing use (timestamp, seq) only, so two events
    with identical payloads at the same instant stay distinct.
    """
    timestamp: int
    seq: int
    payload: bytes = field(default=b"", compare=False, repr=False)
    partition_key: str = field(default="", compare=False)

    def event_time(self) -> datetime:
        """Event time as an aware UTC datetime."""
        return millis_to_datetime(self.timestamp)


@dataclass(frozen=True)
class WatermarkEvent:
    """
    Low-watermark marker.

    Asserts that no event with an event time earlier than `watermark`
    will be sent henceforth.
    """
    watermark: int

    @property
    def payload(self) -> bytes:
        return canonical_json_bytes({"type": "watermark", "watermark": self.watermark})


@dataclass(frozen=True)
class PartitionDescriptor:
    """
    Destination shard identity plus the lower bound of its hash-key range.

    starting_hash_key is the decimal string form used as ExplicitHashKey.
    """
    shard_id: str
    starting_hash_key: str


def millis_to_datetime(ts: int) -> datetime:
    return datetime.fromtimestamp(ts / 1000.0, tz=timezone.utc)


def millis_to_iso(ts: int) -> str:
    return millis_to_datetime(ts).isoformat()
