"""
Destination streams.

This module provides:
- StreamDestination: Abstract interface the replay loop writes through
- KinesisProducer: Batching asynchronous record producer (put_records)
- KinesisDestination: Amazon Kinesis Data Streams destination
- MemoryDestination: In-process destination with synthetic shards
"""

from .destination import StreamDestination, PutResult
from .producer import KinesisProducer
from .kinesis import KinesisDestination
from .aws import THROTTLING_ERROR_CODES
from .memory import MemoryDestination

__all__ = [
    "StreamDestination",
    "PutResult",
    "KinesisProducer",
    "KinesisDestination",
    "THROTTLING_ERROR_CODES",
    "MemoryDestination",
]
