"""
Kinesis Replay

Replays a timestamp-ordered event history into a Kinesis data stream at a
configurable speedup, injecting per-shard low-watermark records.
"""

__version__ = "0.1.0"
