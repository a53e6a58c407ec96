"""
kinesis-replay CLI - Paced event replay into Kinesis

Commands:
- kinesis-replay populate - Replay events into a stream with watermarks
- kinesis-replay shards - List shards and their hash-key lower bounds
- kinesis-replay version - Show version information
"""

__version__ = "0.1.0"
