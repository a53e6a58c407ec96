"""
Event sources.

This module provides:
- EventSource: Abstract pull interface (has_next/next) over time-ordered events
- FileEventSource: Local JSON-lines files (optionally gzipped)
- S3EventSource: JSON-lines objects under an S3 prefix
- IterableEventSource: Prepared in-memory events
"""

from .store import EventSource, IterableEventSource
from .file_source import FileEventSource
from .s3_source import S3EventSource
from .records import parse_record, parse_timestamp

__all__ = [
    "EventSource",
    "IterableEventSource",
    "FileEventSource",
    "S3EventSource",
    "parse_record",
    "parse_timestamp",
]
