"""
JSON-lines record parsing.

Each line is one JSON object. The payload sent downstream is the raw line;
only the timestamp field is interpreted.
"""

import json
from datetime import datetime, timezone
from typing import Any

from ..core.errors import SourceError
from ..core.events import Event
from ..core.ids import partition_key_for


def parse_timestamp(value: Any) -> int:
    """
    Convert a record timestamp to epoch milliseconds.

    Accepts ISO-8601 strings (naive values are UTC, trailing "Z" allowed)
    and numeric epoch milliseconds.
    """
    if isinstance(value, bool):
        raise SourceError(f"invalid timestamp: {value!r}")
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            return int(text)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError as e:
            raise SourceError(f"invalid timestamp: {value!r}") from e
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return int(dt.timestamp() * 1000)
    raise SourceError(f"invalid timestamp: {value!r}")


def parse_record(line: bytes, seq: int, timestamp_field: str) -> Event:
    """
    Build an Event from one JSON line.

    Raises:
        SourceError: If the line is not a JSON object or lacks the timestamp field
    """
    payload = line.strip()
    try:
        rec = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise SourceError(f"malformed record at seq={seq}: {e}") from e
    if not isinstance(rec, dict):
        raise SourceError(f"malformed record at seq={seq}: expected JSON object")
    if timestamp_field not in rec:
        raise SourceError(f"record at seq={seq} has no '{timestamp_field}' field")

    return Event(
        timestamp=parse_timestamp(rec[timestamp_field]),
        seq=seq,
        payload=payload,
        partition_key=partition_key_for(payload),
    )
