"""
Canonical serialization for marker records.

Watermark records are built here so every shard receives byte-identical
payloads for the same watermark.
"""

import json
from typing import Any, Dict


def canonical_json_bytes(obj: Dict[str, Any]) -> bytes:
    """
    Compact, key-sorted JSON bytes.

    Returns:
        UTF-8 encoded JSON bytes
    """
    s = json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return s.encode("utf-8")
