"""
Stable partition key generation.
"""

import hashlib


def partition_key_for(payload: bytes) -> str:
    """
    Derive a routing key from the record payload (no randomness).

    Equal payloads always land on the same shard; distinct payloads spread
    across the hash-key space.

    Example:
        partition_key_for(b'{"trip_id": 1}') -> "3f2a9c..."
    """
    return hashlib.sha256(payload).hexdigest()[:32]
