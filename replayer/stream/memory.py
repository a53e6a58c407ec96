"""
In-process destination stream.

Splits the 128-bit Kinesis hash-key space evenly across a fixed number of
synthetic shards and routes records the same way Kinesis does (MD5 of the
partition key, or the explicit hash key). Used for dry runs and tests.
"""

import hashlib
import threading
from concurrent.futures import Future
from typing import Dict, List, Optional, Tuple

from ..core.errors import DestinationError
from ..core.events import PartitionDescriptor
from .destination import PutResult, StreamDestination

HASH_KEY_SPACE = 2 ** 128


class MemoryDestination(StreamDestination):
    """
    Destination that keeps every record in memory.

    With auto_complete=False, submitted futures stay pending until
    complete_pending() is called, which lets callers control acknowledgement
    order.
    """

    def __init__(self, shard_count: int = 1, auto_complete: bool = True) -> None:
        if shard_count < 1:
            raise DestinationError("shard_count must be >= 1")
        self.auto_complete = auto_complete
        self._lock = threading.Lock()
        self._shards: List[Tuple[str, int]] = [
            (f"shardId-{i:012d}", i * HASH_KEY_SPACE // shard_count)
            for i in range(shard_count)
        ]
        self.records: Dict[str, List[Tuple[str, bytes]]] = {sid: [] for sid, _ in self._shards}
        self.pending: List[Tuple[Future, str, str, bytes]] = []
        self._sequence = 0

    def _shard_for(self, hash_key: int) -> str:
        owner = self._shards[0][0]
        for shard_id, start in self._shards:
            if hash_key >= start:
                owner = shard_id
        return owner

    def _append(self, shard_id: str, partition_key: str, data: bytes) -> PutResult:
        with self._lock:
            self._sequence += 1
            self.records[shard_id].append((partition_key, data))
            return PutResult(shard_id, str(self._sequence))

    def submit(self, partition_key: str, data: bytes) -> "Future[PutResult]":
        future: "Future[PutResult]" = Future()
        future.set_running_or_notify_cancel()
        hash_key = int(hashlib.md5(partition_key.encode("utf-8")).hexdigest(), 16)
        shard_id = self._shard_for(hash_key)
        if self.auto_complete:
            future.set_result(self._append(shard_id, partition_key, data))
        else:
            with self._lock:
                self.pending.append((future, shard_id, partition_key, data))
        return future

    def complete_pending(
        self, index: Optional[int] = None, error: Optional[BaseException] = None
    ) -> None:
        """
        Acknowledge held submissions.

        Args:
            index: Position in `pending` to complete (None = all, in order)
            error: Fail the submission(s) with this exception instead
        """
        with self._lock:
            if index is None:
                batch, self.pending = self.pending, []
            else:
                batch = [self.pending.pop(index)]
        for future, shard_id, partition_key, data in batch:
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(self._append(shard_id, partition_key, data))

    def list_partitions(self) -> List[PartitionDescriptor]:
        return [PartitionDescriptor(sid, str(start)) for sid, start in self._shards]

    def put_explicit(self, data: bytes, partition_key: str, explicit_hash_key: str) -> str:
        shard_id = self._shard_for(int(explicit_hash_key))
        self._append(shard_id, partition_key, data)
        return shard_id

    def flush(self, timeout: Optional[float] = None) -> bool:
        if self.pending:
            self.complete_pending()
        return True

    def all_records(self) -> List[Tuple[str, str, bytes]]:
        """(shard_id, partition_key, data) for every stored record."""
        with self._lock:
            return [
                (sid, key, data) for sid, recs in self.records.items() for key, data in recs
            ]
