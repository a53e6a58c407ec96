"""
StreamDestination abstract interface.

Defines the contract for partitioned, append-only destination streams.
"""

from abc import ABC, abstractmethod
from concurrent.futures import Future
from dataclasses import dataclass
from typing import List, Optional

from ..core.events import PartitionDescriptor


@dataclass(frozen=True)
class PutResult:
    """
    Acknowledgement of a single record.

    Fields:
        shard_id: Shard the record landed in
        sequence_number: Position assigned by the stream
    """
    shard_id: str
    sequence_number: str


class StreamDestination(ABC):
    """
    Abstract destination stream.

    All implementations must guarantee:
    - submit() never blocks on acknowledgement
    - every submitted future completes exactly once (result or exception)
    - flush() returns only when nothing is outstanding
    """

    @abstractmethod
    def submit(self, partition_key: str, data: bytes) -> "Future[PutResult]":
        """
        Submit a record asynchronously.

        Returns:
            Future resolved with PutResult, or failed with RecordFailedError
        """
        ...

    @abstractmethod
    def list_partitions(self) -> List[PartitionDescriptor]:
        """
        Enumerate every shard of the stream, following pagination tokens.

        Raises:
            ThrottledError: If the listing is rate limited
            DestinationError: If the stream is unreachable or misconfigured
        """
        ...

    @abstractmethod
    def put_explicit(self, data: bytes, partition_key: str, explicit_hash_key: str) -> str:
        """
        Synchronously write one record to the shard owning explicit_hash_key.

        Returns:
            Shard id the record landed in

        Raises:
            ThrottledError: If the write is rate limited
            DestinationError: If the write fails otherwise
        """
        ...

    @abstractmethod
    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Block until all outstanding submissions are acknowledged.

        Returns:
            True if drained, False if the timeout expired first
        """
        ...

    def close(self) -> None:
        """Flush and release resources. Default only flushes."""
        self.flush()

    def __enter__(self) -> "StreamDestination":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
