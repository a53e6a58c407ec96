"""
Asynchronous, batching Kinesis record producer.

Records are queued by the caller and written by a background thread with
put_records. Each record gets its own future; completion callbacks attached
to those futures run on the producer thread.

Batches are bounded by the put_records limits (500 records, 5 MiB) and by
record_max_buffered_time_ms, whichever is reached first.
"""

import logging
import queue
import threading
import time
from collections import deque
from concurrent.futures import Future
from typing import Deque, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from ..core.errors import DestinationError, RecordFailedError
from .aws import RETRYABLE_ERROR_CODES, error_code
from .destination import PutResult

logger = logging.getLogger(__name__)

MAX_RECORDS_PER_REQUEST = 500
MAX_BYTES_PER_REQUEST = 5 * 1024 * 1024
MAX_BYTES_PER_RECORD = 1024 * 1024
MAX_BACKOFF_MS = 2_000

_POLL_SECONDS = 0.05


class _Record:
    __slots__ = ("partition_key", "data", "explicit_hash_key", "future", "attempts")

    def __init__(self, partition_key: str, data: bytes, explicit_hash_key: Optional[str]) -> None:
        self.partition_key = partition_key
        self.data = data
        self.explicit_hash_key = explicit_hash_key
        self.future: "Future[PutResult]" = Future()
        self.attempts = 0

    @property
    def size(self) -> int:
        return len(self.data) + len(self.partition_key.encode("utf-8"))

    def entry(self) -> dict:
        e = {"Data": self.data, "PartitionKey": self.partition_key}
        if self.explicit_hash_key is not None:
            e["ExplicitHashKey"] = self.explicit_hash_key
        return e


class KinesisProducer:
    """
    Fire-and-forget record producer.

    Guarantees:
    - add_user_record() never blocks on the network
    - every returned future completes exactly once
    - flush_sync() returns only after all completion callbacks have run
    """

    def __init__(
        self,
        client,
        stream_name: str,
        record_max_buffered_time_ms: int = 3_000,
        max_retries: int = 3,
        retry_backoff_ms: int = 100,
    ) -> None:
        """
        Args:
            client: boto3 Kinesis client
            stream_name: Destination stream
            record_max_buffered_time_ms: Max time a record waits for its batch to fill
            max_retries: Resends per record on throttling or transient service errors
            retry_backoff_ms: Base backoff, doubled per attempt
        """
        self.client = client
        self.stream_name = stream_name
        self.record_max_buffered_time_ms = record_max_buffered_time_ms
        self.max_retries = max_retries
        self.retry_backoff_ms = retry_backoff_ms

        self._queue: "queue.Queue[_Record]" = queue.Queue()
        # Owned by the producer thread: carry-overs and resends go first.
        self._backlog: Deque[_Record] = deque()
        self._outstanding = 0
        self._cond = threading.Condition()
        self._flush_requested = threading.Event()
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._run, name="KinesisProducer", daemon=True)
        self._thread.start()

    def add_user_record(
        self, partition_key: str, data: bytes, explicit_hash_key: Optional[str] = None
    ) -> "Future[PutResult]":
        if self._stopped.is_set():
            raise DestinationError("producer has been destroyed")
        rec = _Record(partition_key, data, explicit_hash_key)
        # Running futures cannot be cancelled by callers.
        rec.future.set_running_or_notify_cancel()
        if rec.size > MAX_BYTES_PER_RECORD:
            # put_records rejects the whole call for one oversized entry.
            rec.future.set_exception(
                RecordFailedError(
                    "ValidationException",
                    f"record of {rec.size} bytes exceeds {MAX_BYTES_PER_RECORD}",
                )
            )
            return rec.future
        with self._cond:
            self._outstanding += 1
        self._queue.put(rec)
        return rec.future

    @property
    def outstanding(self) -> int:
        with self._cond:
            return self._outstanding

    def flush_sync(self, timeout: Optional[float] = None) -> bool:
        """
        Send everything buffered and wait for all acknowledgements.

        Returns:
            True if nothing is outstanding, False on timeout
        """
        self._flush_requested.set()
        try:
            with self._cond:
                return self._cond.wait_for(lambda: self._outstanding == 0, timeout=timeout)
        finally:
            self._flush_requested.clear()

    def destroy(self, timeout: Optional[float] = None) -> None:
        """Flush, then stop the background thread."""
        self.flush_sync(timeout)
        self._stopped.set()
        self._thread.join(timeout=5)

    def _urgent(self) -> bool:
        return self._flush_requested.is_set() or self._stopped.is_set()

    def _next_record(self, timeout: float) -> Optional[_Record]:
        if self._backlog:
            return self._backlog.popleft()
        try:
            if timeout <= 0:
                return self._queue.get_nowait()
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def _collect(self) -> List[_Record]:
        first = self._next_record(_POLL_SECONDS)
        if first is None:
            return []
        batch = [first]
        size = first.size
        deadline = time.monotonic() + self.record_max_buffered_time_ms / 1000.0

        while len(batch) < MAX_RECORDS_PER_REQUEST:
            if self._urgent():
                timeout = 0.0
            else:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                timeout = min(remaining, _POLL_SECONDS)
            rec = self._next_record(timeout)
            if rec is None:
                if timeout == 0.0:
                    break
                continue
            if size + rec.size > MAX_BYTES_PER_REQUEST:
                self._backlog.appendleft(rec)
                break
            batch.append(rec)
            size += rec.size
        return batch

    def _run(self) -> None:
        while True:
            batch = self._collect()
            if not batch:
                if self._stopped.is_set():
                    return
                continue
            try:
                self._send(batch)
            except Exception as e:
                # Keep the thread alive; the failure surfaces through the futures.
                logger.exception("Unexpected producer failure")
                for rec in batch:
                    if not rec.future.done():
                        self._complete(rec, exc=e)

    def _send(self, batch: List[_Record]) -> None:
        try:
            response = self.client.put_records(
                StreamName=self.stream_name,
                Records=[rec.entry() for rec in batch],
            )
        except ClientError as e:
            self._retry_or_fail(batch, error_code(e), str(e))
            return
        except BotoCoreError as e:
            self._retry_or_fail(batch, "InternalFailure", str(e))
            return

        retry = []
        for rec, res in zip(batch, response.get("Records", [])):
            code = res.get("ErrorCode")
            if code:
                retry.append((rec, code, res.get("ErrorMessage", "")))
            else:
                self._complete(rec, result=PutResult(res["ShardId"], res["SequenceNumber"]))
        for code in {code for _, code, _ in retry}:
            self._retry_or_fail(
                [rec for rec, c, _ in retry if c == code],
                code,
                next(msg for _, c, msg in retry if c == code),
            )

    def _retry_or_fail(self, records: List[_Record], code: str, message: str) -> None:
        resend = []
        for rec in records:
            rec.attempts += 1
            if code in RETRYABLE_ERROR_CODES and rec.attempts <= self.max_retries:
                resend.append(rec)
            else:
                self._complete(rec, exc=RecordFailedError(code, message))
        if not resend:
            return
        attempt = max(rec.attempts for rec in resend)
        backoff_ms = min(self.retry_backoff_ms * (2 ** (attempt - 1)), MAX_BACKOFF_MS)
        logger.debug(f"Resending {len(resend)} records after {code} (attempt {attempt})")
        time.sleep(backoff_ms / 1000.0)
        self._backlog.extendleft(reversed(resend))

    def _complete(
        self, rec: _Record, result: Optional[PutResult] = None, exc: Optional[BaseException] = None
    ) -> None:
        if rec.future.done():
            return
        if exc is not None:
            rec.future.set_exception(exc)
        else:
            rec.future.set_result(result)
        with self._cond:
            self._outstanding -= 1
            self._cond.notify_all()
