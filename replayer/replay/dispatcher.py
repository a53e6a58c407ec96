"""
Dispatcher: fire-and-forget event submission with in-flight tracking.
"""

import functools
import logging
import threading
from concurrent.futures import Future

from ..core.events import Event
from ..core.inflight import InFlightTracker
from ..logging_config import TRACE
from ..metrics import track_event_sent, track_send_failure
from ..stream.destination import PutResult, StreamDestination

logger = logging.getLogger(__name__)


class Dispatcher:
    """
    Submits events to the destination and keeps the InFlightTracker honest.

    An event is tracked before it is submitted, and untracked by a completion
    callback that runs exactly once, on success, failure or cancellation.
    Failed sends are logged and dropped; retrying is the producer's job.
    """

    def __init__(self, destination: StreamDestination, tracker: InFlightTracker) -> None:
        self.destination = destination
        self.tracker = tracker
        self._lock = threading.Lock()
        self.sent = 0
        self.failed = 0

    def send(self, event: Event) -> "Future[PutResult]":
        """
        Submit an event asynchronously.

        Raises:
            Whatever the destination raises if submission itself fails;
            the event is untracked again first.
        """
        self.tracker.add(event)
        try:
            future = self.destination.submit(event.partition_key, event.payload)
        except Exception:
            self.tracker.remove(event)
            raise
        self.sent += 1
        track_event_sent()
        logger.log(TRACE, "sent event ts=%s seq=%s", event.timestamp, event.seq)
        future.add_done_callback(functools.partial(self._on_complete, event))
        return future

    def _on_complete(self, event: Event, future: Future) -> None:
        try:
            if future.cancelled():
                error = "cancelled"
            else:
                exc = future.exception()
                error = str(exc) if exc is not None else None
            if error is not None:
                with self._lock:
                    self.failed += 1
                track_send_failure()
                logger.warning(
                    f"failed to send event {event.event_time().isoformat()} "
                    f"seq={event.seq}: {error}"
                )
        finally:
            self.tracker.remove(event)
