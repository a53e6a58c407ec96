"""
In-flight event tracking.

Holds every event submitted to the destination whose completion has not been
observed yet. The oldest member bounds the watermark: every strictly older
event has completed, successfully or not.
"""

import heapq
import threading
from typing import List, Optional, Set

from .events import Event

# Rebuild the heap once stale entries outnumber live ones by this factor.
_COMPACT_FACTOR = 2
_COMPACT_MIN = 64


class InFlightTracker:
    """
    Thread-safe ordered set of events.

    The replay loop adds, completion callbacks from producer threads remove.
    A single lock guards a min-heap and a membership set; removal is lazy and
    stale heap entries are discarded when they reach the top or on compaction.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._heap: List[Event] = []
        self._members: Set[Event] = set()

    def add(self, event: Event) -> None:
        with self._lock:
            if event in self._members:
                return
            self._members.add(event)
            heapq.heappush(self._heap, event)

    def remove(self, event: Event) -> None:
        """Remove an event. Removing an absent event is a no-op."""
        with self._lock:
            if event not in self._members:
                return
            self._members.discard(event)
            self._prune()
            if len(self._heap) > max(_COMPACT_MIN, _COMPACT_FACTOR * len(self._members)):
                self._heap = list(self._members)
                heapq.heapify(self._heap)

    def peek_oldest(self) -> Optional[Event]:
        """Return the minimum member, or None if nothing is in flight."""
        with self._lock:
            self._prune()
            return self._heap[0] if self._heap else None

    def _prune(self) -> None:
        # Caller holds the lock.
        while self._heap and self._heap[0] not in self._members:
            heapq.heappop(self._heap)

    def __len__(self) -> int:
        with self._lock:
            return len(self._members)

    def __contains__(self, event: Event) -> bool:
        with self._lock:
            return event in self._members
