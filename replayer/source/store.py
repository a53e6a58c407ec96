"""
EventSource abstract interface.

Defines the pull contract the replay loop consumes.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Iterator, Optional

from ..core.errors import SourceError
from ..core.events import Event
from .records import parse_record


class EventSource(ABC):
    """
    Lazy, finite, non-restartable sequence of events.

    All implementations must guarantee:
    - Non-decreasing timestamps (violations raise SourceError)
    - Blocking pull: has_next() waits until the next record is available
    """

    def __init__(self) -> None:
        self._iter: Optional[Iterator[Event]] = None
        self._peeked: Optional[Event] = None
        self._exhausted = False
        self._last_ts: Optional[int] = None

    @abstractmethod
    def _events(self) -> Iterator[Event]:
        """
        Yield events in source order.

        Implementations read lazily; ordering is checked by the base class.
        """
        ...

    def has_next(self) -> bool:
        if self._peeked is not None:
            return True
        if self._exhausted:
            return False
        if self._iter is None:
            self._iter = self._events()
        try:
            event = next(self._iter)
        except StopIteration:
            self._exhausted = True
            return False
        if self._last_ts is not None and event.timestamp < self._last_ts:
            raise SourceError(
                f"events out of order at seq={event.seq}: "
                f"{event.timestamp} < {self._last_ts}"
            )
        self._last_ts = event.timestamp
        self._peeked = event
        return True

    def next(self) -> Event:
        """
        Return the next event.

        Raises:
            StopIteration: If the source is exhausted
        """
        if not self.has_next():
            raise StopIteration
        event = self._peeked
        self._peeked = None
        return event

    def __iter__(self) -> Iterator[Event]:
        while self.has_next():
            yield self.next()

    def close(self) -> None:
        """Stop reading and release the underlying file or object body."""
        if self._iter is not None and hasattr(self._iter, "close"):
            self._iter.close()
        self._exhausted = True
        self._peeked = None


class LineEventSource(EventSource):
    """EventSource over JSON lines; subclasses supply the raw lines."""

    def __init__(self, timestamp_field: str = "dropoff_datetime") -> None:
        super().__init__()
        self.timestamp_field = timestamp_field

    @abstractmethod
    def _lines(self) -> Iterator[bytes]:
        ...

    def _events(self) -> Iterator[Event]:
        seq = 0
        for line in self._lines():
            if not line.strip():
                continue
            yield parse_record(line, seq, self.timestamp_field)
            seq += 1


class IterableEventSource(EventSource):
    """EventSource over prepared events (tests, embedding)."""

    def __init__(self, events: Iterable[Event]) -> None:
        super().__init__()
        self._source = events

    def _events(self) -> Iterator[Event]:
        return iter(self._source)
