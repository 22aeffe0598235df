"""Append-only in-memory event log for the entity time machine.

Stores Event instances in identifier order. Identifiers are assigned at
append time as ``count + 1``, so they are 1-based, strictly increasing and
gap-free; timestamps never decrease across appends. No updates or deletes are
permitted.

The log lives only for the process lifetime. A durable deployment would back
it with a table or write-ahead log, but the in-memory implementation keeps
tests hermetic.
"""

from __future__ import annotations

import bisect
import threading
from datetime import datetime, timezone

from entity_time_machine.errors import InvalidFilterError, NoEventsError
from entity_time_machine.observability import get_logger
from entity_time_machine.time_machine.events import Event
from entity_time_machine.time_machine.patch import Patch

logger = get_logger(__name__)


def parse_timestamp(raw: str) -> datetime:
    """Parse a caller-supplied timestamp filter.

    Accepts ISO 8601 datetimes (``2024-05-01T10:00:00+02:00``, ``...Z``) and
    plain dates (``2024-05-01``, meaning midnight UTC). Naive values are
    treated as UTC.

    Args:
        raw: The string to parse.

    Returns:
        A timezone-aware datetime.

    Raises:
        InvalidFilterError: If the string is not a recognisable timestamp.
    """
    try:
        parsed = datetime.fromisoformat(raw.strip())
    except ValueError as exc:
        raise InvalidFilterError(message=f"Cannot parse timestamp filter {raw!r}: {exc}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class EventStore:
    """Append-only log of Event instances.

    Maintains events in identifier order alongside a parallel list of
    timestamps for bisect lookups. Appends take an internal lock so identifier
    assignment stays gap-free under concurrent writers; reads return copies so
    callers can never mutate the log.

    All methods are synchronous because in-memory access does not block.
    """

    def __init__(self) -> None:
        """Initialize an empty event log."""
        self._events: list[Event] = []
        # Parallel list of created_at values for bisect operations
        self._timestamps: list[datetime] = []
        self._lock = threading.Lock()

    def append(
        self,
        *,
        initiator: str,
        subject: str,
        action: str,
        forward_patch: Patch,
        inverse_patch: Patch,
    ) -> int:
        """Append a new event and return its identifier.

        The identifier is ``count + 1`` and the timestamp is the current UTC
        time, clamped so it never precedes the previous event's timestamp.

        Args:
            initiator: Who triggered the mutation.
            subject: What the mutation was applied to.
            action: What kind of mutation it was.
            forward_patch: Sanitized pre-state to post-state patch.
            inverse_patch: Sanitized post-state to pre-state patch.

        Returns:
            The identifier of the stored event.
        """
        with self._lock:
            created_at = datetime.now(timezone.utc)
            if self._timestamps and created_at < self._timestamps[-1]:
                created_at = self._timestamps[-1]

            event = Event(
                id=len(self._events) + 1,
                created_at=created_at,
                initiator=initiator,
                subject=subject,
                action=action,
                forward_patch=forward_patch,
                inverse_patch=inverse_patch,
            )
            self._events.append(event)
            self._timestamps.append(created_at)

        logger.debug("Appended event", event_id=event.id, action=action, subject=subject)
        return event.id

    def range_from(self, event_id: int) -> list[Event]:
        """Return every event with identifier >= ``event_id``, ascending.

        Args:
            event_id: The first identifier of the chain.

        Returns:
            ``count - event_id + 1`` events.

        Raises:
            NoEventsError: If the log is empty, ``event_id`` is below 1, or
                ``event_id`` exceeds the number of stored events.
        """
        with self._lock:
            count = len(self._events)
            if count == 0:
                raise NoEventsError(message="The event log is empty")
            if event_id < 1 or event_id > count:
                raise NoEventsError(
                    message=f"Event {event_id} does not exist (log holds events 1..{count})"
                )
            return self._events[event_id - 1 :]

    def filter_created_at_or_after(self, timestamp: datetime | str) -> list[Event]:
        """Return events whose created_at is not before ``timestamp``.

        Args:
            timestamp: A datetime (naive means UTC) or a string accepted by
                ``parse_timestamp``.

        Returns:
            Matching events in ascending identifier order.

        Raises:
            InvalidFilterError: If a string timestamp cannot be parsed.
        """
        if isinstance(timestamp, str):
            timestamp = parse_timestamp(timestamp)
        elif timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)

        with self._lock:
            low = bisect.bisect_left(self._timestamps, timestamp)
            return self._events[low:]

    def get(self, event_id: int) -> Event:
        """Return a single event by identifier.

        Raises:
            NoEventsError: If no event has the given identifier.
        """
        with self._lock:
            if event_id < 1 or event_id > len(self._events):
                raise NoEventsError(message=f"Event {event_id} does not exist")
            return self._events[event_id - 1]

    def count(self) -> int:
        """Return the number of stored events."""
        with self._lock:
            return len(self._events)

    def get_all_events(self) -> list[Event]:
        """Return all events in identifier order."""
        with self._lock:
            return list(self._events)
