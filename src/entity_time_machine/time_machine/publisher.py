"""Mutation recorder for the entity time machine.

Provides the collaborator services use to record entity mutations in the
append-only event log. Handles diffing, sanitization and event construction
so callers only supply business-level data and the before/after values.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from entity_time_machine.observability import get_logger
from entity_time_machine.time_machine.diff import diff
from entity_time_machine.time_machine.event_store import EventStore
from entity_time_machine.time_machine.sanitizer import sanitize

logger = get_logger(__name__)


class MutationRecorder:
    """Records entity mutations as forward/inverse patch pairs.

    Args:
        event_store: The append-only EventStore to write to.
        excluded_paths: JSON pointers stripped from every recorded patch.
        guard: Emit ``test`` guards before destructive operations.
    """

    def __init__(
        self,
        event_store: EventStore,
        excluded_paths: Iterable[str] = (),
        guard: bool = False,
    ) -> None:
        self._store = event_store
        self._excluded_paths = tuple(excluded_paths)
        self._guard = guard

    def record_mutation(
        self,
        initiator: str,
        subject: str,
        action: str,
        before: Any,
        after: Any,
    ) -> int:
        """Diff, sanitize and append a mutation; return the new event id.

        Args:
            initiator: Who triggered the mutation.
            subject: What the mutation was applied to.
            action: What kind of mutation it was.
            before: The value prior to the mutation (None if it did not exist).
            after: The value after the mutation.

        Returns:
            The identifier of the appended Event.

        Raises:
            EncodingError: If either value cannot be serialized to JSON.
        """
        pair = diff(before, after, guard=self._guard)
        forward = sanitize(pair.forward, self._excluded_paths)
        inverse = sanitize(pair.inverse, self._excluded_paths)

        event_id = self._store.append(
            initiator=initiator,
            subject=subject,
            action=action,
            forward_patch=forward,
            inverse_patch=inverse,
        )

        logger.info(
            "Recorded mutation",
            event_id=event_id,
            initiator=initiator,
            subject=subject,
            action=action,
            forward_ops=len(forward),
            stripped_ops=len(pair.forward) - len(forward),
        )
        return event_id
