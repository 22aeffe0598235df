"""Entity state reconstructor for the entity time machine.

Given the append-only event log, reconstructs an entity's state at a
historical point by folding a chain of structural patches over its
serialized current value.

- ``rollback`` (INVERSE): start from the current entity and apply each
  event's inverse patch from the most recent event back to ``event_id``.
  The result is the entity as it was just before ``event_id``.
- ``update`` (FORWARD): start from the snapshot as of ``event_id`` (the
  state just before it, reached by the inverse fold) and apply each event's
  forward patch from ``event_id`` to the most recent event. Forward
  reconstruction therefore starts from history, not from "now".

Excluded fields are never replayed: stored patches are sanitized again before
they are applied, and the excluded subtrees of the current entity are put back
on the result, so an ancestor-level ``replace`` cannot drop them.

The base entity and the chain are captured together under the shared state
lock, so a concurrent mutation can never produce a chain that disagrees with
its base. The fold itself runs outside the lock and is stateless per call.
"""

from __future__ import annotations

import copy
import threading
from collections.abc import Iterable
from typing import Any

from jsonpointer import JsonPointer, JsonPointerException
from pydantic import ValidationError

from entity_time_machine.core.interfaces import IUserRepository
from entity_time_machine.core.models import User
from entity_time_machine.errors import DecodeError, EntityNotFoundError
from entity_time_machine.observability import get_logger
from entity_time_machine.time_machine.diff import to_document
from entity_time_machine.time_machine.event_store import EventStore
from entity_time_machine.time_machine.events import Event, PatchDirection
from entity_time_machine.time_machine.patch import apply_patch
from entity_time_machine.time_machine.sanitizer import sanitize

logger = get_logger(__name__)

_ABSENT = object()


def fold_events(
    document: Any,
    events: Iterable[Event],
    direction: PatchDirection,
    excluded_paths: Iterable[str] = (),
) -> Any:
    """Apply each event's patch for ``direction`` to ``document``, in iteration order.

    Each patch is sanitized against ``excluded_paths`` before it is applied.

    Raises:
        PatchApplyError: If any patch does not resolve; nothing partial is returned.
    """
    excluded = tuple(excluded_paths)
    for event in events:
        document = apply_patch(document, sanitize(event.patch_for(direction), excluded))
    return document


def restore_excluded(base: Any, document: Any, excluded_paths: Iterable[str]) -> Any:
    """Carry the excluded subtrees of ``base`` over to ``document``.

    A subtree present in ``base`` is copied in; one absent from ``base`` is
    removed. Paths whose parent is not an object in ``document`` are left
    alone.

    Returns:
        ``document``, updated in place.
    """
    for path in excluded_paths:
        pointer = JsonPointer(path)
        try:
            parent, part = pointer.to_last(document)
        except JsonPointerException:
            continue
        if part is None or not isinstance(parent, dict):
            continue
        kept = pointer.resolve(base, _ABSENT)
        if kept is _ABSENT:
            parent.pop(part, None)
        else:
            parent[part] = copy.deepcopy(kept)
    return document


class EntityReconstructor:
    """Reconstructs an entity's state as of a historical event.

    Args:
        repository: Source of current entities.
        event_store: The append-only event log.
        lock: The lock that serializes mutations of the repository and log.
        excluded_paths: JSON pointers that replay must never change.
    """

    def __init__(
        self,
        repository: IUserRepository,
        event_store: EventStore,
        lock: threading.RLock | None = None,
        excluded_paths: Iterable[str] = (),
    ) -> None:
        self._repository = repository
        self._store = event_store
        self._lock = lock if lock is not None else threading.RLock()
        self._excluded_paths = tuple(excluded_paths)

    def reconstruct(self, entity_id: int, event_id: int, direction: PatchDirection) -> User:
        """Reconstruct the entity by replaying the chain starting at ``event_id``.

        Args:
            entity_id: Identifier of the current entity.
            event_id: Earliest event included in the chain.
            direction: Which patch of each event to replay.

        Returns:
            The reconstructed User.

        Raises:
            EntityNotFoundError: If no entity exists with ``entity_id``.
            NoEventsError: If ``event_id`` is out of range or the log is empty.
            PatchApplyError: If a patch in the chain does not resolve.
            DecodeError: If the replayed value is not a valid User.
        """
        with self._lock:
            current = self._repository.get(entity_id)
            if current is None:
                raise EntityNotFoundError(message=f"User {entity_id} does not exist")
            chain = self._store.range_from(event_id)

        base = to_document(current)

        # Rollback walks the chain newest to oldest from "now".
        document = fold_events(base, reversed(chain), PatchDirection.INVERSE, self._excluded_paths)
        if direction is PatchDirection.FORWARD:
            # Update replays oldest to newest from the snapshot as of event_id.
            document = fold_events(document, chain, PatchDirection.FORWARD, self._excluded_paths)
        document = restore_excluded(base, document, self._excluded_paths)

        try:
            reconstructed = User.model_validate(document)
        except ValidationError as exc:
            raise DecodeError(
                message=f"Reconstructed value for user {entity_id} at event {event_id} "
                f"is not a valid user: {exc}"
            ) from exc

        logger.info(
            "Reconstructed entity",
            entity_id=entity_id,
            event_id=event_id,
            direction=direction.value,
            chain_length=len(chain),
        )
        return reconstructed
