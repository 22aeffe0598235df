"""Core business logic for the entity time machine.

One service class:
- UserService: user lookup, mutation with event recording, historical
  reconstruction and event listing

The service accepts injected repositories and collaborators through its
constructor and contains no framework code. Every mutation (replace + diff +
sanitize + append) runs as one critical section under the shared state lock,
the same lock the reconstructor takes to snapshot the entity and the chain.
"""

import threading
from datetime import datetime

from entity_time_machine.core.interfaces import IMutationRecorder, IUserRepository
from entity_time_machine.core.models import User
from entity_time_machine.errors import EntityNotFoundError
from entity_time_machine.observability import get_logger
from entity_time_machine.time_machine.event_store import EventStore
from entity_time_machine.time_machine.events import Event, PatchDirection
from entity_time_machine.time_machine.reconstructor import EntityReconstructor

logger = get_logger(__name__)

USER_UPDATE_ACTION = "user_update"


class UserService:
    """User lifecycle on top of the store and the event log.

    Args:
        user_repo: The user store.
        event_store: The append-only event log.
        recorder: Records each committed mutation in the event log.
        reconstructor: Replays the event log onto current users.
        lock: Shared state lock; must be the one the reconstructor holds.
        default_initiator: Initiator recorded when callers do not supply one.
    """

    def __init__(
        self,
        user_repo: IUserRepository,
        event_store: EventStore,
        recorder: IMutationRecorder,
        reconstructor: EntityReconstructor,
        lock: threading.RLock,
        default_initiator: str = "admin",
    ) -> None:
        self._users = user_repo
        self._events = event_store
        self._recorder = recorder
        self._reconstructor = reconstructor
        self._lock = lock
        self._default_initiator = default_initiator

    def get_user(self, user_id: int) -> User:
        """Return the current state of a user.

        Raises:
            EntityNotFoundError: If no user exists with the given ID.
        """
        user = self._users.get(user_id)
        if user is None:
            raise EntityNotFoundError(message=f"User {user_id} does not exist")
        return user

    def update_user(self, user: User, initiator: str | None = None) -> tuple[User, int]:
        """Replace a user wholesale and record the change.

        Replacing an unknown ID creates the user; the recorded event then
        diffs from ``null``.

        Args:
            user: The new user content.
            initiator: Who requested the change; defaults to the configured initiator.

        Returns:
            Tuple of (stored user, event id).

        Raises:
            EncodingError: If either user state cannot be serialized.
        """
        effective_initiator = initiator or self._default_initiator

        with self._lock:
            before = self._users.get(user.id)
            # Record first: if diffing fails the store is left untouched.
            event_id = self._recorder.record_mutation(
                initiator=effective_initiator,
                subject=f"user:{user.id}",
                action=USER_UPDATE_ACTION,
                before=before,
                after=user,
            )
            self._users.replace(user)

        logger.info("Updated user", user_id=user.id, event_id=event_id, initiator=effective_initiator)
        return user, event_id

    def reconstruct_user(self, user_id: int, event_id: int, direction: PatchDirection) -> User:
        """Reconstruct a user as of a historical event.

        Raises:
            EntityNotFoundError: If no user exists with the given ID.
            NoEventsError: If ``event_id`` is out of range.
            PatchApplyError: If the chain cannot be replayed.
            DecodeError: If the replayed value is not a valid user.
        """
        return self._reconstructor.reconstruct(user_id, event_id, direction)

    def list_events(self, created_from: datetime | str | None = None) -> list[Event]:
        """List events, optionally only those created at or after ``created_from``.

        Raises:
            InvalidFilterError: If ``created_from`` is a string that cannot be parsed.
        """
        if created_from is None:
            return self._events.get_all_events()
        return self._events.filter_created_at_or_after(created_from)
