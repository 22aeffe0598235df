"""Abstract interfaces (Protocol classes) for the entity time machine.

Defines the contracts between the service layer and the adapter layer using
Python's typing.Protocol. Services depend on these protocols, never on
concrete adapter implementations, so tests can substitute fakes.

Protocols defined:
- IUserRepository
- IMutationRecorder
"""

from typing import Any, Protocol

from entity_time_machine.core.models import User


class IUserRepository(Protocol):
    """Repository contract for the user store."""

    def get(self, user_id: int) -> User | None:
        """Retrieve a user by ID.

        Args:
            user_id: The user identifier.

        Returns:
            A copy of the stored User, or None if no user has that ID.
        """
        ...

    def replace(self, user: User) -> User | None:
        """Store a user, replacing any existing record with the same ID wholesale.

        Args:
            user: The new user content.

        Returns:
            The previous User with that ID, or None if it did not exist.
        """
        ...


class IMutationRecorder(Protocol):
    """Contract for recording a committed mutation in the event log."""

    def record_mutation(
        self,
        initiator: str,
        subject: str,
        action: str,
        before: Any,
        after: Any,
    ) -> int:
        """Record a mutation and return the new event identifier."""
        ...
