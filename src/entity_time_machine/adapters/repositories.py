"""In-memory repositories for the entity time machine.

Repositories:
- InMemoryUserRepository: keyed user store with wholesale replace

The store lives only for the process lifetime. It hands out copies so that
callers can never mutate stored users behind the event log's back.
"""

from entity_time_machine.core.models import User
from entity_time_machine.observability import get_logger

logger = get_logger(__name__)

DEMO_USER = User(id=1, name="John", age=16)


class InMemoryUserRepository:
    """Dict-backed user store keyed by user ID.

    Not synchronized on its own: the service layer serializes every
    mutation behind the shared state lock.

    Args:
        seed: Users to pre-populate the store with.
    """

    def __init__(self, seed: list[User] | None = None) -> None:
        self._users: dict[int, User] = {}
        for user in seed or []:
            self._users[user.id] = user.model_copy(deep=True)

    def get(self, user_id: int) -> User | None:
        """Return a copy of the user with the given ID, or None."""
        user = self._users.get(user_id)
        return user.model_copy(deep=True) if user is not None else None

    def replace(self, user: User) -> User | None:
        """Replace the stored user wholesale and return the previous value."""
        previous = self._users.get(user.id)
        self._users[user.id] = user.model_copy(deep=True)
        logger.debug("Replaced user", user_id=user.id, created=previous is None)
        return previous

    def count(self) -> int:
        """Return the number of stored users."""
        return len(self._users)
