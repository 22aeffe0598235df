"""Test fixtures for entity-time-machine.

Provides:
- settings: Settings with the demo user seeded and /bag excluded
- user_repo: An InMemoryUserRepository holding the demo user
- event_store: An empty EventStore
- state_lock: The shared state lock
- recorder: A MutationRecorder writing to event_store
- reconstructor: An EntityReconstructor over user_repo and event_store, with /bag excluded
- user_service: A UserService wired from the fixtures above
"""

import threading

import pytest

from entity_time_machine.adapters.repositories import DEMO_USER, InMemoryUserRepository
from entity_time_machine.core.services import UserService
from entity_time_machine.settings import Settings
from entity_time_machine.time_machine.event_store import EventStore
from entity_time_machine.time_machine.publisher import MutationRecorder
from entity_time_machine.time_machine.reconstructor import EntityReconstructor


@pytest.fixture()
def settings() -> Settings:
    """Return deterministic settings for tests.

    Returns:
        Settings with the demo user seeded, /bag excluded and guards off.
    """
    return Settings(
        seed_demo_user=True,
        excluded_paths=["/bag"],
        guard_patches=False,
        default_initiator="admin",
    )


@pytest.fixture()
def user_repo() -> InMemoryUserRepository:
    """Return a user store holding {id: 1, name: John, age: 16}."""
    return InMemoryUserRepository(seed=[DEMO_USER])


@pytest.fixture()
def event_store() -> EventStore:
    """Return an empty event log."""
    return EventStore()


@pytest.fixture()
def state_lock() -> threading.RLock:
    """Return the lock shared by the service and the reconstructor."""
    return threading.RLock()


@pytest.fixture()
def recorder(event_store: EventStore, settings: Settings) -> MutationRecorder:
    """Return a MutationRecorder that strips the configured excluded paths."""
    return MutationRecorder(event_store, excluded_paths=settings.excluded_paths)


@pytest.fixture()
def reconstructor(
    user_repo: InMemoryUserRepository,
    event_store: EventStore,
    state_lock: threading.RLock,
    settings: Settings,
) -> EntityReconstructor:
    """Return a reconstructor over the shared store and log."""
    return EntityReconstructor(
        user_repo, event_store, state_lock, excluded_paths=settings.excluded_paths
    )


@pytest.fixture()
def user_service(
    user_repo: InMemoryUserRepository,
    event_store: EventStore,
    recorder: MutationRecorder,
    reconstructor: EntityReconstructor,
    state_lock: threading.RLock,
) -> UserService:
    """Return a UserService wired from the shared fixtures."""
    return UserService(
        user_repo=user_repo,
        event_store=event_store,
        recorder=recorder,
        reconstructor=reconstructor,
        lock=state_lock,
        default_initiator="admin",
    )
