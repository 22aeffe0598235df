"""Entity time machine service entry point.

Initializes the FastAPI application with:
- In-memory user store (optionally seeded with the demo user)
- Append-only event log and mutation recorder
- Reconstructor sharing one state lock with the user service
"""

import threading
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from entity_time_machine.adapters.repositories import DEMO_USER, InMemoryUserRepository
from entity_time_machine.api.router import router as user_router
from entity_time_machine.core.services import UserService
from entity_time_machine.observability import configure_logging, get_logger
from entity_time_machine.settings import Settings
from entity_time_machine.time_machine.event_store import EventStore
from entity_time_machine.time_machine.publisher import MutationRecorder
from entity_time_machine.time_machine.reconstructor import EntityReconstructor
from entity_time_machine.time_machine.routes import router as time_machine_router

__version__ = "0.1.0"

logger = get_logger(__name__)


def build_user_service(settings: Settings) -> UserService:
    """Wire the store, event log, recorder and reconstructor together.

    A single RLock is shared by the service (mutations) and the
    reconstructor (snapshot capture).

    Args:
        settings: Service settings.

    Returns:
        Fully wired UserService instance.
    """
    lock = threading.RLock()
    user_repo = InMemoryUserRepository(seed=[DEMO_USER] if settings.seed_demo_user else None)
    event_store = EventStore()
    recorder = MutationRecorder(
        event_store,
        excluded_paths=settings.excluded_paths,
        guard=settings.guard_patches,
    )
    reconstructor = EntityReconstructor(
        user_repo, event_store, lock, excluded_paths=settings.excluded_paths
    )
    return UserService(
        user_repo=user_repo,
        event_store=event_store,
        recorder=recorder,
        reconstructor=reconstructor,
        lock=lock,
        default_initiator=settings.default_initiator,
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Service settings; read from the environment if omitted.

    Returns:
        The configured FastAPI app.
    """
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Manage application startup and shutdown lifecycle.

        Args:
            app: The FastAPI application instance.

        Yields:
            None
        """
        configure_logging(settings.log_level, settings.json_logs)
        app.state.settings = settings
        app.state.user_service = build_user_service(settings)
        logger.info(
            "Time machine startup complete",
            service=settings.service_name,
            excluded_paths=settings.excluded_paths,
            guard_patches=settings.guard_patches,
        )

        yield

        logger.info("Time machine shutdown complete", service=settings.service_name)

    app = FastAPI(title=settings.service_name, version=__version__, lifespan=lifespan)
    app.include_router(user_router)
    app.include_router(time_machine_router)
    return app


def run() -> None:
    """Run the service with uvicorn using environment settings."""
    settings = Settings()
    configure_logging(settings.log_level, settings.json_logs)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
