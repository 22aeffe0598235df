"""FastAPI routes for historical reconstruction and the event log.

Routes:
    GET /patch/{patch_type}/{event_id}/{entity_id}: reconstruct a user by
        replaying the chain of events starting at event_id
    GET /events                                   : list recorded events
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from entity_time_machine.api.router import get_user_service, to_http_exception
from entity_time_machine.api.schemas import EventListResponse, EventResponse
from entity_time_machine.core.models import User
from entity_time_machine.core.services import UserService
from entity_time_machine.errors import TimeMachineError
from entity_time_machine.time_machine.events import PatchDirection

router = APIRouter(tags=["Time Machine"])


@router.get(
    "/patch/{patch_type}/{event_id}/{entity_id}",
    response_model=User,
    summary="Reconstruct a user by replaying the event log",
)
async def get_patched_by_event_id(
    patch_type: PatchDirection,
    event_id: int,
    entity_id: int,
    service: Annotated[UserService, Depends(get_user_service)],
) -> User:
    """Reconstruct a user as of a historical event.

    ``rollback`` undoes every event from the latest back to ``event_id``,
    returning the user as it was just before ``event_id``. ``update`` rewinds
    to that same snapshot and replays forward patches from ``event_id`` on.

    Args:
        patch_type: ``rollback`` or ``update``.
        event_id: The earliest event in the replayed chain.
        entity_id: The user to reconstruct.
        service: Injected UserService.

    Returns:
        The reconstructed user.

    Raises:
        HTTPException 404: If the user or the event does not exist.
        HTTPException 409: If the recorded history cannot be replayed.
    """
    try:
        return service.reconstruct_user(entity_id, event_id, patch_type)
    except TimeMachineError as exc:
        raise to_http_exception(exc) from exc


@router.get(
    "/events",
    response_model=EventListResponse,
    summary="List recorded events",
)
async def list_events(
    service: Annotated[UserService, Depends(get_user_service)],
    created_from: Annotated[
        str | None,
        Query(description="Only events created at or after this ISO 8601 date or datetime"),
    ] = None,
    page: Annotated[int, Query(ge=1, description="Page number")] = 1,
    page_size: Annotated[int, Query(ge=1, le=200, description="Items per page")] = 50,
) -> EventListResponse:
    """List events in ascending id order, optionally filtered by creation time.

    Raises:
        HTTPException 400: If created_from cannot be parsed.
    """
    try:
        events = service.list_events(created_from)
    except TimeMachineError as exc:
        raise to_http_exception(exc) from exc

    offset = (page - 1) * page_size
    return EventListResponse(
        entries=[EventResponse.from_event(event) for event in events[offset : offset + page_size]],
        total=len(events),
        page=page,
        page_size=page_size,
    )
