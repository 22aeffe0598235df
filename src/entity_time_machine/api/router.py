"""API router for entity-time-machine user endpoints.

Routes are thin: all business logic lives in UserService. Core errors are
translated to HTTP status codes here.

Endpoints:
- PUT  /user/update/{user_id}: replace a user and record the change
- GET  /user/{user_id}       : current state of a user
- GET  /health               : liveness probe
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status

from entity_time_machine.api.schemas import UserUpdateRequest, UserUpdateResponse
from entity_time_machine.core.models import User
from entity_time_machine.core.services import UserService
from entity_time_machine.errors import (
    DecodeError,
    EncodingError,
    InvalidFilterError,
    NotFoundError,
    PatchApplyError,
    PatchDecodeError,
    TimeMachineError,
)
from entity_time_machine.observability import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["users"])


# ---------------------------------------------------------------------------
# Dependencies and error translation
# ---------------------------------------------------------------------------


def get_user_service(request: Request) -> UserService:
    """Return the UserService wired at application startup.

    Args:
        request: The incoming request (gives access to app.state).

    Returns:
        The shared UserService instance.
    """
    return request.app.state.user_service


def to_http_exception(exc: TimeMachineError) -> HTTPException:
    """Map a core error to the HTTP status the API reports for it.

    - NotFoundError (entity or event) → 404
    - InvalidFilterError, EncodingError → 400
    - PatchApplyError, PatchDecodeError, DecodeError → 409: the recorded
      history cannot be replayed onto the current value
    """
    if isinstance(exc, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, (InvalidFilterError, EncodingError)):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, (PatchApplyError, PatchDecodeError, DecodeError)):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    logger.warning("Request failed", error=type(exc).__name__, detail=exc.message, status=code)
    return HTTPException(status_code=code, detail=exc.message)


# ---------------------------------------------------------------------------
# User endpoints
# ---------------------------------------------------------------------------


@router.put("/user/update/{user_id}", response_model=UserUpdateResponse)
async def update_user(
    user_id: int,
    body: UserUpdateRequest,
    service: Annotated[UserService, Depends(get_user_service)],
) -> UserUpdateResponse:
    """Replace a user wholesale and record the change in the event log.

    Args:
        user_id: The user to replace (created if it does not exist).
        body: The new user content.
        service: Injected UserService.

    Returns:
        UserUpdateResponse with the event id of the recorded change.

    Raises:
        HTTPException 400: If the body id disagrees with the path, or the
            user cannot be serialized.
    """
    if body.id is not None and body.id != user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Body id {body.id} does not match path user_id {user_id}",
        )
    try:
        user, event_id = service.update_user(body.to_user(user_id))
    except TimeMachineError as exc:
        raise to_http_exception(exc) from exc
    return UserUpdateResponse(event_id=event_id, user=user)


@router.get("/user/{user_id}", response_model=User)
async def get_user(
    user_id: int,
    service: Annotated[UserService, Depends(get_user_service)],
) -> User:
    """Return the current state of a user.

    Raises:
        HTTPException 404: If the user does not exist.
    """
    try:
        return service.get_user(user_id)
    except TimeMachineError as exc:
        raise to_http_exception(exc) from exc


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok"}
