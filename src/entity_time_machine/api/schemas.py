"""Pydantic request and response schemas for the entity time machine API.

All API inputs and outputs use Pydantic models, never raw dicts.

Resources:
- User: update and lookup
- Event: event log listing
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from entity_time_machine.core.models import User
from entity_time_machine.time_machine.events import Event
from entity_time_machine.time_machine.patch import encode_patch


# ---------------------------------------------------------------------------
# User schemas
# ---------------------------------------------------------------------------


class UserUpdateRequest(BaseModel):
    """Request body for replacing a user wholesale.

    The user ID comes from the path; an ``id`` in the body must match it.
    """

    id: int | None = Field(default=None, description="Optional; must equal the path user_id")
    name: str = Field(default="", description="Display name")
    age: int = Field(default=0, ge=0, description="Age in years")
    is_adult: bool = Field(default=False, description="Whether the user is an adult")
    bag: dict[str, Any] | None = Field(
        default=None,
        description="Sensitive sub-object; stored but never recorded in the event log",
    )

    def to_user(self, user_id: int) -> User:
        """Build the User this request stores under ``user_id``."""
        return User(
            id=user_id,
            name=self.name,
            age=self.age,
            is_adult=self.is_adult,
            bag=self.bag,
        )


class UserUpdateResponse(BaseModel):
    """Response for a committed user update."""

    status: str = Field(default="updated", description="Always 'updated'")
    event_id: int = Field(description="Identifier of the event recording this update")
    user: User = Field(description="The stored user")


# ---------------------------------------------------------------------------
# Event schemas
# ---------------------------------------------------------------------------


class EventResponse(BaseModel):
    """A single event log record with its patches in RFC 6902 wire form."""

    id: int = Field(description="1-based event identifier")
    created_at: datetime = Field(description="UTC time the event was appended")
    initiator: str = Field(description="Who triggered the mutation")
    subject: str = Field(description="What the mutation was applied to")
    action: str = Field(description="What kind of mutation it was")
    update: list[dict[str, Any]] = Field(description="Forward patch (pre-state to post-state)")
    rollback: list[dict[str, Any]] = Field(description="Inverse patch (post-state to pre-state)")

    @classmethod
    def from_event(cls, event: Event) -> "EventResponse":
        """Build the response record for a stored Event."""
        return cls(
            id=event.id,
            created_at=event.created_at,
            initiator=event.initiator,
            subject=event.subject,
            action=event.action,
            update=encode_patch(event.forward_patch),
            rollback=encode_patch(event.inverse_patch),
        )


class EventListResponse(BaseModel):
    """Paginated event log listing."""

    entries: list[EventResponse] = Field(description="Events on this page, ascending by id")
    total: int = Field(description="Total number of events matching the filter")
    page: int = Field(description="Page number (1-indexed)")
    page_size: int = Field(description="Items per page")
