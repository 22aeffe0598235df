"""Change event schema for the entity time machine.

Every committed entity mutation is captured as an immutable Event and
appended to the event log. The event carries the mutation as a pair of
structural patches rather than full snapshots: the forward ("update") patch
turns the pre-mutation value into the post-mutation value and the inverse
("rollback") patch turns it back.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from entity_time_machine.time_machine.patch import Patch


class PatchDirection(str, Enum):
    """Which patch of each event a reconstruction replays.

    The values are the names the HTTP surface uses in its path.
    """

    FORWARD = "update"
    INVERSE = "rollback"


class Event(BaseModel):
    """Immutable record of a single entity mutation.

    Attributes:
        id: 1-based, gap-free identifier assigned by the event log.
        created_at: UTC time the event was appended; never decreases.
        initiator: Who triggered the mutation.
        subject: What the mutation was applied to.
        action: What kind of mutation it was.
        forward_patch: Patch from the pre-mutation value to the post-mutation value.
        inverse_patch: Patch from the post-mutation value back to the pre-mutation value.
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=1, description="1-based, gap-free event identifier")
    created_at: datetime = Field(..., description="UTC time the event was appended")
    initiator: str = Field(..., description="Who triggered the mutation")
    subject: str = Field(..., description="What the mutation was applied to")
    action: str = Field(..., description="What kind of mutation it was")
    forward_patch: Patch = Field(default=(), description="Pre-state to post-state patch")
    inverse_patch: Patch = Field(default=(), description="Post-state to pre-state patch")

    def patch_for(self, direction: PatchDirection) -> Patch:
        """Return the patch replayed for the given direction."""
        if direction is PatchDirection.FORWARD:
            return self.forward_patch
        return self.inverse_patch
