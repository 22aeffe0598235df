"""Domain models for the entity time machine.

Models:
- User: the mutable entity held in the user store and time-traveled by the
  reconstruction engine

Users are tree-shaped values: the reconstruction engine works on their JSON
serialization and validates the replayed tree back into a User.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class User(BaseModel):
    """A user record.

    Identity is the ``id`` key; content is replaced wholesale on update.

    Attributes:
        id: Stable numeric identifier, the key in the user store.
        name: Display name.
        age: Age in years.
        is_adult: Whether the user is an adult.
        bag: Free-form sensitive sub-object (phone numbers, documents, ...).
            Excluded from the event log by default and never replayed.
    """

    model_config = ConfigDict(extra="forbid")

    id: int = Field(..., description="Stable numeric identifier")
    name: str = Field(default="", description="Display name")
    age: int = Field(default=0, ge=0, description="Age in years")
    is_adult: bool = Field(default=False, description="Whether the user is an adult")
    bag: dict[str, Any] | None = Field(
        default=None,
        description="Sensitive sub-object that is never recorded or replayed",
    )

    def to_document(self) -> dict[str, Any]:
        """Serialize to the JSON tree patches are computed against.

        Null fields are omitted so an absent ``bag`` is not a patch target.
        """
        return self.model_dump(mode="json", exclude_none=True)
