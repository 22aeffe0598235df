"""Error taxonomy for the entity time machine.

Every core operation is total over the errors declared here. Nothing is
retried or recovered inside the core; errors surface to the caller verbatim
and the HTTP layer decides status codes.
"""

from __future__ import annotations


class TimeMachineError(Exception):
    """Base class for all errors raised by the time machine.

    Args:
        message: Human-readable description of the failure.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class EncodingError(TimeMachineError):
    """A value cannot be serialized to the JSON tree representation."""


class PatchDecodeError(TimeMachineError):
    """Patch input is not a well-formed sequence of patch operations."""


class PatchApplyError(TimeMachineError):
    """A patch operation does not resolve against the current value."""


class NotFoundError(TimeMachineError):
    """Common base for lookups that found nothing."""


class EntityNotFoundError(NotFoundError):
    """No entity exists with the requested identifier."""


class NoEventsError(NotFoundError):
    """The requested event identifier is out of range, or the log is empty."""


class InvalidFilterError(TimeMachineError):
    """A caller-supplied filter value (e.g. a timestamp) cannot be parsed."""


class DecodeError(TimeMachineError):
    """A reconstructed value does not conform to the entity schema."""
