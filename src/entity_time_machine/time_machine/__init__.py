"""Entity time machine: historical state reconstruction from structural patches.

Every committed entity mutation is recorded as an immutable Event carrying a
forward and an inverse JSON Patch, enabling reconstruction of an entity's
state as of any recorded event.
"""

from __future__ import annotations

from entity_time_machine.time_machine.diff import PatchPair, diff
from entity_time_machine.time_machine.event_store import EventStore
from entity_time_machine.time_machine.events import Event, PatchDirection
from entity_time_machine.time_machine.patch import (
    OperationKind,
    PatchOperation,
    apply_patch,
    decode_patch,
    encode_patch,
)
from entity_time_machine.time_machine.publisher import MutationRecorder
from entity_time_machine.time_machine.reconstructor import EntityReconstructor
from entity_time_machine.time_machine.sanitizer import sanitize

__all__ = [
    "Event",
    "EventStore",
    "EntityReconstructor",
    "MutationRecorder",
    "OperationKind",
    "PatchDirection",
    "PatchOperation",
    "PatchPair",
    "apply_patch",
    "decode_patch",
    "diff",
    "encode_patch",
    "sanitize",
]
