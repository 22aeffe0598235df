"""Structural patches (RFC 6902 JSON Patch) and their application.

A patch is an ordered tuple of PatchOperation values. Operations are decoded
once at the boundary (``decode_patch``) and re-encoded to the standard wire
shape (``encode_patch``) so patches stay compatible with external JSON Patch
tooling.

Pointer handling and application are delegated to ``jsonpointer`` and
``jsonpatch``. ``apply_patch`` works on a deep copy of the document:
operations resolve against the current intermediate value, and if any
operation fails the call raises PatchApplyError and no partial result escapes.
"""

from __future__ import annotations

import copy
import json
from collections.abc import Iterable, Sequence
from enum import Enum
from types import MappingProxyType
from typing import Any

import jsonpatch
from jsonpointer import JsonPointer, JsonPointerException
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator

from entity_time_machine.errors import PatchApplyError, PatchDecodeError


class OperationKind(str, Enum):
    """The closed set of JSON Patch operation kinds."""

    ADD = "add"
    REMOVE = "remove"
    REPLACE = "replace"
    MOVE = "move"
    COPY = "copy"
    TEST = "test"


_VALUE_KINDS = frozenset({OperationKind.ADD, OperationKind.REPLACE, OperationKind.TEST})
_FROM_KINDS = frozenset({OperationKind.MOVE, OperationKind.COPY})


class PatchOperation(BaseModel):
    """A single typed patch operation.

    ``value`` may legitimately be ``None`` (JSON null) for add/replace/test,
    so presence is tracked through the pydantic fields-set rather than by
    comparing against None.

    Attributes:
        op: The operation kind.
        path: Target JSON pointer ("" is the whole document).
        value: Value for add/replace/test.
        from_: Source JSON pointer for move/copy (wire name ``from``).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    op: OperationKind
    path: str
    value: Any = None
    from_: str | None = Field(default=None, alias="from")

    @model_validator(mode="after")
    def check_shape(self) -> PatchOperation:
        parse_pointer(self.path)
        if self.op in _VALUE_KINDS and "value" not in self.model_fields_set:
            raise ValueError(f"'{self.op.value}' operation at '{self.path}' requires a value")
        if self.op in _FROM_KINDS:
            if self.from_ is None:
                raise ValueError(f"'{self.op.value}' operation at '{self.path}' requires 'from'")
            parse_pointer(self.from_)
        return self

    def to_wire(self) -> dict[str, Any]:
        """Return the RFC 6902 dict for this operation."""
        wire: dict[str, Any] = {"op": self.op.value, "path": self.path}
        if self.op in _VALUE_KINDS:
            wire["value"] = self.value
        if self.op in _FROM_KINDS:
            wire["from"] = self.from_
        return wire


Patch = tuple[PatchOperation, ...]

_patch_adapter: TypeAdapter[list[PatchOperation]] = TypeAdapter(list[PatchOperation])


# ---------------------------------------------------------------------------
# JSON pointers
# ---------------------------------------------------------------------------


def parse_pointer(pointer: str) -> tuple[str, ...]:
    """Split a JSON pointer into unescaped reference tokens.

    Args:
        pointer: "" for the whole document, otherwise "/"-prefixed.

    Returns:
        The reference tokens, with ``~1`` decoded to "/" and ``~0`` to "~".

    Raises:
        ValueError: If the pointer is not a valid RFC 6901 pointer.
    """
    try:
        return tuple(JsonPointer(pointer).parts)
    except JsonPointerException as exc:
        raise ValueError(f"Invalid JSON pointer {pointer!r}: {exc}") from exc


def format_pointer(tokens: Iterable[str | int]) -> str:
    """Join reference tokens into an escaped JSON pointer."""
    return JsonPointer.from_parts(list(tokens)).path


# ---------------------------------------------------------------------------
# Decode / encode
# ---------------------------------------------------------------------------


def decode_patch(raw: bytes | str | Sequence[Any]) -> Patch:
    """Decode a patch from JSON bytes/text or a list of operation dicts.

    Already-decoded PatchOperation items are accepted unchanged.

    Raises:
        PatchDecodeError: If the input is not a well-formed operation sequence.
    """
    try:
        if isinstance(raw, (bytes, bytearray, str)):
            operations = _patch_adapter.validate_json(raw)
        else:
            operations = _patch_adapter.validate_python(list(raw))
    except ValidationError as exc:
        raise PatchDecodeError(message=f"Malformed patch: {exc}") from exc
    except TypeError as exc:
        raise PatchDecodeError(message=f"Patch is not a sequence of operations: {exc}") from exc
    return tuple(operations)


def encode_patch(patch: Iterable[PatchOperation]) -> list[dict[str, Any]]:
    """Encode a patch to a list of RFC 6902 operation dicts."""
    return [operation.to_wire() for operation in patch]


def dump_patch(patch: Iterable[PatchOperation]) -> bytes:
    """Encode a patch to compact UTF-8 JSON bytes."""
    return json.dumps(encode_patch(patch), separators=(",", ":")).encode("utf-8")


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


def json_equal(left: Any, right: Any) -> bool:
    """Compare two JSON trees by JSON semantics.

    Unlike ``==`` this never treats booleans as numbers (``True != 1``),
    while ``1 == 1.0`` still holds.
    """
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return left == right
    if isinstance(left, dict) and isinstance(right, dict):
        return left.keys() == right.keys() and all(json_equal(left[k], right[k]) for k in left)
    if isinstance(left, list) and isinstance(right, list):
        return len(left) == len(right) and all(json_equal(a, b) for a, b in zip(left, right))
    return type(left) is type(right) and left == right


class _JsonTestOperation(jsonpatch.TestOperation):
    """``test`` compared with ``json_equal`` instead of Python ``==``."""

    def apply(self, obj: Any) -> Any:
        try:
            subobj, part = self.pointer.to_last(obj)
            actual = subobj if part is None else self.pointer.walk(subobj, part)
        except JsonPointerException as exc:
            raise jsonpatch.JsonPatchTestFailed(str(exc)) from exc

        expected = self.operation["value"]
        if not json_equal(actual, expected):
            raise jsonpatch.JsonPatchTestFailed(
                f"{actual!r} ({type(actual).__name__}) is not equal to tested value "
                f"{expected!r} ({type(expected).__name__})"
            )
        return obj


class _JsonPatch(jsonpatch.JsonPatch):
    operations = MappingProxyType({**jsonpatch.JsonPatch.operations, "test": _JsonTestOperation})


def apply_patch(document: Any, patch: bytes | str | Sequence[Any]) -> Any:
    """Apply a patch to a JSON tree and return the patched tree.

    The input document is never modified. Operations are applied in order,
    each resolving against the result of the previous one.

    Args:
        document: A JSON-compatible tree (dicts, lists, scalars).
        patch: Decoded operations, or anything ``decode_patch`` accepts.

    Returns:
        The patched JSON tree.

    Raises:
        PatchDecodeError: If the patch is not a well-formed operation sequence.
        PatchApplyError: If any operation does not resolve against the
            current intermediate value.
    """
    operations = decode_patch(patch)
    # jsonpatch inserts operation values by reference.
    wire = copy.deepcopy(encode_patch(operations))
    try:
        return _JsonPatch(wire).apply(document)
    except (jsonpatch.JsonPatchException, JsonPointerException) as exc:
        raise PatchApplyError(message=f"Patch does not apply: {exc}") from exc
    except TypeError as exc:
        # Raised by jsonpatch when a path indexes into a scalar or string.
        raise PatchApplyError(message=f"Patch does not apply: {exc}") from exc
