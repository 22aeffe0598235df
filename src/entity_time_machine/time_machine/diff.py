"""Structural diff between two values, producing invertible patch pairs.

Both inputs are serialized to JSON trees first, then compared recursively:

- objects: removed keys become ``remove``, new keys ``add``, shared keys are
  compared recursively (keys visited in sorted order, so output is stable)
- arrays: the common prefix and suffix are skipped, the overlapping middle is
  compared element by element, and surplus elements are removed or added
- anything else that differs becomes a ``replace`` (a type change at the
  root is a ``replace`` of path "")

The inverse patch is the same comparison run target-to-source, so the
round-trip law holds by construction:

    apply_patch(a, diff(a, b).forward) == b
    apply_patch(b, diff(a, b).inverse) == a
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from entity_time_machine.errors import EncodingError
from entity_time_machine.time_machine.patch import (
    OperationKind,
    Patch,
    PatchOperation,
    format_pointer,
    json_equal,
)


@dataclass(frozen=True)
class PatchPair:
    """Forward and inverse patches for a single mutation.

    Attributes:
        forward: Transforms the pre-mutation value into the post-mutation value.
        inverse: Transforms the post-mutation value back into the pre-mutation value.
    """

    forward: Patch
    inverse: Patch


def to_document(value: Any) -> Any:
    """Serialize a value to a detached JSON tree.

    Pydantic models are dumped in JSON mode (models that define
    ``to_document`` use it); everything else must be JSON-serializable.

    Raises:
        EncodingError: If the value cannot be represented as JSON.
    """
    if isinstance(value, BaseModel):
        value = value.to_document() if hasattr(value, "to_document") else value.model_dump(mode="json")
    try:
        return json.loads(json.dumps(value, allow_nan=False))
    except (TypeError, ValueError) as exc:
        raise EncodingError(message=f"Value cannot be serialized to JSON: {exc}") from exc


def _replace(source: Any, target: Any, path: list[str | int], guard: bool, ops: list[PatchOperation]) -> None:
    pointer = format_pointer(path)
    if guard:
        ops.append(PatchOperation(op=OperationKind.TEST, path=pointer, value=source))
    ops.append(PatchOperation(op=OperationKind.REPLACE, path=pointer, value=target))


def _compare_objects(
    source: dict[str, Any],
    target: dict[str, Any],
    path: list[str | int],
    guard: bool,
    ops: list[PatchOperation],
) -> None:
    for key in sorted(source.keys() - target.keys()):
        pointer = format_pointer([*path, key])
        if guard:
            ops.append(PatchOperation(op=OperationKind.TEST, path=pointer, value=source[key]))
        ops.append(PatchOperation(op=OperationKind.REMOVE, path=pointer))

    for key in sorted(target.keys() - source.keys()):
        ops.append(
            PatchOperation(op=OperationKind.ADD, path=format_pointer([*path, key]), value=target[key])
        )

    for key in sorted(source.keys() & target.keys()):
        _compare(source[key], target[key], [*path, key], guard, ops)


def _compare_arrays(
    source: list[Any],
    target: list[Any],
    path: list[str | int],
    guard: bool,
    ops: list[PatchOperation],
) -> None:
    shortest = min(len(source), len(target))

    prefix = 0
    while prefix < shortest and json_equal(source[prefix], target[prefix]):
        prefix += 1

    suffix = 0
    while suffix < shortest - prefix and json_equal(source[-1 - suffix], target[-1 - suffix]):
        suffix += 1

    source_middle = len(source) - prefix - suffix
    target_middle = len(target) - prefix - suffix
    overlap = min(source_middle, target_middle)

    for offset in range(overlap):
        index = prefix + offset
        _compare(source[index], target[index], [*path, index], guard, ops)

    # Surplus source elements: removing at the same index repeatedly shifts
    # the next one into place.
    start = prefix + overlap
    for offset in range(source_middle - overlap):
        pointer = format_pointer([*path, start])
        if guard:
            ops.append(PatchOperation(op=OperationKind.TEST, path=pointer, value=source[start + offset]))
        ops.append(PatchOperation(op=OperationKind.REMOVE, path=pointer))

    for offset in range(target_middle - overlap):
        index = start + offset
        ops.append(
            PatchOperation(op=OperationKind.ADD, path=format_pointer([*path, index]), value=target[index])
        )


def _compare(source: Any, target: Any, path: list[str | int], guard: bool, ops: list[PatchOperation]) -> None:
    if json_equal(source, target):
        return
    if isinstance(source, dict) and isinstance(target, dict):
        _compare_objects(source, target, path, guard, ops)
    elif isinstance(source, list) and isinstance(target, list):
        _compare_arrays(source, target, path, guard, ops)
    else:
        _replace(source, target, path, guard, ops)


def compare(source: Any, target: Any, *, guard: bool = False) -> Patch:
    """Compute a patch transforming JSON tree ``source`` into ``target``.

    Args:
        source: The starting JSON tree.
        target: The desired JSON tree.
        guard: Precede every remove and replace with a ``test`` op asserting
            the value being discarded.

    Returns:
        The patch as a tuple of operations (empty when the trees are equal).
    """
    ops: list[PatchOperation] = []
    _compare(source, target, [], guard, ops)
    return tuple(ops)


def diff(before: Any, after: Any, *, guard: bool = False) -> PatchPair:
    """Compute the forward and inverse patches between two values.

    Args:
        before: The value prior to the mutation (model, dict, list, scalar or None).
        after: The value after the mutation.
        guard: Emit ``test`` guards before destructive operations.

    Returns:
        PatchPair whose forward patch turns ``before`` into ``after`` and
        whose inverse patch turns ``after`` back into ``before``.

    Raises:
        EncodingError: If either value cannot be serialized to JSON.
    """
    source = to_document(before)
    target = to_document(after)
    return PatchPair(
        forward=compare(source, target, guard=guard),
        inverse=compare(target, source, guard=guard),
    )
