"""Strips operations on excluded fields from patches before they are stored.

Some fields (sensitive sub-objects such as ``/bag``) must never be recorded in
the event log or replayed by a reconstruction, whether or not they changed.

Paths are compared segment by segment after JSON pointer decoding, so
excluding ``/bag`` drops ``/bag`` and ``/bag/phone`` but keeps ``/bagpipe``.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable
from typing import Any

from entity_time_machine.time_machine.patch import (
    OperationKind,
    Patch,
    PatchOperation,
    parse_pointer,
)

Pointer = tuple[str, ...]


def _is_under(tokens: Pointer, prefix: Pointer) -> bool:
    return tokens[: len(prefix)] == prefix


def _excluded_below(tokens: Pointer, excluded: list[Pointer]) -> list[Pointer]:
    """Return the excluded pointers strictly below ``tokens``, relative to it."""
    return [
        prefix[len(tokens):]
        for prefix in excluded
        if len(prefix) > len(tokens) and _is_under(prefix, tokens)
    ]


def _is_dropped(operation: PatchOperation, excluded: list[Pointer]) -> bool:
    pointers = [operation.path]
    if operation.from_ is not None:
        pointers.append(operation.from_)
    for pointer in pointers:
        tokens = parse_pointer(pointer)
        if any(_is_under(tokens, prefix) for prefix in excluded):
            return True
    # A test on an ancestor would assert the excluded subtree's value.
    if operation.op is OperationKind.TEST:
        return bool(_excluded_below(parse_pointer(operation.path), excluded))
    return False


def _drop_subtree(value: Any, relative: Pointer) -> None:
    """Delete the subtree at a relative token path from a JSON tree, if present."""
    current = value
    for token in relative[:-1]:
        if isinstance(current, dict) and token in current:
            current = current[token]
        elif isinstance(current, list) and token.isdigit() and int(token) < len(current):
            current = current[int(token)]
        else:
            return
    last = relative[-1]
    if isinstance(current, dict):
        current.pop(last, None)
    elif isinstance(current, list) and last.isdigit() and int(last) < len(current):
        del current[int(last)]


def _scrub(operation: PatchOperation, excluded: list[Pointer]) -> PatchOperation:
    """Remove excluded subtrees from the value an ancestor-targeting op carries."""
    if operation.op not in (OperationKind.ADD, OperationKind.REPLACE):
        return operation
    below = _excluded_below(parse_pointer(operation.path), excluded)
    if not below:
        return operation
    value = copy.deepcopy(operation.value)
    for relative in below:
        _drop_subtree(value, relative)
    return PatchOperation(op=operation.op, path=operation.path, value=value)


def sanitize(patch: Iterable[PatchOperation], excluded_paths: Iterable[str]) -> Patch:
    """Return a copy of ``patch`` without operations on excluded paths.

    - Operations whose ``path`` (or ``from``) lies at or below an excluded
      pointer are dropped.
    - ``add``/``replace`` on an ancestor of an excluded pointer keep their
      place, but the excluded subtree is removed from the carried value.
    - ``test`` on an ancestor of an excluded pointer is dropped.

    Remaining operations keep their order; the input is not modified.
    Sanitizing an already sanitized patch returns it unchanged.

    Args:
        patch: The operations to filter.
        excluded_paths: JSON pointers naming excluded fields.

    Returns:
        The sanitized patch.

    Raises:
        ValueError: If an excluded path is not a valid JSON pointer.
    """
    excluded = [parse_pointer(pointer) for pointer in excluded_paths]
    if not excluded:
        return tuple(patch)
    return tuple(
        _scrub(operation, excluded)
        for operation in patch
        if not _is_dropped(operation, excluded)
    )
