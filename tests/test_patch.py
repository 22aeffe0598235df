"""Tests for patch decoding, encoding and application.

Run with: pytest tests/test_patch.py -v
"""

from __future__ import annotations

import jsonpatch
import pytest

from entity_time_machine.errors import PatchApplyError, PatchDecodeError
from entity_time_machine.time_machine.patch import (
    OperationKind,
    PatchOperation,
    apply_patch,
    decode_patch,
    dump_patch,
    encode_patch,
    format_pointer,
    json_equal,
    parse_pointer,
)


# ---------------------------------------------------------------------------
# Pointers
# ---------------------------------------------------------------------------


def test_parse_pointer_unescapes_tokens():
    assert parse_pointer("") == ()
    assert parse_pointer("/a~1b/c~0d/0") == ("a/b", "c~d", "0")


def test_format_pointer_escapes_tokens():
    assert format_pointer(["a/b", "c~d", 0]) == "/a~1b/c~0d/0"
    assert format_pointer([]) == ""


def test_parse_pointer_rejects_relative_path():
    with pytest.raises(ValueError):
        parse_pointer("age")


# ---------------------------------------------------------------------------
# Decode / encode
# ---------------------------------------------------------------------------


def test_decode_patch_from_json_bytes():
    patch = decode_patch(b'[{"op": "replace", "path": "/age", "value": 17}]')
    assert patch == (PatchOperation(op=OperationKind.REPLACE, path="/age", value=17),)


def test_decode_patch_accepts_from_member():
    patch = decode_patch([{"op": "move", "from": "/a", "path": "/b"}])
    assert patch[0].op is OperationKind.MOVE
    assert patch[0].from_ == "/a"


def test_decode_patch_keeps_explicit_null_value():
    patch = decode_patch([{"op": "add", "path": "/bag", "value": None}])
    assert encode_patch(patch) == [{"op": "add", "path": "/bag", "value": None}]


def test_decode_patch_ignores_unknown_members():
    patch = decode_patch([{"op": "remove", "path": "/a", "note": "ignored"}])
    assert encode_patch(patch) == [{"op": "remove", "path": "/a"}]


@pytest.mark.parametrize(
    "raw",
    [
        b"not json",
        b'{"op": "add"}',
        [{"op": "frobnicate", "path": "/a"}],
        [{"op": "add", "path": "/a"}],
        [{"op": "replace", "path": "age", "value": 1}],
        [{"op": "copy", "path": "/a"}],
        [{"path": "/a", "value": 1}],
        42,
    ],
)
def test_decode_patch_rejects_malformed_input(raw):
    with pytest.raises(PatchDecodeError):
        decode_patch(raw)


def test_encode_patch_emits_standard_wire_shape():
    patch = (
        PatchOperation(op=OperationKind.TEST, path="/age", value=16),
        PatchOperation(op=OperationKind.REPLACE, path="/age", value=17),
        PatchOperation(op=OperationKind.COPY, path="/b", from_="/a"),
        PatchOperation(op=OperationKind.REMOVE, path="/a"),
    )
    assert encode_patch(patch) == [
        {"op": "test", "path": "/age", "value": 16},
        {"op": "replace", "path": "/age", "value": 17},
        {"op": "copy", "path": "/b", "from": "/a"},
        {"op": "remove", "path": "/a"},
    ]
    assert decode_patch(dump_patch(patch)) == decode_patch(encode_patch(patch))


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


def test_apply_replace_on_object():
    result = apply_patch({"id": 1, "age": 16}, [{"op": "replace", "path": "/age", "value": 17}])
    assert result == {"id": 1, "age": 17}


def test_apply_add_and_remove_on_object():
    result = apply_patch(
        {"a": 1},
        [{"op": "add", "path": "/b", "value": {"c": [1]}}, {"op": "remove", "path": "/a"}],
    )
    assert result == {"b": {"c": [1]}}


def test_apply_add_to_array_positions():
    result = apply_patch(
        {"tags": ["b"]},
        [
            {"op": "add", "path": "/tags/0", "value": "a"},
            {"op": "add", "path": "/tags/-", "value": "c"},
            {"op": "add", "path": "/tags/3", "value": "d"},
        ],
    )
    assert result == {"tags": ["a", "b", "c", "d"]}


def test_apply_resolves_against_intermediate_value():
    result = apply_patch(
        {},
        [
            {"op": "add", "path": "/bag", "value": {}},
            {"op": "add", "path": "/bag/phone", "value": "555"},
        ],
    )
    assert result == {"bag": {"phone": "555"}}


def test_apply_move_and_copy():
    result = apply_patch(
        {"a": {"x": 1}, "list": [1, 2]},
        [
            {"op": "copy", "from": "/a", "path": "/b"},
            {"op": "move", "from": "/list/0", "path": "/list/-"},
        ],
    )
    assert result == {"a": {"x": 1}, "b": {"x": 1}, "list": [2, 1]}


def test_apply_copy_is_detached():
    result = apply_patch(
        {"a": {"x": 1}},
        [
            {"op": "copy", "from": "/a", "path": "/b"},
            {"op": "replace", "path": "/b/x", "value": 2},
        ],
    )
    assert result == {"a": {"x": 1}, "b": {"x": 2}}


def test_apply_replace_root():
    assert apply_patch({"a": 1}, [{"op": "replace", "path": "", "value": None}]) is None
    assert apply_patch(None, [{"op": "replace", "path": "", "value": {"a": 1}}]) == {"a": 1}


def test_apply_test_passes_on_equal_value():
    document = {"age": 16, "tags": [1, 2.0]}
    result = apply_patch(document, [{"op": "test", "path": "/tags", "value": [1.0, 2]}])
    assert result == document


def test_apply_test_does_not_treat_bool_as_number():
    with pytest.raises(PatchApplyError):
        apply_patch({"flag": True}, [{"op": "test", "path": "/flag", "value": 1}])


@pytest.mark.parametrize(
    "operation",
    [
        {"op": "replace", "path": "/missing", "value": 1},
        {"op": "remove", "path": "/missing"},
        {"op": "remove", "path": ""},
        {"op": "add", "path": "/missing/child", "value": 1},
        {"op": "add", "path": "/list/5", "value": 1},
        {"op": "replace", "path": "/list/-", "value": 1},
        {"op": "add", "path": "/age/x", "value": 1},
        {"op": "move", "from": "/obj", "path": "/obj/inner"},
        {"op": "copy", "from": "/missing", "path": "/b"},
        {"op": "test", "path": "/age", "value": 99},
    ],
)
def test_apply_unresolvable_operation_raises(operation):
    document = {"age": 16, "list": [1, 2], "obj": {}}
    with pytest.raises(PatchApplyError):
        apply_patch(document, [operation])


def test_apply_is_atomic():
    document = {"age": 16, "name": "John"}
    with pytest.raises(PatchApplyError):
        apply_patch(
            document,
            [
                {"op": "replace", "path": "/age", "value": 17},
                {"op": "remove", "path": "/missing"},
            ],
        )
    assert document == {"age": 16, "name": "John"}


def test_apply_does_not_mutate_input_on_success():
    document = {"nested": {"a": 1}}
    apply_patch(document, [{"op": "replace", "path": "/nested/a", "value": 2}])
    assert document == {"nested": {"a": 1}}


def test_apply_rejects_malformed_patch():
    with pytest.raises(PatchDecodeError):
        apply_patch({"a": 1}, b'[{"op": "replace"}]')


def test_json_equal_semantics():
    assert json_equal({"a": [1, 2]}, {"a": [1.0, 2]})
    assert not json_equal(True, 1)
    assert not json_equal(0, False)
    assert not json_equal({"a": 1}, {"a": 1, "b": 2})
    assert not json_equal("1", 1)
    assert json_equal(None, None)


# ---------------------------------------------------------------------------
# Interoperability with standard JSON Patch tooling
# ---------------------------------------------------------------------------


def test_wire_form_is_accepted_by_jsonpatch():
    patch = decode_patch(
        [
            {"op": "test", "path": "/age", "value": 16},
            {"op": "replace", "path": "/age", "value": 17},
            {"op": "add", "path": "/tags/-", "value": "new"},
            {"op": "copy", "from": "/name", "path": "/alias"},
            {"op": "move", "from": "/tags/0", "path": "/first"},
            {"op": "remove", "path": "/a~1b"},
        ]
    )
    document = {"age": 16, "name": "John", "tags": ["old"], "a/b": 1}

    expected = apply_patch(document, patch)

    assert jsonpatch.JsonPatch(encode_patch(patch)).apply(document) == expected
    assert jsonpatch.JsonPatch.from_string(dump_patch(patch).decode("utf-8")).apply(document) == expected
    assert expected == {"age": 17, "name": "John", "alias": "John", "tags": ["new"], "first": "old"}


def test_patches_from_jsonpatch_decode_and_apply():
    source = {"id": 1, "tags": ["a", "b"], "profile": {"nick": "J"}}
    target = {"id": 1, "tags": ["b"], "profile": {"nick": "Jo", "city": "Oslo"}}

    external = jsonpatch.make_patch(source, target)

    assert apply_patch(source, decode_patch(external.to_string())) == target
    assert apply_patch(source, list(external)) == target
