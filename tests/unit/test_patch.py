"""Unit tests for the structural JSON patch builder."""

import copy

import jsonpatch
import pytest

from build_webhook.errors import EncodingError
from build_webhook.models.build import Build
from build_webhook.webhooks.patch import (
    PatchOperation,
    create_patch,
    normalize,
    serialize_patch,
)


def apply(document, operations):
    """Apply operations with an independent RFC 6902 implementation."""
    return jsonpatch.apply_patch(
        copy.deepcopy(document), [operation.to_dict() for operation in operations]
    )


class TestCreatePatch:
    """Tests for create_patch."""

    def test_equal_documents_produce_no_operations(self):
        """Structurally equal inputs yield an empty patch."""
        document = {"a": [1, {"b": None}], "c": "x"}
        assert create_patch(document, copy.deepcopy(document)) == []

    def test_scalar_change_is_replace(self):
        """A changed member becomes a single replace."""
        assert create_patch({"image": "a"}, {"image": "b"}) == [
            PatchOperation("replace", "/image", "b")
        ]

    def test_added_and_removed_members(self):
        """Vanished members are removed before new members are added."""
        ops = create_patch({"a": 1, "b": 2}, {"b": 2, "c": 3})
        assert ops == [
            PatchOperation("remove", "/a"),
            PatchOperation("add", "/c", 3),
        ]

    def test_nested_objects_recurse(self):
        """Only the changed leaf is replaced."""
        ops = create_patch(
            {"spec": {"source": {"git": {"url": "u", "revision": "main"}}}},
            {"spec": {"source": {"git": {"url": "u", "revision": "v2"}}}},
        )
        assert ops == [PatchOperation("replace", "/spec/source/git/revision", "v2")]

    def test_type_change_is_replace(self):
        """Object replaced by a list is a whole-value replace."""
        assert create_patch({"a": {"x": 1}}, {"a": [1]}) == [
            PatchOperation("replace", "/a", [1])
        ]

    def test_bool_and_number_differ(self):
        """true and 1 are different JSON values."""
        assert create_patch({"a": True}, {"a": 1}) == [
            PatchOperation("replace", "/a", 1)
        ]

    def test_null_to_value_is_replace(self):
        """A null member that gains a value is replaced."""
        assert create_patch({"a": None}, {"a": "x"}) == [
            PatchOperation("replace", "/a", "x")
        ]

    def test_keys_are_escaped(self):
        """Pointer tokens escape ~ and /."""
        ops = create_patch({}, {"a/b": 1, "c~d": 2})
        assert sorted(op.path for op in ops) == ["/a~1b", "/c~0d"]

    def test_deterministic(self):
        """The same inputs always give the same operations."""
        old = {"x": [1, 2, {"y": "z"}], "k": {"a": 1}}
        new = {"x": [2, {"y": "w"}], "k": {"b": 2}, "n": None}
        assert create_patch(old, new) == create_patch(old, new)

    @pytest.mark.parametrize(
        "old,new",
        [
            ({"spec": {"steps": [{"image": "a"}]}}, {"spec": {"steps": []}}),
            ({"a": [1, 2, 3]}, {"a": [3, 2]}),
            ({"a": {"b": {"c": 1}}, "d": 1}, {"a": {"b": {}}, "e": [None]}),
            ([{"a": 1}, "x"], [{"a": 2}, "x", {"b": []}]),
            ({"a~/": "x"}, {"a~/": "y", "/": "z"}),
            ({"old": {"x": [1, 2]}}, {"new": {"x": [1, 2]}}),
        ],
    )
    def test_applying_patch_yields_new_document(self, old, new):
        """apply(create_patch(a, b), a) == b."""
        assert apply(old, create_patch(old, new)) == new

    def test_accepts_models(self):
        """Pydantic documents are normalized with wire field names."""
        old = Build.model_validate({"spec": {"serviceAccountName": "a"}})
        new = Build.model_validate({"spec": {"serviceAccountName": "b"}})
        assert create_patch(old, new) == [
            PatchOperation("replace", "/spec/serviceAccountName", "b")
        ]

    def test_unencodable_input_raises(self):
        """Non-JSON input is an encoding error."""
        with pytest.raises(EncodingError):
            create_patch({"a": object()}, {})

    def test_nan_is_rejected(self):
        """NaN has no JSON representation."""
        with pytest.raises(EncodingError):
            create_patch({"a": float("nan")}, {})


class TestHelpers:
    """Tests for normalize and serialization."""

    def test_normalize_bytes(self):
        """Raw JSON bytes are parsed."""
        assert normalize(b'{"a": [1]}') == {"a": [1]}

    def test_normalize_invalid_bytes(self):
        """Undecodable bytes raise EncodingError."""
        with pytest.raises(EncodingError):
            normalize(b"{not json")

    def test_serialize_empty_patch(self):
        """An empty patch is [] rather than null."""
        assert serialize_patch([]) == b"[]"

    def test_move_uses_from(self):
        """move operations read from a source pointer instead of a value."""
        operation = PatchOperation.from_dict({"op": "move", "from": "/a", "path": "/b"})
        assert operation.to_dict() == {"op": "move", "from": "/a", "path": "/b"}

    def test_serialize_remove_has_no_value(self):
        """remove operations carry no value member."""
        payload = serialize_patch(
            [PatchOperation("remove", "/a"), PatchOperation("add", "/b", None)]
        )
        assert payload == (
            b'[{"op": "remove", "path": "/a"}, '
            b'{"op": "add", "path": "/b", "value": null}]'
        )
