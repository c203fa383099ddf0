"""Unit tests for modifier validation through the key-path walker.

Tests cover:
- $set / $setOnInsert with dotted and nested key paths
- Upsert handling of untouched required keys
- $unset, $rename and $inc semantics
- $push / $addToSet items, with and without $each
- $currentDate arguments for Date keys
- Operators that are skipped or rejected
"""

import pytest

from modschema.errors import InvalidInputError, KeyNotInSchemaError
from modschema.schema import Schema
from modschema.types import ErrorKind
from modschema.walker import KeyPathWalker, append_affected_key, looks_like_modifier

from tests.test_validation import PERSON_SCHEMA


NESTED_SCHEMA = Schema({
    "a": {"type": "Object"},
    "a.b": {"type": "String"},
    "a.c": {"type": "String"},
})


def walk(obj, schema=None, **kwargs):
    walker = KeyPathWalker(schema or Schema(PERSON_SCHEMA), **kwargs)
    return [(error.name, error.type) for error in walker.walk(obj)]


class TestHelpers:
    """Test the walker helper functions."""

    def test_looks_like_modifier(self):
        assert looks_like_modifier({"$set": {}}) is True
        assert looks_like_modifier({"name": "x"}) is False
        assert looks_like_modifier({}) is False

    def test_append_affected_key(self):
        assert append_affected_key(None, "a") == "a"
        assert append_affected_key("a", "b") == "a.b"
        assert append_affected_key("tags", "$each") == "tags"


class TestSetModifiers:
    """Test $set and $setOnInsert blocks."""

    def test_partial_set_is_valid(self):
        """Should not require keys a plain update leaves untouched."""
        assert walk({"$set": {"age": 3}}) == []

    def test_set_null_on_required_key(self):
        """Should report REQUIRED when $set assigns None to a required key."""
        assert walk({"$set": {"name": None}}) == [("name", ErrorKind.REQUIRED)]

    def test_set_type_mismatch(self):
        """Should type-check assigned values."""
        assert walk({"$set": {"age": "x"}}) == [("age", ErrorKind.EXPECTED_TYPE)]

    def test_set_empty_object(self):
        """Should report required keys of an object assigned as a whole."""
        assert walk({"$set": {"address": {}}}) == [("address.city", ErrorKind.REQUIRED)]

    def test_set_dotted_key_into_optional_object(self):
        """Should accept a dotted assignment below an optional object."""
        assert walk({"$set": {"address.street": "Main"}}) == []

    def test_set_whole_object_reaches_siblings(self):
        """Should report a missing sibling inside an object assigned as a whole."""
        assert walk({"$set": {"a": {"b": "x"}}}, NESTED_SCHEMA) == [("a.c", ErrorKind.REQUIRED)]

    def test_sibling_set_by_other_operator(self):
        """Should accept a sibling assigned by another operator block."""
        obj = {"$set": {"a": {"b": "x"}}, "$setOnInsert": {"a.c": "y"}}
        assert walk(obj, NESTED_SCHEMA) == []

    def test_array_item_paths(self):
        """Should check assignments to concrete array positions."""
        assert walk({"$set": {"tags.2": 5}}) == [("tags.2", ErrorKind.EXPECTED_TYPE)]
        assert walk({"$set": {"items.0.qty": 0}}) == [("items.0.qty", ErrorKind.MIN_NUMBER)]

    def test_unknown_key_raises(self):
        """Should raise for an assignment to a key the schema does not define."""
        with pytest.raises(KeyNotInSchemaError) as exc_info:
            walk({"$set": {"nickname": "Al"}})
        assert exc_info.value.key == "nickname"

    def test_dotted_set_without_upsert(self):
        """Should only visit the keys a plain update names."""
        assert walk({"$set": {"a.b": "x"}}, NESTED_SCHEMA) == []


class TestUpsert:
    """Test modifiers validated as upserts."""

    def test_untouched_required_key(self):
        """Should report required top-level keys the upsert would not create."""
        assert walk({"$set": {"age": 1}}, is_upsert=True) == [("name", ErrorKind.REQUIRED)]

    def test_key_set_by_set_on_insert(self):
        """Should accept a required key assigned by $setOnInsert."""
        obj = {"$setOnInsert": {"name": "Alice"}, "$set": {"age": 1}}
        assert walk(obj, is_upsert=True) == []

    def test_dotted_set_creates_container(self):
        """Should accept the created container and require its siblings."""
        assert walk({"$set": {"a.b": "x"}}, NESTED_SCHEMA, is_upsert=True) == [
            ("a.c", ErrorKind.REQUIRED)
        ]
        assert walk({"$set": {"a.b": "x"}}, NESTED_SCHEMA) == []

    def test_dotted_set_of_all_children(self):
        """Should accept an upsert that assigns every required child."""
        obj = {"$set": {"a.b": "x", "a.c": "y"}}
        assert walk(obj, NESTED_SCHEMA, is_upsert=True) == []

    def test_null_does_not_create_container(self):
        """Should not treat a null assignment as creating the container."""
        errors = walk({"$set": {"a.b": None}}, NESTED_SCHEMA, is_upsert=True)
        assert errors[0] == ("a", ErrorKind.REQUIRED)
        assert ("a.b", ErrorKind.REQUIRED) in errors

    def test_optional_object_is_not_entered(self):
        """Should not require keys of an optional object the upsert leaves out."""
        assert walk({"$set": {"name": "Alice"}}, is_upsert=True) == []


class TestRemovingModifiers:
    """Test $unset and $rename blocks."""

    def test_unset_required_key(self):
        """Should report REQUIRED for unsetting a required key."""
        assert walk({"$unset": {"name": ""}}) == [("name", ErrorKind.REQUIRED)]

    def test_unset_optional_key(self):
        """Should accept unsetting an optional key."""
        assert walk({"$unset": {"age": ""}}) == []

    def test_unset_unknown_key(self):
        """Should silently accept unsetting a key the schema does not define."""
        assert walk({"$unset": {"legacyField": ""}}) == []

    def test_unset_required_array_item(self):
        """Should report REQUIRED for unsetting a required array item."""
        assert walk({"$unset": {"tags.0": ""}}) == [("tags.0", ErrorKind.REQUIRED)]

    def test_rename_required_key(self):
        """Should report REQUIRED for renaming a required key away."""
        assert walk({"$rename": {"name": "status"}}) == [("name", ErrorKind.REQUIRED)]

    def test_rename_optional_key(self):
        """Should accept renaming an optional key to a defined key."""
        assert walk({"$rename": {"age": "meta.age"}}) == []

    def test_rename_to_unknown_key(self):
        """Should raise when the rename target is not allowed by the schema."""
        with pytest.raises(KeyNotInSchemaError) as exc_info:
            walk({"$rename": {"age": "years"}})
        assert exc_info.value.key == "years"


class TestIncrement:
    """Test $inc blocks."""

    def test_inc_ignores_bounds(self):
        """Should not apply min/max to an increment amount."""
        assert walk({"$inc": {"age": -5}}) == []

    def test_inc_still_checks_type(self):
        """Should still check the type of the increment amount."""
        assert walk({"$inc": {"age": 1.5}}) == [("age", ErrorKind.MUST_BE_INTEGER)]
        assert walk({"$inc": {"age": "1"}}) == [("age", ErrorKind.EXPECTED_TYPE)]


class TestArrayModifiers:
    """Test $push and $addToSet blocks."""

    def test_push_single_item(self):
        """Should check a pushed value as an array item."""
        assert walk({"$push": {"tags": "x"}}) == []
        assert walk({"$push": {"tags": 5}}) == [("tags.0", ErrorKind.EXPECTED_TYPE)]

    def test_push_each(self):
        """Should check every item pushed with $each."""
        assert walk({"$push": {"tags": {"$each": ["a", 5]}}}) == [("tags.1", ErrorKind.EXPECTED_TYPE)]

    def test_add_to_set_null(self):
        """Should report REQUIRED for a null item of an array with required items."""
        assert walk({"$addToSet": {"tags": None}}) == [("tags.0", ErrorKind.REQUIRED)]

    def test_push_object_item(self):
        """Should report missing keys of a pushed object."""
        assert walk({"$push": {"items": {"qty": 2}}}) == [("items.0.sku", ErrorKind.REQUIRED)]

    def test_push_each_count(self):
        """Should check array counts against the $each list."""
        schema = Schema({"tags": {"type": "Array", "maxCount": 2}, "tags.$": {"type": "String"}})
        assert walk({"$push": {"tags": {"$each": ["a", "b", "c"]}}}, schema) == [
            ("tags", ErrorKind.MAX_COUNT)
        ]


CLOCK_SCHEMA = Schema({
    "updatedAt": {"type": "Date"},
    "expiresAt": {"type": "Date", "optional": True, "max": "2000-01-01"},
    "label": {"type": "String", "optional": True},
})


class TestCurrentDate:
    """Test $currentDate blocks."""

    @pytest.mark.parametrize("value", [True, {"$type": "date"}])
    def test_current_date_on_date_key(self, value):
        """Should accept the $currentDate arguments that store a date."""
        assert walk({"$currentDate": {"updatedAt": value}}, CLOCK_SCHEMA) == []

    @pytest.mark.parametrize("value", [False, {"$type": "timestamp"}, "now"])
    def test_other_arguments_are_type_errors(self, value):
        """Should reject arguments that do not store a date."""
        assert walk({"$currentDate": {"updatedAt": value}}, CLOCK_SCHEMA) == [
            ("updatedAt", ErrorKind.EXPECTED_TYPE)
        ]

    def test_bounds_use_the_current_time(self):
        """Should check date bounds against now."""
        assert walk({"$currentDate": {"expiresAt": True}}, CLOCK_SCHEMA) == [
            ("expiresAt", ErrorKind.MAX_DATE)
        ]

    def test_non_date_key(self):
        """Should not accept $currentDate arguments for other types."""
        assert walk({"$currentDate": {"label": True}}, CLOCK_SCHEMA) == [
            ("label", ErrorKind.EXPECTED_TYPE)
        ]

    def test_set_true_on_date_key(self):
        """Should only accept True for a Date key under $currentDate."""
        assert walk({"$set": {"updatedAt": True}}, CLOCK_SCHEMA) == [
            ("updatedAt", ErrorKind.EXPECTED_TYPE)
        ]

    def test_type_argument_path(self):
        """Should not treat a dotted $type argument as an unknown key."""
        assert walk({"$currentDate": {"updatedAt.$type": "date"}}, CLOCK_SCHEMA) == []


class TestSkippedAndRejectedOperators:
    """Test operators that are never checked or not supported."""

    @pytest.mark.parametrize("operator", ["$pull", "$pullAll", "$pop", "$slice"])
    def test_unchecked_operators(self, operator):
        """Should skip removal-style array operators entirely."""
        assert walk({operator: {"unknownKey": 1}}) == []

    def test_push_all_is_rejected(self):
        """Should reject the removed $pushAll operator."""
        with pytest.raises(InvalidInputError):
            walk({"$pushAll": {"tags": ["a"]}})

    def test_mixed_operator_and_plain_keys(self):
        """Should reject a modifier that also has plain document keys."""
        with pytest.raises(InvalidInputError):
            walk({"$set": {"age": 1}, "name": "Alice"})

    def test_operator_block_must_be_mapping(self):
        """Should reject an operator whose block is not a mapping."""
        with pytest.raises(InvalidInputError):
            walk({"$set": 5})
