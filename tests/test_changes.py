"""
Tests for the typed field diff and value comparison helpers
"""
from datetime import datetime

import pytest
from pydantic import ValidationError

from landrecords.core.changes import (
    FieldChange, ProposedChanges, humanize_field, stringify_value, values_are_equal,
)


def test_wire_shape_uses_camel_case_and_map_keys():
    proposed = ProposedChanges.from_wire(
        {"registered_owner": {"oldValue": "Alice", "newValue": "Bob", "fieldName": "Owner"}}
    )

    name, change = next(iter(proposed))
    assert name == "registered_owner"
    assert change.old_value == "Alice"
    assert change.new_value == "Bob"
    assert proposed.to_wire() == {
        "registered_owner": {"oldValue": "Alice", "newValue": "Bob", "fieldName": "Owner"},
    }


def test_values_keep_their_variant():
    proposed = ProposedChanges.from_wire({
        "is_deleted": {"oldValue": False, "newValue": True},
        "lot_area": {"oldValue": 100, "newValue": 120.5},
        "remarks": {"oldValue": None, "newValue": "x"},
    })
    assert proposed.root["is_deleted"].new_value is True
    assert isinstance(proposed.root["lot_area"].old_value, int)
    assert proposed.root["remarks"].old_value is None


@pytest.mark.parametrize("bad", [
    {"lot_area": {"oldValue": [1, 2], "newValue": 3}},
    {"lot_area": {"oldValue": 1, "newValue": {"a": 1}}},
    {"lot_area": {"oldValue": 1, "newValue": 2, "unexpected": True}},
    {"lot_area": "not an entry"},
])
def test_malformed_entries_rejected(bad):
    with pytest.raises(ValidationError):
        ProposedChanges.from_wire(bad)


def test_field_change_accepts_python_names():
    change = FieldChange(old_value="a", new_value="b", field_name="Thing")
    assert change.model_dump(by_alias=True) == {"oldValue": "a", "newValue": "b", "fieldName": "Thing"}


@pytest.mark.parametrize("value,expected", [
    (None, None),
    (True, "true"),
    (False, "false"),
    (350.0, "350"),
    (350.25, "350.25"),
    (12, "12"),
    ("Bob", "Bob"),
    (datetime(2026, 1, 2, 3, 4, 5), "2026-01-02T03:04:05"),
])
def test_stringify_value(value, expected):
    assert stringify_value(value) == expected


@pytest.mark.parametrize("old,new,equal", [
    (None, "", True),
    ("", None, True),
    (None, "x", False),
    ("x", None, False),
    (350.0, 350, True),
    (350.0, "350", True),
    (350.0, "350.5", False),
    ("Alice ", "Alice", True),
    ("Alice", "alice", False),
    (True, True, True),
    (False, True, False),
    (True, 1, False),
])
def test_values_are_equal(old, new, equal):
    assert values_are_equal(old, new) is equal


def test_humanize_field():
    assert humanize_field("registered_owner") == "Registered Owner"
    assert humanize_field("registeredOwner") == "Registered Owner"
