"""Unit tests for core/metadata.py"""

import datetime

import pytest

from legalmd.core.metadata import MetadataTree, Value, ValueKind, format_value, lookup


@pytest.mark.parametrize("raw,kind", [
    ("text",                    ValueKind.string),
    (3,                         ValueKind.number),
    (2.5,                       ValueKind.number),
    (True,                      ValueKind.boolean),
    (None,                      ValueKind.null),
    (datetime.date(2026, 1, 15), ValueKind.date),
    ([1, 2],                    ValueKind.array),
    ({"a": 1},                  ValueKind.map),
])
def test_value_kind_inference(raw, kind):
    assert Value.of(raw).kind == kind


def test_nested_kinds_are_tagged():
    v = Value.of({"parties": [{"name": "A"}]})
    assert v.data["parties"].kind == ValueKind.array
    assert v.data["parties"].data[0].data["name"].kind == ValueKind.string


def test_to_plain_round_trips_yaml_data():
    data = {"a": {"b": [1, "x", None]}, "d": datetime.date(2026, 1, 1)}
    assert MetadataTree.from_plain(data).to_plain() == data


def test_dotted_path_lookup():
    tree = MetadataTree.from_plain({"client": {"name": "Acme", "tags": ["x", "y"]}})
    assert tree.get("client.name") == "Acme"
    assert tree.get("client.tags.1") == "y"
    assert tree.kind("client") == ValueKind.map
    assert "client.missing" not in tree
    assert tree.get("client.missing", "dflt") == "dflt"


def test_literal_dotted_key_wins():
    """A top-level key that itself contains a dot is found directly."""
    tree = MetadataTree.from_plain({"a.b": 1, "a": {"b": 2}})
    assert tree.get("a.b") == 1


def test_lookup_plain_default():
    assert lookup({"a": {"b": None}}, "a.b", "x") is None
    assert lookup({"a": {}}, "a.b", "x") == "x"


@pytest.mark.parametrize("value,expected", [
    (None, ""),
    (True, "true"),
    (3.0, "3"),
    (2.5, "2.5"),
    (datetime.date(2026, 3, 1), "2026-03-01"),
    (["a", "b"], "a, b"),
])
def test_format_value(value, expected):
    assert format_value(value) == expected
