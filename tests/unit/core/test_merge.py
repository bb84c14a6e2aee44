"""Unit tests for core/merge.py"""

import datetime

import pytest

from legalmd.core.merge import (
    RESERVED_KEYS,
    filter_reserved,
    kinds_compatible,
    merge_metadata,
    merge_sequentially,
)
from legalmd.core.metadata import MetadataTree, ValueKind


def _tree(data):
    return MetadataTree.from_plain(data)


def _merge(target, incoming):
    return merge_metadata(_tree(target), _tree(incoming))


def test_absent_keys_are_added():
    """Main {title: Main} + import {title: Imported, author: X} -> {title: Main, author: X}."""
    result = _merge({"title": "Main"}, {"title": "Imported", "author": "X"})
    assert result.metadata.to_plain() == {"title": "Main", "author": "X"}
    assert result.added == ["author"]
    assert result.conflicts == []


def test_merge_into_self_is_identity():
    data = {"a": 1, "b": {"c": [1, 2], "d": None}, "e": datetime.date(2026, 1, 1)}
    result = _merge(data, data)
    assert result.metadata == _tree(data)
    assert result.added == []


@pytest.mark.parametrize("existing,incoming", [
    ("main", "imported"),
    (1, 2),
    (True, False),
    (None, "x"),
    ([1, 2], [3]),
    ({"k": "v"}, {"k": "w"}),
    (datetime.date(2026, 1, 1), datetime.date(2027, 1, 1)),
    ("text", 5),
    (datetime.date(2026, 1, 1), "2027-01-01"),
])
def test_source_always_wins(existing, incoming):
    """For any key present in both, the merged value is the target's value."""
    result = _merge({"key": existing}, {"key": incoming})
    assert result.metadata.get("key") == existing


def test_nested_maps_merge_per_property():
    result = _merge(
        {"config": {"server": "prod", "port": 8080}},
        {"config": {"server": "dev", "level": "high"}, "client": "Acme"},
    )
    assert result.metadata.to_plain() == {
        "config": {"server": "prod", "port": 8080, "level": "high"},
        "client": "Acme",
    }
    assert sorted(result.added) == ["client", "config.level"]


def test_arrays_are_atomic():
    result = _merge({"items": [1]}, {"items": [2, 3]})
    assert result.metadata.get("items") == [1]


def test_incompatible_kinds_recorded_target_kept():
    result = _merge({"parties": ["a"], "nested": {"x": 1}}, {"parties": {"a": 1}, "nested": "flat"})
    assert result.metadata.to_plain() == {"parties": ["a"], "nested": {"x": 1}}
    conflicts = {(c.path, c.existing_kind, c.incoming_kind) for c in result.conflicts}
    assert conflicts == {("parties", "array", "map"), ("nested", "map", "string")}


def test_compatible_kinds_not_recorded():
    result = _merge({"n": "5", "flag": "yes", "when": "2026-01-01"}, {"n": 5, "flag": True, "when": datetime.date(2026, 1, 1)})
    assert result.conflicts == []


@pytest.mark.parametrize("a,b,ok", [
    (ValueKind.string, ValueKind.number, True),
    (ValueKind.boolean, ValueKind.number, True),
    (ValueKind.null, ValueKind.map, True),
    (ValueKind.date, ValueKind.string, True),
    (ValueKind.array, ValueKind.map, False),
    (ValueKind.date, ValueKind.number, False),
    (ValueKind.string, ValueKind.array, False),
])
def test_compatibility_table(a, b, ok):
    assert kinds_compatible(a, b) is ok
    assert kinds_compatible(b, a) is ok


def test_reserved_keys_filtered_even_without_conflict():
    result = _merge({"title": "Main"}, {"level-one": "Chapter %n", "Force-Commands": "--pdf", "client": "Acme"})
    assert result.metadata.to_plain() == {"title": "Main", "client": "Acme"}
    assert sorted(result.filtered) == ["Force-Commands", "level-one"]


def test_filter_reserved_case_insensitive():
    kept, dropped = filter_reserved(_tree({"NO-RESET": "2", "party": "A"}))
    assert kept.to_plain() == {"party": "A"}
    assert dropped == ["NO-RESET"]
    assert "import-tracing" in RESERVED_KEYS


def test_sequential_first_import_wins():
    result = merge_sequentially(
        _tree({"title": "Main"}),
        [_tree({"party": "First", "a": 1}), _tree({"party": "Second", "b": 2, "title": "Other"})],
    )
    assert result.metadata.to_plain() == {"title": "Main", "party": "First", "a": 1, "b": 2}


def test_disjoint_imports_order_independent():
    main = _tree({"title": "Main"})
    a = _tree({"a": 1, "shared": "A"})
    b = _tree({"b": 2})
    ab = merge_sequentially(main, [a, b]).metadata.to_plain()
    ba = merge_sequentially(main, [b, a]).metadata.to_plain()
    assert ab == ba


def test_shared_key_first_import_wins_regardless_of_unrelated_keys():
    main = _tree({"title": "Main"})
    a = _tree({"z": 0, "shared": "A"})
    b = _tree({"shared": "B", "y": 9})
    assert merge_sequentially(main, [a, b]).metadata.get("shared") == "A"
    assert merge_sequentially(main, [b, a]).metadata.get("shared") == "B"


def test_merge_does_not_mutate_inputs():
    target = _tree({"a": {"b": 1}})
    incoming = _tree({"a": {"c": 2}})
    merge_metadata(target, incoming)
    assert target.to_plain() == {"a": {"b": 1}}
    assert incoming.to_plain() == {"a": {"c": 2}}
