"""Front matter merge: property-level, "source always wins", reserved keys filtered

The target (the document performing the import, plus everything merged into
it so far) keeps every value it already has. Incoming values only fill gaps.
Kind mismatches are recorded as MergeConflictRecords and never change the
chosen value.
"""

import logging
from dataclasses import dataclass, field

from legalmd.core.metadata import MetadataTree, Value, ValueKind
from legalmd.core.models import MergeConflictRecord


logger = logging.getLogger(__name__)


# Keys an imported document may never contribute: structure, output,
# localization, execution and pipeline control.
RESERVED_KEYS: frozenset[str] = frozenset({
    # document structure
    "level-one", "level-two", "level-three", "level-four", "level-five",
    "level-six", "level-seven", "level-eight", "level-nine",
    "level-1", "level-2", "level-3", "level-4", "level-5",
    "level-6", "level-7", "level-8", "level-9",
    "level-indent", "no-reset", "no-indent",
    # metadata export
    "meta-yaml-output", "meta-json-output", "meta-output-path", "meta-include-original",
    # localization
    "date-format", "dateformat", "timezone", "tz", "locale", "lang",
    # command execution
    "force_commands", "force-commands", "forcecommands", "commands",
    # imports
    "import-tracing", "import-tracing-format", "disable-frontmatter-merge",
    # pipeline
    "pipeline-config", "pipeline-steps", "processing-options",
    "enable-field-tracking", "field-tracking-mode",
})


_COMPATIBLE: frozenset[frozenset[ValueKind]] = frozenset({
    frozenset({ValueKind.string, ValueKind.number}),
    frozenset({ValueKind.string, ValueKind.boolean}),
    frozenset({ValueKind.number, ValueKind.boolean}),
    frozenset({ValueKind.date, ValueKind.string}),
})


def kinds_compatible(existing: ValueKind, incoming: ValueKind) -> bool:
    """Compatibility table for merge conflicts; null is compatible with anything."""
    if existing == incoming or ValueKind.null in (existing, incoming):
        return True
    return frozenset({existing, incoming}) in _COMPATIBLE


def is_reserved(key: str, reserved: frozenset[str] = RESERVED_KEYS) -> bool:
    return key.lower() in reserved


@dataclass
class MergeResult:
    metadata:  MetadataTree
    conflicts: list[MergeConflictRecord] = field(default_factory=list)
    added:     list[str] = field(default_factory=list)      # dotted paths added from incoming
    filtered:  list[str] = field(default_factory=list)      # reserved keys dropped from incoming

    def extend(self, other: "MergeResult") -> None:
        self.metadata = other.metadata
        self.conflicts.extend(other.conflicts)
        self.added.extend(other.added)
        self.filtered.extend(other.filtered)


def filter_reserved(
    incoming: MetadataTree,
    reserved: frozenset[str] = RESERVED_KEYS,
    ) -> tuple[MetadataTree, list[str]]:
    """Drop reserved top-level keys (case-insensitive). Returns (kept, dropped keys)."""
    kept, dropped = {}, []
    for key, value in incoming.items():
        if is_reserved(key, reserved):
            dropped.append(key)
        else:
            kept[key] = value
    for key in dropped:
        logger.debug("Reserved key %r ignored from import", key)
    return MetadataTree(kept), dropped


def _merge_maps(
    target: dict[str, Value],
    incoming: dict[str, Value],
    prefix: str,
    result: MergeResult,
    ) -> dict[str, Value]:
    merged = dict(target)
    for key, inc in incoming.items():
        path = f"{prefix}{key}"
        if key not in target:
            merged[key] = inc           # Values are frozen; sharing them is a deep copy in effect
            result.added.append(path)
            continue
        cur = target[key]
        if cur.kind == ValueKind.map and inc.kind == ValueKind.map:
            merged[key] = Value(ValueKind.map, _merge_maps(cur.data, inc.data, f"{path}.", result))
        elif not kinds_compatible(cur.kind, inc.kind):
            result.conflicts.append(MergeConflictRecord(
                path=path, existing_kind=cur.kind.value, incoming_kind=inc.kind.value,
            ))
            logger.debug("Type conflict for %r: existing=%s incoming=%s", path, cur.kind.value, inc.kind.value)
    return merged


def merge_metadata(
    target: MetadataTree,
    incoming: MetadataTree,
    reserved: frozenset[str] = RESERVED_KEYS,
    ) -> MergeResult:
    """Merge incoming into target and return a new tree; target values always win."""
    incoming, dropped = filter_reserved(incoming, reserved)
    result = MergeResult(metadata=target, filtered=dropped)
    merged = _merge_maps(dict(target.items()), dict(incoming.items()), "", result)
    result.metadata = MetadataTree(merged)
    return result


def merge_sequentially(
    initial: MetadataTree,
    imports: list[MetadataTree],
    reserved: frozenset[str] = RESERVED_KEYS,
    ) -> MergeResult:
    """Fold imports into initial in declaration order; earlier sources outrank later ones."""
    total = MergeResult(metadata=initial)
    for incoming in imports:
        total.extend(merge_metadata(total.metadata, incoming, reserved))
    return total
