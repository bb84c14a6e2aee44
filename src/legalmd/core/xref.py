"""Cross-reference resolution in two phases: collect header anchors, then substitute |key| usages"""

import logging
import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional

from legalmd.core.metadata import format_value, lookup
from legalmd.core.models import CrossReference, Diagnostics
from legalmd.core.tree import INLINE_BLOCKS, Node, NodeKind, split_text, visit


logger = logging.getLogger(__name__)

STAGE = "cross-references"

REF_RE = re.compile(r"\|([A-Za-z0-9_.\-]+)\|")

# Pipes in tables are cell separators, not references.
_SKIP_BLOCKS = frozenset({NodeKind.table})

_MISSING = object()


@dataclass(frozen=True)
class CrossReferenceTable:
    """Read-only key -> definition mapping produced by collect_definitions()."""
    entries: Mapping[str, CrossReference]

    def get(self, key: str) -> Optional[CrossReference]:
        return self.entries.get(key)

    def __contains__(self, key: str) -> bool:
        return key in self.entries

    def __iter__(self) -> Iterator[CrossReference]:
        return iter(self.entries.values())

    def __len__(self) -> int:
        return len(self.entries)


def _heading_content(node: Node) -> str:
    return "".join(c.text() for c in node.children if c.attrs.get("role") != "label").strip()


def collect_definitions(tree: Node, diagnostics: Diagnostics = None) -> CrossReferenceTable:
    """Pass 1: record every heading tagged with a reference key.

    A key defined twice is reported and the first definition kept.
    """
    diagnostics = diagnostics if diagnostics is not None else Diagnostics()
    entries: dict[str, CrossReference] = {}

    def _collect(node: Node, parent: Node, index: int):
        key = node.attrs.get("ref_key")
        if not key:
            return None
        label = node.attrs.get("label", "")
        if key in entries:
            diagnostics.warning(
                "duplicate-reference", STAGE,
                f"Reference key '{key}' defined more than once; keeping {entries[key].label!r}",
                source=key,
            )
            return None
        content = _heading_content(node)
        entries[key] = CrossReference(
            key=key,
            level=node.attrs.get("level", 0),
            label=label,
            text=f"{label} {content}".strip(),
        )
        return None

    visit(tree, NodeKind.heading, _collect)
    logger.debug("Collected %d cross-reference definitions", len(entries))
    return CrossReferenceTable(MappingProxyType(entries))


def _resolve(key: str, table: CrossReferenceTable, metadata: dict[str, Any]) -> tuple[str, Optional[str]]:
    """Return (text, source) where source is 'internal', 'metadata' or None."""
    ref = table.get(key)
    if ref is not None:
        return ref.label, "internal"
    value = lookup(metadata, key, _MISSING)
    if value is not _MISSING:
        return format_value(value), "metadata"
    return f"|{key}|", None


def resolve_references(
    tree: Node,
    table: CrossReferenceTable,
    metadata: dict[str, Any],
    diagnostics: Diagnostics = None,
    ) -> int:
    """Pass 2: replace |key| usages in text with the referenced header label.

    Falls back to a metadata field of the same name, then leaves the literal
    text. Returns the number of references resolved.
    """
    diagnostics = diagnostics if diagnostics is not None else Diagnostics()
    resolved = 0

    def _make(m: re.Match) -> Node:
        nonlocal resolved
        key = m.group(1)
        text, source = _resolve(key, table, metadata)
        if source is None:
            diagnostics.warning("undefined-reference", STAGE, f"Reference '|{key}|' is not defined", source=key)
        else:
            resolved += 1
        return Node(NodeKind.xref, value=text, attrs={"key": key, "source": source})

    def _substitute(block: Node, parent: Node, index: int):
        if block.kind in _SKIP_BLOCKS:
            return None
        children = []
        for child in block.children:
            if child.kind == NodeKind.text and REF_RE.search(child.value):
                children.extend(split_text(child.value, REF_RE, _make))
            else:
                children.append(child)
        block.children = children
        return None

    visit(tree, INLINE_BLOCKS, _substitute)
    return resolved
