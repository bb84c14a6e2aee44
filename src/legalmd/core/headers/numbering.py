"""Header numbering: per-level counters walked in document order"""

import logging
from dataclasses import dataclass, field

from legalmd.core.headers.formats import MAX_LEVEL, HeaderFormatConfig, render_label
from legalmd.core.tree import Node, NodeKind, text_node, visit


logger = logging.getLogger(__name__)


@dataclass
class HeaderCounterState:
    """Counters for levels 1-9. Lives for one numbering run."""
    counters: list[int] = field(default_factory=lambda: [0] * MAX_LEVEL)

    def increment(self, level: int, reset: bool = True) -> list[int]:
        """Bump `level`; zero every deeper level when reset is True. Returns a snapshot."""
        self.counters[level - 1] += 1
        if reset:
            for i in range(level, MAX_LEVEL):
                self.counters[i] = 0
        return list(self.counters)


def heading_from_marker(marker: Node, label: str, indent: int) -> Node:
    """Turn a numbered marker into a heading: label text followed by the marker's inline content."""
    level = marker.attrs["level"]
    content = [c for c in marker.children if not (c.kind == NodeKind.text and not c.value)]
    children = [text_node(label + (" " if content else ""), role="label"), *content]
    attrs = {"level": level, "legal": True, "label": label, "indent": indent}
    if "ref_key" in marker.attrs:
        attrs["ref_key"] = marker.attrs["ref_key"]
    return Node(NodeKind.heading, children=children, attrs=attrs)


def number_headers(tree: Node, config: HeaderFormatConfig) -> Node:
    """Number every legal-header marker in tree, replacing each with a heading node."""
    state = HeaderCounterState()

    def _number(node: Node, parent: Node, index: int):
        level = node.attrs["level"]
        counters = state.increment(level, reset=level not in config.no_reset)
        label = render_label(config.template(level), counters, level, config.joiner)
        logger.debug("Level %d header numbered %r", level, label)
        return [heading_from_marker(node, label, config.indent(level))]

    visit(tree, NodeKind.legal_header, _number)
    return tree
