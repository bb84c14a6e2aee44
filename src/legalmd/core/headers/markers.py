"""Legal header marker recognition: 'l. Text', 'll. Text' ... or 'l3. Text' lines"""

import re
from typing import Optional

from legalmd.core.headers.formats import MAX_LEVEL
from legalmd.core.tree import Node, NodeKind, split_lines, text_node, visit


REF_KEY_RE = re.compile(r"\s+\|([A-Za-z0-9_.\-]+)\|\s*$")


class MarkerSyntax:
    """Compiled marker patterns for one marker token."""

    def __init__(self, token: str = "l"):
        t = re.escape(token)
        self.token = token
        self.repeated = re.compile(rf"^\s*((?:{t}){{1,{MAX_LEVEL}}})\.\s+(.+?)\s*$")
        self.numbered = re.compile(rf"^\s*{t}([1-9])\.\s+(.+?)\s*$")

    def match(self, line: str) -> Optional[tuple[int, str]]:
        """Return (level, content) for a marker line, else None."""
        m = self.numbered.match(line)
        if m:
            return int(m.group(1)), m.group(2)
        m = self.repeated.match(line)
        if m:
            return len(m.group(1)) // len(self.token), m.group(2)
        return None


def marker_node(level: int, content: str) -> Node:
    """Build a legal-header-marker node, lifting a trailing |key| into attrs."""
    attrs = {"level": level}
    m = REF_KEY_RE.search(content)
    if m:
        attrs["ref_key"] = m.group(1)
        content = content[:m.start()].rstrip()
    return Node(NodeKind.legal_header, children=[text_node(content)], attrs=attrs)


def parse_legal_headers(root: Node, marker_token: str = "l") -> int:
    """Replace marker lines in root-level paragraphs with legal-header nodes. Returns the count."""
    syntax = MarkerSyntax(marker_token)
    count = 0

    def _line(line: str) -> Optional[Node]:
        found = syntax.match(line)
        return marker_node(*found) if found else None

    def _split(node: Node, parent: Node, index: int):
        nonlocal count
        if parent is not root:
            return None
        new_nodes = split_lines(node, _line)
        if new_nodes is not None:
            count += sum(1 for n in new_nodes if n.kind == NodeKind.legal_header)
        return new_nodes

    visit(root, NodeKind.paragraph, _split)
    return count
