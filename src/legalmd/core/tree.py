"""Document tree nodes and the minimal visitor interface used by every stage"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, Iterator, Optional


class NodeKind(str, Enum):
    root         = "root"
    # blocks
    paragraph    = "paragraph"
    heading      = "heading"
    list         = "list"
    code         = "code"
    table        = "table"
    quote        = "quote"
    html         = "html"
    hr           = "hr"
    legal_header = "legal_header"       # marker line awaiting numbering
    import_      = "import"             # @import directive awaiting expansion
    error        = "error"              # inline error marker (HTML comment)
    # inlines
    text         = "text"
    template     = "template"           # {{expression}}
    xref         = "xref"               # |key|
    clause       = "clause"             # [text]{condition}


# Blocks whose children are inline nodes (text, template, xref, clause).
INLINE_BLOCKS = frozenset({
    NodeKind.paragraph, NodeKind.heading, NodeKind.list, NodeKind.quote,
    NodeKind.table, NodeKind.html, NodeKind.legal_header,
})


@dataclass(eq=False)
class Node:
    """A block or inline node. Leaves carry `value`; containers carry `children`."""
    kind:     NodeKind
    value:    str = ""
    children: list["Node"] = field(default_factory=list)
    attrs:    dict[str, Any] = field(default_factory=dict)

    def text(self) -> str:
        """Source-level text of this node (leaf value or joined children)."""
        if self.children:
            return "".join(c.text() for c in self.children)
        return self.value

    def __repr__(self) -> str:
        body = self.value if not self.children else f"{len(self.children)} children"
        return f"Node({self.kind.value}, {body!r})"


def text_node(value: str, **attrs) -> Node:
    return Node(NodeKind.text, value=value, attrs=attrs)


def block(kind: NodeKind, source: str, **attrs) -> Node:
    """Create a block node; inline-bearing blocks get a single text child."""
    if kind in INLINE_BLOCKS:
        return Node(kind, children=[text_node(source)], attrs=attrs)
    return Node(kind, value=source, attrs=attrs)


Visit = Callable[[Node, Node, int], Optional[list[Node]]]


def walk(root: Node) -> Iterator[tuple[Node, Optional[Node], int]]:
    """Yield (node, parent, index) depth-first in document order."""
    yield root, None, -1
    stack = [(root, 0)]
    while stack:
        parent, i = stack.pop()
        if i >= len(parent.children):
            continue
        stack.append((parent, i + 1))
        child = parent.children[i]
        yield child, parent, i
        if child.children:
            stack.append((child, 0))


def visit(root: Node, kinds: NodeKind | Iterable[NodeKind], fn: Visit) -> int:
    """Call fn(node, parent, index) for every node of the given kinds, in document order.

    When fn returns a list, the node is replaced by those nodes and traversal
    continues after them (replacements are not revisited). Returns the number
    of replacements made.
    """
    wanted = {kinds} if isinstance(kinds, NodeKind) else set(kinds)
    return _visit_children(root, wanted, fn)


def _visit_children(parent: Node, wanted: set, fn: Visit) -> int:
    replaced = 0
    i = 0
    while i < len(parent.children):
        node = parent.children[i]
        if node.kind in wanted:
            new_nodes = fn(node, parent, i)
            if new_nodes is not None:
                replace_node(parent, i, new_nodes)
                replaced += 1
                i += len(new_nodes)
                continue
        if node.children:
            replaced += _visit_children(node, wanted, fn)
        i += 1
    return replaced


def replace_node(parent: Node, index: int, nodes: list[Node]) -> None:
    """Replace parent.children[index] with zero or more nodes."""
    parent.children[index:index + 1] = nodes


def insert_siblings(parent: Node, index: int, nodes: list[Node], after: bool = True) -> None:
    """Insert nodes next to parent.children[index]."""
    pos = index + 1 if after else index
    parent.children[pos:pos] = nodes


def split_text(value: str, pattern: re.Pattern, make: Callable[[re.Match], Node]) -> list[Node]:
    """Split a string into text nodes and the nodes built by make() for each match."""
    out: list[Node] = []
    pos = 0
    for m in pattern.finditer(value):
        if m.start() > pos:
            out.append(text_node(value[pos:m.start()]))
        out.append(make(m))
        pos = m.end()
    if pos < len(value):
        out.append(text_node(value[pos:]))
    return out


def split_lines(node: Node, match_line: Callable[[str], Optional[Node]]) -> Optional[list[Node]]:
    """Split a paragraph into runs of plain lines and the nodes match_line() builds.

    Returns None when no line matched, so the paragraph stays untouched.
    """
    lines = node.text().split("\n")
    out: list[Node] = []
    pending: list[str] = []
    matched = False
    for line in lines:
        special = match_line(line)
        if special is None:
            pending.append(line)
            continue
        matched = True
        if any(p.strip() for p in pending):
            out.append(block(NodeKind.paragraph, "\n".join(pending)))
        pending = []
        out.append(special)
    if not matched:
        return None
    if pending and any(p.strip() for p in pending):
        out.append(block(NodeKind.paragraph, "\n".join(pending)))
    return out
