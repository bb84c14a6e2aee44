"""Serialize a processed document tree back to markdown text"""

from legalmd.core.tree import Node, NodeKind


def render_block(node: Node, heading_style: str = "plain") -> str:
    if node.kind == NodeKind.heading and node.attrs.get("legal"):
        text = node.text().strip()
        if heading_style == "markdown":
            return f"{'#' * min(node.attrs['level'], 6)} {text}"
        return " " * node.attrs.get("indent", 0) + text
    return node.text()


def render_markdown(tree: Node, heading_style: str = "plain") -> str:
    """Join top-level blocks with blank lines; legal headings use the given style."""
    parts = [render_block(child, heading_style) for child in tree.children]
    body = "\n\n".join(p for p in parts if p.strip())
    return body + "\n" if body else ""
