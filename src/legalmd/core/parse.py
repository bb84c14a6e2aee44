"""Front matter extraction and markdown-it block parsing into a document tree"""

import re
from pathlib import Path
from typing import Any, Optional

import yaml
from markdown_it import MarkdownIt

from legalmd.core.errors import FrontmatterError
from legalmd.core.models import ParsedDocument
from legalmd.core.tree import Node, NodeKind, block, split_lines, visit


FRONTMATTER_RE = re.compile(r'^---[ \t]*\n(.*?)^---[ \t]*(?:\n|\Z)', re.DOTALL | re.MULTILINE)
IMPORT_RE = re.compile(r'^\s*@import\s+([^\s#]+)(?:#(\S+))?\s*$')
MD_EXTENSIONS = {'.md', '.mdx', '.markdown'}

BLOCK_KIND_MAP: dict[str, NodeKind] = {
    'paragraph_open':    NodeKind.paragraph,
    'heading_open':      NodeKind.heading,
    'bullet_list_open':  NodeKind.list,
    'ordered_list_open': NodeKind.list,
    'fence':             NodeKind.code,
    'code_block':        NodeKind.code,
    'table_open':        NodeKind.table,
    'html_block':        NodeKind.html,
    'blockquote_open':   NodeKind.quote,
    'hr':                NodeKind.hr,
}


def _make_parser(preset: str) -> MarkdownIt:
    """Build a MarkdownIt instance for the given preset name."""
    return MarkdownIt(preset, options_update={"linkify": False})


def split_frontmatter(text: str) -> tuple[Optional[str], str]:
    """Return (yaml_source, body); yaml_source is None when there is no header."""
    m = FRONTMATTER_RE.match(text)
    if not m:
        return None, text
    return m.group(1), text[m.end():]


def load_frontmatter(source: str) -> dict[str, Any]:
    """Parse a front matter block. Raises FrontmatterError unless it is a YAML mapping."""
    try:
        fm = yaml.safe_load(source) or {}
    except yaml.YAMLError as e:
        raise FrontmatterError(f"Invalid YAML frontmatter: {e}") from e
    if not isinstance(fm, dict):
        raise FrontmatterError(f"Invalid YAML frontmatter: expected a mapping, got {type(fm).__name__}")
    return fm


def _source_slice(token, source_lines: list[str]) -> str:
    """Extract raw source for a block via token.map; fallback to token.content."""
    if token.map:
        start, end = token.map
        return ''.join(source_lines[start:end]).rstrip()
    return token.content.rstrip()


def _heading_level(token) -> Optional[int]:
    if token.tag and token.tag[0] == 'h' and token.tag[1:].isdigit():
        return int(token.tag[1:])
    return None


def parse_blocks(body: str, parser_config: str = 'gfm-like') -> Node:
    """Tokenize body and return a root node holding one block per top-level token."""
    tokens = _make_parser(parser_config).parse(body)
    source_lines = body.splitlines(keepends=True)
    root = Node(NodeKind.root)
    for tok in tokens:
        if tok.level != 0 or tok.nesting == -1:
            continue
        kind = BLOCK_KIND_MAP.get(tok.type)
        if kind is None:
            continue
        attrs = {}
        if kind == NodeKind.heading:
            attrs['level'] = _heading_level(tok)
        root.children.append(block(kind, _source_slice(tok, source_lines), **attrs))
    return root


def _import_line(line: str) -> Optional[Node]:
    m = IMPORT_RE.match(line)
    if not m:
        return None
    attrs = {'path': m.group(1)}
    if m.group(2):
        attrs['section'] = m.group(2)
    return Node(NodeKind.import_, value=line.strip(), attrs=attrs)


def mark_import_directives(root: Node) -> int:
    """Split root-level paragraphs so each @import line becomes its own import node."""
    count = 0

    def _split(node: Node, parent: Node, index: int):
        nonlocal count
        if parent is not root:
            return None
        new_nodes = split_lines(node, _import_line)
        if new_nodes is not None:
            count += sum(1 for n in new_nodes if n.kind == NodeKind.import_)
        return new_nodes

    visit(root, NodeKind.paragraph, _split)
    return count


def parse_text(
    text: str,
    parser_config: str = 'gfm-like',
    path: Path = None,
    strict: bool = False,
    ) -> ParsedDocument:
    """Parse raw document text into front matter and a block tree with import nodes marked.

    Malformed front matter raises FrontmatterError in strict mode; otherwise the
    document gets empty front matter and the error text in `frontmatter_error`.
    """
    source, body = split_frontmatter(text)
    frontmatter: dict[str, Any] = {}
    error = None
    if source is not None:
        try:
            frontmatter = load_frontmatter(source)
        except FrontmatterError as e:
            if strict:
                raise
            error = str(e)
    tree = parse_blocks(body, parser_config)
    mark_import_directives(tree)
    return ParsedDocument(frontmatter=frontmatter, body=body, tree=tree, path=path, frontmatter_error=error)


def parse_file(path: Path, parser_config: str = 'gfm-like', strict: bool = False) -> ParsedDocument:
    """Read and parse a single markdown file."""
    return parse_text(path.read_text(encoding='utf-8'), parser_config, path, strict)


def discover_files(path: Path) -> list[Path]:
    """Return sorted markdown files under path, or [path] if a single file."""
    if path.is_file():
        return [path] if path.suffix in MD_EXTENSIONS else []
    return sorted(p for p in path.rglob('*') if p.suffix in MD_EXTENSIONS)
