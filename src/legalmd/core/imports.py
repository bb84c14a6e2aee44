"""Import resolver: recursive @import expansion with front matter merging and a cycle guard"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from legalmd.core.merge import merge_metadata
from legalmd.core.metadata import MetadataTree
from legalmd.core.models import Diagnostics, MergeConflictRecord
from legalmd.core.parse import parse_file
from legalmd.core.tree import Node, NodeKind


logger = logging.getLogger(__name__)

STAGE = "imports"


@dataclass
class ImportOptions:
    parser_config:   str  = "gfm-like"
    merge_metadata:  bool = True
    tracing:         bool = False
    max_depth:       int  = 10


@dataclass
class ImportResult:
    tree:      Node
    metadata:  MetadataTree
    imported:  list[str] = field(default_factory=list)
    conflicts: list[MergeConflictRecord] = field(default_factory=list)


def error_marker(message: str, path: str) -> Node:
    """Inline error marker left in place of a failed import."""
    return Node(NodeKind.error, value=f"<!-- import error: {message}: {path} -->", attrs={"path": path})


def _trace(edge: str, path: str) -> Node:
    return Node(NodeKind.html, value=f"<!-- {edge} import: {path} -->", attrs={"trace": edge})


def _normalize(path: Path) -> str:
    return str(path.resolve())


def heading_title(node: Node) -> str:
    """Title text of a markdown heading block, without ATX hashes or a setext underline."""
    first = node.text().strip().split("\n")[0]
    return first.strip().strip("#").strip()


def extract_section(blocks: list[Node], name: str) -> list[Node] | None:
    """Blocks after the heading titled `name` (case-insensitive) up to the next heading
    of the same or a higher level. None when no heading matches.
    """
    wanted = name.strip().lower()
    for i, node in enumerate(blocks):
        if node.kind != NodeKind.heading or node.attrs.get("legal"):
            continue
        if heading_title(node).lower() != wanted:
            continue
        level = node.attrs.get("level") or 1
        end = len(blocks)
        for j in range(i + 1, len(blocks)):
            other = blocks[j]
            if other.kind == NodeKind.heading and (other.attrs.get("level") or 1) <= level:
                end = j
                break
        return blocks[i + 1:end]
    return None


class ImportResolver:
    """Expands import nodes in document order.

    The running metadata starts as the host document's front matter; each
    import's front matter is merged into it as the import is reached, so the
    host wins over every import and earlier imports win over later ones.
    """

    def __init__(self, diagnostics: Diagnostics, options: ImportOptions = None):
        self.diagnostics = diagnostics
        self.options = options or ImportOptions()
        self.metadata = MetadataTree()
        self.imported: list[str] = []
        self.conflicts: list[MergeConflictRecord] = []
        self._host_depth = 0

    def expand(
        self,
        tree: Node,
        metadata: MetadataTree,
        base_path: Path,
        active_stack: list[str] = None,
        ) -> ImportResult:
        self.metadata = metadata
        stack = list(active_stack or [])
        self._host_depth = len(stack)
        self._expand_children(tree, Path(base_path), stack)
        return ImportResult(tree, self.metadata, list(self.imported), list(self.conflicts))

    def _expand_children(self, parent: Node, base_path: Path, stack: list[str]) -> None:
        i = 0
        while i < len(parent.children):
            node = parent.children[i]
            if node.kind != NodeKind.import_:
                i += 1
                continue
            replacement = self._expand_one(node, base_path, stack)
            parent.children[i:i + 1] = replacement
            i += len(replacement)

    def _expand_one(self, node: Node, base_path: Path, stack: list[str]) -> list[Node]:
        rel = node.attrs["path"]
        section = node.attrs.get("section")
        label = f"{rel}#{section}" if section else rel
        target = base_path / rel
        depth = len(stack) - self._host_depth
        key = _normalize(target)

        if key in stack:
            self.diagnostics.error(
                "import-cycle", STAGE,
                f"Circular import of {rel} ({' -> '.join(stack + [key])})", source=rel,
            )
            return [error_marker("circular import", rel)]

        if depth >= self.options.max_depth:
            self.diagnostics.error(
                "import-depth", STAGE,
                f"Maximum import depth ({self.options.max_depth}) reached at {rel}", source=rel,
            )
            return [error_marker("maximum import depth exceeded", rel)]

        try:
            parsed = parse_file(target, self.options.parser_config)
        except (OSError, UnicodeDecodeError) as e:
            self.diagnostics.error("import-not-found", STAGE, f"Cannot read import {rel}: {e}", source=rel)
            return [error_marker("file not found", rel)]

        if parsed.frontmatter_error:
            self.diagnostics.warning("invalid-frontmatter", STAGE, f"{rel}: {parsed.frontmatter_error}", source=rel)
        if self.options.merge_metadata and parsed.frontmatter:
            self._merge(parsed.frontmatter, rel)

        if key not in self.imported:
            self.imported.append(key)
        logger.debug("Expanding import %s (depth %d)", label, depth + 1)

        if section:
            blocks = extract_section(parsed.tree.children, section)
            if blocks is None:
                self.diagnostics.warning(
                    "import-section-not-found", STAGE,
                    f"Section '{section}' not found in {rel}; importing the whole file", source=label,
                )
            else:
                parsed.tree.children = blocks

        stack.append(key)
        try:
            self._expand_children(parsed.tree, target.parent, stack)
        finally:
            stack.pop()

        body = parsed.tree.children
        if self.options.tracing:
            return [_trace("start", label), *body, _trace("end", label)]
        return body

    def _merge(self, frontmatter: dict, source: str) -> None:
        result = merge_metadata(self.metadata, MetadataTree.from_plain(frontmatter))
        self.metadata = result.metadata
        self.conflicts.extend(result.conflicts)
        for conflict in result.conflicts:
            self.diagnostics.warning(
                "merge-conflict", STAGE,
                f"Type conflict for '{conflict.path}' from {source}: "
                f"existing={conflict.existing_kind}, imported={conflict.incoming_kind}; existing value kept",
                source=source,
            )
        for key in result.filtered:
            self.diagnostics.info("reserved-key", STAGE, f"Reserved key '{key}' ignored from {source}", source=source)


def expand_imports(
    tree: Node,
    metadata: MetadataTree,
    base_path: Path,
    active_stack: list[str] = None,
    diagnostics: Diagnostics = None,
    options: ImportOptions = None,
    ) -> ImportResult:
    """Expand every import node in tree; failures become inline error markers."""
    resolver = ImportResolver(diagnostics if diagnostics is not None else Diagnostics(), options)
    return resolver.expand(tree, metadata, base_path, active_stack)
