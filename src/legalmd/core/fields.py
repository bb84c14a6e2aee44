"""Template field expansion: {{expression}} fields and [text]{condition} clauses

The stage owns tokenizing and invocation order; the expander owns the
expression grammar. Any object with an `expand(request) -> Expansion` method
can stand in for DefaultExpander.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Literal, Optional, Protocol

from legalmd.core.metadata import format_value, lookup
from legalmd.core.models import Diagnostics
from legalmd.core.tree import INLINE_BLOCKS, Node, NodeKind, split_text, text_node, visit


logger = logging.getLogger(__name__)

STAGE = "template-fields"

FIELD_RE = re.compile(r"\{\{\s*([^{}]+?)\s*\}\}")
CLAUSE_RE = re.compile(r"\[([^\[\]]*)\]\{([^{}]+)\}")

_MISSING = object()


@dataclass(frozen=True)
class ExpressionRequest:
    kind:       Literal["field", "clause"]
    expression: str                     # field expression or clause condition
    scope:      dict[str, Any]          # metadata visible to the expression
    body:       str = ""                # clause content; empty for fields


@dataclass(frozen=True)
class Expansion:
    text:      str
    had_logic: bool = False             # helper call, ternary or condition was evaluated
    resolved:  bool = True


class FieldExpander(Protocol):
    def expand(self, request: ExpressionRequest) -> Expansion: ...


# --- default expander -------------------------------------------------------

DEFAULT_HELPERS: dict[str, Callable[..., Any]] = {
    "upper":      lambda v: format_value(v).upper(),
    "lower":      lambda v: format_value(v).lower(),
    "capitalize": lambda v: format_value(v).capitalize(),
    "titleCase":  lambda v: format_value(v).title(),
    "trim":       lambda v: format_value(v).strip(),
    "default":    lambda v, fallback="": v if v not in (None, "") else fallback,
    "join":       lambda items, sep=", ": sep.join(format_value(i) for i in (items or [])),
}

_CALL_RE = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)\s*\((.*)\)$", re.DOTALL)
_STRING_RE = re.compile(r"""^(["'])(.*)\1$""", re.DOTALL)
_NUMBER_RE = re.compile(r"^-?\d+(\.\d+)?$")
_COMPARE_RE = re.compile(r"^(.+?)\s*(==|!=|>=|<=|>|<)\s*(.+)$")


def _split_top(text: str, sep: str) -> list[str]:
    """Split on sep outside quotes and parentheses."""
    parts, buf, depth, quote = [], [], 0, None
    i = 0
    while i < len(text):
        ch = text[i]
        if quote:
            buf.append(ch)
            if ch == quote:
                quote = None
        elif ch in "\"'":
            quote = ch
            buf.append(ch)
        elif ch == "(":
            depth += 1
            buf.append(ch)
        elif ch == ")":
            depth -= 1
            buf.append(ch)
        elif depth == 0 and text.startswith(sep, i):
            parts.append("".join(buf))
            buf = []
            i += len(sep)
            continue
        else:
            buf.append(ch)
        i += 1
    parts.append("".join(buf))
    return [p.strip() for p in parts]


def _split_ternary(expr: str) -> Optional[tuple[str, str, str]]:
    q = _split_top(expr, "?")
    if len(q) != 2:
        return None
    branches = _split_top(q[1], ":")
    if len(branches) != 2:
        return None
    return q[0], branches[0], branches[1]


class DefaultExpander:
    """Small expression evaluator: paths, literals, helpers, ternaries and conditions."""

    def __init__(self, helpers: dict[str, Callable[..., Any]] = None):
        self.helpers = dict(DEFAULT_HELPERS)
        if helpers:
            self.helpers.update(helpers)

    def expand(self, request: ExpressionRequest) -> Expansion:
        if request.kind == "clause":
            keep = self.condition(request.expression, request.scope)
            return Expansion(request.body if keep else "", had_logic=True)
        expr = request.expression
        ternary = _split_ternary(expr)
        if ternary:
            cond, yes, no = ternary
            value = self.operand(yes if self.condition(cond, request.scope) else no, request.scope)
            return Expansion(format_value(None if value is _MISSING else value), had_logic=True)
        value = self.operand(expr, request.scope)
        if value is _MISSING:
            return Expansion("{{" + expr + "}}", resolved=False)
        return Expansion(format_value(value), had_logic=bool(_CALL_RE.match(expr)))

    def operand(self, token: str, scope: dict[str, Any]) -> Any:
        token = token.strip()
        m = _STRING_RE.match(token)
        if m:
            return m.group(2)
        if _NUMBER_RE.match(token):
            return float(token) if "." in token else int(token)
        if token in ("true", "false"):
            return token == "true"
        if token in ("null", "none"):
            return None
        m = _CALL_RE.match(token)
        if m and m.group(1) in self.helpers:
            args = [self.operand(a, scope) for a in _split_top(m.group(2), ",") if a]
            args = [None if a is _MISSING else a for a in args]
            try:
                return self.helpers[m.group(1)](*args)
            except Exception as e:
                logger.debug("Helper %s failed: %s", m.group(1), e)
                return _MISSING
        if m:
            return _MISSING
        return lookup(scope, token, _MISSING)

    def condition(self, expr: str, scope: dict[str, Any]) -> bool:
        expr = expr.strip()
        ors = _split_top(expr, "||")
        if len(ors) > 1:
            return any(self.condition(p, scope) for p in ors)
        ands = _split_top(expr, "&&")
        if len(ands) > 1:
            return all(self.condition(p, scope) for p in ands)
        if expr.startswith("(") and expr.endswith(")"):
            return self.condition(expr[1:-1], scope)
        if expr.startswith("!") and not expr.startswith("!="):
            return not self.condition(expr[1:], scope)
        m = _COMPARE_RE.match(expr)
        if m:
            left, op, right = (self.operand(m.group(1), scope), m.group(2), self.operand(m.group(3), scope))
            left = None if left is _MISSING else left
            right = None if right is _MISSING else right
            return _compare(left, op, right)
        value = self.operand(expr, scope)
        return _truthy(None if value is _MISSING else value)


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in ("", "false", "no", "0")
    return bool(value)


def _compare(left: Any, op: str, right: Any) -> bool:
    if op == "==":
        return left == right or format_value(left) == format_value(right)
    if op == "!=":
        return not (left == right or format_value(left) == format_value(right))
    try:
        return {">": left > right, "<": left < right, ">=": left >= right, "<=": left <= right}[op]
    except TypeError:
        return False


# --- stage ------------------------------------------------------------------

@dataclass
class FieldStats:
    resolved:   int = 0
    unresolved: list[str] = field(default_factory=list)


def _tokenize(block: Node, pattern: re.Pattern, make: Callable[[re.Match], Node]) -> list[Node]:
    """Split the block's text children by pattern; returns the new inline nodes in order."""
    found = []
    children = []
    for child in block.children:
        if child.kind != NodeKind.text or not pattern.search(child.value):
            children.append(child)
            continue
        parts = split_text(child.value, pattern, make)
        found.extend(p for p in parts if p.kind != NodeKind.text)
        children.extend(parts)
    block.children = children
    return found


def _clause_node(m: re.Match) -> Node:
    return Node(NodeKind.clause, value=m.group(0), attrs={"condition": m.group(2).strip(), "body": m.group(1)})


def _field_node(m: re.Match) -> Node:
    return Node(NodeKind.template, value=m.group(0), attrs={"expression": m.group(1).strip()})


def _expression_blocks(tree: Node) -> list[Node]:
    blocks = []
    visit(tree, INLINE_BLOCKS, lambda node, parent, index: blocks.append(node))
    return blocks


def expand_fields(
    tree: Node,
    metadata: dict[str, Any],
    expander: FieldExpander = None,
    diagnostics: Diagnostics = None,
    ) -> FieldStats:
    """Resolve clauses, then template fields, in every inline-bearing block of tree."""
    expander = expander or DefaultExpander()
    diagnostics = diagnostics if diagnostics is not None else Diagnostics()
    stats = FieldStats()

    for blk in _expression_blocks(tree):
        for node in _tokenize(blk, CLAUSE_RE, _clause_node):
            result = expander.expand(ExpressionRequest(
                "clause", node.attrs["condition"], metadata, node.attrs["body"],
            ))
            node.kind, node.value = NodeKind.text, result.text
            node.attrs["had_logic"] = result.had_logic

        for node in _tokenize(blk, FIELD_RE, _field_node):
            expression = node.attrs["expression"]
            result = expander.expand(ExpressionRequest("field", expression, metadata))
            node.attrs["had_logic"] = result.had_logic
            if not result.resolved:
                node.attrs["resolved"] = False
                stats.unresolved.append(expression)
                diagnostics.warning("undefined-field", STAGE, f"Template field '{expression}' is undefined", source=expression)
                continue
            node.kind, node.value = NodeKind.text, result.text
            node.attrs["resolved"] = True
            stats.resolved += 1

    return stats
