"""Header format templates: per-level configuration, fallback inference and token rendering"""

import math
import re
from dataclasses import dataclass, field

from legalmd.core.utils.numerals import alpha, roman


MAX_LEVEL = 9

# Used for any level the document does not configure (unless inherited, see below).
DEFAULT_FORMATS: tuple[str, ...] = (
    "Article %n.",
    "Section %n.",
    "%n.",
    "(%n)",
    "(%A)",
    "(%a)",
    "(%R)",
    "(%r)",
    "%n.",
)

DEFAULT_LEVEL_INDENT = 1.5

_LEVEL_WORDS = ("one", "two", "three", "four", "five", "six", "seven", "eight", "nine")

TOKEN_RE = re.compile(r"%(0\d+)?([nsrRaAct])")


def _format_keys(level: int) -> tuple[str, ...]:
    word = _LEVEL_WORDS[level - 1]
    return (f"level-{word}", f"level-{level}", f"level_{word}", f"level{level}")


def _level_list(raw, marker_token: str) -> set[int]:
    """Parse 'no-reset'/'no-indent' values: numbers or marker patterns, space/comma separated."""
    if raw is None or raw is False:
        return set()
    if isinstance(raw, (list, tuple)):
        items = [str(x) for x in raw]
    else:
        items = re.split(r"[\s,]+", str(raw))
    levels = set()
    for item in items:
        item = item.strip().rstrip(".")
        if not item:
            continue
        repeats = len(item) // len(marker_token)
        if item.isdigit():
            level = int(item)
        elif item.startswith(marker_token) and item[len(marker_token):].isdigit():
            level = int(item[len(marker_token):])       # 'l3'
        elif item == marker_token * repeats:
            level = repeats                             # 'lll'
        else:
            continue
        if 1 <= level <= MAX_LEVEL:
            levels.add(level)
    return levels


def infer_formats(configured: dict[int, str]) -> list[str]:
    """Complete a partial level -> template mapping for all nine levels.

    An unconfigured level inherits the nearest configured level above it when
    that template is hierarchical (uses %s); otherwise it takes DEFAULT_FORMATS.
    """
    formats = []
    for level in range(1, MAX_LEVEL + 1):
        if level in configured:
            formats.append(configured[level])
            continue
        above = [lv for lv in configured if lv < level]
        if above and "%s" in configured[max(above)]:
            formats.append(configured[max(above)])
        else:
            formats.append(DEFAULT_FORMATS[level - 1])
    return formats


@dataclass
class HeaderFormatConfig:
    formats:      list[str] = field(default_factory=lambda: list(DEFAULT_FORMATS))
    no_reset:     set[int] = field(default_factory=set)
    no_indent:    set[int] = field(default_factory=set)
    indent_off:   bool = False
    level_indent: float = DEFAULT_LEVEL_INDENT
    joiner:       str = "."

    @classmethod
    def from_metadata(
        cls,
        metadata: dict,
        marker_token: str = "l",
        joiner: str = ".",
        indent_off: bool = False,
        ) -> "HeaderFormatConfig":
        configured = {}
        for level in range(1, MAX_LEVEL + 1):
            for key in _format_keys(level):
                value = metadata.get(key)
                if isinstance(value, str) and value.strip():
                    configured[level] = value
                    break
        try:
            level_indent = float(metadata.get("level-indent", DEFAULT_LEVEL_INDENT))
        except (TypeError, ValueError):
            level_indent = DEFAULT_LEVEL_INDENT
        return cls(
            formats=infer_formats(configured),
            no_reset=_level_list(metadata.get("no-reset"), marker_token),
            no_indent=_level_list(metadata.get("no-indent"), marker_token),
            indent_off=indent_off,
            level_indent=level_indent,
            joiner=joiner,
        )

    def template(self, level: int) -> str:
        return self.formats[level - 1]

    def indent(self, level: int) -> int:
        """Number of indentation spaces for a header of this level."""
        if self.indent_off or level in self.no_indent:
            return 0
        return math.floor((level - 1) * self.level_indent * 2)


def render_label(template: str, counters: list[int], level: int, joiner: str = ".") -> str:
    """Substitute numbering tokens in template for the header at `level`."""
    current = counters[level - 1]

    def _sub(m: re.Match) -> str:
        pad, token = m.group(1), m.group(2)
        if token == "n":
            text = str(current)
            return text.zfill(int(pad)) if pad else text
        if token == "s":
            parts = [str(c) for c in counters[:level - 1] if c > 0] + [str(current)]
            return joiner.join(parts)
        if token == "r":
            return roman(current, lowercase=True)
        if token == "R":
            return roman(current)
        if token in ("a", "c"):
            return alpha(current)
        if token == "A":
            return alpha(current, uppercase=True)
        return "\t"     # %t

    return TOKEN_RE.sub(_sub, template)
