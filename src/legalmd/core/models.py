"""Result and diagnostic models shared by the pipeline stages"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel

from legalmd.core.errors import DiagnosticError


logger = logging.getLogger(__name__)


class Severity(str, Enum):
    info    = "info"
    warning = "warning"
    error   = "error"


_LOG_LEVELS = {
    Severity.info:    logging.INFO,
    Severity.warning: logging.WARNING,
    Severity.error:   logging.ERROR,
}


class Diagnostic(BaseModel):
    """A non-fatal problem recorded while processing a document."""
    severity: Severity
    code:     str                       # e.g. 'import-not-found', 'undefined-reference'
    stage:    str
    message:  str
    source:   Optional[str] = None      # file path or key the diagnostic refers to


class MergeConflictRecord(BaseModel):
    """Type mismatch seen during a front matter merge; the target value is kept."""
    path:          str
    existing_kind: str
    incoming_kind: str


class CrossReference(BaseModel):
    """A header anchor collected by the cross-reference definition pass."""
    key:   str
    level: int
    label: str                          # rendered numbering, e.g. 'Art. 1 -'
    text:  str                          # label followed by the header content


class Diagnostics:
    """Run-wide diagnostic accumulator; raises on errors only when asked to."""

    def __init__(self, throw_on_error: bool = False):
        self.throw_on_error = throw_on_error
        self.items: list[Diagnostic] = []

    def add(
        self,
        severity: Severity,
        code: str,
        stage: str,
        message: str,
        source: str = None,
        ) -> Diagnostic:
        diag = Diagnostic(severity=severity, code=code, stage=stage, message=message, source=source)
        self.items.append(diag)
        logger.log(_LOG_LEVELS[severity], "[%s] %s: %s", stage, code, message)
        if self.throw_on_error and severity == Severity.error:
            raise DiagnosticError(diag)
        return diag

    def info(self, code: str, stage: str, message: str, source: str = None) -> Diagnostic:
        return self.add(Severity.info, code, stage, message, source)

    def warning(self, code: str, stage: str, message: str, source: str = None) -> Diagnostic:
        return self.add(Severity.warning, code, stage, message, source)

    def error(self, code: str, stage: str, message: str, source: str = None) -> Diagnostic:
        return self.add(Severity.error, code, stage, message, source)

    def by_code(self, code: str) -> list[Diagnostic]:
        return [d for d in self.items if d.code == code]

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)


@dataclass
class ParsedDocument:
    """Front matter and raw block tree for one source text; not persisted."""
    frontmatter: dict[str, Any]
    body:        str                    # source without the front matter block
    tree:        Any                    # root Node
    path:        Optional[Path] = None
    frontmatter_error: Optional[str] = None


@dataclass
class PipelineResult:
    """Everything handed to renderers: resolved text, tree, metadata and diagnostics."""
    content:          str
    metadata:         dict[str, Any]
    tree:             Any
    diagnostics:      list[Diagnostic]
    cross_references: list[CrossReference] = field(default_factory=list)
    imported_files:   list[str] = field(default_factory=list)
    stage_order:      list[str] = field(default_factory=list)
    merge_conflicts:  list[MergeConflictRecord] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(d.severity == Severity.error for d in self.diagnostics)
