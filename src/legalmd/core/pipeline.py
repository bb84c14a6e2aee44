"""Pipeline orchestration: stage functions, the default stage list, and run entry points"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from legalmd.config import Settings
from legalmd.core.errors import StageOrderError
from legalmd.core.fields import DefaultExpander, FieldExpander, expand_fields
from legalmd.core.headers.formats import HeaderFormatConfig
from legalmd.core.headers.markers import parse_legal_headers
from legalmd.core.headers.numbering import number_headers
from legalmd.core.imports import ImportOptions, expand_imports
from legalmd.core.metadata import MetadataTree
from legalmd.core.models import CrossReference, Diagnostics, MergeConflictRecord, PipelineResult
from legalmd.core.parse import parse_text
from legalmd.core.render import render_markdown
from legalmd.core.stages import StageDescriptor, validate_stage_order
from legalmd.core.tree import Node
from legalmd.core.xref import collect_definitions, resolve_references


logger = logging.getLogger(__name__)


@dataclass
class PipelineContext:
    """Mutable state for one document run; each stage reads and rewrites it in turn."""
    tree:             Node
    metadata:         MetadataTree
    base_path:        Path
    settings:         Settings
    diagnostics:      Diagnostics
    expander:         FieldExpander
    active_stack:     list[str] = field(default_factory=list)
    imported_files:   list[str] = field(default_factory=list)
    merge_conflicts:  list[MergeConflictRecord] = field(default_factory=list)
    cross_references: list[CrossReference] = field(default_factory=list)


def run_imports(ctx: PipelineContext) -> None:
    """Expand @import directives and merge imported front matter."""
    merge = ctx.settings.merge_frontmatter and not ctx.metadata.get("disable-frontmatter-merge", False)
    options = ImportOptions(
        parser_config=ctx.settings.parser_config,
        merge_metadata=bool(merge),
        tracing=ctx.settings.import_tracing or bool(ctx.metadata.get("import-tracing", False)),
        max_depth=ctx.settings.max_import_depth,
    )
    result = expand_imports(ctx.tree, ctx.metadata, ctx.base_path, ctx.active_stack, ctx.diagnostics, options)
    ctx.tree = result.tree
    ctx.metadata = result.metadata
    ctx.imported_files = result.imported
    ctx.merge_conflicts = result.conflicts


def run_legal_headers(ctx: PipelineContext) -> None:
    """Turn legal header marker lines into marker nodes."""
    count = parse_legal_headers(ctx.tree, ctx.settings.marker_token)
    logger.debug("Parsed %d legal header markers", count)


def run_header_numbering(ctx: PipelineContext) -> None:
    """Number legal header markers using the document's level formats."""
    config = HeaderFormatConfig.from_metadata(
        ctx.metadata.to_plain(),
        marker_token=ctx.settings.marker_token,
        joiner=ctx.settings.header_joiner,
        indent_off=ctx.settings.no_indent,
    )
    number_headers(ctx.tree, config)


def run_template_fields(ctx: PipelineContext) -> None:
    """Resolve conditional clauses and {{field}} expressions against metadata."""
    stats = expand_fields(ctx.tree, ctx.metadata.to_plain(), ctx.expander, ctx.diagnostics)
    logger.debug("Resolved %d template fields, %d unresolved", stats.resolved, len(stats.unresolved))


def run_cross_references(ctx: PipelineContext) -> None:
    """Collect header anchors, then substitute |key| usages."""
    table = collect_definitions(ctx.tree, ctx.diagnostics)
    resolve_references(ctx.tree, table, ctx.metadata.to_plain(), ctx.diagnostics)
    ctx.cross_references = list(table)


DEFAULT_STAGES: tuple[StageDescriptor, ...] = (
    StageDescriptor(
        id="imports",
        run=run_imports,
        must_run_before=("legal-headers", "header-numbering", "template-fields", "cross-references"),
        description="Expand @import directives and merge imported front matter",
    ),
    StageDescriptor(
        id="legal-headers",
        run=run_legal_headers,
        must_run_after=("imports",),
        must_run_before=("header-numbering",),
        description="Parse legal header markers (l., ll., ...)",
    ),
    StageDescriptor(
        id="header-numbering",
        run=run_header_numbering,
        must_run_after=("legal-headers",),
        must_run_before=("cross-references",),
        description="Number legal headers from level format templates",
    ),
    StageDescriptor(
        id="template-fields",
        run=run_template_fields,
        must_run_after=("imports",),
        must_run_before=("cross-references",),
        description="Resolve {{field}} expressions and [text]{condition} clauses",
    ),
    StageDescriptor(
        id="cross-references",
        run=run_cross_references,
        must_run_after=("header-numbering", "template-fields"),
        description="Resolve |key| cross-references to header numbers",
    ),
)

STAGES_BY_ID: dict[str, StageDescriptor] = {s.id: s for s in DEFAULT_STAGES}


def stages_for(order: list[str]) -> list[StageDescriptor]:
    """Look up descriptors for a list of stage ids. Raises KeyError for unknown ids."""
    return [STAGES_BY_ID[i] for i in order]


def check_order(stages: list[StageDescriptor], settings: Settings, diagnostics: Diagnostics) -> None:
    """Validate stage order; violations become diagnostics or raise StageOrderError."""
    result = validate_stage_order(stages)
    if result.valid:
        return
    if settings.abort_on_order_violation:
        raise StageOrderError(result.violations, result.suggested_order)
    for v in result.violations:
        diagnostics.warning("stage-order", "pipeline", v.rule, source=v.stage)
    if result.suggested_order:
        logger.warning("Suggested stage order: %s", " -> ".join(result.suggested_order))


def run_pipeline(
    text: str,
    base_path: Path | str = ".",
    settings: Settings = None,
    stages: list[StageDescriptor] = None,
    expander: FieldExpander = None,
    source_path: Optional[Path] = None,
    ) -> PipelineResult:
    """Process raw document text through every stage and return the resolved result.

    Stage-local failures are reported in result.diagnostics; only strict front
    matter, throw_on_error and abort_on_order_violation raise.

    Pass source_path when the text was read from a file: it seeds the import
    cycle guard. Without it a cycle back to the host (A -> B -> A) is only caught
    on re-entry, so the host body appears once more before the error marker.
    """
    settings = settings or Settings()
    stages = list(stages if stages is not None else DEFAULT_STAGES)
    diagnostics = Diagnostics(throw_on_error=settings.throw_on_error)

    if settings.validate_stage_order:
        check_order(stages, settings, diagnostics)

    parsed = parse_text(text, settings.parser_config, source_path, strict=settings.strict_frontmatter)
    if parsed.frontmatter_error:
        diagnostics.warning("invalid-frontmatter", "parse", parsed.frontmatter_error,
                            source=str(source_path) if source_path else None)

    ctx = PipelineContext(
        tree=parsed.tree,
        metadata=MetadataTree.from_plain(parsed.frontmatter),
        base_path=Path(base_path),
        settings=settings,
        diagnostics=diagnostics,
        expander=expander or DefaultExpander(),
        active_stack=[str(source_path.resolve())] if source_path else [],
    )
    for stage in stages:
        logger.debug("Running stage %s", stage.id)
        stage.run(ctx)

    return PipelineResult(
        content=render_markdown(ctx.tree, settings.heading_style),
        metadata=ctx.metadata.to_plain(),
        tree=ctx.tree,
        diagnostics=list(diagnostics),
        cross_references=ctx.cross_references,
        imported_files=ctx.imported_files,
        stage_order=[s.id for s in stages],
        merge_conflicts=ctx.merge_conflicts,
    )


def process_file(path: Path | str, settings: Settings = None, **kwargs) -> PipelineResult:
    """Read a document from disk and run the pipeline with imports relative to its directory."""
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    return run_pipeline(text, path.parent, settings, source_path=path, **kwargs)
