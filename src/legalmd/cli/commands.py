"""CLI command implementations"""

import json
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer

from legalmd.config import Settings, load_config
from legalmd.core.errors import LegalMarkdownError
from legalmd.core.parse import discover_files
from legalmd.core.pipeline import DEFAULT_STAGES, process_file, stages_for
from legalmd.core.stages import validate_stage_order


def _fail(msg: str, cause: Exception = None) -> None:
    """Print a user-friendly error to stderr and exit 1."""
    typer.echo(f"Error: {msg}", err=True)
    if cause:
        typer.echo(f"  {cause}", err=True)
    raise typer.Exit(1)


def _settings(overrides: dict = None) -> Settings:
    """Load config with standard CLI error handling."""
    try:
        return load_config(overrides=overrides)
    except ValueError as e:
        _fail(str(e))


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def build_sidecar(result) -> dict:
    """JSON sidecar for a processed document: metadata, references, imports, diagnostics."""
    return {
        "metadata": result.metadata,
        "cross_references": [r.model_dump() for r in result.cross_references],
        "imported_files": result.imported_files,
        "stage_order": result.stage_order,
        "diagnostics": [d.model_dump(mode="json") for d in result.diagnostics],
    }


def build_cmd(
    path: Annotated[str, typer.Argument(help="File or directory to process")],
    out: Annotated[Optional[str], typer.Option("--out-dir", help="Output directory")] = None,
    tracing: Annotated[Optional[bool], typer.Option("--import-tracing/--no-import-tracing", help="Wrap imported regions in comments")] = None,
    strict: Annotated[Optional[bool], typer.Option("--strict/--no-strict", help="Fail on malformed front matter and error diagnostics")] = None,
    style: Annotated[Optional[str], typer.Option("--heading-style", help="plain or markdown")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
    ):
    """Resolve imports, headers, fields and references; write .md + .json per document."""
    _configure_logging(verbose)
    settings = _settings(overrides={
        "output_dir": out, "import_tracing": tracing, "heading_style": style,
        "strict_frontmatter": strict, "throw_on_error": strict,
    })
    files = discover_files(Path(path))
    if not files:
        _fail(f"No markdown files found at {path}")

    output_dir = Path(settings.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    for src in files:
        try:
            result = process_file(src, settings)
        except (LegalMarkdownError, OSError) as e:
            _fail(f"Failed to process {src}", e)
        md_path = output_dir / f"{src.stem}.md"
        json_path = output_dir / f"{src.stem}.json"
        md_path.write_text(result.content, encoding="utf-8")
        json_path.write_text(
            json.dumps(build_sidecar(result), indent=2, ensure_ascii=False, default=str),
            encoding="utf-8",
        )
        typer.echo(f"  {src} -> {md_path} ({len(result.diagnostics)} diagnostic(s))")
    typer.echo(f"Processed {len(files)} document(s) to {output_dir}/")


def stages_cmd(
    order: Annotated[Optional[str], typer.Option("--order", help="Comma-separated stage ids to validate")] = None,
    ):
    """Show the stage order, or validate a custom order and suggest a corrected one."""
    if not order:
        for s in DEFAULT_STAGES:
            typer.echo(f"{s.id}: {s.description}")
        return
    try:
        stages = stages_for([i.strip() for i in order.split(",") if i.strip()])
    except KeyError as e:
        _fail(f"Unknown stage {e}")
    result = validate_stage_order(stages)
    if result.valid:
        typer.echo("Stage order is valid.")
        return
    for v in result.violations:
        typer.echo(f"  - {v.rule}")
    if result.suggested_order:
        typer.echo(f"Suggested order: {' -> '.join(result.suggested_order)}")
    raise typer.Exit(1)
