"""CLI entrypoint: Typer app definition and command registration"""

import typer

from legalmd.cli.commands import build_cmd, stages_cmd


app = typer.Typer(name="legalmd", no_args_is_help=True, help="Legal markdown document processing pipeline")

app.command(name="build")(build_cmd)
app.command(name="stages")(stages_cmd)
