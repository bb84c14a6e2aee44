"""Application configuration: settings schema and config.yaml loader"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


CONFIG_FILE = "config.yaml"
ENV_PREFIX = "LEGALMD_"


class Settings(BaseModel):
    app_name:      str = "legalmd"
    parser_config: str = Field(default="gfm-like", description="MarkdownIt parser preset name")
    marker_token:  str = Field(default="l", min_length=1, description="Token repeated to mark legal header levels")
    header_joiner: str = Field(default=".", description="Joiner between parent levels in %s numbering")
    heading_style: str = Field(default="plain", pattern="^(plain|markdown)$", description="Serialize numbered headers as plain lines or # headings")
    no_indent:     bool = Field(default=False, description="Disable header indentation entirely")

    strict_frontmatter: bool = Field(default=False, description="Malformed front matter aborts the run")
    throw_on_error:     bool = Field(default=False, description="Raise on the first error diagnostic")

    merge_frontmatter: bool = Field(default=True, description="Merge imported front matter into the document")
    import_tracing:    bool = Field(default=False, description="Wrap imported regions in start/end comments")
    max_import_depth:  int  = Field(default=10, ge=1, description="Maximum nesting of @import directives")

    validate_stage_order:     bool = Field(default=True, description="Check stage order constraints before running")
    abort_on_order_violation: bool = Field(default=False, description="Raise instead of logging order violations")

    output_dir: str = Field(default="dist", description="Directory for processed markdown + JSON sidecars")


def load_config(overrides: dict[str, Any] = None) -> Settings:
    """Load Settings from config.yaml, then LEGALMD_<FIELD> env vars, then non-None CLI overrides."""
    data: dict[str, Any] = {}
    if Path(CONFIG_FILE).exists():
        try:
            data = yaml.safe_load(Path(CONFIG_FILE).read_text()) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid {CONFIG_FILE}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Invalid {CONFIG_FILE}: expected a mapping")

    for name in Settings.model_fields:
        if val := os.getenv(f"{ENV_PREFIX}{name.upper()}"):
            data[name] = val

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})
    return Settings(**data)
