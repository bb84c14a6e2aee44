"""Integration tests for the build and stages commands"""

import json

from typer.testing import CliRunner

from legalmd.cli.cli import app


runner = CliRunner()


def test_build_cmd_writes_markdown_and_sidecar(tmp_path, monkeypatch):
    """build produces a resolved .md and a .json sidecar for each document."""
    monkeypatch.chdir(tmp_path)
    (tmp_path / "contract.md").write_text(
        '---\nclient: Acme\nlevel-one: "Article %n."\n---\n'
        "l. Parties |parties|\n\nThis agreement binds {{client}}. See |parties|.\n"
    )

    result = runner.invoke(app, ["build", "contract.md", "--out-dir", str(tmp_path / "dist")])

    assert result.exit_code == 0, result.output
    assert "Processed 1 document(s)" in result.output
    md = (tmp_path / "dist" / "contract.md").read_text()
    assert md == "Article 1. Parties\n\nThis agreement binds Acme. See Article 1..\n"
    sidecar = json.loads((tmp_path / "dist" / "contract.json").read_text())
    assert sidecar["metadata"]["client"] == "Acme"
    assert sidecar["cross_references"][0]["key"] == "parties"
    assert sidecar["stage_order"][0] == "imports"
    assert sidecar["diagnostics"] == []


def test_build_cmd_directory_with_import(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    docs = tmp_path / "docs"
    (docs / "clauses").mkdir(parents=True)
    (docs / "main.md").write_text("Intro\n\n@import clauses/terms.md\n")
    (docs / "clauses" / "terms.md").write_text("---\nauthor: X\n---\nTerms apply.\n")

    result = runner.invoke(app, ["build", "docs", "--out-dir", "out", "--import-tracing"])

    assert result.exit_code == 0, result.output
    main = (tmp_path / "out" / "main.md").read_text()
    assert "<!-- start import: clauses/terms.md -->" in main
    assert "Terms apply." in main
    sidecar = json.loads((tmp_path / "out" / "main.json").read_text())
    assert sidecar["metadata"] == {"author": "X"}
    assert len(sidecar["imported_files"]) == 1


def test_build_cmd_reports_missing_import_without_failing(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "doc.md").write_text("@import missing.md\n")

    result = runner.invoke(app, ["build", "doc.md"])

    assert result.exit_code == 0, result.output
    assert "(1 diagnostic(s))" in result.output
    assert "import error: file not found: missing.md" in (tmp_path / "dist" / "doc.md").read_text()


def test_build_cmd_strict_fails_on_error(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "doc.md").write_text("@import missing.md\n")

    result = runner.invoke(app, ["build", "doc.md", "--strict"])

    assert result.exit_code == 1
    assert "Failed to process" in result.output


def test_build_cmd_no_files(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(app, ["build", "."])
    assert result.exit_code == 1
    assert "No markdown files found" in result.output


def test_stages_cmd_lists_default_order():
    result = runner.invoke(app, ["stages"])
    assert result.exit_code == 0
    ids = [line.split(":")[0] for line in result.output.splitlines()]
    assert ids == ["imports", "legal-headers", "header-numbering", "template-fields", "cross-references"]


def test_stages_cmd_valid_order():
    result = runner.invoke(app, ["stages", "--order", "imports,template-fields"])
    assert result.exit_code == 0
    assert "Stage order is valid." in result.output


def test_stages_cmd_invalid_order_suggests_fix():
    result = runner.invoke(app, ["stages", "--order", "cross-references,imports"])
    assert result.exit_code == 1
    assert '"imports" must run BEFORE "cross-references"' in result.output
    assert "Suggested order: imports -> cross-references" in result.output


def test_stages_cmd_unknown_stage():
    result = runner.invoke(app, ["stages", "--order", "imports,spellcheck"])
    assert result.exit_code == 1
    assert "Unknown stage" in result.output
