"""Root test configuration: helpers for writing document trees to disk"""

import os
from pathlib import Path

import pytest


@pytest.fixture(name="write_doc")
def write_doc_fixture(tmp_path):
    """Write a markdown file under tmp_path and return its path."""
    def _write(name: str, text: str) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path
    return _write


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep LEGALMD_* variables from the host environment out of every test."""
    for name in list(os.environ):
        if name.startswith("LEGALMD_"):
            monkeypatch.delenv(name, raising=False)
