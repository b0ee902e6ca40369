"""Shared test fixtures for claude-overseer."""

import os
import sys
from pathlib import Path

import pytest

from helpers import assistant_line, user_line


@pytest.fixture(scope="session")
def qapp():
    """Create a QCoreApplication for tests that need Qt signals and timers."""
    os.environ["QT_QPA_PLATFORM"] = "offscreen"
    from PySide6.QtCore import QCoreApplication

    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication(sys.argv or ["test"])
    yield app


@pytest.fixture
def projects_root(tmp_path) -> Path:
    """A temporary Claude projects directory with a single project."""
    root = tmp_path / ".claude" / "projects"
    (root / "-home-wiz-projects-myapp").mkdir(parents=True)
    return root


@pytest.fixture
def project_dir(projects_root) -> Path:
    return projects_root / "-home-wiz-projects-myapp"


@pytest.fixture
def session_file(project_dir) -> Path:
    """A session file with one user message and one priced assistant reply."""
    path = project_dir / "sess-001.jsonl"
    path.write_text(
        user_line("u-1", "Hello") + "\n"
        + assistant_line("a-1", "claude-sonnet-4-5-20250929", input_tokens=1000, output_tokens=500) + "\n"
    )
    return path


@pytest.fixture
def cache_file(tmp_path) -> Path:
    return tmp_path / "cache" / "cost-cache.json"
