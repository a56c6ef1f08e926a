"""Shared test fixtures for ccview tests."""

from pathlib import Path

import pytest

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def fixtures_projects_dir():
    """Path to the checked-in sample projects tree."""
    return FIXTURES_DIR / "projects"


@pytest.fixture
def sample_project_dir(fixtures_projects_dir):
    """Project holding session-001 (spawns one agent) and its agent session."""
    return fixtures_projects_dir / "-Users-testuser-projects-my-project"


@pytest.fixture
def projects_dir(tmp_path):
    """An empty ~/.claude/projects directory."""
    path = tmp_path / "projects"
    path.mkdir()
    return path
