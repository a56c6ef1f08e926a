"""Project display names derived from Claude Code project directory ids."""

from __future__ import annotations

import re
from pathlib import Path

# Characters Claude Code replaces with '-' when naming a project directory
_ENCODE_RE = re.compile(r"[ .@#$%^&*()+=\[\]{}|\\:;\"'<>?,/]")


def encode_project_path(path: str) -> str:
    """e.g. '/Users/jane/Projects' -> '-Users-jane-Projects'"""
    return _ENCODE_RE.sub("-", path)


def get_project_name(project_id: str, home: str | None = None) -> str:
    """Strip the encoded home directory prefix from a project id.

    e.g. '-Users-jane-Projects-foo' -> 'Projects-foo'
    Display only; aggregation always keys by the raw project id.
    """
    if home is None:
        home = str(Path.home())
    prefix = f"{encode_project_path(home)}-"
    if project_id.startswith(prefix):
        return project_id[len(prefix):]
    return project_id
