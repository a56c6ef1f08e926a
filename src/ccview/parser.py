"""JSONL parser — enumerates Claude Code project logs and decodes session records."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from ccview.models import (
    ContentItem,
    SessionFile,
    SessionRecord,
    TextItem,
    ToolInvocation,
    ToolOutcome,
)

logger = logging.getLogger(__name__)


def _str(value: object) -> str | None:
    """The value if it is a string, else None."""
    return value if isinstance(value, str) else None


def list_projects(projects_dir: Path) -> list[str]:
    """Names of the project directories directly under projects_dir."""
    projects_dir = Path(projects_dir)
    if not projects_dir.is_dir():
        logger.warning("Projects directory does not exist: %s", projects_dir)
        return []
    return sorted(p.name for p in projects_dir.iterdir() if p.is_dir())


def find_project_dir(projects_dir: Path, project_id: str) -> Path | None:
    """The directory for project_id, or None if there is no such project."""
    if not project_id or project_id in (".", "..") or "/" in project_id or "\\" in project_id:
        return None
    project_dir = Path(projects_dir) / project_id
    return project_dir if project_dir.is_dir() else None


def list_session_files(project_dir: Path) -> list[SessionFile]:
    """All session files in one project directory, with size and mtime."""
    project_dir = Path(project_dir)
    results: list[SessionFile] = []
    for jsonl_file in sorted(project_dir.glob("*.jsonl")):
        try:
            file_stat = jsonl_file.stat()
        except OSError as e:
            logger.warning("Could not stat %s: %s", jsonl_file, e)
            continue
        results.append(SessionFile(
            filename=jsonl_file.name,
            path=str(jsonl_file),
            size=file_stat.st_size,
            mtime=datetime.fromtimestamp(file_stat.st_mtime, tz=timezone.utc),
        ))
    return results


def parse_jsonl_file(file_path: Path) -> list[SessionRecord]:
    """Parse a session file into its ordered records.

    Blank lines are skipped. A malformed line fails the whole file with a
    ValueError; callers decide whether to skip the file.
    """
    file_path = Path(file_path)
    records: list[SessionRecord] = []
    with open(file_path, encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                data = json.loads(line)
            except json.JSONDecodeError as e:
                raise ValueError(f"{file_path}:{line_no}: invalid JSON ({e.msg})") from e
            if not isinstance(data, dict):
                raise ValueError(f"{file_path}:{line_no}: expected an object")
            records.append(parse_record(data))
    return records


def parse_record(data: dict) -> SessionRecord:
    """Decode one JSONL object into a SessionRecord."""
    message = data.get("message")
    if not isinstance(message, dict):
        message = {}

    usage = message.get("usage")
    tool_use_result = data.get("toolUseResult")
    agent_id = _str(data.get("agentId"))
    if not agent_id and isinstance(tool_use_result, dict):
        agent_id = _str(tool_use_result.get("agentId"))

    return SessionRecord(
        kind=_str(data.get("type")) or "",
        timestamp=_parse_timestamp(data.get("timestamp")),
        role=_str(message.get("role")),
        model=_str(message.get("model")),
        usage=usage if isinstance(usage, dict) else None,
        content=_parse_content(message.get("content")),
        agent_id=agent_id or None,
        raw=data,
    )


def _parse_content(content: object) -> list[ContentItem]:
    if isinstance(content, str):
        return [TextItem(text=content)]
    if not isinstance(content, list):
        return []

    items: list[ContentItem] = []
    for item in content:
        if not isinstance(item, dict):
            continue
        item_type = item.get("type")
        if item_type == "text":
            items.append(TextItem(text=_str(item.get("text")) or ""))
        elif item_type == "tool_use":
            tool_input = item.get("input")
            items.append(ToolInvocation(
                id=_str(item.get("id")),
                name=_str(item.get("name")) or "",
                input=tool_input if isinstance(tool_input, dict) else {},
            ))
        elif item_type == "tool_result":
            items.append(ToolOutcome(
                tool_use_id=_str(item.get("tool_use_id")),
                is_error=item.get("is_error") is True,
                content=item.get("content"),
            ))
        # thinking, image, etc. carry nothing the statistics need
    return items


def _parse_timestamp(ts: object) -> datetime | None:
    """Parse an ISO 8601 timestamp into an aware datetime (naive means local time)."""
    if not ts or not isinstance(ts, str):
        return None
    # Handle Z suffix
    ts = ts.replace("Z", "+00:00")
    try:
        parsed = datetime.fromisoformat(ts)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed
