"""Session classification, agent-session linking, and the session listing.

A main session spawns agent sessions through Task tool calls. The link is
Task tool_use id -> tool_result carrying an agentId -> agent-<agentId>.jsonl
in the same project directory.
"""

from __future__ import annotations

import copy
import logging
from datetime import datetime, timezone
from pathlib import Path

from ccview.models import (
    ProjectGroup,
    Session,
    SessionFile,
    SessionRecord,
    ToolInvocation,
    ToolOutcome,
)
from ccview.parser import (
    find_project_dir,
    list_projects,
    list_session_files,
    parse_jsonl_file,
)
from ccview.projects import get_project_name
from ccview.titles import extract_session_title

logger = logging.getLogger(__name__)

AGENT_PREFIX = "agent-"
TASK_TOOL = "Task"


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def should_skip_session(records: list[SessionRecord]) -> bool:
    """A lone assistant record with no user turn is a degenerate session."""
    return len(records) == 1 and records[0].kind == "assistant"


def is_agent_session(session_id: str) -> bool:
    return session_id.startswith(AGENT_PREFIX)


def is_empty_file(size: int) -> bool:
    return size == 0


def collect_agent_descriptions(records: list[SessionRecord]) -> dict[str, str]:
    """Map agent session id -> Task description for every completed Task call.

    Pass 1 collects Task tool_use id -> description, and tool_result id ->
    agentId from records that carry an agentId. Pass 2 joins them. A Task
    with no matching result is dropped; later results win.
    """
    task_descriptions: dict[str, str] = {}
    result_agent_ids: dict[str, str] = {}

    for record in records:
        if record.kind == "assistant":
            for item in record.content:
                if (
                    isinstance(item, ToolInvocation)
                    and item.name == TASK_TOOL
                    and item.id
                    and isinstance(item.input.get("description"), str)
                    and item.input["description"]
                ):
                    task_descriptions[item.id] = item.input["description"]

        if record.agent_id:
            for item in record.content:
                if isinstance(item, ToolOutcome) and item.tool_use_id:
                    result_agent_ids[item.tool_use_id] = record.agent_id

    agent_descriptions: dict[str, str] = {}
    for tool_use_id, description in task_descriptions.items():
        agent_id = result_agent_ids.get(tool_use_id)
        if agent_id:
            agent_descriptions[f"{AGENT_PREFIX}{agent_id}"] = description
    return agent_descriptions


def resolve_agent_links(records: list[SessionRecord], project_dir: Path) -> dict[str, str]:
    """Agent descriptions restricted to agent files that exist and are non-empty."""
    project_dir = Path(project_dir)
    links: dict[str, str] = {}
    for agent_session_id, description in collect_agent_descriptions(records).items():
        agent_file = project_dir / f"{agent_session_id}.jsonl"
        try:
            if agent_file.is_file() and not is_empty_file(agent_file.stat().st_size):
                links[agent_session_id] = description
        except OSError as e:
            logger.warning("Could not stat %s: %s", agent_file, e)
    return links


def _task_agent_id(item: dict, tool_use_agent_ids: dict[str, str]) -> str | None:
    tool_use_id = item.get("id")
    if (
        item.get("type") != "tool_use"
        or item.get("name") != TASK_TOOL
        or not isinstance(tool_use_id, str)
    ):
        return None
    return tool_use_agent_ids.get(tool_use_id)


def inject_agent_ids(records: list[SessionRecord]) -> list[dict]:
    """Raw records with agentId copied onto the Task tool_use it answers."""
    tool_use_agent_ids: dict[str, str] = {}
    for record in records:
        if not record.agent_id:
            continue
        for item in record.content:
            if isinstance(item, ToolOutcome) and item.tool_use_id:
                tool_use_agent_ids[item.tool_use_id] = record.agent_id

    messages: list[dict] = []
    for record in records:
        raw = record.raw
        message = raw.get("message")
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, list) or not any(
            isinstance(item, dict) and _task_agent_id(item, tool_use_agent_ids) for item in content
        ):
            messages.append(raw)
            continue
        raw = copy.deepcopy(raw)
        for item in raw["message"]["content"]:
            if isinstance(item, dict):
                agent_id = _task_agent_id(item, tool_use_agent_ids)
                if agent_id:
                    item["agentId"] = agent_id
        messages.append(raw)
    return messages


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def _load_session(
    session_file: SessionFile, project_id: str, project_name: str,
) -> Session | None:
    """Parse one session file; None when it is empty, unreadable, or degenerate."""
    if is_empty_file(session_file.size):
        return None
    try:
        records = parse_jsonl_file(Path(session_file.path))
    except (OSError, ValueError) as e:
        logger.error("Error parsing %s: %s", session_file.path, e)
        return None
    if should_skip_session(records):
        return None
    return Session(
        id=session_file.session_id,
        project_id=project_id,
        project_name=project_name,
        timestamp=session_file.mtime,
        records=records,
        title=extract_session_title(records),
        is_agent=is_agent_session(session_file.session_id),
    )


def load_project_sessions(project_dir: Path, project_name: str | None = None) -> list[Session]:
    """Main sessions of one project, each with its linked agent sessions attached."""
    project_dir = Path(project_dir)
    project_id = project_dir.name
    if project_name is None:
        project_name = get_project_name(project_id)

    main_sessions: list[Session] = []
    agent_sessions: dict[str, Session] = {}
    for session_file in list_session_files(project_dir):
        session = _load_session(session_file, project_id, project_name)
        if session is None:
            continue
        if session.is_agent:
            agent_sessions[session.id] = session
        else:
            main_sessions.append(session)

    for session in main_sessions:
        descriptions = collect_agent_descriptions(session.records)
        if not descriptions:
            continue
        linked = []
        for agent_session_id, description in descriptions.items():
            agent_session = agent_sessions.get(agent_session_id)
            if agent_session is not None:
                agent_session.title = description
                linked.append(agent_session)
        if linked:
            session.agent_sessions = sorted(linked, key=lambda s: s.timestamp)

    return main_sessions


def load_agent_sessions(
    project_dir: Path, links: dict[str, str], project_name: str | None = None,
) -> list[Session]:
    """Load the agent sessions named in links, titled by their Task description."""
    project_dir = Path(project_dir)
    if project_name is None:
        project_name = get_project_name(project_dir.name)
    by_name = {f.session_id: f for f in list_session_files(project_dir)}

    sessions: list[Session] = []
    for agent_session_id, description in links.items():
        session_file = by_name.get(agent_session_id)
        if session_file is None:
            continue
        session = _load_session(session_file, project_dir.name, project_name)
        if session is None:
            continue
        session.title = description
        sessions.append(session)

    sessions.sort(key=lambda s: s.timestamp)
    return sessions


def get_all_projects(projects_dir: Path) -> list[ProjectGroup]:
    """Projects with at least one main session, most recently active first."""
    projects_dir = Path(projects_dir)
    groups: list[ProjectGroup] = []
    for project_id in list_projects(projects_dir):
        name = get_project_name(project_id)
        sessions = load_project_sessions(projects_dir / project_id, name)
        if not sessions:
            continue
        sessions.sort(key=lambda s: s.timestamp, reverse=True)
        groups.append(ProjectGroup(id=project_id, name=name, sessions=sessions))

    groups.sort(key=lambda g: g.last_activity, reverse=True)
    return groups


def _find_agent_title(project_dir: Path, agent_session_id: str) -> str | None:
    """Task description for an agent session, looked up in its parent sessions."""
    for session_file in list_session_files(project_dir):
        if is_agent_session(session_file.session_id) or is_empty_file(session_file.size):
            continue
        try:
            records = parse_jsonl_file(Path(session_file.path))
        except (OSError, ValueError):
            continue
        description = collect_agent_descriptions(records).get(agent_session_id)
        if description:
            return description
    return None


def get_session_detail(projects_dir: Path, session_id: str) -> dict | None:
    """Full session payload (records included) or None if no project holds it."""
    projects_dir = Path(projects_dir)
    if not session_id or "/" in session_id or session_id.startswith("."):
        return None

    for project_id in list_projects(projects_dir):
        project_dir = find_project_dir(projects_dir, project_id)
        session_path = project_dir / f"{session_id}.jsonl"
        if not session_path.is_file():
            continue
        try:
            records = parse_jsonl_file(session_path)
            mtime = datetime.fromtimestamp(session_path.stat().st_mtime, tz=timezone.utc)
        except (OSError, ValueError) as e:
            logger.error("Error reading session %s: %s", session_path, e)
            continue

        project_name = get_project_name(project_id)
        is_agent = is_agent_session(session_id)
        title = extract_session_title(records)
        agent_sessions = None
        if is_agent:
            title = _find_agent_title(project_dir, session_id) or title
        else:
            links = resolve_agent_links(records, project_dir)
            if links:
                agent_sessions = load_agent_sessions(project_dir, links, project_name) or None

        session = Session(
            id=session_id,
            project_id=project_id,
            project_name=project_name,
            timestamp=mtime,
            records=records,
            title=title,
            is_agent=is_agent,
            agent_sessions=agent_sessions,
        )
        detail = session.to_dict(include_records=True)
        detail["messages"] = inject_agent_ids(records)
        return detail

    return None
