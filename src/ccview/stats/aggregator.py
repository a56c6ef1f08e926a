"""Multi-dimensional usage aggregation over session files.

One Aggregator is built per request and folds every in-window token fact
into six groupings at once: day, project, model, hour of day, weekday, and
tool. Session counts in every grouping are distinct session-id sets, never
per-message counters.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from ccview.facts import (
    extract_ephemeral_cache,
    extract_token_usage,
    extract_tool_facts,
    extract_tool_invocations,
    in_window,
)
from ccview.models import CostBreakdown, SessionRecord, TokenUsage
from ccview.parser import find_project_dir, list_projects, list_session_files, parse_jsonl_file
from ccview.pricing import calculate_cost, resolve_pricing
from ccview.projects import get_project_name
from ccview.sessions import (
    is_agent_session,
    is_empty_file,
    resolve_agent_links,
    should_skip_session,
)

logger = logging.getLogger(__name__)


@dataclass
class UsageBucket:
    token_usage: TokenUsage = field(default_factory=TokenUsage)
    session_ids: set[str] = field(default_factory=set)
    message_count: int = 0

    def add(self, usage: TokenUsage, session_id: str) -> None:
        self.token_usage.add(usage)
        self.session_ids.add(session_id)
        self.message_count += 1


@dataclass
class ProjectBucket(UsageBucket):
    name: str = ""


@dataclass
class ModelBucket(UsageBucket):
    cost: CostBreakdown = field(default_factory=CostBreakdown)


@dataclass
class ToolBucket:
    total: int = 0
    successful: int = 0


class Aggregator:
    """Accumulator for one statistics pass, bounded below by cutoff."""

    def __init__(self, cutoff: datetime):
        self.cutoff = cutoff
        self.daily: dict[str, UsageBucket] = {}
        self.projects: dict[str, ProjectBucket] = {}
        self.models: dict[str, ModelBucket] = {}
        self.hourly: dict[int, UsageBucket] = {hour: UsageBucket() for hour in range(24)}
        self.weekdays: dict[int, UsageBucket] = {day: UsageBucket() for day in range(7)}
        self.tools: dict[str, ToolBucket] = {}

        self.total_usage = TokenUsage()
        self.total_cost = CostBreakdown()
        self.total_messages = 0
        self.session_ids: set[str] = set()
        self.agent_session_ids: set[str] = set()
        self.min_date: datetime | None = None
        self.max_date: datetime | None = None
        self.ephemeral_5m_tokens = 0
        self.ephemeral_1h_tokens = 0

    @property
    def total_sessions(self) -> int:
        return len(self.session_ids)

    @property
    def total_agent_sessions(self) -> int:
        return len(self.agent_session_ids)

    def add_project(self, project_id: str, name: str | None = None) -> ProjectBucket:
        if project_id not in self.projects:
            self.projects[project_id] = ProjectBucket(
                name=name if name is not None else get_project_name(project_id),
            )
        return self.projects[project_id]

    def add_session(
        self,
        session_id: str,
        project_id: str,
        records: list[SessionRecord],
        agent_records: list[list[SessionRecord]] | None = None,
        has_agents: bool = False,
    ) -> None:
        """Fold a main session and the agent sessions it links to.

        Agent sessions are folded under the parent's id so they never count
        as sessions of their own.
        """
        self.add_project(project_id)
        self._fold(session_id, project_id, records)
        for agent in agent_records or []:
            self._fold(session_id, project_id, agent)
        # A session only counts once it has an in-window token fact
        if has_agents and session_id in self.session_ids:
            self.agent_session_ids.add(session_id)

    def _fold(self, session_id: str, project_id: str, records: list[SessionRecord]) -> None:
        counted_invocations: set[str] = set()
        for record in records:
            if not in_window(record, self.cutoff):
                continue
            fact = extract_token_usage(record)
            if fact is not None:
                usage, model = fact
                self._add_usage(session_id, project_id, record, usage, model)
            for invocation in extract_tool_invocations(record):
                if invocation.id in counted_invocations:
                    continue
                counted_invocations.add(invocation.id)
                self.tools.setdefault(invocation.name, ToolBucket()).total += 1

        for outcome in extract_tool_facts(records, since=self.cutoff):
            if outcome.succeeded:
                self.tools.setdefault(outcome.tool_name, ToolBucket()).successful += 1

    def _add_usage(
        self,
        session_id: str,
        project_id: str,
        record: SessionRecord,
        usage: TokenUsage,
        model: str,
    ) -> None:
        local = record.timestamp.astimezone()
        if self.min_date is None or local < self.min_date:
            self.min_date = local
        if self.max_date is None or local > self.max_date:
            self.max_date = local

        cost = calculate_cost(usage, resolve_pricing(model))
        self.total_usage.add(usage)
        self.total_cost.add(cost)
        self.total_messages += 1
        self.session_ids.add(session_id)

        self.daily.setdefault(local.date().isoformat(), UsageBucket()).add(usage, session_id)
        self.hourly[local.hour].add(usage, session_id)
        # Sunday = 0
        self.weekdays[local.isoweekday() % 7].add(usage, session_id)
        self.add_project(project_id).add(usage, session_id)

        model_bucket = self.models.setdefault(model, ModelBucket())
        model_bucket.add(usage, session_id)
        model_bucket.cost.add(cost)

        ephemeral_5m, ephemeral_1h = extract_ephemeral_cache(record)
        self.ephemeral_5m_tokens += ephemeral_5m
        self.ephemeral_1h_tokens += ephemeral_1h


def _read_records(path: Path) -> list[SessionRecord] | None:
    """Parsed records of a non-degenerate session, or None (errors are logged)."""
    try:
        records = parse_jsonl_file(path)
    except (OSError, ValueError) as e:
        logger.error("Error parsing %s: %s", path, e)
        return None
    if should_skip_session(records):
        return None
    return records


def _aggregate_project_dir(aggregator: Aggregator, project_dir: Path) -> None:
    project_id = project_dir.name
    aggregator.add_project(project_id)

    for session_file in list_session_files(project_dir):
        session_id = session_file.session_id
        # Agent sessions are reached through their parent's links only
        if is_agent_session(session_id) or is_empty_file(session_file.size):
            continue
        records = _read_records(Path(session_file.path))
        if records is None:
            continue

        links = resolve_agent_links(records, project_dir)
        agent_records = []
        for agent_session_id in links:
            agent = _read_records(project_dir / f"{agent_session_id}.jsonl")
            if agent is not None:
                agent_records.append(agent)

        aggregator.add_session(
            session_id, project_id, records, agent_records, has_agents=bool(links),
        )


def aggregate_all_projects(projects_dir: Path, cutoff: datetime) -> Aggregator:
    """Aggregate every project under projects_dir."""
    aggregator = Aggregator(cutoff)
    projects_dir = Path(projects_dir)
    for project_id in list_projects(projects_dir):
        _aggregate_project_dir(aggregator, projects_dir / project_id)
    logger.debug(
        "Aggregated %d sessions, %d messages since %s",
        aggregator.total_sessions, aggregator.total_messages, cutoff.isoformat(),
    )
    return aggregator


def aggregate_project(projects_dir: Path, project_id: str, cutoff: datetime) -> Aggregator | None:
    """Aggregate one project; None if the project directory does not exist."""
    project_dir = find_project_dir(projects_dir, project_id)
    if project_dir is None:
        return None
    aggregator = Aggregator(cutoff)
    _aggregate_project_dir(aggregator, project_dir)
    return aggregator
