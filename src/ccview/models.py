"""Shared data models, the contract between parser, classifier, and statistics.

Parser produces SessionRecord objects. The fact extractor turns them into
TokenUsage and ToolOutcomeFact values that the aggregator folds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class TextItem:
    text: str


@dataclass
class ToolInvocation:
    """A tool_use content item."""

    id: str | None
    name: str
    input: dict = field(default_factory=dict)


@dataclass
class ToolOutcome:
    """A tool_result content item answering a ToolInvocation by id."""

    tool_use_id: str | None
    is_error: bool = False
    content: object = None


ContentItem = TextItem | ToolInvocation | ToolOutcome


@dataclass
class SessionRecord:
    """One decoded line of a session JSONL file."""

    kind: str  # user, assistant, system, queue-operation, summary, ...
    timestamp: datetime | None
    role: str | None = None
    model: str | None = None
    usage: dict | None = None
    content: list[ContentItem] = field(default_factory=list)
    agent_id: str | None = None
    raw: dict = field(default_factory=dict)


@dataclass
class SessionFile:
    """A session file on disk, not yet parsed."""

    filename: str
    path: str
    size: int
    mtime: datetime

    @property
    def session_id(self) -> str:
        return self.filename.removesuffix(".jsonl")


@dataclass
class Session:
    id: str
    project_id: str
    project_name: str
    timestamp: datetime  # file mtime
    records: list[SessionRecord]
    title: str
    is_agent: bool = False
    agent_sessions: list[Session] | None = None

    @property
    def message_count(self) -> int:
        return len(self.records)

    def to_dict(self, include_records: bool = False) -> dict:
        data = {
            "id": self.id,
            "projectId": self.project_id,
            "projectName": self.project_name,
            "timestamp": self.timestamp.isoformat(),
            "messageCount": self.message_count,
            "title": self.title,
            "isAgent": self.is_agent,
        }
        if include_records:
            data["messages"] = [r.raw for r in self.records]
        if self.agent_sessions is not None:
            data["agentSessions"] = [
                s.to_dict(include_records=include_records) for s in self.agent_sessions
            ]
        return data


@dataclass
class ProjectGroup:
    id: str
    name: str
    sessions: list[Session]

    @property
    def last_activity(self) -> datetime:
        return max(s.timestamp for s in self.sessions)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "sessionCount": len(self.sessions),
            "lastActivity": self.last_activity.isoformat(),
            "sessions": [s.to_dict() for s in self.sessions],
        }


@dataclass
class TokenUsage:
    input_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return (
            self.input_tokens
            + self.cache_creation_tokens
            + self.cache_read_tokens
            + self.output_tokens
        )

    def add(self, other: TokenUsage) -> None:
        self.input_tokens += other.input_tokens
        self.cache_creation_tokens += other.cache_creation_tokens
        self.cache_read_tokens += other.cache_read_tokens
        self.output_tokens += other.output_tokens

    def to_dict(self) -> dict:
        return {
            "inputTokens": self.input_tokens,
            "cacheCreationTokens": self.cache_creation_tokens,
            "cacheReadTokens": self.cache_read_tokens,
            "outputTokens": self.output_tokens,
            "totalTokens": self.total_tokens,
        }


@dataclass
class ToolOutcomeFact:
    tool_use_id: str
    tool_name: str
    succeeded: bool


@dataclass
class ModelPricing:
    """Prices per million tokens."""

    input: float
    output: float
    cache_creation: float
    cache_read: float


@dataclass
class CostBreakdown:
    input_cost: float = 0.0
    output_cost: float = 0.0
    cache_creation_cost: float = 0.0
    cache_read_cost: float = 0.0

    @property
    def total_cost(self) -> float:
        return (
            self.input_cost
            + self.output_cost
            + self.cache_creation_cost
            + self.cache_read_cost
        )

    def add(self, other: CostBreakdown) -> None:
        self.input_cost += other.input_cost
        self.output_cost += other.output_cost
        self.cache_creation_cost += other.cache_creation_cost
        self.cache_read_cost += other.cache_read_cost

    def to_dict(self) -> dict:
        return {
            "inputCost": self.input_cost,
            "outputCost": self.output_cost,
            "cacheCreationCost": self.cache_creation_cost,
            "cacheReadCost": self.cache_read_cost,
            "totalCost": self.total_cost,
        }
