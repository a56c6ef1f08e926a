"""Per-record fact extraction for token usage and tool outcomes.

All functions are pure; they take parsed records and return facts.
"""

from __future__ import annotations

from datetime import datetime

from ccview.models import (
    SessionRecord,
    TokenUsage,
    ToolInvocation,
    ToolOutcome,
    ToolOutcomeFact,
)

UNKNOWN_MODEL = "unknown"


def _int(value: object) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    return 0


def extract_token_usage(record: SessionRecord) -> tuple[TokenUsage, str] | None:
    """(usage, model) for an assistant record with a usage block, else None.

    Missing counters default to 0; the total is always the sum of the four.
    """
    if record.kind != "assistant" or record.usage is None:
        return None
    usage = record.usage
    return (
        TokenUsage(
            input_tokens=_int(usage.get("input_tokens")),
            cache_creation_tokens=_int(usage.get("cache_creation_input_tokens")),
            cache_read_tokens=_int(usage.get("cache_read_input_tokens")),
            output_tokens=_int(usage.get("output_tokens")),
        ),
        record.model or UNKNOWN_MODEL,
    )


def extract_ephemeral_cache(record: SessionRecord) -> tuple[int, int]:
    """(5-minute, 1-hour) cache-creation tokens from the optional breakdown."""
    if record.usage is None:
        return 0, 0
    breakdown = record.usage.get("cache_creation")
    if not isinstance(breakdown, dict):
        return 0, 0
    return (
        _int(breakdown.get("ephemeral_5m_input_tokens")),
        _int(breakdown.get("ephemeral_1h_input_tokens")),
    )


def extract_tool_invocations(record: SessionRecord) -> list[ToolInvocation]:
    """Named tool_use items with an id, from an assistant record."""
    if record.kind != "assistant":
        return []
    return [
        item for item in record.content
        if isinstance(item, ToolInvocation) and item.id and item.name
    ]


def in_window(record: SessionRecord, since: datetime | None) -> bool:
    """True when the record is at or after since (None means no lower bound)."""
    if since is None:
        return True
    return record.timestamp is not None and record.timestamp >= since


def extract_tool_facts(
    records: list[SessionRecord], since: datetime | None = None,
) -> list[ToolOutcomeFact]:
    """One fact per tool_result that answers a tool_use in the same session.

    Invocations and outcomes are both limited to records at or after since.
    Each tool_use id resolves at most once.
    """
    tool_names: dict[str, str] = {}
    for record in records:
        if not in_window(record, since):
            continue
        for invocation in extract_tool_invocations(record):
            tool_names[invocation.id] = invocation.name

    facts: list[ToolOutcomeFact] = []
    resolved: set[str] = set()
    for record in records:
        if not in_window(record, since):
            continue
        for item in record.content:
            if not isinstance(item, ToolOutcome):
                continue
            tool_use_id = item.tool_use_id
            if not tool_use_id or tool_use_id not in tool_names or tool_use_id in resolved:
                continue
            resolved.add(tool_use_id)
            facts.append(ToolOutcomeFact(
                tool_use_id=tool_use_id,
                tool_name=tool_names[tool_use_id],
                succeeded=not item.is_error,
            ))
    return facts
