"""Report assembly: turns an Aggregator into the statistics payload.

Returns plain dicts keyed the way the JSON API exposes them:
{overview, daily, byProject, byModel, cache, cost, productivity, trends}.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from pathlib import Path

from ccview.models import TokenUsage
from ccview.pricing import estimate_cache_savings
from ccview.stats.aggregator import (
    Aggregator,
    UsageBucket,
    aggregate_all_projects,
    aggregate_project,
)

ALL_TIME = "all"
ALL_TIME_START = date(2000, 1, 1)

WEEKDAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def _local_midnight(day: date) -> datetime:
    return datetime.combine(day, time.min).astimezone()


def _percent(part: float, whole: float) -> float:
    return part / whole * 100 if whole > 0 else 0.0


def calculate_cutoff_date(days: str | int, now: datetime | None = None) -> datetime:
    """Inclusive lower bound for a window selector.

    'all' means 2000-01-01. N means local midnight N-1 days before today,
    so the window spans N calendar days including today.
    """
    if str(days) == ALL_TIME:
        return _local_midnight(ALL_TIME_START)
    try:
        n = int(str(days))
    except ValueError:
        raise ValueError(f"Invalid days window: {days!r}") from None
    if n < 1:
        raise ValueError(f"Invalid days window: {days!r}")

    now = (now or datetime.now()).astimezone()
    return _local_midnight(now.date() - timedelta(days=n - 1))


def fill_missing_dates(
    daily: dict[str, UsageBucket], start: date, end: date,
) -> list[dict]:
    """One entry per calendar day from start to end inclusive, zero-filled."""
    result = []
    current = start
    while current <= end:
        day_str = current.isoformat()
        bucket = daily.get(day_str)
        result.append({
            "date": day_str,
            "tokenUsage": (bucket.token_usage if bucket else TokenUsage()).to_dict(),
            "sessionCount": len(bucket.session_ids) if bucket else 0,
        })
        current += timedelta(days=1)
    return result


def build_report(aggregator: Aggregator, days: str | int, now: datetime | None = None) -> dict:
    """Assemble the statistics payload from a finished aggregation pass."""
    now = (now or datetime.now()).astimezone()
    today = now.date()

    if str(days) == ALL_TIME:
        start = aggregator.min_date or _local_midnight(today)
    else:
        start = aggregator.cutoff
    end_day = today
    if aggregator.max_date is not None and aggregator.max_date.date() > today:
        end_day = aggregator.max_date.date()

    by_project = sorted(
        (
            {
                "id": project_id,
                "name": bucket.name,
                "tokenUsage": bucket.token_usage.to_dict(),
                "sessionCount": len(bucket.session_ids),
            }
            for project_id, bucket in aggregator.projects.items()
        ),
        key=lambda p: p["tokenUsage"]["totalTokens"],
        reverse=True,
    )

    by_model = sorted(
        (
            {
                "model": model,
                "tokenUsage": bucket.token_usage.to_dict(),
                "messageCount": bucket.message_count,
                "cost": bucket.cost.to_dict(),
            }
            for model, bucket in aggregator.models.items()
        ),
        key=lambda m: m["tokenUsage"]["totalTokens"],
        reverse=True,
    )

    tool_usage = sorted(
        (
            {
                "toolName": tool_name,
                "totalUses": bucket.total,
                "successfulUses": bucket.successful,
                "successRate": _percent(bucket.successful, bucket.total),
            }
            for tool_name, bucket in aggregator.tools.items()
        ),
        key=lambda t: t["totalUses"],
        reverse=True,
    )

    by_hour = [
        {
            "hour": hour,
            "sessionCount": len(bucket.session_ids),
            "messageCount": bucket.message_count,
            "tokenUsage": bucket.token_usage.to_dict(),
        }
        for hour, bucket in sorted(aggregator.hourly.items())
    ]
    by_weekday = [
        {
            "weekday": weekday,
            "weekdayName": WEEKDAY_NAMES[weekday],
            "sessionCount": len(bucket.session_ids),
            "messageCount": bucket.message_count,
            "tokenUsage": bucket.token_usage.to_dict(),
        }
        for weekday, bucket in sorted(aggregator.weekdays.items())
    ]

    total = aggregator.total_usage
    cache_creation = total.cache_creation_tokens
    cache_read = total.cache_read_tokens

    return {
        "overview": {
            "tokenUsage": total.to_dict(),
            "sessionCount": aggregator.total_sessions,
            "messageCount": aggregator.total_messages,
            "projectCount": sum(1 for b in aggregator.projects.values() if b.session_ids),
            "dateRange": {
                "start": start.isoformat(),
                "end": now.isoformat(),
            },
        },
        "daily": fill_missing_dates(aggregator.daily, start.date(), end_day),
        "byProject": by_project,
        "byModel": by_model,
        "cache": {
            "totalCacheCreation": cache_creation,
            "totalCacheRead": cache_read,
            "ephemeral5mTokens": aggregator.ephemeral_5m_tokens,
            "ephemeral1hTokens": aggregator.ephemeral_1h_tokens,
            "cacheHitRate": _percent(cache_read, cache_read + cache_creation),
            "estimatedSavings": estimate_cache_savings(cache_read),
        },
        "cost": aggregator.total_cost.to_dict(),
        "productivity": {
            "toolUsage": tool_usage,
            "totalToolCalls": sum(b.total for b in aggregator.tools.values()),
            "agentSessions": aggregator.total_agent_sessions,
            "totalSessions": aggregator.total_sessions,
            "agentUsageRate": _percent(
                aggregator.total_agent_sessions, aggregator.total_sessions,
            ),
        },
        "trends": {
            "byHour": by_hour,
            "byWeekday": by_weekday,
        },
    }


def get_overall_statistics(
    projects_dir: Path, days: str | int = "7", now: datetime | None = None,
) -> dict:
    """Usage statistics across every project."""
    cutoff = calculate_cutoff_date(days, now)
    aggregator = aggregate_all_projects(projects_dir, cutoff)
    return build_report(aggregator, days, now)


def get_project_statistics(
    projects_dir: Path, project_id: str, days: str | int = "7", now: datetime | None = None,
) -> dict | None:
    """Usage statistics for one project; None if the project does not exist."""
    cutoff = calculate_cutoff_date(days, now)
    aggregator = aggregate_project(projects_dir, project_id, cutoff)
    if aggregator is None:
        return None
    return build_report(aggregator, days, now)
