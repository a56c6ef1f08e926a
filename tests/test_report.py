"""Tests for report assembly and the statistics entry points."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from factories import assistant, local_ts, task_session, tool_result, tool_use, user, write_session

from ccview.pricing import PRICING, DEFAULT_PRICING_MODEL
from ccview.stats.aggregator import UsageBucket
from ccview.models import TokenUsage
from ccview.stats.report import (
    WEEKDAY_NAMES,
    calculate_cutoff_date,
    fill_missing_dates,
    get_overall_statistics,
    get_project_statistics,
)

NOW = datetime(2025, 1, 12, 18, 0).astimezone()
MODEL = "claude-sonnet-4-5-20250929"


# ---------------------------------------------------------------------------
# Window selector
# ---------------------------------------------------------------------------


class TestCutoffDate:
    def test_seven_days_spans_seven_calendar_days(self):
        cutoff = calculate_cutoff_date("7", NOW)
        assert cutoff == datetime(2025, 1, 6).astimezone()

    def test_int_selector(self):
        assert calculate_cutoff_date(30, NOW) == datetime(2024, 12, 14).astimezone()

    def test_one_day_is_today(self):
        assert calculate_cutoff_date("1", NOW) == datetime(2025, 1, 12).astimezone()

    def test_all(self):
        assert calculate_cutoff_date("all", NOW) == datetime(2000, 1, 1).astimezone()

    @pytest.mark.parametrize("days", ["0", "-3", "week", ""])
    def test_invalid(self, days):
        with pytest.raises(ValueError):
            calculate_cutoff_date(days, NOW)


class TestFillMissingDates:
    def test_gaps_zero_filled(self):
        bucket = UsageBucket()
        bucket.add(TokenUsage(input_tokens=5), "s1")
        daily = fill_missing_dates({"2025-01-02": bucket}, date(2025, 1, 1), date(2025, 1, 3))
        assert [d["date"] for d in daily] == ["2025-01-01", "2025-01-02", "2025-01-03"]
        assert [d["sessionCount"] for d in daily] == [0, 1, 0]
        assert daily[1]["tokenUsage"]["totalTokens"] == 5
        assert daily[0]["tokenUsage"]["totalTokens"] == 0

    def test_single_day(self):
        assert len(fill_missing_dates({}, date(2025, 1, 1), date(2025, 1, 1))) == 1


# ---------------------------------------------------------------------------
# End-to-end example
# ---------------------------------------------------------------------------


@pytest.fixture
def two_session_project(projects_dir):
    project = projects_dir / "-Users-test-demo"
    write_session(project, "session-a", [
        user(local_ts(2025, 1, 10, 9), "first"),
        assistant(local_ts(2025, 1, 10, 9, 1), input_tokens=100, output_tokens=50, model=MODEL),
    ])
    write_session(project, "session-b", [
        user(local_ts(2025, 1, 11, 15), "second"),
        assistant(
            local_ts(2025, 1, 11, 15, 1),
            input_tokens=200, output_tokens=100, cache_read=500, model=MODEL,
        ),
    ])
    return projects_dir


class TestEndToEnd:
    def test_overview(self, two_session_project):
        report = get_overall_statistics(two_session_project, "7", now=NOW)
        overview = report["overview"]
        assert overview["tokenUsage"]["totalTokens"] == 950
        assert overview["sessionCount"] == 2
        assert overview["messageCount"] == 2
        assert overview["projectCount"] == 1
        assert overview["dateRange"]["start"] == datetime(2025, 1, 6).astimezone().isoformat()
        assert overview["dateRange"]["end"] == NOW.isoformat()

    def test_daily(self, two_session_project):
        daily = get_overall_statistics(two_session_project, "7", now=NOW)["daily"]
        assert [d["date"] for d in daily] == [
            "2025-01-06", "2025-01-07", "2025-01-08", "2025-01-09",
            "2025-01-10", "2025-01-11", "2025-01-12",
        ]
        totals = {d["date"]: d["tokenUsage"]["totalTokens"] for d in daily}
        assert totals["2025-01-10"] == 150
        assert totals["2025-01-11"] == 800
        assert sum(totals.values()) == 950
        assert [d["sessionCount"] for d in daily] == [0, 0, 0, 0, 1, 1, 0]

    def test_by_project(self, two_session_project):
        by_project = get_overall_statistics(two_session_project, "7", now=NOW)["byProject"]
        assert len(by_project) == 1
        assert by_project[0]["id"] == "-Users-test-demo"
        assert by_project[0]["sessionCount"] == 2
        assert by_project[0]["tokenUsage"]["totalTokens"] == 950

    def test_cache(self, two_session_project):
        cache = get_overall_statistics(two_session_project, "7", now=NOW)["cache"]
        assert cache["totalCacheRead"] == 500
        assert cache["totalCacheCreation"] == 0
        assert cache["cacheHitRate"] == 100
        assert cache["estimatedSavings"] == pytest.approx(500 / 1_000_000 * 2.70)

    def test_cost_is_sum_of_message_costs(self, two_session_project):
        cost = get_overall_statistics(two_session_project, "7", now=NOW)["cost"]
        assert cost["inputCost"] == pytest.approx(0.0009)
        assert cost["outputCost"] == pytest.approx(0.00225)
        assert cost["cacheReadCost"] == pytest.approx(0.00015)
        assert cost["cacheCreationCost"] == 0
        assert cost["totalCost"] == pytest.approx(0.0033)

    def test_by_model(self, two_session_project):
        by_model = get_overall_statistics(two_session_project, "7", now=NOW)["byModel"]
        assert [m["model"] for m in by_model] == [MODEL]
        assert by_model[0]["messageCount"] == 2
        assert by_model[0]["cost"]["totalCost"] == pytest.approx(0.0033)

    def test_window_excludes_older_day(self, two_session_project):
        report = get_overall_statistics(two_session_project, "2", now=NOW)
        assert report["overview"]["sessionCount"] == 1
        assert report["overview"]["tokenUsage"]["totalTokens"] == 800
        assert [d["date"] for d in report["daily"]] == ["2025-01-11", "2025-01-12"]


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


class TestProperties:
    def test_gap_fill_seven_days(self, projects_dir):
        project = projects_dir / "proj"
        write_session(project, "s1", [
            user(local_ts(2025, 1, 6, 8)),
            assistant(local_ts(2025, 1, 6, 8), input_tokens=1),
            assistant(local_ts(2025, 1, 12, 8), input_tokens=1),
        ])
        daily = get_overall_statistics(projects_dir, "7", now=NOW)["daily"]
        assert len(daily) == 7
        assert [d["tokenUsage"]["totalTokens"] for d in daily] == [1, 0, 0, 0, 0, 0, 1]

    def test_degenerate_session_contributes_nothing(self, projects_dir):
        write_session(projects_dir / "proj", "lonely", [
            assistant(local_ts(2025, 1, 11), input_tokens=500),
        ])
        for days in ("7", "30", "all"):
            report = get_overall_statistics(projects_dir, days, now=NOW)
            assert report["overview"]["sessionCount"] == 0
            assert report["overview"]["tokenUsage"]["totalTokens"] == 0
            assert all(h["sessionCount"] == 0 for h in report["trends"]["byHour"])

    def test_zero_cache_hit_rate(self, projects_dir):
        write_session(projects_dir / "proj", "s1", [
            user(local_ts(2025, 1, 11)),
            assistant(local_ts(2025, 1, 11), input_tokens=10, output_tokens=10),
        ])
        report = get_project_statistics(projects_dir, "proj", "7", now=NOW)
        assert report["cache"]["cacheHitRate"] == 0
        assert report["cache"]["estimatedSavings"] == 0

    def test_unknown_model_uses_default_prices(self, projects_dir):
        write_session(projects_dir / "proj", "s1", [
            user(local_ts(2025, 1, 11)),
            assistant(local_ts(2025, 1, 11), input_tokens=1_000_000, model="claude-future-9"),
        ])
        report = get_overall_statistics(projects_dir, "7", now=NOW)
        default = PRICING[DEFAULT_PRICING_MODEL]
        assert report["cost"]["totalCost"] == pytest.approx(default.input)
        assert report["byModel"][0]["model"] == "claude-future-9"

    def test_tool_success_rate_bounds(self, projects_dir):
        ts = local_ts(2025, 1, 11)
        write_session(projects_dir / "proj", "s1", [
            user(ts, content=[tool_result("ghost")]),
            assistant(ts, input_tokens=1, content=[
                tool_use("t1", "Bash"), tool_use("t2", "Bash"), tool_use("t3", "Read"),
            ]),
            user(ts, content=[tool_result("t1"), tool_result("t2", is_error=True)]),
        ])
        productivity = get_overall_statistics(projects_dir, "7", now=NOW)["productivity"]
        tools = {t["toolName"]: t for t in productivity["toolUsage"]}
        assert [t["toolName"] for t in productivity["toolUsage"]] == ["Bash", "Read"]
        assert tools["Bash"]["successRate"] == 50
        assert tools["Read"]["successRate"] == 0
        assert productivity["totalToolCalls"] == 3
        for tool in tools.values():
            assert 0 <= tool["successRate"] <= 100

    def test_hour_and_weekday_completeness_on_empty_project(self, projects_dir):
        (projects_dir / "empty").mkdir()
        report = get_project_statistics(projects_dir, "empty", "30", now=NOW)
        by_hour = report["trends"]["byHour"]
        by_weekday = report["trends"]["byWeekday"]
        assert [h["hour"] for h in by_hour] == list(range(24))
        assert [w["weekday"] for w in by_weekday] == list(range(7))
        assert [w["weekdayName"] for w in by_weekday] == WEEKDAY_NAMES
        assert by_weekday[0]["weekdayName"] == "Sunday"

    def test_empty_project_report(self, projects_dir):
        (projects_dir / "empty").mkdir()
        report = get_project_statistics(projects_dir, "empty", "7", now=NOW)
        assert report["overview"]["sessionCount"] == 0
        assert len(report["daily"]) == 7
        assert [p["id"] for p in report["byProject"]] == ["empty"]
        assert report["productivity"]["agentUsageRate"] == 0
        assert report["productivity"]["toolUsage"] == []

    def test_unknown_project_is_none(self, projects_dir):
        assert get_project_statistics(projects_dir, "missing", "7", now=NOW) is None

    def test_invalid_window_raises(self, projects_dir):
        with pytest.raises(ValueError):
            get_overall_statistics(projects_dir, "fortnight", now=NOW)


class TestProjectScope:
    def test_per_project_report_is_scoped(self, projects_dir):
        ts = local_ts(2025, 1, 11)
        write_session(projects_dir / "alpha", "a1", [user(ts), assistant(ts, input_tokens=10)])
        write_session(projects_dir / "beta", "b1", [user(ts), assistant(ts, input_tokens=99)])

        report = get_project_statistics(projects_dir, "alpha", "7", now=NOW)
        assert [p["id"] for p in report["byProject"]] == ["alpha"]
        assert report["byProject"][0]["sessionCount"] == 1
        assert report["overview"]["tokenUsage"]["totalTokens"] == 10

    def test_projects_sorted_by_tokens(self, projects_dir):
        ts = local_ts(2025, 1, 11)
        write_session(projects_dir / "alpha", "a1", [user(ts), assistant(ts, input_tokens=10)])
        write_session(projects_dir / "beta", "b1", [user(ts), assistant(ts, input_tokens=99)])
        (projects_dir / "gamma").mkdir()

        by_project = get_overall_statistics(projects_dir, "7", now=NOW)["byProject"]
        assert [p["id"] for p in by_project] == ["beta", "alpha", "gamma"]
        assert by_project[2]["sessionCount"] == 0


class TestAgents:
    def test_agent_usage_rate(self, projects_dir):
        ts = local_ts(2025, 1, 11)
        project = projects_dir / "proj"
        task_session(project, "with-agent", "abc", ts)
        write_session(project, "agent-abc", [user(ts, "sub"), assistant(ts, input_tokens=5)])
        write_session(project, "plain", [user(ts), assistant(ts, input_tokens=1)])

        report = get_overall_statistics(projects_dir, "7", now=NOW)
        productivity = report["productivity"]
        assert productivity["agentSessions"] == 1
        assert productivity["totalSessions"] == 2
        assert productivity["agentUsageRate"] == 50
        # agent-abc is never a session of its own
        assert report["overview"]["sessionCount"] == 2
        assert report["overview"]["tokenUsage"]["inputTokens"] == 16

    def test_removing_agent_file_removes_link(self, projects_dir):
        ts = local_ts(2025, 1, 11)
        project = projects_dir / "proj"
        task_session(project, "with-agent", "abc", ts)
        agent = write_session(project, "agent-abc", [user(ts, "sub"), assistant(ts, input_tokens=5)])
        agent.unlink()

        report = get_overall_statistics(projects_dir, "7", now=NOW)
        assert report["productivity"]["agentSessions"] == 0
        assert report["overview"]["tokenUsage"]["inputTokens"] == 10


class TestDateRange:
    def test_all_starts_at_first_message(self, projects_dir):
        write_session(projects_dir / "proj", "s1", [
            user(local_ts(2025, 1, 9)),
            assistant(local_ts(2025, 1, 9, 10), input_tokens=1),
        ])
        report = get_overall_statistics(projects_dir, "all", now=NOW)
        assert report["daily"][0]["date"] == "2025-01-09"
        assert report["daily"][-1]["date"] == "2025-01-12"
        assert report["overview"]["dateRange"]["start"].startswith("2025-01-09T10:00:00")

    def test_all_without_data_is_today_only(self, projects_dir):
        report = get_overall_statistics(projects_dir, "all", now=NOW)
        assert [d["date"] for d in report["daily"]] == ["2025-01-12"]

    def test_future_messages_extend_daily(self, projects_dir):
        write_session(projects_dir / "proj", "s1", [
            user(local_ts(2025, 1, 14)),
            assistant(local_ts(2025, 1, 14), input_tokens=1),
        ])
        daily = get_overall_statistics(projects_dir, "7", now=NOW)["daily"]
        assert daily[-1]["date"] == "2025-01-14"
        assert len(daily) == 9

    def test_utc_timestamps_bucket_by_local_date(self, projects_dir):
        instant = datetime(2025, 1, 11, 23, 30, tzinfo=timezone.utc)
        write_session(projects_dir / "proj", "s1", [
            user(instant.isoformat().replace("+00:00", "Z")),
            assistant(instant.isoformat().replace("+00:00", "Z"), input_tokens=3),
        ])
        daily = get_overall_statistics(projects_dir, "7", now=NOW)["daily"]
        local_day = instant.astimezone().date().isoformat()
        assert {d["date"]: d["tokenUsage"]["totalTokens"] for d in daily}[local_day] == 3


def test_missing_projects_dir(tmp_path):
    report = get_overall_statistics(tmp_path / "absent", "7", now=NOW)
    assert report["overview"]["sessionCount"] == 0
    assert report["byProject"] == []
    assert len(report["trends"]["byHour"]) == 24


class TestOddFieldTypes:
    """Records whose string fields hold other JSON types never sink the pass."""

    @pytest.fixture
    def good_session(self, projects_dir):
        ts = local_ts(2025, 1, 11)
        write_session(projects_dir / "proj", "good", [user(ts), assistant(ts, input_tokens=7)])
        return projects_dir

    def test_list_model(self, good_session):
        ts = local_ts(2025, 1, 11)
        write_session(good_session / "proj", "odd", [user(ts), assistant(ts, input_tokens=3, model=["x"])])

        report = get_overall_statistics(good_session, "7", now=NOW)
        assert report["overview"]["sessionCount"] == 2
        assert report["overview"]["tokenUsage"]["inputTokens"] == 10
        assert {m["model"] for m in report["byModel"]} == {MODEL, "unknown"}

    def test_list_tool_use_id(self, good_session):
        ts = local_ts(2025, 1, 11)
        write_session(good_session / "proj", "odd", [
            user(ts),
            assistant(ts, content=[{"type": "tool_use", "id": ["a"], "name": "Bash"}]),
            user(ts, content=[{"type": "tool_result", "tool_use_id": ["a"]}]),
        ])

        report = get_overall_statistics(good_session, "7", now=NOW)
        assert report["overview"]["tokenUsage"]["inputTokens"] == 7
        assert report["productivity"]["toolUsage"] == []

    def test_dict_text_in_user_turn(self, good_session):
        ts = local_ts(2025, 1, 11)
        write_session(good_session / "proj", "odd", [
            user(ts, content=[{"type": "text", "text": {"a": 1}}]),
            assistant(ts, input_tokens=2),
        ])

        report = get_overall_statistics(good_session, "7", now=NOW)
        assert report["overview"]["sessionCount"] == 2
        assert report["overview"]["tokenUsage"]["inputTokens"] == 9
