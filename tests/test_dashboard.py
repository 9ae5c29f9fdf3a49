"""Tests for the dashboard service and GET /api/v1/dashboard/stats."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from servicehub.services.dashboard_service import get_dashboard_stats, period_start
from servicehub.services.record_source import CountResult, RecordPage

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


class FakeSource:
    def __init__(self, **rows):
        self.rows = rows
        self.calls = []

    def find_all(self, entity, limit):
        self.calls.append((entity, limit))
        data = self.rows.get(entity, [])
        return RecordPage(data=data, total=len(data), limit=limit)

    def count(self, entity):
        return CountResult(count=len(self.rows.get(entity, [])))


def _ago(days):
    return NOW - timedelta(days=days)


def _source():
    return FakeSource(
        users=[SimpleNamespace(created_at=_ago(2)), SimpleNamespace(created_at=_ago(40))],
        customers=[
            SimpleNamespace(created_at=_ago(1), status="active"),
            SimpleNamespace(created_at=_ago(45), status="inactive"),
        ],
        requests=[
            SimpleNamespace(created_at=_ago(1), status="new", customer_id=None),
            SimpleNamespace(created_at=_ago(3), status="completed", customer_id=7),
            SimpleNamespace(created_at=_ago(35), status="completed", customer_id=None),
        ],
        appointments=[
            SimpleNamespace(created_at=_ago(20), appointment_date=_ago(2), status="completed"),
            SimpleNamespace(created_at=_ago(20), appointment_date=_ago(4), status="planned"),
        ],
    )


def test_period_start_per_period():
    assert period_start("day", NOW) == _ago(1)
    assert period_start("week", NOW) == _ago(7)
    assert period_start("month", NOW) == datetime(2024, 5, 15, 12, 0, tzinfo=timezone.utc)
    assert period_start("year", NOW) == datetime(2023, 6, 15, 12, 0, tzinfo=timezone.utc)


def test_month_start_clamps_to_short_month():
    end_of_march = datetime(2024, 3, 31, tzinfo=timezone.utc)
    assert period_start("month", end_of_march) == datetime(2024, 2, 29, tzinfo=timezone.utc)


def test_dashboard_totals_and_rates():
    stats = get_dashboard_stats("month", source=_source(), now=NOW)

    assert stats["summary"]["period"] == "month"
    assert stats["summary"]["period_label"] == "Last 30 days"
    assert stats["users"] == {
        "total": 2,
        "new": 1,
        "trend": {"percent_change": 0.0, "direction": "NEUTRAL", "is_positive": False},
    }
    assert stats["customers"]["active"] == 1
    assert stats["customers"]["inactive"] == 1

    requests_ = stats["requests"]
    assert requests_["total"] == 3
    assert requests_["new"] == 2
    assert requests_["pending"] == 1
    assert requests_["converted"] == 1
    assert requests_["conversion_rate"] == 0.5
    assert requests_["trend"]["direction"] == "UP"

    appointments = stats["appointments"]
    assert appointments["scheduled"] == 2
    assert appointments["completed"] == 1
    assert appointments["completion_rate"] == 0.5
    # no appointments in the previous window: growth from zero
    assert appointments["trend"]["percent_change"] == 100.0


def test_unknown_period_falls_back_to_month():
    stats = get_dashboard_stats("fortnight", source=_source(), now=NOW)
    assert stats["summary"]["period"] == "month"


def test_empty_source_has_zero_rates():
    stats = get_dashboard_stats("week", source=FakeSource(), now=NOW)
    assert stats["requests"]["conversion_rate"] == 0.0
    assert stats["appointments"]["completion_rate"] == 0.0


def test_record_limit_is_passed_to_source():
    from servicehub.config import StatsConfig

    source = _source()
    get_dashboard_stats("day", source=source, now=NOW, config=StatsConfig(record_limit=50))
    assert {limit for _, limit in source.calls} == {50}


# ── API ──────────────────────────────────────────────────────────────────


def test_dashboard_endpoint_requires_permission(client, make_user, auth_headers):
    user = make_user(role="user", grants=["profile.view"])
    res = client.get("/api/v1/dashboard/stats", headers=auth_headers(user))
    assert res.status_code == 403
    assert res.get_json()["code"] == "ERR_FORBIDDEN"


def test_dashboard_endpoint_returns_envelope(client, make_user, auth_headers):
    user = make_user(role="manager", grants=["dashboard.view"])
    res = client.get("/api/v1/dashboard/stats?period=week", headers=auth_headers(user))
    assert res.status_code == 200
    body = res.get_json()
    assert body["success"] is True
    assert body["data"]["summary"]["period"] == "week"
    assert body["data"]["users"]["total"] == 1


def test_totals_come_from_the_page_not_the_capped_rows():
    class CappedSource(FakeSource):
        def find_all(self, entity, limit):
            data = self.rows.get(entity, [])[:limit]
            return RecordPage(data=data, total=5000, limit=limit)

    rows = [SimpleNamespace(created_at=_ago(1), status="active") for _ in range(20)]
    source = CappedSource(customers=rows)

    from servicehub.config import StatsConfig

    stats = get_dashboard_stats("month", source=source, now=NOW, config=StatsConfig(record_limit=10))
    assert stats["customers"]["total"] == 5000
    assert stats["customers"]["new"] == 10
