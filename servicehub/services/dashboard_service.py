"""
Dashboard Service: summary KPIs for the dashboard header cards.

For the chosen period (day / week / month / year, ending now) it reports
totals, new records, status breakdowns and conversion / completion rates,
each with a trend against the equally long period before it.
"""

import calendar
import logging
from datetime import datetime, timedelta, timezone
from operator import attrgetter

from servicehub.config import StatsConfig
from servicehub.services.record_source import DatabaseRecordSource, RecordSource
from servicehub.services.statistics import conversion_rate
from servicehub.services.trends import calculate_metric_trend, to_utc

logger = logging.getLogger(__name__)

PERIOD_LABELS = {
    "day": "Last 24 hours",
    "week": "Last 7 days",
    "month": "Last 30 days",
    "year": "Last 12 months",
}
DEFAULT_PERIOD = "month"

# Neutral band for rate trends (conversion, completion)
RATE_THRESHOLD = 0.02


def _minus_months(moment: datetime, months: int) -> datetime:
    index = moment.year * 12 + (moment.month - 1) - months
    year, month = index // 12, index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def period_start(period: str, now: datetime) -> datetime:
    if period == "day":
        return now - timedelta(days=1)
    if period == "week":
        return now - timedelta(days=7)
    if period == "year":
        return _minus_months(now, 12)
    return _minus_months(now, 1)


def _converted(items) -> int:
    return sum(1 for r in items if r.customer_id is not None)


def _completed(items) -> int:
    return sum(1 for a in items if a.status == "completed")


def _with_status(items, status) -> int:
    return sum(1 for i in items if i.status == status)


def get_dashboard_stats(
    period: str | None = None,
    *,
    config: StatsConfig | None = None,
    source: RecordSource | None = None,
    now: datetime | None = None,
) -> dict:
    """Aggregate dashboard KPIs. Unknown periods fall back to ``month``."""
    period = period if period in PERIOD_LABELS else DEFAULT_PERIOD
    config = config or StatsConfig()
    source = source or DatabaseRecordSource()
    now = now or datetime.now(timezone.utc)
    start = period_start(period, now)

    pages = {
        entity: source.find_all(entity, config.record_limit)
        for entity in ("users", "customers", "requests", "appointments")
    }
    users = pages["users"].data
    customers = pages["customers"].data
    requests_ = pages["requests"].data
    appointments = pages["appointments"].data

    created = attrgetter("created_at")
    scheduled = attrgetter("appointment_date")

    def recent(items, extractor):
        out = []
        for item in items:
            ts = to_utc(extractor(item))
            if ts is not None and start <= ts <= now:
                out.append(item)
        return out

    recent_users = recent(users, created)
    recent_customers = recent(customers, created)
    recent_requests = recent(requests_, created)
    recent_appointments = recent(appointments, scheduled)

    def count_trend(items, extractor):
        return calculate_metric_trend(items, extractor, len, start, now).to_dict()

    converted = _converted(recent_requests)
    completed = _completed(recent_appointments)

    stats = {
        "summary": {
            "period": period,
            "period_label": PERIOD_LABELS[period],
            "start_date": start.isoformat(),
            "end_date": now.isoformat(),
        },
        "users": {
            "total": pages["users"].total,
            "new": len(recent_users),
            "trend": count_trend(users, created),
        },
        "customers": {
            "total": pages["customers"].total,
            "new": len(recent_customers),
            "active": _with_status(customers, "active"),
            "inactive": _with_status(customers, "inactive"),
            "trend": count_trend(customers, created),
        },
        "requests": {
            "total": pages["requests"].total,
            "new": len(recent_requests),
            "pending": _with_status(recent_requests, "new"),
            "in_progress": _with_status(recent_requests, "in_progress"),
            "completed": _with_status(recent_requests, "completed"),
            "converted": converted,
            "conversion_rate": conversion_rate(converted, len(recent_requests)),
            "trend": count_trend(requests_, created),
            "conversion_rate_trend": calculate_metric_trend(
                requests_, created,
                lambda items: conversion_rate(_converted(items), len(items)),
                start, now, neutral_threshold=RATE_THRESHOLD,
            ).to_dict(),
        },
        "appointments": {
            "total": pages["appointments"].total,
            "scheduled": len(recent_appointments),
            "planned": _with_status(recent_appointments, "planned"),
            "confirmed": _with_status(recent_appointments, "confirmed"),
            "completed": completed,
            "cancelled": _with_status(recent_appointments, "cancelled"),
            "completion_rate": conversion_rate(completed, len(recent_appointments)),
            "trend": count_trend(appointments, scheduled),
            "completion_rate_trend": calculate_metric_trend(
                appointments, scheduled,
                lambda items: conversion_rate(_completed(items), len(items)),
                start, now, neutral_threshold=RATE_THRESHOLD,
            ).to_dict(),
        },
    }
    logger.info("Built dashboard stats", extra={"period": period})
    return stats
