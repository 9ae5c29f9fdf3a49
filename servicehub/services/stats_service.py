"""
Statistics pipelines: customers, requests, appointments, users.

One pipeline per (entity, granularity):
  fetch (bounded by StatsConfig.record_limit) -> bucket -> cross-tab -> rows

Each entity declares the date it is bucketed on, its classifiers, and the
alias under which the bucket count is repeated for charting clients.
"""

import logging
from dataclasses import dataclass
from operator import attrgetter

from servicehub.config import StatsConfig
from servicehub.services import statistics
from servicehub.services.record_source import DatabaseRecordSource, RecordSource
from servicehub.services.statistics import field_equals, field_present

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntityStats:
    date_field: str
    count_alias: str
    classifiers: dict
    converted_key: str | None = None


ENTITY_STATS = {
    "customers": EntityStats(
        date_field="created_at",
        count_alias="customers",
        classifiers={
            "active": field_equals("status", "active"),
            "inactive": field_equals("status", "inactive"),
            "private_customers": field_equals("type", "private"),
            "business_customers": field_equals("type", "business"),
        },
    ),
    "requests": EntityStats(
        date_field="created_at",
        count_alias="requests",
        classifiers={
            "new": field_equals("status", "new"),
            "in_progress": field_equals("status", "in_progress"),
            "completed": field_equals("status", "completed"),
            "cancelled": field_equals("status", "cancelled"),
            "converted": field_present("customer_id"),
        },
        converted_key="converted",
    ),
    "appointments": EntityStats(
        date_field="appointment_date",
        count_alias="appointments",
        classifiers={
            "planned": field_equals("status", "planned"),
            "confirmed": field_equals("status", "confirmed"),
            "completed": field_equals("status", "completed"),
            "cancelled": field_equals("status", "cancelled"),
            "rescheduled": field_equals("status", "rescheduled"),
        },
    ),
    "users": EntityStats(
        date_field="created_at",
        count_alias="users",
        classifiers={},
    ),
}

GRANULARITIES = {
    "weekly": statistics.WEEK,
    "monthly": statistics.MONTH,
    "yearly": statistics.YEAR,
}


def _decorate(row: dict, granularity: str, definition: EntityStats) -> dict:
    row[definition.count_alias] = row["count"]
    if definition.converted_key:
        row["conversion_rate"] = statistics.conversion_rate(row[definition.converted_key], row["count"])

    if granularity == statistics.WEEK:
        row["week"] = int(row["period"].rsplit(" ", 1)[-1])
        row["week_key"] = statistics.week_key(row["period"], row["year"])
        row["label"] = row["period"]
    elif granularity == statistics.MONTH:
        row["month"] = row["period"].split(" ")[0]
    return row


def build_entity_stats(
    entity: str,
    granularity: str,
    lookback=None,
    *,
    config: StatsConfig | None = None,
    source: RecordSource | None = None,
    today=None,
) -> list[dict]:
    """Run the statistics pipeline for *entity* over the last *lookback* periods.

    *granularity* is ``week``, ``month`` or ``year``. A bad *lookback* falls
    back to the granularity default. Record source failures propagate.
    """
    if entity not in ENTITY_STATS:
        raise ValueError(f"Unknown entity: {entity!r}")
    definition = ENTITY_STATS[entity]
    config = config or StatsConfig()
    source = source or DatabaseRecordSource()

    page = source.find_all(entity, config.record_limit)
    extract = attrgetter(definition.date_field)

    buckets = statistics.bucket_by_period(page.data, extract, lookback, granularity, today=today)
    rows = statistics.enrich_with_cross_tab(buckets, page.data, extract, definition.classifiers)

    logger.info(
        "Built %s %s statistics",
        entity, granularity,
        extra={"entity": entity, "granularity": granularity, "buckets": len(rows), "records": len(page.data)},
    )
    return [_decorate(row, granularity, definition) for row in rows]
