"""Unit tests for servicehub.services.statistics (pure bucketing + cross-tab)."""

from dataclasses import FrozenInstanceError
from datetime import date, datetime, timedelta, timezone

import pytest

from servicehub.services.statistics import (
    DEFAULT_LOOKBACK,
    MONTH,
    WEEK,
    YEAR,
    StatPeriod,
    bucket_by_period,
    conversion_rate,
    enrich_with_cross_tab,
    field_equals,
    field_present,
    generate_monthly_stats,
    generate_weekly_stats,
    generate_yearly_stats,
    normalize_lookback,
    week_key,
)

TODAY = date(2024, 6, 15)  # Saturday, ISO week 24


def created(r):
    return r["created_at"]


def _months_back(n, day=10):
    index = TODAY.year * 12 + (TODAY.month - 1) - n
    return date(index // 12, index % 12 + 1, day)


def _assert_contiguous(buckets):
    for prev, cur in zip(buckets, buckets[1:]):
        assert cur.start_date == prev.end_date + timedelta(days=1)
        assert prev.start_date <= prev.end_date


# ═════════════════════════════════════════════════════════════════════════════
# Bucket shape
# ═════════════════════════════════════════════════════════════════════════════

class TestBucketShape:
    @pytest.mark.parametrize("lookback", [1, 2, 7, 12, 30])
    def test_monthly_returns_lookback_contiguous_buckets(self, lookback):
        buckets = generate_monthly_stats([], created, lookback, today=TODAY)
        assert len(buckets) == lookback
        _assert_contiguous(buckets)
        assert buckets[-1].period == "Jun 2024"
        assert buckets[-1].end_date == date(2024, 6, 30)

    @pytest.mark.parametrize("lookback", [1, 4, 12, 52])
    def test_weekly_returns_lookback_contiguous_buckets(self, lookback):
        buckets = generate_weekly_stats([], created, lookback, today=TODAY)
        assert len(buckets) == lookback
        _assert_contiguous(buckets)
        assert all(b.start_date.weekday() == 0 for b in buckets)
        assert all((b.end_date - b.start_date).days == 6 for b in buckets)

    def test_yearly_defaults_to_three_years(self):
        buckets = generate_yearly_stats([], created, today=TODAY)
        assert [b.period for b in buckets] == ["2022", "2023", "2024"]
        assert buckets[0].start_date == date(2022, 1, 1)
        assert buckets[-1].end_date == date(2024, 12, 31)

    def test_month_labels_and_wraparound(self):
        buckets = generate_monthly_stats([], created, 12, today=TODAY)
        assert buckets[0].period == "Jul 2023"
        assert buckets[0].year == 2023
        assert buckets[5].period == "Dec 2023"
        assert buckets[6].period == "Jan 2024"

    def test_february_leap_year_end(self):
        buckets = generate_monthly_stats([], created, 5, today=TODAY)
        feb = next(b for b in buckets if b.period == "Feb 2024")
        assert feb.end_date == date(2024, 2, 29)

    def test_week_labels_use_iso_numbers(self):
        buckets = generate_weekly_stats([], created, 12, today=TODAY)
        assert buckets[-1].period == "Week 24"
        assert buckets[-1].start_date == date(2024, 6, 10)
        assert buckets[0].period == "Week 13"

    def test_week_year_is_iso_year(self):
        # 2021-01-03 belongs to ISO week 53 of 2020
        buckets = generate_weekly_stats([], created, 1, today=date(2021, 1, 3))
        assert buckets[0].period == "Week 53"
        assert buckets[0].year == 2020
        assert buckets[0].start_date == date(2020, 12, 28)


# ═════════════════════════════════════════════════════════════════════════════
# Lookback normalisation
# ═════════════════════════════════════════════════════════════════════════════

class TestLookback:
    @pytest.mark.parametrize("bad", [0, -5, None, "abc", "", "2.5", True, 3.0])
    @pytest.mark.parametrize("granularity", [WEEK, MONTH, YEAR])
    def test_invalid_values_fall_back_to_default(self, bad, granularity):
        assert normalize_lookback(bad, granularity) == DEFAULT_LOOKBACK[granularity]

    def test_numeric_string_is_accepted(self):
        assert normalize_lookback("6", MONTH) == 6
        assert normalize_lookback(" 8 ", WEEK) == 8

    def test_negative_string_falls_back(self):
        assert normalize_lookback("-3", YEAR) == 3

    def test_invalid_lookback_never_raises_in_generators(self):
        assert len(generate_weekly_stats([], created, -1, today=TODAY)) == 12
        assert len(generate_monthly_stats([], created, "x", today=TODAY)) == 12
        assert len(generate_yearly_stats([], created, 0, today=TODAY)) == 3

    def test_unknown_granularity_is_rejected(self):
        with pytest.raises(ValueError):
            bucket_by_period([], created, 3, "quarter", today=TODAY)


# ═════════════════════════════════════════════════════════════════════════════
# Counting
# ═════════════════════════════════════════════════════════════════════════════

class TestCounting:
    def test_oldest_record_outside_window_is_excluded(self):
        # 15 records, one per month, reaching 14 months back
        records = [{"created_at": _months_back(n)} for n in range(15)]
        buckets = generate_monthly_stats(records, created, 12, today=TODAY)

        assert sum(b.count for b in buckets) == 12
        assert sum(b.count for b in buckets) <= 14
        assert all(b.count == 1 for b in buckets)
        oldest = records[-1]["created_at"]
        assert not any(b.contains(oldest) for b in buckets)

    def test_sum_equals_len_when_all_records_in_range(self):
        records = [{"created_at": TODAY - timedelta(days=d)} for d in range(0, 300, 7)]
        buckets = generate_monthly_stats(records, created, 12, today=TODAY)
        assert sum(b.count for b in buckets) == len(records)

    def test_range_bounds_are_inclusive(self):
        records = [
            {"created_at": date(2024, 6, 1)},
            {"created_at": datetime(2024, 6, 30, 23, 59, 59)},
            {"created_at": date(2024, 5, 31)},
        ]
        buckets = generate_monthly_stats(records, created, 2, today=TODAY)
        assert [b.count for b in buckets] == [1, 2]

    def test_unparseable_and_missing_dates_are_skipped(self):
        records = [
            {"created_at": "not-a-date"},
            {"created_at": None},
            {"created_at": 12345},
            {"other": "no date key"},
            {"created_at": "2024-06-03"},
        ]
        buckets = generate_monthly_stats(records, created, 1, today=TODAY)
        assert buckets[0].count == 1

    def test_iso_strings_with_zulu_suffix(self):
        records = [{"created_at": "2024-06-03T10:00:00Z"}, {"created_at": "2024-06-04T10:00:00.123+00:00"}]
        buckets = generate_monthly_stats(records, created, 1, today=TODAY)
        assert buckets[0].count == 2

    def test_aware_datetimes_are_bucketed_by_utc_day(self):
        plus_two = timezone(timedelta(hours=2))
        # 01:00 on June 1st at +02:00 is still May 31st in UTC
        records = [{"created_at": datetime(2024, 6, 1, 1, 0, tzinfo=plus_two)}]
        buckets = generate_monthly_stats(records, created, 2, today=TODAY)
        assert [b.period for b in buckets] == ["May 2024", "Jun 2024"]
        assert [b.count for b in buckets] == [1, 0]

    def test_extractor_errors_exclude_the_record(self):
        class Row:
            pass

        buckets = generate_yearly_stats([Row()], lambda r: r.created_at, today=TODAY)
        assert sum(b.count for b in buckets) == 0

    def test_none_collection_yields_empty_buckets(self):
        buckets = generate_weekly_stats(None, created, 4, today=TODAY)
        assert [b.count for b in buckets] == [0, 0, 0, 0]


# ═════════════════════════════════════════════════════════════════════════════
# Cross-tab enrichment
# ═════════════════════════════════════════════════════════════════════════════

class TestCrossTab:
    def _records(self):
        return [
            {"created_at": date(2024, 5, 2), "status": "completed", "customer_id": 1},
            {"created_at": date(2024, 5, 9), "status": "new", "customer_id": None},
            {"created_at": date(2024, 6, 1), "status": "completed", "customer_id": None},
            {"created_at": "garbage", "status": "completed", "customer_id": 3},
        ]

    def test_counts_per_bucket(self):
        records = self._records()
        buckets = generate_monthly_stats(records, created, 3, today=TODAY)
        rows = enrich_with_cross_tab(buckets, records, created, {
            "completed": field_equals("status", "completed"),
            "converted": field_present("customer_id"),
        })

        assert [r["period"] for r in rows] == ["Apr 2024", "May 2024", "Jun 2024"]
        assert [r["count"] for r in rows] == [0, 2, 1]
        assert [r["completed"] for r in rows] == [0, 1, 1]
        assert [r["converted"] for r in rows] == [0, 1, 0]

    def test_every_classifier_present_even_when_empty(self):
        buckets = generate_weekly_stats([], created, 3, today=TODAY)
        rows = enrich_with_cross_tab(buckets, [], created, {"planned": field_equals("status", "planned")})
        assert len(rows) == 3
        assert all(r["planned"] == 0 for r in rows)

    def test_dates_serialised_as_iso_strings(self):
        buckets = generate_yearly_stats([], created, 1, today=TODAY)
        row = enrich_with_cross_tab(buckets, [], created, {})[0]
        assert row == {
            "period": "2024",
            "start_date": "2024-01-01",
            "end_date": "2024-12-31",
            "count": 0,
            "year": 2024,
        }

    def test_predicate_errors_count_as_no_match(self):
        records = [{"created_at": date(2024, 6, 2)}]
        buckets = generate_monthly_stats(records, created, 1, today=TODAY)

        def boom(record):
            raise KeyError("status")

        rows = enrich_with_cross_tab(buckets, records, created, {"x": boom})
        assert rows[0]["x"] == 0

    def test_predicates_work_on_objects(self):
        class Req:
            status = "completed"
            customer_id = None

        assert field_equals("status", "completed")(Req()) is True
        assert field_present("customer_id")(Req()) is False


# ═════════════════════════════════════════════════════════════════════════════
# Helpers
# ═════════════════════════════════════════════════════════════════════════════

def test_conversion_rate_zero_total_is_zero():
    assert conversion_rate(0, 0) == 0.0
    assert conversion_rate(3, 0) == 0.0


def test_conversion_rate_ratio():
    assert conversion_rate(1, 4) == 0.25


def test_week_key_zero_pads():
    assert week_key("Week 5", 2024) == "2024-W05"
    assert week_key("Week 52", 2023) == "2023-W52"


def test_stat_period_is_frozen():
    p = StatPeriod(period="2024", start_date=date(2024, 1, 1), end_date=date(2024, 12, 31), count=0, year=2024)
    with pytest.raises(FrozenInstanceError):
        p.count = 5
