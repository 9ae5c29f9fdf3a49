"""
Time-bucketed statistics.

Buckets a homogeneous collection of records into the last N weeks, months
or years (oldest first), counts the records whose date falls in each bucket,
and optionally re-filters the collection per bucket to attach named
classifier counts (status, type, ...).

Everything here is pure: no database, no Flask. Pass ``today`` to make a
call deterministic; it defaults to the current UTC date.

    buckets = generate_monthly_stats(rows, lambda r: r["created_at"], months=6)
    enriched = enrich_with_cross_tab(buckets, rows, lambda r: r["created_at"], {
        "completed": field_equals("status", "completed"),
    })
"""

import logging
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta, timezone

from servicehub.utils.helpers import parse_calendar_date

logger = logging.getLogger(__name__)

WEEK = "week"
MONTH = "month"
YEAR = "year"

DEFAULT_LOOKBACK = {WEEK: 12, MONTH: 12, YEAR: 3}

_MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
               "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


@dataclass(frozen=True)
class StatPeriod:
    """One time bucket and the number of records dated inside it."""

    period: str
    start_date: date
    end_date: date
    count: int
    year: int

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def to_dict(self) -> dict:
        data = asdict(self)
        data["start_date"] = self.start_date.isoformat()
        data["end_date"] = self.end_date.isoformat()
        return data


# ── Lookback & period helpers ────────────────────────────────────────────

def normalize_lookback(lookback, granularity: str) -> int:
    """Coerce a caller-supplied lookback to a positive int.

    ``None``, non-integers, bools and values <= 0 fall back to the
    granularity default (12 weeks / 12 months / 3 years).
    """
    if granularity not in DEFAULT_LOOKBACK:
        raise ValueError(f"Unknown granularity: {granularity!r}")
    default = DEFAULT_LOOKBACK[granularity]
    if isinstance(lookback, bool) or not isinstance(lookback, int):
        if isinstance(lookback, str) and lookback.strip().lstrip("-").isdigit():
            lookback = int(lookback)
        else:
            return default
    return lookback if lookback > 0 else default


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def _month_range(year: int, month: int) -> tuple[date, date]:
    start = date(year, month, 1)
    next_year, next_month = _shift_month(year, month, 1)
    return start, date(next_year, next_month, 1) - timedelta(days=1)


def _week_periods(today: date, count: int):
    # ISO weeks run Monday..Sunday
    current_monday = today - timedelta(days=today.weekday())
    for back in range(count - 1, -1, -1):
        start = current_monday - timedelta(weeks=back)
        iso_year, iso_week, _ = start.isocalendar()
        yield f"Week {iso_week}", start, start + timedelta(days=6), iso_year


def _month_periods(today: date, count: int):
    for back in range(count - 1, -1, -1):
        year, month = _shift_month(today.year, today.month, -back)
        start, end = _month_range(year, month)
        yield f"{_MONTH_ABBR[month - 1]} {year}", start, end, year


def _year_periods(today: date, count: int):
    for back in range(count - 1, -1, -1):
        year = today.year - back
        yield str(year), date(year, 1, 1), date(year, 12, 31), year


_PERIOD_BUILDERS = {
    WEEK: _week_periods,
    MONTH: _month_periods,
    YEAR: _year_periods,
}


def record_day(record, date_extractor):
    """Return the calendar day of *record*, or None when it has no usable date."""
    try:
        raw = date_extractor(record)
    except (AttributeError, KeyError, TypeError, ValueError):
        return None
    return parse_calendar_date(raw)


def _today() -> date:
    return datetime.now(timezone.utc).date()


# ── Bucketing ────────────────────────────────────────────────────────────

def bucket_by_period(records, date_extractor, lookback, granularity: str, *, today=None) -> list[StatPeriod]:
    """Bucket *records* into the last *lookback* periods of *granularity*.

    Buckets are contiguous, non-overlapping and ordered oldest first; the
    last one contains *today*. Records with a missing or unparseable date
    are skipped.
    """
    count = normalize_lookback(lookback, granularity)
    today = today or _today()
    records = list(records or [])
    days = [record_day(r, date_extractor) for r in records]

    buckets = []
    for label, start, end, year in _PERIOD_BUILDERS[granularity](today, count):
        matched = sum(1 for d in days if d is not None and start <= d <= end)
        buckets.append(StatPeriod(period=label, start_date=start, end_date=end, count=matched, year=year))

    logger.debug(
        "Bucketed %d records into %d %s periods",
        len(records), count, granularity,
        extra={"granularity": granularity, "lookback": count},
    )
    return buckets


def generate_weekly_stats(records, date_extractor, weeks=12, *, today=None) -> list[StatPeriod]:
    return bucket_by_period(records, date_extractor, weeks, WEEK, today=today)


def generate_monthly_stats(records, date_extractor, months=12, *, today=None) -> list[StatPeriod]:
    return bucket_by_period(records, date_extractor, months, MONTH, today=today)


def generate_yearly_stats(records, date_extractor, years=3, *, today=None) -> list[StatPeriod]:
    return bucket_by_period(records, date_extractor, years, YEAR, today=today)


def week_key(label: str, year: int) -> str:
    """``"Week 5"`` + 2024 -> ``"2024-W05"``."""
    number = int(label.rsplit(" ", 1)[-1])
    return f"{year}-W{number:02d}"


# ── Cross-tabulation ─────────────────────────────────────────────────────

def enrich_with_cross_tab(buckets, records, date_extractor, classifiers: dict) -> list[dict]:
    """Attach one count per named classifier to every bucket.

    The records are re-filtered to each bucket's date range and every
    predicate in *classifiers* is applied to that subset. Buckets keep their
    order and every classifier name is present (0 when nothing matches).
    A predicate that raises on a record counts it as not matching.
    """
    records = list(records or [])
    enriched = []
    for bucket in buckets:
        in_bucket = [
            r for r in records
            if (d := record_day(r, date_extractor)) is not None and bucket.contains(d)
        ]
        row = bucket.to_dict()
        for name, predicate in classifiers.items():
            row[name] = sum(1 for r in in_bucket if _safe_match(predicate, r))
        enriched.append(row)
    return enriched


def _safe_match(predicate, record) -> bool:
    try:
        return bool(predicate(record))
    except (AttributeError, KeyError, TypeError, ValueError):
        return False


def conversion_rate(converted: int, total: int) -> float:
    """Share of converted records; 0.0 for an empty bucket."""
    if not total:
        return 0.0
    return converted / total


# ── Predicate helpers ────────────────────────────────────────────────────

def _field(record, field):
    if isinstance(record, dict):
        return record.get(field)
    return getattr(record, field, None)


def field_equals(field: str, value):
    """Predicate: ``record.<field> == value`` (works on dicts and objects)."""
    return lambda record: _field(record, field) == value


def field_present(field: str):
    """Predicate: ``record.<field>`` is not None."""
    return lambda record: _field(record, field) is not None
