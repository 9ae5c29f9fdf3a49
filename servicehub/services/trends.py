"""
Trend calculation: compare a metric in the current period with the
period of equal length immediately before it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum


class TrendDirection(str, Enum):
    UP = "UP"
    DOWN = "DOWN"
    NEUTRAL = "NEUTRAL"


@dataclass(frozen=True)
class TrendInfo:
    current: float
    previous: float
    percent_change: float
    direction: TrendDirection
    is_positive: bool

    def to_dict(self) -> dict:
        return {
            "percent_change": format_percentage(self.percent_change),
            "direction": self.direction.value,
            "is_positive": self.is_positive,
        }


def format_percentage(value: float) -> float:
    """0.1234 -> 12.3"""
    return round(value * 1000) / 10


def calculate_trend(current, previous, *, higher_is_better: bool = True, neutral_threshold: float = 0.05) -> TrendInfo:
    """Relative change from *previous* to *current*.

    Growth from zero counts as +100%. Changes smaller than
    *neutral_threshold* (as a fraction) are NEUTRAL.
    """
    if previous:
        percent_change = (current - previous) / previous
    elif current:
        percent_change = 1.0
    else:
        percent_change = 0.0

    direction = TrendDirection.NEUTRAL
    if abs(percent_change) >= neutral_threshold:
        direction = TrendDirection.UP if percent_change > 0 else TrendDirection.DOWN

    is_positive = (
        (direction is TrendDirection.UP and higher_is_better)
        or (direction is TrendDirection.DOWN and not higher_is_better)
    )
    return TrendInfo(
        current=current,
        previous=previous,
        percent_change=percent_change,
        direction=direction,
        is_positive=is_positive,
    )


def to_utc(value) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(text)
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def split_by_time_period(items, date_extractor, current_start, current_end=None):
    """Split *items* into (current, previous) lists.

    The previous window has the same length as the current one and ends
    one microsecond before *current_start*. Both windows are inclusive.
    Items without a usable timestamp fall in neither.
    """
    cur_start = to_utc(current_start)
    cur_end = to_utc(current_end) or datetime.now(timezone.utc)
    prev_end = cur_start - timedelta(microseconds=1)
    prev_start = prev_end - (cur_end - cur_start)

    current, previous = [], []
    for item in items:
        try:
            ts = to_utc(date_extractor(item))
        except (AttributeError, KeyError, TypeError):
            ts = None
        if ts is None:
            continue
        if cur_start <= ts <= cur_end:
            current.append(item)
        elif prev_start <= ts <= prev_end:
            previous.append(item)
    return current, previous


def calculate_metric_trend(
    items,
    date_extractor,
    metric,
    current_start,
    current_end=None,
    **options,
) -> TrendInfo:
    """Apply *metric* (a function of a list of items) to both windows and compare."""
    current, previous = split_by_time_period(items, date_extractor, current_start, current_end)
    return calculate_trend(metric(current), metric(previous), **options)
