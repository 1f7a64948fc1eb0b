"""Aggregation primitives for the analytics dashboards.

Pure functions over row collections (ORM objects or dicts). Rates are
guarded so an empty denominator yields 0 instead of raising.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable
from datetime import date, datetime, timedelta
from typing import Any

BUCKET_SIZES = (6, 12)

Accessor = Callable[[Any], Any] | str


def _accessor(key: Accessor) -> Callable[[Any], Any]:
    if callable(key):
        return key

    def get(row: Any) -> Any:
        if isinstance(row, dict):
            return row.get(key)
        return getattr(row, key, None)

    return get


def percentage(part: float, total: float) -> int:
    """``part / total * 100`` rounded half-up; 0 when total is 0."""
    if not total:
        return 0
    return int(math.floor(part / total * 100 + 0.5))


def average(values: Iterable[float | None], digits: int = 1) -> float:
    """Mean of the non-null values; 0.0 for an empty collection."""
    present = [v for v in values if v is not None]
    if not present:
        return 0.0
    return round(sum(present) / len(present), digits)


def group_counts(
    rows: Iterable[Any],
    key: Accessor,
    *,
    default: str = "unknown",
) -> dict[str, int]:
    """Count rows per category, in order of first occurrence."""
    get = _accessor(key)
    counts: dict[str, int] = {}
    for row in rows:
        category = get(row) or default
        counts[category] = counts.get(category, 0) + 1
    return counts


def as_named_counts(counts: dict[str, int]) -> list[dict[str, Any]]:
    """``{"a": 1}`` -> ``[{"name": "a", "count": 1}]`` for chart widgets."""
    return [{"name": name, "count": count} for name, count in counts.items()]


def _shift_month(anchor: date, months: int) -> date:
    index = anchor.year * 12 + (anchor.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def month_anchors(n: int, today: date) -> list[date]:
    """First day of each of the last ``n`` calendar months, oldest first.

    The current month is the last anchor.
    """
    current = today.replace(day=1)
    return [_shift_month(current, offset) for offset in range(-(n - 1), 1)]


def _as_date(value: Any) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value).date()
    return None


def bucket_by_month(
    rows: Iterable[Any],
    n: int,
    today: date,
    *,
    created: Accessor = "created_at",
    value: Accessor | None = None,
) -> list[float]:
    """Partition rows into ``n`` month buckets.

    A row lands in a bucket when its creation month and year equal the
    bucket's anchor. Rows outside the window are ignored. Without
    ``value`` each bucket counts rows; with it, the bucket sums the
    values (None treated as 0).

    Raises:
        ValueError: If ``n`` is not 6 or 12
    """
    if n not in BUCKET_SIZES:
        raise ValueError(f"Month buckets must be one of {BUCKET_SIZES}, got {n}")

    anchors = month_anchors(n, today)
    index = {(a.year, a.month): i for i, a in enumerate(anchors)}
    buckets: list[float] = [0] * n

    get_created = _accessor(created)
    get_value = _accessor(value) if value is not None else None

    for row in rows:
        created_on = _as_date(get_created(row))
        if created_on is None:
            continue
        slot = index.get((created_on.year, created_on.month))
        if slot is None:
            continue
        buckets[slot] += (get_value(row) or 0) if get_value else 1

    return buckets


def month_labels(anchors: Iterable[date], fmt: str = "%b %Y") -> list[str]:
    """Labels for month anchors ("Jan 2024" by default)."""
    return [anchor.strftime(fmt) for anchor in anchors]


def window_start(n: int, today: date) -> datetime:
    """Start of the oldest bucket of an ``n``-month window."""
    return datetime.combine(month_anchors(n, today)[0], datetime.min.time())


def day_range(days: int, today: date) -> list[date]:
    """The last ``days`` calendar days, oldest first, ending today."""
    return [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]


def daily_counts(
    rows: Iterable[Any],
    days: int,
    today: date,
    *,
    created: Accessor = "created_at",
    value: Accessor | None = None,
) -> list[dict[str, Any]]:
    """Per-day totals for the last ``days`` days as ``{date, count}`` points."""
    series = {day: 0 for day in day_range(days, today)}
    get_created = _accessor(created)
    get_value = _accessor(value) if value is not None else None

    for row in rows:
        created_on = _as_date(get_created(row))
        if created_on in series:
            series[created_on] += (get_value(row) or 0) if get_value else 1

    return [{"date": day.isoformat(), "count": count} for day, count in series.items()]
