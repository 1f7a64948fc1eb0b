"""Tests for the analytics aggregation primitives."""

from __future__ import annotations

from datetime import date, datetime

import pytest

from realty_crm.services.aggregation import (
    as_named_counts,
    average,
    bucket_by_month,
    daily_counts,
    group_counts,
    month_anchors,
    month_labels,
    percentage,
    window_start,
)

TODAY = date(2024, 2, 20)


class TestRates:
    """Tests for zero-guarded rate helpers."""

    def test_percentage_empty_denominator_is_zero(self):
        assert percentage(0, 0) == 0
        assert percentage(5, 0) == 0

    def test_percentage_rounds_half_up(self):
        assert percentage(1, 8) == 13  # 12.5
        assert percentage(1, 3) == 33
        assert percentage(2, 3) == 67
        assert percentage(3, 3) == 100

    def test_average(self):
        assert average([]) == 0.0
        assert average([None, None]) == 0.0
        assert average([10, None, 20, 31]) == 20.3
        assert average([1, 2], digits=2) == 1.5


class TestGrouping:
    """Tests for categorical counts."""

    def test_group_counts_objects_and_dicts(self):
        rows = [{"source": "web"}, {"source": "referral"}, {"source": "web"}, {"source": None}]

        assert group_counts(rows, "source") == {"web": 2, "referral": 1, "unknown": 1}

    def test_as_named_counts(self):
        assert as_named_counts({"hot": 2}) == [{"name": "hot", "count": 2}]


class TestMonthBuckets:
    """Tests for month bucketing."""

    def test_anchors_cross_year_boundary(self):
        anchors = month_anchors(6, TODAY)

        assert anchors[0] == date(2023, 9, 1)
        assert anchors[-1] == date(2024, 2, 1)
        assert month_labels(anchors)[:2] == ["Sep 2023", "Oct 2023"]

    @pytest.mark.parametrize("n", [6, 12])
    def test_buckets_match_naive_filter_count(self, n):
        rows = [
            {"created_at": datetime(2023, month, day)}
            for month in range(1, 13)
            for day in range(1, (month % 4) + 2)
        ] + [
            {"created_at": datetime(2024, 1, 3)},
            {"created_at": datetime(2024, 2, 19)},
            {"created_at": datetime(2024, 2, 1)},
            {"created_at": None},
        ]

        buckets = bucket_by_month(rows, n, TODAY)

        assert len(buckets) == n
        for anchor, count in zip(month_anchors(n, TODAY), buckets):
            naive = sum(
                1
                for row in rows
                if row["created_at"] is not None
                and row["created_at"].year == anchor.year
                and row["created_at"].month == anchor.month
            )
            assert count == naive

    def test_same_month_previous_year_not_counted(self):
        rows = [{"created_at": datetime(2023, 2, 10)}, {"created_at": datetime(2024, 2, 10)}]

        assert bucket_by_month(rows, 6, TODAY)[-1] == 1

    def test_value_sums(self):
        rows = [
            {"created_at": datetime(2024, 2, 1), "price": 100.0},
            {"created_at": datetime(2024, 2, 5), "price": None},
            {"created_at": datetime(2024, 1, 5), "price": 50.0},
        ]

        buckets = bucket_by_month(rows, 6, TODAY, value="price")

        assert buckets[-1] == 100.0
        assert buckets[-2] == 50.0

    @pytest.mark.parametrize("n", [0, 3, 7, 24])
    def test_only_six_or_twelve(self, n):
        with pytest.raises(ValueError):
            bucket_by_month([], n, TODAY)

    def test_window_start(self):
        assert window_start(12, TODAY) == datetime(2023, 3, 1)


class TestDailyCounts:
    """Tests for daily series."""

    def test_last_seven_days(self):
        rows = [
            {"created_at": datetime(2024, 2, 20, 8)},
            {"created_at": datetime(2024, 2, 20, 18)},
            {"created_at": datetime(2024, 2, 14)},
            {"created_at": datetime(2024, 2, 13)},
        ]

        series = daily_counts(rows, 7, TODAY)

        assert len(series) == 7
        assert series[0] == {"date": "2024-02-14", "count": 1}
        assert series[-1] == {"date": "2024-02-20", "count": 2}
