import random
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from washdesk.schemas.metrics import DailyMetric
from washdesk.schemas.records import Appointment, Expense, Feedback, Payment
from washdesk.services.backfill import BackfillPolicy
from washdesk.services.bucketing import (
    DayBucket,
    SourceRecords,
    bucket_records,
    bucket_sources,
    day_windows,
)
from washdesk.services.presentation import (
    build_chart_points,
    format_axis_date,
    format_currency,
    latest_trend,
    percentage_change,
    slice_range,
)
from washdesk.services.reducer import reduce_bucket, reduce_buckets

NAIROBI = ZoneInfo("Africa/Nairobi")
TODAY = date(2024, 6, 30)


def _appointment(record_id: str, when: str, *, status: str = "completed", amount=0.0, customer="c-1"):
    return Appointment.model_validate(
        {
            "id": record_id,
            "customer_id": customer,
            "scheduled_date": when,
            "status": status,
            "total_amount": amount,
        }
    )


def _payment(record_id: str, when: str, amount: float, *, status: str = "completed"):
    return Payment.model_validate(
        {"id": record_id, "appointment_id": "a-1", "amount": amount, "status": status, "created_at": when}
    )


def _feedback(record_id: str, when: str, rating: int):
    return Feedback.model_validate({"id": record_id, "rating": rating, "created_at": when})


def _expense(record_id: str, day: str, amount: float, *, status: str = "pending"):
    return Expense.model_validate(
        {"id": record_id, "amount": amount, "expense_date": day, "status": status}
    )


def _bucket_for(day: date, **records) -> DayBucket:
    [window] = day_windows(day, 1)
    return DayBucket(window=window, **records)


def test_day_windows_cover_consecutive_days_ending_today() -> None:
    windows = day_windows(TODAY, 3)

    assert [window.day for window in windows] == [
        date(2024, 6, 28),
        date(2024, 6, 29),
        date(2024, 6, 30),
    ]
    assert windows[0].start == datetime(2024, 6, 28, 0, 0)
    assert windows[0].end == datetime(2024, 6, 28, 23, 59, 59, 999999)


@pytest.mark.parametrize("window_days", [1, 7, 30, 90])
def test_day_windows_length_matches_request(window_days: int) -> None:
    windows = day_windows(TODAY, window_days)

    assert len(windows) == window_days
    assert windows[-1].day == TODAY
    gaps = {(later.day - earlier.day).days for earlier, later in zip(windows, windows[1:])}
    assert gaps <= {1}


def test_day_windows_rejects_empty_window() -> None:
    with pytest.raises(ValueError):
        day_windows(TODAY, 0)


def test_bucket_records_drops_records_outside_window() -> None:
    windows = day_windows(TODAY, 2)
    records = [
        _appointment("a-1", "2024-06-28T12:00:00"),
        _appointment("a-2", "2024-06-29T00:00:00"),
        _appointment("a-3", "2024-06-30T23:59:59.999999"),
        _appointment("a-4", "2024-07-01T00:00:00"),
    ]

    buckets = bucket_records(windows, records, lambda item: item.scheduled_at)

    assert [[item.id for item in bucket] for bucket in buckets] == [["a-2"], ["a-3"]]


def test_bucket_records_converts_aware_timestamps_to_business_timezone() -> None:
    windows = day_windows(TODAY, 2)
    late_utc = _payment("p-1", "2024-06-29T22:30:00Z", 100.0)

    buckets = bucket_records(windows, [late_utc], lambda item: item.created_at, tz=NAIROBI)

    assert buckets[0] == []
    assert [item.id for item in buckets[1]] == ["p-1"]


def test_bucket_sources_uses_each_kinds_date_field() -> None:
    windows = day_windows(TODAY, 2)
    sources = SourceRecords(
        appointments=[_appointment("a-1", "2024-06-29T10:00:00")],
        expenses=[_expense("e-1", "2024-06-30", 50.0)],
        payments=[_payment("p-1", "2024-06-30T09:00:00", 10.0)],
        feedback=[_feedback("f-1", "2024-06-29T18:00:00", 5)],
    )

    first, second = bucket_sources(windows, sources)

    assert [item.id for item in first.appointments] == ["a-1"]
    assert [item.id for item in first.feedback] == ["f-1"]
    assert first.expenses == [] and first.payments == []
    assert [item.id for item in second.expenses] == ["e-1"]
    assert [item.id for item in second.payments] == ["p-1"]


def test_bucketing_is_deterministic() -> None:
    windows = day_windows(TODAY, 5)
    records = [_appointment(f"a-{index}", f"2024-06-{26 + index % 5}T08:00:00") for index in range(20)]

    first = bucket_records(windows, records, lambda item: item.scheduled_at)
    second = bucket_records(windows, records, lambda item: item.scheduled_at)

    assert first == second


def test_reduce_uses_appointment_totals_without_payments() -> None:
    bucket = _bucket_for(
        date(2024, 6, 29),
        appointments=[
            _appointment("a-1", "2024-06-29T10:00:00", amount=800.0),
            _appointment("a-2", "2024-06-29T11:00:00", status="cancelled", amount=500.0),
        ],
    )

    metric = reduce_bucket(bucket)

    assert metric.revenue == 800
    assert metric.wash_count == 1
    assert metric.customer_count == 1
    assert metric.expenses == 0
    assert metric.net_profit == 800
    assert metric.average_rating == 0
    assert metric.synthetic is False


def test_reduce_prefers_completed_payments_over_appointment_totals() -> None:
    bucket = _bucket_for(
        date(2024, 6, 29),
        appointments=[_appointment("a-1", "2024-06-29T10:00:00", amount=1000.0)],
        payments=[
            _payment("p-1", "2024-06-29T10:30:00", 500.0),
            _payment("p-2", "2024-06-29T11:30:00", 300.0),
            _payment("p-3", "2024-06-29T12:30:00", 999.0, status="failed"),
        ],
    )

    metric = reduce_bucket(bucket)

    assert metric.revenue == 800
    assert metric.wash_count == 1


def test_reduce_falls_back_when_only_pending_payments_exist() -> None:
    bucket = _bucket_for(
        date(2024, 6, 29),
        appointments=[_appointment("a-1", "2024-06-29T10:00:00", amount=1000.0)],
        payments=[_payment("p-1", "2024-06-29T10:30:00", 500.0, status="pending")],
    )

    assert reduce_bucket(bucket).revenue == 1000


def test_reduce_counts_distinct_customers_and_all_expenses() -> None:
    bucket = _bucket_for(
        date(2024, 6, 29),
        appointments=[
            _appointment("a-1", "2024-06-29T08:00:00", amount=500.0, customer="c-1"),
            _appointment("a-2", "2024-06-29T09:00:00", amount=500.0, customer="c-1"),
            _appointment("a-3", "2024-06-29T10:00:00", amount=500.0, customer="c-2"),
        ],
        expenses=[
            _expense("e-1", "2024-06-29", 200.0, status="approved"),
            _expense("e-2", "2024-06-29", 100.0, status="rejected"),
        ],
    )

    metric = reduce_bucket(bucket)

    assert metric.wash_count == 3
    assert metric.customer_count == 2
    assert metric.expenses == 300
    assert metric.net_profit == metric.revenue - metric.expenses == 1200


def test_reduce_averages_feedback_ratings() -> None:
    bucket = _bucket_for(
        date(2024, 6, 29),
        feedback=[
            _feedback("f-1", "2024-06-29T09:00:00", 4),
            _feedback("f-2", "2024-06-29T10:00:00", 5),
            _feedback("f-3", "2024-06-29T11:00:00", 3),
        ],
    )

    assert reduce_bucket(bucket).average_rating == 4.0
    assert reduce_bucket(_bucket_for(date(2024, 6, 29))).average_rating == 0


def test_reduce_empty_buckets_yield_zero_metrics() -> None:
    metrics = reduce_buckets([DayBucket(window=window) for window in day_windows(TODAY, 3)])

    assert [metric.date for metric in metrics] == [date(2024, 6, 28), date(2024, 6, 29), TODAY]
    for metric in metrics:
        assert (metric.revenue, metric.expenses, metric.wash_count, metric.customer_count) == (0, 0, 0, 0)
        assert metric.net_profit == 0


def _zero_series(days: int):
    return [DailyMetric(date=window.day) for window in day_windows(TODAY, days)]


def test_backfill_only_touches_quiet_days_outside_recent_window() -> None:
    policy = BackfillPolicy(rng=random.Random(7))

    series = policy.apply(_zero_series(30))

    assert len(series) == 30
    older, recent = series[:15], series[15:]
    assert all(metric.synthetic for metric in older)
    for metric in recent:
        assert metric.synthetic is False
        assert (metric.revenue, metric.expenses, metric.wash_count) == (0, 0, 0)


def test_backfilled_days_keep_invariants() -> None:
    policy = BackfillPolicy(rng=random.Random(11))

    for metric in policy.apply(_zero_series(60)):
        assert metric.net_profit == pytest.approx(metric.revenue - metric.expenses)
        assert metric.customer_count <= metric.wash_count
        if metric.synthetic:
            assert 5 <= metric.wash_count <= 20
            assert 3.5 <= metric.average_rating <= 5.0
            assert metric.revenue > 0
            assert metric.expenses > 0


def test_backfill_never_overwrites_real_activity() -> None:
    series = _zero_series(30)
    series[0] = series[0].model_copy(update={"expenses": 120.0, "net_profit": -120.0})
    series[1] = series[1].model_copy(update={"wash_count": 1})

    result = BackfillPolicy(rng=random.Random(3)).apply(series)

    assert result[0] == series[0]
    assert result[1] == series[1]
    assert result[2].synthetic is True


def test_backfill_with_seed_is_reproducible_and_can_be_disabled() -> None:
    first = BackfillPolicy(rng=random.Random(42)).apply(_zero_series(30))
    second = BackfillPolicy(rng=random.Random(42)).apply(_zero_series(30))
    disabled = BackfillPolicy(enabled=False).apply(_zero_series(30))

    assert first == second
    assert not any(metric.synthetic for metric in disabled)


def test_backfill_does_not_touch_short_windows() -> None:
    result = BackfillPolicy().apply(_zero_series(3))

    assert not any(metric.synthetic for metric in result)


def test_presentation_formatting() -> None:
    assert format_axis_date(date(2024, 6, 29)) == "Jun 29"
    assert format_axis_date(date(2024, 7, 4)) == "Jul 4"
    assert format_currency(1234.5, "KES") == "KES 1,234.50"
    assert format_currency(-50, "KES") == "-KES 50.00"
    assert format_currency(0, "KES") == "KES 0.00"


def test_percentage_change_guards_zero_previous() -> None:
    assert percentage_change(150, 100) == 50
    assert percentage_change(50, 100) == -50
    assert percentage_change(500, 0) == 0


def test_chart_points_carry_day_over_day_changes() -> None:
    series = [
        DailyMetric(date=date(2024, 6, 28), revenue=0.0),
        DailyMetric(date=date(2024, 6, 29), revenue=800.0, wash_count=2, net_profit=800.0),
        DailyMetric(date=date(2024, 6, 30), revenue=1200.0, wash_count=1, net_profit=1200.0),
    ]

    points = build_chart_points(series)

    assert [point.label for point in points] == ["Jun 28", "Jun 29", "Jun 30"]
    assert points[0].revenue_change == 0
    assert points[1].revenue_change == 0
    assert points[2].revenue_change == 50
    assert points[2].wash_change == -50

    trend = latest_trend(series)
    assert trend.revenue_growth == 50
    assert trend.wash_growth == -50
    assert latest_trend(series[:1]).revenue_growth == 0


def test_slice_range_keeps_most_recent_points() -> None:
    points = build_chart_points(_zero_series(30))

    assert len(slice_range(points, "7d")) == 7
    assert slice_range(points, "7d")[-1].date == TODAY
    assert len(slice_range(points, "30d")) == 30
    assert len(slice_range(points, "90d")) == 30


def test_aware_timestamps_without_timezone_use_their_own_wall_clock() -> None:
    windows = day_windows(TODAY, 1)
    record = _appointment("a-1", datetime(2024, 6, 30, 8, tzinfo=timezone.utc).isoformat())

    assert bucket_records(windows, [record], lambda item: item.scheduled_at)[0] == [record]
