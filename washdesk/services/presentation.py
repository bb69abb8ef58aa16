from __future__ import annotations

from datetime import date
from typing import Dict, List, Sequence

from washdesk.schemas.metrics import ChartPoint, DailyMetric, GrowthTrend, TimeRange

_RANGE_DAYS: Dict[str, int] = {"7d": 7, "30d": 30, "90d": 90}


def format_axis_date(day: date) -> str:
    """Short month/day axis label, e.g. ``Jun 29``."""

    return f"{day:%b} {day.day}"


def format_currency(amount: float, currency: str) -> str:
    sign = "-" if amount < 0 else ""
    return f"{sign}{currency} {abs(amount):,.2f}"


def percentage_change(current: float, previous: float) -> float:
    if previous == 0:
        return 0.0
    return (current - previous) / previous * 100


def build_chart_points(series: Sequence[DailyMetric]) -> List[ChartPoint]:
    points: List[ChartPoint] = []
    previous = None
    for metric in series:
        points.append(
            ChartPoint(
                label=format_axis_date(metric.date),
                date=metric.date,
                revenue=metric.revenue,
                expenses=metric.expenses,
                net_profit=metric.net_profit,
                washes=metric.wash_count,
                customers=metric.customer_count,
                rating=metric.average_rating,
                revenue_change=percentage_change(metric.revenue, previous.revenue) if previous else 0.0,
                wash_change=percentage_change(metric.wash_count, previous.wash_count) if previous else 0.0,
                synthetic=metric.synthetic,
            )
        )
        previous = metric
    return points


def slice_range(points: Sequence[ChartPoint], time_range: TimeRange) -> List[ChartPoint]:
    days = _RANGE_DAYS[time_range]
    return list(points[-days:])


def latest_trend(series: Sequence[DailyMetric]) -> GrowthTrend:
    """Compare the last day of ``series`` with the one before it."""

    if len(series) < 2:
        return GrowthTrend()
    latest, previous = series[-1], series[-2]
    return GrowthTrend(
        revenue_growth=percentage_change(latest.revenue, previous.revenue),
        wash_growth=percentage_change(latest.wash_count, previous.wash_count),
    )
