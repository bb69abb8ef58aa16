from __future__ import annotations

from datetime import date
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field

TimeRange = Literal["7d", "30d", "90d"]


class DailyMetric(BaseModel):
    """Reduced business metrics for one calendar day."""

    model_config = ConfigDict(frozen=True)

    date: date
    revenue: float = 0.0
    expenses: float = 0.0
    wash_count: int = 0
    customer_count: int = 0
    average_rating: float = 0.0
    net_profit: float = 0.0
    synthetic: bool = Field(
        default=False,
        description="True when the values were generated as placeholders rather than read",
    )


class ChartPoint(BaseModel):
    """A single day formatted for table or chart display."""

    label: str
    date: date
    revenue: float
    expenses: float
    net_profit: float
    washes: int
    customers: int
    rating: float
    revenue_change: float = 0.0
    wash_change: float = 0.0
    synthetic: bool = False


class DailyMetricsResponse(BaseModel):
    business_id: str | None = None
    currency: str
    window_days: int
    generated_at: str
    series: List[DailyMetric]
    chart: List[ChartPoint]


class GrowthTrend(BaseModel):
    """Latest-versus-previous day comparison shown on the growth chart."""

    revenue_growth: float = 0.0
    wash_growth: float = 0.0


class GrowthReport(BaseModel):
    business_id: str | None = None
    currency: str
    time_range: TimeRange
    total_revenue: float
    total_revenue_display: str
    total_expenses: float
    total_net_profit: float
    total_customers: int
    total_appointments: int
    completed_appointments: int
    completion_rate: float
    average_revenue_per_appointment: float
    average_daily_revenue: float
    average_rating: float
    synthetic_days: int
    trend: GrowthTrend
    chart: List[ChartPoint]
