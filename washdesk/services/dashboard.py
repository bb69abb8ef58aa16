from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence

from washdesk.schemas.dashboard import ActivityItem, DashboardStats, StatCard
from washdesk.schemas.metrics import DailyMetric, GrowthReport, TimeRange
from washdesk.schemas.records import Appointment, Customer, Payment
from washdesk.services.bucketing import to_local
from washdesk.services.metrics import MetricsService
from washdesk.services.presentation import (
    build_chart_points,
    format_currency,
    latest_trend,
    percentage_change,
    slice_range,
)
from washdesk.services.reader import TenantDataReader

logger = logging.getLogger(__name__)

RECENT_PER_SOURCE = 5

RECENT_ACTIVITY_LIMIT = 8


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


class DashboardService:
    """Roll the daily series and tenant tables up into dashboard figures."""

    def __init__(
        self,
        reader: TenantDataReader,
        metrics: MetricsService,
        *,
        currency: str = "KES",
    ) -> None:
        self._reader = reader
        self._metrics = metrics
        self._currency = currency

    async def growth_report(
        self,
        tenant_id: Optional[str],
        *,
        time_range: TimeRange = "30d",
        window_days: Optional[int] = None,
        today: Optional[date] = None,
    ) -> GrowthReport:
        logger.info("Building growth report for business %s", tenant_id)
        series = await self._metrics.compute(tenant_id, today=today, window_days=window_days)
        customers, appointments = await asyncio.gather(
            self._reader.fetch("customers", tenant_id),
            self._reader.fetch("appointments", tenant_id),
        )

        total_revenue = sum(metric.revenue for metric in series)
        total_expenses = sum(metric.expenses for metric in series)
        total_customers = len(customers) or sum(metric.customer_count for metric in series)
        total_appointments = len(appointments) or sum(metric.wash_count for metric in series)
        if appointments:
            completed = sum(1 for item in appointments if item.is_completed)
        else:
            completed = sum(metric.wash_count for metric in series)

        rated_days = [metric.average_rating for metric in series if metric.average_rating > 0]

        return GrowthReport(
            business_id=tenant_id,
            currency=self._currency,
            time_range=time_range,
            total_revenue=total_revenue,
            total_revenue_display=format_currency(total_revenue, self._currency),
            total_expenses=total_expenses,
            total_net_profit=total_revenue - total_expenses,
            total_customers=total_customers,
            total_appointments=total_appointments,
            completed_appointments=completed,
            completion_rate=completed / total_appointments * 100 if total_appointments else 0.0,
            average_revenue_per_appointment=(
                total_revenue / total_appointments if total_appointments else 0.0
            ),
            average_daily_revenue=total_revenue / len(series) if series else 0.0,
            average_rating=round(_mean(rated_days), 1),
            synthetic_days=sum(1 for metric in series if metric.synthetic),
            trend=latest_trend(series),
            chart=slice_range(build_chart_points(series), time_range),
        )

    async def stats(
        self,
        tenant_id: Optional[str],
        *,
        today: Optional[date] = None,
    ) -> DashboardStats:
        logger.info("Building dashboard stats for business %s", tenant_id)
        today = today or self._metrics.today()
        series = await self._metrics.compute(tenant_id, today=today)
        customers, employees, inventory, feedback, appointments, payments = await asyncio.gather(
            self._reader.fetch("customers", tenant_id),
            self._reader.fetch("employees", tenant_id),
            self._reader.fetch("inventory", tenant_id),
            self._reader.fetch("feedback", tenant_id),
            self._reader.fetch("appointments", tenant_id),
            self._reader.fetch("payments", tenant_id),
        )

        current = series[-1] if series else DailyMetric(date=today)
        previous = series[-2] if len(series) > 1 else None

        stats = DashboardStats(
            business_id=tenant_id,
            date=today.isoformat(),
            currency=self._currency,
            today_revenue=current.revenue,
            today_washes=current.wash_count,
            today_customers=sum(1 for item in customers if item.last_visit == today),
            today_expenses=current.expenses,
            total_customers=len(customers),
            active_employees=sum(1 for item in employees if item.is_active),
            low_stock_items=sum(1 for item in inventory if item.is_low_stock),
            average_rating=round(_mean([item.rating for item in feedback]), 1),
            monthly_growth=self._period_growth(series),
            growth=build_chart_points(series),
            recent_activity=self._recent_activity(appointments, payments, customers),
        )
        stats.cards = self._build_cards(stats, current, previous)
        return stats

    @staticmethod
    def _period_growth(series: Sequence[DailyMetric]) -> float:
        """Revenue change of the recent half of the window over the older half."""

        if len(series) < 2:
            return 0.0
        middle = len(series) // 2
        older = sum(metric.revenue for metric in series[:middle])
        recent = sum(metric.revenue for metric in series[middle:])
        return round(percentage_change(recent, older), 1)

    def _recent_activity(
        self,
        appointments: Sequence[Appointment],
        payments: Sequence[Payment],
        customers: Sequence[Customer],
    ) -> List[ActivityItem]:
        """Newest bookings and payments, merged and cut to ``RECENT_ACTIVITY_LIMIT``."""

        tz = self._metrics.timezone
        names: Dict[Optional[str], str] = {item.id: item.name for item in customers if item.name}
        owners = {item.id: item.customer_id for item in appointments}

        def booked_at(item: Appointment) -> datetime:
            return to_local(item.created_at or item.scheduled_at, tz)

        def paid_at(item: Payment) -> datetime:
            return to_local(item.created_at, tz)

        items: List[ActivityItem] = []
        for item in sorted(appointments, key=booked_at, reverse=True)[:RECENT_PER_SOURCE]:
            customer = names.get(item.customer_id, "Unknown")
            items.append(
                ActivityItem(
                    id=f"apt-{item.id}",
                    type="completion" if item.is_completed else "appointment",
                    title="Service Completed" if item.is_completed else "New Appointment",
                    description=f"{customer} - {item.service_id or 'Service'}",
                    amount=item.total_amount,
                    time=booked_at(item),
                    status=item.status,
                )
            )
        for item in sorted(payments, key=paid_at, reverse=True)[:RECENT_PER_SOURCE]:
            customer = names.get(owners.get(item.appointment_id), "Customer")
            items.append(
                ActivityItem(
                    id=f"pay-{item.id}",
                    type="payment",
                    title="Payment Received",
                    description=f"{customer} - {item.payment_method or 'unknown'}",
                    amount=item.amount,
                    time=paid_at(item),
                    status=item.status,
                )
            )

        items.sort(key=lambda entry: entry.time, reverse=True)
        return items[:RECENT_ACTIVITY_LIMIT]

    def _build_cards(
        self,
        stats: DashboardStats,
        current: DailyMetric,
        previous: Optional[DailyMetric],
    ) -> List[StatCard]:
        def change(attribute: str) -> Optional[float]:
            if previous is None:
                return None
            return round(
                percentage_change(getattr(current, attribute), getattr(previous, attribute)), 1
            )

        return [
            StatCard(
                key="today_revenue",
                label="Today's Revenue",
                value=format_currency(stats.today_revenue, self._currency),
                change_percentage=change("revenue"),
            ),
            StatCard(
                key="today_washes",
                label="Cars Washed Today",
                value=str(stats.today_washes),
                change_percentage=change("wash_count"),
            ),
            StatCard(
                key="today_expenses",
                label="Today's Expenses",
                value=format_currency(stats.today_expenses, self._currency),
                change_percentage=change("expenses"),
            ),
            StatCard(
                key="total_customers",
                label="Customers",
                value=str(stats.total_customers),
            ),
            StatCard(
                key="active_employees",
                label="Active Employees",
                value=str(stats.active_employees),
            ),
            StatCard(
                key="average_rating",
                label="Average Rating",
                value=f"{stats.average_rating:.1f}",
            ),
            StatCard(
                key="low_stock_items",
                label="Low Stock Items",
                value=str(stats.low_stock_items),
            ),
            StatCard(
                key="net_profit_today",
                label="Net Profit Today",
                value=format_currency(stats.today_revenue - stats.today_expenses, self._currency),
                change_percentage=change("net_profit"),
            ),
        ]
