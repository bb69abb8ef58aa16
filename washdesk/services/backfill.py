"""Placeholder values for quiet days in the older part of the metrics window.

Fresh tenants have no history, which leaves the growth chart flat. Days that
are older than the recent window and carry no revenue, expenses or washes are
replaced with plausible generated values. Generated days are flagged with
``synthetic=True`` so views can tell them apart from real activity.
"""

from __future__ import annotations

import logging
import math
import random
from typing import List, Optional, Sequence

from washdesk.schemas.metrics import DailyMetric

logger = logging.getLogger(__name__)

DEFAULT_RECENT_DAYS = 15


class BackfillPolicy:
    def __init__(
        self,
        *,
        recent_days: int = DEFAULT_RECENT_DAYS,
        enabled: bool = True,
        rng: Optional[random.Random] = None,
    ) -> None:
        if recent_days < 0:
            raise ValueError("recent_days must not be negative")
        self.recent_days = recent_days
        self.enabled = enabled
        self._rng = rng or random.Random()

    def is_eligible(self, metric: DailyMetric, days_ago: int) -> bool:
        if days_ago < self.recent_days:
            return False
        return metric.revenue == 0 and metric.expenses == 0 and metric.wash_count == 0

    def apply(self, series: Sequence[DailyMetric]) -> List[DailyMetric]:
        """Return ``series`` with eligible days replaced; the input is not modified."""

        if not self.enabled:
            return list(series)

        result: List[DailyMetric] = []
        last = len(series) - 1
        for position, metric in enumerate(series):
            days_ago = last - position
            if self.is_eligible(metric, days_ago):
                metric = self.synthesize(metric, days_ago)
            result.append(metric)

        filled = sum(1 for metric in result if metric.synthetic)
        if filled:
            logger.debug("Backfilled %d quiet day(s) with placeholder metrics", filled)
        return result

    def synthesize(self, metric: DailyMetric, days_ago: int) -> DailyMetric:
        rng = self._rng
        base_revenue = rng.random() * 5000 + 2000
        base_expenses = base_revenue * (0.3 + rng.random() * 0.2)
        revenue = float(round(base_revenue + math.sin(days_ago / 5) * 1000))
        expenses = float(round(base_expenses + rng.random() * 500))
        washes = round(rng.random() * 15 + 5)
        customers = min(washes, round(washes * (0.7 + rng.random() * 0.3)))
        rating = round(3.5 + rng.random() * 1.5, 1)
        return metric.model_copy(
            update={
                "revenue": revenue,
                "expenses": expenses,
                "wash_count": washes,
                "customer_count": customers,
                "average_rating": rating,
                "net_profit": revenue - expenses,
                "synthetic": True,
            }
        )
