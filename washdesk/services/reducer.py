from __future__ import annotations

from typing import List, Sequence

from washdesk.schemas.metrics import DailyMetric
from washdesk.services.bucketing import DayBucket


def reduce_bucket(bucket: DayBucket) -> DailyMetric:
    """Reduce one day's records into its ``DailyMetric``.

    Completed payments are the preferred revenue source; completed
    appointment totals are only used when the day has no completed payment.
    """

    completed_appointments = [item for item in bucket.appointments if item.is_completed]
    completed_payments = [item for item in bucket.payments if item.is_completed]

    if completed_payments:
        revenue = sum(item.amount for item in completed_payments)
    else:
        revenue = sum(item.total_amount for item in completed_appointments)

    expenses = sum(item.amount for item in bucket.expenses)
    customers = {item.customer_id for item in completed_appointments}

    average_rating = 0.0
    if bucket.feedback:
        average_rating = sum(item.rating for item in bucket.feedback) / len(bucket.feedback)

    return DailyMetric(
        date=bucket.day,
        revenue=float(revenue),
        expenses=float(expenses),
        wash_count=len(completed_appointments),
        customer_count=len(customers),
        average_rating=round(average_rating, 1),
        net_profit=float(revenue - expenses),
    )


def reduce_buckets(buckets: Sequence[DayBucket]) -> List[DailyMetric]:
    return [reduce_bucket(bucket) for bucket in buckets]
