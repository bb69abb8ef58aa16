from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime
from typing import Callable, Dict, List, Optional
from zoneinfo import ZoneInfo

from washdesk.schemas.metrics import DailyMetric
from washdesk.services.backfill import BackfillPolicy
from washdesk.services.bucketing import SourceRecords, bucket_sources, day_windows
from washdesk.services.reader import TenantDataReader
from washdesk.services.reducer import reduce_buckets

logger = logging.getLogger(__name__)

SOURCE_KINDS = ("appointments", "expenses", "payments", "feedback")

DEFAULT_WINDOW_DAYS = 30


class MetricsService:
    """Compute the trailing daily metrics series for a business.

    ``compute`` is a pure read: every call fetches fresh rows and returns a
    new series. ``refresh`` additionally stores the result in ``latest``;
    overlapping refreshes are not coordinated and the last one to finish wins.
    """

    def __init__(
        self,
        reader: TenantDataReader,
        *,
        tenant_id: Optional[str] = None,
        window_days: int = DEFAULT_WINDOW_DAYS,
        timezone: str = "Africa/Nairobi",
        backfill: BackfillPolicy | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._reader = reader
        self._tenant_id = tenant_id
        self._window_days = window_days
        self._tz = ZoneInfo(timezone)
        self._backfill = backfill or BackfillPolicy()
        self._clock = clock or (lambda: datetime.now(self._tz))
        self._unsubscribers: List[Callable[[], None]] = []
        self.latest: List[DailyMetric] = []
        self.computed_for: Optional[date] = None

    @property
    def tenant_id(self) -> Optional[str]:
        return self._tenant_id

    @property
    def timezone(self) -> ZoneInfo:
        return self._tz

    def today(self) -> date:
        now = self._clock()
        if now.tzinfo is not None:
            now = now.astimezone(self._tz)
        return now.date()

    async def compute(
        self,
        tenant_id: Optional[str] = None,
        today: Optional[date] = None,
        window_days: Optional[int] = None,
    ) -> List[DailyMetric]:
        tenant = tenant_id or self._tenant_id
        if not tenant:
            logger.info("No business id available; returning an empty metrics series")
            return []

        days = window_days if window_days is not None else self._window_days
        windows = day_windows(today or self.today(), days)
        logger.debug("Computing %d-day metrics for business %s", days, tenant)

        appointments, expenses, payments, feedback = await asyncio.gather(
            *(self._reader.fetch(kind, tenant) for kind in SOURCE_KINDS)
        )
        buckets = bucket_sources(
            windows,
            SourceRecords(
                appointments=appointments,
                expenses=expenses,
                payments=payments,
                feedback=feedback,
            ),
            tz=self._tz,
        )
        return self._backfill.apply(reduce_buckets(buckets))

    async def refresh(self) -> List[DailyMetric]:
        today = self.today()
        series = await self.compute(today=today)
        self.latest = series
        self.computed_for = today
        return series

    def is_stale(self) -> bool:
        """True until ``latest`` has been computed for the current local day."""

        return self.computed_for != self.today()

    def subscribe(self) -> None:
        """Recompute ``latest`` whenever one of the source tables changes."""

        if self._unsubscribers:
            return
        for kind in SOURCE_KINDS:
            self._unsubscribers.append(
                self._reader.on_change(kind, self._on_change, business_id=self._tenant_id)
            )

    async def _on_change(self, kind: str) -> None:
        logger.info("%s changed for business %s; refreshing metrics", kind, self._tenant_id)
        await self.refresh()

    def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()


class MetricsRegistry:
    """Keep one change-subscribed ``MetricsService`` per business.

    The first ``snapshot`` for a business computes its series; later calls
    return the in-memory series. It is recomputed when the reader reports a
    change to one of that business's source tables, and again on the first
    ``snapshot`` after the local date rolls over. Change events published
    without a business id refresh every registered business in turn.
    Concurrent callers for a business share one pending refresh.
    """

    def __init__(self, factory: Callable[[str], MetricsService]) -> None:
        self._factory = factory
        self._services: Dict[str, MetricsService] = {}
        self._pending: Dict[str, asyncio.Task] = {}

    def __contains__(self, tenant_id: object) -> bool:
        return tenant_id in self._services

    async def snapshot(self, tenant_id: Optional[str]) -> List[DailyMetric]:
        if not tenant_id:
            return []
        service = self._services.get(tenant_id)
        if service is None:
            service = self._factory(tenant_id)
            service.subscribe()
            self._services[tenant_id] = service
        if service.is_stale():
            await self._refresh(tenant_id, service)
        return service.latest

    async def _refresh(self, tenant_id: str, service: MetricsService) -> None:
        task = self._pending.get(tenant_id)
        if task is None:
            task = asyncio.ensure_future(service.refresh())
            self._pending[tenant_id] = task
        try:
            await asyncio.shield(task)
        finally:
            if task.done() and self._pending.get(tenant_id) is task:
                del self._pending[tenant_id]

    def close(self) -> None:
        for task in self._pending.values():
            if not task.done():
                task.cancel()
        self._pending.clear()
        for service in self._services.values():
            service.close()
        self._services.clear()
