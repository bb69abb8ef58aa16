from __future__ import annotations

import random
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header

from washdesk.clients.store import StoreClient
from washdesk.config import Settings, get_settings
from washdesk.services import (
    DashboardService,
    MetricsRegistry,
    MetricsService,
    TenantDataReader,
)
from washdesk.services.backfill import BackfillPolicy
from washdesk.services.changes import ChangeFeed


@lru_cache(maxsize=1)
def get_store_client_cached() -> StoreClient:
    settings = get_settings()
    return StoreClient(
        str(settings.store_base_url) if settings.store_base_url else None,
        timeout=settings.store_timeout,
        use_mock_data=settings.use_mock_data,
        api_key=settings.store_api_key,
    )


def get_store_client() -> StoreClient:
    return get_store_client_cached()


@lru_cache(maxsize=1)
def get_change_feed_cached() -> ChangeFeed:
    return ChangeFeed()


def build_reader(client: StoreClient) -> TenantDataReader:
    # The mock store owns its own feed; live mode shares one feed per process.
    feed = None if client.use_mock_data else get_change_feed_cached()
    return TenantDataReader(client, feed=feed)


def get_reader(client: StoreClient = Depends(get_store_client)) -> TenantDataReader:
    return build_reader(client)


def get_tenant_id(
    x_business_id: Optional[str] = Header(default=None),
) -> Optional[str]:
    """Business id of the signed-in user, forwarded by the auth layer."""

    if x_business_id is None:
        return None
    return x_business_id.strip() or None


def build_backfill_policy(settings: Settings) -> BackfillPolicy:
    rng = random.Random(settings.backfill_seed) if settings.backfill_seed is not None else None
    return BackfillPolicy(
        recent_days=settings.backfill_recent_days,
        enabled=settings.backfill_enabled,
        rng=rng,
    )


def build_metrics_service(
    reader: TenantDataReader,
    settings: Settings,
    tenant_id: Optional[str] = None,
) -> MetricsService:
    return MetricsService(
        reader,
        tenant_id=tenant_id,
        window_days=settings.metrics_window_days,
        timezone=settings.timezone,
        backfill=build_backfill_policy(settings),
    )


def get_metrics_service(
    reader: TenantDataReader = Depends(get_reader),
    settings: Settings = Depends(get_settings),
    tenant_id: Optional[str] = Depends(get_tenant_id),
) -> MetricsService:
    return build_metrics_service(reader, settings, tenant_id)


@lru_cache(maxsize=1)
def get_metrics_registry_cached() -> MetricsRegistry:
    settings = get_settings()
    reader = build_reader(get_store_client_cached())
    return MetricsRegistry(
        lambda tenant_id: build_metrics_service(reader, settings, tenant_id)
    )


def get_metrics_registry() -> MetricsRegistry:
    return get_metrics_registry_cached()


def get_dashboard_service(
    reader: TenantDataReader = Depends(get_reader),
    metrics: MetricsService = Depends(get_metrics_service),
    settings: Settings = Depends(get_settings),
) -> DashboardService:
    return DashboardService(reader, metrics, currency=settings.currency)
