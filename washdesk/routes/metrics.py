from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from washdesk.config import Settings, get_settings
from washdesk.dependencies.services import (
    get_dashboard_service,
    get_metrics_registry,
    get_metrics_service,
    get_reader,
    get_tenant_id,
)
from washdesk.schemas.metrics import DailyMetricsResponse, GrowthReport, TimeRange
from washdesk.services import (
    DashboardService,
    MetricsRegistry,
    MetricsService,
    TenantDataReader,
)
from washdesk.services.exceptions import ServiceError, UnknownRecordKindError
from washdesk.services.presentation import build_chart_points

router = APIRouter()


@router.get("/daily", response_model=DailyMetricsResponse)
async def daily_metrics(
    days: Optional[int] = Query(default=None, ge=1, le=366),
    today: Optional[date] = Query(default=None),
    tenant_id: Optional[str] = Depends(get_tenant_id),
    service: MetricsService = Depends(get_metrics_service),
    settings: Settings = Depends(get_settings),
):
    window_days = days or settings.metrics_window_days
    try:
        series = await service.compute(tenant_id, today=today, window_days=window_days)
    except ServiceError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return DailyMetricsResponse(
        business_id=tenant_id,
        currency=settings.currency,
        window_days=window_days,
        generated_at=datetime.now(timezone.utc).isoformat(),
        series=series,
        chart=build_chart_points(series),
    )


@router.get("/latest", response_model=DailyMetricsResponse)
async def latest_metrics(
    tenant_id: Optional[str] = Depends(get_tenant_id),
    registry: MetricsRegistry = Depends(get_metrics_registry),
    settings: Settings = Depends(get_settings),
):
    """Series kept current by change notifications instead of recomputed per request."""

    series = await registry.snapshot(tenant_id)
    return DailyMetricsResponse(
        business_id=tenant_id,
        currency=settings.currency,
        window_days=len(series) or settings.metrics_window_days,
        generated_at=datetime.now(timezone.utc).isoformat(),
        series=series,
        chart=build_chart_points(series),
    )


@router.get("/growth", response_model=GrowthReport)
async def growth_metrics(
    days: Optional[int] = Query(default=None, ge=1, le=366),
    time_range: TimeRange = Query(default="30d", alias="range"),
    today: Optional[date] = Query(default=None),
    tenant_id: Optional[str] = Depends(get_tenant_id),
    service: DashboardService = Depends(get_dashboard_service),
):
    try:
        return await service.growth_report(
            tenant_id, time_range=time_range, window_days=days, today=today
        )
    except ServiceError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc


@router.post("/changes/{kind}")
async def publish_change(
    kind: str,
    tenant_id: Optional[str] = Depends(get_tenant_id),
    reader: TenantDataReader = Depends(get_reader),
):
    """Entry point for store webhooks announcing that a table changed.

    Without an ``X-Business-Id`` header the change reaches every business.
    """

    try:
        notified = await reader.publish_change(kind, tenant_id)
    except UnknownRecordKindError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"status": "published", "kind": kind, "subscribers": notified}
