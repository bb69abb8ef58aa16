from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from washdesk.dependencies.services import get_dashboard_service, get_tenant_id
from washdesk.schemas.dashboard import DashboardStats
from washdesk.services import DashboardService
from washdesk.services.exceptions import ServiceError

router = APIRouter()


@router.get("", response_model=DashboardStats)
async def dashboard_stats(
    today: Optional[date] = Query(default=None),
    tenant_id: Optional[str] = Depends(get_tenant_id),
    service: DashboardService = Depends(get_dashboard_service),
):
    try:
        return await service.stats(tenant_id, today=today)
    except ServiceError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
