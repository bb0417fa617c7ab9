"""Reports router: fee collection stats and dashboard metrics."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from educore.auth.rbac import check_permission
from educore.core.enums import Term
from educore.core.exceptions import ServiceError
from educore.core.tenant import TenantContext, get_tenant_context
from educore.db.session import get_db

from .schemas import DashboardResponse, FeeStatsResponse
from . import service

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])


@router.get(
    "/fees",
    response_model=FeeStatsResponse,
    dependencies=[Depends(check_permission("reports", "read"))],
)
async def get_fee_stats(
    academic_year: Optional[int] = Query(None),
    term: Optional[Term] = Query(None),
    start_date: Optional[date] = Query(None, description="Payments on or after this date"),
    end_date: Optional[date] = Query(None, description="Payments on or before this date"),
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> FeeStatsResponse:
    try:
        return await service.get_fee_stats(
            db, ctx, academic_year=academic_year, term=term, start_date=start_date, end_date=end_date
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/dashboard",
    response_model=DashboardResponse,
    dependencies=[Depends(check_permission("reports", "read"))],
)
async def get_dashboard(
    period: str = Query("today", description="today, week, month or term"),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> DashboardResponse:
    try:
        return await service.get_dashboard(db, ctx, period=period, start_date=start_date, end_date=end_date)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
