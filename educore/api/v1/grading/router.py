"""Grading router: grading systems, their ranges, and percentage resolution."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from educore.auth.rbac import check_permission
from educore.core.enums import GradingSystemType
from educore.core.exceptions import ServiceError
from educore.core.tenant import TenantContext, get_tenant_context
from educore.db.session import get_db

from .schemas import (
    GradingRangeCreate,
    GradingRangeResponse,
    GradingRangeUpdate,
    GradingSystemCreate,
    GradingSystemDeleteResponse,
    GradingSystemResponse,
    GradingSystemUpdate,
    ResolveGradeRequest,
    ResolveGradeResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/grading", tags=["grading"])


@router.get(
    "/systems",
    response_model=List[GradingSystemResponse],
    dependencies=[Depends(check_permission("grading", "read"))],
)
async def list_grading_systems(
    type: Optional[GradingSystemType] = Query(None),
    include_archived: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> List[GradingSystemResponse]:
    return await service.list_grading_systems(db, ctx, system_type=type, include_archived=include_archived)


@router.post(
    "/systems",
    response_model=GradingSystemResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("grading", "create"))],
)
async def create_grading_system(
    payload: GradingSystemCreate,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> GradingSystemResponse:
    try:
        return await service.create_grading_system(db, ctx, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/systems/{system_id}",
    response_model=GradingSystemResponse,
    dependencies=[Depends(check_permission("grading", "read"))],
)
async def get_grading_system(
    system_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> GradingSystemResponse:
    try:
        return await service.get_grading_system(db, ctx, system_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put(
    "/systems/{system_id}",
    response_model=GradingSystemResponse,
    dependencies=[Depends(check_permission("grading", "update"))],
)
async def update_grading_system(
    system_id: UUID,
    payload: GradingSystemUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> GradingSystemResponse:
    try:
        return await service.update_grading_system(db, ctx, system_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/systems/{system_id}",
    response_model=GradingSystemDeleteResponse,
    dependencies=[Depends(check_permission("grading", "delete"))],
)
async def delete_grading_system(
    system_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> GradingSystemDeleteResponse:
    try:
        return await service.delete_grading_system(db, ctx, system_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/systems/{system_id}/resolve",
    response_model=ResolveGradeResponse,
    dependencies=[Depends(check_permission("grading", "read"))],
)
async def resolve_grade(
    system_id: UUID,
    payload: ResolveGradeRequest,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> ResolveGradeResponse:
    try:
        return await service.resolve_for_system(db, ctx, system_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# --- Ranges ---
@router.post(
    "/ranges",
    response_model=GradingRangeResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("grading", "create"))],
)
async def create_grading_range(
    payload: GradingRangeCreate,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> GradingRangeResponse:
    try:
        return await service.create_grading_range(db, ctx, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put(
    "/ranges/{range_id}",
    response_model=GradingRangeResponse,
    dependencies=[Depends(check_permission("grading", "update"))],
)
async def update_grading_range(
    range_id: UUID,
    payload: GradingRangeUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> GradingRangeResponse:
    try:
        return await service.update_grading_range(db, ctx, range_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/ranges/{range_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(check_permission("grading", "delete"))],
)
async def delete_grading_range(
    range_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> None:
    try:
        await service.delete_grading_range(db, ctx, range_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
