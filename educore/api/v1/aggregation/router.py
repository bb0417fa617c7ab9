"""Aggregation router: config CRUD, defaults, effective-config lookup, score computation."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from educore.auth.rbac import check_permission
from educore.core.enums import AssessmentType
from educore.core.exceptions import ServiceError
from educore.core.tenant import TenantContext, get_tenant_context
from educore.db.session import get_db

from .schemas import (
    AggregationConfigCreate,
    AggregationConfigResponse,
    AggregationConfigUpdate,
    ComputeRequest,
    ComputeResponse,
    EffectiveConfigResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/aggregation", tags=["aggregation"])


@router.get(
    "/configs",
    response_model=List[AggregationConfigResponse],
    dependencies=[Depends(check_permission("grading", "read"))],
)
async def list_configs(
    assessment_type: Optional[AssessmentType] = Query(None),
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> List[AggregationConfigResponse]:
    return await service.list_configs(db, ctx, assessment_type=assessment_type)


@router.post(
    "/configs",
    response_model=AggregationConfigResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("grading", "create"))],
)
async def create_config(
    payload: AggregationConfigCreate,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> AggregationConfigResponse:
    try:
        return await service.create_config(db, ctx, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/configs/defaults",
    response_model=List[AggregationConfigResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("grading", "create"))],
)
async def create_default_configs(
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> List[AggregationConfigResponse]:
    return await service.create_default_configs(db, ctx)


@router.get(
    "/configs/resolve",
    response_model=EffectiveConfigResponse,
    dependencies=[Depends(check_permission("grading", "read"))],
)
async def resolve_config(
    assessment_type: Optional[AssessmentType] = Query(None),
    grade: Optional[str] = Query(None),
    learning_area: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> EffectiveConfigResponse:
    return await service.resolve_effective_config(db, ctx, assessment_type, grade, learning_area)


@router.get(
    "/configs/{config_id}",
    response_model=AggregationConfigResponse,
    dependencies=[Depends(check_permission("grading", "read"))],
)
async def get_config(
    config_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> AggregationConfigResponse:
    try:
        return await service.get_config(db, ctx, config_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put(
    "/configs/{config_id}",
    response_model=AggregationConfigResponse,
    dependencies=[Depends(check_permission("grading", "update"))],
)
async def update_config(
    config_id: UUID,
    payload: AggregationConfigUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> AggregationConfigResponse:
    try:
        return await service.update_config(db, ctx, config_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/configs/{config_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(check_permission("grading", "delete"))],
)
async def delete_config(
    config_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> None:
    try:
        await service.delete_config(db, ctx, config_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/compute",
    response_model=ComputeResponse,
    dependencies=[Depends(check_permission("grading", "read"))],
)
async def compute(
    payload: ComputeRequest,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> ComputeResponse:
    try:
        return await service.compute(db, ctx, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
