"""Fee types router."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from educore.auth.rbac import check_permission
from educore.core.enums import FeeCategory
from educore.core.exceptions import ServiceError
from educore.core.tenant import TenantContext, get_tenant_context
from educore.db.session import get_db

from .schemas import FeeTypeCreate, FeeTypeResponse, FeeTypeUpdate
from . import service

router = APIRouter(prefix="/api/v1/fee-types", tags=["fee-types"])


@router.post(
    "",
    response_model=FeeTypeResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("fees", "create"))],
)
async def create_fee_type(
    payload: FeeTypeCreate,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> FeeTypeResponse:
    try:
        return await service.create_fee_type(db, ctx, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "",
    response_model=List[FeeTypeResponse],
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def list_fee_types(
    category: Optional[FeeCategory] = Query(None),
    is_active: Optional[bool] = Query(None),
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> List[FeeTypeResponse]:
    return await service.list_fee_types(db, ctx, category=category, is_active=is_active)


@router.get(
    "/{fee_type_id}",
    response_model=FeeTypeResponse,
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def get_fee_type(
    fee_type_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> FeeTypeResponse:
    try:
        return await service.get_fee_type(db, ctx, fee_type_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch(
    "/{fee_type_id}",
    response_model=FeeTypeResponse,
    dependencies=[Depends(check_permission("fees", "update"))],
)
async def update_fee_type(
    fee_type_id: UUID,
    payload: FeeTypeUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> FeeTypeResponse:
    try:
        return await service.update_fee_type(db, ctx, fee_type_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/{fee_type_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(check_permission("fees", "delete"))],
)
async def delete_fee_type(
    fee_type_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> None:
    try:
        await service.delete_fee_type(db, ctx, fee_type_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
