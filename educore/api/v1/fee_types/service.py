"""Fee type service layer."""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from educore.core.enums import FeeCategory
from educore.core.exceptions import ConflictError, ValidationError
from educore.core.models import FeeStructureItem, FeeType
from educore.core.tenant import TenantContext

from .schemas import FeeTypeCreate, FeeTypeResponse, FeeTypeUpdate


def _to_response(ft: FeeType) -> FeeTypeResponse:
    return FeeTypeResponse.model_validate(ft)


async def _get_owned(db: AsyncSession, ctx: TenantContext, fee_type_id: UUID) -> FeeType:
    result = await db.execute(select(FeeType).where(FeeType.id == fee_type_id))
    return ctx.ensure_owned(result.scalar_one_or_none(), "Fee type")


async def create_fee_type(
    db: AsyncSession,
    ctx: TenantContext,
    payload: FeeTypeCreate,
) -> FeeTypeResponse:
    code = payload.code.strip().upper()
    existing = await db.execute(
        select(FeeType.id).where(FeeType.school_id == ctx.school_id, FeeType.code == code)
    )
    if existing.scalar_one_or_none():
        raise ConflictError(f"Fee type code {code} already exists for this school")
    try:
        ft = FeeType(
            school_id=ctx.school_id,
            code=code,
            name=payload.name.strip(),
            description=(payload.description or "").strip() or None,
            category=payload.category.value,
            is_active=True,
        )
        db.add(ft)
        await db.commit()
        await db.refresh(ft)
        return _to_response(ft)
    except IntegrityError:
        await db.rollback()
        raise ConflictError(f"Fee type code {code} already exists for this school")


async def list_fee_types(
    db: AsyncSession,
    ctx: TenantContext,
    category: Optional[FeeCategory] = None,
    is_active: Optional[bool] = None,
) -> List[FeeTypeResponse]:
    stmt = select(FeeType).where(FeeType.school_id == ctx.school_id)
    if category is not None:
        stmt = stmt.where(FeeType.category == category.value)
    if is_active is not None:
        stmt = stmt.where(FeeType.is_active.is_(is_active))
    stmt = stmt.order_by(FeeType.name)
    result = await db.execute(stmt)
    return [_to_response(ft) for ft in result.scalars().all()]


async def get_fee_type(db: AsyncSession, ctx: TenantContext, fee_type_id: UUID) -> FeeTypeResponse:
    return _to_response(await _get_owned(db, ctx, fee_type_id))


async def update_fee_type(
    db: AsyncSession,
    ctx: TenantContext,
    fee_type_id: UUID,
    payload: FeeTypeUpdate,
) -> FeeTypeResponse:
    ft = await _get_owned(db, ctx, fee_type_id)
    if payload.name is not None:
        ft.name = payload.name.strip()
    if payload.description is not None:
        ft.description = payload.description.strip() or None
    if payload.category is not None:
        ft.category = payload.category.value
    if payload.is_active is not None:
        ft.is_active = payload.is_active
    await db.commit()
    await db.refresh(ft)
    return _to_response(ft)


async def delete_fee_type(db: AsyncSession, ctx: TenantContext, fee_type_id: UUID) -> None:
    ft = await _get_owned(db, ctx, fee_type_id)
    in_use = await db.execute(
        select(func.count(FeeStructureItem.id)).where(FeeStructureItem.fee_type_id == ft.id)
    )
    if in_use.scalar_one() > 0:
        raise ValidationError("Fee type is used by one or more fee structures and cannot be deleted")
    await db.delete(ft)
    await db.commit()
