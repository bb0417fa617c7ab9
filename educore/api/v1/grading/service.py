"""Grading systems service: CRUD for systems and ranges, defaults, percentage resolution."""

import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from educore.core.enums import GradingSystemType
from educore.core.exceptions import NotFoundError, ValidationError
from educore.core.grading import DEFAULT_RANGES, DEFAULT_SYSTEM_NAMES, check_ranges, resolve_grade
from educore.core.models import GradingRange, GradingSystem
from educore.core.tenant import TenantContext

from .schemas import (
    GradingRangeBase,
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

logger = logging.getLogger(__name__)

REQUIRED_RANGE_FIELDS = ("min_percentage", "max_percentage", "label")


def _range_rows(ranges: List[GradingRangeBase]) -> List[GradingRange]:
    check_ranges(ranges)
    return [GradingRange(**r.model_dump()) for r in ranges]


async def _load_system(db: AsyncSession, ctx: TenantContext, system_id: UUID) -> GradingSystem:
    result = await db.execute(
        select(GradingSystem)
        .where(GradingSystem.id == system_id)
        .execution_options(populate_existing=True)
    )
    return ctx.ensure_owned(result.scalar_one_or_none(), "Grading system")


async def _load_range(db: AsyncSession, ctx: TenantContext, range_id: UUID) -> GradingRange:
    band = await db.get(GradingRange, range_id)
    if band is None:
        raise NotFoundError("Grading range not found")
    await _load_system(db, ctx, band.grading_system_id)
    return band


async def _clear_other_defaults(db: AsyncSession, school_id: UUID, system_type: str, keep_id: Optional[UUID]) -> None:
    stmt = update(GradingSystem).where(
        GradingSystem.school_id == school_id,
        GradingSystem.type == system_type,
        GradingSystem.is_default.is_(True),
    )
    if keep_id is not None:
        stmt = stmt.where(GradingSystem.id != keep_id)
    await db.execute(stmt.values(is_default=False).execution_options(synchronize_session=False))


async def ensure_default_grading_systems(db: AsyncSession, school_id: UUID) -> None:
    """Create the standard SUMMATIVE and CBC systems for any type with no active default. Caller commits."""
    for system_type in GradingSystemType:
        existing = await db.execute(
            select(GradingSystem.id).where(
                GradingSystem.school_id == school_id,
                GradingSystem.type == system_type.value,
                GradingSystem.is_default.is_(True),
                GradingSystem.archived.is_(False),
            ).limit(1)
        )
        if existing.scalar_one_or_none():
            continue
        db.add(
            GradingSystem(
                school_id=school_id,
                name=DEFAULT_SYSTEM_NAMES[system_type],
                type=system_type.value,
                is_default=True,
                active=True,
                ranges=[GradingRange(**r) for r in DEFAULT_RANGES[system_type]],
            )
        )
        logger.info("Created default %s grading system for school %s", system_type.value, school_id)
    await db.flush()


async def list_grading_systems(
    db: AsyncSession,
    ctx: TenantContext,
    system_type: Optional[GradingSystemType] = None,
    include_archived: bool = False,
) -> List[GradingSystemResponse]:
    await ensure_default_grading_systems(db, ctx.school_id)
    await db.commit()

    stmt = ctx.scope(select(GradingSystem), GradingSystem)
    if system_type is not None:
        stmt = stmt.where(GradingSystem.type == system_type.value)
    if not include_archived:
        stmt = stmt.where(GradingSystem.archived.is_(False))
    stmt = stmt.order_by(GradingSystem.type, GradingSystem.is_default.desc(), GradingSystem.name)
    result = await db.execute(stmt.execution_options(populate_existing=True))
    return [GradingSystemResponse.model_validate(s) for s in result.scalars().all()]


async def get_grading_system(db: AsyncSession, ctx: TenantContext, system_id: UUID) -> GradingSystemResponse:
    return GradingSystemResponse.model_validate(await _load_system(db, ctx, system_id))


async def create_grading_system(
    db: AsyncSession,
    ctx: TenantContext,
    payload: GradingSystemCreate,
) -> GradingSystemResponse:
    ranges = _range_rows(payload.ranges)
    system = GradingSystem(
        school_id=ctx.school_id,
        branch_id=ctx.branch_id,
        name=payload.name.strip(),
        type=payload.type.value,
        grade=payload.grade,
        learning_area=payload.learning_area,
        is_default=payload.is_default,
        active=True,
        ranges=ranges,
    )
    if payload.is_default:
        await _clear_other_defaults(db, ctx.school_id, system.type, keep_id=None)
    db.add(system)
    await db.commit()
    return GradingSystemResponse.model_validate(await _load_system(db, ctx, system.id))


async def update_grading_system(
    db: AsyncSession,
    ctx: TenantContext,
    system_id: UUID,
    payload: GradingSystemUpdate,
) -> GradingSystemResponse:
    """Field changes and a full range replacement commit together."""
    system = await _load_system(db, ctx, system_id)
    fields = payload.model_fields_set
    if payload.name is not None:
        system.name = payload.name.strip()
    if "grade" in fields:
        system.grade = payload.grade
    if "learning_area" in fields:
        system.learning_area = payload.learning_area
    if payload.active is not None:
        system.active = payload.active
    if payload.ranges is not None:
        system.ranges = _range_rows(payload.ranges)
    if payload.is_default is not None:
        if payload.is_default:
            await _clear_other_defaults(db, ctx.school_id, system.type, keep_id=system.id)
        system.is_default = payload.is_default
    await db.commit()
    return GradingSystemResponse.model_validate(await _load_system(db, ctx, system_id))


async def delete_grading_system(
    db: AsyncSession,
    ctx: TenantContext,
    system_id: UUID,
) -> GradingSystemDeleteResponse:
    """SUPER_ADMIN hard-deletes (ranges cascade); other roles archive."""
    system = await _load_system(db, ctx, system_id)
    if ctx.is_super_admin:
        await db.delete(system)
        await db.commit()
        return GradingSystemDeleteResponse(id=system_id, deleted=True, archived=False)

    system.archived = True
    system.active = False
    system.is_default = False
    system.archived_at = datetime.now(timezone.utc)
    system.archived_by = ctx.user_id
    await db.commit()
    return GradingSystemDeleteResponse(id=system_id, deleted=False, archived=True)


# --- Ranges ---
async def create_grading_range(
    db: AsyncSession,
    ctx: TenantContext,
    payload: GradingRangeCreate,
) -> GradingRangeResponse:
    system = await _load_system(db, ctx, payload.grading_system_id)
    data = payload.model_dump(exclude={"grading_system_id"})
    candidate = GradingRangeBase(**data)
    check_ranges(list(system.ranges) + [candidate])
    band = GradingRange(grading_system_id=system.id, **data)
    db.add(band)
    await db.commit()
    await db.refresh(band)
    return GradingRangeResponse.model_validate(band)


async def update_grading_range(
    db: AsyncSession,
    ctx: TenantContext,
    range_id: UUID,
    payload: GradingRangeUpdate,
) -> GradingRangeResponse:
    band = await _load_range(db, ctx, range_id)
    system = await _load_system(db, ctx, band.grading_system_id)
    changes = payload.model_dump(exclude_unset=True)
    for key in REQUIRED_RANGE_FIELDS:
        if key in changes and changes[key] is None:
            raise ValidationError(f"{key} cannot be null")
    merged = GradingRangeBase(
        **{**GradingRangeBase.model_validate(band, from_attributes=True).model_dump(), **changes}
    )
    others = [r for r in system.ranges if r.id != band.id]
    check_ranges(others + [merged])
    for key, value in changes.items():
        setattr(band, key, value)
    await db.commit()
    await db.refresh(band)
    return GradingRangeResponse.model_validate(band)


async def delete_grading_range(db: AsyncSession, ctx: TenantContext, range_id: UUID) -> None:
    band = await _load_range(db, ctx, range_id)
    await db.delete(band)
    await db.commit()


async def resolve_for_system(
    db: AsyncSession,
    ctx: TenantContext,
    system_id: UUID,
    payload: ResolveGradeRequest,
) -> ResolveGradeResponse:
    system = await _load_system(db, ctx, system_id)
    if not system.ranges:
        raise ValidationError("Grading system has no ranges")
    band = resolve_grade(payload.percentage, system.ranges)
    return ResolveGradeResponse(
        percentage=payload.percentage,
        matched=band is not None,
        range=GradingRangeResponse.model_validate(band) if band is not None else None,
    )
