"""Aggregation config service: per-school strategy rules, effective-config lookup, score computation."""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from educore.api.v1.grading.schemas import GradingRangeResponse
from educore.core.enums import AggregationStrategy, AssessmentType
from educore.core.exceptions import ConflictError, ValidationError
from educore.core.grading import (
    DEFAULT_AGGREGATION_CONFIGS,
    aggregate,
    resolve_grade,
    select_aggregation_config,
    validate_strategy_params,
)
from educore.core.models import AggregationConfig, GradingSystem
from educore.core.tenant import TenantContext

from .schemas import (
    AggregationConfigCreate,
    AggregationConfigResponse,
    AggregationConfigUpdate,
    ComputeRequest,
    ComputeResponse,
    EffectiveConfigResponse,
)


def _enum_value(val) -> Optional[str]:
    if val is None:
        return None
    return val.value if hasattr(val, "value") else str(val)


def _clean(val: Optional[str]) -> Optional[str]:
    return (val or "").strip() or None


async def _get_owned(db: AsyncSession, ctx: TenantContext, config_id: UUID) -> AggregationConfig:
    return ctx.ensure_owned(await db.get(AggregationConfig, config_id), "Aggregation config")


async def _ensure_unique_key(
    db: AsyncSession,
    ctx: TenantContext,
    assessment_type: Optional[str],
    grade: Optional[str],
    learning_area: Optional[str],
    exclude_id: Optional[UUID] = None,
) -> None:
    # NULLs never collide in a SQL unique index, so the key tuple is compared here
    result = await db.execute(select(AggregationConfig).where(AggregationConfig.school_id == ctx.school_id))
    for config in result.scalars().all():
        if config.id == exclude_id:
            continue
        if (config.assessment_type, config.grade, config.learning_area) == (assessment_type, grade, learning_area):
            raise ConflictError("An aggregation config already exists for this assessment type, grade and learning area")


async def list_configs(
    db: AsyncSession,
    ctx: TenantContext,
    assessment_type: Optional[AssessmentType] = None,
) -> List[AggregationConfigResponse]:
    stmt = select(AggregationConfig).where(AggregationConfig.school_id == ctx.school_id)
    if assessment_type is not None:
        stmt = stmt.where(AggregationConfig.assessment_type == assessment_type.value)
    stmt = stmt.order_by(AggregationConfig.assessment_type, AggregationConfig.grade, AggregationConfig.learning_area)
    result = await db.execute(stmt)
    return [AggregationConfigResponse.model_validate(c) for c in result.scalars().all()]


async def get_config(db: AsyncSession, ctx: TenantContext, config_id: UUID) -> AggregationConfigResponse:
    return AggregationConfigResponse.model_validate(await _get_owned(db, ctx, config_id))


async def create_config(
    db: AsyncSession,
    ctx: TenantContext,
    payload: AggregationConfigCreate,
) -> AggregationConfigResponse:
    validate_strategy_params(payload.strategy, payload.n_value, payload.weight)
    assessment_type = _enum_value(payload.assessment_type)
    grade = _clean(payload.grade)
    learning_area = _clean(payload.learning_area)
    await _ensure_unique_key(db, ctx, assessment_type, grade, learning_area)
    config = AggregationConfig(
        school_id=ctx.school_id,
        assessment_type=assessment_type,
        grade=grade,
        learning_area=learning_area,
        strategy=payload.strategy.value,
        n_value=payload.n_value,
        weight=payload.weight,
        active=payload.active,
        created_by=ctx.user_id,
    )
    db.add(config)
    await db.commit()
    await db.refresh(config)
    return AggregationConfigResponse.model_validate(config)


async def update_config(
    db: AsyncSession,
    ctx: TenantContext,
    config_id: UUID,
    payload: AggregationConfigUpdate,
) -> AggregationConfigResponse:
    config = await _get_owned(db, ctx, config_id)
    fields = payload.model_fields_set

    strategy = payload.strategy or AggregationStrategy(config.strategy)
    n_value = payload.n_value if "n_value" in fields else config.n_value
    weight = payload.weight if payload.weight is not None else config.weight
    validate_strategy_params(strategy, n_value, weight)

    assessment_type = _enum_value(payload.assessment_type) if "assessment_type" in fields else config.assessment_type
    grade = _clean(payload.grade) if "grade" in fields else config.grade
    learning_area = _clean(payload.learning_area) if "learning_area" in fields else config.learning_area
    await _ensure_unique_key(db, ctx, assessment_type, grade, learning_area, exclude_id=config.id)

    config.assessment_type = assessment_type
    config.grade = grade
    config.learning_area = learning_area
    config.strategy = strategy.value
    config.n_value = n_value
    config.weight = weight
    if payload.active is not None:
        config.active = payload.active
    await db.commit()
    await db.refresh(config)
    return AggregationConfigResponse.model_validate(config)


async def delete_config(db: AsyncSession, ctx: TenantContext, config_id: UUID) -> None:
    config = await _get_owned(db, ctx, config_id)
    await db.delete(config)
    await db.commit()


async def create_default_configs(db: AsyncSession, ctx: TenantContext) -> List[AggregationConfigResponse]:
    """OPENER drop-lowest-2, CAT best-3, ASSIGNMENT average. Existing keys are left alone."""
    result = await db.execute(select(AggregationConfig).where(AggregationConfig.school_id == ctx.school_id))
    taken = {(c.assessment_type, c.grade, c.learning_area) for c in result.scalars().all()}
    created = []
    for assessment_type, strategy, n_value, weight in DEFAULT_AGGREGATION_CONFIGS:
        if (assessment_type, None, None) in taken:
            continue
        config = AggregationConfig(
            school_id=ctx.school_id,
            assessment_type=assessment_type,
            strategy=strategy.value,
            n_value=n_value,
            weight=weight,
            active=True,
            created_by=ctx.user_id,
        )
        db.add(config)
        created.append(config)
    await db.commit()
    for config in created:
        await db.refresh(config)
    return [AggregationConfigResponse.model_validate(c) for c in created]


async def resolve_effective_config(
    db: AsyncSession,
    ctx: TenantContext,
    assessment_type: Optional[AssessmentType],
    grade: Optional[str] = None,
    learning_area: Optional[str] = None,
) -> EffectiveConfigResponse:
    result = await db.execute(select(AggregationConfig).where(AggregationConfig.school_id == ctx.school_id))
    config = select_aggregation_config(
        result.scalars().all(), _enum_value(assessment_type), _clean(grade), _clean(learning_area)
    )
    if config is None:
        return EffectiveConfigResponse(config_id=None, strategy=AggregationStrategy.SIMPLE_AVERAGE, n_value=None, weight=1.0)
    return EffectiveConfigResponse(
        config_id=config.id,
        strategy=config.strategy,
        n_value=config.n_value,
        weight=config.weight,
    )


async def compute(db: AsyncSession, ctx: TenantContext, payload: ComputeRequest) -> ComputeResponse:
    if payload.strategy is not None:
        effective = EffectiveConfigResponse(
            config_id=None,
            strategy=payload.strategy,
            n_value=payload.n_value,
            weight=1.0 if payload.weight is None else payload.weight,
        )
    else:
        effective = await resolve_effective_config(
            db, ctx, payload.assessment_type, payload.grade, payload.learning_area
        )

    score = aggregate(payload.scores, effective.strategy, effective.n_value, effective.weight)
    response = ComputeResponse(
        score=score,
        score_count=len(payload.scores),
        config_id=effective.config_id,
        strategy=effective.strategy,
        n_value=effective.n_value,
        weight=effective.weight,
    )

    if payload.grading_system_id is not None:
        system = ctx.ensure_owned(await db.get(GradingSystem, payload.grading_system_id), "Grading system")
        if not system.ranges:
            raise ValidationError("Grading system has no ranges")
        band = resolve_grade(score, system.ranges)
        response.matched = band is not None
        response.range = GradingRangeResponse.model_validate(band) if band is not None else None
    return response
