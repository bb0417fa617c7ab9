"""Aggregation config and score computation schemas."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from educore.api.v1.grading.schemas import GradingRangeResponse
from educore.core.enums import AggregationStrategy, AssessmentType


class AggregationConfigCreate(BaseModel):
    assessment_type: Optional[AssessmentType] = None
    grade: Optional[str] = Field(None, max_length=30)
    learning_area: Optional[str] = Field(None, max_length=100)
    strategy: AggregationStrategy = AggregationStrategy.SIMPLE_AVERAGE
    n_value: Optional[int] = None
    weight: float = 1.0
    active: bool = True


class AggregationConfigUpdate(BaseModel):
    assessment_type: Optional[AssessmentType] = None
    grade: Optional[str] = Field(None, max_length=30)
    learning_area: Optional[str] = Field(None, max_length=100)
    strategy: Optional[AggregationStrategy] = None
    n_value: Optional[int] = None
    weight: Optional[float] = None
    active: Optional[bool] = None


class AggregationConfigResponse(BaseModel):
    id: UUID
    school_id: UUID
    assessment_type: Optional[AssessmentType] = None
    grade: Optional[str] = None
    learning_area: Optional[str] = None
    strategy: AggregationStrategy
    n_value: Optional[int] = None
    weight: float
    active: bool
    created_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class EffectiveConfigResponse(BaseModel):
    """config_id is None when no config matched and SIMPLE_AVERAGE applies."""

    config_id: Optional[UUID] = None
    strategy: AggregationStrategy
    n_value: Optional[int] = None
    weight: float


class ComputeRequest(BaseModel):
    scores: List[float]
    assessment_type: Optional[AssessmentType] = None
    grade: Optional[str] = None
    learning_area: Optional[str] = None
    # Explicit strategy bypasses config lookup
    strategy: Optional[AggregationStrategy] = None
    n_value: Optional[int] = None
    weight: Optional[float] = None
    grading_system_id: Optional[UUID] = None


class ComputeResponse(BaseModel):
    score: float
    score_count: int
    config_id: Optional[UUID] = None
    strategy: AggregationStrategy
    n_value: Optional[int] = None
    weight: float
    matched: Optional[bool] = None
    range: Optional[GradingRangeResponse] = None
