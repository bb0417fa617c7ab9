"""Grading system and range schemas."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from educore.core.enums import GradingSystemType


class GradingRangeBase(BaseModel):
    min_percentage: float = Field(..., ge=0, le=100)
    max_percentage: float = Field(..., ge=0, le=100)
    label: str = Field(..., min_length=1, max_length=20)
    points: Optional[int] = None
    summative_grade: Optional[str] = Field(None, max_length=5)
    rubric_rating: Optional[str] = Field(None, max_length=10)
    color: Optional[str] = Field(None, max_length=20)
    description: Optional[str] = None


class GradingRangeCreate(GradingRangeBase):
    grading_system_id: UUID


class GradingRangeUpdate(BaseModel):
    min_percentage: Optional[float] = Field(None, ge=0, le=100)
    max_percentage: Optional[float] = Field(None, ge=0, le=100)
    label: Optional[str] = Field(None, min_length=1, max_length=20)
    points: Optional[int] = None
    summative_grade: Optional[str] = Field(None, max_length=5)
    rubric_rating: Optional[str] = Field(None, max_length=10)
    color: Optional[str] = Field(None, max_length=20)
    description: Optional[str] = None


class GradingRangeResponse(GradingRangeBase):
    id: UUID
    grading_system_id: UUID

    class Config:
        from_attributes = True


class GradingSystemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: GradingSystemType
    grade: Optional[str] = Field(None, max_length=30)
    learning_area: Optional[str] = Field(None, max_length=100)
    is_default: bool = False
    ranges: List[GradingRangeBase] = Field(default_factory=list)


class GradingSystemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    grade: Optional[str] = Field(None, max_length=30)
    learning_area: Optional[str] = Field(None, max_length=100)
    is_default: Optional[bool] = None
    active: Optional[bool] = None
    # When present, replaces every range of the system
    ranges: Optional[List[GradingRangeBase]] = None


class GradingSystemResponse(BaseModel):
    id: UUID
    school_id: UUID
    branch_id: Optional[UUID] = None
    name: str
    type: GradingSystemType
    grade: Optional[str] = None
    learning_area: Optional[str] = None
    is_default: bool
    active: bool
    archived: bool
    ranges: List[GradingRangeResponse]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class GradingSystemDeleteResponse(BaseModel):
    id: UUID
    deleted: bool
    archived: bool


class ResolveGradeRequest(BaseModel):
    percentage: float


class ResolveGradeResponse(BaseModel):
    percentage: float
    matched: bool
    range: Optional[GradingRangeResponse] = None
