"""Fee type schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from educore.core.enums import FeeCategory


class FeeTypeCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    category: FeeCategory = FeeCategory.ACADEMIC


class FeeTypeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    category: Optional[FeeCategory] = None
    is_active: Optional[bool] = None


class FeeTypeResponse(BaseModel):
    id: UUID
    school_id: UUID
    code: str
    name: str
    description: Optional[str] = None
    category: FeeCategory
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
