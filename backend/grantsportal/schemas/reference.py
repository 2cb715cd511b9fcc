from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Generic, List, Optional, TypeVar
from datetime import datetime

from grantsportal.core.types import LifecycleState
from grantsportal.models.reference import ManpowerCategory

T = TypeVar("T")


class ReferenceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""

    @field_validator('name')
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('Name is required')
        return v


class ReferenceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    state: Optional[LifecycleState] = None

    @field_validator('name')
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError('Name cannot be empty')
        return v


class ReferenceResponse(BaseModel):
    id: str
    name: str
    description: str
    state: LifecycleState
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SchemeResponse(ReferenceResponse):
    pass


class CategoryResponse(ReferenceResponse):
    pass


class ManpowerTypeCreate(ReferenceCreate):
    category: ManpowerCategory = ManpowerCategory.RESEARCH


class ManpowerTypeUpdate(ReferenceUpdate):
    category: Optional[ManpowerCategory] = None


class ManpowerTypeResponse(ReferenceResponse):
    category: ManpowerCategory


class Envelope(BaseModel, Generic[T]):
    """``{success, data}`` wrapper used by the manpower type routes"""
    success: bool = True
    data: T
    message: Optional[str] = None


class InitializeResult(BaseModel):
    message: str
    created: List[str]
    skipped: List[str]
