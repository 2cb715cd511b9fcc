from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional
from datetime import datetime

from grantsportal.models.outcome import OutcomeType
from grantsportal.schemas.common import PageMeta


class Impact(BaseModel):
    description: Optional[str] = None
    metrics: List[str] = Field(default_factory=list)


class OutcomeCreate(BaseModel):
    project_id: str
    type: OutcomeType
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    achievement_date: Optional[datetime] = None
    impact: Optional[Impact] = None


class OutcomeUpdate(BaseModel):
    type: Optional[OutcomeType] = None
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    achievement_date: Optional[datetime] = None
    impact: Optional[Impact] = None


class OutcomeResponse(BaseModel):
    id: str
    project_id: str
    type: OutcomeType
    title: str
    description: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    achievement_date: Optional[datetime] = None
    impact: Optional[Dict[str, Any]] = None
    attachments: List[Dict[str, Any]]
    created_by: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class OutcomePage(PageMeta):
    outcomes: List[OutcomeResponse]
