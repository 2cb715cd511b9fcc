from pydantic import BaseModel, ConfigDict
from typing import Any, Dict, List, Optional
from datetime import datetime

from grantsportal.models.activity_log import ActivityAction
from grantsportal.schemas.common import PageMeta


class ActivityLogResponse(BaseModel):
    id: str
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    action: ActivityAction
    target_type: Optional[str] = None
    target_id: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ActivityLogStats(BaseModel):
    total: int
    today: int
    this_week: int
    this_month: int
    top_users: List[Dict[str, Any]]
    top_actions: List[Dict[str, Any]]


class ActivityLogPage(PageMeta):
    logs: List[ActivityLogResponse]
