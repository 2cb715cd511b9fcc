from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Optional
from datetime import datetime

from grantsportal.models.online_application import ApplicationStatus
from grantsportal.schemas.common import PageMeta


class OnlineApplicationResponse(BaseModel):
    id: str
    applicant_name: str
    email: str
    phone: str
    organization: str
    designation: str
    scheme: str
    discipline: str
    project_title: str
    project_description: str
    duration: int
    budget: float
    co_investigators: str
    expected_outcomes: str
    supporting_documents: Optional[str] = None
    supporting_documents_name: Optional[str] = None
    status: ApplicationStatus
    comments: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    submitted_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SubmissionReceipt(BaseModel):
    message: str
    application_id: str


class StatusUpdate(BaseModel):
    status: ApplicationStatus
    comments: Optional[str] = None


class BulkStatusUpdate(StatusUpdate):
    application_ids: List[str] = Field(..., min_length=1)


class ApplicationStats(BaseModel):
    total: int
    by_status: Dict[str, int]
    recent: List[OnlineApplicationResponse]


class OnlineApplicationPage(PageMeta):
    applications: List[OnlineApplicationResponse]
