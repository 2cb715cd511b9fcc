from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator
from typing import Any, Dict, List, Optional
from datetime import datetime

from grantsportal.core.types import LifecycleState
from grantsportal.models.pi_project import PIProjectType, PIProjectStatus, ReviewStatus
from grantsportal.schemas.common import PageMeta


class TeamMember(BaseModel):
    name: str
    designation: str
    institution: str
    email: EmailStr
    role: str = Field(..., pattern="^(Co-PI|Research Associate|Research Scholar|Technical Staff|Other)$")


class EquipmentRequirement(BaseModel):
    name: Optional[str] = None
    quantity: Optional[int] = Field(None, ge=0)
    estimated_cost: Optional[float] = Field(None, ge=0)
    justification: Optional[str] = None


class Milestone(BaseModel):
    title: str
    description: Optional[str] = None
    target_date: datetime
    completed_date: Optional[datetime] = None
    status: str = Field("Pending", pattern="^(Pending|In Progress|Completed|Delayed)$")
    completion_percentage: int = Field(0, ge=0, le=100)


class BudgetLine(BaseModel):
    category: str
    allocated_amount: float = Field(..., ge=0)
    spent_amount: float = Field(0, ge=0)
    remaining_amount: Optional[float] = None


class PIProjectCreate(BaseModel):
    project_title: str = Field(..., min_length=1, max_length=500)
    project_description: str = Field(..., min_length=1)
    project_type: PIProjectType
    project_status: PIProjectStatus = PIProjectStatus.DRAFT
    pi_department: str = Field(..., min_length=1)
    start_date: datetime
    end_date: datetime
    duration: int = Field(..., ge=1)
    funding_agency: str = Field(..., min_length=1)
    funding_scheme: str = Field(..., min_length=1)
    total_budget: float = Field(..., ge=0)
    approved_budget: float = Field(0, ge=0)
    currency: str = "INR"
    team_members: List[TeamMember] = Field(default_factory=list)
    objectives: List[str] = Field(default_factory=list)
    expected_outcomes: List[str] = Field(default_factory=list)
    deliverables: List[str] = Field(default_factory=list)
    methodology: str = Field(..., min_length=1)
    technology_stack: List[str] = Field(default_factory=list)
    equipment_required: List[EquipmentRequirement] = Field(default_factory=list)
    milestones: List[Milestone] = Field(default_factory=list)
    budget_breakdown: List[BudgetLine] = Field(default_factory=list)

    @model_validator(mode='after')
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError('End date must be after start date')
        return self


class PIProjectUpdate(BaseModel):
    project_title: Optional[str] = Field(None, min_length=1, max_length=500)
    project_description: Optional[str] = None
    project_type: Optional[PIProjectType] = None
    project_status: Optional[PIProjectStatus] = None
    pi_department: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    duration: Optional[int] = Field(None, ge=1)
    funding_agency: Optional[str] = None
    funding_scheme: Optional[str] = None
    total_budget: Optional[float] = Field(None, ge=0)
    approved_budget: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = None
    team_members: Optional[List[TeamMember]] = None
    objectives: Optional[List[str]] = None
    expected_outcomes: Optional[List[str]] = None
    deliverables: Optional[List[str]] = None
    methodology: Optional[str] = None
    technology_stack: Optional[List[str]] = None
    equipment_required: Optional[List[EquipmentRequirement]] = None
    milestones: Optional[List[Milestone]] = None
    budget_breakdown: Optional[List[BudgetLine]] = None
    state: Optional[LifecycleState] = None


class ReportPeriod(BaseModel):
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class FinancialStatus(BaseModel):
    total_spent: Optional[float] = None
    remaining_budget: Optional[float] = None


class ProgressReportCreate(BaseModel):
    period: Optional[ReportPeriod] = None
    achievements: List[str] = Field(default_factory=list)
    challenges: List[str] = Field(default_factory=list)
    next_steps: List[str] = Field(default_factory=list)
    financial_status: Optional[FinancialStatus] = None


class ReviewCreate(BaseModel):
    status: ReviewStatus
    comments: Optional[str] = None
    feedback: Optional[str] = None


class AdminReview(BaseModel):
    reviewed_by: Optional[str] = None
    review_date: Optional[datetime] = None
    comments: Optional[str] = None
    status: ReviewStatus
    feedback: Optional[str] = None


class PIProjectResponse(BaseModel):
    id: str
    project_title: str
    project_description: str
    project_type: PIProjectType
    project_status: PIProjectStatus
    pi_id: str
    pi_name: str
    pi_email: str
    pi_institution: str
    pi_department: str
    start_date: datetime
    end_date: datetime
    duration: int
    funding_agency: str
    funding_scheme: str
    total_budget: float
    approved_budget: float
    currency: str
    team_members: List[Dict[str, Any]]
    objectives: List[str]
    expected_outcomes: List[str]
    deliverables: List[str]
    methodology: str
    technology_stack: List[str]
    equipment_required: List[Dict[str, Any]]
    milestones: List[Dict[str, Any]]
    budget_breakdown: List[Dict[str, Any]]
    documents: List[Dict[str, Any]]
    progress_reports: List[Dict[str, Any]]
    admin_review: AdminReview
    remaining_budget: float
    progress: int
    state: LifecycleState
    last_updated_by: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PIProjectStats(BaseModel):
    total_projects: int
    active_projects: int
    completed_projects: int
    pending_review: int
    total_budget: float


class PIProjectPage(PageMeta):
    projects: List[PIProjectResponse]
