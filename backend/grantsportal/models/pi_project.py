from sqlalchemy import Column, String, DateTime, Enum as SQLEnum, Integer, Float, Text, ForeignKey, JSON, Index
from datetime import datetime
import enum

from grantsportal.core.database import Base
from grantsportal.core.types import GUID, LifecycleState, generate_uuid


class PIProjectType(str, enum.Enum):
    RESEARCH = "Research"
    DEVELOPMENT = "Development"
    INNOVATION = "Innovation"
    COLLABORATION = "Collaboration"
    CONSULTANCY = "Consultancy"


class PIProjectStatus(str, enum.Enum):
    DRAFT = "Draft"
    SUBMITTED = "Submitted"
    UNDER_REVIEW = "Under Review"
    APPROVED = "Approved"
    IN_PROGRESS = "In Progress"
    ON_HOLD = "On Hold"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class ReviewStatus(str, enum.Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    NEEDS_REVISION = "Needs Revision"


class PIProject(Base):
    """Project report tracked by its principal investigator"""
    __tablename__ = "pi_projects"

    __table_args__ = (
        Index('ix_pi_projects_pi_status', 'pi_id', 'project_status'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)

    project_title = Column(String(500), nullable=False)
    project_description = Column(Text, nullable=False)
    project_type = Column(SQLEnum(PIProjectType), nullable=False)
    project_status = Column(SQLEnum(PIProjectStatus), default=PIProjectStatus.DRAFT, nullable=False)

    # Owner and a snapshot of their details at submission
    pi_id = Column(GUID, ForeignKey("users.id"), nullable=False, index=True)
    pi_name = Column(String(255), nullable=False)
    pi_email = Column(String(255), nullable=False)
    pi_institution = Column(String(255), nullable=False)
    pi_department = Column(String(255), nullable=False)

    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    duration = Column(Integer, nullable=False)  # months

    funding_agency = Column(String(255), nullable=False)
    funding_scheme = Column(String(255), nullable=False)
    total_budget = Column(Float, nullable=False)
    approved_budget = Column(Float, default=0, nullable=False)
    currency = Column(String(10), default="INR", nullable=False)

    team_members = Column(JSON, nullable=False, default=list)
    objectives = Column(JSON, nullable=False, default=list)
    expected_outcomes = Column(JSON, nullable=False, default=list)
    deliverables = Column(JSON, nullable=False, default=list)
    methodology = Column(Text, nullable=False)
    technology_stack = Column(JSON, nullable=False, default=list)
    equipment_required = Column(JSON, nullable=False, default=list)

    milestones = Column(JSON, nullable=False, default=list)
    budget_breakdown = Column(JSON, nullable=False, default=list)
    documents = Column(JSON, nullable=False, default=list)
    progress_reports = Column(JSON, nullable=False, default=list)

    # Admin review
    review_status = Column(SQLEnum(ReviewStatus), default=ReviewStatus.PENDING, nullable=False, index=True)
    reviewed_by = Column(GUID, ForeignKey("users.id"), nullable=True)
    review_date = Column(DateTime, nullable=True)
    review_comments = Column(Text, nullable=True)
    review_feedback = Column(Text, nullable=True)

    state = Column(SQLEnum(LifecycleState), default=LifecycleState.ACTIVE, nullable=False)
    last_updated_by = Column(GUID, ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def admin_review(self) -> dict:
        return {
            "reviewed_by": self.reviewed_by,
            "review_date": self.review_date,
            "comments": self.review_comments,
            "status": self.review_status,
            "feedback": self.review_feedback,
        }

    @property
    def remaining_budget(self) -> float:
        spent = sum(item.get("spent_amount") or 0 for item in self.budget_breakdown or [])
        return (self.total_budget or 0) - spent

    @property
    def progress(self) -> int:
        """Mean milestone completion, rounded"""
        milestones = self.milestones or []
        if not milestones:
            return 0
        total = sum(m.get("completion_percentage") or 0 for m in milestones)
        return round(total / len(milestones))

    def __repr__(self):
        return f"<PIProject {self.project_title}>"
