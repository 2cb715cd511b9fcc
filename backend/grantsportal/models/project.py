from sqlalchemy import Column, String, DateTime, Enum as SQLEnum, Integer, Float, Text, ForeignKey, JSON, Index
from datetime import datetime
import enum

from grantsportal.core.database import Base
from grantsportal.core.types import GUID, generate_uuid


class ValidationStatus(str, enum.Enum):
    """Validation state of a sanctioned project"""
    ONGOING = "Ongoing"
    COMPLETED = "Completed"
    REJECTED = "Rejected"
    PENDING = "Pending"


class Project(Base):
    """Sanctioned research project"""
    __tablename__ = "projects"

    __table_args__ = (
        Index('ix_projects_created_by', 'created_by'),  # PI scoping
        Index('ix_projects_scheme', 'scheme'),
        Index('ix_projects_discipline', 'discipline'),
        Index('ix_projects_sanction_year', 'budget_sanction_year'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    file_number = Column(String(100), unique=True, nullable=False, index=True)

    title = Column(String(500), nullable=False, default="")
    discipline = Column(String(255), nullable=False, default="")
    scheme = Column(String(255), nullable=False, default="")
    project_summary = Column(Text, nullable=False, default="")
    status = Column(String(50), nullable=True)

    # Investigators: [{name, designation, email, institute_name, department,
    # institute_address, affiliation_type}]
    principal_investigators = Column(JSON, nullable=False, default=list)
    co_principal_investigators = Column(JSON, nullable=False, default=list)
    # Legacy single-investigator fields, mirror the first list entries
    pi = Column(JSON, nullable=False, default=dict)
    co_pi = Column(JSON, nullable=False, default=dict)

    equipment_sanctioned = Column(JSON, nullable=False, default=list)
    manpower_sanctioned = Column(JSON, nullable=False, default=list)
    publications = Column(JSON, nullable=False, default=list)

    # Budget aggregate, flattened for SQL grouping
    budget_sanction_year = Column(Integer, nullable=True)
    budget_date = Column(DateTime, nullable=True)
    budget_total_amount = Column(Float, nullable=True)

    patent_detail = Column(Text, nullable=True)
    patents = Column(JSON, nullable=False, default=list)
    patent_documents = Column(JSON, nullable=False, default=list)
    attachments = Column(JSON, nullable=False, default=list)

    validation_status = Column(SQLEnum(ValidationStatus), default=ValidationStatus.ONGOING, nullable=False)

    created_by = Column(GUID, ForeignKey("users.id"), nullable=False)
    last_updated_by = Column(GUID, ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def budget(self) -> dict:
        return {
            "sanction_year": self.budget_sanction_year,
            "date": self.budget_date,
            "total_amount": self.budget_total_amount,
        }

    def __repr__(self):
        return f"<Project {self.file_number}>"
