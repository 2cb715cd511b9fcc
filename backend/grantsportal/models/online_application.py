from sqlalchemy import Column, String, DateTime, Enum as SQLEnum, Integer, Float, Text, ForeignKey
from datetime import datetime
import enum

from grantsportal.core.database import Base
from grantsportal.core.types import GUID, generate_uuid


class ApplicationStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class OnlineApplication(Base):
    """Proposal submitted through the public application form"""
    __tablename__ = "online_applications"

    id = Column(GUID, primary_key=True, default=generate_uuid)

    applicant_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(30), nullable=False)
    organization = Column(String(255), nullable=False)
    designation = Column(String(255), nullable=False)

    scheme = Column(String(255), nullable=False, index=True)
    discipline = Column(String(255), nullable=False, index=True)
    project_title = Column(String(500), nullable=False)
    project_description = Column(Text, nullable=False)
    duration = Column(Integer, nullable=False)  # months
    budget = Column(Float, nullable=False)
    co_investigators = Column(Text, nullable=False, default="")
    expected_outcomes = Column(Text, nullable=False)

    # Stored filename under uploads/online-applications/
    supporting_documents = Column(String(255), nullable=True)
    supporting_documents_name = Column(String(255), nullable=True)
    supporting_documents_type = Column(String(100), nullable=True)

    status = Column(SQLEnum(ApplicationStatus), default=ApplicationStatus.PENDING, nullable=False, index=True)
    comments = Column(Text, nullable=True)
    reviewed_by = Column(GUID, ForeignKey("users.id"), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)

    submitted_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<OnlineApplication {self.project_title}>"
