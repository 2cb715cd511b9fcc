from sqlalchemy import Column, String, DateTime, Enum as SQLEnum, Text, ForeignKey, JSON
from datetime import datetime
import enum

from grantsportal.core.database import Base
from grantsportal.core.types import GUID, generate_uuid


class OutcomeType(str, enum.Enum):
    PUBLICATION = "Publication"
    PATENT = "Patent"
    TECHNOLOGY_TRANSFER = "Technology Transfer"
    MANPOWER_DEVELOPMENT = "Manpower Development"
    AWARD = "Award"
    OTHER = "Other"


class Outcome(Base):
    """Reported result of a project"""
    __tablename__ = "outcomes"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    project_id = Column(GUID, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(SQLEnum(OutcomeType), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    details = Column(JSON, nullable=True)
    achievement_date = Column(DateTime, nullable=True)
    impact = Column(JSON, nullable=True)  # {description, metrics}
    attachments = Column(JSON, nullable=False, default=list)

    created_by = Column(GUID, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Outcome {self.type} {self.title}>"
