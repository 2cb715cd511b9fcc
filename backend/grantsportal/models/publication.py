from sqlalchemy import Column, String, DateTime, Enum as SQLEnum, Integer, Text, ForeignKey, JSON
from datetime import datetime
import enum

from grantsportal.core.database import Base
from grantsportal.core.types import GUID, generate_uuid


class PublicationType(str, enum.Enum):
    JOURNAL_ARTICLE = "Journal Article"
    CONFERENCE_PAPER = "Conference Paper"
    BOOK_CHAPTER = "Book Chapter"
    PATENT = "Patent"
    REPORT = "Report"
    THESIS = "Thesis"


class Publication(Base):
    """Publication record linked to one or more projects"""
    __tablename__ = "publications"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    title = Column(String(500), nullable=False)
    authors = Column(JSON, nullable=False, default=list)  # [{name, affiliation, is_corresponding}]
    journal = Column(JSON, nullable=True)  # {name, volume, issue, pages, impact_factor}
    conference = Column(JSON, nullable=True)  # {name, location, date}
    publication_type = Column(SQLEnum(PublicationType), nullable=False, index=True)
    publication_date = Column(DateTime, nullable=True)
    year = Column(Integer, nullable=True, index=True)
    doi = Column(String(255), nullable=True)
    url = Column(String(1000), nullable=True)
    abstract = Column(Text, nullable=True)
    keywords = Column(JSON, nullable=False, default=list)
    associated_projects = Column(JSON, nullable=False, default=list)
    citation_count = Column(Integer, default=0, nullable=False)
    attachments = Column(JSON, nullable=False, default=list)

    created_by = Column(GUID, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Publication {self.title}>"
