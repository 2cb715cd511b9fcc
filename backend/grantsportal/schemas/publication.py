from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional
from datetime import datetime

from grantsportal.models.publication import PublicationType
from grantsportal.schemas.common import PageMeta


class Author(BaseModel):
    name: str
    affiliation: Optional[str] = None
    is_corresponding: bool = False


class JournalInfo(BaseModel):
    name: Optional[str] = None
    volume: Optional[str] = None
    issue: Optional[str] = None
    pages: Optional[str] = None
    impact_factor: Optional[float] = None


class ConferenceInfo(BaseModel):
    name: Optional[str] = None
    location: Optional[str] = None
    date: Optional[datetime] = None


class PublicationCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    authors: List[Author] = Field(default_factory=list)
    journal: Optional[JournalInfo] = None
    conference: Optional[ConferenceInfo] = None
    publication_type: PublicationType
    publication_date: Optional[datetime] = None
    doi: Optional[str] = None
    url: Optional[str] = None
    abstract: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    associated_projects: List[str] = Field(default_factory=list)
    citation_count: int = Field(0, ge=0)


class PublicationUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    authors: Optional[List[Author]] = None
    journal: Optional[JournalInfo] = None
    conference: Optional[ConferenceInfo] = None
    publication_type: Optional[PublicationType] = None
    publication_date: Optional[datetime] = None
    doi: Optional[str] = None
    url: Optional[str] = None
    abstract: Optional[str] = None
    keywords: Optional[List[str]] = None
    associated_projects: Optional[List[str]] = None
    citation_count: Optional[int] = Field(None, ge=0)


class PublicationResponse(BaseModel):
    id: str
    title: str
    authors: List[Dict[str, Any]]
    journal: Optional[Dict[str, Any]] = None
    conference: Optional[Dict[str, Any]] = None
    publication_type: PublicationType
    publication_date: Optional[datetime] = None
    year: Optional[int] = None
    doi: Optional[str] = None
    url: Optional[str] = None
    abstract: Optional[str] = None
    keywords: List[str]
    associated_projects: List[str]
    citation_count: int
    attachments: List[Dict[str, Any]]
    created_by: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PublicationPage(PageMeta):
    publications: List[PublicationResponse]
