from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Any, Dict, List, Optional
from datetime import datetime

from grantsportal.models.project import ValidationStatus
from grantsportal.schemas.common import PageMeta


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


class Investigator(BaseModel):
    name: Optional[str] = None
    designation: Optional[str] = None
    email: Optional[EmailStr] = None
    institute_name: Optional[str] = None
    department: Optional[str] = None
    institute_address: Optional[str] = None
    affiliation_type: str = Field("Institute", pattern="^(Institute|Industry)$")

    @field_validator('email', mode='before')
    @classmethod
    def blank_email(cls, v):
        return _blank_to_none(v)


class EquipmentItem(BaseModel):
    generic_name: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    price_inr: Optional[float] = Field(None, ge=0)
    invoice_upload: Optional[str] = None


class ManpowerItem(BaseModel):
    manpower_type: Optional[str] = None
    number: Optional[int] = Field(None, ge=0)


class ProjectPublicationItem(BaseModel):
    link: Optional[str] = None
    name: Optional[str] = None
    publication_detail: Optional[str] = None
    status: Optional[str] = None


class Budget(BaseModel):
    sanction_year: Optional[int] = Field(None, ge=1900, le=2100)
    date: Optional[datetime] = None
    total_amount: Optional[float] = Field(None, ge=0)

    @field_validator('date', mode='before')
    @classmethod
    def blank_date(cls, v):
        return _blank_to_none(v)


class StoredFile(BaseModel):
    """Metadata of a file written under the upload directory"""
    filename: str
    original_name: str
    path: str
    mimetype: str
    size: int
    uploaded_at: Optional[datetime] = None


class PatentEntry(BaseModel):
    patent_detail: Optional[str] = None
    patent_document: Optional[StoredFile] = None


class ProjectBase(BaseModel):
    title: Optional[str] = None
    discipline: Optional[str] = None
    scheme: Optional[str] = None
    project_summary: Optional[str] = None
    status: Optional[str] = None
    principal_investigators: Optional[List[Investigator]] = None
    co_principal_investigators: Optional[List[Investigator]] = None
    equipment_sanctioned: Optional[List[EquipmentItem]] = None
    manpower_sanctioned: Optional[List[ManpowerItem]] = None
    publications: Optional[List[ProjectPublicationItem]] = None
    budget: Optional[Budget] = None
    patent_detail: Optional[str] = None
    patents: Optional[List[PatentEntry]] = None
    validation_status: Optional[ValidationStatus] = None


class ProjectCreate(ProjectBase):
    """Every field is optional; a missing file number is generated"""
    file_number: Optional[str] = Field(None, max_length=100)


class ProjectUpdate(ProjectBase):
    file_number: Optional[str] = Field(None, min_length=1, max_length=100)

    @field_validator('file_number')
    @classmethod
    def strip_file_number(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError('File number cannot be blank')
        return v


class ProjectResponse(BaseModel):
    id: str
    file_number: str
    title: str
    discipline: str
    scheme: str
    project_summary: str
    status: Optional[str] = None
    principal_investigators: List[Dict[str, Any]]
    co_principal_investigators: List[Dict[str, Any]]
    pi: Dict[str, Any]
    co_pi: Dict[str, Any]
    equipment_sanctioned: List[Dict[str, Any]]
    manpower_sanctioned: List[Dict[str, Any]]
    publications: List[Dict[str, Any]]
    budget: Budget
    patent_detail: Optional[str] = None
    patents: List[Dict[str, Any]]
    patent_documents: List[Dict[str, Any]]
    attachments: List[Dict[str, Any]]
    validation_status: ValidationStatus
    created_by: str
    last_updated_by: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ProjectEnvelope(BaseModel):
    message: str
    project: ProjectResponse


class ProjectStats(BaseModel):
    total: int
    by_validation_status: Dict[str, int]
    by_discipline: List[Dict[str, Any]]


class EquipmentSyncResult(BaseModel):
    message: str
    synced_projects: int
    total_projects: int


class ProjectPage(PageMeta):
    projects: List[ProjectResponse]
