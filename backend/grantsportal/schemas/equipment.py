from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional
from datetime import datetime

from grantsportal.models.equipment import AvailabilityStatus, AccessType
from grantsportal.schemas.common import PageMeta


class Specifications(BaseModel):
    model: Optional[str] = None
    manufacturer: Optional[str] = None
    year_of_purchase: Optional[int] = None
    cost: Optional[float] = Field(None, ge=0)
    technical_specs: Optional[str] = None


class Location(BaseModel):
    institution: Optional[str] = None
    department: Optional[str] = None
    building: Optional[str] = None
    room: Optional[str] = None
    state: Optional[str] = None


class Availability(BaseModel):
    status: AvailabilityStatus = AvailabilityStatus.AVAILABLE
    access_type: AccessType = AccessType.BY_APPOINTMENT


class ContactPerson(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class EquipmentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    type: str = Field(..., min_length=1, max_length=100)
    category: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    specifications: Specifications = Field(default_factory=Specifications)
    location: Location = Field(default_factory=Location)
    availability: Availability = Field(default_factory=Availability)
    associated_projects: List[str] = Field(default_factory=list)
    contact_person: Optional[ContactPerson] = None
    images: List[str] = Field(default_factory=list)


class EquipmentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    type: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    specifications: Optional[Specifications] = None
    location: Optional[Location] = None
    availability: Optional[Availability] = None
    associated_projects: Optional[List[str]] = None
    contact_person: Optional[ContactPerson] = None
    images: Optional[List[str]] = None


class EquipmentResponse(BaseModel):
    id: str
    name: str
    type: str
    category: str
    description: Optional[str] = None
    specifications: Specifications
    location: Location
    availability: Availability
    associated_projects: List[str]
    contact_person: Optional[Dict[str, Any]] = None
    images: List[str]
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class EquipmentPage(PageMeta):
    equipment: List[EquipmentResponse]
