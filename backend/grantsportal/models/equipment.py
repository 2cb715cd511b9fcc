from sqlalchemy import Column, String, DateTime, Enum as SQLEnum, Integer, Float, Text, ForeignKey, JSON, Index
from datetime import datetime
import enum

from grantsportal.core.database import Base
from grantsportal.core.types import GUID, generate_uuid


class AvailabilityStatus(str, enum.Enum):
    AVAILABLE = "Available"
    IN_USE = "In Use"
    UNDER_MAINTENANCE = "Under Maintenance"
    DECOMMISSIONED = "Decommissioned"


class AccessType(str, enum.Enum):
    OPEN_ACCESS = "Open Access"
    RESTRICTED = "Restricted"
    BY_APPOINTMENT = "By Appointment"


class Equipment(Base):
    """Research equipment inventory item"""
    __tablename__ = "equipment"

    __table_args__ = (
        # Natural key used by project equipment sync
        Index('ix_equipment_identity', 'name', 'model', 'manufacturer'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False, index=True)
    type = Column(String(100), nullable=False)
    category = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=True)

    # Specifications
    model = Column(String(255), nullable=True)
    manufacturer = Column(String(255), nullable=True)
    year_of_purchase = Column(Integer, nullable=True)
    cost = Column(Float, nullable=True)
    technical_specs = Column(Text, nullable=True)

    # Location
    institution = Column(String(255), nullable=True, index=True)
    department = Column(String(255), nullable=True)
    building = Column(String(255), nullable=True)
    room = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True, index=True)

    availability_status = Column(SQLEnum(AvailabilityStatus), default=AvailabilityStatus.AVAILABLE, nullable=False)
    access_type = Column(SQLEnum(AccessType), default=AccessType.BY_APPOINTMENT, nullable=False)

    associated_projects = Column(JSON, nullable=False, default=list)  # project ids
    contact_person = Column(JSON, nullable=True)  # {name, email, phone}
    images = Column(JSON, nullable=False, default=list)

    created_by = Column(GUID, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def specifications(self) -> dict:
        return {
            "model": self.model,
            "manufacturer": self.manufacturer,
            "year_of_purchase": self.year_of_purchase,
            "cost": self.cost,
            "technical_specs": self.technical_specs,
        }

    @property
    def location(self) -> dict:
        return {
            "institution": self.institution,
            "department": self.department,
            "building": self.building,
            "room": self.room,
            "state": self.state,
        }

    @property
    def availability(self) -> dict:
        return {"status": self.availability_status, "access_type": self.access_type}

    def __repr__(self):
        return f"<Equipment {self.name}>"
