"""Lookup tables referenced by projects and applications by name"""
from sqlalchemy import Column, String, DateTime, Enum as SQLEnum, Text, ForeignKey
from datetime import datetime
import enum

from grantsportal.core.database import Base
from grantsportal.core.types import GUID, LifecycleState, generate_uuid


class Scheme(Base):
    """Funding programme a project is sanctioned under"""
    __tablename__ = "schemes"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(255), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    state = Column(SQLEnum(LifecycleState), default=LifecycleState.ACTIVE, nullable=False, index=True)

    created_by = Column(GUID, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Scheme {self.name}>"


class Category(Base):
    """Research discipline"""
    __tablename__ = "categories"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(255), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    state = Column(SQLEnum(LifecycleState), default=LifecycleState.ACTIVE, nullable=False, index=True)

    created_by = Column(GUID, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Category {self.name}>"


class ManpowerCategory(str, enum.Enum):
    RESEARCH = "Research"
    TECHNICAL = "Technical"
    ADMINISTRATIVE = "Administrative"
    SUPPORT = "Support"
    OTHER = "Other"


class ManpowerType(Base):
    """Kind of staff position a project can sanction"""
    __tablename__ = "manpower_types"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(255), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    category = Column(SQLEnum(ManpowerCategory), default=ManpowerCategory.RESEARCH, nullable=False)
    state = Column(SQLEnum(LifecycleState), default=LifecycleState.ACTIVE, nullable=False, index=True)

    created_by = Column(GUID, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<ManpowerType {self.name}>"
