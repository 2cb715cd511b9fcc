from pydantic import BaseModel, EmailStr, Field
from typing import Dict, List, Optional

from grantsportal.models.user import UserRole
from grantsportal.schemas.auth import UserResponse
from grantsportal.schemas.common import PageMeta


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    institution: str = Field(..., min_length=1)
    department: Optional[str] = None
    designation: Optional[str] = None
    phone: Optional[str] = None
    role: UserRole = UserRole.PUBLIC
    is_active: bool = True


class UserUpdate(BaseModel):
    """Admin edit; password and refresh token are not writable here"""
    username: Optional[str] = Field(None, min_length=3, max_length=100)
    email: Optional[EmailStr] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    institution: Optional[str] = None
    department: Optional[str] = None
    designation: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None


class UserStats(BaseModel):
    total: int
    active: int
    inactive: int
    by_role: Dict[str, int]
    recent: List[UserResponse]


class UserPage(PageMeta):
    users: List[UserResponse]
