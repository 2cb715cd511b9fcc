from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional
from datetime import datetime

from grantsportal.models.user import UserRole

SELF_SERVICE_ROLES = (UserRole.PUBLIC, UserRole.PI)


class UserRegister(BaseModel):
    username: str = Field(..., min_length=3, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    institution: str = Field(..., min_length=1, max_length=255)
    department: Optional[str] = None
    designation: Optional[str] = None
    phone: Optional[str] = None
    role: UserRole = UserRole.PUBLIC

    @field_validator('username')
    @classmethod
    def strip_username(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('Username is required')
        return v

    @field_validator('role')
    @classmethod
    def self_service_role(cls, v: UserRole) -> UserRole:
        # Admin and Validator accounts are created by an admin
        if v not in SELF_SERVICE_ROLES:
            raise ValueError('Only Public or PI accounts can be self-registered')
        return v


class UserLogin(BaseModel):
    # Email address, or the username
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class UserResponse(BaseModel):
    id: str
    username: str
    email: str
    first_name: str
    last_name: str
    full_name: str
    institution: str
    department: Optional[str] = None
    designation: Optional[str] = None
    phone: Optional[str] = None
    role: UserRole
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class LoginResponse(TokenPair):
    message: str
    user: UserResponse


class RegisterResponse(BaseModel):
    message: str
    user: UserResponse
