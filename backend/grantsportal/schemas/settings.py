from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Optional
from datetime import datetime

BACKUP_FREQUENCIES = ("hourly", "daily", "weekly", "monthly")

VALID_TIMEZONES = (
    "UTC", "America/New_York", "America/Chicago", "America/Denver", "America/Los_Angeles",
    "Europe/London", "Europe/Paris", "Asia/Tokyo", "Asia/Kolkata",
)

VALID_LANGUAGES = ("English", "Spanish", "French", "German", "Chinese", "Japanese")


class SettingsUpdate(BaseModel):
    """Partial update of the portal settings row"""
    site_name: Optional[str] = Field(None, min_length=1, max_length=255)
    site_description: Optional[str] = None
    admin_email: Optional[str] = None
    timezone: Optional[str] = None
    language: Optional[str] = None

    maintenance_mode: Optional[bool] = None
    user_registration: Optional[bool] = None
    email_notifications: Optional[bool] = None
    activity_logging: Optional[bool] = None
    auto_backup: Optional[bool] = None
    backup_frequency: Optional[str] = None

    password_min_length: Optional[int] = None
    session_timeout: Optional[int] = None
    max_login_attempts: Optional[int] = None
    two_factor_auth: Optional[bool] = None
    ip_whitelist: Optional[str] = None

    smtp_host: Optional[str] = None
    smtp_port: Optional[int] = Field(None, ge=1, le=65535)
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_secure: Optional[bool] = None

    max_file_size: Optional[int] = None
    allowed_file_types: Optional[str] = None
    upload_path: Optional[str] = None

    auto_validation: Optional[bool] = None
    validation_required: Optional[bool] = None
    project_approval_workflow: Optional[bool] = None
    funding_validation: Optional[bool] = None

    @field_validator('password_min_length')
    @classmethod
    def check_password_min_length(cls, v):
        if v is not None and not 6 <= v <= 20:
            raise ValueError('Password minimum length must be between 6 and 20')
        return v

    @field_validator('session_timeout')
    @classmethod
    def check_session_timeout(cls, v):
        if v is not None and not 15 <= v <= 480:
            raise ValueError('Session timeout must be between 15 and 480 minutes')
        return v

    @field_validator('max_login_attempts')
    @classmethod
    def check_max_login_attempts(cls, v):
        if v is not None and not 3 <= v <= 10:
            raise ValueError('Maximum login attempts must be between 3 and 10')
        return v

    @field_validator('max_file_size')
    @classmethod
    def check_max_file_size(cls, v):
        if v is not None and not 1 <= v <= 100:
            raise ValueError('Maximum file size must be between 1 and 100 MB')
        return v

    @field_validator('backup_frequency')
    @classmethod
    def check_backup_frequency(cls, v):
        if v is not None and v not in BACKUP_FREQUENCIES:
            raise ValueError('Invalid backup frequency')
        return v

    @field_validator('timezone')
    @classmethod
    def check_timezone(cls, v):
        if v is not None and v not in VALID_TIMEZONES:
            raise ValueError('Invalid timezone')
        return v

    @field_validator('language')
    @classmethod
    def check_language(cls, v):
        if v is not None and v not in VALID_LANGUAGES:
            raise ValueError('Invalid language')
        return v


class SettingsResponse(BaseModel):
    """Settings as shown to admins; the SMTP password is never included"""
    id: str
    site_name: str
    site_description: str
    admin_email: str
    timezone: str
    language: str
    maintenance_mode: bool
    user_registration: bool
    email_notifications: bool
    activity_logging: bool
    auto_backup: bool
    backup_frequency: str
    password_min_length: int
    session_timeout: int
    max_login_attempts: int
    two_factor_auth: bool
    ip_whitelist: str
    smtp_host: str
    smtp_port: int
    smtp_user: str
    smtp_secure: bool
    max_file_size: int
    allowed_file_types: str
    upload_path: str
    auto_validation: bool
    validation_required: bool
    project_approval_workflow: bool
    funding_validation: bool
    last_updated_by: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class EmailTestRequest(BaseModel):
    smtp_host: str = Field(..., min_length=1)
    smtp_port: int = Field(..., ge=1, le=65535)
    smtp_user: str = Field(..., min_length=1)
    smtp_password: str = Field(..., min_length=1)
    smtp_secure: bool = True
    recipient: Optional[str] = None


class ApplicationWindow(BaseModel):
    is_open: bool
    open_date: Optional[datetime] = None
    close_date: Optional[datetime] = None
    auto_close: bool
    message: str


class ApplicationWindowUpdate(BaseModel):
    is_open: Optional[bool] = None
    open_date: Optional[datetime] = None
    close_date: Optional[datetime] = None
    auto_close: Optional[bool] = None
    message: Optional[str] = None

    @model_validator(mode='after')
    def check_dates(self):
        if self.open_date and self.close_date and self.close_date < self.open_date:
            raise ValueError('Close date must be after open date')
        return self
