from sqlalchemy import Column, String, Boolean, DateTime, Integer, Text, ForeignKey
from datetime import datetime

from grantsportal.core.database import Base
from grantsportal.core.types import GUID, generate_uuid


class PortalSettings(Base):
    """Portal configuration; a single row, created on first read"""
    __tablename__ = "portal_settings"

    id = Column(GUID, primary_key=True, default=generate_uuid)

    # General
    site_name = Column(String(255), default="IIT Mandi iHub & HCi Foundation", nullable=False)
    site_description = Column(
        Text,
        default="A comprehensive platform for managing research projects, publications, and academic resources",
        nullable=False,
    )
    admin_email = Column(String(255), default="admin@iitmandi.ac.in", nullable=False)
    timezone = Column(String(64), default="Asia/Kolkata", nullable=False)
    language = Column(String(32), default="English", nullable=False)

    # System
    maintenance_mode = Column(Boolean, default=False, nullable=False)
    user_registration = Column(Boolean, default=True, nullable=False)
    email_notifications = Column(Boolean, default=True, nullable=False)
    activity_logging = Column(Boolean, default=True, nullable=False)
    auto_backup = Column(Boolean, default=True, nullable=False)
    backup_frequency = Column(String(16), default="daily", nullable=False)

    # Security
    password_min_length = Column(Integer, default=8, nullable=False)
    session_timeout = Column(Integer, default=60, nullable=False)  # minutes
    max_login_attempts = Column(Integer, default=5, nullable=False)
    two_factor_auth = Column(Boolean, default=False, nullable=False)
    ip_whitelist = Column(Text, default="", nullable=False)

    # Email
    smtp_host = Column(String(255), default="", nullable=False)
    smtp_port = Column(Integer, default=587, nullable=False)
    smtp_user = Column(String(255), default="", nullable=False)
    smtp_password = Column(String(255), default="", nullable=False)
    smtp_secure = Column(Boolean, default=True, nullable=False)

    # File uploads
    max_file_size = Column(Integer, default=10, nullable=False)  # MB
    allowed_file_types = Column(String(255), default="pdf,doc,docx,txt,jpg,jpeg,png", nullable=False)
    upload_path = Column(String(255), default="/uploads", nullable=False)

    # Project workflow
    auto_validation = Column(Boolean, default=False, nullable=False)
    validation_required = Column(Boolean, default=True, nullable=False)
    project_approval_workflow = Column(Boolean, default=True, nullable=False)
    funding_validation = Column(Boolean, default=True, nullable=False)

    # Online application window
    applications_open = Column(Boolean, default=True, nullable=False)
    application_open_date = Column(DateTime, nullable=True)
    application_close_date = Column(DateTime, nullable=True)
    application_auto_close = Column(Boolean, default=True, nullable=False)
    application_message = Column(
        Text,
        default="Applications are currently being accepted for Call for Proposal 5.0",
        nullable=False,
    )

    last_updated_by = Column(GUID, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<PortalSettings {self.site_name}>"
