from sqlalchemy import Column, String, DateTime, Text, ForeignKey, JSON, Enum as SQLEnum
from datetime import datetime
import enum

from grantsportal.core.database import Base
from grantsportal.core.types import GUID, generate_uuid


class ActivityAction(str, enum.Enum):
    """Audited actions"""
    CREATE_PROJECT = "CREATE_PROJECT"
    UPDATE_PROJECT = "UPDATE_PROJECT"
    DELETE_PROJECT = "DELETE_PROJECT"
    VALIDATE_PROJECT = "VALIDATE_PROJECT"
    SYNC_EQUIPMENT = "SYNC_EQUIPMENT"

    CREATE_USER = "CREATE_USER"
    UPDATE_USER = "UPDATE_USER"
    DELETE_USER = "DELETE_USER"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"

    UPLOAD_FILE = "UPLOAD_FILE"
    DELETE_FILE = "DELETE_FILE"
    DOWNLOAD_FILE = "DOWNLOAD_FILE"
    UPLOAD_PATENT_DOCUMENT = "UPLOAD_PATENT_DOCUMENT"
    DELETE_PATENT_DOCUMENT = "DELETE_PATENT_DOCUMENT"
    DOWNLOAD_PATENT_DOCUMENT = "DOWNLOAD_PATENT_DOCUMENT"

    CREATE_EQUIPMENT = "CREATE_EQUIPMENT"
    UPDATE_EQUIPMENT = "UPDATE_EQUIPMENT"
    DELETE_EQUIPMENT = "DELETE_EQUIPMENT"

    CREATE_PUBLICATION = "CREATE_PUBLICATION"
    UPDATE_PUBLICATION = "UPDATE_PUBLICATION"
    DELETE_PUBLICATION = "DELETE_PUBLICATION"

    CREATE_OUTCOME = "CREATE_OUTCOME"
    UPDATE_OUTCOME = "UPDATE_OUTCOME"
    DELETE_OUTCOME = "DELETE_OUTCOME"

    CREATE_CATEGORY = "CREATE_CATEGORY"
    UPDATE_CATEGORY = "UPDATE_CATEGORY"
    DELETE_CATEGORY = "DELETE_CATEGORY"
    INITIALIZE_CATEGORIES = "INITIALIZE_CATEGORIES"

    CREATE_SCHEME = "CREATE_SCHEME"
    UPDATE_SCHEME = "UPDATE_SCHEME"
    DELETE_SCHEME = "DELETE_SCHEME"
    INITIALIZE_SCHEMES = "INITIALIZE_SCHEMES"

    CREATE_MANPOWER_TYPE = "CREATE_MANPOWER_TYPE"
    UPDATE_MANPOWER_TYPE = "UPDATE_MANPOWER_TYPE"
    DELETE_MANPOWER_TYPE = "DELETE_MANPOWER_TYPE"

    CREATE_PI_PROJECT = "CREATE_PI_PROJECT"
    UPDATE_PI_PROJECT = "UPDATE_PI_PROJECT"
    REVIEW_PI_PROJECT = "REVIEW_PI_PROJECT"
    SUBMIT_PROGRESS_REPORT = "SUBMIT_PROGRESS_REPORT"

    SUBMIT_APPLICATION = "SUBMIT_APPLICATION"
    UPDATE_APPLICATION = "UPDATE_APPLICATION"
    DELETE_APPLICATION = "DELETE_APPLICATION"
    BULK_UPDATE = "BULK_UPDATE"

    UPDATE_SETTINGS = "UPDATE_SETTINGS"
    RESET_SETTINGS = "RESET_SETTINGS"
    DATA_EXPORT = "DATA_EXPORT"


class ActivityLog(Base):
    """Append-only audit trail entry"""
    __tablename__ = "activity_logs"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id"), nullable=True, index=True)

    action = Column(SQLEnum(ActivityAction), nullable=False, index=True)
    target_type = Column(String(50), nullable=True, index=True)  # 'Project', 'User', 'Scheme', ...
    target_id = Column(String(36), nullable=True)

    # {description, changes, metadata}
    details = Column(JSON, nullable=True)

    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<ActivityLog {self.action} by {self.user_id}>"
