# Re-export all models for convenient imports
from grantsportal.models.user import User, UserRole
from grantsportal.models.project import Project, ValidationStatus
from grantsportal.models.equipment import Equipment, AvailabilityStatus, AccessType
from grantsportal.models.activity_log import ActivityLog, ActivityAction
from grantsportal.models.reference import Scheme, Category, ManpowerType, ManpowerCategory
from grantsportal.models.pi_project import PIProject, PIProjectType, PIProjectStatus, ReviewStatus
from grantsportal.models.online_application import OnlineApplication, ApplicationStatus
from grantsportal.models.publication import Publication, PublicationType
from grantsportal.models.outcome import Outcome, OutcomeType
from grantsportal.models.settings import PortalSettings

__all__ = [
    "User",
    "UserRole",
    "Project",
    "ValidationStatus",
    "Equipment",
    "AvailabilityStatus",
    "AccessType",
    "ActivityLog",
    "ActivityAction",
    "Scheme",
    "Category",
    "ManpowerType",
    "ManpowerCategory",
    "PIProject",
    "PIProjectType",
    "PIProjectStatus",
    "ReviewStatus",
    "OnlineApplication",
    "ApplicationStatus",
    "Publication",
    "PublicationType",
    "Outcome",
    "OutcomeType",
    "PortalSettings",
]
