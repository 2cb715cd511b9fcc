"""
Authorization policy
====================

Every access decision in the API goes through ``authorize(subject, resource, action)``.
It answers two questions at once:

* may this subject perform the action at all (``Decision.allowed``), and
* if so, which rows may it touch (``Decision.predicate`` / ``Decision.apply``).

Owner-scoped roles get a predicate on the resource's owner column
(``Project.created_by``, ``PIProject.pi_id``, ...); unscoped roles get none.

Usage:
    decision = authorize(user, Resource.PROJECT, Action.LIST)
    if not decision.allowed:
        raise AuthorizationError(decision.reason)
    query = decision.apply(select(Project))
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional, Tuple
import enum

from sqlalchemy.orm.attributes import InstrumentedAttribute

from grantsportal.models import (
    User, UserRole, Project, PIProject, Publication, Outcome,
)


class Resource(str, enum.Enum):
    PROJECT = "project"
    PROJECT_FILE = "project_file"
    PI_PROJECT = "pi_project"
    USER = "user"
    EQUIPMENT = "equipment"
    PUBLICATION = "publication"
    OUTCOME = "outcome"
    SCHEME = "scheme"
    CATEGORY = "category"
    MANPOWER_TYPE = "manpower_type"
    ACTIVITY_LOG = "activity_log"
    SETTINGS = "settings"
    ONLINE_APPLICATION = "online_application"
    APPLICATION_SETTINGS = "application_settings"
    ANALYTICS = "analytics"


class Action(str, enum.Enum):
    LIST = "list"
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    EXPORT = "export"
    REVIEW = "review"
    SUBMIT = "submit"  # PI-project documents and progress reports
    SYNC = "sync"
    LIST_OWN = "list_own"


ALL_ROLES: FrozenSet[UserRole] = frozenset(UserRole)
STAFF: FrozenSet[UserRole] = frozenset({UserRole.ADMIN, UserRole.VALIDATOR})
ADMIN_ONLY: FrozenSet[UserRole] = frozenset({UserRole.ADMIN})
PI_ONLY: FrozenSet[UserRole] = frozenset({UserRole.PI})


@dataclass(frozen=True)
class Rule:
    """Who may perform an action: unscoped roles, owner-scoped roles, anonymous callers"""
    roles: FrozenSet[UserRole] = frozenset()
    scoped_roles: FrozenSet[UserRole] = frozenset()
    anonymous: bool = False


PUBLIC_READ = Rule(roles=ALL_ROLES, anonymous=True)
ADMIN_RULE = Rule(roles=ADMIN_ONLY)
STAFF_RULE = Rule(roles=STAFF)
OWNER_OR_ADMIN = Rule(roles=ADMIN_ONLY, scoped_roles=ALL_ROLES - ADMIN_ONLY)

POLICY: Dict[Tuple[Resource, Action], Rule] = {
    # Projects: Admin/Validator see everything, PIs only what they created
    (Resource.PROJECT, Action.LIST): Rule(roles=STAFF, scoped_roles=PI_ONLY),
    (Resource.PROJECT, Action.READ): Rule(roles=STAFF, scoped_roles=PI_ONLY),
    (Resource.PROJECT, Action.CREATE): Rule(roles=frozenset({UserRole.ADMIN, UserRole.PI})),
    (Resource.PROJECT, Action.UPDATE): Rule(roles=STAFF, scoped_roles=PI_ONLY),
    (Resource.PROJECT, Action.DELETE): Rule(roles=ADMIN_ONLY, scoped_roles=PI_ONLY),
    (Resource.PROJECT, Action.SYNC): ADMIN_RULE,

    (Resource.PROJECT_FILE, Action.LIST): Rule(roles=STAFF, scoped_roles=PI_ONLY),
    (Resource.PROJECT_FILE, Action.READ): Rule(roles=STAFF, scoped_roles=PI_ONLY),
    (Resource.PROJECT_FILE, Action.CREATE): Rule(roles=ADMIN_ONLY, scoped_roles=PI_ONLY),
    (Resource.PROJECT_FILE, Action.DELETE): Rule(roles=ADMIN_ONLY, scoped_roles=PI_ONLY),

    (Resource.PI_PROJECT, Action.LIST): ADMIN_RULE,
    (Resource.PI_PROJECT, Action.LIST_OWN): Rule(scoped_roles=PI_ONLY),
    (Resource.PI_PROJECT, Action.READ): Rule(roles=ADMIN_ONLY, scoped_roles=PI_ONLY),
    (Resource.PI_PROJECT, Action.CREATE): Rule(roles=PI_ONLY),
    (Resource.PI_PROJECT, Action.UPDATE): Rule(roles=ADMIN_ONLY, scoped_roles=PI_ONLY),
    (Resource.PI_PROJECT, Action.SUBMIT): Rule(scoped_roles=PI_ONLY),
    (Resource.PI_PROJECT, Action.REVIEW): ADMIN_RULE,

    (Resource.USER, Action.LIST): ADMIN_RULE,
    (Resource.USER, Action.CREATE): ADMIN_RULE,
    (Resource.USER, Action.UPDATE): ADMIN_RULE,
    (Resource.USER, Action.DELETE): ADMIN_RULE,

    (Resource.EQUIPMENT, Action.LIST): PUBLIC_READ,
    (Resource.EQUIPMENT, Action.READ): PUBLIC_READ,
    (Resource.EQUIPMENT, Action.CREATE): ADMIN_RULE,
    (Resource.EQUIPMENT, Action.UPDATE): ADMIN_RULE,
    (Resource.EQUIPMENT, Action.DELETE): ADMIN_RULE,

    (Resource.PUBLICATION, Action.LIST): PUBLIC_READ,
    (Resource.PUBLICATION, Action.READ): PUBLIC_READ,
    (Resource.PUBLICATION, Action.CREATE): Rule(roles=ALL_ROLES),
    (Resource.PUBLICATION, Action.UPDATE): OWNER_OR_ADMIN,
    (Resource.PUBLICATION, Action.DELETE): OWNER_OR_ADMIN,

    (Resource.OUTCOME, Action.LIST): PUBLIC_READ,
    (Resource.OUTCOME, Action.READ): PUBLIC_READ,
    (Resource.OUTCOME, Action.CREATE): Rule(roles=ALL_ROLES),
    (Resource.OUTCOME, Action.UPDATE): OWNER_OR_ADMIN,
    (Resource.OUTCOME, Action.DELETE): OWNER_OR_ADMIN,

    (Resource.SCHEME, Action.LIST): PUBLIC_READ,
    (Resource.SCHEME, Action.READ): PUBLIC_READ,
    (Resource.SCHEME, Action.CREATE): ADMIN_RULE,
    (Resource.SCHEME, Action.UPDATE): ADMIN_RULE,
    (Resource.SCHEME, Action.DELETE): ADMIN_RULE,

    (Resource.CATEGORY, Action.LIST): PUBLIC_READ,
    (Resource.CATEGORY, Action.READ): PUBLIC_READ,
    (Resource.CATEGORY, Action.CREATE): ADMIN_RULE,
    (Resource.CATEGORY, Action.UPDATE): ADMIN_RULE,
    (Resource.CATEGORY, Action.DELETE): ADMIN_RULE,

    (Resource.MANPOWER_TYPE, Action.LIST): PUBLIC_READ,
    (Resource.MANPOWER_TYPE, Action.READ): STAFF_RULE,
    (Resource.MANPOWER_TYPE, Action.CREATE): ADMIN_RULE,
    (Resource.MANPOWER_TYPE, Action.UPDATE): ADMIN_RULE,
    (Resource.MANPOWER_TYPE, Action.DELETE): ADMIN_RULE,

    (Resource.ACTIVITY_LOG, Action.LIST): ADMIN_RULE,
    (Resource.ACTIVITY_LOG, Action.EXPORT): ADMIN_RULE,

    (Resource.SETTINGS, Action.READ): ADMIN_RULE,
    (Resource.SETTINGS, Action.UPDATE): ADMIN_RULE,
    (Resource.SETTINGS, Action.EXPORT): ADMIN_RULE,

    (Resource.ONLINE_APPLICATION, Action.CREATE): Rule(roles=ALL_ROLES, anonymous=True),
    (Resource.ONLINE_APPLICATION, Action.LIST): STAFF_RULE,
    (Resource.ONLINE_APPLICATION, Action.READ): STAFF_RULE,
    (Resource.ONLINE_APPLICATION, Action.UPDATE): STAFF_RULE,
    (Resource.ONLINE_APPLICATION, Action.DELETE): STAFF_RULE,
    (Resource.ONLINE_APPLICATION, Action.EXPORT): STAFF_RULE,

    (Resource.APPLICATION_SETTINGS, Action.READ): PUBLIC_READ,
    (Resource.APPLICATION_SETTINGS, Action.UPDATE): ADMIN_RULE,

    (Resource.ANALYTICS, Action.LIST): PUBLIC_READ,
    # Dashboard figures are computed over the caller's visible projects
    (Resource.ANALYTICS, Action.READ): Rule(roles=STAFF, scoped_roles=PI_ONLY),
}

# Column identifying the owner of each owner-scoped resource
OWNER_COLUMNS: Dict[Resource, InstrumentedAttribute] = {
    Resource.PROJECT: Project.created_by,
    Resource.PROJECT_FILE: Project.created_by,
    Resource.ANALYTICS: Project.created_by,
    Resource.PI_PROJECT: PIProject.pi_id,
    Resource.PUBLICATION: Publication.created_by,
    Resource.OUTCOME: Outcome.created_by,
}


@dataclass(frozen=True, eq=False)
class Decision:
    """Outcome of a policy check"""
    allowed: bool
    reason: Optional[str] = None
    owner_column: Optional[InstrumentedAttribute] = None
    owner_id: Optional[str] = field(default=None)

    @property
    def is_scoped(self) -> bool:
        return self.owner_column is not None

    @property
    def predicate(self):
        """SQL filter restricting rows to the subject's own, or None when unscoped"""
        if self.owner_column is None:
            return None
        return self.owner_column == self.owner_id

    def apply(self, query):
        predicate = self.predicate
        return query if predicate is None else query.where(predicate)

    def permits(self, record: Any) -> bool:
        """Check an already loaded row against the decision"""
        if not self.allowed:
            return False
        if self.owner_column is None:
            return True
        return str(getattr(record, self.owner_column.key)) == str(self.owner_id)


def authorize(subject: Optional[User], resource: Resource, action: Action) -> Decision:
    """Decide whether ``subject`` (None for anonymous callers) may ``action`` on ``resource``"""
    rule = POLICY.get((resource, action))
    if rule is None:
        return Decision(allowed=False, reason="Action not permitted")

    if subject is None:
        if rule.anonymous:
            return Decision(allowed=True)
        return Decision(allowed=False, reason="Access token required")

    if not subject.is_active:
        return Decision(allowed=False, reason="User account is inactive")

    if subject.role in rule.roles:
        return Decision(allowed=True)

    if subject.role in rule.scoped_roles:
        return Decision(
            allowed=True,
            owner_column=OWNER_COLUMNS[resource],
            owner_id=str(subject.id),
        )

    return Decision(allowed=False, reason="Insufficient permissions")
