from dataclasses import dataclass
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional

from grantsportal.core.database import get_db
from grantsportal.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    GrantsPortalError,
    InvalidTokenError,
)
from grantsportal.core.logging_config import set_user_id
from grantsportal.core.policy import Action, Decision, Resource, authorize
from grantsportal.core.security import decode_token
from grantsportal.core.types import is_valid_uuid
from grantsportal.models.user import User

# auto_error=False: a missing header is reported as 401 by us, not 403 by FastAPI
security = HTTPBearer(auto_error=False)


async def resolve_user(token: str, db: AsyncSession) -> User:
    """Load the active user an access token belongs to"""
    payload = decode_token(token)

    if payload.get("type") != "access":
        raise InvalidTokenError("Invalid token type")

    user_id = payload.get("sub")
    if not user_id or not is_valid_uuid(user_id):
        raise InvalidTokenError("Invalid token payload")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise AuthenticationError("User not found")

    if not user.is_active:
        raise AuthenticationError("User account is inactive")

    return user


def _remember_user(request: Request, user: User) -> None:
    request.state.user_id = str(user.id)
    set_user_id(str(user.id))


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Get current authenticated user"""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Access token required")

    user = await resolve_user(credentials.credentials, db)
    _remember_user(request, user)
    return user


async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Optional[User]:
    """Current user when a valid token is sent, otherwise None"""
    if credentials is None or not credentials.credentials:
        return None
    try:
        user = await resolve_user(credentials.credentials, db)
    except GrantsPortalError:
        # Public routes ignore stale or foreign tokens
        return None
    _remember_user(request, user)
    return user


@dataclass
class AuthContext:
    """Caller identity plus the policy decision for the requested action"""
    user: Optional[User]
    decision: Decision

    @property
    def user_id(self) -> Optional[str]:
        return str(self.user.id) if self.user else None


class Authorize:
    """
    Dependency running the authorization policy for one (resource, action).

    Usage:
        @router.get("")
        async def list_projects(auth: AuthContext = Depends(Authorize(Resource.PROJECT, Action.LIST))):
            query = auth.decision.apply(select(Project))
    """

    def __init__(self, resource: Resource, action: Action):
        self.resource = resource
        self.action = action

    async def __call__(
        self,
        request: Request,
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
        db: AsyncSession = Depends(get_db)
    ) -> AuthContext:
        anonymous_decision = authorize(None, self.resource, self.action)

        if anonymous_decision.allowed:
            user = await get_optional_user(request, credentials, db)
            if user is None:
                return AuthContext(user=None, decision=anonymous_decision)
        else:
            user = await get_current_user(request, credentials, db)

        decision = authorize(user, self.resource, self.action)
        if not decision.allowed:
            raise AuthorizationError(decision.reason or "Insufficient permissions")
        return AuthContext(user=user, decision=decision)
