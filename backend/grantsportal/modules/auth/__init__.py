# Authentication module

from grantsportal.modules.auth.dependencies import (
    AuthContext,
    Authorize,
    get_current_user,
    get_optional_user,
)

__all__ = [
    "AuthContext",
    "Authorize",
    "get_current_user",
    "get_optional_user",
]
