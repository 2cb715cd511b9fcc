"""
Custom Exceptions for the Research Grants Portal
================================================

Raise these from services and endpoints instead of building error responses
by hand; the handler registered in main.py renders every subclass as
``{"message": ..., "error": ...}`` with the class's ``status_code``.

Usage:
    from grantsportal.core.exceptions import ResourceNotFoundError

    if not scheme:
        raise ResourceNotFoundError("Scheme", scheme_id)
"""

from typing import Optional, Any, Dict


class GrantsPortalError(Exception):
    """Base exception for all portal errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(GrantsPortalError):
    """User authentication failed"""

    status_code = 401

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, code="AUTH_FAILED")


class AuthorizationError(GrantsPortalError):
    """User not authorized for this action"""

    status_code = 403

    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message, code="NOT_AUTHORIZED")


class InvalidTokenError(GrantsPortalError):
    """JWT token is malformed, tampered with or expired"""

    status_code = 403

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message, code="INVALID_TOKEN")


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(GrantsPortalError):
    """Base class for not found errors"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: Optional[str] = None):
        super().__init__(
            f"{resource_type} not found",
            code=f"{resource_type.upper().replace(' ', '_')}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(GrantsPortalError):
    """Input validation failed"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class ConflictError(GrantsPortalError):
    """A unique value (name, email, file number) is already taken"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="DUPLICATE_VALUE", details=details)


class ResourceInUseError(GrantsPortalError):
    """Reference entity cannot be removed while projects still use it"""

    status_code = 400

    def __init__(self, resource_type: str, name: str, usage_count: int):
        super().__init__(
            f"Cannot delete {resource_type.lower()} '{name}' as it is being used by "
            f"{usage_count} project(s)",
            code="RESOURCE_IN_USE",
            details={"resource_type": resource_type, "name": name, "usage_count": usage_count}
        )


# ============================================
# File Errors
# ============================================

class FileUploadError(GrantsPortalError):
    """Upload request could not be processed"""

    status_code = 400

    def __init__(self, message: str = "File upload failed"):
        super().__init__(message, code="UPLOAD_FAILED")


class InvalidFileTypeError(FileUploadError):
    """File type not allowed"""

    def __init__(self, content_type: str):
        super().__init__(
            "Invalid file type. Only PDF, DOC, DOCX, TXT, and image files are allowed."
        )
        self.code = "INVALID_FILE_TYPE"
        self.details = {"content_type": content_type}


class FileTooLargeError(FileUploadError):
    """File exceeds the per-file size cap"""

    def __init__(self, max_size: int):
        super().__init__(f"File too large. Maximum size is {max_size // (1024 * 1024)}MB.")
        self.code = "FILE_TOO_LARGE"
        self.details = {"max_size": max_size}


class StorageError(GrantsPortalError):
    """Disk storage operation failed"""

    def __init__(self, message: str):
        super().__init__(message, code="STORAGE_ERROR")
