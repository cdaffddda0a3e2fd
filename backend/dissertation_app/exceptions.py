"""
Application exceptions.

Services raise these; the HTTP layer is the only place that turns them into
status codes (see the handlers registered in main.py).

Usage:
    from dissertation_app.exceptions import NotFoundError, ConflictError

    if not session:
        raise NotFoundError("Session")
    if accepted >= session.max_students:
        raise ConflictError("Session is full")
"""

from typing import Optional, Any, Dict


class DissertationAppError(Exception):
    """Base exception for all application errors"""

    status_code = 500

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
        body = {
            "error": self.message,
            "code": self.code,
        }
        if self.details:
            body["details"] = self.details
        return body


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(DissertationAppError):
    """Missing or invalid credentials"""

    status_code = 401

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, code="AUTH_FAILED")


class InvalidTokenError(AuthenticationError):
    """JWT token is invalid or expired"""

    def __init__(self):
        super().__init__("Invalid token")
        self.code = "INVALID_TOKEN"


class AuthorizationError(DissertationAppError):
    """Role or ownership mismatch"""

    status_code = 403

    def __init__(self, message: str = "Access denied"):
        super().__init__(message, code="NOT_AUTHORIZED")


# ============================================
# Resource Errors (404-type)
# ============================================

class NotFoundError(DissertationAppError):
    """Referenced entity does not exist (or is not visible to the caller)"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: Optional[Any] = None):
        details = {"resource_type": resource_type}
        if resource_id is not None:
            details["resource_id"] = resource_id
        super().__init__(
            f"{resource_type} not found",
            code=f"{resource_type.upper()}_NOT_FOUND",
            details=details
        )


# ============================================
# Validation & Business Rule Errors (400-type)
# ============================================

class ValidationError(DissertationAppError):
    """Malformed, missing or contradictory input"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class InvalidFileTypeError(ValidationError):
    """Uploaded file is not an allowed type"""

    def __init__(self, file_type: str, allowed_types: list):
        super().__init__("Only PDF files are allowed")
        self.code = "INVALID_FILE_TYPE"
        self.details = {"file_type": file_type, "allowed_types": allowed_types}


class FileTooLargeError(ValidationError):
    """Uploaded file exceeds the size limit"""

    def __init__(self, max_bytes: int):
        super().__init__(f"File exceeds the maximum size of {max_bytes // (1024 * 1024)}MB")
        self.code = "FILE_TOO_LARGE"
        self.details = {"max_bytes": max_bytes}


class ConflictError(DissertationAppError):
    """A business rule forbids the operation in the current state"""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message, code="CONFLICT")
