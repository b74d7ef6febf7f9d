"""
Custom exception classes for the application.

Every error carries a stable code, an HTTP status and a details dict so the
API layer can render it without knowing the concrete type.
"""

from typing import Optional, Any
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "TEMPLATE_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with current state (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# TEMPLATE ERRORS
# ===================

class TemplateNotFoundError(NotFoundError):
    """Template id is not registered in the catalog."""

    def __init__(self, template_id: str):
        super().__init__(
            resource="Template",
            identifier=template_id,
            code="TEMPLATE_NOT_FOUND"
        )


class InvalidTemplateError(ValidationError):
    """Template definition breaks a catalog invariant."""

    def __init__(self, errors: list[str], template_id: Optional[str] = None):
        super().__init__(
            code="INVALID_TEMPLATE",
            message="Template validation failed",
            details={"template_id": template_id, "errors": errors}
        )


class MissingRequiredFieldsError(ValidationError):
    """Uploaded headers leave required canonical fields unmapped."""

    def __init__(self, template_id: str, missing_fields: list[str]):
        super().__init__(
            code="MISSING_REQUIRED_FIELDS",
            message=f"Missing required fields: {', '.join(missing_fields)}",
            details={"template_id": template_id, "missing_fields": missing_fields}
        )


# ===================
# DUPLICATE RESOLUTION ERRORS
# ===================

class DuplicateGroupNotFoundError(NotFoundError):
    """Resolution references a group that does not exist."""

    def __init__(self, group_id: str):
        super().__init__(
            resource="Duplicate group",
            identifier=group_id,
            code="DUPLICATE_GROUP_NOT_FOUND"
        )


class UnresolvedGroupsError(ConflictError):
    """Finalize requested while some groups have no decision."""

    def __init__(self, unresolved_group_ids: list[str], total_groups: int):
        super().__init__(
            code="UNRESOLVED_DUPLICATE_GROUPS",
            message=(
                f"{len(unresolved_group_ids)} of {total_groups} duplicate groups "
                "still need a resolution"
            ),
            details={
                "unresolved": unresolved_group_ids,
                "total_groups": total_groups,
            }
        )


# ===================
# IMPORT SESSION ERRORS
# ===================

class ImportSessionNotFoundError(NotFoundError):
    """Import session expired, was committed, or never existed."""

    def __init__(self, session_id: str):
        super().__init__(
            resource="Import session",
            identifier=session_id,
            code="IMPORT_SESSION_NOT_FOUND"
        )
