"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    DatabaseError,

    # Templates
    TemplateNotFoundError,
    InvalidTemplateError,
    MissingRequiredFieldsError,

    # Duplicate resolution
    DuplicateGroupNotFoundError,
    UnresolvedGroupsError,

    # Import sessions
    ImportSessionNotFoundError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "DatabaseError",

    # Templates
    "TemplateNotFoundError",
    "InvalidTemplateError",
    "MissingRequiredFieldsError",

    # Duplicate resolution
    "DuplicateGroupNotFoundError",
    "UnresolvedGroupsError",

    # Import sessions
    "ImportSessionNotFoundError",
]
