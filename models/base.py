"""
Base schemas for all models.
"""

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """
    Base for request/response schemas.

    Features:
        - Auto-trim whitespace from strings
        - Validate on attribute assignment
        - Allow ORM objects (from_attributes)
    """
    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        validate_assignment=True
    )


class FrozenSchema(BaseModel):
    """
    Base for engine values that must not change once built.

    Strings are kept verbatim: uploaded headers and cells are compared and
    re-emitted exactly as received.
    """
    model_config = ConfigDict(
        frozen=True,
        from_attributes=True,
    )
