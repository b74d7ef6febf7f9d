"""
Import session schemas for the start / resolve / commit flow.
"""

from typing import Optional

from pydantic import Field

from models.base import BaseSchema
from models.duplicate import (
    DuplicateGroup,
    DuplicateResolution,
    DuplicateSummary,
    ResolutionSummary,
)
from models.template import FieldMappingResult, TemplateDetection


class ImportSessionCreate(BaseSchema):
    """
    Start an import from an already-parsed table.

    template_id is optional; when omitted the template is detected from the
    header row.
    """
    headers: list[str] = Field(..., min_length=1)
    rows: list[list[str]] = Field(default_factory=list)
    template_id: Optional[str] = None
    filename: Optional[str] = Field(None, max_length=255)


class ImportSessionResponse(BaseSchema):
    """Current state of an import session."""
    session_id: str
    template_id: str
    detection: Optional[TemplateDetection] = None
    mapping: FieldMappingResult
    row_count: int
    existing_count: int
    groups: list[DuplicateGroup]
    resolutions: list[DuplicateResolution]
    summary: DuplicateSummary
    progress: float
    is_complete: bool
    warnings: list[str] = Field(default_factory=list)
    expires_in_minutes: int


class ImportCommitResponse(BaseSchema):
    """Result of the single write at the end of a session."""
    success: bool
    session_id: str
    inserted: int
    updated: int
    summary: ResolutionSummary
    message: str
