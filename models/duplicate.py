"""
Duplicate detection and resolution schemas.
"""

from enum import Enum
from typing import Optional

from pydantic import Field, model_validator

from models.base import BaseSchema, FrozenSchema


class ParsedRecord(FrozenSchema):
    """
    One row of an import session, keyed by the uploaded header.

    Batch rows are numbered from 0 in file order; records loaded from
    storage follow after the batch and carry their storage id.
    """
    index: int = Field(..., ge=0)
    values: dict[str, str] = Field(default_factory=dict)  # header -> cell
    is_existing: bool = False
    source_id: Optional[str] = None

    def get(self, header: Optional[str]) -> str:
        """Cell value for a header, '' when the header is absent."""
        if not header:
            return ""
        return self.values.get(header) or ""


class ResolutionAction(str, Enum):
    """
    Decision for one duplicate group.

    MERGE: primary takes the merged values, secondaries are dropped
    SKIP: primary unchanged, secondaries are dropped
    UPDATE: incoming values overwrite the primary, secondaries are dropped
    KEEP_BOTH: every member is kept as-is
    """
    MERGE = "merge"
    SKIP = "skip"
    UPDATE = "update"
    KEEP_BOTH = "keep_both"


class DuplicateGroup(FrozenSchema):
    """
    Records judged to describe the same application.

    members[0] is the primary record.
    """
    id: str
    confidence: float = Field(..., ge=0, le=1)
    match_reasons: list[str] = Field(default_factory=list)
    members: list[ParsedRecord] = Field(..., min_length=2)
    recommendation: Optional[ResolutionAction] = None

    @property
    def primary(self) -> ParsedRecord:
        return self.members[0]

    @property
    def secondaries(self) -> list[ParsedRecord]:
        return self.members[1:]

    @property
    def member_indices(self) -> list[int]:
        return [m.index for m in self.members]


class DuplicateResolution(FrozenSchema):
    """A caller's decision for one group, with the merge preview when merging."""
    group_id: str
    action: ResolutionAction
    primary_index: int
    secondary_index: int
    secondary_indices: list[int] = Field(default_factory=list)
    merged_data: Optional[dict[str, str]] = None

    @model_validator(mode="after")
    def merged_data_only_for_merge(self) -> "DuplicateResolution":
        if self.action == ResolutionAction.MERGE and self.merged_data is None:
            raise ValueError("Merge resolution requires merged_data")
        if self.action != ResolutionAction.MERGE and self.merged_data is not None:
            raise ValueError("merged_data is only allowed for merge resolutions")
        return self


class DuplicateSummary(FrozenSchema):
    """Counts of groups per confidence tier, with guidance for the caller."""
    total_duplicates: int
    high_confidence_groups: int
    medium_confidence_groups: int
    low_confidence_groups: int
    recommended_actions: list[str] = Field(default_factory=list)


# ===================
# RECONCILED OUTPUT
# ===================

class RecordOperation(str, Enum):
    """What the storage collaborator must do with a reconciled record."""
    INSERT = "insert"
    UPDATE = "update"


class ReconciledRecord(FrozenSchema):
    """Canonical record (canonical field -> value) plus its storage operation."""
    index: int
    operation: RecordOperation
    source_id: Optional[str] = None
    data: dict[str, str] = Field(default_factory=dict)


class ResolutionSummary(FrozenSchema):
    merged: int = 0
    skipped: int = 0
    updated: int = 0
    kept_both: int = 0


class ReconciledImport(FrozenSchema):
    """Final record list handed to storage, ordered by record index."""
    records: list[ReconciledRecord] = Field(default_factory=list)
    summary: ResolutionSummary = Field(default_factory=ResolutionSummary)

    def by_operation(self, operation: RecordOperation) -> list[ReconciledRecord]:
        return [r for r in self.records if r.operation == operation]


# ===================
# API SCHEMAS
# ===================

class ResolutionRequest(BaseSchema):
    """Resolve one duplicate group."""
    group_id: str = Field(..., min_length=1)
    action: ResolutionAction
