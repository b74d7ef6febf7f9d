"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
    FrozenSchema,
)
from models.template import (
    CANONICAL_FIELDS,
    TemplateSource,
    FieldMapping,
    Template,
    TemplateDetection,
    FieldMappingResult,
    HeadersRequest,
    TemplateDetectionResponse,
    MappingResponse,
    CustomTemplateCreate,
    SampleDataRequest,
    SampleDataResponse,
)
from models.duplicate import (
    ParsedRecord,
    ResolutionAction,
    DuplicateGroup,
    DuplicateResolution,
    DuplicateSummary,
    RecordOperation,
    ReconciledRecord,
    ResolutionSummary,
    ReconciledImport,
    ResolutionRequest,
)
from models.import_session import (
    ImportSessionCreate,
    ImportSessionResponse,
    ImportCommitResponse,
)

__all__ = [
    # Base
    "BaseSchema",
    "FrozenSchema",

    # Templates
    "CANONICAL_FIELDS",
    "TemplateSource",
    "FieldMapping",
    "Template",
    "TemplateDetection",
    "FieldMappingResult",
    "HeadersRequest",
    "TemplateDetectionResponse",
    "MappingResponse",
    "CustomTemplateCreate",
    "SampleDataRequest",
    "SampleDataResponse",

    # Duplicates
    "ParsedRecord",
    "ResolutionAction",
    "DuplicateGroup",
    "DuplicateResolution",
    "DuplicateSummary",
    "RecordOperation",
    "ReconciledRecord",
    "ResolutionSummary",
    "ReconciledImport",
    "ResolutionRequest",

    # Import sessions
    "ImportSessionCreate",
    "ImportSessionResponse",
    "ImportCommitResponse",
]
