"""
Template schemas: provider export layouts and mapping results.
"""

from enum import Enum
from typing import Literal, Optional

from pydantic import Field, model_validator

from models.base import BaseSchema, FrozenSchema


# Canonical application fields, in the order the complete template lists them
CANONICAL_FIELDS = (
    "company",
    "position",
    "location",
    "type",
    "salary",
    "status",
    "appliedDate",
    "responseDate",
    "interviewDate",
    "offerDate",
    "rejectionDate",
    "notes",
    "jobDescription",
    "requirements",
    "contactPerson",
    "contactEmail",
    "contactPhone",
    "website",
    "jobUrl",
    "companyWebsite",
    "tags",
    "priority",
    "followUpDate",
)


class TemplateSource(str, Enum):
    """Export provider a template describes."""
    LINKEDIN = "linkedin"
    INDEED = "indeed"
    GLASSDOOR = "glassdoor"
    CUSTOM = "custom"


class FieldMapping(FrozenSchema):
    """One provider column and the canonical field it feeds."""
    csv_column: str = Field(..., min_length=1)
    canonical_field: str
    confidence: float = Field(default=1.0, ge=0, le=1)
    required: bool = False

    @model_validator(mode="after")
    def canonical_field_known(self) -> "FieldMapping":
        if self.canonical_field not in CANONICAL_FIELDS:
            raise ValueError(f"Unknown canonical field: {self.canonical_field}")
        return self


class Template(FrozenSchema):
    """
    Named description of one provider's export layout.

    Invariants (checked on construction):
        - exactly one mapping targets "company" and it is required
        - no canonical field is mapped twice
        - every sample row has one cell per mapping, in mapping order
    """
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    source: TemplateSource
    field_mappings: tuple[FieldMapping, ...] = Field(..., min_length=1)
    sample_rows: tuple[tuple[str, ...], ...] = ()

    @model_validator(mode="after")
    def check_invariants(self) -> "Template":
        company = [m for m in self.field_mappings if m.canonical_field == "company"]
        if len(company) != 1:
            raise ValueError("Template must include exactly one company field mapping")
        if not company[0].required:
            raise ValueError("Company field mapping must be required")

        fields = [m.canonical_field for m in self.field_mappings]
        if len(set(fields)) != len(fields):
            raise ValueError("Template maps the same canonical field more than once")

        width = len(self.field_mappings)
        for position, row in enumerate(self.sample_rows):
            if len(row) != width:
                raise ValueError(
                    f"Sample row {position} has {len(row)} cells, expected {width}"
                )
        return self

    @property
    def headers(self) -> list[str]:
        """Column names in declaration order."""
        return [m.csv_column for m in self.field_mappings]

    @property
    def required_fields(self) -> list[str]:
        return [m.canonical_field for m in self.field_mappings if m.required]


class TemplateDetection(FrozenSchema):
    """Best catalog match for a header row. template is None below the floor."""
    template: Optional[Template] = None
    confidence: float = Field(..., ge=0, le=1)
    matched_fields: int = Field(..., ge=0)


class FieldMappingResult(FrozenSchema):
    """How uploaded headers line up with a template's canonical fields."""
    template_id: str
    mapping: dict[str, str] = Field(default_factory=dict)  # canonical field -> header
    confidence: dict[str, float] = Field(default_factory=dict)
    unmapped_headers: list[str] = Field(default_factory=list)
    missing_fields: list[str] = Field(default_factory=list)

    @property
    def overall_confidence(self) -> float:
        """Mean confidence of the mapped fields, 0 when nothing mapped."""
        if not self.confidence:
            return 0.0
        return sum(self.confidence.values()) / len(self.confidence)

    @property
    def can_proceed(self) -> bool:
        return not self.missing_fields


# ===================
# API SCHEMAS
# ===================

class HeadersRequest(BaseSchema):
    """Header row of an uploaded table."""
    headers: list[str] = Field(..., min_length=1, description="Header row, in file order")


class TemplateDetectionResponse(BaseSchema):
    """Detection result with human-readable hints."""
    detected_template: Optional[Template] = None
    confidence: float
    matched_fields: int
    total_headers: int
    suggestions: list[str] = Field(default_factory=list)


class MappingResponse(BaseSchema):
    """Mapping result with overall confidence and hints."""
    template: Template
    mapping: dict[str, str]
    confidence: dict[str, float]
    overall_confidence: float
    unmapped_headers: list[str]
    missing_fields: list[str]
    suggestions: list[str] = Field(default_factory=list)
    can_proceed: bool


class CustomTemplateCreate(BaseSchema):
    """
    Register a template from a user-built mapping.

    mapping is canonical field -> column name. Company and position are
    marked required.
    """
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=500)
    mapping: dict[str, str] = Field(..., min_length=1)
    sample_rows: Optional[list[list[str]]] = None


class SampleDataRequest(BaseSchema):
    """Ask for generated sample rows for a template."""
    template_id: str = Field(..., min_length=1)
    count: int = Field(default=10, description="Clamped to 1..100")
    format: Literal["json", "csv"] = "json"
    seed: Optional[int] = Field(default=None, description="Fixed seed for repeatable output")


class SampleDataResponse(BaseSchema):
    template: Template
    headers: list[str]
    sample_data: list[dict[str, str]]
    count: int
