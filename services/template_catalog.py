"""
Template catalog.

Registry of the export layouts the importer knows about. Built-in templates
are constructed once when the catalog is created; custom templates can be
registered later but an id, once taken, always refers to the same frozen
Template.
"""

from types import MappingProxyType
from typing import Iterable, Iterator, Optional
from uuid import uuid4

import structlog
from pydantic import ValidationError as PydanticValidationError

from exceptions import InvalidTemplateError, TemplateNotFoundError
from models.template import FieldMapping, Template, TemplateSource

logger = structlog.get_logger(__name__)


# ===================
# BUILT-IN TEMPLATES
# ===================

def _mappings(*columns: tuple[str, str, bool], confidence: float = 1.0) -> tuple[FieldMapping, ...]:
    return tuple(
        FieldMapping(
            csv_column=column,
            canonical_field=field,
            confidence=confidence,
            required=required,
        )
        for column, field, required in columns
    )


BUILTIN_TEMPLATES: tuple[Template, ...] = (
    Template(
        id="linkedin",
        name="LinkedIn Export",
        description="Standard format for LinkedIn job application exports",
        source=TemplateSource.LINKEDIN,
        field_mappings=_mappings(
            ("Company", "company", True),
            ("Position", "position", True),
            ("Location", "location", False),
            ("Applied Date", "appliedDate", False),
            ("Status", "status", False),
            ("Notes", "notes", False),
        ),
        sample_rows=(
            ("Google", "Software Engineer", "Mountain View, CA", "2024-01-15", "Applied", "Applied via LinkedIn"),
            ("Microsoft", "Product Manager", "Seattle, WA", "2024-01-20", "Interviewing", "Phone screen completed"),
            ("Apple", "iOS Developer", "Cupertino, CA", "2024-01-25", "Pending", "Waiting for response"),
        ),
    ),
    Template(
        id="indeed",
        name="Indeed Format",
        description="Format compatible with Indeed job applications",
        source=TemplateSource.INDEED,
        field_mappings=_mappings(
            ("Company Name", "company", True),
            ("Job Title", "position", True),
            ("Location", "location", False),
            ("Date Applied", "appliedDate", False),
            ("Application Status", "status", False),
            ("Salary", "salary", False),
            ("Job Type", "type", False),
        ),
        sample_rows=(
            ("Apple", "iOS Developer", "Cupertino, CA", "2024-01-15", "Applied", "$120,000", "Full-time"),
            ("Netflix", "Data Scientist", "Los Gatos, CA", "2024-01-20", "Pending", "$140,000", "Full-time"),
            ("Tesla", "Software Engineer", "Palo Alto, CA", "2024-01-25", "Interviewing", "$110,000", "Full-time"),
        ),
    ),
    Template(
        id="glassdoor",
        name="Glassdoor Format",
        description="Format for Glassdoor job applications with salary estimates",
        source=TemplateSource.GLASSDOOR,
        field_mappings=_mappings(
            ("Employer", "company", True),
            ("Job Title", "position", True),
            ("Location", "location", False),
            ("Date Applied", "appliedDate", False),
            ("Status", "status", False),
            ("Salary Estimate", "salary", False),
        ),
        sample_rows=(
            ("Tesla", "Software Engineer", "Palo Alto, CA", "2024-01-15", "Applied", "$110,000-130,000"),
            ("Spotify", "Backend Engineer", "Stockholm, Sweden", "2024-01-20", "Interviewing", "45,000 SEK/month"),
            ("Airbnb", "Product Designer", "San Francisco, CA", "2024-01-25", "Pending", "$130,000-150,000"),
        ),
    ),
    Template(
        id="custom",
        name="Complete Template",
        description="Comprehensive template with all available fields",
        source=TemplateSource.CUSTOM,
        field_mappings=_mappings(
            ("Company", "company", True),
            ("Position", "position", True),
            ("Location", "location", False),
            ("Type", "type", False),
            ("Salary", "salary", False),
            ("Status", "status", False),
            ("Applied Date", "appliedDate", False),
            ("Response Date", "responseDate", False),
            ("Interview Date", "interviewDate", False),
            ("Offer Date", "offerDate", False),
            ("Rejection Date", "rejectionDate", False),
            ("Notes", "notes", False),
            ("Job Description", "jobDescription", False),
            ("Requirements", "requirements", False),
            ("Contact Person", "contactPerson", False),
            ("Contact Email", "contactEmail", False),
            ("Contact Phone", "contactPhone", False),
            ("Website", "website", False),
            ("Job URL", "jobUrl", False),
            ("Company Website", "companyWebsite", False),
            ("Tags", "tags", False),
            ("Priority", "priority", False),
            ("Follow Up Date", "followUpDate", False),
        ),
        sample_rows=(
            (
                "Spotify", "Software Engineer Intern", "Stockholm, Sweden", "Internship",
                "15,000 SEK/month", "Applied", "2024-01-15", "", "", "", "",
                "Applied through LinkedIn", "Backend services for playlists", "Python;Go",
                "Sarah Johnson", "careers@spotify.com", "+46 8 123 456",
                "https://spotify.com/careers", "https://spotify.com/careers/123",
                "https://spotify.com", "Backend;Music;Sweden", "High", "2024-01-29",
            ),
            (
                "Klarna", "Data Scientist", "Stockholm, Sweden", "Full-time",
                "45,000 SEK/month", "Pending", "2024-01-20", "", "", "", "",
                "Waiting for response", "Credit risk modelling", "SQL;Python",
                "Marcus Andersson", "careers@klarna.com", "",
                "https://klarna.com/careers", "https://klarna.com/careers/456",
                "https://klarna.com", "Data Science;Fintech;Sweden", "Medium", "",
            ),
        ),
    ),
    Template(
        id="minimal",
        name="Minimal Template",
        description="Simple template with only essential fields",
        source=TemplateSource.CUSTOM,
        field_mappings=_mappings(
            ("Company", "company", True),
            ("Position", "position", True),
            ("Status", "status", False),
            ("Applied Date", "appliedDate", False),
        ),
        sample_rows=(
            ("Google", "Software Engineer", "Applied", "2024-01-15"),
            ("Microsoft", "Product Manager", "Interviewing", "2024-01-20"),
            ("Apple", "iOS Developer", "Pending", "2024-01-25"),
        ),
    ),
    Template(
        id="european",
        name="European Format",
        description="Template optimized for European job markets",
        source=TemplateSource.CUSTOM,
        field_mappings=_mappings(
            ("Company", "company", True),
            ("Position", "position", True),
            ("Location", "location", False),
            ("Salary (Annual)", "salary", False),
            ("Contract Type", "type", False),
            ("Application Status", "status", False),
            ("Application Date", "appliedDate", False),
            ("Notes", "notes", False),
        ),
        sample_rows=(
            ("Spotify", "Backend Developer", "Stockholm, Sweden", "550,000 SEK", "Permanent", "Applied", "2024-01-15", "Applied via company website"),
            ("SAP", "Software Engineer", "Berlin, Germany", "€75,000", "Permanent", "Interviewing", "2024-01-20", "Technical interview scheduled"),
            ("ASML", "Hardware Engineer", "Eindhoven, Netherlands", "€68,000", "Permanent", "Pending", "2024-01-25", "Waiting for response"),
        ),
    ),
    Template(
        id="erasmus_turkish",
        name="Erasmus Staj Takip (Türkçe)",
        description="Türkçe Erasmus staj başvuru takip listesi formatı",
        source=TemplateSource.CUSTOM,
        field_mappings=_mappings(
            ("Şirket Adı", "company", True),
            ("Ülke", "location", False),
            ("Sektör", "tags", False),
            ("E-posta Tarihi", "appliedDate", False),
            ("Cevap Tarihi", "responseDate", False),
            ("Durum", "status", False),
            ("İletişim Bilgisi", "contactEmail", False),
            ("Notlar", "notes", False),
            ("Pozisyon", "position", False),
        ),
        sample_rows=(
            ("Spotify", "İsveç", "Technology/Music", "2024-01-15", "", "Başvuru Planlanıyor", "careers@spotify.com", "Müzik teknolojisi alanında staj", "Stajyer"),
            ("Klarna", "İsveç", "Fintech", "2024-01-20", "2024-01-25", "Cevap Bekleniyor", "internships@klarna.com", "Fintech sektöründe deneyim", "Yazılım Geliştirici Stajyeri"),
            ("Ericsson", "İsveç", "Telecommunications", "2024-01-18", "", "Başvuru Yapıldı", "career@ericsson.com", "Telekomünikasyon mühendisliği", "Mühendislik Stajyeri"),
        ),
    ),
)


# ===================
# CATALOG
# ===================

class TemplateCatalog:
    """
    Ordered, append-only registry of templates.

    Declaration order matters: detection breaks final ties by it.
    """

    def __init__(self, templates: Iterable[Template] = BUILTIN_TEMPLATES):
        self._templates: dict[str, Template] = {}
        for template in templates:
            self._add(template)
        logger.debug("template_catalog_built", template_count=len(self._templates))

    def _add(self, template: Template) -> None:
        if template.id in self._templates:
            raise InvalidTemplateError(
                [f"Template id already registered: {template.id}"],
                template_id=template.id,
            )
        self._templates[template.id] = template

    # ===================
    # READ OPERATIONS
    # ===================

    def __iter__(self) -> Iterator[Template]:
        return iter(list(self._templates.values()))

    def __len__(self) -> int:
        return len(self._templates)

    def __contains__(self, template_id: object) -> bool:
        return template_id in self._templates

    @property
    def templates(self) -> MappingProxyType:
        """Read-only id -> Template view."""
        return MappingProxyType(self._templates)

    def all(self) -> list[Template]:
        return list(self._templates.values())

    def get(self, template_id: str) -> Optional[Template]:
        return self._templates.get(template_id)

    def require(self, template_id: str) -> Template:
        """
        Get a template or fail.

        Raises:
            TemplateNotFoundError: If the id is not registered
        """
        template = self._templates.get(template_id)
        if template is None:
            logger.warning("template_not_found", template_id=template_id)
            raise TemplateNotFoundError(template_id)
        return template

    def by_source(self, source: TemplateSource) -> list[Template]:
        return [t for t in self._templates.values() if t.source == source]

    # ===================
    # CUSTOM TEMPLATES
    # ===================

    def register(self, template: Template) -> Template:
        """
        Add a template under a new id.

        Raises:
            InvalidTemplateError: If the id is already taken
        """
        self._add(template)
        logger.info(
            "template_registered",
            template_id=template.id,
            field_count=len(template.field_mappings),
        )
        return template

    def create_custom_template(
        self,
        name: str,
        description: str,
        mapping: dict[str, str],
        sample_rows: Optional[list[list[str]]] = None,
    ) -> Template:
        """
        Build and register a template from a canonical field -> column mapping.

        Company and position are required when present. Without sample rows
        three placeholder rows are generated.

        Raises:
            InvalidTemplateError: If the mapping breaks a template invariant
        """
        mappings = [
            {
                "csv_column": column,
                "canonical_field": field,
                "confidence": 1.0,
                "required": field in ("company", "position"),
            }
            for field, column in mapping.items()
        ]
        if sample_rows is None:
            sample_rows = [["Sample Data"] * len(mappings) for _ in range(3)]

        data = {
            "id": f"custom-{uuid4().hex[:12]}",
            "name": name,
            "description": description,
            "source": TemplateSource.CUSTOM,
            "field_mappings": mappings,
            "sample_rows": sample_rows,
        }
        errors = validate_template(data)
        if errors:
            logger.warning("custom_template_invalid", name=name, errors=errors)
            raise InvalidTemplateError(errors)

        return self.register(Template.model_validate(data))


def validate_template(data: dict) -> list[str]:
    """
    Check a raw template definition.

    Returns:
        List of error messages, empty when the definition is valid
    """
    try:
        Template.model_validate(data)
    except PydanticValidationError as e:
        errors = []
        for error in e.errors():
            location = ".".join(str(part) for part in error["loc"])
            message = error["msg"].removeprefix("Value error, ")
            errors.append(f"{location}: {message}" if location else message)
        return errors
    return []


_template_catalog: Optional[TemplateCatalog] = None


def get_template_catalog() -> TemplateCatalog:
    """Get or create the process-wide TemplateCatalog."""
    global _template_catalog
    if _template_catalog is None:
        _template_catalog = TemplateCatalog()
    return _template_catalog
