"""
Field mapping service.

Aligns uploaded headers with a template's canonical fields: exact matches
first, then a fuzzy pass over column names and known field variations.
Also converts raw rows to ParsedRecords and records to canonical dicts.
"""

from typing import Callable, Optional

import structlog

from config.settings import settings
from models.duplicate import ParsedRecord
from models.template import FieldMappingResult
from services.template_catalog import TemplateCatalog, get_template_catalog
from utils.text_utils import normalize_header, similarity as default_similarity

logger = structlog.get_logger(__name__)

# Other names providers and users give the same field
FIELD_VARIATIONS: dict[str, tuple[str, ...]] = {
    "company": ("employer", "organization", "firm", "business", "company name"),
    "position": ("job title", "role", "title", "position title"),
    "location": ("city", "place", "address", "office"),
    "type": ("job type", "employment type", "contract type", "work type"),
    "salary": ("pay", "wage", "compensation", "remuneration", "salary estimate"),
    "status": ("state", "stage", "progress", "application status"),
    "appliedDate": ("date applied", "application date", "apply date", "submitted"),
    "responseDate": ("reply date", "date of response", "heard back"),
    "interviewDate": ("interview", "meeting date", "call date"),
    "notes": ("comments", "remarks", "memo"),
    "contactPerson": ("contact", "recruiter", "hiring manager"),
    "contactEmail": ("email", "recruiter email", "e-mail"),
    "website": ("url", "link", "site"),
    "tags": ("keywords", "categories", "labels"),
}

EXACT_CONFIDENCE = 1.0
FUZZY_BASE = 0.5
FUZZY_SPAN = 0.45


class FieldMapper:
    """Maps uploaded headers onto a template's canonical fields."""

    def __init__(
        self,
        catalog: Optional[TemplateCatalog] = None,
        similarity: Callable[[str, str], float] = default_similarity,
        fuzzy_floor: Optional[float] = None,
    ):
        self.catalog = catalog or get_template_catalog()
        self.similarity = similarity
        self.fuzzy_floor = settings.fuzzy_match_floor if fuzzy_floor is None else fuzzy_floor

    def generate_mapping_from_template(
        self, template_id: str, headers: list[str]
    ) -> FieldMappingResult:
        """
        Map headers to the canonical fields of a template.

        Each header feeds at most one field. Exact matches score 1.0;
        fuzzy matches score 0.5 + 0.45 * similarity, so they always rank
        below exact ones.

        Raises:
            TemplateNotFoundError: If template_id is not in the catalog
        """
        template = self.catalog.require(template_id)
        headers = list(headers or [])
        normalized = [normalize_header(h) for h in headers]
        consumed: set[int] = set()

        mapping: dict[str, str] = {}
        confidence: dict[str, float] = {}

        # Exact pass
        for field_mapping in template.field_mappings:
            target = normalize_header(field_mapping.csv_column)
            for position, header in enumerate(normalized):
                if position in consumed or not header:
                    continue
                if header == target:
                    consumed.add(position)
                    mapping[field_mapping.canonical_field] = headers[position]
                    confidence[field_mapping.canonical_field] = EXACT_CONFIDENCE
                    break

        # Fuzzy pass
        for field_mapping in template.field_mappings:
            field = field_mapping.canonical_field
            if field in mapping:
                continue

            candidates = (field_mapping.csv_column, *FIELD_VARIATIONS.get(field, ()))
            best_position: Optional[int] = None
            best_score = 0.0
            for position, header in enumerate(headers):
                if position in consumed or not normalized[position]:
                    continue
                score = max(self.similarity(header, candidate) for candidate in candidates)
                if score > best_score:
                    best_position = position
                    best_score = score

            if best_position is not None and best_score >= self.fuzzy_floor:
                consumed.add(best_position)
                mapping[field] = headers[best_position]
                confidence[field] = FUZZY_BASE + FUZZY_SPAN * best_score

        unmapped = [h for position, h in enumerate(headers) if position not in consumed]
        missing = [
            m.canonical_field for m in template.field_mappings
            if m.required and m.canonical_field not in mapping
        ]

        # Report fields in template declaration order
        ordered_mapping = {
            m.canonical_field: mapping[m.canonical_field]
            for m in template.field_mappings
            if m.canonical_field in mapping
        }
        ordered_confidence = {field: confidence[field] for field in ordered_mapping}

        logger.info(
            "field_mapping_generated",
            template_id=template_id,
            mapped=len(ordered_mapping),
            unmapped=len(unmapped),
            missing=missing,
        )

        return FieldMappingResult(
            template_id=template_id,
            mapping=ordered_mapping,
            confidence=ordered_confidence,
            unmapped_headers=unmapped,
            missing_fields=missing,
        )

    def suggestions(self, result: FieldMappingResult) -> list[str]:
        """Hints shown next to a mapping result."""
        hints: list[str] = []
        if result.missing_fields:
            hints.append(f"Missing required fields: {', '.join(result.missing_fields)}")
        if result.unmapped_headers:
            hints.append(f"Columns that will be ignored: {', '.join(result.unmapped_headers)}")
        low = [f for f, c in result.confidence.items() if c < 0.8]
        if low:
            hints.append(f"Check these approximate matches: {', '.join(low)}")
        return hints

    # ===================
    # RECORD CONVERSION
    # ===================

    @staticmethod
    def map_rows(
        headers: list[str],
        rows: list[list[str]],
        start_index: int = 0,
    ) -> list[ParsedRecord]:
        """
        Turn raw rows into ParsedRecords keyed by header.

        Short rows are padded with "" and long rows truncated. Rows whose
        cells are all blank are skipped without consuming an index.
        """
        records: list[ParsedRecord] = []
        width = len(headers)
        for row in rows:
            cells = [("" if cell is None else str(cell)) for cell in row[:width]]
            cells.extend([""] * (width - len(cells)))
            if not any(cell.strip() for cell in cells):
                continue
            records.append(ParsedRecord(
                index=start_index + len(records),
                values=dict(zip(headers, cells)),
            ))
        return records

    @staticmethod
    def to_canonical(record: ParsedRecord, mapping: dict[str, str]) -> dict[str, str]:
        """Canonical field -> value for one record, trimmed."""
        return {field: record.get(header).strip() for field, header in mapping.items()}

    @staticmethod
    def record_from_canonical(
        data: dict[str, Optional[str]],
        mapping: dict[str, str],
        index: int,
        source_id: Optional[str] = None,
    ) -> ParsedRecord:
        """Build a header-keyed record from a canonical dict (e.g. a stored row)."""
        values = {
            header: "" if data.get(field) is None else str(data.get(field))
            for field, header in mapping.items()
        }
        return ParsedRecord(
            index=index,
            values=values,
            is_existing=source_id is not None,
            source_id=source_id,
        )
