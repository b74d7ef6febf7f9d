"""
Template detection service.

Scores every catalog template against an uploaded header row and picks the
provider layout that explains it best.
"""

from typing import Optional

import structlog

from config.settings import settings
from models.template import Template, TemplateDetection
from services.template_catalog import TemplateCatalog, get_template_catalog
from utils.text_utils import normalize_header

logger = structlog.get_logger(__name__)

REQUIRED_WEIGHT = 2
OPTIONAL_WEIGHT = 1


class TemplateDetector:
    """
    Detects which provider produced a header row.

    A template column counts as matched when it equals an uploaded header
    after normalization (case, whitespace, accents, mis-decoded UTF-8).
    Required columns weigh twice as much as optional ones.
    """

    def __init__(
        self,
        catalog: Optional[TemplateCatalog] = None,
        min_confidence: Optional[float] = None,
    ):
        self.catalog = catalog or get_template_catalog()
        self.min_confidence = (
            settings.detection_min_confidence if min_confidence is None else min_confidence
        )

    def score_template(
        self, template: Template, normalized_headers: set[str]
    ) -> tuple[float, int, int]:
        """
        Score one template.

        Returns:
            (confidence, required fields matched, fields matched)
        """
        total_weight = 0
        matched_weight = 0
        required_matched = 0
        matched = 0

        for mapping in template.field_mappings:
            weight = REQUIRED_WEIGHT if mapping.required else OPTIONAL_WEIGHT
            total_weight += weight
            if normalize_header(mapping.csv_column) in normalized_headers:
                matched_weight += weight
                matched += 1
                if mapping.required:
                    required_matched += 1

        confidence = matched_weight / total_weight if total_weight else 0.0
        return confidence, required_matched, matched

    def detect_template(self, headers: list[str]) -> TemplateDetection:
        """
        Pick the best-scoring template for a header row.

        Ties go to the template matching more required fields, then more
        fields overall, then the one declared first. A best score under the
        confidence floor yields template=None with the score still reported.
        Never raises, including for an empty header list.
        """
        normalized = {normalize_header(h) for h in headers or []}
        normalized.discard("")

        best: Optional[Template] = None
        best_key: tuple[float, int, int] = (0.0, 0, 0)

        for template in self.catalog:
            key = self.score_template(template, normalized)
            # Strict comparison keeps the earlier template on a full tie
            if best is None or key > best_key:
                best = template
                best_key = key

        confidence, _, matched = best_key

        if best is None or confidence < self.min_confidence:
            logger.info(
                "template_not_detected",
                header_count=len(headers or []),
                best_confidence=round(confidence, 3),
            )
            return TemplateDetection(template=None, confidence=confidence, matched_fields=matched)

        logger.info(
            "template_detected",
            template_id=best.id,
            confidence=round(confidence, 3),
            matched_fields=matched,
        )
        return TemplateDetection(template=best, confidence=confidence, matched_fields=matched)

    def suggestions(self, detection: TemplateDetection, headers: list[str]) -> list[str]:
        """Human-readable hints shown next to a detection result."""
        hints: list[str] = []
        if detection.template is None:
            hints.append("No template matched confidently. Map the columns manually or create a custom template.")
            return hints

        if detection.confidence < 1.0:
            normalized = {normalize_header(h) for h in headers}
            missing = [
                m.csv_column for m in detection.template.field_mappings
                if normalize_header(m.csv_column) not in normalized
            ]
            if missing:
                hints.append(f"Columns not found in the upload: {', '.join(missing)}")

        if detection.confidence < 0.7:
            hints.append(
                f"Low confidence match with {detection.template.name}. Review the column mapping before importing."
            )
        return hints
