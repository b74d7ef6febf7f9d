"""
Duplicate detection service.

Compares every pair of records (incoming batch plus the stored snapshot) on
company, position, location and applied date, links pairs whose weighted
confidence clears the threshold, and groups linked records transitively.
"""

from dataclasses import dataclass, field
from typing import Callable, Optional

import structlog

from config.settings import settings
from models.duplicate import DuplicateGroup, DuplicateSummary, ParsedRecord, ResolutionAction
from utils.disjoint_set import DisjointSet
from utils.text_utils import (
    normalize_company,
    normalize_text,
    parse_date,
    similarity as default_similarity,
)

logger = structlog.get_logger(__name__)

# Integer weights so three exact fields out of four land exactly on 0.9
FIELD_WEIGHTS = {
    "company": 40,
    "position": 30,
    "appliedDate": 20,
    "location": 10,
}

# Fuzzy scores below these floors contribute nothing
COMPANY_SIMILARITY_FLOOR = 0.85
POSITION_SIMILARITY_FLOOR = 0.80
LOCATION_SIMILARITY_FLOOR = 0.85


@dataclass
class PairScore:
    """Weighted comparison of two records."""
    confidence: float
    reasons: list[str] = field(default_factory=list)


class DuplicateDetector:
    """Finds groups of records that describe the same application."""

    def __init__(
        self,
        similarity: Callable[[str, str], float] = default_similarity,
        threshold: Optional[float] = None,
        date_window_days: Optional[int] = None,
        merge_threshold: Optional[float] = None,
    ):
        self.similarity = similarity
        self.threshold = settings.duplicate_threshold if threshold is None else threshold
        self.date_window_days = (
            settings.date_proximity_days if date_window_days is None else date_window_days
        )
        self.merge_threshold = (
            settings.merge_recommendation_threshold if merge_threshold is None else merge_threshold
        )

    # ===================
    # FIELD SIGNALS
    # ===================

    def _text_signal(
        self,
        left: str,
        right: str,
        floor: float,
        normalize: Callable[[str], str] = normalize_text,
    ) -> tuple[float, bool]:
        """(signal, exact) for a text field."""
        a, b = normalize(left), normalize(right)
        if not a or not b:
            return 0.0, False
        if a == b:
            return 1.0, True
        score = self.similarity(a, b)
        return (score, False) if score >= floor else (0.0, False)

    def _date_signal(self, days: int) -> float:
        if days == 0:
            return 1.0
        if days <= self.date_window_days:
            return 1.0 - days / (self.date_window_days + 1)
        return 0.0

    def compare(
        self, left: ParsedRecord, right: ParsedRecord, mapping: dict[str, str]
    ) -> PairScore:
        """
        Score one pair of records.

        Company and position always count toward the total weight. Location
        and applied date count only when both records carry a value.
        """
        total = 0
        earned = 0.0
        reasons: list[str] = []

        company, company_exact = self._text_signal(
            left.get(mapping.get("company")),
            right.get(mapping.get("company")),
            COMPANY_SIMILARITY_FLOOR,
            normalize_company,
        )
        position, position_exact = self._text_signal(
            left.get(mapping.get("position")),
            right.get(mapping.get("position")),
            POSITION_SIMILARITY_FLOOR,
        )
        total += FIELD_WEIGHTS["company"] + FIELD_WEIGHTS["position"]
        earned += FIELD_WEIGHTS["company"] * company + FIELD_WEIGHTS["position"] * position

        if company_exact and position_exact:
            reasons.append("same company and position")
        else:
            if company_exact:
                reasons.append("same company")
            elif company > 0:
                reasons.append("similar company names")
            if position_exact:
                reasons.append("same position")
            elif position > 0:
                reasons.append("similar position titles")

        left_location = left.get(mapping.get("location"))
        right_location = right.get(mapping.get("location"))
        if normalize_text(left_location) and normalize_text(right_location):
            location, location_exact = self._text_signal(
                left_location, right_location, LOCATION_SIMILARITY_FLOOR
            )
            total += FIELD_WEIGHTS["location"]
            earned += FIELD_WEIGHTS["location"] * location
            if location_exact:
                reasons.append("same location")
            elif location > 0:
                reasons.append("similar locations")

        left_date = parse_date(left.get(mapping.get("appliedDate")))
        right_date = parse_date(right.get(mapping.get("appliedDate")))
        if left_date is not None and right_date is not None:
            days = abs((left_date - right_date).days)
            signal = self._date_signal(days)
            total += FIELD_WEIGHTS["appliedDate"]
            earned += FIELD_WEIGHTS["appliedDate"] * signal
            if days == 0:
                reasons.append("applied on the same date")
            elif signal > 0:
                reasons.append(f"applied within {days} day{'s' if days != 1 else ''}")

        confidence = earned / total if total else 0.0
        return PairScore(confidence=min(max(confidence, 0.0), 1.0), reasons=reasons)

    # ===================
    # GROUPING
    # ===================

    def recommendation(self, confidence: float) -> Optional[ResolutionAction]:
        """merge at or above the merge threshold, skip above the link threshold."""
        if confidence >= self.merge_threshold:
            return ResolutionAction.MERGE
        if confidence >= self.threshold:
            return ResolutionAction.SKIP
        return None

    def detect_duplicates(
        self,
        batch: list[ParsedRecord],
        existing: list[ParsedRecord],
        mapping: dict[str, str],
    ) -> list[DuplicateGroup]:
        """
        Group records that describe the same application.

        Batch records are expected at indices 0..n-1 and existing records at
        n..n+m-1. Linkage is transitive: A~B and B~C put A, B and C in one
        group even when A~C alone is below the threshold. Group confidence
        is the strongest linked pair's confidence.
        """
        records = sorted([*batch, *existing], key=lambda r: r.index)
        if len(records) < 2:
            return []

        links = DisjointSet(len(records))
        strongest: dict[int, tuple[float, list[str]]] = {}
        pair_scores: list[tuple[int, int, PairScore]] = []

        for i in range(len(records)):
            for j in range(i + 1, len(records)):
                score = self.compare(records[i], records[j], mapping)
                if score.confidence >= self.threshold:
                    links.union(i, j)
                    pair_scores.append((i, j, score))

        # Strongest pair per component, first in (i, j) order on ties
        for i, _, score in pair_scores:
            root = links.find(i)
            current = strongest.get(root)
            if current is None or score.confidence > current[0]:
                strongest[root] = (score.confidence, score.reasons)

        groups: list[DuplicateGroup] = []
        for component in links.groups():
            if len(component) < 2:
                continue
            members = [records[p] for p in component]
            existing_members = [m for m in members if m.is_existing]
            primary = existing_members[0] if existing_members else members[0]
            ordered = [primary] + [m for m in members if m.index != primary.index]
            confidence, reasons = strongest[links.find(component[0])]

            groups.append(DuplicateGroup(
                id=f"group-{primary.index}",
                confidence=confidence,
                match_reasons=list(reasons),
                members=ordered,
                recommendation=self.recommendation(confidence),
            ))

        logger.info(
            "duplicate_groups_detected",
            record_count=len(records),
            batch_count=len(batch),
            existing_count=len(existing),
            linked_pairs=len(pair_scores),
            group_count=len(groups),
        )
        return groups

    def generate_summary(self, groups: list[DuplicateGroup]) -> DuplicateSummary:
        """Tiered counts of the detected groups with guidance sentences."""
        high = sum(1 for g in groups if g.confidence >= self.merge_threshold)
        medium = sum(1 for g in groups if self.threshold <= g.confidence < self.merge_threshold)
        low = len(groups) - high - medium

        actions: list[str] = []
        if high:
            actions.append(f"{high} high-confidence duplicate group(s) can likely be merged")
        if medium:
            actions.append(f"{medium} possible duplicate group(s) need review")
        if low:
            actions.append(f"{low} low-confidence group(s) can probably be kept as separate records")
        if not groups:
            actions.append("No duplicates found. All records can be imported.")

        return DuplicateSummary(
            total_duplicates=sum(len(g.members) - 1 for g in groups),
            high_confidence_groups=high,
            medium_confidence_groups=medium,
            low_confidence_groups=low,
            recommended_actions=actions,
        )
