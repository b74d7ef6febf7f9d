"""
Unit tests for DuplicateDetector.

Run: pytest tests/unit/test_duplicate_detector.py -v
"""

import pytest

from models.duplicate import ResolutionAction
from services.duplicate_detector import DuplicateDetector
from tests.factories import LINKEDIN_MAPPING, RecordFactory


@pytest.fixture
def detector() -> DuplicateDetector:
    return DuplicateDetector(threshold=0.7, date_window_days=7, merge_threshold=0.9)


class TestCompare:
    """Tests for DuplicateDetector.compare()"""

    def test_one_day_apart(self, detector):
        a = RecordFactory.create(0, company="Acme", position="Engineer", applied_date="2024-01-01")
        b = RecordFactory.create(1, company="Acme", position="Engineer", applied_date="2024-01-02")

        score = detector.compare(a, b, LINKEDIN_MAPPING)

        assert score.confidence == pytest.approx((40 + 30 + 20 * (1 - 1 / 8)) / 90)
        assert score.reasons == ["same company and position", "applied within 1 day"]

    def test_three_fields_exact_with_different_location_reaches_merge_tier(self, detector):
        a = RecordFactory.create(0, company="Acme", position="Engineer",
                                 location="Berlin", applied_date="2024-01-01")
        b = RecordFactory.create(1, company="Acme", position="Engineer",
                                 location="Paris", applied_date="2024-01-01")

        score = detector.compare(a, b, LINKEDIN_MAPPING)

        assert score.confidence >= 0.9
        assert "applied on the same date" in score.reasons
        assert "same location" not in score.reasons

    def test_legal_suffix_ignored(self, detector):
        a = RecordFactory.create(0, company="Acme Inc.", position="Engineer")
        b = RecordFactory.create(1, company="ACME", position="Engineer")

        score = detector.compare(a, b, LINKEDIN_MAPPING)

        assert score.confidence == 1.0
        assert score.reasons == ["same company and position"]

    def test_unparseable_date_drops_date_signal(self, detector):
        a = RecordFactory.create(0, company="Acme", position="Engineer", applied_date="soon")
        b = RecordFactory.create(1, company="Acme", position="Engineer", applied_date="2024-01-01")

        score = detector.compare(a, b, LINKEDIN_MAPPING)

        assert score.confidence == 1.0

    def test_dates_outside_window_count_as_zero(self, detector):
        a = RecordFactory.create(0, company="Acme", position="Engineer", applied_date="2024-01-01")
        b = RecordFactory.create(1, company="Acme", position="Engineer", applied_date="2024-03-01")

        score = detector.compare(a, b, LINKEDIN_MAPPING)

        assert score.confidence == pytest.approx(70 / 90)
        assert score.reasons == ["same company and position"]

    def test_different_companies(self, detector):
        a = RecordFactory.create(0, company="Google", position="Engineer")
        b = RecordFactory.create(1, company="Netflix", position="Engineer")

        score = detector.compare(a, b, LINKEDIN_MAPPING)

        assert score.confidence == pytest.approx(30 / 70)

    def test_symmetric(self, detector):
        a = RecordFactory.create(0, company="Acme", position="Data Engineer",
                                 location="Berlin", applied_date="2024-01-01")
        b = RecordFactory.create(1, company="Acme GmbH", position="Data Engineer II",
                                 location="Berlin, Germany", applied_date="2024-01-04")

        assert detector.compare(a, b, LINKEDIN_MAPPING).confidence == pytest.approx(
            detector.compare(b, a, LINKEDIN_MAPPING).confidence
        )

    def test_confidence_bounded(self, detector):
        a = RecordFactory.create(0)
        b = RecordFactory.create(1)

        score = detector.compare(a, b, LINKEDIN_MAPPING)

        assert 0.0 <= score.confidence <= 1.0


class TestDetectDuplicates:
    """Tests for DuplicateDetector.detect_duplicates()"""

    def test_empty_input(self, detector):
        assert detector.detect_duplicates([], [], LINKEDIN_MAPPING) == []

    def test_single_record(self, detector):
        batch = [RecordFactory.create(0, company="Acme", position="Engineer")]

        assert detector.detect_duplicates(batch, [], LINKEDIN_MAPPING) == []

    def test_date_proximity_groups(self, detector):
        batch = [
            RecordFactory.create(0, company="Acme", position="Engineer", applied_date="2024-01-01"),
            RecordFactory.create(1, company="Acme", position="Engineer", applied_date="2024-01-02"),
        ]

        groups = detector.detect_duplicates(batch, [], LINKEDIN_MAPPING)

        assert len(groups) == 1
        assert groups[0].member_indices == [0, 1]
        assert any("within 1 day" in r for r in groups[0].match_reasons)
        assert groups[0].recommendation == ResolutionAction.MERGE

    def test_existing_record_is_primary(self, detector):
        batch = [RecordFactory.create(0, company="Acme", position="Engineer")]
        existing = [RecordFactory.create(1, company="Acme", position="Engineer", source_id="app-1")]

        groups = detector.detect_duplicates(batch, existing, LINKEDIN_MAPPING)

        assert groups[0].id == "group-1"
        assert groups[0].primary.source_id == "app-1"
        assert groups[0].member_indices == [1, 0]

    def test_first_existing_member_is_primary(self, detector):
        batch = [RecordFactory.create(0, company="Acme", position="Engineer")]
        existing = [
            RecordFactory.create(1, company="Acme", position="Engineer", source_id="app-1"),
            RecordFactory.create(2, company="Acme", position="Engineer", source_id="app-2"),
        ]

        groups = detector.detect_duplicates(batch, existing, LINKEDIN_MAPPING)

        assert groups[0].member_indices == [1, 0, 2]

    def test_existing_records_compared_with_each_other(self, detector):
        existing = [
            RecordFactory.create(0, company="Acme", position="Engineer", source_id="app-1"),
            RecordFactory.create(1, company="Acme", position="Engineer", source_id="app-2"),
        ]

        groups = detector.detect_duplicates([], existing, LINKEDIN_MAPPING)

        assert len(groups) == 1
        assert all(m.is_existing for m in groups[0].members)

    def test_below_threshold_not_grouped(self, detector):
        batch = [
            RecordFactory.create(0, company="Google", position="Engineer"),
            RecordFactory.create(1, company="Netflix", position="Engineer"),
        ]

        assert detector.detect_duplicates(batch, [], LINKEDIN_MAPPING) == []

    def test_transitive_grouping(self):
        """A~B and B~C put A, B, C together even though A~C is weak."""
        scores = {
            frozenset({"alpha", "beta"}): 0.9,
            frozenset({"beta", "gamma"}): 0.9,
        }

        def stub_similarity(a: str, b: str) -> float:
            return scores.get(frozenset({a, b}), 0.0)

        detector = DuplicateDetector(similarity=stub_similarity, threshold=0.7, merge_threshold=0.9)
        batch = [
            RecordFactory.create(0, company="Alpha", position="Engineer"),
            RecordFactory.create(1, company="Beta", position="Engineer"),
            RecordFactory.create(2, company="Gamma", position="Engineer"),
        ]

        assert detector.compare(batch[0], batch[2], LINKEDIN_MAPPING).confidence < 0.7

        groups = detector.detect_duplicates(batch, [], LINKEDIN_MAPPING)

        assert len(groups) == 1
        assert groups[0].member_indices == [0, 1, 2]
        assert groups[0].confidence == pytest.approx((40 * 0.9 + 30) / 70)
        assert groups[0].match_reasons == ["similar company names", "same position"]

    def test_group_confidence_is_strongest_pair(self, detector):
        batch = [
            RecordFactory.create(0, company="Acme", position="Engineer", applied_date="2024-01-01"),
            RecordFactory.create(1, company="Acme", position="Engineer", applied_date="2024-01-06"),
            RecordFactory.create(2, company="Acme", position="Engineer", applied_date="2024-01-06"),
        ]

        groups = detector.detect_duplicates(batch, [], LINKEDIN_MAPPING)

        assert len(groups) == 1
        assert groups[0].confidence == 1.0
        assert "applied on the same date" in groups[0].match_reasons

    def test_groups_ordered_by_smallest_member(self, detector):
        batch = [
            RecordFactory.create(0, company="Google", position="Engineer"),
            RecordFactory.create(1, company="Netflix", position="Designer"),
            RecordFactory.create(2, company="Netflix", position="Designer"),
            RecordFactory.create(3, company="Google", position="Engineer"),
        ]

        groups = detector.detect_duplicates(batch, [], LINKEDIN_MAPPING)

        assert [g.id for g in groups] == ["group-0", "group-1"]
        assert groups[0].member_indices == [0, 3]
        assert groups[1].member_indices == [1, 2]

    def test_skip_recommendation_for_medium_confidence(self, detector):
        batch = [
            RecordFactory.create(0, company="Acme", position="Engineer", applied_date="2024-01-01"),
            RecordFactory.create(1, company="Acme", position="Engineer", applied_date="2024-03-01"),
        ]

        groups = detector.detect_duplicates(batch, [], LINKEDIN_MAPPING)

        assert groups[0].recommendation == ResolutionAction.SKIP

    def test_recommendation_follows_configured_thresholds(self):
        detector = DuplicateDetector(threshold=0.7, date_window_days=7, merge_threshold=0.75)
        batch = [
            RecordFactory.create(0, company="Acme", position="Engineer", applied_date="2024-01-01"),
            RecordFactory.create(1, company="Acme", position="Engineer", applied_date="2024-03-01"),
        ]

        groups = detector.detect_duplicates(batch, [], LINKEDIN_MAPPING)

        assert groups[0].recommendation == ResolutionAction.MERGE

    @pytest.mark.parametrize("confidence,expected", [
        (0.95, ResolutionAction.MERGE),
        (0.9, ResolutionAction.MERGE),
        (0.75, ResolutionAction.SKIP),
        (0.7, ResolutionAction.SKIP),
        (0.5, None),
    ])
    def test_recommendation_thresholds(self, detector, confidence, expected):
        assert detector.recommendation(confidence) == expected

    def test_deterministic(self, detector):
        batch = [
            RecordFactory.create(0, company="Acme", position="Engineer", applied_date="2024-01-01"),
            RecordFactory.create(1, company="Acme Inc", position="Engineer", applied_date="2024-01-03"),
        ]

        first = detector.detect_duplicates(batch, [], LINKEDIN_MAPPING)
        second = detector.detect_duplicates(batch, [], LINKEDIN_MAPPING)

        assert first == second


class TestGenerateSummary:

    def test_tiers(self, detector):
        batch = [
            RecordFactory.create(0, company="Acme", position="Engineer", applied_date="2024-01-01"),
            RecordFactory.create(1, company="Acme", position="Engineer", applied_date="2024-01-01"),
            RecordFactory.create(2, company="Globex", position="Designer", applied_date="2024-01-01"),
            RecordFactory.create(3, company="Globex", position="Designer", applied_date="2024-05-01"),
        ]
        groups = detector.detect_duplicates(batch, [], LINKEDIN_MAPPING)

        summary = detector.generate_summary(groups)

        assert summary.total_duplicates == 2
        assert summary.high_confidence_groups == 1
        assert summary.medium_confidence_groups == 1
        assert summary.low_confidence_groups == 0
        assert len(summary.recommended_actions) == 2

    def test_no_groups(self, detector):
        summary = detector.generate_summary([])

        assert summary.total_duplicates == 0
        assert summary.recommended_actions == ["No duplicates found. All records can be imported."]
