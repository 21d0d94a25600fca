"""Unit tests for lead priority scoring.

Tests cover:
- Band boundaries for rating, review count and category
- No-website and valid-phone bonuses
- The score range and monotonicity in rating and reviews
"""

import pytest

from leadsweep.integrations.base import RawRecord
from leadsweep.utils.lead_scoring import (
    DEFAULT_CATEGORY_POINTS,
    MAX_PRIORITY_SCORE,
    NO_WEBSITE_BONUS,
    VALID_PHONE_BONUS,
    calculate_priority_score,
    get_category_points,
    get_rating_points,
    get_review_points,
    score_breakdown,
)


def record(**overrides):
    values = {
        "name": "Blue Door Cafe",
        "address": "1200 E 6th St, Austin, TX",
        "category": "cafe",
        "phone": "(512) 555-0100",
        "has_website": False,
        "rating": 4.6,
        "review_count": 120,
    }
    values.update(overrides)
    return RawRecord(**values)


class TestScoreBands:
    """Tests for the individual score bands."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "rating,points",
        [(5.0, 20), (4.5, 20), (4.49, 15), (4.0, 15), (3.5, 10), (3.0, 5), (2.9, 0), (None, 0)],
    )
    def test_rating_points(self, rating, points):
        assert get_rating_points(rating) == points

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "reviews,points",
        [(500, 15), (101, 15), (100, 12), (51, 12), (21, 10), (11, 7), (10, 5), (1, 5), (0, 0), (None, 0)],
    )
    def test_review_points(self, reviews, points):
        assert get_review_points(reviews) == points

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "category,points",
        [
            ("Restaurant", 15),
            ("cafe", 15),
            ("fast food", 15),
            ("retail", 13),
            ("Shoe Store", 13),
            ("car repair", 12),
            ("cleaning service", 12),
            ("dentist", DEFAULT_CATEGORY_POINTS),
            (None, DEFAULT_CATEGORY_POINTS),
        ],
    )
    def test_category_points(self, category, points):
        assert get_category_points(category) == points


class TestPriorityScore:
    """Tests for calculate_priority_score."""

    @pytest.mark.unit
    def test_best_case_scores_100(self):
        """Test a well-rated, busy cafe without a website but with a phone."""
        assert calculate_priority_score(record()) == MAX_PRIORITY_SCORE

    @pytest.mark.unit
    def test_breakdown_components(self):
        breakdown = score_breakdown(4.6, 120, "cafe", False, "(512) 555-0100")
        assert breakdown.to_dict() == {
            "rating_points": 20,
            "review_points": 15,
            "category_points": 15,
            "website_points": NO_WEBSITE_BONUS,
            "phone_points": VALID_PHONE_BONUS,
            "total": 100,
        }

    @pytest.mark.unit
    def test_missing_website_adds_bonus(self):
        without = calculate_priority_score(record(has_website=False))
        with_site = calculate_priority_score(record(has_website=True))
        assert without - with_site == NO_WEBSITE_BONUS

    @pytest.mark.unit
    def test_invalid_phone_gets_no_bonus(self):
        assert calculate_priority_score(record(phone="555")) == 100 - VALID_PHONE_BONUS
        assert calculate_priority_score(record(phone=None)) == 100 - VALID_PHONE_BONUS

    @pytest.mark.unit
    def test_minimal_record(self):
        """Test a record with no rating, reviews, category or phone."""
        minimal = record(rating=None, review_count=None, category=None, phone=None)
        assert calculate_priority_score(minimal) == DEFAULT_CATEGORY_POINTS + NO_WEBSITE_BONUS

    @pytest.mark.unit
    def test_score_stays_in_range(self):
        for rating in (None, 1.0, 3.2, 4.1, 5.0):
            for reviews in (None, 0, 15, 75, 1000):
                for has_website in (True, False):
                    score = calculate_priority_score(
                        record(rating=rating, review_count=reviews, has_website=has_website)
                    )
                    assert 0 <= score <= MAX_PRIORITY_SCORE

    @pytest.mark.unit
    def test_monotonic_in_rating(self):
        ratings = [None, 2.0, 3.0, 3.5, 4.0, 4.5, 5.0]
        scores = [calculate_priority_score(record(rating=rating)) for rating in ratings]
        assert scores == sorted(scores)

    @pytest.mark.unit
    def test_monotonic_in_reviews(self):
        counts = [0, 1, 11, 21, 51, 101, 1000]
        scores = [calculate_priority_score(record(review_count=count)) for count in counts]
        assert scores == sorted(scores)
