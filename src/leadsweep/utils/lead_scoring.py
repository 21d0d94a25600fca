"""Priority scoring for qualified leads.

This module turns the public signals of a local business (rating, review
volume, category, website presence and phone reachability) into an additive
integer priority score used to order outreach.

The scoring model is a sum of non-negative bands:
1. Rating band: stronger reputations are easier to sell to
2. Review-count band: more reviews correlate with more foot traffic
3. Category band: food and retail businesses benefit most from a website
4. No-website bonus: the core value proposition
5. Valid-phone bonus: reachable by a second channel

Score range: 0-100.
"""

from dataclasses import dataclass
from typing import Any, Optional

from .validators import is_valid_phone

# (minimum rating, points), checked top-down
RATING_BANDS: tuple[tuple[float, int], ...] = (
    (4.5, 20),
    (4.0, 15),
    (3.5, 10),
    (3.0, 5),
)

# (review count strictly greater than, points), checked top-down
REVIEW_BANDS: tuple[tuple[int, int], ...] = (
    (100, 15),
    (50, 12),
    (20, 10),
    (10, 7),
    (0, 5),
)

# (category keywords, points), first match wins
CATEGORY_BANDS: tuple[tuple[tuple[str, ...], int], ...] = (
    (("restaurant", "cafe", "food"), 15),
    (("retail", "shop", "store"), 13),
    (("service", "repair"), 12),
)
DEFAULT_CATEGORY_POINTS = 10

NO_WEBSITE_BONUS = 30
VALID_PHONE_BONUS = 20
MAX_PRIORITY_SCORE = 100


@dataclass
class ScoreBreakdown:
    """Per-component priority score.

    Attributes:
        rating_points: Points from the rating band.
        review_points: Points from the review-count band.
        category_points: Points from the category band.
        website_points: No-website bonus (0 or 30).
        phone_points: Valid-phone bonus (0 or 20).
    """
    rating_points: int = 0
    review_points: int = 0
    category_points: int = 0
    website_points: int = 0
    phone_points: int = 0

    @property
    def total(self) -> int:
        return (
            self.rating_points
            + self.review_points
            + self.category_points
            + self.website_points
            + self.phone_points
        )

    def to_dict(self) -> dict[str, int]:
        """Convert to dictionary representation."""
        return {
            "rating_points": self.rating_points,
            "review_points": self.review_points,
            "category_points": self.category_points,
            "website_points": self.website_points,
            "phone_points": self.phone_points,
            "total": self.total,
        }


def get_rating_points(rating: Optional[float]) -> int:
    """Get points for a star rating (missing rating scores 0)."""
    if rating is None:
        return 0
    for threshold, points in RATING_BANDS:
        if rating >= threshold:
            return points
    return 0


def get_review_points(review_count: Optional[int]) -> int:
    """Get points for a review count (missing count scores 0)."""
    if not review_count:
        return 0
    for threshold, points in REVIEW_BANDS:
        if review_count > threshold:
            return points
    return 0


def get_category_points(category: Optional[str]) -> int:
    """Get points for a business category.

    Matching is a case-insensitive substring test; unknown or missing
    categories get the default band.
    """
    category_lower = (category or "").lower()
    for keywords, points in CATEGORY_BANDS:
        if any(keyword in category_lower for keyword in keywords):
            return points
    return DEFAULT_CATEGORY_POINTS


def score_breakdown(
    rating: Optional[float],
    review_count: Optional[int],
    category: Optional[str],
    has_website: bool,
    phone: Optional[str],
) -> ScoreBreakdown:
    """Compute every score component for a business."""
    return ScoreBreakdown(
        rating_points=get_rating_points(rating),
        review_points=get_review_points(review_count),
        category_points=get_category_points(category),
        website_points=0 if has_website else NO_WEBSITE_BONUS,
        phone_points=VALID_PHONE_BONUS if is_valid_phone(phone) else 0,
    )


def calculate_priority_score(record: Any) -> int:
    """Calculate the priority score of a raw or normalized business record.

    Args:
        record: Any object exposing rating, review_count, category,
            has_website and phone attributes.

    Returns:
        Integer score in [0, 100].

    Example:
        >>> calculate_priority_score(record)  # 4.6 stars, 120 reviews, cafe
        100
    """
    breakdown = score_breakdown(
        rating=record.rating,
        review_count=record.review_count,
        category=record.category,
        has_website=bool(record.has_website),
        phone=record.phone,
    )
    return breakdown.total
