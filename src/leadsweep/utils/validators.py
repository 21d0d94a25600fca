"""Normalization and validation helpers for raw business records."""

import re
from typing import Iterable, Optional

# National and franchise chains that never qualify as independent leads
CHAIN_KEYWORDS: tuple[str, ...] = (
    "mcdonalds",
    "mcdonald's",
    "kfc",
    "subway",
    "dominos",
    "domino's",
    "pizza hut",
    "starbucks",
    "burger king",
    "taco bell",
    "walmart",
    "target",
    "costco",
    "cvs",
    "walgreens",
)

PHONE_STRIP_PATTERN = re.compile(r"[\s\-()]")
PHONE_PATTERN = re.compile(r"^\+?[0-9]{10,13}$")
EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
WHITESPACE_PATTERN = re.compile(r"\s+")


def is_chain_business(name: Optional[str], keywords: Iterable[str] = CHAIN_KEYWORDS) -> bool:
    """Check whether a business name matches a known chain keyword.

    Args:
        name: Business name as scraped.
        keywords: Lowercase keywords matched as substrings.

    Returns:
        True if any keyword occurs in the lowercased name.
    """
    if not name:
        return False
    lower_name = name.lower()
    return any(keyword in lower_name for keyword in keywords)


def sanitize_business_name(name: Optional[str]) -> Optional[str]:
    """Trim a business name and collapse internal whitespace."""
    if name is None:
        return None
    return WHITESPACE_PATTERN.sub(" ", name.strip())


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """Remove spaces, dashes and parentheses from a phone number.

    Returns None for missing or blank input.
    """
    if not phone:
        return None
    normalized = PHONE_STRIP_PATTERN.sub("", phone)
    return normalized or None


def is_valid_phone(phone: Optional[str]) -> bool:
    """Check for 10 to 13 digits with an optional leading '+'."""
    if not phone:
        return False
    return bool(PHONE_PATTERN.match(PHONE_STRIP_PATTERN.sub("", phone)))


def is_valid_email(email: Optional[str]) -> bool:
    """Syntactic email address check."""
    if not email or not isinstance(email, str):
        return False
    return bool(EMAIL_PATTERN.match(email.strip()))


def is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()
