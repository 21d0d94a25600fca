"""Unit tests for record normalization and validation helpers."""

import pytest

from leadsweep.utils.validators import (
    is_blank,
    is_chain_business,
    is_valid_email,
    is_valid_phone,
    normalize_phone,
    sanitize_business_name,
)


class TestChainDetection:
    """Tests for is_chain_business."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "name",
        ["McDonald's", "MCDONALDS Downtown", "Starbucks Reserve", "Pizza Hut Express", "KFC"],
    )
    def test_chains_detected(self, name):
        assert is_chain_business(name) is True

    @pytest.mark.unit
    @pytest.mark.parametrize("name", ["Blue Door Cafe", "Joe's Repair Shop", "", None])
    def test_independent_businesses_pass(self, name):
        assert is_chain_business(name) is False

    @pytest.mark.unit
    def test_custom_keywords(self):
        assert is_chain_business("Torchy's Tacos", keywords=("torchy",)) is True
        assert is_chain_business("McDonald's", keywords=("torchy",)) is False


class TestNormalization:
    """Tests for name and phone normalization."""

    @pytest.mark.unit
    def test_sanitize_collapses_whitespace(self):
        assert sanitize_business_name("  Blue   Door\tCafe ") == "Blue Door Cafe"

    @pytest.mark.unit
    def test_sanitize_none(self):
        assert sanitize_business_name(None) is None

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("(512) 555-0100", "5125550100"),
            ("+91 98765 43210", "+919876543210"),
            ("512-555-0100", "5125550100"),
            ("", None),
            (None, None),
            (" - ", None),
        ],
    )
    def test_normalize_phone(self, raw, expected):
        assert normalize_phone(raw) == expected


class TestValidation:
    """Tests for phone and email validity checks."""

    @pytest.mark.unit
    @pytest.mark.parametrize("phone", ["(512) 555-0100", "+91 98765 43210", "+1-512-555-0100"])
    def test_valid_phones(self, phone):
        assert is_valid_phone(phone) is True

    @pytest.mark.unit
    @pytest.mark.parametrize("phone", ["555-0100", "12345", "call us", "", None])
    def test_invalid_phones(self, phone):
        assert is_valid_phone(phone) is False

    @pytest.mark.unit
    @pytest.mark.parametrize("email", ["owner@cafe.example", "first.last+tag@shop.co.uk"])
    def test_valid_emails(self, email):
        assert is_valid_email(email) is True

    @pytest.mark.unit
    @pytest.mark.parametrize("email", ["not-an-email", "owner@", "@cafe.example", "", None])
    def test_invalid_emails(self, email):
        assert is_valid_email(email) is False

    @pytest.mark.unit
    @pytest.mark.parametrize("value,expected", [(None, True), ("", True), ("  ", True), ("x", False)])
    def test_is_blank(self, value, expected):
        assert is_blank(value) is expected
