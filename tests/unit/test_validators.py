"""
Unit Tests for Input Validators

Tests form fields, rupee amount limits, payment ids and filename
sanitization.
"""

import pytest
from decimal import Decimal
from utils.validators import (
    AmountValidator,
    FormValidator,
    ValidationError,
    sanitize_filename,
    validate_payment_id,
)


class TestFormValidator:
    """Test form field validation"""

    def test_required_strips(self):
        """Test required() returns the stripped value"""
        assert FormValidator.required("  Wings of Fire ", "Book title") == "Wings of Fire"

    def test_required_blank(self):
        """Test blank values are rejected with the field name"""
        with pytest.raises(ValidationError, match="Book title is required") as exc_info:
            FormValidator.required("   ", "Book title")

        assert exc_info.value.field == "Book title"

    @pytest.mark.parametrize("email", ["member@example.com", "a.b@lib.co.in"])
    def test_valid_email(self, email):
        assert FormValidator.email(email) == email

    @pytest.mark.parametrize("email", ["", "member@", "member example.com", "@example.com"])
    def test_invalid_email(self, email):
        with pytest.raises(ValidationError, match="valid email"):
            FormValidator.email(email)

    def test_phone(self):
        """Test phone numbers need at least ten digits or separators"""
        assert FormValidator.phone("+91 98765 43210") == "+91 98765 43210"
        with pytest.raises(ValidationError):
            FormValidator.phone("12345")

    def test_length_limits(self):
        assert FormValidator.min_length("secret12", 8, "Password") == "secret12"
        with pytest.raises(ValidationError, match="at least 8"):
            FormValidator.min_length("short", 8, "Password")
        with pytest.raises(ValidationError, match="must not exceed 5"):
            FormValidator.max_length("toolong", 5, "Remarks")


class TestAmountValidator:
    """Test rupee amount validation"""

    @pytest.mark.parametrize("value, expected", [
        ("100", Decimal("100")),
        ("1,500.50", Decimal("1500.50")),
        (250, Decimal("250")),
        (Decimal("99.99"), Decimal("99.99")),
    ])
    def test_parse(self, value, expected):
        assert AmountValidator.parse(value) == expected

    @pytest.mark.parametrize("value", [None, "", "  ", "abc", "NaN", "Infinity", True])
    def test_parse_rejects(self, value):
        with pytest.raises(ValidationError):
            AmountValidator.parse(value)

    def test_positive(self):
        with pytest.raises(ValidationError, match="positive"):
            AmountValidator.positive("0")

    @pytest.mark.parametrize("value", ["100", 100, "100.00", "5000"])
    def test_welfare_minimum_met(self, value):
        assert AmountValidator.validate_welfare_contribution(value) >= 100

    @pytest.mark.parametrize("value", ["99.99", "0", "", None, "abc"])
    def test_welfare_below_minimum(self, value):
        """Test every invalid welfare amount gets the same message"""
        with pytest.raises(ValidationError) as exc_info:
            AmountValidator.validate_welfare_contribution(value)

        assert exc_info.value.message == "Minimum contribution amount is ₹100"

    @pytest.mark.parametrize("value", ["5000", "100000", "25000.50"])
    def test_educational_range(self, value):
        assert AmountValidator.validate_educational_support(value) == Decimal(value)

    @pytest.mark.parametrize("value", ["4999.99", "100000.01", "", "ten"])
    def test_educational_out_of_range(self, value):
        with pytest.raises(ValidationError) as exc_info:
            AmountValidator.validate_educational_support(value)

        assert exc_info.value.message == "Amount must be between ₹5,000 and ₹1,00,000"


class TestPaymentId:
    """Test payment id validation for receipts"""

    @pytest.mark.parametrize("payment_id", ["", None, "   "])
    def test_missing(self, payment_id):
        with pytest.raises(ValidationError) as exc_info:
            validate_payment_id(payment_id)

        assert exc_info.value.message == "Payment ID not found"

    def test_path_characters_rejected(self):
        with pytest.raises(ValidationError, match="Invalid payment ID"):
            validate_payment_id("../pay_1")

    def test_valid(self):
        assert validate_payment_id(" pay_123 ") == "pay_123"


class TestSanitizeFilename:
    """Test filename sanitization"""

    def test_sanitize_filename(self):
        """Test dangerous characters are replaced"""
        assert sanitize_filename("TLC_Receipt_pay:1.pdf") == "TLC_Receipt_pay_1.pdf"
        assert sanitize_filename("receipt<>file.pdf") == "receipt__file.pdf"

    def test_empty_name(self):
        assert sanitize_filename("") == "unnamed"
        assert sanitize_filename(" .. ") == "unnamed"

    def test_long_name_keeps_extension(self):
        result = sanitize_filename("a" * 300 + ".pdf", max_length=50)

        assert len(result) == 50
        assert result.endswith(".pdf")
