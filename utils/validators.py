"""
Input Validation Module

Form, amount and identifier validation for member-facing actions.

Usage:
    from utils.validators import AmountValidator, FormValidator, ValidationError

    try:
        amount = AmountValidator.validate_welfare_contribution(user_input)
    except ValidationError as e:
        show_error(e.message)
"""

import os
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

from config.constants import PaymentLimits

AmountLike = Union[str, int, float, Decimal]


class ValidationError(Exception):
    """
    Exception raised when validation fails.

    ``message`` is suitable for direct display to the member.
    """

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        """
        Args:
            message: Human-readable error message
            field: Field name that failed validation (optional)
            value: Value that failed validation (optional, for logging)
        """
        self.message = message
        self.field = field
        self.value = value
        super().__init__(message)

    def __str__(self) -> str:
        if self.field:
            return f"Validation failed for '{self.field}': {self.message}"
        return self.message


class FormValidator:
    """Validators for free-text form fields."""

    EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
    PHONE_PATTERN = re.compile(r'^[+]?[\d\s\-()]{10,}$')

    @staticmethod
    def required(value: Optional[str], field_name: str = "This field") -> str:
        """
        Require a non-blank value.

        Returns:
            The stripped value
        """
        trimmed = (value or "").strip()
        if not trimmed:
            raise ValidationError(f"{field_name} is required", field=field_name)
        return trimmed

    @staticmethod
    def email(value: Optional[str]) -> str:
        value = (value or "").strip()
        if not FormValidator.EMAIL_PATTERN.match(value):
            raise ValidationError("Please enter a valid email address", field="email")
        return value

    @staticmethod
    def phone(value: Optional[str]) -> str:
        value = (value or "").strip()
        if not FormValidator.PHONE_PATTERN.match(value):
            raise ValidationError("Please enter a valid phone number", field="phone")
        return value

    @staticmethod
    def min_length(value: Optional[str], minimum: int, field_name: str = "This field") -> str:
        value = value or ""
        if len(value) < minimum:
            raise ValidationError(
                f"{field_name} must be at least {minimum} characters", field=field_name
            )
        return value

    @staticmethod
    def max_length(value: Optional[str], maximum: int, field_name: str = "This field") -> str:
        value = value or ""
        if len(value) > maximum:
            raise ValidationError(
                f"{field_name} must not exceed {maximum} characters", field=field_name
            )
        return value


class AmountValidator:
    """
    Validators for rupee amounts.

    Amounts are kept as ``Decimal`` in major units (rupees).
    """

    @staticmethod
    def parse(value: Optional[AmountLike], field_name: str = "Amount") -> Decimal:
        """
        Parse a user-entered amount.

        Raises:
            ValidationError: if the value is empty, not numeric or not finite
        """
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(f"{field_name} is required", field=field_name)
        if isinstance(value, bool):
            raise ValidationError(f"{field_name} must be a valid number", field=field_name, value=value)
        try:
            amount = Decimal(str(value).strip().replace(",", ""))
        except InvalidOperation:
            raise ValidationError(f"{field_name} must be a valid number", field=field_name, value=value)
        if not amount.is_finite():
            raise ValidationError(f"{field_name} must be a valid number", field=field_name, value=value)
        return amount

    @staticmethod
    def positive(value: Optional[AmountLike], field_name: str = "Amount") -> Decimal:
        amount = AmountValidator.parse(value, field_name)
        if amount <= 0:
            raise ValidationError(f"{field_name} must be a positive number", field=field_name, value=value)
        return amount

    @staticmethod
    def validate_welfare_contribution(value: Optional[AmountLike]) -> Decimal:
        """Welfare contributions have a ₹100 minimum."""
        try:
            amount = AmountValidator.parse(value)
        except ValidationError:
            amount = None
        if amount is None or amount < PaymentLimits.WELFARE_MIN:
            raise ValidationError("Minimum contribution amount is ₹100", field="amount", value=value)
        return amount

    @staticmethod
    def validate_educational_support(value: Optional[AmountLike]) -> Decimal:
        """Educational support requests must be between ₹5,000 and ₹1,00,000."""
        try:
            amount = AmountValidator.parse(value)
        except ValidationError:
            amount = None
        if (
            amount is None
            or amount < PaymentLimits.EDUCATIONAL_MIN
            or amount > PaymentLimits.EDUCATIONAL_MAX
        ):
            raise ValidationError(
                "Amount must be between ₹5,000 and ₹1,00,000", field="amount", value=value
            )
        return amount


def validate_payment_id(payment_id: Optional[str]) -> str:
    """
    Require a gateway payment id before any receipt request.

    Raises:
        ValidationError: "Payment ID not found" for empty or blank ids
    """
    trimmed = (payment_id or "").strip()
    if not trimmed:
        raise ValidationError("Payment ID not found", field="payment_id")
    if "/" in trimmed or "\\" in trimmed:
        raise ValidationError("Invalid payment ID", field="payment_id", value=payment_id)
    return trimmed


def sanitize_filename(filename: str, max_length: int = 255) -> str:
    """
    Sanitize filename by removing dangerous characters.

    Example:
        >>> sanitize_filename("TLC_Receipt_pay:1.pdf")
        'TLC_Receipt_pay_1.pdf'
    """
    if not filename:
        return "unnamed"

    filename = filename.replace('/', '_').replace('\\', '_')
    filename = re.sub(r'[<>:"|?*\x00-\x1f]', '_', filename)
    filename = filename.strip('. ')

    if not filename:
        filename = "unnamed"

    if len(filename) > max_length:
        name, ext = os.path.splitext(filename)
        filename = name[:max_length - len(ext)] + ext

    return filename
