"""
Payment Schemas

Gateway configuration, orders, checkout options and terminal results.

Amounts are rupees (``Decimal``) everywhere except ``CheckoutOptions.amount``,
which is paise. ``to_minor_units`` is the only conversion between the two.
"""
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from config.constants import CheckoutDefaults, PaymentLimits


class PaymentType(str, Enum):
    CONTRIBUTION = "contribution"
    SUBSCRIPTION = "subscription"


class PaymentState(str, Enum):
    """Orchestrator run states"""
    IDLE = "IDLE"
    CONFIG_LOADED = "CONFIG_LOADED"
    ORDER_CREATED = "ORDER_CREATED"
    CHECKOUT_OPEN = "CHECKOUT_OPEN"
    VERIFYING = "VERIFYING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (PaymentState.SUCCESS, PaymentState.FAILED)


def to_minor_units(amount: Decimal) -> int:
    """Rupees -> paise, rounded half-up to a whole paisa."""
    paise = Decimal(str(amount)) * PaymentLimits.MINOR_UNITS_PER_MAJOR
    return int(paise.to_integral_value(rounding=ROUND_HALF_UP))


class PaymentConfig(BaseModel):
    """GET /api/payment/config"""
    model_config = ConfigDict(extra="ignore", frozen=True)

    razorpay_key_id: str = Field(..., min_length=1)
    currency: str = CheckoutDefaults.CURRENCY
    theme_color: Optional[str] = None
    business_name: str = CheckoutDefaults.BUSINESS_NAME


class PaymentIntent(BaseModel):
    """What the member asked to pay for"""
    model_config = ConfigDict(frozen=True)

    payment_type: PaymentType
    amount: Decimal = Field(..., gt=0)
    member_id: Optional[str] = None
    plan_id: Optional[str] = None
    email: str = ""
    phone: str = ""
    notes: str = ""

    @model_validator(mode="after")
    def check_entity(self) -> "PaymentIntent":
        if self.payment_type is PaymentType.CONTRIBUTION and not self.member_id:
            raise ValueError("member_id is required for contribution payments")
        if self.payment_type is PaymentType.SUBSCRIPTION and not self.plan_id:
            raise ValueError("plan_id is required for subscription payments")
        return self

    def order_payload(self) -> dict:
        """Body for POST /api/payment/create-order (amount stays in rupees)"""
        payload: dict[str, Any] = {
            "amount": _json_number(self.amount),
            "payment_type": self.payment_type.value,
            "notes": self.notes or "",
        }
        if self.payment_type is PaymentType.CONTRIBUTION:
            payload["member_id"] = self.member_id
        else:
            payload["plan_id"] = self.plan_id
        return payload


class PaymentOrder(BaseModel):
    """POST /api/payment/create-order response"""
    model_config = ConfigDict(extra="ignore", frozen=True)

    order_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)
    currency: str = CheckoutDefaults.CURRENCY
    razorpay_key_id: Optional[str] = None


class CheckoutPrefill(BaseModel):
    email: str = ""
    contact: str = ""


class CheckoutTheme(BaseModel):
    color: str = CheckoutDefaults.THEME_COLOR


class CheckoutOptions(BaseModel):
    """Options handed to the Razorpay checkout. ``amount`` is in paise."""
    model_config = ConfigDict(frozen=True)

    key: str = Field(..., min_length=1)
    amount: int = Field(..., gt=0)
    currency: str
    name: str
    description: str = CheckoutDefaults.DESCRIPTION
    order_id: str
    image: Optional[str] = None
    prefill: CheckoutPrefill = Field(default_factory=CheckoutPrefill)
    theme: CheckoutTheme = Field(default_factory=CheckoutTheme)


class CheckoutResponse(BaseModel):
    """What the gateway hands back after a completed checkout"""
    model_config = ConfigDict(extra="ignore", frozen=True)

    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_order_id: str = Field(..., min_length=1)
    razorpay_signature: str = Field(..., min_length=1)


class PaymentResult(BaseModel):
    """
    Terminal outcome of one orchestrator run.

    success implies payment_id, order_id and signature are present;
    failure implies error is present.
    """
    model_config = ConfigDict(frozen=True)

    success: bool
    payment_id: Optional[str] = None
    order_id: Optional[str] = None
    signature: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    recovery_hint: str = ""
    data: Optional[Any] = None

    @model_validator(mode="after")
    def check_outcome(self) -> "PaymentResult":
        if self.success:
            if not (self.payment_id and self.order_id and self.signature):
                raise ValueError("successful result needs payment_id, order_id and signature")
        elif not self.error:
            raise ValueError("failed result needs an error message")
        return self

    @classmethod
    def succeeded(cls, checkout: CheckoutResponse, data: Any) -> "PaymentResult":
        return cls(
            success=True,
            payment_id=checkout.razorpay_payment_id,
            order_id=checkout.razorpay_order_id,
            signature=checkout.razorpay_signature,
            data=data,
        )

    @classmethod
    def failed(cls, error: str, error_code: Optional[str] = None, recovery_hint: str = "") -> "PaymentResult":
        return cls(success=False, error=error, error_code=error_code, recovery_hint=recovery_hint)

    @property
    def cancelled(self) -> bool:
        return self.error_code == "PAY_CANCELLED"

    @property
    def receipt_number(self) -> Optional[str]:
        """Receipt reference from the verification payload, if any"""
        if not isinstance(self.data, dict):
            return None
        inner = self.data.get("data")
        if isinstance(inner, dict) and inner.get("receipt_number"):
            return str(inner["receipt_number"])
        if self.data.get("receipt_number"):
            return str(self.data["receipt_number"])
        return None


class ReceiptHandle(BaseModel):
    """A receipt either as a URL or as a local PDF"""
    model_config = ConfigDict(frozen=True)

    payment_id: str
    url: Optional[str] = None
    path: Optional[Path] = None

    @model_validator(mode="after")
    def check_target(self) -> "ReceiptHandle":
        if (self.url is None) == (self.path is None):
            raise ValueError("exactly one of url or path must be set")
        return self

    @property
    def is_file(self) -> bool:
        return self.path is not None

    @property
    def uri(self) -> str:
        if self.path is not None:
            return self.path.resolve().as_uri()
        return self.url


def _json_number(amount: Decimal):
    """Decimal -> int when whole, float otherwise (JSON has no decimal type)."""
    if amount == amount.to_integral_value():
        return int(amount)
    return float(amount)
