"""
Application Constants

Storage keys, payment limits, checkout defaults and backend endpoint paths.

Usage:
    from config.constants import Endpoints, PaymentLimits, StorageKeys

    path = Endpoints.OVERDUE_SUMMARY
    minimum = PaymentLimits.WELFARE_MIN
"""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class StorageKeys:
    """Keys in the persisted credential store"""

    # The only item persisted across restarts
    SESSION_TOKEN: str = "session_token"
    SERVICE_NAME: str = "TLCLibrary"


@dataclass(frozen=True)
class PaymentLimits:
    """Client-side amount limits in rupees (the server must re-validate)"""

    WELFARE_MIN: Decimal = Decimal("100")
    EDUCATIONAL_MIN: Decimal = Decimal("5000")
    EDUCATIONAL_MAX: Decimal = Decimal("100000")

    # Checkout amounts are sent in paise
    MINOR_UNITS_PER_MAJOR: int = 100


@dataclass(frozen=True)
class CheckoutDefaults:
    """Razorpay checkout presentation defaults"""

    DESCRIPTION: str = "Payment for The Learning Corner Library"
    THEME_COLOR: str = "#4D2C91"
    CURRENCY: str = "INR"
    BUSINESS_NAME: str = "The Learning Corner Library"
    CHECKOUT_SCRIPT_URL: str = "https://checkout.razorpay.com/v1/checkout.js"


@dataclass(frozen=True)
class DocumentLimits:
    """Supporting documents for educational support applications"""

    MAX_DOCUMENT_BYTES: int = 5 * 1024 * 1024
    MIN_DOCUMENTS: int = 1


@dataclass(frozen=True)
class Endpoints:
    """Backend paths (relative to the configured base URL)"""

    AUTH_ME: str = "/api/auth/me"
    AUTH_LOGIN: str = "/api/auth/login"
    AUTH_REGISTER: str = "/api/auth/register"
    AUTH_LOGOUT: str = "/api/auth/logout"

    OVERDUE_SUMMARY: str = "/api/overdue/member/summary"
    OVERDUE_DETAILS: str = "/api/overdue/member/details"

    PAYMENT_CONFIG: str = "/api/payment/config"
    PAYMENT_CREATE_ORDER: str = "/api/payment/create-order"
    PAYMENT_VERIFY: str = "/api/payment/verify"
    PAYMENT_RECEIPT: str = "/api/payment/receipt/{payment_id}"

    MEMBER_PROFILE: str = "/api/contributions/members/my-profile"
    BOOK_REQUEST: str = "/api/requests/book-request"
    BOOK_BOX_REQUEST: str = "/api/requests/adhyeta-box-request"
    COMPLAINT: str = "/api/requests/complaint"
    SUGGESTION: str = "/api/requests/suggestion"
    FEEDBACK: str = "/api/requests/feedback"
    MY_REQUESTS: str = "/api/requests/my-requests"
    WITHDRAW_REQUEST: str = "/api/requests/withdraw/{request_id}"
    DELIVERY_ADDRESS: str = "/api/member-connect/member/delivery-address"
    EDUCATIONAL_SUPPORT_APPLY: str = "/api/educational-support/apply"
