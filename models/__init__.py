from models.overdue import OverdueRecord, OverdueResolution, OverdueSummary, OverdueType
from models.payment import (
    CheckoutOptions,
    CheckoutResponse,
    PaymentConfig,
    PaymentIntent,
    PaymentOrder,
    PaymentResult,
    PaymentState,
    PaymentType,
    ReceiptHandle,
    to_minor_units,
)
from models.member_connect import MemberRequest, RequestStatus, RequestType
from models.session import LoginRequest, LoginResponse, RegisterRequest, Role, User

__all__ = [
    "CheckoutOptions",
    "CheckoutResponse",
    "LoginRequest",
    "LoginResponse",
    "MemberRequest",
    "OverdueRecord",
    "OverdueResolution",
    "OverdueSummary",
    "OverdueType",
    "PaymentConfig",
    "PaymentIntent",
    "PaymentOrder",
    "PaymentResult",
    "PaymentState",
    "PaymentType",
    "ReceiptHandle",
    "RegisterRequest",
    "RequestStatus",
    "RequestType",
    "Role",
    "User",
    "to_minor_units",
]
