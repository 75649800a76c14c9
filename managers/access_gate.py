"""
Access gate - decides whether a protected action may proceed.

``evaluate`` is a pure function of the cached overdue summary and the session
role; every role-based check in the client goes through ``ROLE_CAPABILITIES``
so the policy lives in one place.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, FrozenSet, Optional, Tuple, TypeVar

from managers.overdue_manager import OverdueLoadState, OverdueStatusCache
from managers.session_manager import SessionStore
from models.overdue import OverdueSummary
from models.session import Role
from utils.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class Capability(str, Enum):
    SUBMIT_BOOK_REQUEST = "submit_book_request"
    REQUEST_BOOK_BOX = "request_book_box"
    CONTACT_LIBRARY = "contact_library"
    VIEW_MY_REQUESTS = "view_my_requests"
    APPLY_EDUCATIONAL_SUPPORT = "apply_educational_support"
    MAKE_WELFARE_CONTRIBUTION = "make_welfare_contribution"
    SUBSCRIBE = "subscribe"
    VIEW_OVERDUES = "view_overdues"
    VIEW_RECEIPTS = "view_receipts"
    ADMIN_DASHBOARD = "admin_dashboard"
    RECORD_OFFLINE_PAYMENT = "record_offline_payment"


ROLE_CAPABILITIES: Dict[Role, FrozenSet[Capability]] = {
    Role.MEMBER: frozenset({
        Capability.SUBMIT_BOOK_REQUEST,
        Capability.REQUEST_BOOK_BOX,
        Capability.CONTACT_LIBRARY,
        Capability.VIEW_MY_REQUESTS,
        Capability.APPLY_EDUCATIONAL_SUPPORT,
        Capability.MAKE_WELFARE_CONTRIBUTION,
        Capability.SUBSCRIBE,
        Capability.VIEW_OVERDUES,
        Capability.VIEW_RECEIPTS,
    }),
    Role.ADMIN: frozenset({
        Capability.ADMIN_DASHBOARD,
        Capability.RECORD_OFFLINE_PAYMENT,
        Capability.VIEW_RECEIPTS,
    }),
}

# Blocked while the member's access is restricted (admins are exempt)
OVERDUE_GATED: FrozenSet[Capability] = frozenset({
    Capability.SUBMIT_BOOK_REQUEST,
    Capability.REQUEST_BOOK_BOX,
    Capability.APPLY_EDUCATIONAL_SUPPORT,
    Capability.MAKE_WELFARE_CONTRIBUTION,
})

_PENDING_PAYMENT_MESSAGE = "Access restricted due to pending payment. Please clear your dues to continue."

DENIAL_MESSAGES: Dict[Capability, str] = {
    Capability.SUBMIT_BOOK_REQUEST: _PENDING_PAYMENT_MESSAGE,
    Capability.REQUEST_BOOK_BOX: _PENDING_PAYMENT_MESSAGE,
    Capability.APPLY_EDUCATIONAL_SUPPORT: _PENDING_PAYMENT_MESSAGE,
    Capability.MAKE_WELFARE_CONTRIBUTION: "You have overdue payments. Please clear your dues first.",
}


class GateChoice(str, Enum):
    VIEW_OVERDUES = "view_overdues"
    CANCEL = "cancel"


class DenialReason(str, Enum):
    NOT_SIGNED_IN = "not_signed_in"
    ROLE = "role"
    OVERDUE = "overdue"
    STATUS_UNKNOWN = "status_unknown"


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    capability: Capability
    reason: Optional[DenialReason] = None
    title: str = ""
    message: str = ""
    choices: Tuple[GateChoice, ...] = field(default_factory=tuple)

    @classmethod
    def allow(cls, capability: Capability) -> "GateDecision":
        return cls(allowed=True, capability=capability)


def has_capability(role: Optional[Role], capability: Capability) -> bool:
    if role is None:
        return False
    return capability in ROLE_CAPABILITIES.get(role, frozenset())


def home_screen(role: Role) -> str:
    """Where a freshly signed-in user lands"""
    if has_capability(role, Capability.ADMIN_DASHBOARD):
        return "admin_dashboard"
    return "member_home"


def evaluate(
    summary: Optional[OverdueSummary],
    role: Optional[Role],
    capability: Capability,
    status_failed: bool = False,
    fail_closed: bool = False,
) -> GateDecision:
    """
    Decide one protected action.

    Args:
        summary: Cached overdue summary (None when not loaded)
        role: Session role (None when signed out)
        capability: The action being attempted
        status_failed: The last overdue fetch failed
        fail_closed: Deny overdue-gated actions when status_failed

    Returns:
        GateDecision; on an overdue denial ``choices`` is exactly
        (VIEW_OVERDUES, CANCEL)
    """
    if role is None:
        return GateDecision(
            allowed=False,
            capability=capability,
            reason=DenialReason.NOT_SIGNED_IN,
            title="Login Required",
            message="Please login to continue.",
            choices=(GateChoice.CANCEL,),
        )

    if not has_capability(role, capability):
        return GateDecision(
            allowed=False,
            capability=capability,
            reason=DenialReason.ROLE,
            title="Not Available",
            message="You do not have permission to perform this action.",
            choices=(GateChoice.CANCEL,),
        )

    if capability not in OVERDUE_GATED or role is Role.ADMIN:
        return GateDecision.allow(capability)

    if summary is not None and summary.restricted_access:
        return GateDecision(
            allowed=False,
            capability=capability,
            reason=DenialReason.OVERDUE,
            title="Access Restricted",
            message=DENIAL_MESSAGES.get(capability, _PENDING_PAYMENT_MESSAGE),
            choices=(GateChoice.VIEW_OVERDUES, GateChoice.CANCEL),
        )

    if summary is None and status_failed and fail_closed:
        return GateDecision(
            allowed=False,
            capability=capability,
            reason=DenialReason.STATUS_UNKNOWN,
            title="Access Restricted",
            message="We could not confirm your payment status. Please try again shortly.",
            choices=(GateChoice.VIEW_OVERDUES, GateChoice.CANCEL),
        )

    return GateDecision.allow(capability)


class AccessGate:
    """``evaluate`` bound to the live session and overdue cache"""

    def __init__(self, session: SessionStore, overdue: OverdueStatusCache, fail_closed: bool = False):
        self._session = session
        self._overdue = overdue
        self.fail_closed = fail_closed

    def check(self, capability: Capability) -> GateDecision:
        decision = evaluate(
            summary=self._overdue.summary,
            role=self._session.role,
            capability=capability,
            status_failed=self._overdue.load_state is OverdueLoadState.FAILED,
            fail_closed=self.fail_closed,
        )
        if not decision.allowed:
            logger.info(f"[Gate] {capability.value} denied: {decision.reason.value}")
        return decision

    def guard(
        self,
        capability: Capability,
        action: Callable[[], T],
        on_denied: Optional[Callable[[GateDecision], None]] = None,
    ) -> Tuple[GateDecision, Optional[T]]:
        """
        Run ``action`` only if allowed.

        Returns:
            (decision, action result or None when denied)
        """
        decision = self.check(capability)
        if not decision.allowed:
            if on_denied is not None:
                on_denied(decision)
            return decision, None
        return decision, action()
