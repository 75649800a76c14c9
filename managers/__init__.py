"""
Manager module

Holds the stateful components of the client: the Session Store, the Overdue
Status Cache, the Access Gate, the Payment Orchestrator, the Receipt
Retriever and the member-connect flows built on top of them.
"""

from managers.session_manager import SessionStore
from managers.overdue_manager import (
    OverdueLoadState,
    OverdueStatusCache,
    banner_text,
    summarize_records,
)
from managers.access_gate import (
    AccessGate,
    Capability,
    DenialReason,
    GateChoice,
    GateDecision,
    evaluate,
    has_capability,
    home_screen,
)
from managers.payment_manager import CheckoutUI, PaymentOrchestrator, build_checkout_options
from managers.receipt_manager import ReceiptRetriever
from managers.member_connect_manager import FlowOutcome, FlowStatus, MemberConnectManager

__all__ = [
    'SessionStore',
    'OverdueLoadState',
    'OverdueStatusCache',
    'banner_text',
    'summarize_records',
    # Access gate
    'AccessGate',
    'Capability',
    'DenialReason',
    'GateChoice',
    'GateDecision',
    'evaluate',
    'has_capability',
    'home_screen',
    # Payments
    'CheckoutUI',
    'PaymentOrchestrator',
    'build_checkout_options',
    'ReceiptRetriever',
    'FlowOutcome',
    'FlowStatus',
    'MemberConnectManager',
]
