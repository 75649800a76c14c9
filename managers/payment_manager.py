"""
Payment orchestrator.

One run takes a payment from intent to a terminal PaymentResult:

    IDLE -> CONFIG_LOADED -> ORDER_CREATED -> CHECKOUT_OPEN -> VERIFYING -> SUCCESS | FAILED

A run creates exactly one order and makes at most one verification call.
Nothing is retried; the caller decides whether to start a new run. Every
failure, including the member cancelling the checkout, ends as a failed
PaymentResult rather than an exception.
"""
import threading
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Callable, List, Optional, Union

from pydantic import ValidationError as SchemaError

from config.constants import CheckoutDefaults
from models.payment import (
    CheckoutOptions,
    CheckoutPrefill,
    CheckoutResponse,
    CheckoutTheme,
    PaymentConfig,
    PaymentIntent,
    PaymentOrder,
    PaymentResult,
    PaymentState,
    PaymentType,
    to_minor_units,
)
from utils.error_handlers import AppException, ErrorContext
from utils.logging_config import get_logger
from utils.payment_client import PaymentClient

logger = get_logger(__name__)

Amount = Union[Decimal, int, str]
StateListener = Callable[[PaymentState], None]


class CheckoutUI(ABC):
    """The third-party checkout the member pays in."""

    @abstractmethod
    def open(self, options: CheckoutOptions) -> CheckoutResponse:
        """
        Show the checkout and block until the member finishes.

        Raises:
            CheckoutCancelledError: the member closed the checkout
            CheckoutError: the gateway reported a failure or the checkout timed out
        """


def build_checkout_options(
    order: PaymentOrder,
    config: PaymentConfig,
    email: str = "",
    phone: str = "",
) -> CheckoutOptions:
    """Checkout options for ``order``. The only rupee -> paise conversion happens here."""
    return CheckoutOptions(
        key=order.razorpay_key_id or config.razorpay_key_id,
        amount=to_minor_units(order.amount),
        currency=order.currency or config.currency,
        name=config.business_name,
        description=CheckoutDefaults.DESCRIPTION,
        order_id=order.order_id,
        prefill=CheckoutPrefill(email=email or "", contact=phone or ""),
        theme=CheckoutTheme(color=config.theme_color or CheckoutDefaults.THEME_COLOR),
    )


class PaymentOrchestrator:
    def __init__(self, payments: PaymentClient, checkout: CheckoutUI):
        self._payments = payments
        self._checkout = checkout
        # One run at a time; a second caller gets a failed result
        self._run_lock = threading.Lock()
        self._state = PaymentState.IDLE
        self._listeners: List[StateListener] = []

    @property
    def state(self) -> PaymentState:
        return self._state

    def add_state_listener(self, callback: StateListener) -> None:
        self._listeners.append(callback)

    def process_contribution_payment(
        self,
        member_id: str,
        amount: Amount,
        email: str = "",
        phone: str = "",
        notes: str = "",
    ) -> PaymentResult:
        """Pay a welfare contribution of ``amount`` rupees for ``member_id``."""
        return self._run_intent(
            payment_type=PaymentType.CONTRIBUTION,
            amount=amount,
            member_id=member_id,
            email=email,
            phone=phone,
            notes=notes,
        )

    def process_subscription_payment(
        self,
        plan_id: str,
        amount: Amount,
        email: str = "",
        phone: str = "",
        notes: str = "",
    ) -> PaymentResult:
        """Pay for subscription plan ``plan_id``."""
        return self._run_intent(
            payment_type=PaymentType.SUBSCRIPTION,
            amount=amount,
            plan_id=plan_id,
            email=email,
            phone=phone,
            notes=notes,
        )

    def _run_intent(self, **fields) -> PaymentResult:
        try:
            intent = PaymentIntent(**fields)
        except SchemaError as e:
            logger.warning(f"[Payment] Rejected payment intent: {e.error_count()} error(s)")
            return PaymentResult.failed("Please enter a valid amount", error_code="PAY_INVALID")
        return self.run(intent)

    def run(self, intent: PaymentIntent) -> PaymentResult:
        if not self._run_lock.acquire(blocking=False):
            logger.warning("[Payment] Run rejected: another payment is in progress")
            return PaymentResult.failed(
                "Another payment is already in progress",
                error_code="PAY_BUSY",
            )
        try:
            return self._run(intent)
        finally:
            self._run_lock.release()

    def _run(self, intent: PaymentIntent) -> PaymentResult:
        kind = intent.payment_type.value
        order_id: Optional[str] = None
        self._transition(PaymentState.IDLE, kind)

        try:
            config = self._payments.get_config()
            self._transition(PaymentState.CONFIG_LOADED, kind)

            order = self._payments.create_order(intent)
            order_id = order.order_id
            self._transition(PaymentState.ORDER_CREATED, kind, order_id)

            options = build_checkout_options(order, config, intent.email, intent.phone)
            self._transition(PaymentState.CHECKOUT_OPEN, kind, order_id)
            checkout = self._checkout.open(options)

            if checkout.razorpay_order_id != order_id:
                logger.warning(f"[Payment] Checkout returned order {checkout.razorpay_order_id}, expected {order_id}")

            self._transition(PaymentState.VERIFYING, kind, order_id)
            data = self._payments.verify_payment(
                checkout,
                intent.payment_type,
                member_id=intent.member_id,
                plan_id=intent.plan_id,
            )
        except AppException as e:
            self._transition(PaymentState.FAILED, kind, order_id, e.error_code)
            return PaymentResult.failed(e.user_message, e.error_code, e.recovery_hint)
        except Exception:
            logger.exception(f"[Payment] Unexpected error during {kind} payment")
            self._transition(PaymentState.FAILED, kind, order_id, "PAY_UNKNOWN")
            return PaymentResult.failed("Payment failed", error_code="PAY_UNKNOWN")

        self._transition(PaymentState.SUCCESS, kind, order_id)
        return PaymentResult.succeeded(checkout, data)

    def _transition(
        self,
        state: PaymentState,
        kind: str,
        order_id: Optional[str] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self._state = state
        details = f" order={order_id}" if order_id else ""
        if error_code:
            details += f" error={error_code}"
        logger.info(f"[Payment] {kind} -> {state.value}{details}")
        for callback in list(self._listeners):
            with ErrorContext("[Payment] State listener"):
                callback(state)
