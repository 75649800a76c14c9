"""
Payment client for the Razorpay order/verify flow.

Server endpoints expected:
  GET  /api/payment/config                 -> {razorpay_key_id, currency, theme_color, business_name}
  POST /api/payment/create-order           -> {order_id, amount, currency, razorpay_key_id}
  POST /api/payment/verify                 -> verification payload (includes receipt reference)
  GET  /api/payment/receipt/{payment_id}   -> application/pdf

Each call is made exactly once; nothing here retries a POST.
"""
from typing import Any, Optional
from urllib.parse import quote

from pydantic import ValidationError as SchemaError

from caller.rest import ApiClient
from config.constants import Endpoints
from models.payment import (
    CheckoutResponse,
    PaymentConfig,
    PaymentIntent,
    PaymentOrder,
    PaymentType,
)
from utils.error_handlers import (
    APIError,
    AppException,
    ConfigurationError,
    OrderCreationError,
    ReceiptError,
    VerificationError,
)
from utils.logging_config import get_logger

logger = get_logger(__name__)


class PaymentClient:
    def __init__(self, api: ApiClient):
        self.api = api

    def get_config(self) -> PaymentConfig:
        """
        Load gateway key, currency and branding.

        Raises:
            ConfigurationError: on any failure, with a generic message
        """
        try:
            return PaymentConfig.model_validate(self.api.get(Endpoints.PAYMENT_CONFIG))
        except (AppException, SchemaError) as e:
            logger.error(f"[PaymentClient] Failed to get payment config: {type(e).__name__}")
            raise ConfigurationError(
                message="Failed to load payment configuration",
                recovery_hint="Please try again later.",
                original_error=e,
                error_code="PAY_CONFIG",
            ) from e

    def create_order(self, intent: PaymentIntent) -> PaymentOrder:
        """
        Ask the backend for a gateway order for ``intent.amount`` rupees.

        Raises:
            OrderCreationError: with the server's detail when it sent one
        """
        fallback = "Failed to create payment order"
        try:
            data = self.api.post(
                Endpoints.PAYMENT_CREATE_ORDER,
                json=intent.order_payload(),
                fallback_message=fallback,
            )
            return PaymentOrder.model_validate(data)
        except APIError as e:
            logger.error(f"[PaymentClient] Failed to create {intent.payment_type.value} order: HTTP {e.status_code}")
            raise OrderCreationError(message=e.detail or fallback, original_error=e) from e
        except (AppException, SchemaError) as e:
            logger.error(f"[PaymentClient] Failed to create {intent.payment_type.value} order: {type(e).__name__}")
            raise OrderCreationError(message=fallback, original_error=e) from e

    def verify_payment(
        self,
        checkout: CheckoutResponse,
        payment_type: PaymentType,
        member_id: Optional[str] = None,
        plan_id: Optional[str] = None,
    ) -> Any:
        """
        Forward the gateway's ids and signature verbatim for server-side verification.

        Raises:
            VerificationError: with the server's detail when it sent one
        """
        payload = {
            "razorpay_order_id": checkout.razorpay_order_id,
            "razorpay_payment_id": checkout.razorpay_payment_id,
            "razorpay_signature": checkout.razorpay_signature,
            "payment_type": payment_type.value,
        }
        if member_id is not None:
            payload["member_id"] = member_id
        if plan_id is not None:
            payload["plan_id"] = plan_id

        fallback = "Payment verification failed"
        try:
            return self.api.post(Endpoints.PAYMENT_VERIFY, json=payload, fallback_message=fallback)
        except APIError as e:
            logger.error(
                f"[PaymentClient] Verification failed for {checkout.razorpay_payment_id}: HTTP {e.status_code}"
            )
            raise VerificationError(message=e.detail or fallback, original_error=e) from e
        except AppException as e:
            logger.error(f"[PaymentClient] Verification failed for {checkout.razorpay_payment_id}: {type(e).__name__}")
            raise VerificationError(message=fallback, original_error=e) from e

    def receipt_path(self, payment_id: str) -> str:
        return Endpoints.PAYMENT_RECEIPT.format(payment_id=quote(payment_id, safe=""))

    def receipt_url(self, payment_id: str) -> str:
        return self.api.url_for(self.receipt_path(payment_id))

    def fetch_receipt_bytes(self, payment_id: str) -> bytes:
        """
        Download the receipt PDF.

        Raises:
            ReceiptError: on any failure
        """
        try:
            content = self.api.get_bytes(self.receipt_path(payment_id))
        except AppException as e:
            logger.error(f"[PaymentClient] Failed to download receipt for {payment_id}: {type(e).__name__}")
            raise ReceiptError(original_error=e) from e
        if not content:
            raise ReceiptError(message="Receipt is empty")
        return content
