"""
Receipt retriever - turns a completed payment id into a shareable receipt.

In "url" mode the receipt URL is handed out as-is; in "file" mode the PDF is
downloaded and written to the receipts folder as TLC_Receipt_<payment_id>.pdf.
"""
import os
import webbrowser
from pathlib import Path
from typing import Callable, Literal, Optional

from models.payment import ReceiptHandle
from utils.error_handlers import AppException, ReceiptError, notify_user
from utils.logging_config import get_logger
from utils.payment_client import PaymentClient
from utils.validators import ValidationError, sanitize_filename, validate_payment_id

logger = get_logger(__name__)

Notifier = Callable[[str, str], None]


class ReceiptRetriever:
    def __init__(
        self,
        payments: PaymentClient,
        receipt_dir: Path,
        mode: Literal["file", "url"] = "file",
        notifier: Notifier = notify_user,
        opener: Callable[[str], bool] = webbrowser.open,
    ):
        self._payments = payments
        self.receipt_dir = Path(receipt_dir)
        self.mode = mode
        self._notify = notifier
        self._open = opener

    def fetch(self, payment_id: Optional[str]) -> ReceiptHandle:
        """
        Get the receipt for ``payment_id``.

        Raises:
            ReceiptError: "Payment ID not found" for a blank id (no request is
                made), otherwise "Failed to download receipt"
        """
        try:
            payment_id = validate_payment_id(payment_id)
        except ValidationError as e:
            raise ReceiptError(message=e.message) from e

        if self.mode == "url":
            url = self._payments.receipt_url(payment_id)
            logger.info(f"[Receipt] Receipt URL for {payment_id}")
            return ReceiptHandle(payment_id=payment_id, url=url)

        content = self._payments.fetch_receipt_bytes(payment_id)
        path = self._save(payment_id, content)
        logger.info(f"[Receipt] Saved receipt for {payment_id} to {path}")
        return ReceiptHandle(payment_id=payment_id, path=path)

    def _save(self, payment_id: str, content: bytes) -> Path:
        target = self.receipt_dir / sanitize_filename(f"TLC_Receipt_{payment_id}.pdf")
        tmp = target.with_suffix(".pdf.tmp")
        try:
            self.receipt_dir.mkdir(parents=True, exist_ok=True)
            with open(tmp, "wb") as f:
                f.write(content)
            os.replace(tmp, target)
        except OSError as e:
            try:
                tmp.unlink(missing_ok=True)
            except OSError:
                logger.warning(f"[Receipt] Could not remove partial file {tmp.name}")
            logger.error(f"[Receipt] Could not write {target.name}: {e}")
            raise ReceiptError(
                recovery_hint="Check that the receipts folder is writable.",
                original_error=e,
            ) from e
        return target

    def share(self, payment_id: Optional[str]) -> Optional[ReceiptHandle]:
        """
        Fetch and open the receipt. Errors are shown to the member, never raised.

        Returns:
            The handle, or None on failure
        """
        try:
            handle = self.fetch(payment_id)
        except AppException as e:
            logger.error(f"[Receipt] Share failed: {e.get_technical_details()}")
            self._notify("Error", e.user_message)
            return None

        if not self._open(handle.uri):
            self._notify("Receipt Saved", f"Receipt saved to: {handle.path or handle.url}")
        return handle
