"""
Member connect - protected member actions.

Every action consults the access gate before anything else; a denied action
validates nothing and sends nothing. Results come back as a FlowOutcome so the
screens can branch without catching exceptions.
"""
import base64
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError as SchemaError

from caller.rest import ApiClient
from config.constants import DocumentLimits, Endpoints
from managers.access_gate import AccessGate, Capability, GateDecision
from managers.overdue_manager import OverdueStatusCache
from managers.payment_manager import PaymentOrchestrator
from managers.session_manager import SessionStore
from models.member_connect import (
    BOX_TYPES,
    BookBoxItem,
    BookBoxRequest,
    BookRequest,
    BookRequestReceipt,
    Complaint,
    EducationalSupportApplication,
    Feedback,
    MemberRequest,
    Suggestion,
    TicketReceipt,
)
from models.payment import PaymentResult
from models.session import User
from utils.error_handlers import APIError, AppException
from utils.logging_config import get_logger
from utils.validators import AmountValidator, FormValidator, ValidationError

logger = get_logger(__name__)

Document = Union[str, Path, bytes]

MIN_DETAIL_LENGTH = 10
MAX_TITLE_LENGTH = 200
_MORE_DETAIL_MESSAGE = "Please provide more details (at least 10 characters)"


class FlowStatus(str, Enum):
    DENIED = "denied"
    INVALID = "invalid"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class FlowOutcome:
    status: FlowStatus
    message: str = ""
    field: Optional[str] = None
    decision: Optional[GateDecision] = None
    data: Any = None
    payment: Optional[PaymentResult] = None

    @property
    def ok(self) -> bool:
        return self.status is FlowStatus.SUCCEEDED

    @classmethod
    def denied(cls, decision: GateDecision) -> "FlowOutcome":
        return cls(status=FlowStatus.DENIED, message=decision.message, decision=decision)

    @classmethod
    def invalid(cls, error: ValidationError) -> "FlowOutcome":
        return cls(status=FlowStatus.INVALID, message=error.message, field=error.field)


def encode_document(document: Document) -> str:
    """
    Base64-encode one supporting document (path or raw bytes).

    Raises:
        ValidationError: unreadable, empty or larger than 5 MB
    """
    if isinstance(document, (str, Path)):
        path = Path(document)
        try:
            content = path.read_bytes()
        except OSError as e:
            raise ValidationError(f"Could not read {path.name}", field="documents") from e
    else:
        content = bytes(document)

    if not content:
        raise ValidationError("Supporting document is empty", field="documents")
    if len(content) > DocumentLimits.MAX_DOCUMENT_BYTES:
        raise ValidationError("Each document must be 5 MB or smaller", field="documents")
    return base64.b64encode(content).decode("ascii")


def _require_details(text: str, field: str) -> str:
    try:
        return FormValidator.min_length(text, MIN_DETAIL_LENGTH, field)
    except ValidationError:
        raise ValidationError(_MORE_DETAIL_MESSAGE, field=field) from None


def _title_and_message(title: Optional[str], message: Optional[str], missing: str):
    """Trimmed (title, message); both required, message at least 10 characters."""
    title, message = (title or "").strip(), (message or "").strip()
    if not title or not message:
        raise ValidationError(missing, field="title" if not title else "message")
    FormValidator.max_length(title, MAX_TITLE_LENGTH, "Title")
    return title, _require_details(message, "message")


def _ticket_success(receipt: TicketReceipt, headline: str, closing: str) -> "FlowOutcome":
    return FlowOutcome(
        status=FlowStatus.SUCCEEDED,
        message=f"{headline}\n\nTicket Number: {receipt.ticket_number}\n\n{closing}",
        data=receipt,
    )


def checkout_phone(user: Optional[User]) -> str:
    """Profile phone for checkout prefill; "" when missing or not a usable number."""
    if user is None or not user.phone:
        return ""
    try:
        return FormValidator.phone(user.phone)
    except ValidationError:
        logger.debug("[MemberConnect] Profile phone is not usable for checkout prefill")
        return ""


class MemberConnectManager:
    def __init__(
        self,
        api: ApiClient,
        session: SessionStore,
        gate: AccessGate,
        overdue: OverdueStatusCache,
        payments: PaymentOrchestrator,
    ):
        self._api = api
        self._session = session
        self._gate = gate
        self._overdue = overdue
        self._payments = payments

    # -------------------- book requests --------------------

    def submit_book_request(self, title: str, **details) -> FlowOutcome:
        """
        File a request for a book the library should acquire.

        Returns:
            SUCCEEDED with a BookRequestReceipt (ticket number, book_exists)
        """
        decision = self._gate.check(Capability.SUBMIT_BOOK_REQUEST)
        if not decision.allowed:
            return FlowOutcome.denied(decision)

        if not (title or "").strip():
            return FlowOutcome.invalid(ValidationError("Please enter a book title", field="book_title"))
        try:
            request = BookRequest(book_title=title, **details)
        except SchemaError as e:
            first = e.errors()[0]
            field = str(first["loc"][0]) if first.get("loc") else None
            return FlowOutcome(status=FlowStatus.INVALID, message=first["msg"], field=field)

        try:
            data = self._api.post(Endpoints.BOOK_REQUEST, json=request.model_dump())
            receipt = BookRequestReceipt.model_validate(data)
        except AppException as e:
            return self._failed("Failed to submit request", e)
        except SchemaError:
            logger.error("[MemberConnect] Book request response had no ticket number")
            return FlowOutcome(status=FlowStatus.FAILED, message="Failed to submit request")

        logger.info(f"[MemberConnect] Book request submitted, ticket #{receipt.ticket_number}")
        if receipt.book_exists:
            message = (
                f"Your book request has been submitted (Ticket #{receipt.ticket_number}).\n\n"
                "Note: This book already exists in our library catalogue."
            )
        else:
            message = f"Book request submitted successfully!\n\nTicket Number: {receipt.ticket_number}"
        return FlowOutcome(status=FlowStatus.SUCCEEDED, message=message, data=receipt)

    # -------------------- book boxes --------------------

    def load_delivery_address(self) -> str:
        """Saved delivery address of the member, "" when none or on failure."""
        try:
            data = self._api.get(Endpoints.DELIVERY_ADDRESS)
        except AppException as e:
            logger.warning(f"[MemberConnect] Could not load delivery address: {e.error_code}")
            return ""
        if isinstance(data, dict):
            return (data.get("delivery_address") or "").strip()
        return ""

    def submit_book_box_request(
        self,
        books: Iterable[Union[BookBoxItem, Mapping[str, Any]]],
        delivery_address: Optional[str] = None,
        box_type: str = "Adhyeta Box",
        preferred_genres: Sequence[str] = (),
        additional_notes: str = "",
    ) -> FlowOutcome:
        """
        Request a box of books delivered to the member.

        ``delivery_address`` defaults to the address saved on the server.

        Returns:
            SUCCEEDED with a TicketReceipt
        """
        decision = self._gate.check(Capability.REQUEST_BOOK_BOX)
        if not decision.allowed:
            return FlowOutcome.denied(decision)

        if delivery_address is None:
            delivery_address = self.load_delivery_address()
        try:
            items = [b if isinstance(b, BookBoxItem) else BookBoxItem(**b) for b in books]
        except (SchemaError, TypeError):
            items = []
        address = (delivery_address or "").strip()
        if box_type not in BOX_TYPES or not items or not address:
            return FlowOutcome.invalid(ValidationError(
                "Please fill in all required fields including delivery address", field="delivery_address"
            ))
        if not all(item.is_complete for item in items):
            return FlowOutcome.invalid(ValidationError(
                "Please fill in all book details (title and author are required)", field="books"
            ))

        request = BookBoxRequest(
            box_type=box_type,
            preferred_genres=list(preferred_genres),
            delivery_address=address,
            additional_notes=(additional_notes or "").strip() or None,
            number_of_books=len(items),
        )
        outcome = self._submit_ticket(Endpoints.BOOK_BOX_REQUEST, request, "Failed to submit request")
        if outcome.ok:
            return FlowOutcome(
                status=FlowStatus.SUCCEEDED,
                message=(
                    f"{box_type} request submitted successfully!\n\n"
                    f"Ticket Number: {outcome.data.ticket_number}\n\n"
                    "You will receive a confirmation email."
                ),
                data=outcome.data,
            )
        return outcome

    # -------------------- complaints, suggestions, feedback --------------------

    def submit_complaint(self, description: str, category: str = "Library", priority: str = "Medium") -> FlowOutcome:
        decision = self._gate.check(Capability.CONTACT_LIBRARY)
        if not decision.allowed:
            return FlowOutcome.denied(decision)

        try:
            text = FormValidator.required(description, "Description")
        except ValidationError:
            return FlowOutcome.invalid(ValidationError("Please describe your complaint", field="description"))
        try:
            text = _require_details(text, "description")
        except ValidationError as e:
            return FlowOutcome.invalid(e)

        complaint = Complaint(category=category, description=text, priority=priority)
        outcome = self._submit_ticket(Endpoints.COMPLAINT, complaint, "Failed to submit complaint")
        if outcome.ok:
            return _ticket_success(
                outcome.data,
                "Your complaint has been registered successfully!",
                "We will review and respond within 48 hours.",
            )
        return outcome

    def submit_suggestion(
        self,
        title: str,
        message: str,
        is_anonymous: bool = False,
        attachment_url: Optional[str] = None,
    ) -> FlowOutcome:
        decision = self._gate.check(Capability.CONTACT_LIBRARY)
        if not decision.allowed:
            return FlowOutcome.denied(decision)

        try:
            title, message = _title_and_message(title, message, "Please fill in title and message")
        except ValidationError as e:
            return FlowOutcome.invalid(e)

        suggestion = Suggestion(
            title=title,
            message=message,
            is_anonymous=is_anonymous,
            attachment_url=attachment_url or None,
        )
        outcome = self._submit_ticket(Endpoints.SUGGESTION, suggestion, "Failed to submit suggestion")
        if outcome.ok:
            return _ticket_success(
                outcome.data,
                "Your suggestion has been submitted successfully!",
                "Thank you for your valuable input!",
            )
        return outcome

    def submit_feedback(self, title: str, message: str, rating: int = 0, is_anonymous: bool = False) -> FlowOutcome:
        """``rating`` is 1-5 stars; 0 means not rated."""
        decision = self._gate.check(Capability.CONTACT_LIBRARY)
        if not decision.allowed:
            return FlowOutcome.denied(decision)

        try:
            title, message = _title_and_message(title, message, "Please fill in all required fields")
            if not 0 <= rating <= 5:
                raise ValidationError("Rating must be between 1 and 5 stars", field="rating")
        except ValidationError as e:
            return FlowOutcome.invalid(e)

        feedback = Feedback(title=title, message=message, rating=rating or None, is_anonymous=is_anonymous)
        outcome = self._submit_ticket(Endpoints.FEEDBACK, feedback, "Failed to submit feedback")
        if outcome.ok:
            return _ticket_success(
                outcome.data,
                "Your feedback has been submitted successfully!",
                "We appreciate your input!",
            )
        return outcome

    def _submit_ticket(self, endpoint: str, body, fallback: str) -> FlowOutcome:
        try:
            data = self._api.post(endpoint, json=body.model_dump())
            receipt = TicketReceipt.model_validate(data)
        except AppException as e:
            return self._failed(fallback, e)
        except SchemaError:
            logger.error(f"[MemberConnect] {endpoint} response had no ticket number")
            return FlowOutcome(status=FlowStatus.FAILED, message=fallback)
        logger.info(f"[MemberConnect] {type(body).__name__} submitted, ticket #{receipt.ticket_number}")
        return FlowOutcome(status=FlowStatus.SUCCEEDED, data=receipt)

    # -------------------- my requests --------------------

    def list_my_requests(self) -> FlowOutcome:
        """
        Everything the member has filed, as MemberRequest rows in server order.

        Rows the client cannot read are skipped and logged.
        """
        decision = self._gate.check(Capability.VIEW_MY_REQUESTS)
        if not decision.allowed:
            return FlowOutcome.denied(decision)

        try:
            data = self._api.get(Endpoints.MY_REQUESTS)
        except AppException as e:
            logger.error(f"[MemberConnect] Failed to load requests: {e.error_code}")
            return FlowOutcome(status=FlowStatus.FAILED, message="Failed to load your requests. Please try again.")

        rows: List[MemberRequest] = []
        for row in data if isinstance(data, list) else []:
            try:
                rows.append(MemberRequest.model_validate(row))
            except SchemaError:
                logger.warning("[MemberConnect] Skipping unreadable request row")
        return FlowOutcome(status=FlowStatus.SUCCEEDED, data=rows)

    def withdraw_request(self, request: Union[MemberRequest, str]) -> FlowOutcome:
        """Withdraw a pending request (by row or by id)."""
        decision = self._gate.check(Capability.VIEW_MY_REQUESTS)
        if not decision.allowed:
            return FlowOutcome.denied(decision)

        if isinstance(request, MemberRequest):
            if not request.can_withdraw:
                return FlowOutcome.invalid(ValidationError(
                    "Only pending requests can be withdrawn", field="status"
                ))
            request_id = request.id
        else:
            request_id = (request or "").strip()
        if not request_id:
            return FlowOutcome.invalid(ValidationError("Request ID not found", field="id"))

        try:
            self._api.post(
                Endpoints.WITHDRAW_REQUEST.format(request_id=request_id),
                json={"reason": "Member initiated withdrawal"},
            )
        except AppException as e:
            return self._failed("Failed to withdraw request", e)

        logger.info(f"[MemberConnect] Request {request_id} withdrawn")
        return FlowOutcome(status=FlowStatus.SUCCEEDED, message="Request withdrawn successfully")

    # -------------------- educational support --------------------

    def apply_educational_support(
        self,
        purpose: str,
        amount,
        documents: Sequence[Document],
        declaration_accepted: bool,
    ) -> FlowOutcome:
        """Apply for educational support of ₹5,000 to ₹1,00,000."""
        decision = self._gate.check(Capability.APPLY_EDUCATIONAL_SUPPORT)
        if not decision.allowed:
            return FlowOutcome.denied(decision)

        try:
            requested = AmountValidator.validate_educational_support(amount)
            if len(documents) < DocumentLimits.MIN_DOCUMENTS:
                raise ValidationError("Please upload at least one supporting document", field="documents")
            if not declaration_accepted:
                raise ValidationError("Please accept the declaration to proceed", field="declaration")
            if not (purpose or "").strip():
                raise ValidationError("Please select a purpose", field="purpose")
            encoded = [encode_document(doc) for doc in documents]
        except ValidationError as e:
            return FlowOutcome.invalid(e)

        application = EducationalSupportApplication(
            purpose=purpose.strip(),
            requested_amount=float(requested),
            supporting_docs=encoded,
            declaration_accepted=True,
        )
        try:
            data = self._api.post(
                Endpoints.EDUCATIONAL_SUPPORT_APPLY,
                json=application.model_dump(),
                timeout=self._api.upload_timeout,
            )
        except AppException as e:
            return self._failed("Failed to submit application. Please try again.", e)

        logger.info(f"[MemberConnect] Educational support application submitted ({len(encoded)} document(s))")
        return FlowOutcome(
            status=FlowStatus.SUCCEEDED,
            message=(
                "Your Educational Support Application has been submitted successfully. "
                "You will be notified once reviewed by the admin."
            ),
            data=data,
        )

    # -------------------- payments --------------------

    def make_welfare_contribution(self, amount, remarks: str = "") -> FlowOutcome:
        """
        Pay a welfare contribution (minimum ₹100).

        On success the overdue status is refreshed exactly once.
        """
        decision = self._gate.check(Capability.MAKE_WELFARE_CONTRIBUTION)
        if not decision.allowed:
            return FlowOutcome.denied(decision)

        try:
            value = AmountValidator.validate_welfare_contribution(amount)
        except ValidationError as e:
            return FlowOutcome.invalid(e)

        member_id = self._resolve_member_id()
        if not member_id:
            return FlowOutcome(
                status=FlowStatus.FAILED,
                message="Member ID not found. Please try refreshing the page.",
            )

        user = self._session.user
        result = self._payments.process_contribution_payment(
            member_id=member_id,
            amount=value,
            email=user.email if user else "",
            phone=checkout_phone(user),
            notes=(remarks or "").strip(),
        )
        return self._payment_outcome(result, refresh_overdue=True)

    def subscribe(self, plan_id: str, plan_name: str, price) -> FlowOutcome:
        decision = self._gate.check(Capability.SUBSCRIBE)
        if not decision.allowed:
            return FlowOutcome.denied(decision)

        try:
            value = AmountValidator.positive(price, field_name="Price")
        except ValidationError as e:
            return FlowOutcome.invalid(e)

        user = self._session.user
        result = self._payments.process_subscription_payment(
            plan_id=plan_id,
            amount=value,
            email=user.email if user else "",
            phone=checkout_phone(user),
            notes=f"Subscription: {plan_name}",
        )
        return self._payment_outcome(result, refresh_overdue=False)

    def _payment_outcome(self, result: PaymentResult, refresh_overdue: bool) -> FlowOutcome:
        if not result.success:
            return FlowOutcome(status=FlowStatus.FAILED, message=result.error or "Payment failed", payment=result)
        if refresh_overdue:
            self._overdue.refresh()
        return FlowOutcome(status=FlowStatus.SUCCEEDED, message="Payment successful", payment=result)

    def _resolve_member_id(self) -> Optional[str]:
        try:
            data = self._api.get(Endpoints.MEMBER_PROFILE)
        except AppException as e:
            logger.error(f"[MemberConnect] Error loading member ID: {e.error_code}")
            return None
        if isinstance(data, dict) and data.get("member_id"):
            return str(data["member_id"])
        return None

    @staticmethod
    def _failed(fallback: str, error: AppException) -> FlowOutcome:
        message = fallback
        if isinstance(error, APIError) and error.detail:
            message = error.detail
        logger.error(f"[MemberConnect] {fallback}: {error.error_code}")
        return FlowOutcome(status=FlowStatus.FAILED, message=message)
