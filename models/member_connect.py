"""
Member Connect Schemas

Requests members file with the library: book requests and book boxes,
complaints, suggestions, feedback and educational support, plus the
"my requests" listing.
"""
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BookRequest(BaseModel):
    """POST /api/requests/book-request body"""
    book_title: str = Field(..., min_length=1, max_length=300)
    author_name: Optional[str] = None
    language: str = "English"
    category: Optional[str] = None
    publishing_house: Optional[str] = None
    purpose: Optional[str] = None
    remarks: Optional[str] = None

    @field_validator("book_title", mode="before")
    @classmethod
    def strip_title(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("author_name", "category", "publishing_house", "purpose", "remarks", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        # Optional fields go to the server as null, never ""
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v


class BookRequestReceipt(BaseModel):
    model_config = ConfigDict(extra="ignore")

    ticket_number: str
    book_exists: bool = False

    @field_validator("ticket_number", mode="before")
    @classmethod
    def ticket_as_text(cls, v):
        return str(v) if v is not None else v


class EducationalSupportApplication(BaseModel):
    """POST /api/educational-support/apply body (documents are base64)"""
    purpose: str = Field(..., min_length=1)
    requested_amount: float = Field(..., gt=0)
    supporting_docs: List[str] = Field(..., min_length=1)
    declaration_accepted: bool


BOX_TYPES = ("Adhyeta Box", "Custom Box")
COMPLAINT_CATEGORIES = ("Library", "App", "Payment", "Facility", "Other")
PRIORITIES = ("Low", "Medium", "High")


class BookBoxItem(BaseModel):
    """One book wanted in a box; title and author are required"""
    book_title: str
    author: str
    language: str = "English"
    category: str = "Academic"
    publishing_house: str = ""

    @property
    def is_complete(self) -> bool:
        return bool(self.book_title.strip() and self.author.strip())


class BookBoxRequest(BaseModel):
    """POST /api/requests/adhyeta-box-request body"""
    box_type: str = "Adhyeta Box"
    preferred_genres: List[str] = Field(default_factory=list)
    delivery_address: str
    additional_notes: Optional[str] = None
    number_of_books: int = Field(..., ge=1)


class Complaint(BaseModel):
    """POST /api/requests/complaint body"""
    category: str = "Library"
    description: str
    priority: str = "Medium"


class Suggestion(BaseModel):
    """POST /api/requests/suggestion body"""
    title: str
    message: str
    is_anonymous: bool = False
    attachment_url: Optional[str] = None


class Feedback(BaseModel):
    """POST /api/requests/feedback body; a rating of 0 is sent as null"""
    title: str
    message: str
    rating: Optional[int] = Field(None, ge=1, le=5)
    is_anonymous: bool = False


class TicketReceipt(BaseModel):
    """Response of every request submission"""
    model_config = ConfigDict(extra="ignore")

    ticket_number: str

    @field_validator("ticket_number", mode="before")
    @classmethod
    def ticket_as_text(cls, v):
        return str(v) if v is not None else v


class RequestType(str, Enum):
    BOOK_REQUEST = "book_request"
    BOOK_BOX = "adhyeta_box"
    SUGGESTION = "suggestion"
    COMPLAINT = "complaint"
    FEEDBACK = "feedback"


class RequestStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    RESOLVED = "Resolved"
    WITHDRAWN = "Withdrawn"


class MemberRequest(BaseModel):
    """One row of GET /api/requests/my-requests"""
    model_config = ConfigDict(extra="ignore")

    id: str
    request_type: RequestType
    ticket_number: str
    status: RequestStatus
    priority: Optional[str] = None
    submitted_at: datetime
    updated_at: Optional[datetime] = None
    request_data: dict = Field(default_factory=dict)
    admin_reply: Optional[str] = None
    admin_remarks: Optional[str] = None
    escalated: bool = False

    @field_validator("id", "ticket_number", mode="before")
    @classmethod
    def as_text(cls, v: Any):
        return str(v) if v is not None else v

    @field_validator("escalated", mode="before")
    @classmethod
    def null_is_false(cls, v: Any):
        return bool(v)

    @property
    def can_withdraw(self) -> bool:
        """Only requests nobody has acted on yet can be withdrawn"""
        return self.status is RequestStatus.PENDING
