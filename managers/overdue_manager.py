"""
Overdue status cache.

Holds the member's server-computed payment standing for the current session.
Only member sessions are ever fetched; admins are exempt. The cache never
refreshes itself: callers refresh after anything that may change standing
(e.g. a successful contribution payment).
"""
import threading
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Iterable, List, Optional

from pydantic import ValidationError as SchemaError

from caller.rest import ApiClient
from config.constants import Endpoints
from managers.session_manager import SessionStore
from models.overdue import OverdueRecord, OverdueSummary
from models.session import Role
from utils.error_handlers import AppException
from utils.formatting import format_inr, pluralize
from utils.logging_config import get_logger

logger = get_logger(__name__)


class OverdueLoadState(str, Enum):
    NOT_LOADED = "not_loaded"
    LOADED = "loaded"
    # Fetch failed: nothing is known, which is not the same as "clear"
    FAILED = "failed"
    # Non-member session, never fetched
    EXEMPT = "exempt"


@dataclass(frozen=True)
class BannerText:
    title: str
    message: str
    sub_message: str
    restricted: bool


class OverdueStatusCache:
    def __init__(self, api: ApiClient, session: SessionStore):
        self._api = api
        self._session = session
        self._lock = threading.Lock()
        self._summary: Optional[OverdueSummary] = None
        self._state = OverdueLoadState.NOT_LOADED
        self._owner_id: Optional[str] = None
        session.add_listener(self._on_session_changed)

    @property
    def summary(self) -> Optional[OverdueSummary]:
        return self._summary

    @property
    def load_state(self) -> OverdueLoadState:
        return self._state

    def _is_member(self) -> bool:
        return self._session.role is Role.MEMBER

    def refresh(self) -> Optional[OverdueSummary]:
        """
        Fetch the summary once.

        Returns:
            The summary, an unrestricted summary for non-member roles
            (no network call), or None if the fetch failed
        """
        user = self._session.user
        if user is None or user.role is not Role.MEMBER:
            with self._lock:
                self._summary = None
                self._state = OverdueLoadState.EXEMPT if user else OverdueLoadState.NOT_LOADED
            return OverdueSummary.unrestricted(member_id=user.id if user else "")

        try:
            summary = OverdueSummary.model_validate(self._api.get(Endpoints.OVERDUE_SUMMARY))
        except (AppException, SchemaError) as e:
            logger.error(f"[Overdue] Error loading overdue summary: {type(e).__name__}: {e}")
            with self._lock:
                if self._still_current(user.id):
                    self._summary = None
                    self._state = OverdueLoadState.FAILED
                    self._owner_id = user.id
            return None

        with self._lock:
            # Session changed while the request was in flight
            if not self._still_current(user.id):
                logger.debug("[Overdue] Discarding summary for a previous session")
                return None
            self._summary = summary
            self._state = OverdueLoadState.LOADED
            self._owner_id = user.id

        if summary.has_overdue:
            logger.info(
                f"[Overdue] {summary.overdue_count} overdue, restricted={summary.restricted_access}"
            )
        return summary

    def _still_current(self, user_id: str) -> bool:
        user = self._session.user
        return user is not None and user.id == user_id

    def is_access_restricted(self) -> bool:
        """False for non-members and whenever no summary has loaded."""
        summary = self._summary
        if not self._is_member() or summary is None:
            return False
        return summary.restricted_access

    def has_overdue(self) -> bool:
        summary = self._summary
        if not self._is_member() or summary is None:
            return False
        return summary.has_overdue

    def clear(self) -> None:
        with self._lock:
            self._summary = None
            self._state = OverdueLoadState.NOT_LOADED
            self._owner_id = None

    def _on_session_changed(self, session: SessionStore) -> None:
        user = session.user
        if self._state is OverdueLoadState.NOT_LOADED:
            return
        if user is None or user.id != self._owner_id:
            logger.debug("[Overdue] Session changed, dropping cached summary")
            self.clear()

    def load_details(self) -> List[OverdueRecord]:
        """
        Fetch every overdue record of the member.

        Raises:
            AppException: "Failed to load overdue payments" on any failure
        """
        if not self._is_member():
            return []
        try:
            data = self._api.get(Endpoints.OVERDUE_DETAILS)
            if isinstance(data, dict):
                data = data.get("overdues") or data.get("items") or []
            return [OverdueRecord.model_validate(row) for row in data or []]
        except AppException as e:
            logger.error(f"[Overdue] Error loading overdues: {e.error_code}")
            raise AppException(
                message="Failed to load overdue payments",
                recovery_hint=e.user_message,
                original_error=e,
                error_code=e.error_code,
            ) from e
        except (SchemaError, TypeError) as e:
            logger.error(f"[Overdue] Malformed overdue details: {type(e).__name__}")
            raise AppException(
                message="Failed to load overdue payments",
                original_error=e,
                error_code="OVERDUE_001",
            ) from e


def summarize_records(records: Iterable[OverdueRecord], member_id: str = "") -> OverdueSummary:
    """
    Aggregate detail rows the way the backend does for the summary.

    ``restricted_access`` is server policy and is never inferred here.
    """
    rows = list(records)
    total = sum((r.due_amount for r in rows), Decimal("0"))
    return OverdueSummary(
        member_id=member_id,
        has_overdue=bool(rows),
        overdue_count=len(rows),
        total_overdue_amount=total,
        oldest_overdue_days=max((r.days_overdue for r in rows), default=0),
        restricted_access=False,
    )


def banner_text(summary: Optional[OverdueSummary]) -> Optional[BannerText]:
    """Text for the overdue banner, or None when there is nothing to show."""
    if summary is None or not summary.has_overdue:
        return None
    counted = pluralize(summary.overdue_count, "overdue payment")
    sub_message = "Please complete payment to restore full access."
    if summary.restricted_access:
        sub_message = "Some features are restricted until your dues are cleared. " + sub_message
    return BannerText(
        title="Payment Overdue",
        message=f"You have {counted} totaling {format_inr(summary.total_overdue_amount)}.",
        sub_message=sub_message,
        restricted=summary.restricted_access,
    )
