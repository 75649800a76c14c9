"""
Unit Tests for the Overdue Status Cache

Covers role exemption, fetch failure semantics, session changes, detail
loading and banner text.
"""

from decimal import Decimal

import pytest
import requests
from pydantic import ValidationError

from conftest import ADMIN, MEMBER, make_response, overdue_summary, sign_in
from managers.overdue_manager import OverdueLoadState, banner_text, summarize_records
from models.overdue import OverdueRecord, OverdueResolution, OverdueSummary, OverdueType
from utils.error_handlers import AppException

SUMMARY = "/api/overdue/member/summary"
DETAILS = "/api/overdue/member/details"


class TestRefresh:
    """refresh() fetches once for members only"""

    def test_admin_is_never_fetched(self, context, fake_http):
        sign_in(context, fake_http, ADMIN, "tok-admin")

        summary = context.overdue.refresh()

        assert summary.restricted_access is False
        assert summary.has_overdue is False
        assert context.overdue.load_state is OverdueLoadState.EXEMPT
        assert context.overdue.is_access_restricted() is False
        assert fake_http.count("GET", SUMMARY) == 0

    def test_signed_out_is_never_fetched(self, context, fake_http):
        summary = context.overdue.refresh()

        assert summary.restricted_access is False
        assert context.overdue.load_state is OverdueLoadState.NOT_LOADED
        assert fake_http.calls == []

    def test_member_summary_is_cached(self, restricted_member_context, fake_http):
        overdue = restricted_member_context.overdue

        assert overdue.load_state is OverdueLoadState.LOADED
        assert overdue.summary.overdue_count == 2
        assert overdue.summary.total_overdue_amount == Decimal("750.00")
        # Reads never hit the network
        assert overdue.is_access_restricted() is True
        assert overdue.is_access_restricted() is True
        assert overdue.has_overdue() is True
        assert fake_http.count("GET", SUMMARY) == 1

    @pytest.mark.parametrize("failure", [
        make_response(500, {"detail": "boom"}),
        make_response(200, {"has_overdue": True, "overdue_count": 0}),
        requests.exceptions.ConnectionError("down"),
    ])
    def test_failure_is_not_the_same_as_clear(self, context, fake_http, failure):
        sign_in(context, fake_http, MEMBER, "tok-member")
        fake_http.add("GET", SUMMARY, failure)

        assert context.overdue.refresh() is None

        assert context.overdue.summary is None
        assert context.overdue.load_state is OverdueLoadState.FAILED
        assert context.overdue.is_access_restricted() is False

    def test_refresh_replaces_previous_summary(self, restricted_member_context, fake_http):
        fake_http.reply("GET", SUMMARY, 200, overdue_summary())

        summary = restricted_member_context.overdue.refresh()

        assert summary.has_overdue is False
        assert restricted_member_context.overdue.is_access_restricted() is False

    def test_summary_from_previous_session_is_discarded(self, context, fake_http):
        sign_in(context, fake_http, MEMBER, "tok-member")
        other = dict(MEMBER, id="u-member-2", email="other@example.com")

        def switch_user_mid_flight(call):
            sign_in(context, fake_http, other, "tok-other")
            return make_response(200, overdue_summary(2, "750.00", True))

        fake_http.add("GET", SUMMARY, switch_user_mid_flight)

        assert context.overdue.refresh() is None
        assert context.overdue.summary is None


class TestSessionChanges:
    """Cached standing never outlives the session it belongs to"""

    def test_logout_clears_cache(self, restricted_member_context, fake_http):
        fake_http.reply("POST", "/api/auth/logout", 200, {})

        restricted_member_context.session.logout()

        assert restricted_member_context.overdue.summary is None
        assert restricted_member_context.overdue.load_state is OverdueLoadState.NOT_LOADED
        assert restricted_member_context.overdue.is_access_restricted() is False

    def test_login_as_different_user_clears_cache(self, restricted_member_context, fake_http):
        other = dict(MEMBER, id="u-member-2", email="other@example.com")

        sign_in(restricted_member_context, fake_http, other, "tok-other")

        assert restricted_member_context.overdue.summary is None


class TestLoadDetails:
    """load_details() lists overdue records"""

    def test_details_list(self, member_context, fake_http):
        fake_http.reply("GET", DETAILS, 200, [
            {"id": "o1", "overdue_type": "Welfare", "due_amount": "500.00", "days_overdue": 40},
            {"id": "o2", "overdue_type": "Educational", "due_amount": "250", "days_overdue": 5},
            {"id": "o3", "overdue_type": "Library fine", "due_amount": "0"},
        ])

        records = member_context.overdue.load_details()

        assert [r.resolution for r in records] == [
            OverdueResolution.PAY_WELFARE,
            OverdueResolution.CONTACT_ADMIN,
            OverdueResolution.NONE,
        ]
        assert records[2].overdue_type is OverdueType.OTHER

    def test_details_envelope(self, member_context, fake_http):
        fake_http.reply("GET", DETAILS, 200, {"overdues": [{"id": "o1", "due_amount": "10"}]})

        records = member_context.overdue.load_details()

        assert len(records) == 1
        assert records[0].id == "o1"

    def test_details_failure_message(self, member_context, fake_http):
        fake_http.reply("GET", DETAILS, 500, {"detail": "boom"})

        with pytest.raises(AppException) as exc_info:
            member_context.overdue.load_details()

        assert exc_info.value.user_message == "Failed to load overdue payments"

    def test_admin_has_no_details(self, context, fake_http):
        sign_in(context, fake_http, ADMIN, "tok-admin")

        assert context.overdue.load_details() == []
        assert fake_http.count("GET", DETAILS) == 0


class TestSummaryAndBanner:
    """Summary invariants and the banner text"""

    def test_summarize_records(self):
        records = [
            OverdueRecord(id="o1", due_amount=Decimal("500"), days_overdue=40),
            OverdueRecord(id="o2", due_amount=Decimal("250"), days_overdue=5),
        ]

        summary = summarize_records(records, member_id="M-001")

        assert summary.overdue_count == 2
        assert summary.total_overdue_amount == Decimal("750")
        assert summary.oldest_overdue_days == 40
        assert summary.has_overdue is True
        assert summary.restricted_access is False

    def test_summarize_no_records(self):
        assert summarize_records([]).has_overdue is False

    @pytest.mark.parametrize("data", [
        {"has_overdue": True, "overdue_count": 0},
        {"has_overdue": False, "overdue_count": 3},
        {"has_overdue": False, "overdue_count": 0, "restricted_access": True},
    ])
    def test_inconsistent_summary_rejected(self, data):
        with pytest.raises(ValidationError):
            OverdueSummary.model_validate(data)

    def test_banner_text_for_restricted_member(self):
        summary = OverdueSummary.model_validate(overdue_summary(2, "750.00", True))

        text = banner_text(summary)

        assert text.title == "Payment Overdue"
        assert "2 overdue payments" in text.message
        assert "₹750.00" in text.message
        assert text.restricted is True
        assert text.sub_message.endswith("Please complete payment to restore full access.")

    def test_banner_text_singular(self):
        summary = OverdueSummary.model_validate(overdue_summary(1, "1500", False))

        text = banner_text(summary)

        assert text.message == "You have 1 overdue payment totaling ₹1,500.00."
        assert text.sub_message == "Please complete payment to restore full access."

    def test_no_banner_without_overdues(self):
        assert banner_text(None) is None
        assert banner_text(OverdueSummary.unrestricted()) is None
