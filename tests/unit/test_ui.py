"""
Unit Tests for the PyQt6 Widgets and Workers

Runs on the offscreen platform; skipped where PyQt6 is not installed.
"""

import os

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
QtWidgets = pytest.importorskip("PyQt6.QtWidgets")

from conftest import MEMBER, overdue_summary, sign_in
from managers.access_gate import Capability, GateChoice, evaluate
from models.overdue import OverdueSummary
from models.payment import PaymentResult
from models.session import Role
from managers.member_connect_manager import FlowOutcome, FlowStatus
from ui.components.custom_dialog import build_access_restricted_dialog
from ui.components.login_dialog import LoginDialog
from ui.components.overdue_banner import OverdueAlertBanner
from ui.workers import PaymentWorker, TaskWorker
from utils.error_handlers import APIError
from utils.validators import ValidationError


@pytest.fixture(scope="module")
def qapp():
    return QtWidgets.QApplication.instance() or QtWidgets.QApplication([])


class TestOverdueBanner:
    def test_hidden_without_overdues(self, qapp):
        banner = OverdueAlertBanner()

        banner.update_summary(OverdueSummary.unrestricted())

        assert banner.isHidden()

    def test_shows_totals(self, qapp):
        banner = OverdueAlertBanner()

        banner.update_summary(OverdueSummary.model_validate(overdue_summary(2, "750.00", True)))

        assert not banner.isHidden()
        assert banner.title_label.text() == "Payment Overdue"
        assert banner.message_label.text() == "You have 2 overdue payments totaling ₹750.00."

    def test_hides_again_after_logout(self, qapp):
        banner = OverdueAlertBanner()
        banner.update_summary(OverdueSummary.model_validate(overdue_summary(1, "100", False)))

        banner.update_summary(None)

        assert banner.isHidden()

    def test_pay_now_signal(self, qapp):
        banner = OverdueAlertBanner()
        clicks = []
        banner.pay_now_clicked.connect(lambda: clicks.append(True))

        banner.pay_button.click()

        assert clicks == [True]


class TestAccessRestrictedDialog:
    def test_buttons_match_decision_choices(self, qapp):
        summary = OverdueSummary.model_validate(overdue_summary(2, "750.00", True))
        decision = evaluate(summary, Role.MEMBER, Capability.SUBMIT_BOOK_REQUEST)

        dialog = build_access_restricted_dialog(None, decision)

        assert list(dialog.buttons) == [GateChoice.VIEW_OVERDUES, GateChoice.CANCEL]
        assert dialog.buttons[GateChoice.VIEW_OVERDUES].text() == "View Overdues"
        assert dialog.windowTitle() == "Access Restricted"
        assert dialog.message_label.text() == decision.message

    def test_clicking_records_choice(self, qapp):
        summary = OverdueSummary.model_validate(overdue_summary(2, "750.00", True))
        dialog = build_access_restricted_dialog(None, evaluate(summary, Role.MEMBER, Capability.SUBMIT_BOOK_REQUEST))

        dialog.buttons[GateChoice.VIEW_OVERDUES].click()

        assert dialog.result_value is GateChoice.VIEW_OVERDUES


class TestLoginDialog:
    def test_invalid_email_stays_open(self, qapp):
        dialog = LoginDialog()
        dialog.email_input.setText("member-at-example.com")
        dialog.password_input.setText("validpass")

        dialog.sign_in_button.click()

        assert dialog.request is None
        assert dialog.result() != QtWidgets.QDialog.DialogCode.Accepted
        assert dialog.error_label.text() == "Please enter a valid email address"

    def test_accepts_normalised_request(self, qapp):
        dialog = LoginDialog()
        dialog.email_input.setText(" Member@Example.com ")
        dialog.password_input.setText("validpass")

        dialog.sign_in_button.click()

        assert dialog.request.email == "member@example.com"
        assert dialog.result() == QtWidgets.QDialog.DialogCode.Accepted


class TestMainWindow:
    @pytest.fixture
    def window(self, qapp, context):
        from main import MainWindow
        return MainWindow(context)

    def test_signed_out_offers_sign_in(self, window):
        assert window.sign_in_action.isEnabled()
        assert not window.sign_out_action.isEnabled()
        assert not window.contribute_action.isEnabled()

    def test_sign_in_updates_actions(self, window, context, fake_http):
        sign_in(context, fake_http, MEMBER, "tok-member")

        assert not window.sign_in_action.isEnabled()
        assert window.contribute_action.isEnabled()
        assert "Asha Rao" in window.status_label.text()

    def test_pay_now_opens_overdues(self, window):
        opened = []
        window.show_overdues = lambda: opened.append(True)

        window.banner.pay_button.click()

        assert opened == [True]

    def test_failed_contribution_shows_error(self, window, monkeypatch):
        shown = []
        monkeypatch.setattr("main.show_error", lambda parent, title, message: shown.append((title, message)))

        window.on_contribution_finished(FlowOutcome(status=FlowStatus.FAILED, message="Payment cancelled"))

        assert shown == [("Payment Failed", "Payment cancelled")]

    def test_describe_failure(self):
        from main import describe_failure

        assert describe_failure(ValidationError("Please enter both email and password")) == (
            "Please enter both email and password"
        )
        assert describe_failure(APIError(status_code=401, detail="Invalid credentials")) == "Invalid credentials"
        assert describe_failure(RuntimeError("boom")) == "Something went wrong. Please try again."


class TestWorkers:
    """run() is called directly so signals are delivered synchronously"""

    def test_task_worker_success(self, qapp):
        worker = TaskWorker(lambda: 42)
        values = []
        worker.succeeded.connect(values.append)

        worker.run()

        assert values == [42]

    def test_task_worker_failure(self, qapp):
        def boom():
            raise RuntimeError("offline")

        worker = TaskWorker(boom)
        errors = []
        worker.failed.connect(errors.append)

        worker.run()

        assert isinstance(errors[0], RuntimeError)

    def test_payment_worker_never_raises(self, qapp):
        def crash():
            raise RuntimeError("unexpected")

        worker = PaymentWorker(crash)
        results = []
        worker.finished_with_result.connect(results.append)

        worker.run()

        assert isinstance(results[0], PaymentResult)
        assert results[0].error_code == "PAY_UNKNOWN"
