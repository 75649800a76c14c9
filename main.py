# -*- coding: utf-8 -*-
"""
TLC Library desktop client - entry point.

Sets up logging, wires the AppContext, restores the persisted session off the
UI thread and, for members, loads the overdue status before showing the
banner. The toolbar signs in and out and starts a welfare contribution; the
banner's Pay Now opens the overdue list.
"""
import sys
import webbrowser

from PyQt6.QtCore import pyqtSignal
from PyQt6.QtGui import QAction
from PyQt6.QtWidgets import QApplication, QDialog, QInputDialog, QLabel, QMainWindow, QVBoxLayout, QWidget

from app.context import AppContext
from config import get_settings
from managers.access_gate import Capability, GateChoice, home_screen
from managers.member_connect_manager import FlowStatus
from ui.components.custom_dialog import CustomDialog, show_access_restricted, show_error, show_info, show_success
from ui.components.login_dialog import LoginDialog
from ui.components.overdue_banner import OverdueAlertBanner
from ui.workers import TaskWorker
from utils.error_handlers import APIError, AppException, format_exception, handle_errors, notify_user
from utils.formatting import format_inr
from utils.logging_config import AppLogger, get_logger
from utils.validators import ValidationError

logger = get_logger(__name__)


def describe_failure(error: BaseException) -> str:
    """Message for a failed background task, suitable for a dialog"""
    if isinstance(error, ValidationError):
        return error.message
    if isinstance(error, APIError) and error.detail:
        return error.detail
    if isinstance(error, AppException):
        return error.get_user_message()
    return "Something went wrong. Please try again."


class MainWindow(QMainWindow):
    """Shell window: session status, account actions and the overdue banner."""

    # Session listeners fire on worker threads; this hops to the UI thread
    session_changed = pyqtSignal()

    def __init__(self, context: AppContext):
        super().__init__()
        self.context = context
        self._workers = []
        self.setWindowTitle("The Learning Corner Library")
        self.resize(900, 640)

        toolbar = self.addToolBar("Account")
        self.sign_in_action = QAction("Sign In", self)
        self.sign_in_action.triggered.connect(lambda: self.prompt_sign_in())
        self.sign_out_action = QAction("Sign Out", self)
        self.sign_out_action.triggered.connect(lambda: self.sign_out())
        self.contribute_action = QAction("Welfare Contribution", self)
        self.contribute_action.triggered.connect(lambda: self.start_contribution())
        for action in (self.sign_in_action, self.sign_out_action, self.contribute_action):
            toolbar.addAction(action)

        central = QWidget()
        layout = QVBoxLayout(central)
        self.banner = OverdueAlertBanner()
        self.banner.pay_now_clicked.connect(lambda: self.show_overdues())
        self.status_label = QLabel("Loading...")
        layout.addWidget(self.banner)
        layout.addWidget(self.status_label)
        layout.addStretch()
        self.setCentralWidget(central)

        self.session_changed.connect(self._render_session)
        context.session.add_listener(lambda _session: self.session_changed.emit())
        self._render_session()

    def start(self) -> None:
        # Overdue status depends on the role, so it waits for restore()
        self._run(self.context.session.restore, self._on_restored)

    def _on_restored(self, user) -> None:
        self._render_session()
        if user is not None and not self.context.session.loading:
            self._refresh_overdue()

    def _refresh_overdue(self) -> None:
        self._run(self.context.overdue.refresh, self.banner.update_summary)

    def _render_session(self) -> None:
        user = self.context.session.user
        self.sign_in_action.setEnabled(user is None)
        self.sign_out_action.setEnabled(user is not None)
        self.contribute_action.setEnabled(user is not None and user.is_member)
        if user is None:
            self.status_label.setText("Not signed in" if not self.context.session.loading else "Loading...")
            self.banner.update_summary(None)
            return
        self.status_label.setText(f"Signed in as {user.name or user.email} ({home_screen(user.role)})")

    # -------------------- account --------------------

    def prompt_sign_in(self) -> None:
        dialog = LoginDialog(self)
        if dialog.exec() != QDialog.DialogCode.Accepted or dialog.request is None:
            return
        request = dialog.request
        self._run(
            lambda: self.context.session.login(request.email, request.password),
            self._on_signed_in,
            on_failure=lambda e: show_error(self, "Login Failed", describe_failure(e)),
        )

    def _on_signed_in(self, user) -> None:
        show_success(self, "Welcome", f"Signed in as {user.name or user.email}")
        if user.is_member:
            self._refresh_overdue()

    def sign_out(self) -> None:
        self._run(self.context.session.logout, lambda _result: None)

    # -------------------- overdues and payments --------------------

    @handle_errors(user_message="Overdue Payments")
    def show_overdues(self) -> None:
        self._run(
            self.context.overdue.load_details,
            self._on_overdues_loaded,
            on_failure=lambda e: show_error(self, "Overdue Payments", describe_failure(e)),
        )

    def _on_overdues_loaded(self, records) -> None:
        if not records:
            show_info(self, "Overdue Payments", "You have no overdue payments.")
            return
        lines = [
            f"{record.overdue_type.value}: {format_inr(record.due_amount)} ({record.days_overdue} days overdue)"
            for record in records
        ]
        show_info(self, "Overdue Payments", "\n".join(lines))

    @handle_errors(user_message="Payment Error")
    def start_contribution(self) -> None:
        decision = self.context.gate.check(Capability.MAKE_WELFARE_CONTRIBUTION)
        if not decision.allowed:
            self._on_denied(decision)
            return
        amount, ok = QInputDialog.getDouble(
            self, "Welfare Contribution", "Amount (₹, minimum 100):", 100.0, 0.0, 10_000_000.0, 2
        )
        if not ok:
            return
        self._run(
            lambda: self.context.member_connect.make_welfare_contribution(f"{amount:.2f}"),
            self.on_contribution_finished,
        )

    def on_contribution_finished(self, outcome) -> None:
        if outcome.status is FlowStatus.DENIED:
            self._on_denied(outcome.decision)
            return
        if not outcome.ok:
            show_error(self, "Payment Failed", outcome.message)
            return

        self.banner.update_summary(self.context.overdue.summary)
        choice = CustomDialog(
            self,
            "Payment Successful",
            "Your contribution has been received. Thank you!",
            "success",
            buttons=[("Close", False, False), ("Share Receipt", True, True)],
        ).show_and_wait()
        if choice:
            self.share_receipt(outcome.payment.payment_id)

    def _on_denied(self, decision) -> None:
        if show_access_restricted(self, decision) is GateChoice.VIEW_OVERDUES:
            self.show_overdues()

    def share_receipt(self, payment_id: str) -> None:
        self._run(
            lambda: self.context.receipts.fetch(payment_id),
            self._open_receipt,
            on_failure=lambda e: show_error(self, "Error", describe_failure(e)),
        )

    def _open_receipt(self, handle) -> None:
        if not webbrowser.open(handle.uri):
            show_info(self, "Receipt Saved", f"Receipt saved to: {handle.path or handle.url}")

    # -------------------- workers --------------------

    def _run(self, task, on_success, on_failure=None) -> None:
        worker = TaskWorker(task, self)
        worker.succeeded.connect(on_success)
        worker.failed.connect(lambda e: logger.error(f"Background task failed: {format_exception(e)}"))
        if on_failure is not None:
            worker.failed.connect(on_failure)
        worker.finished.connect(lambda: self._workers.remove(worker))
        self._workers.append(worker)
        worker.start()


def main() -> int:
    try:
        settings = get_settings()
    except AppException as e:
        print(e.get_user_message(), file=sys.stderr)
        return 2

    AppLogger.setup(log_dir=settings.log_dir, level=settings.log_level)
    logger.info(f"Starting TLC Library client ({settings.environment})")

    app = QApplication(sys.argv)
    try:
        context = AppContext.build(settings)
    except AppException as e:
        logger.error(e.get_technical_details())
        notify_user("Startup Error", e.get_user_message())
        return 1

    window = MainWindow(context)
    window.show()
    window.start()
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
