"""
Background workers.

Network calls block, so screens run them on a QThread and receive the
outcome through a signal on the UI thread.
"""
from typing import Callable

from PyQt6 import QtCore

from models.payment import PaymentResult
from utils.error_handlers import format_exception
from utils.logging_config import get_logger

logger = get_logger(__name__)


class PaymentWorker(QtCore.QThread):
    """Runs one orchestrator call (e.g. process_contribution_payment) off the UI thread."""
    finished_with_result = QtCore.pyqtSignal(object)

    def __init__(self, run_payment: Callable[[], PaymentResult], parent=None):
        super().__init__(parent)
        self._run_payment = run_payment

    def run(self):
        try:
            result = self._run_payment()
        except Exception:
            # Orchestrator runs never raise; this guards the thread itself
            logger.exception("Payment worker crashed")
            result = PaymentResult.failed("Payment failed", error_code="PAY_UNKNOWN")
        self.finished_with_result.emit(result)


class TaskWorker(QtCore.QThread):
    """Runs a blocking call (restore, refresh, receipt fetch) off the UI thread."""
    succeeded = QtCore.pyqtSignal(object)
    failed = QtCore.pyqtSignal(object)

    def __init__(self, task: Callable[[], object], parent=None):
        super().__init__(parent)
        self._task = task

    def run(self):
        try:
            value = self._task()
        except Exception as e:
            logger.warning(f"Background task failed: {format_exception(e, include_traceback=False)}")
            self.failed.emit(e)
            return
        self.succeeded.emit(value)
