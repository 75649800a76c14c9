"""
Error Handling Framework

Typed exceptions with user-facing messages and recovery hints, plus the
HTTP status -> message table used by every network call.

Usage:
    from utils.error_handlers import AppException, OrderCreationError, handle_errors

    raise OrderCreationError(message="Amount below minimum")

    @handle_errors(fallback_return=[], user_message="Failed to load overdues")
    def load_rows():
        ...
"""

import logging
import os
import re
import traceback
from functools import wraps
from typing import Any, Callable, Optional, TypeVar, cast

F = TypeVar('F', bound=Callable[..., Any])


def _is_production() -> bool:
    env = os.environ.get('TLC_ENVIRONMENT', '').lower()
    return env in ('production', 'prod')


def _sanitize_path(text: str) -> str:
    """
    Mask home directories in error messages.

    Args:
        text: Text containing potential file paths

    Returns:
        Text with paths sanitized
    """
    if not text:
        return text

    home = os.path.expanduser("~")
    if home and home != "~":
        text = text.replace(home, "~")

    text = re.sub(r'C:\\Users\\[^\\]+', r'C:\\Users\\***', text, flags=re.IGNORECASE)
    text = re.sub(r'/home/[^/]+', '/home/***', text)
    text = re.sub(r'/Users/[^/]+', '/Users/***', text)

    return text


class AppException(Exception):
    """
    Base exception class for all client-raised errors.

    Carries:
    - User-friendly message
    - Recovery hint
    - Original exception (if wrapped)
    - Error code (for categorization)
    """

    def __init__(
        self,
        message: str,
        recovery_hint: str = "",
        original_error: Optional[Exception] = None,
        error_code: Optional[str] = None
    ):
        """
        Args:
            message: User-friendly error message
            recovery_hint: Suggestion for how to resolve the error
            original_error: Original exception if this wraps another error
            error_code: Error code for categorization (e.g., "PAY_ORDER")
        """
        self.user_message = message
        self.recovery_hint = recovery_hint
        self.original_error = original_error
        self.error_code = error_code

        full_message = message
        if error_code:
            full_message = f"[{error_code}] {full_message}"
        if recovery_hint:
            full_message += f"\n{recovery_hint}"

        super().__init__(full_message)

    def get_user_message(self) -> str:
        """
        Get user-friendly error message with recovery hint.

        Returns:
            Formatted error message for display to users
        """
        msg = self.user_message
        if self.recovery_hint:
            msg += f"\n\n{self.recovery_hint}"
        return msg

    def get_technical_details(self, sanitize: bool = True) -> str:
        """
        Get technical error details for logging.

        In production the original error's message is omitted.

        Args:
            sanitize: Whether to mask home directories (default True)
        """
        details = f"Error: {self.user_message}"
        if self.error_code:
            details += f"\nCode: {self.error_code}"

        if self.original_error:
            if _is_production():
                details += f"\nOriginal error: {type(self.original_error).__name__}"
            else:
                details += f"\nOriginal error: {type(self.original_error).__name__}: {self.original_error}"

        if sanitize:
            details = _sanitize_path(details)

        return details


# === HTTP / network exceptions ===

class APIError(AppException):
    """
    Raised when the backend answers with an HTTP error status.

    ``detail`` holds the server's own ``detail``/``message`` field when present.
    """

    def __init__(
        self,
        message: str = "API request failed",
        recovery_hint: str = "",
        original_error: Optional[Exception] = None,
        status_code: Optional[int] = None,
        detail: Optional[str] = None
    ):
        self.status_code = status_code
        self.detail = detail
        super().__init__(
            message=message,
            recovery_hint=recovery_hint,
            original_error=original_error,
            error_code=f"API_{status_code}" if status_code else "API_000"
        )

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code == 401


class NetworkError(AppException):
    """Raised on timeouts and connection failures (no HTTP response)."""

    def __init__(
        self,
        message: str = "Network error. Please check your internet connection.",
        recovery_hint: str = "",
        original_error: Optional[Exception] = None,
        timed_out: bool = False
    ):
        self.timed_out = timed_out
        super().__init__(
            message=message,
            recovery_hint=recovery_hint,
            original_error=original_error,
            error_code="NET_TIMEOUT" if timed_out else "NET_001"
        )


class AuthenticationError(AppException):
    """Raised when a login/registration response cannot establish a session."""

    def __init__(
        self,
        message: str = "Invalid response from server",
        recovery_hint: str = "",
        original_error: Optional[Exception] = None
    ):
        super().__init__(
            message=message,
            recovery_hint=recovery_hint,
            original_error=original_error,
            error_code="AUTH_001"
        )


# === Configuration exceptions ===

class ConfigurationError(AppException):
    """
    Raised when configuration is invalid or missing.

    Covers both local settings and the remote payment configuration.
    """

    def __init__(
        self,
        message: str = "Configuration error",
        recovery_hint: str = "Check configuration file or environment variables",
        original_error: Optional[Exception] = None,
        error_code: str = "CONFIG_001"
    ):
        super().__init__(
            message=message,
            recovery_hint=recovery_hint,
            original_error=original_error,
            error_code=error_code
        )


# === Payment exceptions ===

class OrderCreationError(AppException):
    """Raised when the backend refuses or fails to create a payment order."""

    def __init__(
        self,
        message: str = "Failed to create payment order",
        recovery_hint: str = "",
        original_error: Optional[Exception] = None
    ):
        super().__init__(
            message=message,
            recovery_hint=recovery_hint,
            original_error=original_error,
            error_code="PAY_ORDER"
        )


class CheckoutCancelledError(AppException):
    """Raised when the member closes the checkout without paying."""

    def __init__(
        self,
        message: str = "Payment cancelled by user",
        recovery_hint: str = "",
        original_error: Optional[Exception] = None
    ):
        super().__init__(
            message=message,
            recovery_hint=recovery_hint,
            original_error=original_error,
            error_code="PAY_CANCELLED"
        )


class CheckoutError(AppException):
    """Raised when the checkout UI reports a gateway-side failure or times out."""

    def __init__(
        self,
        message: str = "Payment could not be completed",
        recovery_hint: str = "",
        original_error: Optional[Exception] = None
    ):
        super().__init__(
            message=message,
            recovery_hint=recovery_hint,
            original_error=original_error,
            error_code="PAY_CHECKOUT"
        )


class VerificationError(AppException):
    """
    Raised when the backend does not confirm a checkout.

    The gateway may already have captured the money, so the member is told to
    contact support instead of paying again.
    """

    def __init__(
        self,
        message: str = "Payment verification failed",
        recovery_hint: str = (
            "If money was deducted, contact the library with your payment ID "
            "instead of paying again."
        ),
        original_error: Optional[Exception] = None
    ):
        super().__init__(
            message=message,
            recovery_hint=recovery_hint,
            original_error=original_error,
            error_code="PAY_VERIFY"
        )


class ReceiptError(AppException):
    """Raised when a receipt cannot be fetched or saved."""

    def __init__(
        self,
        message: str = "Failed to download receipt",
        recovery_hint: str = "",
        original_error: Optional[Exception] = None
    ):
        super().__init__(
            message=message,
            recovery_hint=recovery_hint,
            original_error=original_error,
            error_code="RECEIPT_001"
        )


# === HTTP status -> user message ===

_TIMEOUT_MESSAGE = "Request timeout. Please check your internet connection and try again."
_NETWORK_MESSAGE = "Network error. Please check your internet connection."
_UNREACHABLE_MESSAGE = "Unable to connect to server. Please try again later."


def describe_http_error(
    status_code: int,
    detail: Optional[str] = None,
    fallback: Optional[str] = None
) -> str:
    """
    Map an HTTP error status to the message shown to the member.

    Args:
        status_code: HTTP status returned by the backend
        detail: Server-provided ``detail``/``message`` (preferred where meaningful)
        fallback: Caller-specific fallback message

    Returns:
        Human-readable message
    """
    if status_code == 400:
        return detail or "Invalid request. Please check your input and try again."
    if status_code == 401:
        return "Your session has expired. Please login again."
    if status_code == 403:
        return "You do not have permission to perform this action."
    if status_code == 404:
        return detail or "The requested resource was not found."
    if status_code == 409:
        return detail or "This action conflicts with existing data."
    if status_code == 422:
        return detail or "Validation error. Please check your input."
    if status_code == 429:
        return "Too many requests. Please wait a moment and try again."
    if status_code == 500:
        return "Server error. Please try again later."
    if status_code in (502, 503):
        return "Service temporarily unavailable. Please try again in a few moments."
    return detail or fallback or "An unexpected error occurred. Please try again."


def describe_network_error(timed_out: bool, connection_failed: bool, fallback: Optional[str] = None) -> str:
    """Message for failures that produced no HTTP response."""
    if timed_out:
        return _TIMEOUT_MESSAGE
    if connection_failed:
        return _NETWORK_MESSAGE
    return fallback or _UNREACHABLE_MESSAGE


# === User notification ===

def notify_user(title: str, message: str) -> None:
    """
    Show a message to the member.

    Uses a PyQt6 message box when a QApplication is running, otherwise logs.

    Args:
        title: Notification title
        message: Notification message
    """
    logger = logging.getLogger("error_handlers")

    try:
        from PyQt6.QtWidgets import QApplication, QMessageBox
        app = QApplication.instance()
        if app is not None:
            QMessageBox.warning(None, title, message)
            logger.info(f"[USER NOTIFICATION] Shown via PyQt6: {title}")
            return
    except ImportError:
        pass
    except Exception as e:
        logger.debug(f"PyQt6 notification failed: {e}")

    logger.warning(f"[USER NOTIFICATION] {title}: {message}")


# === Decorator for error handling ===

def handle_errors(
    fallback_return: Any = None,
    user_message: str = "",
    log_level: str = "ERROR",
    reraise: bool = False,
    catch_exceptions: tuple = (Exception,)
) -> Callable[[F], F]:
    """
    Decorator for UI-boundary functions.

    Logs the error with a stack trace, shows ``user_message`` (if given) and
    returns ``fallback_return`` unless ``reraise`` is set.

    Example:
        >>> @handle_errors(fallback_return=[], user_message="Failed to load overdues")
        ... def load_overdues() -> list:
        ...     pass
    """
    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args, **kwargs):
            logger = logging.getLogger(func.__module__)

            try:
                return func(*args, **kwargs)

            except AppException as e:
                logger.log(
                    getattr(logging, log_level.upper(), logging.ERROR),
                    f"{func.__name__} raised AppException: {e.get_technical_details()}",
                    exc_info=True
                )

                if user_message:
                    notify_user(user_message, e.get_user_message())

                if reraise:
                    raise
                return fallback_return

            except catch_exceptions as e:
                logger.log(
                    getattr(logging, log_level.upper(), logging.ERROR),
                    f"{func.__name__} failed: {type(e).__name__}: {e}",
                    exc_info=True
                )

                if user_message:
                    notify_user(user_message, str(e))

                if reraise:
                    raise
                return fallback_return

        return cast(F, wrapper)

    return decorator


class ErrorContext:
    """
    Context manager that logs and (optionally) suppresses errors in a block.

    Usage:
        >>> with ErrorContext("Refresh overdue banner"):
        ...     banner.refresh()
    """

    def __init__(self, operation_name: str, reraise: bool = False):
        self.operation_name = operation_name
        self.reraise = reraise
        self.error: Optional[BaseException] = None
        self.logger = logging.getLogger("error_context")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            return False

        self.error = exc_val
        self.logger.error(
            f"{self.operation_name} failed: {exc_type.__name__}: {exc_val}",
            exc_info=(exc_type, exc_val, exc_tb)
        )

        if self.reraise:
            return False

        return True


def format_exception(exc: Exception, include_traceback: Optional[bool] = None) -> str:
    """
    Format exception for display or logging.

    Tracebacks are off by default in production; paths are always sanitized.
    """
    if include_traceback is None:
        include_traceback = not _is_production()

    if isinstance(exc, AppException):
        msg = exc.get_technical_details(sanitize=True)
    else:
        msg = f"{type(exc).__name__}: {exc}"
        msg = _sanitize_path(msg)

    if include_traceback:
        tb = ''.join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        tb = _sanitize_path(tb)
        msg += f"\n\nTraceback:\n{tb}"

    return msg
