"""
Unit Tests for Error Handlers

Tests custom exceptions, HTTP status messages, the error decorator and the
error context manager.
"""

import pytest
from utils.error_handlers import (
    AppException,
    APIError,
    AuthenticationError,
    CheckoutCancelledError,
    CheckoutError,
    ConfigurationError,
    NetworkError,
    OrderCreationError,
    ReceiptError,
    VerificationError,
    describe_http_error,
    describe_network_error,
    format_exception,
    handle_errors,
    ErrorContext,
)


class TestAppException:
    """Test base AppException class"""

    def test_app_exception_creation(self):
        """Test AppException can be created with message and hint"""
        exc = AppException(
            message="Test error",
            recovery_hint="Try this fix",
            error_code="TEST_001"
        )

        assert exc.user_message == "Test error"
        assert exc.recovery_hint == "Try this fix"
        assert exc.error_code == "TEST_001"

    def test_app_exception_str(self):
        """Test AppException string representation carries code and message"""
        exc = AppException(message="Test error", error_code="TEST_001")

        assert str(exc) == "[TEST_001] Test error"

    def test_user_message_includes_hint(self):
        """Test the displayed message appends the recovery hint"""
        exc = AppException(message="Test error", recovery_hint="Try again")

        assert exc.get_user_message() == "Test error\n\nTry again"

    def test_technical_details_mask_home(self, monkeypatch):
        """Test home directories are masked in logged details"""
        monkeypatch.delenv("TLC_ENVIRONMENT", raising=False)
        exc = AppException(
            message="Write failed",
            original_error=OSError("/home/asha/.tlc_library/receipts is read-only"),
        )

        details = exc.get_technical_details()

        assert "/home/asha" not in details
        assert "OSError" in details

    def test_production_hides_original_message(self, monkeypatch):
        """Test production logging keeps only the original error type"""
        monkeypatch.setenv("TLC_ENVIRONMENT", "production")
        exc = AppException(message="Failed", original_error=ValueError("secret-token-value"))

        assert "secret-token-value" not in exc.get_technical_details()


class TestPaymentErrors:
    """Test payment exception defaults"""

    def test_cancelled_default(self):
        exc = CheckoutCancelledError()

        assert exc.user_message == "Payment cancelled by user"
        assert exc.error_code == "PAY_CANCELLED"

    def test_verification_hint_warns_against_paying_twice(self):
        exc = VerificationError(message="Signature mismatch")

        assert exc.user_message == "Signature mismatch"
        assert "instead of paying again" in exc.recovery_hint

    def test_defaults(self):
        assert OrderCreationError().user_message == "Failed to create payment order"
        assert ReceiptError().user_message == "Failed to download receipt"
        assert AuthenticationError().user_message == "Invalid response from server"
        assert CheckoutError().error_code == "PAY_CHECKOUT"

    def test_configuration_error_code(self):
        exc = ConfigurationError(message="Failed to load payment configuration", error_code="PAY_CONFIG")

        assert exc.error_code == "PAY_CONFIG"


class TestAPIError:
    """Test APIError exception"""

    def test_api_error_creation(self):
        """Test API error keeps status and server detail"""
        exc = APIError(message="Invalid credentials", status_code=401, detail="Invalid credentials")

        assert exc.error_code == "API_401"
        assert exc.is_unauthorized is True
        assert exc.detail == "Invalid credentials"

    def test_api_error_without_status(self):
        assert APIError().error_code == "API_000"

    def test_network_error_timeout(self):
        assert NetworkError(timed_out=True).error_code == "NET_TIMEOUT"
        assert NetworkError().error_code == "NET_001"


class TestStatusMessages:
    """Test HTTP status -> member message table"""

    @pytest.mark.parametrize("status, expected", [
        (401, "Your session has expired. Please login again."),
        (403, "You do not have permission to perform this action."),
        (429, "Too many requests. Please wait a moment and try again."),
        (500, "Server error. Please try again later."),
        (502, "Service temporarily unavailable. Please try again in a few moments."),
        (503, "Service temporarily unavailable. Please try again in a few moments."),
    ])
    def test_fixed_messages(self, status, expected):
        """Test statuses whose message ignores the server detail"""
        assert describe_http_error(status, detail="ignored") == expected

    @pytest.mark.parametrize("status", [400, 404, 409, 422])
    def test_detail_preferred(self, status):
        """Test client-error statuses prefer the server detail"""
        assert describe_http_error(status, detail="Amount below minimum") == "Amount below minimum"

    def test_unknown_status_uses_fallback(self):
        assert describe_http_error(418, fallback="Failed to submit request") == "Failed to submit request"
        assert describe_http_error(418) == "An unexpected error occurred. Please try again."

    def test_network_messages(self):
        assert "timeout" in describe_network_error(timed_out=True, connection_failed=False).lower()
        assert "internet connection" in describe_network_error(timed_out=False, connection_failed=True)
        assert describe_network_error(False, False) == "Unable to connect to server. Please try again later."


class TestHandleErrorsDecorator:
    """Test handle_errors decorator"""

    def test_decorator_catches_exception(self):
        """Test decorator catches and handles exceptions"""
        @handle_errors(fallback_return=[])
        def failing_function():
            raise ValueError("Test error")

        result = failing_function()
        assert result == []

    def test_decorator_notifies_app_exception(self, monkeypatch):
        """Test decorator shows the AppException's user message"""
        shown = []
        monkeypatch.setattr("utils.error_handlers.notify_user", lambda title, message: shown.append((title, message)))

        @handle_errors(fallback_return=[], user_message="Failed to load overdues")
        def load():
            raise AppException(message="Server error. Please try again later.")

        assert load() == []
        assert shown == [("Failed to load overdues", "Server error. Please try again later.")]

    def test_decorator_allows_success(self):
        """Test decorator allows successful execution"""
        @handle_errors(fallback_return=None)
        def successful_function():
            return "success"

        result = successful_function()
        assert result == "success"

    def test_decorator_catches_specific_exceptions(self):
        """Test decorator catches specific exception types"""
        @handle_errors(
            catch_exceptions=(ValueError, TypeError),
            fallback_return="error"
        )
        def type_error_function():
            raise TypeError("Type error")

        result = type_error_function()
        assert result == "error"

    def test_decorator_does_not_catch_other_exceptions(self):
        """Test decorator lets other exceptions through"""
        @handle_errors(
            catch_exceptions=(ValueError,),
            fallback_return="error"
        )
        def runtime_error_function():
            raise RuntimeError("Runtime error")

        with pytest.raises(RuntimeError):
            runtime_error_function()

    def test_decorator_reraise(self):
        """Test reraise=True propagates after logging"""
        @handle_errors(reraise=True)
        def failing_function():
            raise OrderCreationError()

        with pytest.raises(OrderCreationError):
            failing_function()


class TestErrorContext:
    """Test ErrorContext context manager"""

    def test_error_context_suppresses_and_records(self):
        """Test ErrorContext logs and swallows errors by default"""
        with ErrorContext("Refresh overdue banner") as ctx:
            raise ValueError("Original error")

        assert isinstance(ctx.error, ValueError)

    def test_error_context_allows_success(self):
        """Test ErrorContext allows successful execution"""
        result = None
        with ErrorContext("test operation") as ctx:
            result = "success"

        assert result == "success"
        assert ctx.error is None

    def test_error_context_reraise(self):
        """Test ErrorContext re-raises when asked"""
        with pytest.raises(ValueError):
            with ErrorContext("test", reraise=True):
                raise ValueError("Original")


class TestFormatException:
    """Test format_exception output"""

    def test_app_exception_without_traceback(self):
        text = format_exception(ReceiptError(), include_traceback=False)

        assert text == "Error: Failed to download receipt\nCode: RECEIPT_001"

    def test_plain_exception_with_traceback(self):
        try:
            raise KeyError("member_id")
        except KeyError as e:
            text = format_exception(e, include_traceback=True)

        assert text.startswith("KeyError")
        assert "Traceback:" in text


class TestErrorCodes:
    """Test error codes are unique and consistent"""

    def test_error_codes_unique(self):
        """Test each error type has unique code"""
        errors = [
            OrderCreationError(),
            CheckoutCancelledError(),
            CheckoutError(),
            VerificationError(),
            ReceiptError(),
            AuthenticationError(),
            NetworkError(),
            APIError(status_code=500),
            ConfigurationError(),
        ]

        codes = [e.error_code for e in errors]
        assert len(codes) == len(set(codes))

    def test_error_code_format(self):
        """Test error codes follow CATEGORY_DETAIL format"""
        for exc in [OrderCreationError(), ReceiptError(), NetworkError(), ConfigurationError()]:
            category, _, detail = exc.error_code.partition("_")
            assert category.isupper()
            assert detail
