"""
Utility modules
- logging_config: logging setup
- error_handlers: error taxonomy and UI-boundary handling
- validators: input validation
- secrets_manager: persisted credential storage
- payment_client: /api/payment collaborator calls
- auth_helpers, formatting: small helpers
"""
from utils.logging_config import get_logger, AppLogger
from utils.error_handlers import (
    AppException,
    APIError,
    NetworkError,
    AuthenticationError,
    ConfigurationError,
    OrderCreationError,
    CheckoutCancelledError,
    CheckoutError,
    VerificationError,
    ReceiptError,
    ErrorContext,
    describe_http_error,
    handle_errors,
    notify_user,
    format_exception,
)

__all__ = [
    # Logging
    'get_logger',
    'AppLogger',
    # Error handling
    'AppException',
    'APIError',
    'NetworkError',
    'AuthenticationError',
    'ConfigurationError',
    'OrderCreationError',
    'CheckoutCancelledError',
    'CheckoutError',
    'VerificationError',
    'ReceiptError',
    'ErrorContext',
    'describe_http_error',
    'handle_errors',
    'notify_user',
    'format_exception',
]
