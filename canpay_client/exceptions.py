"""
Canpay Client - Exception Classes

Typed exceptions raised locally by the client. Failures coming from the
network layer are not wrapped: they surface as the transport's own
``httpx.HTTPError`` subclasses, exported here as ``TransportFailure`` so
callers can catch them without importing httpx.
"""

from typing import Any

import httpx

TransportFailure = httpx.HTTPError


class CanpayError(Exception):
    """Base exception for all errors raised by the Canpay client itself."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Human-readable error description.
            details: Optional structured details for debugging.
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, details={self.details})"


# =============================================================================
# SESSION ERRORS
# =============================================================================


class UnauthenticatedError(CanpayError):
    """
    Raised when an operation needing a session runs without an access token.

    Raised before any request is sent. Call ``login()`` or ``register()``
    first, or ``renew_token()`` if a refresh token is still held.
    """

    def __init__(
        self,
        message: str = "Log in first.",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)


class MalformedCredentialResponseError(CanpayError):
    """
    Raised when a login, registration or renewal response lacks credentials.

    The session is left exactly as it was before the call.
    """

    def __init__(
        self,
        operation: str,
        missing_fields: list[str],
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize with the offending operation.

        Args:
            operation: Credential operation that received the response.
            missing_fields: Fields that were absent or not strings.
            message: Optional custom message.
            details: Optional additional details.
        """
        self.operation = operation
        self.missing_fields = missing_fields
        default_msg = (
            f"Malformed {operation} response: missing {', '.join(missing_fields)}"
        )
        full_details = details or {}
        full_details["operation"] = operation
        full_details["missing_fields"] = missing_fields
        super().__init__(message or default_msg, full_details)


# =============================================================================
# OPERATION ERRORS
# =============================================================================


class TagRequiredError(CanpayError):
    """Raised when an XRP transfer is requested without a destination tag."""

    def __init__(
        self,
        currency: str = "xrp",
        message: str = "Tag is required when remitting XRP",
        details: dict[str, Any] | None = None,
    ) -> None:
        self.currency = currency
        full_details = details or {}
        full_details["currency"] = currency
        super().__init__(message, full_details)


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigurationError(CanpayError):
    """
    Raised when the client is misconfigured or used before ``connect()``.

    Check environment variables and initialization parameters.
    """

    def __init__(
        self,
        message: str,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize with configuration context.

        Args:
            message: Description of the configuration issue.
            config_key: The problematic configuration key.
            details: Optional additional details.
        """
        self.config_key = config_key
        full_details = details or {}
        if config_key:
            full_details["config_key"] = config_key
        super().__init__(message, full_details)
