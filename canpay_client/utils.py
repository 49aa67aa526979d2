"""
Canpay Client - Utility Functions

Helper functions for:
- Credential response validation
- Request body shapes
- Path building
- Logging utilities
"""

import logging
from typing import Any, TypedDict

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import MalformedCredentialResponseError

logger = logging.getLogger("canpay")


# =============================================================================
# DATA MODELS
# =============================================================================


class CredentialResponse(BaseModel):
    """
    Response of the login, registration and token refresh endpoints.

    The service treats registration as an implicit login, so all three
    return the same shape.
    """

    jwt: str = Field(description="Access token")
    refresh_token: str = Field(alias="refreshToken", description="Refresh token")
    payload: Any = Field(default=None, description="User payload returned to the caller")

    model_config = ConfigDict(populate_by_name=True)


class CardExpiry(TypedDict, total=False):
    """Card expiry: month (1-12) and four-digit year."""

    month: Any
    year: Any


class CreditCard(TypedDict, total=False):
    """
    Credit card details for ``/card_tokens``.

    Values are sent as given; nothing is coerced or checked.

    Example:
        {"number": 4242424242424242, "expiry": {"month": 12, "year": 2030}, "cvc": 123}
    """

    number: Any
    expiry: CardExpiry
    cvc: Any


class BankAccount(TypedDict, total=False):
    """
    Withdrawal bank account, in the service's wire format.

    Example:
        {
            "branchCode": "123",
            "company": "みずほ銀行",
            "companyCode": "0001",
            "name": "山本カンタ",
            "number": "1234567",
            "type": "0",
        }
    """

    branchCode: str
    company: str
    companyCode: str
    name: str
    number: str
    type: str


BANK_ACCOUNT_FIELDS = ("branchCode", "company", "companyCode", "name", "number", "type")


# =============================================================================
# RESPONSE VALIDATION
# =============================================================================


def parse_credential_response(operation: str, body: Any) -> CredentialResponse:
    """
    Validate a credential response.

    Args:
        operation: Name of the credential operation (for error context).
        body: Parsed JSON body returned by the service.

    Returns:
        The validated CredentialResponse.

    Raises:
        MalformedCredentialResponseError: If ``jwt`` or ``refreshToken`` is
            missing or not a string.
    """
    if not isinstance(body, dict):
        raise MalformedCredentialResponseError(operation, ["jwt", "refreshToken"])

    try:
        return CredentialResponse.model_validate(body)
    except ValidationError as e:
        missing = sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]})
        raise MalformedCredentialResponseError(operation, missing) from e


# =============================================================================
# REQUEST BODIES
# =============================================================================


def build_card_body(card: CreditCard | dict[str, Any]) -> dict[str, Any]:
    """
    Map card details onto the ``/card_tokens`` body.

    ``expiry.month``/``expiry.year`` become ``exp_month``/``exp_year``;
    flat ``exp_month``/``exp_year`` keys are accepted as well. Values pass
    through untouched and absent keys are left out.
    """
    expiry = card.get("expiry") or {}
    fields = {
        "number": card.get("number"),
        "exp_month": expiry.get("month", card.get("exp_month")),
        "exp_year": expiry.get("year", card.get("exp_year")),
        "cvc": card.get("cvc"),
    }
    present = {
        "number": "number" in card,
        "exp_month": "month" in expiry or "exp_month" in card,
        "exp_year": "year" in expiry or "exp_year" in card,
        "cvc": "cvc" in card,
    }
    return {key: value for key, value in fields.items() if present[key]}


def build_bank_account_body(account: BankAccount | dict[str, Any]) -> dict[str, Any]:
    """Copy the known bank account fields that are present, unchanged."""
    return {key: account[key] for key in BANK_ACCOUNT_FIELDS if key in account}


# =============================================================================
# PATH UTILITIES
# =============================================================================


def build_history_path(cur: str, paid_only: bool = False, last_id: str = "") -> str:
    """
    Build the payment history path, including its query string.

    Args:
        cur: Currency code.
        paid_only: Only include paid invoices.
        last_id: Record ID to page from.

    Returns:
        Path relative to the base URL.
    """
    path = f"/payments/history/{cur}?paidOnly={int(bool(paid_only))}"
    if last_id:
        path += f"&lastId={last_id}"
    return path


# =============================================================================
# LOGGING UTILITIES
# =============================================================================


class RequestLogger:
    """
    Structured logger for pipeline activity.

    Never receives token values; only event names, methods and paths.
    """

    def __init__(self, logger_name: str = "canpay.requests") -> None:
        self.logger = logging.getLogger(logger_name)

    def log_dispatch(self, method: str, path: str, authenticated: bool) -> None:
        """Log an outgoing request."""
        self.logger.debug(
            "Dispatching request",
            extra={
                "event": "request_dispatch",
                "method": method.upper(),
                "path": self._redact_path(path),
                "authenticated": authenticated,
            },
        )

    def log_session_replaced(self, operation: str) -> None:
        """Log a credential replacement."""
        self.logger.info(
            "Session credentials replaced",
            extra={"event": "session_replaced", "operation": operation},
        )

    @staticmethod
    def _redact_path(path: str) -> str:
        """Drop query parameters from paths before logging."""
        if "?" in path:
            base, _ = path.split("?", 1)
            return f"{base}?[REDACTED]"
        return path


# =============================================================================
# VALIDATION UTILITIES
# =============================================================================


def validate_base_url(url: str) -> str:
    """
    Validate and normalize a service URL.

    Args:
        url: The URL to validate.

    Returns:
        Normalized URL without trailing slash.

    Raises:
        ValueError: If URL is invalid.
    """
    if not url:
        raise ValueError("Base URL cannot be empty")

    url = url.rstrip("/")

    if not url.startswith(("http://", "https://")):
        raise ValueError(f"Invalid URL scheme: {url}")

    return url
