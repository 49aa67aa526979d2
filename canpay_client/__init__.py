"""
Canpay Client - Python SDK for the Canpay payment API

Manage wallets, issue and pay invoices, and register cards and bank
accounts on Canpay from asyncio code.

Quick Start:
    from canpay_client import CanpayClient

    async with CanpayClient() as client:
        user = await client.login("a@b.com", "secret")

        # Wallets
        wallets = await client.wallet.get_wallet("mona")

        # Invoices
        invoice = await client.payments.issue_invoice(currency="mona", amount=1.5)
        await client.payments.pay_invoice(invoice["_id"])

        # Access tokens are short-lived
        await client.renew_token()

Configuration:
    Set these environment variables or pass to constructor:
    - CANPAY_BASE_URL: Canpay API origin (default: https://api.canpayment.work/api)
    - CANPAY_INSIGHT_URL: Insight explorer origin for deposit history
    - CANPAY_TIMEOUT: Request timeout in seconds

Errors:
    UnauthenticatedError is raised before any request when no session is
    held. Network and HTTP status failures are raised as the transport's
    own exceptions, available here as TransportFailure.
"""

from .core import (
    BankInterface,
    # Main client classes
    CanpayClient,
    CanpayConfig,
    CardsInterface,
    InsightInterface,
    PaymentsInterface,
    RequestPipeline,
    SyncCanpayClient,
    # Interface classes
    WalletInterface,
    # Convenience functions
    create_client,
)
from .exceptions import (
    # Base
    CanpayError,
    ConfigurationError,
    MalformedCredentialResponseError,
    TagRequiredError,
    TransportFailure,
    UnauthenticatedError,
)
from .session import Credentials, SessionState
from .utils import (
    BankAccount,
    CardExpiry,
    CredentialResponse,
    CreditCard,
    RequestLogger,
)

__version__ = "0.1.0"
__all__ = [
    # Version
    "__version__",
    # Main client
    "CanpayClient",
    "CanpayConfig",
    "SyncCanpayClient",
    "RequestPipeline",
    "create_client",
    # Interfaces
    "WalletInterface",
    "PaymentsInterface",
    "CardsInterface",
    "BankInterface",
    "InsightInterface",
    # Session
    "SessionState",
    "Credentials",
    # Data models
    "CredentialResponse",
    "CreditCard",
    "BankAccount",
    "CardExpiry",
    # Exceptions
    "CanpayError",
    "UnauthenticatedError",
    "MalformedCredentialResponseError",
    "TagRequiredError",
    "ConfigurationError",
    "TransportFailure",
    # Utilities
    "RequestLogger",
]
