"""
Canpay Client - Core Module

The main CanpayClient implementation providing:
- The authenticated request pipeline
- Session lifecycle (login, registration, token renewal)
- Wallet, invoice, card and bank account operations
- Experimental deposit history lookups against an Insight explorer

Usage:
    from canpay_client import CanpayClient

    async with CanpayClient() as client:
        user = await client.login("a@b.com", "secret")
        wallets = await client.wallet.get_wallet()
        invoice = await client.payments.get_invoice("5b1d...")
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
import os
from collections.abc import AsyncIterator, Awaitable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, TypeVar

import httpx

from .exceptions import (
    CanpayError,
    ConfigurationError,
    TagRequiredError,
    UnauthenticatedError,
)
from .session import SessionState
from .utils import (
    BankAccount,
    CredentialResponse,
    CreditCard,
    RequestLogger,
    build_bank_account_body,
    build_card_body,
    build_history_path,
    parse_credential_response,
    validate_base_url,
)

logger = logging.getLogger("canpay")

T = TypeVar("T")

DEFAULT_BASE_URL = "https://api.canpayment.work/api"
DEFAULT_INSIGHT_URL = "https://mona.insight.monaco-ex.org/insight-api-monacoin"


# =============================================================================
# CONFIGURATION
# =============================================================================


@dataclass
class CanpayConfig:
    """
    Configuration for the CanpayClient.

    Can be set via constructor arguments or environment variables.

    Environment Variables:
        CANPAY_BASE_URL: Canpay API origin
        CANPAY_INSIGHT_URL: Insight explorer API origin
        CANPAY_TIMEOUT: Request timeout in seconds
    """

    base_url: str = field(
        default_factory=lambda: os.environ.get("CANPAY_BASE_URL", DEFAULT_BASE_URL)
    )
    insight_url: str = field(
        default_factory=lambda: os.environ.get("CANPAY_INSIGHT_URL", DEFAULT_INSIGHT_URL)
    )
    timeout: float = field(
        default_factory=lambda: float(os.environ.get("CANPAY_TIMEOUT", "30.0"))
    )

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self.base_url = validate_base_url(self.base_url)
        self.insight_url = validate_base_url(self.insight_url)


# =============================================================================
# REQUEST PIPELINE
# =============================================================================


class RequestPipeline:
    """
    Issues requests against the Canpay API with the current access token.

    Every call sends exactly one request. Nothing is cached or retried, and
    transport errors (``httpx.RequestError``, ``httpx.HTTPStatusError``)
    reach the caller untouched.
    """

    def __init__(
        self,
        base_url: str,
        session: SessionState,
        request_logger: RequestLogger | None = None,
    ) -> None:
        """
        Initialize the pipeline.

        Args:
            base_url: API origin that request paths are relative to.
            session: Session whose access token is attached to requests.
            request_logger: Optional structured logger.
        """
        self.base_url = base_url
        self._session = session
        self._request_logger = request_logger or RequestLogger()
        self._http_client: httpx.AsyncClient | None = None

    @property
    def is_open(self) -> bool:
        return self._http_client is not None

    def open(
        self,
        timeout: httpx.Timeout,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Create the underlying HTTP client."""
        if self._http_client is not None:
            return
        self._http_client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def dispatch(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
        allow_anonymous: bool = False,
    ) -> Any:
        """
        Send one request and return its decoded JSON body.

        Args:
            method: HTTP method.
            path: Path relative to the base URL, optionally with a query string.
            body: JSON body, omitted when None.
            allow_anonymous: Send even when no access token is held.

        Returns:
            The response body as parsed JSON, or None for an empty body.

        Raises:
            UnauthenticatedError: If a token is required and none is held.
            ConfigurationError: If the client is not connected.
        """
        access_token = self._session.access_token
        if not allow_anonymous and not access_token:
            raise UnauthenticatedError()

        if self._http_client is None:
            raise ConfigurationError("Client not connected. Call connect() first.")

        self._request_logger.log_dispatch(method, path, bool(access_token))

        response = await self._http_client.request(
            method.upper(),
            path,
            headers={
                "Authorization": access_token,
                "Content-Type": "application/json",
            },
            json=body,
        )
        response.raise_for_status()

        if not response.content:
            return None
        return response.json()


# =============================================================================
# WALLET INTERFACE
# =============================================================================


class WalletInterface:
    """Wallet operations: balances, creation, transfers and JPY top-ups."""

    def __init__(self, client: CanpayClient) -> None:
        self._client = client

    async def get_wallet(self, cur: str | None = None) -> Any:
        """
        Get wallets (MONA, XRP, JPY, ZNY, ALIS etc.).

        The XRP wallet includes its secret key.

        Args:
            cur: Currency code. All available wallets if omitted.

        Returns:
            List of wallet records.
        """
        return await self._client._pipeline.dispatch("GET", f"/wallets/{cur or ''}")

    async def create_wallet(self, cur: str) -> Any:
        """Create a wallet for ``cur``."""
        return await self._client._pipeline.dispatch("POST", f"/wallets/{cur}", {})

    async def transfer(
        self,
        currency: str,
        to: str,
        amount: float,
        tag: int | None = None,
    ) -> Any:
        """
        Send funds to another address.

        Args:
            currency: Currency code (case-insensitive).
            to: Destination address.
            amount: Amount to send.
            tag: Ripple destination tag, required for XRP.

        Raises:
            UnauthenticatedError: If not logged in.
            TagRequiredError: If sending XRP without a tag.
        """
        self._client._ensure_authenticated()

        currency = currency.lower()
        if currency == "xrp" and tag is None:
            raise TagRequiredError(currency)

        return await self._client._pipeline.dispatch(
            "POST",
            f"/wallets/transfer_{currency}",
            {"amount": amount, "to": to, "tag": tag},
        )

    async def charge_jpy_via_credit_card(self, amount: int, stripe_card_token: str) -> Any:
        """
        Deposit Japanese yen with a credit card.

        Args:
            amount: Amount of JPY.
            stripe_card_token: Stripe card token, starting with ``tok_``.
        """
        return await self._client._pipeline.dispatch(
            "POST",
            "/wallets/charge_jpy",
            {"amount": amount, "source": stripe_card_token},
        )


# =============================================================================
# PAYMENTS INTERFACE
# =============================================================================


class PaymentsInterface:
    """Invoice operations."""

    def __init__(self, client: CanpayClient) -> None:
        self._client = client

    async def get_invoice(self, invoice_id: str) -> Any:
        return await self._client._pipeline.dispatch("GET", f"/payments/{invoice_id}")

    async def pay_invoice(self, invoice_id: str) -> Any:
        """Pay the invoice ``invoice_id`` from the matching wallet."""
        return await self._client._pipeline.dispatch(
            "POST", f"/payments/{invoice_id}/execute", {}
        )

    async def issue_invoice(self, currency: str, amount: float) -> Any:
        """
        Issue an invoice.

        Args:
            currency: Currency the invoice is payable in.
            amount: Amount due. Sent to the service as ``fee``.
        """
        return await self._client._pipeline.dispatch(
            "POST", "/payments", {"currency": currency, "fee": amount}
        )

    async def get_payment_history(
        self,
        cur: str,
        paid_only: bool = False,
        last_id: str = "",
    ) -> Any:
        """
        Get the history of your invoices.

        Args:
            cur: Currency code.
            paid_only: Only return paid invoices.
            last_id: Record ID to continue after, for paging.

        Returns:
            List of invoice records.
        """
        return await self._client._pipeline.dispatch(
            "GET", build_history_path(cur, paid_only, last_id)
        )


# =============================================================================
# CARDS INTERFACE
# =============================================================================


class CardsInterface:
    """Registered credit card operations."""

    def __init__(self, client: CanpayClient) -> None:
        self._client = client

    async def get_credit_card(self) -> Any:
        return await self._client._pipeline.dispatch("GET", "/card_tokens")

    async def register_credit_card(self, card: CreditCard | dict[str, Any]) -> Any:
        """
        Register credit card information.

        Args:
            card: ``number``, ``expiry`` (``month``, four-digit ``year``) and
                ``cvc``. Values are sent as given.

        Returns:
            The card record from Stripe.
        """
        self._client._ensure_authenticated()
        return await self._client._pipeline.dispatch(
            "POST", "/card_tokens", build_card_body(card)
        )


# =============================================================================
# BANK INTERFACE
# =============================================================================


class BankInterface:
    """Withdrawal bank account operations."""

    def __init__(self, client: CanpayClient) -> None:
        self._client = client

    async def get_bank_account(self) -> Any:
        return await self._client._pipeline.dispatch("GET", "/bank_accounts")

    async def update_bank_account(self, account: BankAccount | dict[str, Any]) -> Any:
        """Replace the registered bank account. Absent fields are not sent."""
        self._client._ensure_authenticated()
        return await self._client._pipeline.dispatch(
            "PUT", "/bank_accounts", build_bank_account_body(account)
        )


# =============================================================================
# INSIGHT INTERFACE (EXPERIMENTAL)
# =============================================================================


class InsightInterface:
    """
    Deposit history lookups against an Insight block explorer.

    Experimental and not tested against the live explorer. Requests go to
    the Insight origin directly and never carry the Canpay access token;
    only the wallet address lookup uses the authenticated pipeline.
    """

    def __init__(self, client: CanpayClient) -> None:
        self._client = client

    async def get_monacoin_deposit_history(self, from_: int = 0, to: int = 30) -> Any:
        """Get MONA deposit transactions of your wallet address."""
        return await self._deposit_history("mona", from_, to)

    async def get_bitzeny_deposit_history(self, from_: int = 0, to: int = 30) -> Any:
        """Get ZNY deposit transactions of your wallet address."""
        return await self._deposit_history("zny", from_, to)

    async def _deposit_history(self, cur: str, from_: int, to: int) -> Any:
        wallets = await self._client.wallet.get_wallet(cur)
        if not isinstance(wallets, list) or not wallets:
            raise CanpayError(f"No {cur} wallet found", {"currency": cur})
        wallet = wallets[0]
        if not isinstance(wallet, dict) or not wallet.get("address"):
            raise CanpayError(
                f"The {cur} wallet has no address", {"currency": cur, "wallet": wallet}
            )

        http_client = self._client._insight_client
        if http_client is None:
            raise ConfigurationError("Client not connected. Call connect() first.")

        response = await http_client.post(
            "/addrs/txs",
            data={
                "noAsm": 1,
                "noScriptSig": 1,
                "noSpent": 0,
                "from": from_,
                "to": to,
                "addrs": wallet["address"],
            },
        )
        response.raise_for_status()
        return response.json()


# =============================================================================
# MAIN CLIENT
# =============================================================================


class CanpayClient:
    """
    The main Canpay API client.

    Holds the session for one user and exposes the API through grouped
    interfaces:
    - ``client.wallet``: wallets, transfers, JPY deposits
    - ``client.payments``: invoices
    - ``client.cards``: credit cards
    - ``client.bank``: bank accounts
    - ``client.insight``: experimental deposit history

    Usage:
        # Async context manager (recommended)
        async with CanpayClient() as client:
            await client.login("a@b.com", "secret")
            wallets = await client.wallet.get_wallet("mona")

        # Manual lifecycle
        client = CanpayClient()
        await client.connect()
        try:
            # ... use client ...
        finally:
            await client.close()
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        insight_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the Canpay client.

        Args:
            base_url: Canpay API origin (or use CANPAY_BASE_URL).
            insight_url: Insight explorer origin (or use CANPAY_INSIGHT_URL).
            timeout: Request timeout in seconds.
            transport: Optional httpx transport, shared by both origins.
        """
        self._config = CanpayConfig()

        if base_url:
            self._config.base_url = validate_base_url(base_url)
        if insight_url:
            self._config.insight_url = validate_base_url(insight_url)
        if timeout is not None:
            self._config.timeout = timeout

        self._transport = transport
        self._session = SessionState()
        self._request_logger = RequestLogger()
        self._pipeline = RequestPipeline(
            self._config.base_url, self._session, self._request_logger
        )
        self._insight_client: httpx.AsyncClient | None = None
        self._session_lock = asyncio.Lock()

        # Public interfaces
        self.wallet = WalletInterface(self)
        self.payments = PaymentsInterface(self)
        self.cards = CardsInterface(self)
        self.bank = BankInterface(self)
        self.insight = InsightInterface(self)

    async def __aenter__(self) -> CanpayClient:
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Async context manager exit."""
        await self.close()

    @property
    def session(self) -> SessionState:
        """Current session credentials."""
        return self._session

    async def connect(self) -> None:
        """Initialize the HTTP clients for the API and Insight origins."""
        if self._pipeline.is_open:
            return

        timeout = httpx.Timeout(
            timeout=self._config.timeout,
            connect=5.0,
            read=self._config.timeout,
            write=self._config.timeout,
            pool=5.0,
        )

        self._pipeline.open(timeout, self._transport)
        self._insight_client = httpx.AsyncClient(
            base_url=self._config.insight_url,
            timeout=timeout,
            transport=self._transport,
        )
        logger.info(f"Canpay client ready for {self._config.base_url}")

    async def close(self) -> None:
        """Close HTTP clients and cleanup resources."""
        await self._pipeline.close()

        if self._insight_client:
            await self._insight_client.aclose()
            self._insight_client = None

    def is_authenticated(self) -> bool:
        """Check if an access token is held."""
        return self._session.is_authenticated()

    # =========================================================================
    # SESSION LIFECYCLE
    # =========================================================================

    async def login(self, email: str, password: str) -> Any:
        """
        Log in.

        Args:
            email: Account email.
            password: Account password.

        Returns:
            The user payload returned by the service.

        Raises:
            MalformedCredentialResponseError: If the response lacks tokens.
        """
        async with self._session_lock:
            result = await self._pipeline.dispatch(
                "POST",
                "/users/login",
                {"email": email, "password": password},
                allow_anonymous=True,
            )
            credentials = parse_credential_response("login", result)
            self._replace_session(credentials, "login")
        return credentials.payload

    async def register(self, email: str, screen_name: str, password: str) -> Any:
        """
        Create an account. The new account is logged in on success.

        Args:
            email: Account email.
            screen_name: Public display name.
            password: Account password.

        Returns:
            The user payload returned by the service.
        """
        async with self._session_lock:
            result = await self._pipeline.dispatch(
                "POST",
                "/users/register",
                {"email": email, "password": password, "screenName": screen_name},
                allow_anonymous=True,
            )
            credentials = parse_credential_response("register", result)
            self._replace_session(credentials, "register")
        return credentials.payload

    async def renew_token(self) -> bool:
        """
        Exchange the refresh token for a new token pair.

        Works without a valid access token. Renewals, logins and
        registrations run one at a time. On failure the session is left
        unchanged and the error is raised; there is no retry.

        Returns:
            True once the session holds the new pair.
        """
        async with self._session_lock:
            result = await self._pipeline.dispatch(
                "POST",
                "/refresh_token",
                {"token": self._session.refresh_token},
                allow_anonymous=True,
            )
            credentials = parse_credential_response("renew_token", result)
            self._replace_session(credentials, "renew_token")
        return True

    # =========================================================================
    # INTERNAL METHODS
    # =========================================================================

    def _ensure_authenticated(self) -> None:
        """Raise if no access token is held."""
        if not self.is_authenticated():
            raise UnauthenticatedError()

    def _replace_session(self, credentials: CredentialResponse, operation: str) -> None:
        self._session.replace(credentials.jwt, credentials.refresh_token)
        self._request_logger.log_session_replaced(operation)


# =============================================================================
# SYNCHRONOUS WRAPPER
# =============================================================================


class SyncCanpayClient:
    """
    Synchronous wrapper around CanpayClient.

    Usage:
        with SyncCanpayClient() as client:
            client.login("a@b.com", "secret")
            invoice = client.payments.get_invoice("5b1d...")
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        """Initialize the sync client (same args as CanpayClient)."""
        self._async_client = CanpayClient(*args, **kwargs)
        self._loop: asyncio.AbstractEventLoop | None = None

    def __enter__(self) -> SyncCanpayClient:
        """Sync context manager entry."""
        self._loop = asyncio.new_event_loop()
        self._loop.run_until_complete(self._async_client.connect())
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Sync context manager exit."""
        if self._loop:
            self._loop.run_until_complete(self._async_client.close())
            self._loop.close()
            self._loop = None

    def _run(self, coro: Awaitable[T]) -> T:
        """Run a coroutine synchronously."""
        if not self._loop:
            if inspect.iscoroutine(coro):
                coro.close()
            raise ConfigurationError("Client not connected. Use with statement.")
        return self._loop.run_until_complete(coro)

    @property
    def session(self) -> SessionState:
        return self._async_client.session

    def is_authenticated(self) -> bool:
        return self._async_client.is_authenticated()

    def login(self, email: str, password: str) -> Any:
        """Log in (blocking)."""
        return self._run(self._async_client.login(email, password))

    def register(self, email: str, screen_name: str, password: str) -> Any:
        """Create an account (blocking)."""
        return self._run(self._async_client.register(email, screen_name, password))

    def renew_token(self) -> bool:
        """Renew the token pair (blocking)."""
        return self._run(self._async_client.renew_token())

    @property
    def wallet(self) -> SyncInterface:
        return SyncInterface(self, self._async_client.wallet)

    @property
    def payments(self) -> SyncInterface:
        return SyncInterface(self, self._async_client.payments)

    @property
    def cards(self) -> SyncInterface:
        return SyncInterface(self, self._async_client.cards)

    @property
    def bank(self) -> SyncInterface:
        return SyncInterface(self, self._async_client.bank)

    @property
    def insight(self) -> SyncInterface:
        return SyncInterface(self, self._async_client.insight)


class SyncInterface:
    """Blocking view of one of the async interfaces."""

    def __init__(self, client: SyncCanpayClient, interface: Any) -> None:
        self._client = client
        self._interface = interface

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self._interface, name)
        if name.startswith("_") or not inspect.iscoroutinefunction(attr):
            return attr

        @functools.wraps(attr)
        def blocking(*args: Any, **kwargs: Any) -> Any:
            return self._client._run(attr(*args, **kwargs))

        return blocking


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


@asynccontextmanager
async def create_client(
    email: str | None = None,
    password: str | None = None,
    **kwargs: Any,
) -> AsyncIterator[CanpayClient]:
    """
    Convenience function to create a connected CanpayClient.

    Logs in first when both email and password are given.

    Args:
        email: Account email.
        password: Account password.
        **kwargs: Additional CanpayClient arguments.

    Yields:
        Connected CanpayClient.

    Usage:
        async with create_client("a@b.com", "secret") as client:
            wallets = await client.wallet.get_wallet()
    """
    client = CanpayClient(**kwargs)
    try:
        await client.connect()
        if email and password:
            await client.login(email, password)
        yield client
    finally:
        await client.close()
