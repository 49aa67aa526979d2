"""Tests for the wallet, payment, card, bank and Insight operations."""

from urllib.parse import parse_qs

import pytest

from canpay_client import (
    BankAccount,
    CanpayClient,
    CanpayError,
    CreditCard,
    TagRequiredError,
    UnauthenticatedError,
)


AUTHENTICATED_CALLS = [
    ("wallet", "get_wallet", ("mona",)),
    ("wallet", "get_wallet", ()),
    ("wallet", "create_wallet", ("zny",)),
    ("wallet", "transfer", ("mona", "Maddr", 1.0)),
    ("wallet", "charge_jpy_via_credit_card", (1000, "tok_visa")),
    ("payments", "get_invoice", ("inv42",)),
    ("payments", "pay_invoice", ("inv42",)),
    ("payments", "issue_invoice", ("mona", 1.5)),
    ("payments", "get_payment_history", ("mona",)),
    ("cards", "get_credit_card", ()),
    ("cards", "register_credit_card", ({"number": "4242", "exp_month": 1, "exp_year": 2030, "cvc": "123"},)),
    ("bank", "get_bank_account", ()),
    ("bank", "update_bank_account", ({"branchCode": "1", "company": "c", "companyCode": "2", "name": "n", "number": "3", "type": "0"},)),
    ("insight", "get_monacoin_deposit_history", ()),
    ("insight", "get_bitzeny_deposit_history", ()),
]


@pytest.mark.asyncio
@pytest.mark.parametrize("interface,method,args", AUTHENTICATED_CALLS)
async def test_requires_session(service, interface, method, args):
    """Every domain operation fails locally without an access token."""
    async with CanpayClient(transport=service.transport) as client:
        operation = getattr(getattr(client, interface), method)

        with pytest.raises(UnauthenticatedError):
            await operation(*args)

    assert service.requests == []


async def _call(service, interface, method, *args, **kwargs):
    async with CanpayClient(transport=service.transport) as client:
        client.session.replace("J1", "R1")
        return await getattr(getattr(client, interface), method)(*args, **kwargs)


# =============================================================================
# WALLET TESTS
# =============================================================================


class TestWalletInterface:
    """Tests for WalletInterface."""

    @pytest.mark.asyncio
    async def test_get_all_wallets(self, service):
        service.add("GET", "/api/wallets/", [{"currency": "mona"}, {"currency": "xrp"}])

        result = await _call(service, "wallet", "get_wallet")

        assert result == [{"currency": "mona"}, {"currency": "xrp"}]
        assert service.requests[0].content == b""

    @pytest.mark.asyncio
    async def test_create_wallet(self, service):
        service.add("POST", "/api/wallets/zny", {"currency": "zny"})

        await _call(service, "wallet", "create_wallet", "zny")

        assert service.body(service.requests[0]) == {}

    @pytest.mark.asyncio
    async def test_transfer_lowercases_currency(self, service):
        """Test the currency is lower-cased in the path."""
        service.add("POST", "/api/wallets/transfer_mona", {"txid": "abc"})

        result = await _call(service, "wallet", "transfer", "MONA", "Maddr", 2.5)

        assert result == {"txid": "abc"}
        assert service.body(service.requests[0]) == {
            "amount": 2.5,
            "to": "Maddr",
            "tag": None,
        }

    @pytest.mark.asyncio
    async def test_transfer_xrp_with_tag(self, service):
        service.add("POST", "/api/wallets/transfer_xrp", {"txid": "def"})

        await _call(service, "wallet", "transfer", "XRP", "rAddr", 10, tag=1234)

        assert service.body(service.requests[0]) == {
            "amount": 10,
            "to": "rAddr",
            "tag": 1234,
        }

    @pytest.mark.asyncio
    async def test_transfer_xrp_requires_tag(self, service):
        """Test XRP without a tag fails before any request."""
        with pytest.raises(TagRequiredError) as exc:
            await _call(service, "wallet", "transfer", "Xrp", "rAddr", 10)

        assert exc.value.currency == "xrp"
        assert service.requests == []

    @pytest.mark.asyncio
    async def test_charge_jpy(self, service):
        service.add("POST", "/api/wallets/charge_jpy", {"charged": 1000})

        await _call(service, "wallet", "charge_jpy_via_credit_card", 1000, "tok_visa")

        assert service.body(service.requests[0]) == {"amount": 1000, "source": "tok_visa"}


# =============================================================================
# PAYMENTS TESTS
# =============================================================================


class TestPaymentsInterface:
    """Tests for PaymentsInterface."""

    @pytest.mark.asyncio
    async def test_issue_invoice(self, service):
        """Test the amount is sent as fee."""
        service.add("POST", "/api/payments", {"_id": "inv42"})

        result = await _call(service, "payments", "issue_invoice", "mona", 1.5)

        assert result == {"_id": "inv42"}
        assert service.body(service.requests[0]) == {"currency": "mona", "fee": 1.5}

    @pytest.mark.asyncio
    async def test_pay_invoice(self, service):
        service.add("POST", "/api/payments/inv42/execute", {"paid": True})

        assert await _call(service, "payments", "pay_invoice", "inv42") == {"paid": True}

    @pytest.mark.asyncio
    async def test_payment_history_defaults(self, service):
        service.add("GET", "/api/payments/history/mona?paidOnly=0", [])

        assert await _call(service, "payments", "get_payment_history", "mona") == []

    @pytest.mark.asyncio
    async def test_payment_history_paging(self, service):
        service.add("GET", "/api/payments/history/xrp?paidOnly=1&lastId=abc", [{"_id": "x"}])

        result = await _call(
            service, "payments", "get_payment_history", "xrp", paid_only=True, last_id="abc"
        )

        assert result == [{"_id": "x"}]


# =============================================================================
# CARDS & BANK TESTS
# =============================================================================


class TestCardsInterface:
    """Tests for CardsInterface."""

    @pytest.mark.asyncio
    async def test_get_credit_card(self, service):
        service.add("GET", "/api/card_tokens", {"last4": "4242"})

        assert await _call(service, "cards", "get_credit_card") == {"last4": "4242"}

    @pytest.mark.asyncio
    async def test_register_credit_card(self, service):
        """Test the nested expiry maps onto exp_month/exp_year."""
        service.add("POST", "/api/card_tokens", {"id": "card_1"})
        card = CreditCard(
            number="4242424242424242",
            expiry={"month": 12, "year": 2030},
            cvc="123",
        )

        await _call(service, "cards", "register_credit_card", card)

        assert service.body(service.requests[0]) == {
            "number": "4242424242424242",
            "exp_month": 12,
            "exp_year": 2030,
            "cvc": "123",
        }

    @pytest.mark.asyncio
    async def test_register_credit_card_values_unchanged(self, service):
        """Test numbers stay numbers and strings stay strings."""
        service.add("POST", "/api/card_tokens", {"id": "card_1"})

        await _call(
            service,
            "cards",
            "register_credit_card",
            {"number": 4242424242424242, "exp_month": "12", "cvc": 123},
        )

        assert service.body(service.requests[0]) == {
            "number": 4242424242424242,
            "exp_month": "12",
            "cvc": 123,
        }

    @pytest.mark.asyncio
    async def test_register_incomplete_card_without_session(self, service):
        """Test the session guard runs before the card is looked at."""
        async with CanpayClient(transport=service.transport) as client:
            with pytest.raises(UnauthenticatedError):
                await client.cards.register_credit_card({"number": "4242"})

        assert service.requests == []


class TestBankInterface:
    """Tests for BankInterface."""

    @pytest.mark.asyncio
    async def test_get_bank_account(self, service):
        service.add("GET", "/api/bank_accounts", {"name": "n"})

        assert await _call(service, "bank", "get_bank_account") == {"name": "n"}

    @pytest.mark.asyncio
    async def test_update_bank_account(self, service):
        """Test the account is sent via PUT with its camelCase keys."""
        service.add("PUT", "/api/bank_accounts", {"ok": True})
        account = BankAccount(
            branchCode="123",
            company="みずほ銀行",
            companyCode="0001",
            name="山本カンタ",
            number="1234567",
            type="0",
        )

        await _call(service, "bank", "update_bank_account", account)

        assert service.body(service.requests[0]) == {
            "branchCode": "123",
            "company": "みずほ銀行",
            "companyCode": "0001",
            "name": "山本カンタ",
            "number": "1234567",
            "type": "0",
        }

    @pytest.mark.asyncio
    async def test_update_partial_bank_account(self, service):
        """Test absent fields are left out and values are not coerced."""
        service.add("PUT", "/api/bank_accounts", {"ok": True})

        await _call(
            service,
            "bank",
            "update_bank_account",
            {"name": "n", "number": 3, "nickname": "ignored"},
        )

        assert service.body(service.requests[0]) == {"name": "n", "number": 3}


# =============================================================================
# INSIGHT TESTS
# =============================================================================


class TestInsightInterface:
    """Tests for the experimental InsightInterface."""

    @pytest.mark.asyncio
    async def test_monacoin_deposit_history(self, service):
        """Test the wallet address is looked up and sent as a form body."""
        service.add("GET", "/api/wallets/mona", [{"address": "MAddr1"}])
        service.add("POST", "/insight-api-monacoin/addrs/txs", {"totalItems": 0, "items": []})

        result = await _call(service, "insight", "get_monacoin_deposit_history", 5, 10)

        assert result == {"totalItems": 0, "items": []}
        assert len(service.requests) == 2

        lookup, txs = service.requests
        assert lookup.headers["Authorization"] == "J1"
        assert txs.url.host == "mona.insight.monaco-ex.org"
        assert "Authorization" not in txs.headers
        assert txs.headers["Content-Type"] == "application/x-www-form-urlencoded"
        assert parse_qs(txs.content.decode()) == {
            "noAsm": ["1"],
            "noScriptSig": ["1"],
            "noSpent": ["0"],
            "from": ["5"],
            "to": ["10"],
            "addrs": ["MAddr1"],
        }

    @pytest.mark.asyncio
    async def test_bitzeny_deposit_history(self, service):
        service.add("GET", "/api/wallets/zny", [{"address": "ZAddr1"}])
        service.add("POST", "/insight-api-monacoin/addrs/txs", {"items": []})

        await _call(service, "insight", "get_bitzeny_deposit_history")

        assert parse_qs(service.requests[1].content.decode())["addrs"] == ["ZAddr1"]
        assert parse_qs(service.requests[1].content.decode())["to"] == ["30"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "wallets",
        [[], {"address": "MAddr1"}, [{"currency": "mona"}], ["MAddr1"]],
    )
    async def test_deposit_history_without_address(self, service, wallets):
        """Test unusable wallet lookups fail before the Insight request."""
        service.add("GET", "/api/wallets/mona", wallets)

        with pytest.raises(CanpayError) as exc:
            await _call(service, "insight", "get_monacoin_deposit_history")

        assert exc.value.details["currency"] == "mona"
        assert len(service.requests) == 1
