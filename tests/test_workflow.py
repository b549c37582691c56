"""Tests for the link issuance workflow."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from peanutlink.errors import (
    InsufficientFundsError,
    InvalidAmountError,
    InvalidTokenTypeError,
    LinkResolutionFailedError,
    PreparationFailedError,
    SigningFailedError,
    WalletBusyError,
)
from peanutlink.issuance.workflow import redact_link, to_tx_params
from peanutlink.links.base import TokenType, UnsignedTransaction
from peanutlink.utils.locks import get_wallet_lock

from conftest import DEPOSIT_CONTRACT, TEST_ADDRESS

LINK = "https://peanut.to/claim?c=11155111&v=v4.3&i=7#p=secret"


class TestToTxParams:
    """Tests for translating issuer transactions."""

    def test_minimal_transaction(self):
        params = to_tx_params(UnsignedTransaction(to=DEPOSIT_CONTRACT, value=5), 11155111)

        assert set(params) == {"to", "value", "data", "chainId"}
        assert params["to"].lower() == DEPOSIT_CONTRACT
        assert params["value"] == 5
        assert params["data"] == "0x"
        assert params["chainId"] == 11155111

    def test_optional_fields_are_mapped(self):
        tx = UnsignedTransaction(
            to=DEPOSIT_CONTRACT,
            value=0,
            data="0x1234",
            gas_limit=21000,
            max_fee_per_gas=30,
            max_priority_fee_per_gas=2,
            nonce=7,
        )
        params = to_tx_params(tx, 1)

        assert params["gas"] == 21000
        assert params["maxFeePerGas"] == 30
        assert params["maxPriorityFeePerGas"] == 2
        assert params["nonce"] == 7
        assert "gasPrice" not in params

    def test_missing_value_is_zero(self):
        params = to_tx_params(UnsignedTransaction(to=DEPOSIT_CONTRACT, value=None), 1)
        assert params["value"] == 0

    @pytest.mark.parametrize("value", [-1, True, "100"])
    def test_invalid_value_rejected(self, value):
        with pytest.raises(SigningFailedError):
            to_tx_params(UnsignedTransaction(to=DEPOSIT_CONTRACT, value=value), 1)

    def test_invalid_destination_rejected(self):
        with pytest.raises(SigningFailedError):
            to_tx_params(UnsignedTransaction(to="not-an-address", value=1), 1)


class TestRedactLink:
    """Tests for redact_link."""

    def test_secret_fragment_removed(self):
        assert redact_link(LINK) == "https://peanut.to/claim?c=11155111&v=v4.3&i=7#***"

    def test_link_without_fragment(self):
        assert redact_link("https://peanut.to/claim") == "https://peanut.to/claim"


class TestCreateLink:
    """Tests for LinkIssuanceWorkflow.create_link."""

    @pytest.mark.asyncio
    async def test_native_link(self, workflow, wallet, issuer):
        """1.5 at 9 decimals prepares 1.5e9 base units and returns one hash."""
        result = await workflow.create_link({"amount": 1.5})

        assert result.link == LINK
        assert result.tx_hashes == ["0xabc"]

        kwargs = issuer.prepare.await_args.kwargs
        assert kwargs["address"] == TEST_ADDRESS
        assert kwargs["details"].token_amount == 1_500_000_000
        assert kwargs["details"].token_type == TokenType.NATIVE
        assert kwargs["details"].chain_id == 11155111
        assert kwargs["details"].token_decimals == 9
        assert kwargs["passwords"] == ["fixedsecret12345"]

        wallet.sign_and_send.assert_awaited_once()
        sent = wallet.sign_and_send.await_args.args[0]
        assert sent["value"] == 1_500_000_000
        assert sent["chainId"] == 11155111

        resolve = issuer.resolve_link.await_args.kwargs
        assert resolve["tx_hash"] == "0xabc"
        assert resolve["passwords"] == ["fixedsecret12345"]

    @pytest.mark.asyncio
    async def test_token_type_is_forwarded(self, workflow, issuer):
        await workflow.create_link({"amount": 2, "tokenType": 1})

        details = issuer.prepare.await_args.kwargs["details"]
        assert details.token_type == TokenType.ERC20
        assert details.token_amount == 2_000_000_000

    @pytest.mark.asyncio
    async def test_multiple_transactions_sent_in_order(self, workflow, wallet, issuer):
        """Every transaction is sent in order and the last hash anchors the link."""
        issuer.prepare.return_value = [
            UnsignedTransaction(to=DEPOSIT_CONTRACT, value=0, data="0x01"),
            UnsignedTransaction(to=DEPOSIT_CONTRACT, value=0, data="0x02"),
            UnsignedTransaction(to=DEPOSIT_CONTRACT, value=1_500_000_000, data="0x03"),
        ]

        result = await workflow.create_link({"amount": 1.5})

        assert result.tx_hashes == ["0xabc", "0xdef", "0x123"]
        sent_data = [call.args[0]["data"] for call in wallet.sign_and_send.await_args_list]
        assert sent_data == ["0x01", "0x02", "0x03"]
        assert issuer.resolve_link.await_args.kwargs["tx_hash"] == "0x123"

    @pytest.mark.asyncio
    async def test_fresh_secret_per_request(self, wallet, issuer):
        from peanutlink.issuance.workflow import LinkIssuanceWorkflow

        workflow = LinkIssuanceWorkflow(wallet=wallet, issuer=issuer, chain_id=11155111)
        await workflow.create_link({"amount": 1})
        await workflow.create_link({"amount": 1})

        first, second = [
            call.kwargs["passwords"][0] for call in issuer.prepare.await_args_list
        ]
        assert first != second
        assert len(first) == 16

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [{}, {"amount": 0}, {"amount": -3}, {"amount": "abc"}])
    async def test_invalid_amount_has_no_side_effects(self, workflow, wallet, issuer, payload):
        with pytest.raises(InvalidAmountError):
            await workflow.create_link(payload)

        issuer.prepare.assert_not_awaited()
        wallet.sign_and_send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_token_type_has_no_side_effects(self, workflow, wallet, issuer):
        with pytest.raises(InvalidTokenTypeError):
            await workflow.create_link({"amount": 1, "tokenType": 7})

        issuer.prepare.assert_not_awaited()
        wallet.sign_and_send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_too_precise_amount_rejected(self, workflow, issuer):
        with pytest.raises(InvalidAmountError):
            await workflow.create_link({"amount": 0.0000000001})

        issuer.prepare.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_unsigned_transactions(self, workflow, wallet, issuer):
        issuer.prepare.return_value = []

        with pytest.raises(PreparationFailedError) as exc_info:
            await workflow.create_link({"amount": 1})

        assert exc_info.value.tx_hashes == []
        wallet.sign_and_send.assert_not_awaited()
        issuer.resolve_link.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_issuer_failure_during_prepare(self, workflow, wallet, issuer):
        issuer.prepare.side_effect = RuntimeError("issuer down")

        with pytest.raises(PreparationFailedError):
            await workflow.create_link({"amount": 1})

        wallet.sign_and_send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_value_stops_before_any_broadcast(self, workflow, wallet, issuer):
        """A bad transaction anywhere in the batch is caught before the first send."""
        issuer.prepare.return_value = [
            UnsignedTransaction(to=DEPOSIT_CONTRACT, value=0),
            UnsignedTransaction(to=DEPOSIT_CONTRACT, value=-1),
        ]

        with pytest.raises(SigningFailedError) as exc_info:
            await workflow.create_link({"amount": 1})

        assert exc_info.value.public_message == "Failed to create Peanut Link."
        assert exc_info.value.tx_hashes == []
        wallet.sign_and_send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_insufficient_funds(self, workflow, wallet, issuer):
        wallet.sign_and_send.side_effect = InsufficientFundsError("insufficient funds for gas")

        with pytest.raises(InsufficientFundsError) as exc_info:
            await workflow.create_link({"amount": 1})

        assert exc_info.value.status_code == 400
        assert exc_info.value.funds_committed is False
        issuer.resolve_link.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failure_after_broadcast_keeps_hashes(self, workflow, wallet, issuer):
        """A failed second send still reports the first, committed hash."""
        issuer.prepare.return_value = [
            UnsignedTransaction(to=DEPOSIT_CONTRACT, value=0),
            UnsignedTransaction(to=DEPOSIT_CONTRACT, value=1),
        ]
        wallet.sign_and_send.side_effect = ["0xabc", SigningFailedError("nonce too low")]

        with pytest.raises(SigningFailedError) as exc_info:
            await workflow.create_link({"amount": 1})

        assert exc_info.value.tx_hashes == ["0xabc"]
        assert exc_info.value.funds_committed is True
        issuer.resolve_link.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unexpected_signer_error_is_signing_failure(self, workflow, wallet):
        wallet.sign_and_send.side_effect = RuntimeError("socket closed")

        with pytest.raises(SigningFailedError):
            await workflow.create_link({"amount": 1})

    @pytest.mark.asyncio
    async def test_no_link_for_transaction(self, workflow, issuer):
        issuer.resolve_link.return_value = None

        with pytest.raises(LinkResolutionFailedError) as exc_info:
            await workflow.create_link({"amount": 1})

        assert exc_info.value.public_message == "Failed to retrieve links from transaction."
        assert exc_info.value.tx_hashes == ["0xabc"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("link", [{"url": LINK}, ["https://peanut.to/claim"], 42, ""])
    async def test_non_string_link_is_resolution_failure(self, workflow, issuer, link):
        issuer.resolve_link.return_value = link

        with pytest.raises(LinkResolutionFailedError) as exc_info:
            await workflow.create_link({"amount": 1})

        assert exc_info.value.tx_hashes == ["0xabc"]

    @pytest.mark.asyncio
    async def test_issuer_failure_during_resolve(self, workflow, issuer):
        issuer.resolve_link.side_effect = RuntimeError("timeout")

        with pytest.raises(LinkResolutionFailedError) as exc_info:
            await workflow.create_link({"amount": 1})

        assert exc_info.value.funds_committed is True

    @pytest.mark.asyncio
    async def test_busy_wallet(self, workflow, wallet):
        """Waiting longer than the lock timeout reports the wallet as busy."""
        workflow.lock_timeout = 0.05
        lock = get_wallet_lock(TEST_ADDRESS)
        await lock.acquire()
        try:
            with pytest.raises(WalletBusyError) as exc_info:
                await workflow.create_link({"amount": 1})
        finally:
            lock.release()

        assert exc_info.value.status_code == 503
        wallet.sign_and_send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_concurrent_requests_do_not_interleave(self, workflow, wallet, issuer):
        """Transactions of one issuance are sent back to back."""
        issuer.prepare.return_value = [
            UnsignedTransaction(to=DEPOSIT_CONTRACT, value=0),
            UnsignedTransaction(to=DEPOSIT_CONTRACT, value=1),
        ]
        order = []
        counter = iter(range(100))

        async def send(tx):
            n = next(counter)
            order.append(("start", n))
            await asyncio.sleep(0)
            order.append(("end", n))
            return f"0x{n:02x}"

        wallet.sign_and_send = AsyncMock(side_effect=send)

        first, second = await asyncio.gather(
            workflow.create_link({"amount": 1}),
            workflow.create_link({"amount": 1}),
        )

        assert len(first.tx_hashes) == 2
        assert len(second.tx_hashes) == 2
        assert set(first.tx_hashes).isdisjoint(second.tx_hashes)
        # Each issuance owns a contiguous pair of sends
        assert sorted(int(h, 16) for h in first.tx_hashes) in ([0, 1], [2, 3])
