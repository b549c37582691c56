"""Custody wallet backed by web3.py.

Signs locally with eth-account and broadcasts raw transactions over an
async HTTP provider. Works for any EVM chain.
"""

import logging
from typing import Any, Optional

from web3 import AsyncWeb3, Web3
from web3.exceptions import Web3Exception

from peanutlink.errors import ConfigurationError, InsufficientFundsError, SigningFailedError
from peanutlink.wallet.base import WalletSigner, account_from_mnemonic, is_insufficient_funds

logger = logging.getLogger(__name__)


class Web3WalletSigner(WalletSigner):
    """Hot wallet derived from a seed phrase.

    Nonces are taken from the pending transaction count and never reused
    locally, so back-to-back transactions do not collide while the node
    catches up.
    """

    def __init__(
        self,
        mnemonic: str,
        rpc_url: str,
        chain_id: int,
        timeout: float = 30.0,
        w3: Optional[AsyncWeb3] = None,
    ):
        super().__init__(chain_id)
        self.rpc_url = rpc_url
        self._account = account_from_mnemonic(mnemonic)
        self._w3 = w3 or AsyncWeb3(
            AsyncWeb3.AsyncHTTPProvider(rpc_url, request_kwargs={"timeout": timeout})
        )
        self._next_nonce: Optional[int] = None

    @property
    def address(self) -> str:
        return self._account.address

    async def connect(self) -> None:
        """Verify the provider answers and serves the configured chain."""
        try:
            remote_chain_id = await self._w3.eth.chain_id
        except Exception as e:
            raise ConfigurationError(f"Failed to connect to RPC provider: {e}") from e

        if remote_chain_id != self.chain_id:
            raise ConfigurationError(
                f"RPC provider serves chain {remote_chain_id}, expected {self.chain_id}"
            )

        logger.info(f"Connected to network (chainId: {remote_chain_id})")
        logger.info(f"Wallet Address: {self.address}")

    async def _get_nonce(self) -> int:
        pending = await self._w3.eth.get_transaction_count(self.address, "pending")
        if self._next_nonce is not None and self._next_nonce > pending:
            return self._next_nonce
        return pending

    async def _populate(self, tx: dict[str, Any]) -> dict[str, Any]:
        """Fill in sender, nonce, gas and fee fields that are missing."""
        populated = dict(tx)
        populated["from"] = self.address
        populated.setdefault("chainId", self.chain_id)

        if populated.get("nonce") is None:
            populated["nonce"] = await self._get_nonce()

        if populated.get("gas") is None:
            populated["gas"] = await self._w3.eth.estimate_gas(populated)

        has_1559 = populated.get("maxFeePerGas") is not None
        if not has_1559 and populated.get("gasPrice") is None:
            populated["gasPrice"] = await self._w3.eth.gas_price

        return populated

    async def sign_and_send(self, tx: dict[str, Any]) -> str:
        try:
            populated = await self._populate(tx)
            signed = self._account.sign_transaction(populated)
            tx_hash = await self._w3.eth.send_raw_transaction(signed.raw_transaction)
        except (Web3Exception, ValueError) as e:
            if is_insufficient_funds(e):
                logger.warning(f"Insufficient funds in {self.address}: {e}")
                raise InsufficientFundsError(str(e)) from e
            logger.error(f"Failed to sign and send transaction: {e}")
            raise SigningFailedError(str(e)) from e

        self._next_nonce = populated["nonce"] + 1
        return Web3.to_hex(tx_hash)

    async def close(self) -> None:
        provider = self._w3.provider
        disconnect = getattr(provider, "disconnect", None)
        if disconnect is not None:
            await disconnect()
        logger.info("Wallet provider disconnected")

    def __repr__(self) -> str:
        return f"Web3WalletSigner(chain_id={self.chain_id}, address={self.address})"
