"""Simulated custody wallet for dry-run mode."""

import logging
import secrets
from typing import Any

from peanutlink.wallet.base import WalletSigner, account_from_mnemonic

logger = logging.getLogger(__name__)


class DryRunWalletSigner(WalletSigner):
    """Derives the real address but never touches a network."""

    def __init__(self, mnemonic: str, chain_id: int):
        super().__init__(chain_id)
        self._address = account_from_mnemonic(mnemonic).address
        self.sent: list[dict[str, Any]] = []

    @property
    def address(self) -> str:
        return self._address

    async def connect(self) -> None:
        logger.warning(f"[SIMULATED] Wallet {self.address} on chain {self.chain_id} (dry run)")

    async def sign_and_send(self, tx: dict[str, Any]) -> str:
        tx_hash = f"0x{secrets.token_hex(32)}"
        self.sent.append(dict(tx))

        logger.info(
            f"[SIMULATED] Sent {tx.get('value', 0)} wei to {tx.get('to')}: {tx_hash}"
        )
        return tx_hash
