"""Base interfaces for the custody wallet.

The wallet is a process-wide service:
1. Created once at startup from the seed phrase
2. connect() verifies the network connection
3. sign_and_send() signs and broadcasts one transaction at a time
4. close() releases the network connection at shutdown
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

from peanutlink.errors import ConfigurationError

logger = logging.getLogger(__name__)

INSUFFICIENT_FUNDS_MARKERS = (
    "insufficient funds",
    "insufficient_funds",
    "insufficient balance",
)


def is_insufficient_funds(error: BaseException) -> bool:
    """Check whether a provider error reports an insufficient balance."""
    text = str(error).lower()
    return any(marker in text for marker in INSUFFICIENT_FUNDS_MARKERS)


def account_from_mnemonic(mnemonic: str):
    """Derive the first BIP44 Ethereum account (m/44'/60'/0'/0/0).

    Raises:
        ConfigurationError: If the phrase is not a valid BIP39 mnemonic
    """
    from eth_account import Account

    Account.enable_unaudited_hdwallet_features()
    try:
        return Account.from_mnemonic(mnemonic)
    except Exception as e:
        raise ConfigurationError(f"Invalid MNEMONIC: {type(e).__name__}") from e


class WalletSigner(ABC):
    """Abstract custody wallet.

    Implementations hold the key and the network connection; callers only
    pass transaction parameters and receive transaction hashes.
    """

    def __init__(self, chain_id: int):
        self.chain_id = chain_id

    @property
    @abstractmethod
    def address(self) -> str:
        """Checksummed address of the custody account."""
        pass

    async def connect(self) -> None:
        """Open and verify the network connection."""
        return None

    @abstractmethod
    async def sign_and_send(self, tx: dict[str, Any]) -> str:
        """Sign a transaction and broadcast it.

        Args:
            tx: web3 style transaction parameters (to, value, data, ...)

        Returns:
            Transaction hash as 0x-prefixed hex

        Raises:
            InsufficientFundsError: If the wallet cannot cover value and gas
            SigningFailedError: For any other signing or broadcast failure
        """
        pass

    async def close(self) -> None:
        """Release the network connection."""
        return None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(chain_id={self.chain_id})"
