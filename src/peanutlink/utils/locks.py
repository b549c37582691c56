"""Concurrency control for the custody wallet.

Provides per-wallet locking so that the transactions of one issuance are
submitted back to back and never interleave with another request's.
"""

import asyncio
import logging
from typing import Optional

logger = logging.getLogger(__name__)

# Global lock registry: wallet address (lower case) -> asyncio.Lock
_wallet_locks: dict[str, asyncio.Lock] = {}


def get_wallet_lock(address: str) -> asyncio.Lock:
    """Get or create the lock for a wallet address.

    Args:
        address: Wallet address, any case

    Returns:
        asyncio.Lock for the wallet
    """
    key = address.lower()
    lock = _wallet_locks.get(key)
    if lock is None:
        lock = asyncio.Lock()
        _wallet_locks[key] = lock
    return lock


class WalletLock:
    """Context manager for exclusive use of a wallet's nonce sequence.

    Example:
        async with WalletLock(wallet.address, operation="create_link"):
            for tx in txs:
                await wallet.sign_and_send(tx)
    """

    def __init__(
        self,
        address: str,
        timeout: Optional[float] = 60.0,
        operation: str = "sign_and_send",
    ):
        """Initialize the lock.

        Args:
            address: Wallet address
            timeout: Maximum time to wait for lock (None = wait forever)
            operation: Description of the operation for logging
        """
        self.address = address
        self.timeout = timeout
        self.operation = operation
        self._lock: Optional[asyncio.Lock] = None
        self._acquired = False

    async def __aenter__(self) -> "WalletLock":
        """Acquire the lock."""
        self._lock = get_wallet_lock(self.address)

        try:
            if self.timeout is None:
                await self._lock.acquire()
            elif self.timeout <= 0:
                # Zero timeout: take the lock only if it is free right now
                if self._lock.locked():
                    raise asyncio.TimeoutError()
                await self._lock.acquire()
            else:
                await asyncio.wait_for(self._lock.acquire(), timeout=self.timeout)
            self._acquired = True

            logger.debug(f"Lock acquired for wallet {self.address}: {self.operation}")
            return self

        except asyncio.TimeoutError:
            logger.warning(
                f"Lock timeout for wallet {self.address} after {self.timeout}s: {self.operation}"
            )
            raise LockTimeoutError(
                f"Could not acquire lock for wallet {self.address} within {self.timeout}s"
            )

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Release the lock."""
        if self._acquired and self._lock:
            self._lock.release()
            self._acquired = False
            logger.debug(f"Lock released for wallet {self.address}: {self.operation}")
        return False


class LockTimeoutError(Exception):
    """Raised when a lock cannot be acquired within the timeout period."""

    pass


def clear_wallet_locks() -> None:
    """Clear all wallet locks (useful for testing)."""
    _wallet_locks.clear()
