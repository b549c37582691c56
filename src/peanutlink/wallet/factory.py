"""Wallet factory.

Creates the custody wallet from configuration. The seed phrase is
validated here so that a bad phrase stops the process before it serves
any request.
"""

import logging

from peanutlink.config import Settings
from peanutlink.wallet.base import WalletSigner

logger = logging.getLogger(__name__)


def create_wallet_signer(settings: Settings) -> WalletSigner:
    """Create the configured wallet signer.

    Raises:
        ConfigurationError: If MNEMONIC is missing or malformed
    """
    mnemonic = settings.require_mnemonic()

    if settings.dry_run:
        from peanutlink.wallet.dry_run import DryRunWalletSigner

        logger.info("Initializing dry-run wallet signer")
        return DryRunWalletSigner(mnemonic, chain_id=settings.chain_id)

    from peanutlink.wallet.web3_signer import Web3WalletSigner

    logger.info(f"Initializing web3 wallet signer for chain {settings.chain_id}")
    return Web3WalletSigner(
        mnemonic,
        rpc_url=settings.get_rpc_url(),
        chain_id=settings.chain_id,
        timeout=settings.http_timeout,
    )
