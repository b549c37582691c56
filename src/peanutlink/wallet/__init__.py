"""Custody wallet services.

- Web3WalletSigner: seed-phrase hot wallet over web3.py
- DryRunWalletSigner: same address, simulated broadcasts
"""

from peanutlink.wallet.base import WalletSigner
from peanutlink.wallet.factory import create_wallet_signer

__all__ = [
    "WalletSigner",
    "create_wallet_signer",
]
