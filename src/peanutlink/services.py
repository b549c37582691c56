"""Process-wide services.

The wallet, the link issuer and the journal database are created once at
startup, shared by every request and closed at shutdown.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from peanutlink.config import Settings
from peanutlink.issuance.journal import LedgerIssuanceJournal
from peanutlink.issuance.workflow import LinkIssuanceWorkflow
from peanutlink.ledger.database import Database
from peanutlink.links.base import LinkIssuer
from peanutlink.links.factory import create_link_issuer
from peanutlink.wallet.base import WalletSigner
from peanutlink.wallet.factory import create_wallet_signer

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Long-lived collaborators of the issuance workflow."""
    wallet: WalletSigner
    issuer: LinkIssuer
    database: Database
    workflow: LinkIssuanceWorkflow

    async def close(self) -> None:
        """Release network connections and the database."""
        logger.info("Cleaning up...")
        try:
            await self.issuer.close()
        finally:
            try:
                await self.wallet.close()
            finally:
                await self.database.dispose()
        logger.info("Cleanup complete")


async def start_services(settings: Settings) -> Services:
    """Build and connect every service.

    Raises:
        ConfigurationError: If the seed phrase, RPC endpoint or issuer
            configuration is unusable
    """
    # Seed phrase is validated first so a bad one fails before any I/O
    wallet = create_wallet_signer(settings)
    issuer: Optional[LinkIssuer] = None
    database: Optional[Database] = None

    try:
        issuer = create_link_issuer(settings)
        database = Database(settings.database_url, echo=settings.debug and not settings.is_production)
        await database.create_all()
        await wallet.connect()
    except Exception:
        try:
            if issuer is not None:
                await issuer.close()
        finally:
            try:
                if database is not None:
                    await database.dispose()
            finally:
                await wallet.close()
        raise

    workflow = LinkIssuanceWorkflow(
        wallet=wallet,
        issuer=issuer,
        chain_id=settings.chain_id,
        token_decimals=settings.token_decimals,
        journal=LedgerIssuanceJournal(database),
        lock_timeout=settings.signing_lock_timeout,
    )
    logger.info(f"Services ready: {wallet!r}, {issuer!r}")

    return Services(wallet=wallet, issuer=issuer, database=database, workflow=workflow)
