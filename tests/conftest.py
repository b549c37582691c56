"""Pytest configuration and fixtures."""

import os
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

# Well-known development phrase (hardhat/anvil account #0)
TEST_MNEMONIC = "test test test test test test test test test test test junk"
TEST_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
TEST_API_KEY = "test-api-key"
TEST_ADMIN_TOKEN = "test-admin-token"
DEPOSIT_CONTRACT = "0x" + "ab" * 20

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["MNEMONIC"] = TEST_MNEMONIC
os.environ["API_KEY"] = TEST_API_KEY
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DRY_RUN"] = "true"

from peanutlink.config import Settings
from peanutlink.issuance.journal import LedgerIssuanceJournal
from peanutlink.issuance.workflow import LinkIssuanceWorkflow
from peanutlink.ledger.database import Database
from peanutlink.links.base import LinkIssuer, UnsignedTransaction
from peanutlink.utils.locks import clear_wallet_locks
from peanutlink.wallet.base import WalletSigner


@pytest.fixture(autouse=True)
def reset_locks():
    """Each test starts with a fresh lock registry."""
    clear_wallet_locks()
    yield
    clear_wallet_locks()


@pytest.fixture
def settings() -> Settings:
    """Explicit settings, independent of any .env file."""
    return Settings(
        _env_file=None,
        mnemonic=TEST_MNEMONIC,
        api_key=TEST_API_KEY,
        admin_token=TEST_ADMIN_TOKEN,
        chain_id=11155111,
        token_decimals=9,
        dry_run=True,
        database_url="sqlite+aiosqlite:///:memory:",
    )


@pytest.fixture
def wallet() -> MagicMock:
    """Wallet signer that returns 0xabc for the first transaction."""
    signer = MagicMock(spec=WalletSigner)
    signer.address = TEST_ADDRESS
    signer.chain_id = 11155111
    signer.sign_and_send = AsyncMock(side_effect=["0xabc", "0xdef", "0x123"])
    return signer


@pytest.fixture
def issuer() -> MagicMock:
    """Link issuer that prepares one deposit and resolves a peanut link."""
    link_issuer = MagicMock(spec=LinkIssuer)
    link_issuer.prepare = AsyncMock(
        return_value=[UnsignedTransaction(to=DEPOSIT_CONTRACT, value=1_500_000_000)]
    )
    link_issuer.resolve_link = AsyncMock(
        return_value="https://peanut.to/claim?c=11155111&v=v4.3&i=7#p=secret"
    )
    link_issuer.close = AsyncMock()
    return link_issuer


@pytest.fixture
def workflow(wallet, issuer) -> LinkIssuanceWorkflow:
    """Workflow wired to the mocked wallet and issuer, no journal."""
    return LinkIssuanceWorkflow(
        wallet=wallet,
        issuer=issuer,
        chain_id=11155111,
        token_decimals=9,
        lock_timeout=1.0,
        secret_factory=lambda: "fixedsecret12345",
    )


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[Database, None]:
    """In-memory journal database."""
    db = Database("sqlite+aiosqlite:///:memory:")
    await db.create_all()

    yield db

    await db.dispose()


@pytest.fixture
def journaled_workflow(wallet, issuer, database) -> LinkIssuanceWorkflow:
    """Workflow that records to the in-memory journal."""
    return LinkIssuanceWorkflow(
        wallet=wallet,
        issuer=issuer,
        chain_id=11155111,
        token_decimals=9,
        journal=LedgerIssuanceJournal(database),
        lock_timeout=1.0,
        secret_factory=lambda: "fixedsecret12345",
    )
