"""Issuance journal.

Keeps a durable trail of every state change so a request that fails after
broadcasting can be found and recovered by an operator.
"""

import logging
from abc import ABC, abstractmethod

from peanutlink.issuance.models import IssuanceRecord
from peanutlink.ledger.database import Database
from peanutlink.ledger.repository import IssuanceRepository

logger = logging.getLogger(__name__)


class IssuanceJournal(ABC):
    """Sink for issuance state changes."""

    @abstractmethod
    async def record(self, record: IssuanceRecord) -> None:
        """Persist the current state of an issuance."""
        pass


class LedgerIssuanceJournal(IssuanceJournal):
    """Journal stored in the issuances table."""

    def __init__(self, database: Database):
        self.database = database

    async def record(self, record: IssuanceRecord) -> None:
        async with self.database.session() as session:
            repo = IssuanceRepository(session)
            await repo.upsert(
                request_id=record.request_id,
                state=record.state,
                amount=str(record.amount),
                token_type=int(record.token_type),
                token_amount=str(record.token_amount),
                chain_id=record.chain_id,
                wallet_address=record.wallet_address,
                total_transactions=record.total_transactions,
                tx_hashes=record.tx_hashes,
                error=record.error,
            )
