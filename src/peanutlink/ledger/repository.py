"""Repository for issuance journal operations."""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from peanutlink.ledger.models import Issuance, IssuanceState


class IssuanceRepository:
    """Database operations on the issuances table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_request_id(self, request_id: str) -> Optional[Issuance]:
        """Get an issuance by its request id."""
        stmt = select(Issuance).where(Issuance.request_id == request_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def upsert(
        self,
        request_id: str,
        state: IssuanceState,
        amount: str,
        token_type: int,
        token_amount: str,
        chain_id: int,
        wallet_address: str,
        total_transactions: int = 0,
        tx_hashes: Optional[list[str]] = None,
        error: Optional[str] = None,
    ) -> Issuance:
        """Create the row for a request or bring it up to date."""
        issuance = await self.get_by_request_id(request_id)

        if issuance is None:
            issuance = Issuance(
                request_id=request_id,
                amount=amount,
                token_type=token_type,
                token_amount=token_amount,
                chain_id=chain_id,
                wallet_address=wallet_address,
            )
            self.session.add(issuance)

        issuance.state = state.value
        issuance.total_transactions = total_transactions
        # New list so the JSON column is flagged dirty
        issuance.tx_hashes = list(tx_hashes or [])
        issuance.error = error

        await self.session.flush()
        return issuance

    async def list_issuances(
        self,
        state: Optional[IssuanceState] = None,
        limit: int = 50,
    ) -> list[Issuance]:
        """List issuances, newest first."""
        stmt = select(Issuance).order_by(Issuance.id.desc()).limit(limit)
        if state is not None:
            stmt = stmt.where(Issuance.state == state.value)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
