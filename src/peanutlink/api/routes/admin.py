"""Admin API endpoints (token-protected).

Lists journaled issuances so an operator can find requests that failed
after broadcasting and recover their deposits.
"""

import hmac
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from pydantic import BaseModel

from peanutlink.ledger.models import Issuance, IssuanceState
from peanutlink.ledger.repository import IssuanceRepository

router = APIRouter(prefix="/admin", tags=["admin"])


async def require_admin_token(
    request: Request,
    x_admin_token: Optional[str] = Header(None),
) -> bool:
    """Verify admin token from header. Listing is disabled without ADMIN_TOKEN."""
    expected = request.app.state.settings.admin_token
    if not x_admin_token or not expected or not hmac.compare_digest(x_admin_token, expected):
        raise HTTPException(status_code=401, detail="Invalid admin token")
    return True


class IssuanceSummary(BaseModel):
    """Journal entry without secrets or links."""

    request_id: str
    state: str
    amount: str
    token_type: int
    token_amount: str
    chain_id: int
    wallet_address: str
    total_transactions: int
    tx_hashes: list[str]
    needs_recovery: bool
    error: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, issuance: Issuance) -> "IssuanceSummary":
        return cls(
            request_id=issuance.request_id,
            state=issuance.state,
            amount=issuance.amount,
            token_type=issuance.token_type,
            token_amount=issuance.token_amount,
            chain_id=issuance.chain_id,
            wallet_address=issuance.wallet_address,
            total_transactions=issuance.total_transactions,
            tx_hashes=list(issuance.tx_hashes or []),
            needs_recovery=issuance.needs_recovery,
            error=issuance.error,
            created_at=issuance.created_at,
            updated_at=issuance.updated_at,
        )


@router.get("/issuances", response_model=list[IssuanceSummary])
async def list_issuances(
    request: Request,
    state: Optional[IssuanceState] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    _: bool = Depends(require_admin_token),
) -> list[IssuanceSummary]:
    """List journaled issuances, newest first."""
    database = getattr(request.app.state, "database", None)
    if database is None:
        raise HTTPException(status_code=503, detail="Issuance journal is not configured.")

    async with database.session() as session:
        repo = IssuanceRepository(session)
        issuances = await repo.list_issuances(state=state, limit=limit)
        return [IssuanceSummary.from_model(i) for i in issuances]
