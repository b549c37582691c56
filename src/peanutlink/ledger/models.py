"""SQLAlchemy models for the issuance journal."""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import JSON, BigInteger, DateTime, Integer, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class IssuanceState(str, Enum):
    """Lifecycle of one link issuance."""

    PREPARING = "preparing"      # Asking the issuer for unsigned transactions
    SUBMITTING = "submitting"    # Signing and broadcasting, funds may be committed
    RESOLVING = "resolving"      # All transactions sent, deriving the link
    DONE = "done"                # Link returned to the caller
    FAILED = "failed"            # Failed at any stage


class Issuance(Base):
    """Journal row for one create-link request.

    Neither the deposit secret nor the claim link is stored.
    """

    __tablename__ = "issuances"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    request_id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False, index=True)
    state: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    amount: Mapped[str] = mapped_column(String(80), nullable=False)
    token_type: Mapped[int] = mapped_column(Integer, nullable=False)
    token_amount: Mapped[str] = mapped_column(String(80), nullable=False)
    chain_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    wallet_address: Mapped[str] = mapped_column(String(42), nullable=False)
    total_transactions: Mapped[int] = mapped_column(Integer, default=0)
    tx_hashes: Mapped[list] = mapped_column(JSON, default=list)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    @property
    def needs_recovery(self) -> bool:
        """Failed after broadcasting at least one transaction."""
        return self.state == IssuanceState.FAILED.value and bool(self.tx_hashes)

    def __repr__(self) -> str:
        return f"<Issuance {self.request_id} {self.state} txs={len(self.tx_hashes or [])}>"
