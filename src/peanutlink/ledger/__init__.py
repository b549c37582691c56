"""Issuance journal storage."""

from peanutlink.ledger.database import Database
from peanutlink.ledger.models import Base, Issuance, IssuanceState
from peanutlink.ledger.repository import IssuanceRepository

__all__ = [
    "Base",
    "Database",
    "Issuance",
    "IssuanceRepository",
    "IssuanceState",
]
