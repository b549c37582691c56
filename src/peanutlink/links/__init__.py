"""Link issuing capability.

Prepares unsigned deposit transactions and turns broadcast transactions
into claim links.
"""

from peanutlink.links.base import (
    LinkDetails,
    LinkIssuer,
    TokenType,
    UnsignedTransaction,
    generate_deposit_secret,
)
from peanutlink.links.factory import create_link_issuer

__all__ = [
    "LinkDetails",
    "LinkIssuer",
    "TokenType",
    "UnsignedTransaction",
    "create_link_issuer",
    "generate_deposit_secret",
]
