"""Base interfaces for the link issuing capability.

Issuance flow:
1. Deposit parameters and a one-time secret are sent to the issuer
2. Issuer returns unsigned deposit transactions
3. Wallet signs and broadcasts them in order
4. Issuer turns the last transaction hash into a claim link
"""

import logging
import secrets
import string
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

SECRET_ALPHABET = string.ascii_letters + string.digits


class TokenType(IntEnum):
    """Kind of asset locked in a deposit."""
    NATIVE = 0
    ERC20 = 1
    ERC721 = 2
    ERC1155 = 3


@dataclass(frozen=True)
class LinkDetails:
    """Deposit parameters shared by preparation and link resolution."""
    chain_id: int
    token_amount: int           # Base units
    token_type: TokenType
    token_decimals: int

    def to_wire(self) -> dict[str, Any]:
        """Serialize for the issuer (amount as string to keep precision)."""
        return {
            "chainId": self.chain_id,
            "tokenAmount": str(self.token_amount),
            "tokenType": int(self.token_type),
            "tokenDecimals": self.token_decimals,
        }


def parse_quantity(value: Any, field: str = "value") -> Optional[int]:
    """Parse an integer quantity given as int, decimal string or 0x hex."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"{field} must be an integer, got bool")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if text.lower().startswith("0x"):
            return int(text, 16)
        return int(text)
    raise ValueError(f"{field} must be an integer, got {value!r}")


@dataclass
class UnsignedTransaction:
    """Deposit transaction produced by the issuer, not yet signed."""
    to: str
    value: Optional[int] = 0
    data: str = "0x"
    gas_limit: Optional[int] = None
    gas_price: Optional[int] = None
    max_fee_per_gas: Optional[int] = None
    max_priority_fee_per_gas: Optional[int] = None
    nonce: Optional[int] = None
    from_address: Optional[str] = None

    @classmethod
    def from_wire(cls, payload: Mapping[str, Any]) -> "UnsignedTransaction":
        """Build from the issuer's JSON representation.

        Raises:
            ValueError: If a required field is missing or a quantity is malformed
        """
        to = payload.get("to")
        if not to:
            raise ValueError("unsigned transaction has no destination")

        return cls(
            to=to,
            value=parse_quantity(payload.get("value", 0)),
            data=payload.get("data") or "0x",
            gas_limit=parse_quantity(payload.get("gasLimit", payload.get("gas")), "gasLimit"),
            gas_price=parse_quantity(payload.get("gasPrice"), "gasPrice"),
            max_fee_per_gas=parse_quantity(payload.get("maxFeePerGas"), "maxFeePerGas"),
            max_priority_fee_per_gas=parse_quantity(
                payload.get("maxPriorityFeePerGas"), "maxPriorityFeePerGas"
            ),
            nonce=parse_quantity(payload.get("nonce"), "nonce"),
            from_address=payload.get("from"),
        )


class LinkIssuer(ABC):
    """Abstract link issuing capability.

    Implementations never see private keys; they only describe deposits
    and derive claim links from broadcast transactions.
    """

    @abstractmethod
    async def prepare(
        self,
        address: str,
        details: LinkDetails,
        passwords: list[str],
    ) -> list[UnsignedTransaction]:
        """Prepare unsigned deposit transactions.

        Args:
            address: Custody wallet address that will send the deposit
            details: Deposit parameters
            passwords: One secret per link

        Returns:
            Ordered unsigned transactions (may be empty)
        """
        pass

    @abstractmethod
    async def resolve_link(
        self,
        details: LinkDetails,
        passwords: list[str],
        tx_hash: str,
    ) -> Optional[str]:
        """Derive the claim link anchored by a broadcast transaction."""
        pass

    async def close(self) -> None:
        """Release network resources."""
        return None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


def generate_deposit_secret(length: int = 16) -> str:
    """Generate a random alphanumeric secret for one link."""
    return "".join(secrets.choice(SECRET_ALPHABET) for _ in range(length))
