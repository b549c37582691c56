"""Request, result and state records for link issuance."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from peanutlink.amounts import parse_amount
from peanutlink.errors import InvalidAmountError, InvalidTokenTypeError
from peanutlink.ledger.models import IssuanceState
from peanutlink.links.base import TokenType

VALID_TOKEN_TYPES = tuple(int(t) for t in TokenType)


class LinkRequest(BaseModel):
    """Validated create-link request body."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    amount: Decimal = Field(..., description="Positive amount in whole tokens")
    token_type: TokenType = Field(
        default=TokenType.NATIVE, alias="tokenType", description="0 native, 1 ERC20, 2 ERC721, 3 ERC1155"
    )

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v: Any) -> Decimal:
        """Amount must be a JSON number greater than zero."""
        if isinstance(v, bool) or not isinstance(v, (int, float, Decimal)):
            raise ValueError("amount must be a number")
        try:
            return parse_amount(v)
        except InvalidAmountError as e:
            raise ValueError("; ".join(e.violations) or "amount is invalid")

    @field_validator("token_type", mode="before")
    @classmethod
    def validate_token_type(cls, v: Any) -> TokenType:
        """One of the known types. Only an omitted field defaults to native."""
        if isinstance(v, float) and v.is_integer():
            v = int(v)
        if isinstance(v, bool) or not isinstance(v, int) or v not in VALID_TOKEN_TYPES:
            valid = ", ".join(str(t) for t in VALID_TOKEN_TYPES)
            raise ValueError(f"tokenType must be one of {valid}")
        return TokenType(v)

    @classmethod
    def from_payload(cls, payload: Any) -> "LinkRequest":
        """Validate an untyped request body.

        All violations are collected. Amount problems take precedence over
        token type problems when choosing the error class.

        Raises:
            InvalidAmountError: If the amount is missing or invalid
            InvalidTokenTypeError: If only the token type is invalid
        """
        if not isinstance(payload, Mapping):
            raise InvalidAmountError(violations=["request body must be a JSON object"])

        try:
            return cls.model_validate(dict(payload))
        except ValidationError as e:
            amount_violations = []
            token_violations = []
            for error in e.errors():
                location = str(error["loc"][0]) if error["loc"] else "body"
                message = f"{location}: {error['msg']}"
                if location == "amount":
                    amount_violations.append(message)
                else:
                    token_violations.append(message)

            violations = amount_violations + token_violations
            if amount_violations:
                raise InvalidAmountError(violations=violations) from None
            raise InvalidTokenTypeError(violations=violations) from None


@dataclass
class IssuanceResult:
    """Claim link and the hashes of every broadcast transaction."""
    link: str
    tx_hashes: list[str] = field(default_factory=list)

    def to_wire(self) -> dict[str, Any]:
        return {"link": self.link, "txHashes": list(self.tx_hashes)}


@dataclass
class IssuanceRecord:
    """Observable state of one in-flight issuance."""
    request_id: str
    amount: Decimal
    token_type: TokenType
    token_amount: int
    chain_id: int
    wallet_address: str
    state: IssuanceState = IssuanceState.PREPARING
    total_transactions: int = 0
    tx_hashes: list[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def progress(self) -> str:
        """Submitted/total, e.g. ``1/2``."""
        return f"{len(self.tx_hashes)}/{self.total_transactions}"
