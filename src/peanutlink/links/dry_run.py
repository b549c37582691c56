"""Simulated link issuer for dry-run mode and tests."""

import logging
from typing import Optional

from peanutlink.links.base import LinkDetails, LinkIssuer, TokenType, UnsignedTransaction

logger = logging.getLogger(__name__)

# Placeholder deposit contract, never used on a real network in dry-run
SIMULATED_DEPOSIT_CONTRACT = "0x00000000000000000000000000000000deadbeef"
SIMULATED_LINK_VERSION = "v4.3"


class SimulatedLinkIssuer(LinkIssuer):
    """Produces one deposit transaction per request and deterministic links."""

    def __init__(self, base_url: str = "https://peanut.to/claim"):
        self.base_url = base_url
        self._deposit_index = 0

    async def prepare(
        self,
        address: str,
        details: LinkDetails,
        passwords: list[str],
    ) -> list[UnsignedTransaction]:
        value = details.token_amount if details.token_type == TokenType.NATIVE else 0

        logger.info(
            f"[SIMULATED] Prepared deposit of {details.token_amount} base units "
            f"(tokenType={int(details.token_type)}) from {address}"
        )

        return [
            UnsignedTransaction(
                to=SIMULATED_DEPOSIT_CONTRACT,
                value=value,
                data="0x",
                from_address=address,
            )
        ]

    async def resolve_link(
        self,
        details: LinkDetails,
        passwords: list[str],
        tx_hash: str,
    ) -> Optional[str]:
        if not passwords or not tx_hash:
            return None

        index = self._deposit_index
        self._deposit_index += 1
        return (
            f"{self.base_url}?c={details.chain_id}&v={SIMULATED_LINK_VERSION}"
            f"&i={index}&t=sim#p={passwords[0]}"
        )
