"""HTTP client for a link issuing service.

The service wraps the deposit contract SDK and exposes two JSON endpoints:

    POST /deposits/prepare   {address, linkDetails, passwords} -> {unsignedTxs}
    POST /links/from-tx      {linkDetails, passwords, txHash}  -> {links}
"""

import logging
from typing import Any, Optional

import httpx

from peanutlink.errors import LinkIssuerError
from peanutlink.links.base import LinkDetails, LinkIssuer, UnsignedTransaction

logger = logging.getLogger(__name__)


class HttpLinkIssuer(LinkIssuer):
    """Link issuer backed by a remote JSON API."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        headers = {"Accept": "application/json"}
        if api_key:
            headers["x-api-key"] = api_key

        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
        )

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST JSON and return the decoded object."""
        try:
            response = await self._client.post(path, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Link issuer {path} returned {e.response.status_code}"
            )
            raise LinkIssuerError(f"Link issuer error {e.response.status_code} on {path}") from e
        except httpx.HTTPError as e:
            logger.error(f"Link issuer {path} unreachable: {e}")
            raise LinkIssuerError(f"Link issuer unreachable on {path}") from e
        except ValueError as e:
            raise LinkIssuerError(f"Link issuer returned invalid JSON on {path}") from e

        if not isinstance(data, dict):
            raise LinkIssuerError(f"Link issuer returned unexpected payload on {path}")
        return data

    async def prepare(
        self,
        address: str,
        details: LinkDetails,
        passwords: list[str],
    ) -> list[UnsignedTransaction]:
        data = await self._post(
            "/deposits/prepare",
            {
                "address": address,
                "linkDetails": details.to_wire(),
                "passwords": passwords,
            },
        )

        raw_txs = data.get("unsignedTxs") or []
        try:
            return [UnsignedTransaction.from_wire(tx) for tx in raw_txs]
        except (TypeError, ValueError, AttributeError) as e:
            raise LinkIssuerError(f"Malformed unsigned transaction: {e}") from e

    async def resolve_link(
        self,
        details: LinkDetails,
        passwords: list[str],
        tx_hash: str,
    ) -> Optional[str]:
        data = await self._post(
            "/links/from-tx",
            {
                "linkDetails": details.to_wire(),
                "passwords": passwords,
                "txHash": tx_hash,
            },
        )

        links = data.get("links") or []
        if not isinstance(links, list):
            raise LinkIssuerError(f"Link issuer returned malformed links: {type(links).__name__}")
        if not links:
            return None
        if not isinstance(links[0], str):
            raise LinkIssuerError(f"Link issuer returned a non-string link: {type(links[0]).__name__}")
        return links[0]

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def __repr__(self) -> str:
        return f"HttpLinkIssuer(base_url={self.base_url!r})"
