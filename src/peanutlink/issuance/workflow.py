"""Payment link issuance workflow.

Issuance flow:
1. Validate the request (no side effects on failure)
2. Convert the amount to base units
3. Generate a one-time deposit secret
4. Ask the link issuer for unsigned deposit transactions
5. Sign and broadcast them in order while holding the wallet lock
6. Resolve the claim link from the last transaction hash

Broadcast transactions cannot be rolled back. A failure in step 5 or 6
leaves funds committed on-chain; the journal and the error keep the
broadcast hashes so an operator can recover the deposit.
"""

import logging
import uuid
from typing import Any, Callable, Mapping, Optional, Union

from web3 import Web3

from peanutlink.amounts import to_base_units
from peanutlink.errors import (
    InvalidAmountError,
    IssuanceError,
    LinkResolutionFailedError,
    PreparationFailedError,
    SigningFailedError,
    WalletBusyError,
)
from peanutlink.issuance.journal import IssuanceJournal
from peanutlink.issuance.models import IssuanceRecord, IssuanceResult, LinkRequest
from peanutlink.ledger.models import IssuanceState
from peanutlink.links.base import LinkDetails, LinkIssuer, UnsignedTransaction, generate_deposit_secret
from peanutlink.utils.locks import LockTimeoutError, WalletLock
from peanutlink.wallet.base import WalletSigner

logger = logging.getLogger(__name__)

# Optional fee/gas fields: UnsignedTransaction attribute -> web3 key
OPTIONAL_TX_FIELDS = {
    "gas_limit": "gas",
    "gas_price": "gasPrice",
    "max_fee_per_gas": "maxFeePerGas",
    "max_priority_fee_per_gas": "maxPriorityFeePerGas",
    "nonce": "nonce",
}


def to_tx_params(unsigned: UnsignedTransaction, chain_id: int) -> dict[str, Any]:
    """Translate an issuer transaction into web3 transaction parameters.

    Raises:
        SigningFailedError: If the value is not a non-negative integer or
            the destination is not an address
    """
    value = 0 if unsigned.value is None else unsigned.value
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise SigningFailedError('Transaction "value" must be a non-negative integer.')

    try:
        to = Web3.to_checksum_address(unsigned.to)
    except (TypeError, ValueError) as e:
        raise SigningFailedError(f"Invalid transaction destination: {unsigned.to!r}") from e

    params: dict[str, Any] = {
        "to": to,
        "value": value,
        "data": unsigned.data or "0x",
        "chainId": chain_id,
    }
    for attr, key in OPTIONAL_TX_FIELDS.items():
        field_value = getattr(unsigned, attr)
        if field_value is not None:
            params[key] = field_value
    return params


def redact_link(link: str) -> str:
    """Drop the fragment that carries the claim secret."""
    return link.split("#", 1)[0] + "#***" if "#" in link else link


class LinkIssuanceWorkflow:
    """Turns a validated amount into a funded claim link.

    Stateless across requests apart from the injected wallet, issuer and
    journal, which are process-wide services.
    """

    def __init__(
        self,
        wallet: WalletSigner,
        issuer: LinkIssuer,
        chain_id: int,
        token_decimals: int = 9,
        journal: Optional[IssuanceJournal] = None,
        lock_timeout: Optional[float] = 60.0,
        secret_factory: Callable[[], str] = generate_deposit_secret,
    ):
        self.wallet = wallet
        self.issuer = issuer
        self.chain_id = chain_id
        self.token_decimals = token_decimals
        self.journal = journal
        self.lock_timeout = lock_timeout
        self._secret_factory = secret_factory

    def build_link_details(self, request: LinkRequest) -> LinkDetails:
        """Derive deposit parameters from a validated request.

        Raises:
            InvalidAmountError: If the amount does not fit the token precision
        """
        token_amount = to_base_units(request.amount, self.token_decimals)
        return LinkDetails(
            chain_id=self.chain_id,
            token_amount=token_amount,
            token_type=request.token_type,
            token_decimals=self.token_decimals,
        )

    async def create_link(self, request: Union[LinkRequest, Mapping[str, Any]]) -> IssuanceResult:
        """Issue a claim link for the requested amount.

        Args:
            request: Validated request or raw request body

        Returns:
            IssuanceResult with the link and every broadcast hash

        Raises:
            InvalidAmountError: Amount missing, not positive or too precise
            InvalidTokenTypeError: Unknown token type
            PreparationFailedError: Issuer returned nothing usable
            SigningFailedError: Signing or broadcast failed (see subclasses)
            LinkResolutionFailedError: No link for the final transaction
        """
        if not isinstance(request, LinkRequest):
            request = LinkRequest.from_payload(request)

        try:
            details = self.build_link_details(request)
        except InvalidAmountError as e:
            logger.warning(f"Rejected amount {request.amount}: {e.violations}")
            raise

        record = IssuanceRecord(
            request_id=uuid.uuid4().hex,
            amount=request.amount,
            token_type=request.token_type,
            token_amount=details.token_amount,
            chain_id=self.chain_id,
            wallet_address=self.wallet.address,
        )
        logger.info(
            f"Issuance {record.request_id}: amount={request.amount}, "
            f"tokenType={int(request.token_type)}, tokenAmount={details.token_amount}"
        )

        secret = self._secret_factory()

        try:
            await self._transition(record, IssuanceState.PREPARING)
            unsigned_txs = await self._prepare(details, secret)

            # Whole batch is checked before the first broadcast
            tx_params = [to_tx_params(tx, self.chain_id) for tx in unsigned_txs]
            record.total_transactions = len(tx_params)

            await self._submit(record, tx_params)

            await self._transition(record, IssuanceState.RESOLVING)
            link = await self._resolve(details, secret, record.tx_hashes[-1])

        except IssuanceError as e:
            e.tx_hashes = list(record.tx_hashes)
            await self._fail(record, e)
            raise
        except Exception as e:
            await self._fail(record, e)
            raise

        await self._transition(record, IssuanceState.DONE)
        logger.info(f"Issuance {record.request_id}: generated link {redact_link(link)}")

        return IssuanceResult(link=link, tx_hashes=list(record.tx_hashes))

    async def _prepare(self, details: LinkDetails, secret: str) -> list[UnsignedTransaction]:
        """Ask the issuer for the deposit transactions."""
        try:
            unsigned_txs = await self.issuer.prepare(
                address=self.wallet.address,
                details=details,
                passwords=[secret],
            )
        except Exception as e:
            raise PreparationFailedError(f"Link issuer failed to prepare deposit: {e}") from e

        if not unsigned_txs:
            raise PreparationFailedError("Link issuer returned no unsigned transactions")
        return list(unsigned_txs)

    async def _submit(self, record: IssuanceRecord, tx_params: list[dict[str, Any]]) -> None:
        """Sign and broadcast sequentially, one confirmation hash at a time."""
        try:
            async with WalletLock(
                self.wallet.address,
                timeout=self.lock_timeout,
                operation=f"create_link:{record.request_id}",
            ):
                await self._transition(record, IssuanceState.SUBMITTING)

                for tx in tx_params:
                    logger.info(
                        f"Issuance {record.request_id}: sending transaction "
                        f"{len(record.tx_hashes) + 1}/{record.total_transactions} "
                        f"to={tx['to']} value={tx['value']} "
                        f"gas={tx.get('gas', 'Not Specified')} "
                        f"gasPrice={tx.get('gasPrice', 'Not Specified')}"
                    )

                    tx_hash = await self.wallet.sign_and_send(tx)
                    record.tx_hashes.append(tx_hash)

                    logger.info(
                        f"Issuance {record.request_id}: signed and sent {tx_hash} "
                        f"({record.progress})"
                    )
                    await self._write_journal(record)

        except LockTimeoutError as e:
            raise WalletBusyError(str(e)) from e
        except SigningFailedError:
            raise
        except Exception as e:
            raise SigningFailedError(f"Unexpected signing failure: {e}") from e

    async def _resolve(self, details: LinkDetails, secret: str, tx_hash: str) -> str:
        """Derive the claim link anchored by the last broadcast."""
        try:
            link = await self.issuer.resolve_link(
                details=details,
                passwords=[secret],
                tx_hash=tx_hash,
            )
        except Exception as e:
            raise LinkResolutionFailedError(f"Link issuer failed to resolve link: {e}") from e

        if not isinstance(link, str) or not link:
            raise LinkResolutionFailedError(
                f"No link returned for transaction {tx_hash} (got {type(link).__name__})"
            )
        return link

    async def _transition(self, record: IssuanceRecord, state: IssuanceState) -> None:
        record.state = state
        logger.debug(f"Issuance {record.request_id}: {state.value} ({record.progress})")
        await self._write_journal(record)

    async def _fail(self, record: IssuanceRecord, error: BaseException) -> None:
        record.state = IssuanceState.FAILED
        record.error = f"{type(error).__name__}: {error}"

        if record.tx_hashes:
            logger.error(
                f"Issuance {record.request_id} FAILED after broadcasting "
                f"{record.progress} transactions {record.tx_hashes}; funds are committed "
                f"without a link, manual recovery required: {record.error}"
            )
        else:
            logger.error(
                f"Issuance {record.request_id} failed before any broadcast: {record.error}"
            )

        await self._write_journal(record)

    async def _write_journal(self, record: IssuanceRecord) -> None:
        if self.journal is None:
            return
        try:
            await self.journal.record(record)
        except Exception as e:
            # Never abort an issuance whose funds may already be committed
            logger.error(
                f"Failed to journal issuance {record.request_id} "
                f"state={record.state.value} hashes={record.tx_hashes}: {e}"
            )
