"""Error taxonomy for link issuance.

Every issuance error carries the HTTP status and the message that may be
shown to a caller. Internal detail stays in the exception text and logs.
"""

from typing import Optional


class IssuanceError(Exception):
    """Base class for failures while issuing a payment link."""

    status_code = 500
    public_message = "Failed to create Peanut Link."

    def __init__(self, message: Optional[str] = None, tx_hashes: Optional[list[str]] = None):
        super().__init__(message or self.public_message)
        # Hashes already broadcast when the failure happened
        self.tx_hashes: list[str] = list(tx_hashes or [])

    @property
    def funds_committed(self) -> bool:
        return bool(self.tx_hashes)


class InvalidRequestError(IssuanceError):
    """Request body failed validation. Raised before any side effect."""

    status_code = 400

    def __init__(self, message: Optional[str] = None, violations: Optional[list[str]] = None):
        super().__init__(message)
        self.violations: list[str] = list(violations or [])


class InvalidAmountError(InvalidRequestError):
    public_message = 'Invalid or missing "amount" in request body.'


class InvalidTokenTypeError(InvalidRequestError):
    public_message = 'Invalid "tokenType". Valid types are 0, 1, 2, 3.'


class PreparationFailedError(IssuanceError):
    """The link issuer returned no usable unsigned transactions."""

    public_message = "Failed to prepare deposit transactions."


class SigningFailedError(IssuanceError):
    """A transaction could not be signed or broadcast."""


class InsufficientFundsError(SigningFailedError):
    status_code = 400
    public_message = "Insufficient funds in the wallet to complete the transaction."


class WalletBusyError(SigningFailedError):
    """The custody wallet lock could not be acquired in time."""

    status_code = 503
    public_message = "Wallet is busy, please retry shortly."


class LinkResolutionFailedError(IssuanceError):
    """No claim link could be derived from the final transaction."""

    public_message = "Failed to retrieve links from transaction."


class LinkIssuerError(Exception):
    """Raised when the link issuing service cannot be reached or answers badly."""

    pass


class ConfigurationError(RuntimeError):
    """Raised when required process configuration is missing or malformed."""

    pass
