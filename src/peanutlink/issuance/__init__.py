"""Payment link issuance."""

from peanutlink.issuance.journal import IssuanceJournal, LedgerIssuanceJournal
from peanutlink.issuance.models import IssuanceRecord, IssuanceResult, LinkRequest
from peanutlink.issuance.workflow import LinkIssuanceWorkflow, to_tx_params

__all__ = [
    "IssuanceJournal",
    "IssuanceRecord",
    "IssuanceResult",
    "LedgerIssuanceJournal",
    "LinkIssuanceWorkflow",
    "LinkRequest",
    "to_tx_params",
]
