from wallets.services.ledger import Entry, LedgerService
from wallets.services.reconciliation import ReconciliationResult, ReconciliationService
from wallets.services.wallet import WalletService

__all__ = [
    "Entry",
    "LedgerService",
    "ReconciliationResult",
    "ReconciliationService",
    "WalletService",
]
