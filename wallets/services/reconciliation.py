import logging
from dataclasses import dataclass

from django.db import transaction

from wallets.models import Account
from wallets.services.ledger import LedgerService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconciliationResult:
    account_uuid: str
    balance: int
    replayed: int

    @property
    def ok(self) -> bool:
        return self.balance == self.replayed


class ReconciliationService:
    """Checks materialized balances against a full replay of the ledger."""

    @staticmethod
    @transaction.atomic
    def check_account(account_uuid) -> ReconciliationResult:
        # Lock the account so no posting lands between the two reads.
        account = Account.objects.select_for_update().get(uuid=account_uuid)
        result = ReconciliationResult(
            account_uuid=str(account.uuid),
            balance=account.balance,
            replayed=LedgerService.replay_balance(account.uuid),
        )
        if not result.ok:
            logger.error(
                "Ledger mismatch: account=%s balance=%d replayed=%d",
                result.account_uuid,
                result.balance,
                result.replayed,
            )
        return result

    @staticmethod
    def check_all() -> list:
        """Return the accounts whose balance disagrees with their ledger."""
        mismatches = []
        for account_uuid in Account.objects.values_list("uuid", flat=True).iterator():
            result = ReconciliationService.check_account(account_uuid)
            if not result.ok:
                mismatches.append(result)

        logger.info("Ledger reconciliation finished: mismatches=%d", len(mismatches))
        return mismatches
