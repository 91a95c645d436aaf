import logging
import uuid
from dataclasses import dataclass
from typing import Iterable, Optional

from django.db import transaction
from django.db.models import F, Sum

from wallets.exceptions import InsufficientFunds
from wallets.models import Account, Transaction

logger = logging.getLogger(__name__)


def account_key(value) -> str:
    """Canonical string form of an account uuid."""
    return str(uuid.UUID(str(value)))


@dataclass(frozen=True)
class Entry:
    """A balance movement waiting to be posted to the ledger."""

    account_uuid: str
    kind: str
    amount: int
    description: str = ""
    idempotency_key: Optional[str] = None

    @property
    def delta(self) -> int:
        if self.kind in Transaction.CREDIT_KINDS:
            return self.amount
        return -self.amount


class LedgerService:
    """
    The only code path allowed to change an account balance.

    Every movement is posted as an immutable Transaction and applied to the
    account's materialized balance inside one database transaction. All
    accounts touched by a posting are locked with select_for_update() in
    ascending uuid order, so two postings over overlapping accounts always
    acquire their locks in the same order.
    """

    @staticmethod
    def _validate(entry: Entry) -> None:
        if isinstance(entry.amount, bool) or not isinstance(entry.amount, int):
            raise ValueError(f"Ledger amount must be an integer, got {entry.amount!r}.")
        if entry.amount <= 0:
            raise ValueError("Ledger amount must be positive.")
        if entry.kind not in Transaction.Kind.values:
            raise ValueError(f"Unknown ledger entry kind {entry.kind!r}.")

    @staticmethod
    def _lock_accounts(account_uuids: Iterable) -> dict:
        wanted = {account_key(u) for u in account_uuids}
        accounts = (
            Account.objects.select_for_update()
            .filter(uuid__in=sorted(wanted))
            .order_by("uuid")
        )
        locked = {str(account.uuid): account for account in accounts}

        missing = wanted - locked.keys()
        if missing:
            raise Account.DoesNotExist(
                f"Account not found: {', '.join(sorted(missing))}"
            )
        return locked

    @staticmethod
    @transaction.atomic
    def post(entries: Iterable[Entry]) -> list:
        """
        Apply a group of entries as a single all-or-nothing unit.

        Debits are checked against the balance each account would have at
        that point of the posting, so a credit earlier in the same group can
        fund a later debit. Nothing is written unless every entry is valid.

        Returns:
            The created Transactions, in the order of ``entries``.

        Raises:
            Account.DoesNotExist: If any referenced account doesn't exist.
            InsufficientFunds: If any debit would overdraw its account.
            ValueError: If an entry has a non-positive amount or unknown kind.
        """
        entries = list(entries)
        if not entries:
            raise ValueError("Cannot post an empty group of ledger entries.")
        for entry in entries:
            LedgerService._validate(entry)

        accounts = LedgerService._lock_accounts(e.account_uuid for e in entries)

        projected = {key: account.balance for key, account in accounts.items()}
        for entry in entries:
            key = account_key(entry.account_uuid)
            if projected[key] + entry.delta < 0:
                logger.warning(
                    "Ledger posting rejected (insufficient balance): account=%s "
                    "balance=%d amount=%d kind=%s",
                    key,
                    projected[key],
                    entry.amount,
                    entry.kind,
                )
                raise InsufficientFunds(key, projected[key], entry.amount)
            projected[key] += entry.delta

        created = []
        for entry in entries:
            account = accounts[account_key(entry.account_uuid)]

            Account.objects.filter(pk=account.pk).update(
                balance=F("balance") + entry.delta
            )
            account.refresh_from_db(fields=["balance"])

            tx = Transaction.objects.create(
                account=account,
                kind=entry.kind,
                amount=entry.amount,
                description=entry.description,
                balance_after=account.balance,
                idempotency_key=entry.idempotency_key,
            )
            created.append(tx)

            logger.info(
                "Ledger %s: account=%s kind=%s amount=%d new_balance=%d tx=%d",
                "credit" if entry.delta > 0 else "debit",
                account.uuid,
                entry.kind,
                entry.amount,
                account.balance,
                tx.id,
            )

        return created

    @staticmethod
    def credit(
        account_uuid,
        amount: int,
        description: str = "",
        kind: str = Transaction.Kind.INCOME,
        idempotency_key: str = None,
    ) -> Transaction:
        if kind not in Transaction.CREDIT_KINDS:
            raise ValueError(f"{kind} is not a credit entry kind.")
        (tx,) = LedgerService.post(
            [Entry(account_uuid, kind, amount, description, idempotency_key)]
        )
        return tx

    @staticmethod
    def debit(
        account_uuid,
        amount: int,
        description: str = "",
        kind: str = Transaction.Kind.PAYMENT,
        idempotency_key: str = None,
    ) -> Transaction:
        if kind not in Transaction.DEBIT_KINDS:
            raise ValueError(f"{kind} is not a debit entry kind.")
        (tx,) = LedgerService.post(
            [Entry(account_uuid, kind, amount, description, idempotency_key)]
        )
        return tx

    @staticmethod
    def transfer(
        from_uuid,
        to_uuid,
        amount: int,
        description: str = "",
        idempotency_key: str = None,
    ) -> tuple:
        """
        Move ``amount`` between two accounts: a TRANSFER debit on the sender
        and an INCOME credit on the receiver, both or neither.
        """
        if account_key(from_uuid) == account_key(to_uuid):
            raise ValueError("Cannot transfer to the same account.")
        debit_tx, credit_tx = LedgerService.post(
            [
                Entry(
                    from_uuid,
                    Transaction.Kind.TRANSFER,
                    amount,
                    description,
                    idempotency_key,
                ),
                Entry(to_uuid, Transaction.Kind.INCOME, amount, description),
            ]
        )
        return debit_tx, credit_tx

    @staticmethod
    def get_balance(account_uuid) -> int:
        return Account.objects.values_list("balance", flat=True).get(uuid=account_uuid)

    @staticmethod
    def get_transactions(account_uuid):
        """Ledger entries of an account, newest first."""
        account = Account.objects.get(uuid=account_uuid)
        return account.transactions.all()

    @staticmethod
    def replay_balance(account_uuid) -> int:
        """Recompute a balance from scratch by summing the account's entries."""
        totals = (
            Transaction.objects.filter(account__uuid=account_uuid)
            .order_by()
            .values("kind")
            .annotate(total=Sum("amount"))
        )
        balance = 0
        for row in totals:
            if row["kind"] in Transaction.CREDIT_KINDS:
                balance += row["total"]
            else:
                balance -= row["total"]
        return balance
