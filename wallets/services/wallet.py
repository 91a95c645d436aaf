import logging

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from wallets.exceptions import BelowMinimum, IdempotencyConflict, Unverified
from wallets.models import Account, Transaction
from wallets.services.ledger import LedgerService, account_key

logger = logging.getLogger(__name__)


def _min_topup() -> int:
    return getattr(settings, "MIN_TOPUP_AMOUNT", 10000)


def _min_withdrawal() -> int:
    return getattr(settings, "MIN_WITHDRAWAL_AMOUNT", 10000)


class WalletService:
    """
    User-initiated wallet operations: top-up, withdrawal and sending balance
    to another user.

    Each operation accepts an optional client idempotency key. A retried
    request carrying a key that was already used returns the transaction
    written by the first request and moves no money. Reusing a key for a
    different operation, account or amount raises IdempotencyConflict.
    """

    @staticmethod
    def _existing(idempotency_key, account_uuid, amount, kind, operation):
        if not idempotency_key:
            return None

        existing_tx = (
            Transaction.objects.select_related("account")
            .filter(idempotency_key=idempotency_key)
            .first()
        )
        if existing_tx is None:
            return None

        if (
            existing_tx.kind != kind
            or existing_tx.amount != amount
            or str(existing_tx.account.uuid) != account_key(account_uuid)
        ):
            logger.warning(
                "Idempotency conflict: key=%s existing_kind=%s new_kind=%s "
                "existing_amount=%d new_amount=%d",
                idempotency_key,
                existing_tx.kind,
                kind,
                existing_tx.amount,
                amount,
            )
            raise IdempotencyConflict(
                f"Idempotency key {idempotency_key} was already used "
                "for a different request."
            )

        logger.info(
            "Idempotent %s request: key=%s tx=%d",
            operation,
            idempotency_key,
            existing_tx.id,
        )
        return existing_tx

    @staticmethod
    @transaction.atomic
    def top_up(account_uuid, amount: int, idempotency_key: str = None) -> Transaction:
        """
        Add funds to an account.

        Raises:
            Account.DoesNotExist: If the account doesn't exist.
            BelowMinimum: If amount is under MIN_TOPUP_AMOUNT.
            ValueError: If amount is not positive.
        """
        if amount <= 0:
            raise ValueError("Top-up amount must be positive.")

        existing_tx = WalletService._existing(
            idempotency_key, account_uuid, amount, Transaction.Kind.TOPUP, "top-up"
        )
        if existing_tx:
            return existing_tx

        minimum = _min_topup()
        if amount < minimum:
            raise BelowMinimum(amount, minimum)

        tx = LedgerService.credit(
            account_uuid,
            amount,
            "Top-up",
            kind=Transaction.Kind.TOPUP,
            idempotency_key=idempotency_key,
        )
        logger.info(
            "Top-up completed: account=%s amount=%d new_balance=%d tx=%d",
            account_uuid,
            amount,
            tx.balance_after,
            tx.id,
        )
        return tx

    @staticmethod
    @transaction.atomic
    def withdraw(account_uuid, amount: int, idempotency_key: str = None) -> Transaction:
        """
        Take funds out of a verified account.

        Checks run in this order: verification, minimum amount, balance.

        Raises:
            Account.DoesNotExist: If the account doesn't exist.
            Unverified: If the platform hasn't verified the account.
            BelowMinimum: If amount is under MIN_WITHDRAWAL_AMOUNT.
            InsufficientFunds: If the balance doesn't cover the amount.
            ValueError: If amount is not positive.
        """
        if amount <= 0:
            raise ValueError("Withdrawal amount must be positive.")

        existing_tx = WalletService._existing(
            idempotency_key,
            account_uuid,
            amount,
            Transaction.Kind.WITHDRAW,
            "withdrawal",
        )
        if existing_tx:
            return existing_tx

        account = Account.objects.get(uuid=account_uuid)
        if not account.verified:
            logger.warning("Withdrawal rejected (unverified): account=%s", account.uuid)
            raise Unverified(f"Account {account.uuid} is not verified for withdrawals.")

        minimum = _min_withdrawal()
        if amount < minimum:
            raise BelowMinimum(amount, minimum)

        tx = LedgerService.debit(
            account_uuid,
            amount,
            "Cash withdrawal",
            kind=Transaction.Kind.WITHDRAW,
            idempotency_key=idempotency_key,
        )
        logger.info(
            "Withdrawal completed: account=%s amount=%d new_balance=%d tx=%d",
            account_uuid,
            amount,
            tx.balance_after,
            tx.id,
        )
        return tx

    @staticmethod
    @transaction.atomic
    def send(
        from_uuid, to_uuid, amount: int, idempotency_key: str = None
    ) -> Transaction:
        """
        Send balance from one user to another.

        Returns:
            The sender's TRANSFER transaction.

        Raises:
            Account.DoesNotExist: If either account doesn't exist.
            InsufficientFunds: If the sender's balance doesn't cover the amount.
            ValueError: If amount is not positive or both accounts are the same.
        """
        if amount <= 0:
            raise ValueError("Transfer amount must be positive.")

        existing_tx = WalletService._existing(
            idempotency_key, from_uuid, amount, Transaction.Kind.TRANSFER, "transfer"
        )
        if existing_tx:
            return existing_tx

        sender = Account.objects.get(uuid=from_uuid)
        receiver = Account.objects.get(uuid=to_uuid)

        debit_tx, _ = LedgerService.transfer(
            sender.uuid,
            receiver.uuid,
            amount,
            f"Transfer {sender.name or sender.uuid} -> {receiver.name or receiver.uuid}",
            idempotency_key=idempotency_key,
        )
        logger.info(
            "Transfer completed: from=%s to=%s amount=%d tx=%d",
            sender.uuid,
            receiver.uuid,
            amount,
            debit_tx.id,
        )
        return debit_tx

    @staticmethod
    @transaction.atomic
    def verify(account_uuid) -> Account:
        """
        Mark an account as verified by the platform, unlocking withdrawals.
        Verifying an already verified account changes nothing.

        Raises:
            Account.DoesNotExist: If the account doesn't exist.
        """
        account = Account.objects.select_for_update().get(uuid=account_uuid)
        if account.verified:
            return account

        Account.objects.filter(pk=account.pk).update(
            verified=True, updated_at=timezone.now()
        )
        account.refresh_from_db(fields=["verified", "updated_at"])
        logger.info("Account verified: account=%s role=%s", account.uuid, account.role)
        return account
