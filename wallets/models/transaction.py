from django.db import models
from django.db.models import Q

from wallets.models.account import Account
from wallets.models.base import BaseModel


class Transaction(BaseModel):
    """
    One immutable ledger entry against a single account.

    TOPUP and INCOME entries credit the account; PAYMENT, WITHDRAW and
    TRANSFER entries debit it. ``amount`` is always positive, the direction
    comes from ``kind``. Replaying every entry of an account in order must
    reproduce its materialized balance, and ``balance_after`` records the
    balance right after the entry was applied.
    """

    class Kind(models.TextChoices):
        TOPUP = "TOPUP", "Top-up"
        PAYMENT = "PAYMENT", "Payment"
        INCOME = "INCOME", "Income"
        WITHDRAW = "WITHDRAW", "Withdrawal"
        TRANSFER = "TRANSFER", "Transfer"

    CREDIT_KINDS = frozenset({Kind.TOPUP.value, Kind.INCOME.value})
    DEBIT_KINDS = frozenset(
        {Kind.PAYMENT.value, Kind.WITHDRAW.value, Kind.TRANSFER.value}
    )

    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="transactions",
    )
    kind = models.CharField(max_length=10, choices=Kind.choices)
    amount = models.BigIntegerField()
    description = models.CharField(max_length=255, blank=True, default="")
    balance_after = models.BigIntegerField(
        help_text="Account balance immediately after this entry.",
    )
    idempotency_key = models.UUIDField(
        unique=True,
        null=True,
        blank=True,
        editable=False,
        help_text="Client-generated UUID for idempotency.",
    )

    class Meta(BaseModel.Meta):
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0), name="transaction_amount_positive"
            ),
        ]
        indexes = [
            models.Index(fields=["account", "kind"], name="idx_account_kind"),
        ]

    def __str__(self):
        return f"Transaction {self.id} | {self.kind} | {self.amount}"

    @property
    def is_credit(self):
        return self.kind in self.CREDIT_KINDS

    @property
    def signed_amount(self):
        return self.amount if self.is_credit else -self.amount

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Ledger entries are immutable once written.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Ledger entries cannot be deleted.")
