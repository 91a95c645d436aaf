import uuid

from django.db import models
from django.db.models import Q

from wallets.models.base import BaseModel


class Account(BaseModel):
    """
    A wallet account for one marketplace participant.

    The balance is an integer amount of whole currency units. It is a
    materialized view of the account's ledger entries and is only ever
    changed by ``LedgerService`` under a row lock; never assign it directly.
    """

    class Role(models.TextChoices):
        BUYER = "BUYER", "Buyer"
        SELLER = "SELLER", "Seller"
        DRIVER = "DRIVER", "Driver"
        PLATFORM = "PLATFORM", "Platform"

    uuid = models.UUIDField(
        default=uuid.uuid4, unique=True, editable=False, db_index=True
    )
    name = models.CharField(max_length=120, blank=True, default="")
    role = models.CharField(max_length=10, choices=Role.choices)
    balance = models.BigIntegerField(default=0)
    verified = models.BooleanField(
        default=False,
        help_text="Verified by the platform; required for withdrawals.",
    )

    class Meta(BaseModel.Meta):
        constraints = [
            models.CheckConstraint(
                condition=Q(balance__gte=0), name="account_balance_non_negative"
            ),
            models.UniqueConstraint(
                fields=["role"],
                condition=Q(role="PLATFORM"),
                name="single_platform_account",
            ),
        ]

    def __str__(self):
        return f"Account {self.uuid} ({self.role}, balance={self.balance})"

    def delete(self, *args, **kwargs):
        raise ValueError("Accounts are retained for audit and cannot be deleted.")

    @classmethod
    def get_platform(cls):
        """Return the platform operator's account, creating it on first use."""
        account, _ = cls.objects.get_or_create(
            role=cls.Role.PLATFORM, defaults={"name": "Platform", "verified": True}
        )
        return account
