from wallets.views.account import (
    CreateAccountView,
    RetrieveAccountView,
    VerifyAccountView,
)
from wallets.views.topup import TopUpView
from wallets.views.withdraw import WithdrawView
from wallets.views.transfer import TransferView
from wallets.views.transaction import TransactionListView, TransactionDetailView

__all__ = [
    "CreateAccountView",
    "RetrieveAccountView",
    "VerifyAccountView",
    "TopUpView",
    "WithdrawView",
    "TransferView",
    "TransactionListView",
    "TransactionDetailView",
]
