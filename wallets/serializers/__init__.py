from wallets.serializers.account import AccountSerializer
from wallets.serializers.amount import AmountSerializer, TransferSerializer
from wallets.serializers.transaction import TransactionSerializer

__all__ = [
    "AccountSerializer",
    "AmountSerializer",
    "TransferSerializer",
    "TransactionSerializer",
]
