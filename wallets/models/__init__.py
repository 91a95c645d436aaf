from wallets.models.base import BaseModel
from wallets.models.account import Account
from wallets.models.transaction import Transaction

__all__ = ["BaseModel", "Account", "Transaction"]
