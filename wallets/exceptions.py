class WalletError(Exception):
    """Base class for recoverable, user-facing wallet errors."""


class InsufficientFunds(WalletError):
    def __init__(self, account_uuid, balance, amount):
        self.account_uuid = account_uuid
        self.balance = balance
        self.amount = amount
        super().__init__(
            f"Insufficient balance: account {account_uuid} has {balance}, needs {amount}."
        )


class Unverified(WalletError):
    """Withdrawal attempted from an account the platform has not verified."""


class BelowMinimum(WalletError):
    def __init__(self, amount, minimum):
        self.amount = amount
        self.minimum = minimum
        super().__init__(f"Amount {amount} is below the minimum of {minimum}.")


class IdempotencyConflict(WalletError):
    """An idempotency key was reused for a request with different parameters."""
