from wallets.utils.headers import get_idempotency_key

__all__ = ["get_idempotency_key"]
