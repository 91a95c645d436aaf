class OrderError(Exception):
    """Base class for recoverable, user-facing order errors."""


class InvalidCheckout(OrderError):
    """The cart or delivery details can't be turned into orders."""


class InvalidTransition(OrderError):
    """The requested status change isn't allowed for this order or actor."""
