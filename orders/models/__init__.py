from orders.models.product import Product
from orders.models.order import Order

__all__ = ["Product", "Order"]
