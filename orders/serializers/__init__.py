from orders.serializers.checkout import (
    CartLineSerializer,
    CheckoutSerializer,
    DeliverySerializer,
)
from orders.serializers.order import OrderSerializer
from orders.serializers.settlement import SettlementSerializer
from orders.serializers.transition import TransitionSerializer

__all__ = [
    "CartLineSerializer",
    "CheckoutSerializer",
    "DeliverySerializer",
    "OrderSerializer",
    "SettlementSerializer",
    "TransitionSerializer",
]
