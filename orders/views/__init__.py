from orders.views.checkout import CheckoutView
from orders.views.order import OrderDetailView, OrderListView, SettlementPreviewView
from orders.views.transition import OrderTransitionView

__all__ = [
    "CheckoutView",
    "OrderDetailView",
    "OrderListView",
    "SettlementPreviewView",
    "OrderTransitionView",
]
