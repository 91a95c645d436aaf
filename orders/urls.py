from django.urls import path

from orders.views import (
    CheckoutView,
    OrderDetailView,
    OrderListView,
    OrderTransitionView,
    SettlementPreviewView,
)

urlpatterns = [
    path("", OrderListView.as_view(), name="order-list"),
    path("checkout", CheckoutView.as_view(), name="order-checkout"),
    path("<int:id>/", OrderDetailView.as_view(), name="order-detail"),
    path("<int:id>/transition", OrderTransitionView.as_view(), name="order-transition"),
    path("<int:id>/settlement", SettlementPreviewView.as_view(), name="order-settlement"),
]
