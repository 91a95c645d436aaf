from django.urls import path

from wallets.views import (
    CreateAccountView,
    RetrieveAccountView,
    TopUpView,
    TransactionDetailView,
    TransactionListView,
    TransferView,
    VerifyAccountView,
    WithdrawView,
)

urlpatterns = [
    path("", CreateAccountView.as_view(), name="account-create"),
    path("<uuid:uuid>/", RetrieveAccountView.as_view(), name="account-detail"),
    path("<uuid:uuid>/verify", VerifyAccountView.as_view(), name="account-verify"),
    path("<uuid:uuid>/topup", TopUpView.as_view(), name="account-topup"),
    path("<uuid:uuid>/withdraw", WithdrawView.as_view(), name="account-withdraw"),
    path("<uuid:uuid>/transfer", TransferView.as_view(), name="account-transfer"),
    path(
        "<uuid:uuid>/transactions/",
        TransactionListView.as_view(),
        name="account-transactions",
    ),
    path(
        "<uuid:uuid>/transactions/<int:id>/",
        TransactionDetailView.as_view(),
        name="transaction-detail",
    ),
]
