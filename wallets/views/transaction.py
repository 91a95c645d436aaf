from rest_framework.generics import ListAPIView, RetrieveAPIView

from wallets.models import Transaction
from wallets.serializers import TransactionSerializer


class TransactionListView(ListAPIView):
    """
    GET /accounts/<uuid>/transactions/ — Ledger entries of an account, newest first.

    Query params:
        - kind: Filter by entry kind (TOPUP, PAYMENT, INCOME, WITHDRAW, TRANSFER)
    """

    serializer_class = TransactionSerializer

    def get_queryset(self):
        queryset = Transaction.objects.select_related("account").filter(
            account__uuid=self.kwargs["uuid"]
        )

        kind = self.request.query_params.get("kind")
        if kind:
            queryset = queryset.filter(kind=kind.upper())

        return queryset


class TransactionDetailView(RetrieveAPIView):
    """GET /accounts/<uuid>/transactions/<id>/ — Retrieve a single ledger entry."""

    serializer_class = TransactionSerializer
    lookup_field = "id"

    def get_queryset(self):
        return Transaction.objects.filter(account__uuid=self.kwargs["uuid"])
