import uuid

from rest_framework import status
from rest_framework.generics import ListAPIView, RetrieveAPIView
from rest_framework.response import Response
from rest_framework.views import APIView

from orders.models import Order
from orders.serializers import OrderSerializer, SettlementSerializer
from orders.services import compute_settlement


class OrderListView(ListAPIView):
    """
    GET /orders/ — List orders, newest first.

    Query params:
        - buyer / seller / driver: Account uuid of the party
        - status: Filter by order status
        - unassigned: "true" for orders still waiting for a driver
    """

    serializer_class = OrderSerializer

    def get_queryset(self):
        queryset = Order.objects.select_related("buyer", "seller", "driver")
        params = self.request.query_params

        for party in ("buyer", "seller", "driver"):
            value = params.get(party)
            if not value:
                continue
            try:
                value = uuid.UUID(value)
            except ValueError:
                return queryset.none()
            queryset = queryset.filter(**{f"{party}__uuid": value})

        order_status = params.get("status")
        if order_status:
            queryset = queryset.filter(status=order_status.upper())

        if params.get("unassigned", "").lower() == "true":
            queryset = queryset.filter(driver__isnull=True)

        return queryset


class OrderDetailView(RetrieveAPIView):
    """GET /orders/<id>/ — Retrieve a single order."""

    serializer_class = OrderSerializer
    lookup_field = "id"
    queryset = Order.objects.select_related("buyer", "seller", "driver")


class SettlementPreviewView(APIView):
    """GET /orders/<id>/settlement — How the order's money is (or will be) split."""

    def get(self, request, id, *args, **kwargs):
        try:
            order = Order.objects.get(pk=id)
        except Order.DoesNotExist:
            return Response(
                {"error": "Order not found."},
                status=status.HTTP_404_NOT_FOUND,
            )

        breakdown = compute_settlement(order)
        data = SettlementSerializer(breakdown).data
        data["settled"] = order.settled
        return Response(data, status=status.HTTP_200_OK)
