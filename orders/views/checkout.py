import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from orders.exceptions import OrderError
from orders.models import Product
from orders.serializers import CheckoutSerializer, OrderSerializer
from orders.services import CartLine, DeliveryLocation, OrderBuilder
from wallets.exceptions import WalletError
from wallets.models import Account

logger = logging.getLogger(__name__)


class CheckoutView(APIView):
    """
    POST /orders/checkout — Turn a buyer's cart into PENDING orders.

    Request body:
        {
            "buyer": "<account uuid>",
            "delivery": {"lat": <float>, "lon": <float>, "address": "<text>"},
            "lines": [{"product_id": <int>, "quantity": <int>}, ...]
        }
    """

    def post(self, request, *args, **kwargs):
        serializer = CheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        delivery = None
        if data.get("delivery"):
            delivery = DeliveryLocation(**data["delivery"])
        lines = [CartLine(**line) for line in data["lines"]]

        try:
            orders = OrderBuilder().build_orders(
                buyer_uuid=data["buyer"],
                lines=lines,
                delivery=delivery,
            )
        except Account.DoesNotExist:
            return Response(
                {"error": "Buyer not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        except Product.DoesNotExist as exc:
            return Response(
                {"error": str(exc) or "Product not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        except (OrderError, WalletError, ValueError) as exc:
            return Response(
                {"error": str(exc)},
                status=status.HTTP_400_BAD_REQUEST,
            )

        return Response(
            OrderSerializer(orders, many=True).data,
            status=status.HTTP_201_CREATED,
        )
