import logging

from django.db import OperationalError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from orders.exceptions import InvalidTransition
from orders.models import Order
from orders.serializers import OrderSerializer, TransitionSerializer
from orders.services import OrderStateMachine
from wallets.exceptions import WalletError
from wallets.models import Account

logger = logging.getLogger(__name__)


class OrderTransitionView(APIView):
    """
    POST /orders/<id>/transition — Move an order to its next status.

    Request body: {"status": "<target status>", "actor": "<account uuid>", "role": "<role>"}
    """

    def post(self, request, id, *args, **kwargs):
        serializer = TransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            order = OrderStateMachine().transition(
                order_id=id,
                target_status=data["status"],
                actor_uuid=data["actor"],
                actor_role=data["role"],
            )
        except Order.DoesNotExist:
            return Response(
                {"error": "Order not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        except Account.DoesNotExist:
            return Response(
                {"error": "Account not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        except InvalidTransition as exc:
            return Response(
                {"error": str(exc)},
                status=status.HTTP_409_CONFLICT,
            )
        except WalletError as exc:
            return Response(
                {"error": str(exc)},
                status=status.HTTP_400_BAD_REQUEST,
            )
        except OperationalError as exc:
            # Lock contention with a concurrent transition; nothing was written.
            logger.warning(
                "Transition contended: order=%d status=%s error=%s",
                id,
                data["status"],
                exc,
            )
            return Response(
                {"error": "Order is being updated by another request, retry shortly."},
                status=status.HTTP_503_SERVICE_UNAVAILABLE,
                headers={"Retry-After": "1"},
            )

        return Response(OrderSerializer(order).data, status=status.HTTP_200_OK)
