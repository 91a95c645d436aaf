import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from wallets.exceptions import WalletError
from wallets.models import Account
from wallets.serializers import TransactionSerializer, TransferSerializer
from wallets.services import WalletService
from wallets.utils import get_idempotency_key

logger = logging.getLogger(__name__)


class TransferView(APIView):
    """
    POST /accounts/<uuid>/transfer — Send balance to another account.

    Request body: {"to": "<account uuid>", "amount": <positive integer>}
    """

    def post(self, request, uuid, *args, **kwargs):
        serializer = TransferSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            tx = WalletService.send(
                from_uuid=uuid,
                to_uuid=serializer.validated_data["to"],
                amount=serializer.validated_data["amount"],
                idempotency_key=get_idempotency_key(request),
            )
        except Account.DoesNotExist:
            return Response(
                {"error": "Account not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        except (WalletError, ValueError) as exc:
            return Response(
                {"error": str(exc)},
                status=status.HTTP_400_BAD_REQUEST,
            )

        return Response(
            TransactionSerializer(tx).data,
            status=status.HTTP_201_CREATED,
        )
