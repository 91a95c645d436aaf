import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from wallets.exceptions import Unverified, WalletError
from wallets.models import Account
from wallets.serializers import AccountSerializer, AmountSerializer, TransactionSerializer
from wallets.services import WalletService
from wallets.utils import get_idempotency_key

logger = logging.getLogger(__name__)


class WithdrawView(APIView):
    """
    POST /accounts/<uuid>/withdraw — Withdraw funds from a verified account.

    Request body: {"amount": <positive integer>}
    """

    def post(self, request, uuid, *args, **kwargs):
        serializer = AmountSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            tx = WalletService.withdraw(
                account_uuid=uuid,
                amount=serializer.validated_data["amount"],
                idempotency_key=get_idempotency_key(request),
            )
        except Account.DoesNotExist:
            return Response(
                {"error": "Account not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        except Unverified as exc:
            return Response(
                {"error": str(exc)},
                status=status.HTTP_403_FORBIDDEN,
            )
        except (WalletError, ValueError) as exc:
            return Response(
                {"error": str(exc)},
                status=status.HTTP_400_BAD_REQUEST,
            )

        tx.account.refresh_from_db()
        return Response(
            {
                "account": AccountSerializer(tx.account).data,
                "transaction": TransactionSerializer(tx).data,
            },
            status=status.HTTP_201_CREATED,
        )
