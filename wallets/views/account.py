import logging

from rest_framework import status
from rest_framework.generics import CreateAPIView, RetrieveAPIView
from rest_framework.response import Response
from rest_framework.views import APIView

from wallets.models import Account
from wallets.serializers import AccountSerializer
from wallets.services import WalletService

logger = logging.getLogger(__name__)


class CreateAccountView(CreateAPIView):
    """POST /accounts/ — Create a buyer, seller or driver account."""

    serializer_class = AccountSerializer

    def perform_create(self, serializer):
        account = serializer.save()
        logger.info("Account created: account=%s role=%s", account.uuid, account.role)


class RetrieveAccountView(RetrieveAPIView):
    """GET /accounts/<uuid>/ — Account details including its current balance."""

    serializer_class = AccountSerializer
    queryset = Account.objects.all()
    lookup_field = "uuid"


class VerifyAccountView(APIView):
    """POST /accounts/<uuid>/verify — Platform operator marks an account as verified."""

    def post(self, request, uuid, *args, **kwargs):
        try:
            account = WalletService.verify(uuid)
        except Account.DoesNotExist:
            return Response(
                {"error": "Account not found."},
                status=status.HTTP_404_NOT_FOUND,
            )

        return Response(AccountSerializer(account).data, status=status.HTTP_200_OK)
