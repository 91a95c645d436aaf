from rest_framework import serializers

from wallets.models import Transaction


class TransactionSerializer(serializers.ModelSerializer):
    """Read-only serializer for ledger entries."""

    account_uuid = serializers.UUIDField(source="account.uuid", read_only=True)

    class Meta:
        model = Transaction
        fields = (
            "id",
            "account_uuid",
            "kind",
            "amount",
            "description",
            "balance_after",
            "created_at",
        )
        read_only_fields = fields
