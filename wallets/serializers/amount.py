from rest_framework import serializers


class AmountSerializer(serializers.Serializer):
    """Validates top-up and withdrawal requests."""

    amount = serializers.IntegerField(min_value=1)


class TransferSerializer(AmountSerializer):
    """Validates a request to send balance to another account."""

    to = serializers.UUIDField()
