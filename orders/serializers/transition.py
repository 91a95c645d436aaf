from rest_framework import serializers

from orders.models import Order
from wallets.models import Account


class TransitionSerializer(serializers.Serializer):
    """Validates a request to move an order to another status."""

    status = serializers.ChoiceField(choices=Order.Status.choices)
    actor = serializers.UUIDField()
    role = serializers.ChoiceField(choices=Account.Role.choices)
