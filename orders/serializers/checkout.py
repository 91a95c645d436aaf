from rest_framework import serializers


class DeliverySerializer(serializers.Serializer):
    lat = serializers.FloatField(min_value=-90, max_value=90)
    lon = serializers.FloatField(min_value=-180, max_value=180)
    address = serializers.CharField(max_length=255, allow_blank=True, default="")


class CartLineSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)


class CheckoutSerializer(serializers.Serializer):
    """
    Validates a checkout request.

    An empty cart or a missing delivery location passes validation and is
    rejected by the order builder itself.
    """

    buyer = serializers.UUIDField()
    delivery = DeliverySerializer(required=False, allow_null=True)
    lines = CartLineSerializer(many=True, allow_empty=True)
