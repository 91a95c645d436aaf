from rest_framework import serializers

from orders.models import Order


class OrderSerializer(serializers.ModelSerializer):
    """Read-only serializer for order responses."""

    buyer_uuid = serializers.UUIDField(source="buyer.uuid", read_only=True)
    seller_uuid = serializers.UUIDField(source="seller.uuid", read_only=True)
    driver_uuid = serializers.UUIDField(
        source="driver.uuid", read_only=True, allow_null=True
    )

    class Meta:
        model = Order
        fields = (
            "id",
            "checkout_ref",
            "buyer_uuid",
            "seller_uuid",
            "driver_uuid",
            "driver_name",
            "product",
            "product_name",
            "quantity",
            "unit_price",
            "distance_km",
            "shipping_fee",
            "buyer_service_fee",
            "total_charged_to_buyer",
            "status",
            "delivery_address",
            "delivery_lat",
            "delivery_lon",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields
