from rest_framework import serializers


class SettlementSerializer(serializers.Serializer):
    order_id = serializers.IntegerField()
    subtotal = serializers.IntegerField()
    platform_fee_on_sale = serializers.IntegerField()
    seller_income = serializers.IntegerField()
    driver_income = serializers.IntegerField()
    buyer_service_fee = serializers.IntegerField()
    platform_income = serializers.IntegerField()
