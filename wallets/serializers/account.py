from rest_framework import serializers

from wallets.models import Account


class AccountSerializer(serializers.ModelSerializer):
    class Meta:
        model = Account
        fields = ("uuid", "name", "role", "balance", "verified", "created_at", "updated_at")
        read_only_fields = ("uuid", "balance", "verified", "created_at", "updated_at")

    def validate_role(self, value):
        if value == Account.Role.PLATFORM:
            raise serializers.ValidationError("The platform account cannot be created.")
        return value
