from django.contrib import admin

from orders.models import Order, Product
from wallets.admin import ReadOnlyAdminMixin


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "seller", "price", "stock", "created_at")
    search_fields = ("name", "seller__uuid", "seller__name")


@admin.register(Order)
class OrderAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = (
        "id",
        "product_name",
        "quantity",
        "buyer",
        "seller",
        "driver",
        "status",
        "total_charged_to_buyer",
        "settled",
        "created_at",
    )
    list_filter = ("status", "settled")
    search_fields = ("checkout_ref", "buyer__uuid", "seller__uuid", "driver__uuid")
    readonly_fields = [f.name for f in Order._meta.fields]
