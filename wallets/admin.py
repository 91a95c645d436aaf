from django.contrib import admin

from wallets.models import Account, Transaction


class ReadOnlyAdminMixin:
    """
    Mixin that makes an admin model completely read-only.

    Balances may only change through the ledger, so the admin can browse
    accounts and entries but never add, edit or delete them.
    """

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class TransactionInline(admin.TabularInline):
    model = Transaction
    fields = ("created_at", "kind", "amount", "balance_after", "description")
    readonly_fields = fields
    extra = 0
    can_delete = False
    show_change_link = True

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Account)
class AccountAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ("id", "uuid", "name", "role", "balance", "verified", "created_at")
    list_filter = ("role", "verified")
    search_fields = ("uuid", "name")
    readonly_fields = ("uuid", "name", "role", "balance", "verified", "created_at", "updated_at")
    inlines = [TransactionInline]


@admin.register(Transaction)
class TransactionAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = (
        "id",
        "account",
        "kind",
        "amount",
        "balance_after",
        "description",
        "created_at",
    )
    list_filter = ("kind",)
    search_fields = ("account__uuid", "description")
    readonly_fields = (
        "account",
        "kind",
        "amount",
        "description",
        "balance_after",
        "idempotency_key",
        "created_at",
        "updated_at",
    )
