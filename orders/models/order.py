from django.db import models
from django.db.models import F, Q

from orders.models.product import Product
from wallets.models import Account, BaseModel


class Order(BaseModel):
    """
    One product line of a buyer's checkout, shipped by one seller.

    The buyer pays ``total_charged_to_buyer`` at checkout and the money is
    held undistributed until the order reaches COMPLETED, at which point it
    is settled exactly once (``settled``). Status only changes through
    ``OrderStateMachine``.
    """

    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        CONFIRMED = "CONFIRMED", "Confirmed by seller"
        DRIVER_EN_ROUTE_PICKUP = "DRIVER_EN_ROUTE_PICKUP", "Driver en route to pickup"
        IN_TRANSIT = "IN_TRANSIT", "In transit"
        COMPLETED = "COMPLETED", "Completed"

    checkout_ref = models.UUIDField(
        db_index=True,
        editable=False,
        help_text="Shared by every order created in the same checkout.",
    )
    buyer = models.ForeignKey(
        Account, on_delete=models.PROTECT, related_name="purchases"
    )
    seller = models.ForeignKey(Account, on_delete=models.PROTECT, related_name="sales")
    driver = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="deliveries",
        null=True,
        blank=True,
    )
    driver_name = models.CharField(max_length=120, blank=True, default="")
    product = models.ForeignKey(
        Product, on_delete=models.PROTECT, related_name="orders"
    )
    product_name = models.CharField(max_length=200)
    quantity = models.PositiveIntegerField()
    unit_price = models.BigIntegerField()
    distance_km = models.FloatField()
    shipping_fee = models.BigIntegerField()
    buyer_service_fee = models.BigIntegerField()
    total_charged_to_buyer = models.BigIntegerField()
    status = models.CharField(
        max_length=24,
        choices=Status.choices,
        default=Status.PENDING,
    )
    delivery_address = models.CharField(max_length=255, blank=True, default="")
    delivery_lat = models.FloatField()
    delivery_lon = models.FloatField()
    settled = models.BooleanField(default=False, editable=False)
    settled_at = models.DateTimeField(null=True, blank=True, editable=False)

    class Meta(BaseModel.Meta):
        constraints = [
            models.CheckConstraint(
                condition=Q(
                    total_charged_to_buyer=F("unit_price") * F("quantity")
                    + F("shipping_fee")
                    + F("buyer_service_fee")
                ),
                name="order_total_consistent",
            ),
            models.CheckConstraint(
                condition=Q(settled=False) | Q(status="COMPLETED"),
                name="order_settled_only_when_completed",
            ),
        ]
        indexes = [
            models.Index(fields=["status", "driver"], name="idx_status_driver"),
        ]

    def __str__(self):
        return f"Order #{self.id} | {self.product_name} x{self.quantity} | {self.status}"

    @property
    def subtotal(self):
        return self.unit_price * self.quantity
