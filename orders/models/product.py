from django.db import models
from django.db.models import Q

from wallets.models import Account, BaseModel


class Product(BaseModel):
    """
    Catalog entry as seen by checkout: price, stock and the seller's pickup
    point. Listing and editing products happens elsewhere; orders only read
    a product and decrement its stock.
    """

    seller = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="products",
        limit_choices_to={"role": Account.Role.SELLER},
    )
    name = models.CharField(max_length=200)
    price = models.BigIntegerField()
    stock = models.IntegerField(default=0)
    origin_lat = models.FloatField()
    origin_lon = models.FloatField()

    class Meta(BaseModel.Meta):
        constraints = [
            models.CheckConstraint(
                condition=Q(stock__gte=0), name="product_stock_non_negative"
            ),
            models.CheckConstraint(
                condition=Q(price__gte=0), name="product_price_non_negative"
            ),
        ]

    def __str__(self):
        return f"{self.name} (stock={self.stock}, price={self.price})"
