import logging
from dataclasses import dataclass

from django.db.models import F

from orders.exceptions import InvalidCheckout
from orders.models import Product

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProductSnapshot:
    """Read-only view of a product at the moment an order is built."""

    product_id: int
    seller_id: int
    name: str
    price: int
    stock: int
    origin_lat: float
    origin_lon: float

    @classmethod
    def from_product(cls, product):
        return cls(
            product_id=product.pk,
            seller_id=product.seller_id,
            name=product.name,
            price=product.price,
            stock=product.stock,
            origin_lat=product.origin_lat,
            origin_lon=product.origin_lon,
        )


class ProductCatalog:
    """
    The order side's window onto the product catalog: read a product,
    decrement its stock. Nothing else about products is managed here.
    """

    def get_product(self, product_id, lock=False) -> ProductSnapshot:
        queryset = Product.objects.all()
        if lock:
            queryset = queryset.select_for_update()
        return ProductSnapshot.from_product(queryset.get(pk=product_id))

    def get_products(self, product_ids, lock=False) -> dict:
        """
        Snapshots keyed by product id. With ``lock`` the rows are locked in
        ascending id order until the surrounding transaction ends.

        Raises:
            Product.DoesNotExist: If any of the ids is unknown.
        """
        wanted = sorted(set(product_ids))
        queryset = Product.objects.filter(pk__in=wanted).order_by("pk")
        if lock:
            queryset = queryset.select_for_update()

        snapshots = {p.pk: ProductSnapshot.from_product(p) for p in queryset}
        missing = [pk for pk in wanted if pk not in snapshots]
        if missing:
            raise Product.DoesNotExist(
                f"Product not found: {', '.join(str(pk) for pk in missing)}"
            )
        return snapshots

    def decrement_stock(self, product_id, quantity: int) -> None:
        """
        Take ``quantity`` units out of stock; stock never goes below zero.

        Raises:
            Product.DoesNotExist: If the product is unknown.
            InvalidCheckout: If there isn't enough stock left.
        """
        if quantity <= 0:
            raise ValueError("Stock decrement must be positive.")

        updated = Product.objects.filter(pk=product_id, stock__gte=quantity).update(
            stock=F("stock") - quantity
        )
        if not updated:
            product = Product.objects.get(pk=product_id)
            logger.warning(
                "Stock decrement rejected: product=%d stock=%d requested=%d",
                product.pk,
                product.stock,
                quantity,
            )
            raise InvalidCheckout(
                f"Only {product.stock} of '{product.name}' left in stock."
            )

        logger.info("Stock decremented: product=%s quantity=%d", product_id, quantity)
