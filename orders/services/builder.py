import logging
import uuid
from collections import Counter
from dataclasses import dataclass, field
from typing import List, Optional

from django.db import transaction

from orders.exceptions import InvalidCheckout
from orders.models import Order
from orders.services import fees
from orders.services.catalog import ProductCatalog, ProductSnapshot
from wallets.exceptions import InsufficientFunds
from wallets.models import Account, Transaction
from wallets.services import LedgerService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CartLine:
    product_id: int
    quantity: int


@dataclass(frozen=True)
class DeliveryLocation:
    lat: Optional[float]
    lon: Optional[float]
    address: str = ""


@dataclass
class OrderGroup:
    """
    The part of a checkout shipped by one seller. Not persisted: it only
    exists while the orders of a checkout are being priced.
    """

    seller_id: int
    origin_lat: float
    origin_lon: float
    # (original cart index, line, snapshot)
    lines: list = field(default_factory=list)
    distance_km: float = 0.0
    shipping_fee: int = 0

    def price(self, delivery: DeliveryLocation) -> None:
        self.distance_km = fees.distance_km(
            self.origin_lat, self.origin_lon, delivery.lat, delivery.lon
        )
        self.shipping_fee = fees.shipping_fee(self.distance_km)

    def shipping_shares(self) -> list:
        return fees.split_evenly(self.shipping_fee, len(self.lines))


def group_by_seller(lines: List[CartLine], snapshots: dict) -> List[OrderGroup]:
    """Partition cart lines by seller, sellers in order of first appearance."""
    groups = {}
    for index, line in enumerate(lines):
        snapshot = snapshots[line.product_id]
        group = groups.get(snapshot.seller_id)
        if group is None:
            group = groups[snapshot.seller_id] = OrderGroup(
                seller_id=snapshot.seller_id,
                origin_lat=snapshot.origin_lat,
                origin_lon=snapshot.origin_lon,
            )
        group.lines.append((index, line, snapshot))
    return list(groups.values())


class OrderBuilder:
    """
    Turns a buyer's cart into PENDING orders, one per cart line.

    Checkout is all-or-nothing: the buyer is debited once for the grand
    total, stock is decremented and orders are created in one database
    transaction, so a failure at any step leaves no trace.

    Fee policy:
        - Each seller's shipment is priced once from the seller's pickup
          point; the fee is split across that seller's lines.
        - The buyer service fee is flat per checkout, split across all lines.
        - Splits hand the remainder out one unit at a time to the first
          lines, so shares always add up to the fee being split.
    """

    def __init__(self, catalog: ProductCatalog = None):
        self.catalog = catalog or ProductCatalog()

    def _validate(self, buyer, lines, delivery):
        if not lines:
            raise InvalidCheckout("Cart is empty.")
        if delivery is None or delivery.lat is None or delivery.lon is None:
            raise InvalidCheckout("A delivery location is required.")
        fees.validate_coordinate(delivery.lat, delivery.lon)

        for line in lines:
            if line.quantity < 1:
                raise InvalidCheckout(
                    f"Quantity for product {line.product_id} must be at least 1."
                )
        if buyer.role != Account.Role.BUYER:
            raise InvalidCheckout("Only buyer accounts can check out.")

    def _check_stock(self, lines, snapshots: dict) -> Counter:
        needed = Counter()
        for line in lines:
            needed[line.product_id] += line.quantity

        for product_id, quantity in needed.items():
            snapshot: ProductSnapshot = snapshots[product_id]
            if snapshot.stock < quantity:
                raise InvalidCheckout(
                    f"Only {snapshot.stock} of '{snapshot.name}' left in stock."
                )
        return needed

    @transaction.atomic
    def build_orders(self, buyer_uuid, lines: List[CartLine], delivery: DeliveryLocation):
        """
        Check out a cart.

        Returns:
            The created Orders, in the order of the cart lines.

        Raises:
            Account.DoesNotExist: If the buyer doesn't exist.
            Product.DoesNotExist: If a cart line names an unknown product.
            InvalidCheckout: Empty cart, missing delivery location, bad
                quantity, non-buyer account or not enough stock.
            InsufficientFunds: If the buyer can't pay the grand total.
        """
        lines = list(lines)
        buyer = Account.objects.get(uuid=buyer_uuid)
        self._validate(buyer, lines, delivery)

        snapshots = self.catalog.get_products(
            (line.product_id for line in lines), lock=True
        )
        needed = self._check_stock(lines, snapshots)

        groups = group_by_seller(lines, snapshots)
        shipping_by_index = {}
        for group in groups:
            group.price(delivery)
            for (index, _, _), share in zip(group.lines, group.shipping_shares()):
                shipping_by_index[index] = (group.distance_km, share)

        service_shares = fees.split_evenly(fees.buyer_service_fee(), len(lines))

        priced = []
        for index, line in enumerate(lines):
            snapshot = snapshots[line.product_id]
            distance, shipping = shipping_by_index[index]
            service = service_shares[index]
            total = snapshot.price * line.quantity + shipping + service
            priced.append((line, snapshot, distance, shipping, service, total))

        grand_total = sum(p[-1] for p in priced)
        checkout_ref = uuid.uuid4()

        if grand_total > 0:
            try:
                LedgerService.debit(
                    buyer.uuid,
                    grand_total,
                    f"Checkout {checkout_ref}: {len(lines)} item(s) + shipping + service fee",
                    kind=Transaction.Kind.PAYMENT,
                )
            except InsufficientFunds:
                logger.warning(
                    "Checkout rejected (insufficient balance): buyer=%s total=%d",
                    buyer.uuid,
                    grand_total,
                )
                raise

        for product_id, quantity in needed.items():
            self.catalog.decrement_stock(product_id, quantity)

        orders = [
            Order.objects.create(
                checkout_ref=checkout_ref,
                buyer=buyer,
                seller_id=snapshot.seller_id,
                product_id=snapshot.product_id,
                product_name=snapshot.name,
                quantity=line.quantity,
                unit_price=snapshot.price,
                distance_km=distance,
                shipping_fee=shipping,
                buyer_service_fee=service,
                total_charged_to_buyer=total,
                status=Order.Status.PENDING,
                delivery_address=delivery.address,
                delivery_lat=delivery.lat,
                delivery_lon=delivery.lon,
            )
            for line, snapshot, distance, shipping, service, total in priced
        ]

        logger.info(
            "Checkout completed: buyer=%s checkout=%s orders=%d sellers=%d total=%d",
            buyer.uuid,
            checkout_ref,
            len(orders),
            len(groups),
            grand_total,
        )
        return orders
