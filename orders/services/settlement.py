import logging
from dataclasses import dataclass

from django.db import transaction
from django.utils import timezone

from orders.exceptions import InvalidTransition
from orders.models import Order
from orders.services import fees
from wallets.models import Account, Transaction
from wallets.services import Entry, LedgerService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SettlementBreakdown:
    order_id: int
    subtotal: int
    platform_fee_on_sale: int
    seller_income: int
    driver_income: int
    buyer_service_fee: int

    @property
    def platform_income(self) -> int:
        return self.buyer_service_fee + self.platform_fee_on_sale


def compute_settlement(order: Order) -> SettlementBreakdown:
    """
    Split a completed order's money between seller, driver and platform.

    The seller keeps the subtotal minus the platform's percentage, the
    driver earns the order's shipping share, and the platform earns the
    sale fee plus the buyer service fee. The driver pickup fee is not part
    of this: it was paid when the driver took the order.
    """
    subtotal = order.subtotal
    sale_fee = fees.platform_fee_on_sale(subtotal)
    return SettlementBreakdown(
        order_id=order.pk,
        subtotal=subtotal,
        platform_fee_on_sale=sale_fee,
        seller_income=subtotal - sale_fee,
        driver_income=order.shipping_fee if order.driver_id else 0,
        buyer_service_fee=order.buyer_service_fee,
    )


class SettlementService:
    """
    Releases an order's held funds, exactly once.

    ``settle`` flips the order to COMPLETED and ``settled`` with a single
    conditional UPDATE that only matches an IN_TRANSIT, unsettled row, then
    posts every payout in one ledger posting. It runs inside the caller's
    transaction, so a failed payout also undoes the status change and the
    order can be completed again later.
    """

    @transaction.atomic
    def settle(self, order: Order) -> SettlementBreakdown:
        now = timezone.now()
        updated = Order.objects.filter(
            pk=order.pk,
            status=Order.Status.IN_TRANSIT,
            settled=False,
        ).update(
            status=Order.Status.COMPLETED,
            settled=True,
            settled_at=now,
            updated_at=now,
        )
        if not updated:
            logger.warning("Settlement refused, order=%d already settled.", order.pk)
            raise InvalidTransition(f"Order #{order.pk} has already been settled.")

        breakdown = compute_settlement(order)

        entries = []
        if breakdown.seller_income > 0:
            entries.append(
                Entry(
                    order.seller.uuid,
                    Transaction.Kind.INCOME,
                    breakdown.seller_income,
                    f"Sale order #{order.pk} "
                    f"(less {fees.seller_fee_percent()}% platform fee)",
                )
            )
        if order.driver_id and breakdown.driver_income > 0:
            entries.append(
                Entry(
                    order.driver.uuid,
                    Transaction.Kind.INCOME,
                    breakdown.driver_income,
                    f"Shipping fee order #{order.pk}",
                )
            )
        if breakdown.platform_income > 0:
            entries.append(
                Entry(
                    Account.get_platform().uuid,
                    Transaction.Kind.INCOME,
                    breakdown.platform_income,
                    f"Revenue order #{order.pk} (service fee + sale fee)",
                )
            )

        if entries:
            LedgerService.post(entries)

        logger.info(
            "Order settled: order=%d seller_income=%d driver_income=%d platform_income=%d",
            order.pk,
            breakdown.seller_income,
            breakdown.driver_income,
            breakdown.platform_income,
        )
        return breakdown
