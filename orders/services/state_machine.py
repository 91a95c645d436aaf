import logging

from django.db import transaction
from django.utils import timezone

from orders.exceptions import InvalidTransition
from orders.models import Order
from orders.services import fees
from orders.services.settlement import SettlementService
from wallets.models import Account, Transaction
from wallets.services import Entry, LedgerService

logger = logging.getLogger(__name__)

Status = Order.Status
Role = Account.Role

# (from, to) -> roles allowed to trigger the move. Anything missing is illegal.
TRANSITIONS = {
    (Status.PENDING.value, Status.CONFIRMED.value): frozenset({Role.SELLER.value}),
    (Status.CONFIRMED.value, Status.DRIVER_EN_ROUTE_PICKUP.value): frozenset(
        {Role.DRIVER.value}
    ),
    (Status.DRIVER_EN_ROUTE_PICKUP.value, Status.IN_TRANSIT.value): frozenset(
        {Role.SELLER.value}
    ),
    (Status.IN_TRANSIT.value, Status.COMPLETED.value): frozenset(
        {Role.BUYER.value, Role.DRIVER.value}
    ),
}


def allowed_roles(current_status, target_status) -> frozenset:
    return TRANSITIONS.get((str(current_status), str(target_status)), frozenset())


class OrderStateMachine:
    """
    Moves an order through PENDING -> CONFIRMED -> DRIVER_EN_ROUTE_PICKUP ->
    IN_TRANSIT -> COMPLETED.

    Every transition locks the order row, checks the transition table and
    the actor, applies the side effects and writes the new status in one
    database transaction. A rejected transition leaves the order untouched.
    """

    def __init__(self, settlement: SettlementService = None):
        self.settlement = settlement or SettlementService()

    @transaction.atomic
    def transition(self, order_id, target_status, actor_uuid, actor_role) -> Order:
        """
        Raises:
            Order.DoesNotExist: If the order doesn't exist.
            Account.DoesNotExist: If the actor doesn't exist.
            InvalidTransition: If the move isn't legal from the current
                status or the actor isn't allowed to make it.
            InsufficientFunds: If a driver can't pay the pickup fee.
        """
        order = Order.objects.select_for_update().get(pk=order_id)
        actor = Account.objects.get(uuid=actor_uuid)

        current, target, role = str(order.status), str(target_status), str(actor_role)

        if role not in allowed_roles(current, target):
            self._reject(order, f"{role} can't move order #{order.pk} from {current} to {target}.")
        if actor.role != role:
            self._reject(order, f"Account {actor.uuid} is not a {role}.")

        handler = getattr(self, f"_to_{target.lower()}")
        handler(order, actor)

        order.refresh_from_db()
        logger.info(
            "Order transition: order=%d %s -> %s actor=%s role=%s",
            order.pk,
            current,
            order.status,
            actor.uuid,
            role,
        )
        return order

    @staticmethod
    def _reject(order, message):
        logger.warning("Transition rejected: order=%d %s", order.pk, message)
        raise InvalidTransition(message)

    @staticmethod
    def _advance(order, from_status, to_status, **fields):
        # Conditional update so a concurrent writer can't be overwritten even
        # where the backend ignores SELECT ... FOR UPDATE.
        updated = Order.objects.filter(pk=order.pk, status=from_status).update(
            status=to_status, updated_at=timezone.now(), **fields
        )
        if not updated:
            raise InvalidTransition(f"Order #{order.pk} changed status concurrently.")

    def _to_confirmed(self, order, actor):
        if order.seller_id != actor.pk:
            self._reject(order, "Only the order's seller can confirm it.")
        self._advance(order, Status.PENDING, Status.CONFIRMED)

    def _to_driver_en_route_pickup(self, order, actor):
        if order.driver_id is not None:
            self._reject(order, f"Order #{order.pk} already has a driver.")

        fee = fees.driver_pickup_fee()
        if fee > 0:
            description = f"Driver pickup fee order #{order.pk}"
            LedgerService.post(
                [
                    Entry(actor.uuid, Transaction.Kind.PAYMENT, fee, description),
                    Entry(
                        Account.get_platform().uuid,
                        Transaction.Kind.INCOME,
                        fee,
                        description,
                    ),
                ]
            )

        self._advance(
            order,
            Status.CONFIRMED,
            Status.DRIVER_EN_ROUTE_PICKUP,
            driver=actor,
            driver_name=actor.name,
        )

    def _to_in_transit(self, order, actor):
        if order.seller_id != actor.pk:
            self._reject(order, "Only the order's seller can hand it to the driver.")
        if order.driver_id is None:
            self._reject(order, f"Order #{order.pk} has no driver assigned.")
        self._advance(order, Status.DRIVER_EN_ROUTE_PICKUP, Status.IN_TRANSIT)

    def _to_completed(self, order, actor):
        if actor.role == Role.BUYER and order.buyer_id != actor.pk:
            self._reject(order, "Only the order's buyer can confirm delivery.")
        if actor.role == Role.DRIVER and order.driver_id != actor.pk:
            self._reject(order, "Only the assigned driver can complete the order.")
        if order.settled:
            self._reject(order, f"Order #{order.pk} has already been settled.")
        self.settlement.settle(order)
