from orders.services.builder import (
    CartLine,
    DeliveryLocation,
    OrderBuilder,
    OrderGroup,
    group_by_seller,
)
from orders.services.catalog import ProductCatalog, ProductSnapshot
from orders.services.settlement import (
    SettlementBreakdown,
    SettlementService,
    compute_settlement,
)
from orders.services.state_machine import TRANSITIONS, OrderStateMachine, allowed_roles

__all__ = [
    "CartLine",
    "DeliveryLocation",
    "OrderBuilder",
    "OrderGroup",
    "group_by_seller",
    "ProductCatalog",
    "ProductSnapshot",
    "SettlementBreakdown",
    "SettlementService",
    "compute_settlement",
    "TRANSITIONS",
    "OrderStateMachine",
    "allowed_roles",
]
