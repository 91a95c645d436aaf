import threading
import uuid
from itertools import product as cartesian
from unittest.mock import patch

from django.db import IntegrityError, OperationalError, connection, transaction
from django.test import SimpleTestCase, TestCase, TransactionTestCase, override_settings
from rest_framework.test import APIClient

from orders.exceptions import InvalidCheckout, InvalidTransition
from orders.models import Order, Product
from orders.services import (
    TRANSITIONS,
    CartLine,
    DeliveryLocation,
    OrderBuilder,
    OrderStateMachine,
    ProductCatalog,
    SettlementService,
    allowed_roles,
    compute_settlement,
    fees,
)
from wallets.exceptions import InsufficientFunds
from wallets.models import Account, Transaction
from wallets.services import LedgerService, ReconciliationService

ORIGIN = (-6.2, 106.8)
# 0.03597 degrees due north of ORIGIN, 4.0 km once rounded.
FOUR_KM_NORTH = DeliveryLocation(lat=-6.2 + 0.03597, lon=106.8, address="Jl. Mawar 4")


def make_product(seller, price=10000, stock=10, origin=ORIGIN, name="Kopi Susu"):
    return Product.objects.create(
        seller=seller,
        name=name,
        price=price,
        stock=stock,
        origin_lat=origin[0],
        origin_lon=origin[1],
    )


class MarketplaceMixin:
    """A buyer with 100000, a seller with one product and a funded driver."""

    def setUp(self):
        self.buyer = Account.objects.create(role=Account.Role.BUYER, name="Budi")
        self.seller = Account.objects.create(role=Account.Role.SELLER, name="Toko Sari")
        self.driver = Account.objects.create(role=Account.Role.DRIVER, name="Joko")
        self.platform = Account.get_platform()
        LedgerService.credit(self.buyer.uuid, 100000, kind=Transaction.Kind.TOPUP)
        LedgerService.credit(self.driver.uuid, 5000, kind=Transaction.Kind.TOPUP)
        self.product = make_product(self.seller)

    def balance(self, account):
        return LedgerService.get_balance(account.uuid)

    def checkout(self, quantity=2, delivery=FOUR_KM_NORTH):
        orders = OrderBuilder().build_orders(
            self.buyer.uuid, [CartLine(self.product.pk, quantity)], delivery
        )
        return orders[0]

    def advance(self, order, target, actor):
        return OrderStateMachine().transition(order.pk, target, actor.uuid, actor.role)

    def in_transit_order(self):
        order = self.checkout()
        self.advance(order, Order.Status.CONFIRMED, self.seller)
        self.advance(order, Order.Status.DRIVER_EN_ROUTE_PICKUP, self.driver)
        return self.advance(order, Order.Status.IN_TRANSIT, self.seller)


# ============================================================
# Fee Tests
# ============================================================


class FeeTest(SimpleTestCase):
    def test_distance_same_point_is_zero(self):
        self.assertEqual(fees.distance_km(*ORIGIN, *ORIGIN), 0.0)

    def test_distance_rounded_to_two_decimals(self):
        self.assertEqual(
            fees.distance_km(*ORIGIN, FOUR_KM_NORTH.lat, FOUR_KM_NORTH.lon), 4.0
        )

    def test_distance_is_symmetric(self):
        a = (-6.2, 106.8)
        b = (-6.9, 107.6)
        self.assertEqual(fees.distance_km(*a, *b), fees.distance_km(*b, *a))

    def test_malformed_coordinate(self):
        with self.assertRaises(ValueError):
            fees.distance_km(91, 0, 0, 0)
        with self.assertRaises(ValueError):
            fees.distance_km(0, 0, 0, -181)
        with self.assertRaises(ValueError):
            fees.validate_coordinate(None, 106.8)

    def test_shipping_fee_minimum(self):
        self.assertEqual(fees.shipping_fee(0, rate_per_km=2500, minimum=5000), 5000)
        self.assertEqual(fees.shipping_fee(1.5, rate_per_km=2500, minimum=5000), 5000)

    def test_shipping_fee_above_minimum(self):
        self.assertEqual(fees.shipping_fee(4.0, rate_per_km=2500, minimum=5000), 10000)

    def test_shipping_fee_has_no_float_drift(self):
        self.assertEqual(fees.shipping_fee(1.1, rate_per_km=2500, minimum=0), 2750)

    def test_shipping_fee_rounds_up(self):
        self.assertEqual(fees.shipping_fee(2.01, rate_per_km=2500, minimum=0), 5025)
        self.assertEqual(fees.shipping_fee(0.001, rate_per_km=2500, minimum=0), 3)

    def test_shipping_fee_negative_distance(self):
        with self.assertRaises(ValueError):
            fees.shipping_fee(-1, rate_per_km=2500, minimum=5000)

    @override_settings(SHIPPING_RATE_PER_KM=1000, SHIPPING_MIN_FEE=0)
    def test_shipping_fee_reads_settings(self):
        self.assertEqual(fees.shipping_fee(3.5), 3500)

    def test_split_evenly(self):
        self.assertEqual(fees.split_evenly(2000, 3), [667, 667, 666])
        self.assertEqual(fees.split_evenly(10, 5), [2, 2, 2, 2, 2])
        self.assertEqual(fees.split_evenly(1, 3), [1, 0, 0])
        self.assertEqual(fees.split_evenly(0, 2), [0, 0])

    def test_split_evenly_always_sums_to_total(self):
        for total, parts in cartesian(range(0, 50, 7), range(1, 8)):
            self.assertEqual(sum(fees.split_evenly(total, parts)), total)

    def test_split_evenly_rejects_bad_input(self):
        with self.assertRaises(ValueError):
            fees.split_evenly(100, 0)
        with self.assertRaises(ValueError):
            fees.split_evenly(-1, 2)

    def test_platform_fee_on_sale(self):
        self.assertEqual(fees.platform_fee_on_sale(20000, percent=10), 2000)
        self.assertEqual(fees.platform_fee_on_sale(12345, percent=10), 1234)
        self.assertEqual(fees.platform_fee_on_sale(0, percent=10), 0)


# ============================================================
# Catalog Tests
# ============================================================


class ProductCatalogTest(TestCase):
    def setUp(self):
        self.seller = Account.objects.create(role=Account.Role.SELLER)
        self.product = make_product(self.seller, stock=3)
        self.catalog = ProductCatalog()

    def test_get_product(self):
        snapshot = self.catalog.get_product(self.product.pk)
        self.assertEqual(snapshot.seller_id, self.seller.pk)
        self.assertEqual(snapshot.price, 10000)
        self.assertEqual(snapshot.stock, 3)

    def test_get_products_unknown_id(self):
        with self.assertRaises(Product.DoesNotExist):
            self.catalog.get_products([self.product.pk, 999999])

    def test_decrement_stock(self):
        self.catalog.decrement_stock(self.product.pk, 2)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 1)

    def test_decrement_stock_never_below_zero(self):
        with self.assertRaises(InvalidCheckout):
            self.catalog.decrement_stock(self.product.pk, 4)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 3)

    def test_stock_constraint(self):
        with self.assertRaises(IntegrityError), transaction.atomic():
            Product.objects.filter(pk=self.product.pk).update(stock=-1)


# ============================================================
# Checkout Tests
# ============================================================


class OrderBuilderTest(MarketplaceMixin, TransactionTestCase):
    def test_single_line_checkout(self):
        order = self.checkout(quantity=2)

        self.assertEqual(order.status, Order.Status.PENDING)
        self.assertEqual(order.distance_km, 4.0)
        self.assertEqual(order.shipping_fee, 10000)
        self.assertEqual(order.buyer_service_fee, 2000)
        self.assertEqual(order.total_charged_to_buyer, 32000)
        self.assertEqual(order.product_name, "Kopi Susu")
        self.assertEqual(order.delivery_address, "Jl. Mawar 4")
        self.assertIsNone(order.driver_id)
        self.assertFalse(order.settled)

        self.assertEqual(self.balance(self.buyer), 68000)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 8)

    def test_buyer_debited_once_per_checkout(self):
        other = make_product(self.seller, price=5000, name="Roti")
        OrderBuilder().build_orders(
            self.buyer.uuid,
            [CartLine(self.product.pk, 1), CartLine(other.pk, 1)],
            FOUR_KM_NORTH,
        )

        payments = self.buyer.transactions.filter(kind=Transaction.Kind.PAYMENT)
        self.assertEqual(payments.count(), 1)
        # 15000 subtotal + one 10000 shipment + 2000 service fee
        self.assertEqual(payments.get().amount, 27000)
        self.assertIn("2 item(s)", payments.get().description)

    def test_multi_seller_checkout(self):
        seller_b = Account.objects.create(role=Account.Role.SELLER, name="Warung B")
        a2 = make_product(self.seller, price=3000, name="Teh")
        b1 = make_product(
            seller_b,
            price=7000,
            origin=(FOUR_KM_NORTH.lat, FOUR_KM_NORTH.lon),
            name="Martabak",
        )

        orders = OrderBuilder().build_orders(
            self.buyer.uuid,
            [CartLine(self.product.pk, 1), CartLine(b1.pk, 1), CartLine(a2.pk, 1)],
            FOUR_KM_NORTH,
        )

        self.assertEqual([o.product_id for o in orders], [self.product.pk, b1.pk, a2.pk])
        self.assertEqual(len({o.checkout_ref for o in orders}), 1)
        # Seller A's 10000 shipment is shared by its two lines.
        self.assertEqual(orders[0].shipping_fee + orders[2].shipping_fee, 10000)
        self.assertEqual(orders[0].shipping_fee, 5000)
        # Seller B delivers from the buyer's own location: minimum fee.
        self.assertEqual(orders[1].distance_km, 0.0)
        self.assertEqual(orders[1].shipping_fee, 5000)
        self.assertEqual([o.buyer_service_fee for o in orders], [667, 667, 666])

        total = sum(o.total_charged_to_buyer for o in orders)
        self.assertEqual(total, 20000 + 15000 + 2000)
        self.assertEqual(self.balance(self.buyer), 100000 - total)

    @override_settings(SHIPPING_MIN_FEE=5001)
    def test_shipping_remainder_goes_to_first_line(self):
        other = make_product(self.seller, price=1000, name="Es Teh")
        orders = OrderBuilder().build_orders(
            self.buyer.uuid,
            [CartLine(self.product.pk, 1), CartLine(other.pk, 1)],
            DeliveryLocation(lat=ORIGIN[0], lon=ORIGIN[1]),
        )
        self.assertEqual([o.shipping_fee for o in orders], [2501, 2500])

    def test_insufficient_funds_leaves_no_trace(self):
        with self.assertRaises(InsufficientFunds):
            self.checkout(quantity=10)

        self.assertEqual(Order.objects.count(), 0)
        self.assertEqual(self.balance(self.buyer), 100000)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)

    def test_empty_cart(self):
        with self.assertRaises(InvalidCheckout):
            OrderBuilder().build_orders(self.buyer.uuid, [], FOUR_KM_NORTH)

    def test_missing_delivery_location(self):
        with self.assertRaises(InvalidCheckout):
            self.checkout(delivery=None)
        with self.assertRaises(InvalidCheckout):
            self.checkout(delivery=DeliveryLocation(lat=None, lon=106.8))
        self.assertEqual(Order.objects.count(), 0)

    def test_zero_quantity(self):
        with self.assertRaises(InvalidCheckout):
            self.checkout(quantity=0)

    def test_not_enough_stock(self):
        with self.assertRaises(InvalidCheckout):
            self.checkout(quantity=11)
        self.assertEqual(self.balance(self.buyer), 100000)

    def test_stock_checked_across_lines_of_same_product(self):
        Product.objects.filter(pk=self.product.pk).update(stock=1)
        with self.assertRaises(InvalidCheckout):
            OrderBuilder().build_orders(
                self.buyer.uuid,
                [CartLine(self.product.pk, 1), CartLine(self.product.pk, 1)],
                FOUR_KM_NORTH,
            )
        self.assertEqual(Order.objects.count(), 0)

    def test_unknown_product(self):
        with self.assertRaises(Product.DoesNotExist):
            OrderBuilder().build_orders(
                self.buyer.uuid, [CartLine(999999, 1)], FOUR_KM_NORTH
            )

    def test_unknown_buyer(self):
        with self.assertRaises(Account.DoesNotExist):
            OrderBuilder().build_orders(
                uuid.uuid4(), [CartLine(self.product.pk, 1)], FOUR_KM_NORTH
            )

    def test_only_buyers_check_out(self):
        LedgerService.credit(self.seller.uuid, 100000)
        with self.assertRaises(InvalidCheckout):
            OrderBuilder().build_orders(
                self.seller.uuid, [CartLine(self.product.pk, 1)], FOUR_KM_NORTH
            )


# ============================================================
# State Machine Tests
# ============================================================


class TransitionTableTest(SimpleTestCase):
    def test_table(self):
        S, R = Order.Status, Account.Role
        expected = {
            (S.PENDING, S.CONFIRMED): {R.SELLER},
            (S.CONFIRMED, S.DRIVER_EN_ROUTE_PICKUP): {R.DRIVER},
            (S.DRIVER_EN_ROUTE_PICKUP, S.IN_TRANSIT): {R.SELLER},
            (S.IN_TRANSIT, S.COMPLETED): {R.BUYER, R.DRIVER},
        }

        for current, target, role in cartesian(S.values, S.values, R.values):
            allowed = role in {str(r) for r in expected.get((current, target), ())}
            self.assertEqual(
                role in allowed_roles(current, target),
                allowed,
                msg=f"{role}: {current} -> {target}",
            )

    def test_completed_is_terminal(self):
        for key in TRANSITIONS:
            self.assertNotEqual(key[0], Order.Status.COMPLETED)


class OrderStateMachineTest(MarketplaceMixin, TransactionTestCase):
    def actors(self):
        return {
            Account.Role.BUYER: self.buyer,
            Account.Role.SELLER: self.seller,
            Account.Role.DRIVER: self.driver,
            Account.Role.PLATFORM: self.platform,
        }

    def test_illegal_moves_from_pending_leave_order_untouched(self):
        order = self.checkout()

        for target, (role, actor) in cartesian(
            Order.Status.values, self.actors().items()
        ):
            if (target, role) == (Order.Status.CONFIRMED, Account.Role.SELLER):
                continue
            with self.assertRaises(InvalidTransition):
                OrderStateMachine().transition(order.pk, target, actor.uuid, role)

        order.refresh_from_db()
        self.assertEqual(order.status, Order.Status.PENDING)
        self.assertIsNone(order.driver_id)

    def test_cannot_skip_steps(self):
        order = self.checkout()
        with self.assertRaises(InvalidTransition):
            self.advance(order, Order.Status.IN_TRANSIT, self.seller)
        with self.assertRaises(InvalidTransition):
            self.advance(order, Order.Status.COMPLETED, self.buyer)

    def test_confirm(self):
        order = self.advance(self.checkout(), Order.Status.CONFIRMED, self.seller)
        self.assertEqual(order.status, Order.Status.CONFIRMED)

    def test_other_seller_cannot_confirm(self):
        order = self.checkout()
        other = Account.objects.create(role=Account.Role.SELLER)
        with self.assertRaises(InvalidTransition):
            self.advance(order, Order.Status.CONFIRMED, other)

    def test_claimed_role_must_match_account(self):
        order = self.checkout()
        with self.assertRaises(InvalidTransition):
            OrderStateMachine().transition(
                order.pk, Order.Status.CONFIRMED, self.buyer.uuid, Account.Role.SELLER
            )

    def test_driver_pickup_charges_fee(self):
        order = self.advance(self.checkout(), Order.Status.CONFIRMED, self.seller)
        order = self.advance(order, Order.Status.DRIVER_EN_ROUTE_PICKUP, self.driver)

        self.assertEqual(order.driver_id, self.driver.pk)
        self.assertEqual(order.driver_name, "Joko")
        self.assertEqual(self.balance(self.driver), 4000)
        self.assertEqual(self.balance(self.platform), 1000)
        self.assertEqual(
            self.driver.transactions.filter(kind=Transaction.Kind.PAYMENT).count(), 1
        )

    def test_driver_without_fee_cannot_take_order(self):
        broke = Account.objects.create(role=Account.Role.DRIVER, name="Andi")
        order = self.advance(self.checkout(), Order.Status.CONFIRMED, self.seller)

        with self.assertRaises(InsufficientFunds):
            self.advance(order, Order.Status.DRIVER_EN_ROUTE_PICKUP, broke)

        order.refresh_from_db()
        self.assertEqual(order.status, Order.Status.CONFIRMED)
        self.assertIsNone(order.driver_id)
        self.assertEqual(self.balance(self.platform), 0)

    @override_settings(DRIVER_PICKUP_FEE=0)
    def test_free_pickup(self):
        order = self.advance(self.checkout(), Order.Status.CONFIRMED, self.seller)
        self.advance(order, Order.Status.DRIVER_EN_ROUTE_PICKUP, self.driver)
        self.assertEqual(self.balance(self.driver), 5000)

    def test_second_driver_cannot_take_order(self):
        other = Account.objects.create(role=Account.Role.DRIVER)
        LedgerService.credit(other.uuid, 5000)
        order = self.advance(self.checkout(), Order.Status.CONFIRMED, self.seller)
        self.advance(order, Order.Status.DRIVER_EN_ROUTE_PICKUP, self.driver)

        with self.assertRaises(InvalidTransition):
            self.advance(order, Order.Status.DRIVER_EN_ROUTE_PICKUP, other)
        self.assertEqual(self.balance(other), 5000)

    def test_only_assigned_driver_completes(self):
        order = self.in_transit_order()
        other = Account.objects.create(role=Account.Role.DRIVER)

        with self.assertRaises(InvalidTransition):
            self.advance(order, Order.Status.COMPLETED, other)
        order.refresh_from_db()
        self.assertFalse(order.settled)

    def test_only_order_buyer_completes(self):
        order = self.in_transit_order()
        other = Account.objects.create(role=Account.Role.BUYER)

        with self.assertRaises(InvalidTransition):
            self.advance(order, Order.Status.COMPLETED, other)


# ============================================================
# Settlement Tests
# ============================================================


class SettlementTest(MarketplaceMixin, TransactionTestCase):
    def test_compute_settlement(self):
        order = self.in_transit_order()
        breakdown = compute_settlement(order)

        self.assertEqual(breakdown.subtotal, 20000)
        self.assertEqual(breakdown.platform_fee_on_sale, 2000)
        self.assertEqual(breakdown.seller_income, 18000)
        self.assertEqual(breakdown.driver_income, 10000)
        self.assertEqual(breakdown.platform_income, 4000)

    def test_full_lifecycle(self):
        order = self.in_transit_order()
        order = self.advance(order, Order.Status.COMPLETED, self.buyer)

        self.assertEqual(order.status, Order.Status.COMPLETED)
        self.assertTrue(order.settled)
        self.assertIsNotNone(order.settled_at)

        self.assertEqual(self.balance(self.buyer), 68000)
        self.assertEqual(self.balance(self.seller), 18000)
        self.assertEqual(self.balance(self.driver), 5000 - 1000 + 10000)
        self.assertEqual(self.balance(self.platform), 1000 + 4000)

    def test_settlement_conserves_money(self):
        order = self.in_transit_order()
        self.advance(order, Order.Status.COMPLETED, self.driver)
        breakdown = compute_settlement(order)

        self.assertEqual(
            breakdown.seller_income + breakdown.driver_income + breakdown.platform_income,
            order.total_charged_to_buyer,
        )
        # Everything the buyer paid plus the pickup fee is now held by others.
        self.assertEqual(
            sum(self.balance(a) for a in (self.buyer, self.seller, self.driver, self.platform)),
            100000 + 5000,
        )

    def test_settles_exactly_once(self):
        order = self.in_transit_order()
        self.advance(order, Order.Status.COMPLETED, self.buyer)

        with self.assertRaises(InvalidTransition):
            self.advance(order, Order.Status.COMPLETED, self.driver)
        with self.assertRaises(InvalidTransition):
            SettlementService().settle(Order.objects.get(pk=order.pk))

        self.assertEqual(self.balance(self.seller), 18000)
        self.assertEqual(
            self.seller.transactions.filter(kind=Transaction.Kind.INCOME).count(), 1
        )

    def test_failed_payout_rolls_back_completion(self):
        order = self.in_transit_order()

        with patch.object(LedgerService, "post", side_effect=RuntimeError("ledger down")):
            with self.assertRaises(RuntimeError):
                self.advance(order, Order.Status.COMPLETED, self.buyer)

        order.refresh_from_db()
        self.assertEqual(order.status, Order.Status.IN_TRANSIT)
        self.assertFalse(order.settled)
        self.assertEqual(self.balance(self.seller), 0)

        # The order can still be completed afterwards.
        self.advance(order, Order.Status.COMPLETED, self.buyer)
        self.assertEqual(self.balance(self.seller), 18000)

    def test_settled_only_when_completed_constraint(self):
        order = self.checkout()
        with self.assertRaises(IntegrityError), transaction.atomic():
            Order.objects.filter(pk=order.pk).update(settled=True)

    def test_ledger_reconciles_after_lifecycle(self):
        self.advance(self.in_transit_order(), Order.Status.COMPLETED, self.buyer)
        self.assertEqual(ReconciliationService.check_all(), [])


class ConcurrentCompletionTest(MarketplaceMixin, TransactionTestCase):
    """Buyer and driver confirm delivery of the same order at the same time."""

    def complete_concurrently(self, order, actors):
        barrier = threading.Barrier(len(actors))
        outcomes = []

        def complete(actor):
            try:
                barrier.wait(timeout=5)
                self.advance(order, Order.Status.COMPLETED, actor)
                outcomes.append("ok")
            except Exception as exc:
                outcomes.append(exc)
            finally:
                connection.close()

        threads = [threading.Thread(target=complete, args=(a,)) for a in actors]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)
        return outcomes

    def test_concurrent_completion_settles_once(self):
        order = self.in_transit_order()

        outcomes = self.complete_concurrently(order, [self.buyer, self.driver])

        self.assertEqual(len(outcomes), 2)
        self.assertLessEqual(outcomes.count("ok"), 1)
        for outcome in outcomes:
            if outcome != "ok":
                # The loser sees either the settled order or, on SQLite, the
                # winner's write lock; both leave nothing behind.
                self.assertIsInstance(outcome, (InvalidTransition, OperationalError))

        if "ok" not in outcomes:
            # Both attempts lost the lock race; a retry goes through.
            self.advance(order, Order.Status.COMPLETED, self.buyer)
        with self.assertRaises(InvalidTransition):
            self.advance(order, Order.Status.COMPLETED, self.driver)

        order.refresh_from_db()
        self.assertEqual(order.status, Order.Status.COMPLETED)
        self.assertTrue(order.settled)
        self.assertEqual(
            self.seller.transactions.filter(kind=Transaction.Kind.INCOME).count(), 1
        )
        self.assertEqual(self.balance(self.seller), 18000)
        self.assertEqual(self.balance(self.driver), 5000 - 1000 + 10000)
        self.assertEqual(self.balance(self.platform), 1000 + 4000)
        self.assertEqual(ReconciliationService.check_all(), [])


# ============================================================
# API Tests
# ============================================================


class CheckoutAPITest(MarketplaceMixin, TransactionTestCase):
    def setUp(self):
        super().setUp()
        self.client = APIClient()

    def payload(self, **overrides):
        data = {
            "buyer": str(self.buyer.uuid),
            "delivery": {
                "lat": FOUR_KM_NORTH.lat,
                "lon": FOUR_KM_NORTH.lon,
                "address": FOUR_KM_NORTH.address,
            },
            "lines": [{"product_id": self.product.pk, "quantity": 2}],
        }
        data.update(overrides)
        return data

    def test_checkout_success(self):
        response = self.client.post("/orders/checkout", self.payload(), format="json")

        self.assertEqual(response.status_code, 201)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]["total_charged_to_buyer"], 32000)
        self.assertEqual(response.data[0]["status"], "PENDING")
        self.assertEqual(response.data[0]["buyer_uuid"], str(self.buyer.uuid))
        self.assertIsNone(response.data[0]["driver_uuid"])

    def test_checkout_empty_cart(self):
        response = self.client.post(
            "/orders/checkout", self.payload(lines=[]), format="json"
        )
        self.assertEqual(response.status_code, 400)

    def test_checkout_without_delivery(self):
        data = self.payload()
        del data["delivery"]
        response = self.client.post("/orders/checkout", data, format="json")
        self.assertEqual(response.status_code, 400)

    def test_checkout_insufficient_funds(self):
        response = self.client.post(
            "/orders/checkout",
            self.payload(lines=[{"product_id": self.product.pk, "quantity": 10}]),
            format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("Insufficient", response.data["error"])

    def test_checkout_unknown_buyer(self):
        response = self.client.post(
            "/orders/checkout", self.payload(buyer=str(uuid.uuid4())), format="json"
        )
        self.assertEqual(response.status_code, 404)

    def test_checkout_unknown_product(self):
        response = self.client.post(
            "/orders/checkout",
            self.payload(lines=[{"product_id": 999999, "quantity": 1}]),
            format="json",
        )
        self.assertEqual(response.status_code, 404)


class OrderAPITest(MarketplaceMixin, TransactionTestCase):
    def setUp(self):
        super().setUp()
        self.client = APIClient()
        self.order = self.checkout()

    def transition(self, target, actor, role=None):
        return self.client.post(
            f"/orders/{self.order.pk}/transition",
            {"status": target, "actor": str(actor.uuid), "role": role or actor.role},
            format="json",
        )

    def test_list_orders_by_party(self):
        response = self.client.get(f"/orders/?buyer={self.buyer.uuid}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data), 1)

        response = self.client.get(f"/orders/?seller={self.buyer.uuid}")
        self.assertEqual(len(response.data), 0)

    def test_list_orders_malformed_uuid(self):
        response = self.client.get("/orders/?buyer=nope")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data), 0)

    def test_list_unassigned_orders(self):
        response = self.client.get("/orders/?status=confirmed&unassigned=true")
        self.assertEqual(len(response.data), 0)

        self.transition("CONFIRMED", self.seller)
        response = self.client.get("/orders/?status=confirmed&unassigned=true")
        self.assertEqual(len(response.data), 1)

    def test_order_detail(self):
        response = self.client.get(f"/orders/{self.order.pk}/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["id"], self.order.pk)

    def test_order_detail_not_found(self):
        response = self.client.get("/orders/999999/")
        self.assertEqual(response.status_code, 404)

    def test_transition_through_lifecycle(self):
        self.assertEqual(self.transition("CONFIRMED", self.seller).status_code, 200)
        response = self.transition("DRIVER_EN_ROUTE_PICKUP", self.driver)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["driver_uuid"], str(self.driver.uuid))
        self.assertEqual(self.transition("IN_TRANSIT", self.seller).status_code, 200)

        response = self.transition("COMPLETED", self.buyer)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["status"], "COMPLETED")

        response = self.client.get(f"/orders/{self.order.pk}/settlement")
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data["settled"])
        self.assertEqual(response.data["seller_income"], 18000)
        self.assertEqual(response.data["platform_income"], 4000)

    def test_illegal_transition_conflict(self):
        response = self.transition("COMPLETED", self.buyer)
        self.assertEqual(response.status_code, 409)

    def test_transition_unknown_actor(self):
        response = self.client.post(
            f"/orders/{self.order.pk}/transition",
            {"status": "CONFIRMED", "actor": str(uuid.uuid4()), "role": "SELLER"},
            format="json",
        )
        self.assertEqual(response.status_code, 404)

    def test_transition_unknown_order(self):
        response = self.client.post(
            "/orders/999999/transition",
            {"status": "CONFIRMED", "actor": str(self.seller.uuid), "role": "SELLER"},
            format="json",
        )
        self.assertEqual(response.status_code, 404)

    def test_transition_invalid_status(self):
        response = self.transition("SHIPPED", self.seller)
        self.assertEqual(response.status_code, 400)

    def test_transition_lock_contention_is_retryable(self):
        with patch.object(
            OrderStateMachine,
            "transition",
            side_effect=OperationalError("database is locked"),
        ):
            response = self.transition("CONFIRMED", self.seller)

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response["Retry-After"], "1")
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.Status.PENDING)

    def test_pickup_without_funds(self):
        broke = Account.objects.create(role=Account.Role.DRIVER)
        self.transition("CONFIRMED", self.seller)
        response = self.transition("DRIVER_EN_ROUTE_PICKUP", broke)
        self.assertEqual(response.status_code, 400)

    def test_settlement_preview_before_completion(self):
        response = self.client.get(f"/orders/{self.order.pk}/settlement")
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.data["settled"])
        # No driver yet, so nothing is earmarked for one.
        self.assertEqual(response.data["driver_income"], 0)
