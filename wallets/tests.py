import uuid
from io import StringIO
from unittest.mock import patch

from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import IntegrityError, transaction
from django.test import TestCase, TransactionTestCase, override_settings
from rest_framework.test import APIClient

from wallets.exceptions import (
    BelowMinimum,
    IdempotencyConflict,
    InsufficientFunds,
    Unverified,
)
from wallets.models import Account, Transaction
from wallets.services import (
    Entry,
    LedgerService,
    ReconciliationService,
    WalletService,
)

# ============================================================
# Model Tests
# ============================================================


class AccountModelTest(TestCase):
    def test_create_account(self):
        account = Account.objects.create(role=Account.Role.BUYER, name="Budi")
        self.assertIsNotNone(account.uuid)
        self.assertEqual(account.balance, 0)
        self.assertFalse(account.verified)
        self.assertIsNotNone(account.created_at)

    def test_account_str(self):
        account = Account.objects.create(role=Account.Role.SELLER)
        self.assertIn(str(account.uuid), str(account))
        self.assertIn("SELLER", str(account))

    def test_account_uuid_is_unique(self):
        a1 = Account.objects.create(role=Account.Role.BUYER)
        a2 = Account.objects.create(role=Account.Role.BUYER)
        self.assertNotEqual(a1.uuid, a2.uuid)

    def test_get_platform_returns_single_account(self):
        p1 = Account.get_platform()
        p2 = Account.get_platform()
        self.assertEqual(p1.pk, p2.pk)
        self.assertEqual(p1.role, Account.Role.PLATFORM)

    def test_second_platform_account_rejected(self):
        Account.get_platform()
        with self.assertRaises(IntegrityError), transaction.atomic():
            Account.objects.create(role=Account.Role.PLATFORM)

    def test_account_cannot_be_deleted(self):
        account = Account.objects.create(role=Account.Role.DRIVER)
        with self.assertRaises(ValueError):
            account.delete()
        self.assertTrue(Account.objects.filter(pk=account.pk).exists())


class TransactionModelTest(TestCase):
    def setUp(self):
        self.account = Account.objects.create(role=Account.Role.BUYER)

    def test_entry_is_immutable(self):
        tx = LedgerService.credit(self.account.uuid, 1000, "Gift")
        tx.amount = 1
        with self.assertRaises(ValueError):
            tx.save()

        tx.refresh_from_db()
        self.assertEqual(tx.amount, 1000)

    def test_entry_cannot_be_deleted(self):
        tx = LedgerService.credit(self.account.uuid, 1000, "Gift")
        with self.assertRaises(ValueError):
            tx.delete()

    def test_credit_and_debit_kinds(self):
        credit = Transaction(kind=Transaction.Kind.TOPUP, amount=500)
        debit = Transaction(kind=Transaction.Kind.WITHDRAW, amount=500)
        self.assertTrue(credit.is_credit)
        self.assertFalse(debit.is_credit)
        self.assertEqual(credit.signed_amount, 500)
        self.assertEqual(debit.signed_amount, -500)

    def test_transaction_str(self):
        tx = LedgerService.credit(self.account.uuid, 500, "Gift")
        self.assertIn("INCOME", str(tx))
        self.assertIn("500", str(tx))


# ============================================================
# Ledger Service Tests
# ============================================================


class LedgerServiceTest(TransactionTestCase):
    def setUp(self):
        self.buyer = Account.objects.create(role=Account.Role.BUYER)
        self.seller = Account.objects.create(role=Account.Role.SELLER)

    def test_credit(self):
        tx = LedgerService.credit(self.buyer.uuid, 1000, "Gift")

        self.buyer.refresh_from_db()
        self.assertEqual(self.buyer.balance, 1000)
        self.assertEqual(tx.kind, Transaction.Kind.INCOME)
        self.assertEqual(tx.balance_after, 1000)

    def test_debit(self):
        LedgerService.credit(self.buyer.uuid, 1000, kind=Transaction.Kind.TOPUP)
        tx = LedgerService.debit(self.buyer.uuid, 400, "Snack")

        self.buyer.refresh_from_db()
        self.assertEqual(self.buyer.balance, 600)
        self.assertEqual(tx.kind, Transaction.Kind.PAYMENT)
        self.assertEqual(tx.balance_after, 600)

    def test_debit_insufficient_funds(self):
        LedgerService.credit(self.buyer.uuid, 300)

        with self.assertRaises(InsufficientFunds):
            LedgerService.debit(self.buyer.uuid, 301)

        self.buyer.refresh_from_db()
        self.assertEqual(self.buyer.balance, 300)
        self.assertEqual(self.buyer.transactions.count(), 1)

    def test_non_positive_amount_raises(self):
        for amount in (0, -100):
            with self.assertRaises(ValueError):
                LedgerService.credit(self.buyer.uuid, amount)
            with self.assertRaises(ValueError):
                LedgerService.debit(self.buyer.uuid, amount)

    def test_wrong_direction_kind_raises(self):
        with self.assertRaises(ValueError):
            LedgerService.credit(self.buyer.uuid, 100, kind=Transaction.Kind.PAYMENT)
        with self.assertRaises(ValueError):
            LedgerService.debit(self.buyer.uuid, 100, kind=Transaction.Kind.TOPUP)

    def test_unknown_account_raises(self):
        with self.assertRaises(Account.DoesNotExist):
            LedgerService.credit(uuid.uuid4(), 100)

    def test_transfer(self):
        LedgerService.credit(self.buyer.uuid, 5000)
        debit_tx, credit_tx = LedgerService.transfer(
            self.buyer.uuid, self.seller.uuid, 2000, "Thanks"
        )

        self.assertEqual(debit_tx.kind, Transaction.Kind.TRANSFER)
        self.assertEqual(credit_tx.kind, Transaction.Kind.INCOME)
        self.assertEqual(LedgerService.get_balance(self.buyer.uuid), 3000)
        self.assertEqual(LedgerService.get_balance(self.seller.uuid), 2000)

    def test_transfer_insufficient_moves_nothing(self):
        LedgerService.credit(self.buyer.uuid, 1000)

        with self.assertRaises(InsufficientFunds):
            LedgerService.transfer(self.buyer.uuid, self.seller.uuid, 2000)

        self.assertEqual(LedgerService.get_balance(self.buyer.uuid), 1000)
        self.assertEqual(LedgerService.get_balance(self.seller.uuid), 0)
        self.assertFalse(self.seller.transactions.exists())

    def test_transfer_to_self_raises(self):
        with self.assertRaises(ValueError):
            LedgerService.transfer(self.buyer.uuid, self.buyer.uuid, 100)

    def test_post_rolls_back_every_entry_on_failure(self):
        LedgerService.credit(self.buyer.uuid, 1000)

        with self.assertRaises(InsufficientFunds):
            LedgerService.post(
                [
                    Entry(self.seller.uuid, Transaction.Kind.INCOME, 700),
                    Entry(self.buyer.uuid, Transaction.Kind.PAYMENT, 5000),
                ]
            )

        self.assertEqual(LedgerService.get_balance(self.seller.uuid), 0)
        self.assertEqual(LedgerService.get_balance(self.buyer.uuid), 1000)
        self.assertEqual(Transaction.objects.count(), 1)

    def test_post_credit_can_fund_later_debit(self):
        txs = LedgerService.post(
            [
                Entry(self.buyer.uuid, Transaction.Kind.TOPUP, 1000),
                Entry(self.buyer.uuid, Transaction.Kind.PAYMENT, 800),
            ]
        )

        self.assertEqual([tx.balance_after for tx in txs], [1000, 200])
        self.assertEqual(LedgerService.get_balance(self.buyer.uuid), 200)

    def test_post_empty_raises(self):
        with self.assertRaises(ValueError):
            LedgerService.post([])

    def test_get_transactions_newest_first(self):
        first = LedgerService.credit(self.buyer.uuid, 1000)
        second = LedgerService.debit(self.buyer.uuid, 100)
        third = LedgerService.credit(self.buyer.uuid, 50)

        ids = [tx.id for tx in LedgerService.get_transactions(self.buyer.uuid)]
        self.assertEqual(ids, [third.id, second.id, first.id])

    def test_balance_equals_replay(self):
        LedgerService.credit(self.buyer.uuid, 10000, kind=Transaction.Kind.TOPUP)
        LedgerService.debit(self.buyer.uuid, 2500)
        LedgerService.transfer(self.buyer.uuid, self.seller.uuid, 1500)
        LedgerService.debit(self.seller.uuid, 500, kind=Transaction.Kind.WITHDRAW)

        for account in (self.buyer, self.seller):
            self.assertEqual(
                LedgerService.get_balance(account.uuid),
                LedgerService.replay_balance(account.uuid),
            )
        self.assertEqual(LedgerService.replay_balance(self.buyer.uuid), 6000)
        self.assertEqual(LedgerService.replay_balance(self.seller.uuid), 1000)


# ============================================================
# Wallet Service Tests
# ============================================================


class WalletServiceTest(TransactionTestCase):
    def setUp(self):
        self.account = Account.objects.create(
            role=Account.Role.SELLER, name="Toko Sari", verified=True
        )
        self.other = Account.objects.create(role=Account.Role.BUYER, name="Budi")

    def test_top_up(self):
        tx = WalletService.top_up(self.account.uuid, 50000)

        self.assertEqual(tx.kind, Transaction.Kind.TOPUP)
        self.assertEqual(LedgerService.get_balance(self.account.uuid), 50000)

    def test_top_up_below_minimum(self):
        with self.assertRaises(BelowMinimum):
            WalletService.top_up(self.account.uuid, 9999)
        self.assertEqual(LedgerService.get_balance(self.account.uuid), 0)

    @override_settings(MIN_TOPUP_AMOUNT=1)
    def test_top_up_minimum_is_configurable(self):
        WalletService.top_up(self.account.uuid, 5)
        self.assertEqual(LedgerService.get_balance(self.account.uuid), 5)

    def test_top_up_non_positive_raises(self):
        with self.assertRaises(ValueError):
            WalletService.top_up(self.account.uuid, 0)

    def test_top_up_idempotency(self):
        key = str(uuid.uuid4())

        tx1 = WalletService.top_up(self.account.uuid, 20000, idempotency_key=key)
        tx2 = WalletService.top_up(self.account.uuid, 20000, idempotency_key=key)

        self.assertEqual(tx1.id, tx2.id)
        self.assertEqual(str(tx1.idempotency_key), key)
        self.assertEqual(LedgerService.get_balance(self.account.uuid), 20000)

    def test_withdraw(self):
        WalletService.top_up(self.account.uuid, 50000)
        tx = WalletService.withdraw(self.account.uuid, 15000)

        self.assertEqual(tx.kind, Transaction.Kind.WITHDRAW)
        self.assertEqual(LedgerService.get_balance(self.account.uuid), 35000)

    def test_withdraw_unverified(self):
        WalletService.top_up(self.other.uuid, 50000)
        with self.assertRaises(Unverified):
            WalletService.withdraw(self.other.uuid, 20000)
        self.assertEqual(LedgerService.get_balance(self.other.uuid), 50000)

    def test_withdraw_below_minimum(self):
        WalletService.top_up(self.account.uuid, 50000)
        with self.assertRaises(BelowMinimum):
            WalletService.withdraw(self.account.uuid, 9000)

    def test_withdraw_insufficient_funds(self):
        WalletService.top_up(self.account.uuid, 10000)
        with self.assertRaises(InsufficientFunds):
            WalletService.withdraw(self.account.uuid, 20000)
        self.assertEqual(LedgerService.get_balance(self.account.uuid), 10000)

    def test_withdraw_idempotency(self):
        WalletService.top_up(self.account.uuid, 50000)
        key = str(uuid.uuid4())

        tx1 = WalletService.withdraw(self.account.uuid, 10000, idempotency_key=key)
        tx2 = WalletService.withdraw(self.account.uuid, 10000, idempotency_key=key)

        self.assertEqual(tx1.id, tx2.id)
        self.assertEqual(LedgerService.get_balance(self.account.uuid), 40000)

    def test_verify_unlocks_withdrawal(self):
        WalletService.top_up(self.other.uuid, 50000)

        account = WalletService.verify(self.other.uuid)
        tx = WalletService.withdraw(self.other.uuid, 20000)

        self.assertTrue(account.verified)
        self.assertEqual(tx.kind, Transaction.Kind.WITHDRAW)
        self.assertEqual(LedgerService.get_balance(self.other.uuid), 30000)

    def test_verify_twice_is_harmless(self):
        WalletService.verify(self.other.uuid)
        account = WalletService.verify(self.other.uuid)
        self.assertTrue(account.verified)

    def test_verify_unknown_account(self):
        with self.assertRaises(Account.DoesNotExist):
            WalletService.verify(uuid.uuid4())

    def test_idempotency_key_reused_for_other_operation(self):
        key = str(uuid.uuid4())
        WalletService.top_up(self.account.uuid, 20000, idempotency_key=key)

        with self.assertRaises(IdempotencyConflict):
            WalletService.withdraw(self.account.uuid, 20000, idempotency_key=key)

        self.assertEqual(LedgerService.get_balance(self.account.uuid), 20000)
        self.assertFalse(
            self.account.transactions.filter(kind=Transaction.Kind.WITHDRAW).exists()
        )

    def test_idempotency_key_reused_with_other_amount(self):
        key = str(uuid.uuid4())
        WalletService.top_up(self.account.uuid, 20000, idempotency_key=key)

        with self.assertRaises(IdempotencyConflict):
            WalletService.top_up(self.account.uuid, 30000, idempotency_key=key)
        self.assertEqual(LedgerService.get_balance(self.account.uuid), 20000)

    def test_send(self):
        WalletService.top_up(self.account.uuid, 30000)
        tx = WalletService.send(self.account.uuid, self.other.uuid, 12000)

        self.assertEqual(tx.kind, Transaction.Kind.TRANSFER)
        self.assertIn("Budi", tx.description)
        self.assertEqual(LedgerService.get_balance(self.account.uuid), 18000)
        self.assertEqual(LedgerService.get_balance(self.other.uuid), 12000)
        self.assertEqual(
            self.other.transactions.get().kind, Transaction.Kind.INCOME
        )

    def test_send_to_unknown_account(self):
        WalletService.top_up(self.account.uuid, 30000)
        with self.assertRaises(Account.DoesNotExist):
            WalletService.send(self.account.uuid, uuid.uuid4(), 1000)
        self.assertEqual(LedgerService.get_balance(self.account.uuid), 30000)


# ============================================================
# Reconciliation Tests
# ============================================================


class ReconciliationServiceTest(TransactionTestCase):
    def setUp(self):
        self.account = Account.objects.create(role=Account.Role.BUYER)
        LedgerService.credit(self.account.uuid, 7000, kind=Transaction.Kind.TOPUP)
        LedgerService.debit(self.account.uuid, 2000)

    def test_balanced_account(self):
        result = ReconciliationService.check_account(self.account.uuid)
        self.assertTrue(result.ok)
        self.assertEqual(result.replayed, 5000)
        self.assertEqual(ReconciliationService.check_all(), [])

    def test_detects_tampered_balance(self):
        # Simulates a write that bypassed the ledger.
        Account.objects.filter(pk=self.account.pk).update(balance=9999)

        mismatches = ReconciliationService.check_all()

        self.assertEqual(len(mismatches), 1)
        self.assertEqual(mismatches[0].account_uuid, str(self.account.uuid))
        self.assertEqual(mismatches[0].balance, 9999)
        self.assertEqual(mismatches[0].replayed, 5000)

    def test_check_account_locks_the_account(self):
        with patch.object(
            Account.objects,
            "select_for_update",
            wraps=Account.objects.select_for_update,
        ) as lock:
            result = ReconciliationService.check_account(self.account.uuid)

        lock.assert_called_once_with()
        self.assertTrue(result.ok)

    def test_management_command_ok(self):
        out = StringIO()
        call_command("reconcile_ledger", stdout=out)
        self.assertIn("Ledger balanced", out.getvalue())

    def test_management_command_mismatch(self):
        Account.objects.filter(pk=self.account.pk).update(balance=1)
        with self.assertRaises(CommandError):
            call_command("reconcile_ledger", stdout=StringIO())


# ============================================================
# API Tests
# ============================================================


class AccountAPITest(TestCase):
    def setUp(self):
        self.client = APIClient()

    def test_create_account(self):
        response = self.client.post(
            "/accounts/", {"name": "Budi", "role": "BUYER"}, format="json"
        )
        self.assertEqual(response.status_code, 201)
        self.assertIn("uuid", response.data)
        self.assertEqual(response.data["balance"], 0)
        self.assertEqual(response.data["role"], "BUYER")
        self.assertFalse(response.data["verified"])

    def test_create_platform_account_rejected(self):
        response = self.client.post(
            "/accounts/", {"name": "Me", "role": "PLATFORM"}, format="json"
        )
        self.assertEqual(response.status_code, 400)

    def test_balance_cannot_be_set_on_create(self):
        response = self.client.post(
            "/accounts/", {"role": "BUYER", "balance": 1000000}, format="json"
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["balance"], 0)

    def test_create_ignores_verified_flag(self):
        response = self.client.post(
            "/accounts/", {"role": "DRIVER", "verified": True}, format="json"
        )
        self.assertEqual(response.status_code, 201)
        self.assertFalse(response.data["verified"])

    def test_verify_then_withdraw(self):
        response = self.client.post(
            "/accounts/", {"name": "Joko", "role": "DRIVER"}, format="json"
        )
        account_uuid = response.data["uuid"]

        response = self.client.post(f"/accounts/{account_uuid}/verify")
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data["verified"])

        self.client.post(
            f"/accounts/{account_uuid}/topup", {"amount": 50000}, format="json"
        )
        response = self.client.post(
            f"/accounts/{account_uuid}/withdraw", {"amount": 20000}, format="json"
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["account"]["balance"], 30000)

    def test_verify_nonexistent_account(self):
        response = self.client.post(f"/accounts/{uuid.uuid4()}/verify")
        self.assertEqual(response.status_code, 404)

    def test_retrieve_account(self):
        account = Account.objects.create(role=Account.Role.DRIVER)
        response = self.client.get(f"/accounts/{account.uuid}/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["uuid"], str(account.uuid))

    def test_retrieve_nonexistent_account(self):
        response = self.client.get(f"/accounts/{uuid.uuid4()}/")
        self.assertEqual(response.status_code, 404)


class TopUpAPITest(TransactionTestCase):
    def setUp(self):
        self.client = APIClient()
        self.account = Account.objects.create(role=Account.Role.BUYER)

    def test_top_up_success(self):
        response = self.client.post(
            f"/accounts/{self.account.uuid}/topup", {"amount": 25000}, format="json"
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["account"]["balance"], 25000)
        self.assertEqual(response.data["transaction"]["kind"], "TOPUP")

    def test_top_up_with_idempotency_key(self):
        key = str(uuid.uuid4())
        response1 = self.client.post(
            f"/accounts/{self.account.uuid}/topup",
            {"amount": 25000},
            format="json",
            HTTP_IDEMPOTENCY_KEY=key,
        )
        response2 = self.client.post(
            f"/accounts/{self.account.uuid}/topup",
            {"amount": 25000},
            format="json",
            HTTP_IDEMPOTENCY_KEY=key,
        )
        self.assertEqual(response1.status_code, 200)
        self.assertEqual(response2.status_code, 200)
        self.assertEqual(
            response1.data["transaction"]["id"], response2.data["transaction"]["id"]
        )
        self.assertEqual(response2.data["account"]["balance"], 25000)

    def test_top_up_malformed_idempotency_key(self):
        response = self.client.post(
            f"/accounts/{self.account.uuid}/topup",
            {"amount": 25000},
            format="json",
            HTTP_IDEMPOTENCY_KEY="not-a-uuid",
        )
        self.assertEqual(response.status_code, 400)

    def test_top_up_below_minimum(self):
        response = self.client.post(
            f"/accounts/{self.account.uuid}/topup", {"amount": 500}, format="json"
        )
        self.assertEqual(response.status_code, 400)

    def test_top_up_zero_amount(self):
        response = self.client.post(
            f"/accounts/{self.account.uuid}/topup", {"amount": 0}, format="json"
        )
        self.assertEqual(response.status_code, 400)

    def test_top_up_missing_amount(self):
        response = self.client.post(
            f"/accounts/{self.account.uuid}/topup", {}, format="json"
        )
        self.assertEqual(response.status_code, 400)

    def test_top_up_nonexistent_account(self):
        response = self.client.post(
            f"/accounts/{uuid.uuid4()}/topup", {"amount": 25000}, format="json"
        )
        self.assertEqual(response.status_code, 404)


class WithdrawAPITest(TransactionTestCase):
    def setUp(self):
        self.client = APIClient()
        self.account = Account.objects.create(role=Account.Role.DRIVER, verified=True)
        WalletService.top_up(self.account.uuid, 30000)

    def test_withdraw_success(self):
        response = self.client.post(
            f"/accounts/{self.account.uuid}/withdraw", {"amount": 10000}, format="json"
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["account"]["balance"], 20000)
        self.assertEqual(response.data["transaction"]["kind"], "WITHDRAW")

    def test_withdraw_unverified(self):
        Account.objects.filter(pk=self.account.pk).update(verified=False)
        response = self.client.post(
            f"/accounts/{self.account.uuid}/withdraw", {"amount": 10000}, format="json"
        )
        self.assertEqual(response.status_code, 403)

    def test_withdraw_insufficient_funds(self):
        response = self.client.post(
            f"/accounts/{self.account.uuid}/withdraw", {"amount": 50000}, format="json"
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("Insufficient", response.data["error"])

    def test_withdraw_reusing_top_up_key(self):
        key = str(uuid.uuid4())
        self.client.post(
            f"/accounts/{self.account.uuid}/topup",
            {"amount": 10000},
            format="json",
            HTTP_IDEMPOTENCY_KEY=key,
        )
        response = self.client.post(
            f"/accounts/{self.account.uuid}/withdraw",
            {"amount": 10000},
            format="json",
            HTTP_IDEMPOTENCY_KEY=key,
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(LedgerService.get_balance(self.account.uuid), 40000)

    def test_withdraw_below_minimum(self):
        response = self.client.post(
            f"/accounts/{self.account.uuid}/withdraw", {"amount": 5000}, format="json"
        )
        self.assertEqual(response.status_code, 400)


class TransferAPITest(TransactionTestCase):
    def setUp(self):
        self.client = APIClient()
        self.sender = Account.objects.create(role=Account.Role.BUYER, name="Budi")
        self.receiver = Account.objects.create(role=Account.Role.SELLER, name="Sari")
        WalletService.top_up(self.sender.uuid, 20000)

    def test_transfer_success(self):
        response = self.client.post(
            f"/accounts/{self.sender.uuid}/transfer",
            {"to": str(self.receiver.uuid), "amount": 7000},
            format="json",
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["kind"], "TRANSFER")
        self.assertEqual(LedgerService.get_balance(self.receiver.uuid), 7000)

    def test_transfer_to_unknown_account(self):
        response = self.client.post(
            f"/accounts/{self.sender.uuid}/transfer",
            {"to": str(uuid.uuid4()), "amount": 7000},
            format="json",
        )
        self.assertEqual(response.status_code, 404)

    def test_transfer_insufficient_funds(self):
        response = self.client.post(
            f"/accounts/{self.sender.uuid}/transfer",
            {"to": str(self.receiver.uuid), "amount": 70000},
            format="json",
        )
        self.assertEqual(response.status_code, 400)


class TransactionAPITest(TransactionTestCase):
    def setUp(self):
        self.client = APIClient()
        self.account = Account.objects.create(role=Account.Role.SELLER, verified=True)
        WalletService.top_up(self.account.uuid, 10000)
        WalletService.top_up(self.account.uuid, 15000)
        WalletService.withdraw(self.account.uuid, 10000)

    def test_list_transactions_newest_first(self):
        response = self.client.get(f"/accounts/{self.account.uuid}/transactions/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data), 3)
        self.assertEqual(response.data[0]["kind"], "WITHDRAW")
        self.assertEqual(response.data[0]["balance_after"], 15000)

    def test_filter_by_kind(self):
        response = self.client.get(
            f"/accounts/{self.account.uuid}/transactions/?kind=topup"
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data), 2)

    def test_transaction_detail(self):
        tx = Transaction.objects.filter(account=self.account).first()
        response = self.client.get(
            f"/accounts/{self.account.uuid}/transactions/{tx.id}/"
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["id"], tx.id)

    def test_transaction_of_other_account_not_found(self):
        other = Account.objects.create(role=Account.Role.BUYER)
        tx = Transaction.objects.filter(account=self.account).first()
        response = self.client.get(f"/accounts/{other.uuid}/transactions/{tx.id}/")
        self.assertEqual(response.status_code, 404)


# ============================================================
# Celery Task Tests
# ============================================================


class CeleryTaskTest(TransactionTestCase):
    def setUp(self):
        self.account = Account.objects.create(role=Account.Role.BUYER)
        WalletService.top_up(self.account.uuid, 10000)

    def test_reconcile_account_task(self):
        from wallets.tasks import reconcile_account

        result = reconcile_account.apply(args=[str(self.account.uuid)])

        self.assertTrue(result.get()["ok"])
        self.assertEqual(result.get()["replayed"], 10000)

    def test_reconcile_account_task_unknown_account(self):
        from wallets.tasks import reconcile_account

        result = reconcile_account.apply(args=[str(uuid.uuid4())])

        self.assertEqual(result.get()["status"], "NOT_FOUND")

    def test_reconcile_all_accounts_task(self):
        from wallets.tasks import reconcile_all_accounts

        Account.objects.create(role=Account.Role.SELLER)
        result = reconcile_all_accounts.apply()

        self.assertEqual(result.get()["checked"], 2)
        self.assertEqual(result.get()["mismatches"], [])


# ============================================================
# Middleware Tests
# ============================================================


class RequestLoggingMiddlewareTest(TestCase):
    def test_logs_request_and_response(self):
        with self.assertLogs("wallets.middleware", level="INFO") as logs:
            response = APIClient().post("/accounts/", {"role": "BUYER"}, format="json")

        self.assertEqual(response.status_code, 201)
        self.assertTrue(any("API request: POST /accounts/" in line for line in logs.output))
        self.assertTrue(any("status=201" in line for line in logs.output))

    def test_client_errors_logged_as_warning(self):
        with self.assertLogs("wallets.middleware", level="WARNING") as logs:
            APIClient().get(f"/accounts/{uuid.uuid4()}/")

        self.assertEqual(len(logs.records), 1)
        self.assertIn("status=404", logs.output[0])
