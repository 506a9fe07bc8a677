from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.core import mail
from django.db import DatabaseError
from django.test import TestCase

from catalog.models import Product
from payments import ledger
from payments.clock import FixedClock
from payments.commission import compute_commission
from payments.exceptions import NotFoundError, StateConflictError, ValidationError
from payments.models import Order, ReconciliationIssue
from payments.notes import PurchaseNote, find_note

from .helpers import T0, make_product, make_user, open_order


class OpenOrderTests(TestCase):
    def setUp(self):
        self.seller = make_user("seller")
        self.buyer = make_user("buyer")
        self.product = make_product(self.seller)

    def test_opens_pending_order_with_purchase_note(self):
        order = open_order(self.product, self.buyer)
        self.assertEqual(order.payment_status, Order.STATUS_PENDING)
        self.assertTrue(order.order_id.startswith("MOMO240301090000"))
        self.assertEqual(order.amount, Decimal("100000"))
        self.assertEqual(order.seller, self.seller)
        note = find_note(order.notes, PurchaseNote)
        self.assertEqual(note, PurchaseNote(product=str(self.product.pk), buyer=str(self.buyer.pk), seller=str(self.seller.pk)))

    def test_prefix_follows_method(self):
        self.assertTrue(open_order(self.product, self.buyer, method=Order.METHOD_BANK).order_id.startswith("VNP"))
        self.assertTrue(open_order(self.product, self.buyer, method=Order.METHOD_CASH).order_id.startswith("CASH"))

    def test_bank_requires_shipping_address(self):
        with self.assertRaises(ValidationError) as cm:
            ledger.open_order(product=self.product, buyer=self.buyer, method=Order.METHOD_BANK, shipping_address=" ")
        self.assertIn("shipping_address", cm.exception.fields)

    def test_cash_defaults_shipping_address(self):
        order = open_order(self.product, self.buyer, method=Order.METHOD_CASH)
        self.assertEqual(order.shipping_address, "Not provided")

    def test_wallet_rejects_fractional_amount(self):
        product = make_product(self.seller, price="100000.50", title="Odd price")
        with self.assertRaises(ValidationError) as cm:
            ledger.open_order(product=product, buyer=self.buyer, method=Order.METHOD_WALLET)
        self.assertIn("amount", cm.exception.fields)
        self.assertFalse(Order.objects.filter(product=product).exists())

        order = open_order(product, self.buyer, method=Order.METHOD_BANK)
        self.assertEqual(order.amount, Decimal("100000.50"))

    def test_cannot_buy_own_product(self):
        with self.assertRaises(ValidationError):
            ledger.open_order(product=self.product, buyer=self.seller, method=Order.METHOD_WALLET)

    def test_sold_product_is_rejected(self):
        Product.objects.filter(pk=self.product.pk).update(status=Product.STATUS_SOLD)
        with self.assertRaises(StateConflictError) as cm:
            ledger.open_order(product=self.product, buyer=self.buyer, method=Order.METHOD_WALLET)
        self.assertEqual(cm.exception.reason, "product_unavailable")

    def test_get_order_unknown_raises(self):
        with self.assertRaises(NotFoundError):
            ledger.get_order("MOMO-nope")


class CompleteOrderTests(TestCase):
    def setUp(self):
        self.seller = make_user("seller")
        self.buyer = make_user("buyer")
        self.product = make_product(self.seller)
        self.order = open_order(self.product, self.buyer)
        self.clock = FixedClock(T0 + timedelta(minutes=3))

    def test_completion_sets_deadline_and_sells_product(self):
        result = ledger.complete_order(self.order.order_id, transaction_id="T1", clock=self.clock)
        self.assertTrue(result.applied)
        self.assertEqual(result.order.payment_status, Order.STATUS_COMPLETED)
        self.assertEqual(result.order.transaction_id, "T1")
        self.assertEqual(result.order.completed_at, self.clock.now())
        self.assertEqual(result.order.received_successfully_deadline, self.clock.now() + timedelta(days=7))
        self.product.refresh_from_db()
        self.assertEqual(self.product.status, Product.STATUS_SOLD)
        self.assertEqual(self.product.buyer, self.buyer)

    def test_second_completion_is_a_no_op(self):
        ledger.complete_order(self.order.order_id, transaction_id="T1", clock=self.clock)
        self.clock.advance(hours=1)
        result = ledger.complete_order(self.order.order_id, transaction_id="T2", clock=self.clock)
        self.assertFalse(result.applied)
        self.assertTrue(result.already_processed)
        self.assertEqual(result.order.transaction_id, "T1")
        self.assertEqual(result.order.received_successfully_deadline, T0 + timedelta(minutes=3, days=7))

    def test_commission_is_computed_once_per_completion(self):
        with patch("payments.models.compute_commission", wraps=compute_commission) as compute:
            ledger.complete_order(self.order.order_id, clock=self.clock)
            ledger.complete_order(self.order.order_id, clock=self.clock)
        self.assertEqual(compute.call_count, 1)

    def test_failed_order_cannot_complete(self):
        ledger.fail_order(self.order.order_id, error_code="1006", error_message="denied")
        result = ledger.complete_order(self.order.order_id, clock=self.clock)
        self.assertFalse(result.applied)
        self.assertEqual(result.order.payment_status, Order.STATUS_FAILED)
        self.product.refresh_from_db()
        self.assertEqual(self.product.status, Product.STATUS_AVAILABLE)

    def test_confirmation_emails_sent_on_commit(self):
        with self.captureOnCommitCallbacks(execute=True):
            ledger.complete_order(self.order.order_id, clock=self.clock)
        self.assertEqual(len(mail.outbox), 2)
        self.assertEqual(mail.outbox[0].to, ["buyer@example.com"])
        self.assertEqual(mail.outbox[1].to, ["seller@example.com"])

    def test_late_completion_does_not_take_product_from_other_buyer(self):
        rival = make_user("rival")
        ledger.complete_order(open_order(self.product, rival).order_id, clock=self.clock)

        with self.assertLogs("payments.ledger", level="ERROR"):
            result = ledger.complete_order(self.order.order_id, clock=self.clock)

        self.assertTrue(result.applied)
        self.product.refresh_from_db()
        self.assertEqual(self.product.buyer, rival)
        issue = ReconciliationIssue.objects.get()
        self.assertEqual(issue.order, self.order)
        self.assertIn("another buyer", issue.detail)

    def test_product_update_failure_records_reconciliation_issue(self):
        with patch("payments.ledger.Product.objects.filter", side_effect=DatabaseError("locked")):
            with self.assertLogs("payments.ledger", level="ERROR") as cm:
                result = ledger.complete_order(self.order.order_id, clock=self.clock)
        self.assertTrue(result.applied)
        self.assertEqual(result.order.payment_status, Order.STATUS_COMPLETED)
        issue = ReconciliationIssue.objects.get()
        self.assertEqual(issue.order, self.order)
        self.assertEqual(issue.kind, ReconciliationIssue.KIND_PRODUCT_SOLD)
        self.assertIn("locked", issue.detail)
        self.assertTrue(any(self.order.order_id in line for line in cm.output))


class FailOrderTests(TestCase):
    def setUp(self):
        self.order = open_order(make_product(make_user("seller")), make_user("buyer"))

    def test_records_error(self):
        result = ledger.fail_order(self.order.order_id, error_code="1006", error_message="Transaction denied")
        self.assertTrue(result.applied)
        self.assertEqual(result.order.payment_status, Order.STATUS_FAILED)
        self.assertEqual(result.order.error_code, "1006")
        self.assertEqual(result.order.error_message, "Transaction denied")

    def test_completed_order_is_not_failed(self):
        ledger.complete_order(self.order.order_id)
        result = ledger.fail_order(self.order.order_id, error_code="24")
        self.assertFalse(result.applied)
        self.assertEqual(result.order.payment_status, Order.STATUS_COMPLETED)
