from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import SimpleTestCase, TestCase, override_settings

from payments import ledger
from payments.commission import commission_drift, compute_commission
from payments.models import Order

from .helpers import make_product, make_user, open_order


class ComputeCommissionTests(SimpleTestCase):
    def test_default_rate_split(self):
        self.assertEqual(compute_commission(Decimal("100000"), Decimal("0.10")), (Decimal("10000.00"), Decimal("90000.00")))

    def test_rounds_half_up_and_parts_sum_to_amount(self):
        commission, seller = compute_commission(Decimal("10.05"), Decimal("0.10"))
        self.assertEqual(commission, Decimal("1.01"))
        self.assertEqual(commission + seller, Decimal("10.05"))

    def test_rejects_bad_inputs(self):
        with self.assertRaises(ValueError):
            compute_commission(Decimal("-1"), Decimal("0.1"))
        with self.assertRaises(ValueError):
            compute_commission(Decimal("1"), Decimal("1.5"))

    def test_drift(self):
        self.assertEqual(commission_drift(Decimal("100"), Decimal("0.1"), Decimal("0")), Decimal("10.00"))


class OrderCommissionTests(TestCase):
    def setUp(self):
        self.seller = make_user("seller")
        self.buyer = make_user("buyer")

    def test_split_is_stored_on_creation(self):
        order = open_order(make_product(self.seller, price="250000"), self.buyer)
        self.assertEqual(order.admin_commission_rate, Decimal("0.1"))
        self.assertEqual(order.admin_commission, Decimal("25000.00"))
        self.assertEqual(order.seller_amount, Decimal("225000.00"))

    def test_rate_is_frozen_at_creation(self):
        order = open_order(make_product(self.seller), self.buyer)
        with override_settings(PAYMENTS={"ADMIN_COMMISSION_RATE": "0.25"}):
            ledger.complete_order(order.order_id)
        order.refresh_from_db()
        self.assertEqual(order.admin_commission_rate, Decimal("0.1"))
        self.assertEqual(order.admin_commission, Decimal("10000.00"))

    def test_partial_save_without_inputs_leaves_split_alone(self):
        order = open_order(make_product(self.seller), self.buyer)
        Order.objects.filter(pk=order.pk).update(admin_commission=Decimal("1"))
        order.refresh_from_db()
        order.shipping_address = "Somewhere else"
        order.save(update_fields=["shipping_address"])
        order.refresh_from_db()
        self.assertEqual(order.admin_commission, Decimal("1.00"))

    def test_naming_rate_forces_recompute(self):
        order = open_order(make_product(self.seller), self.buyer)
        Order.objects.filter(pk=order.pk).update(admin_commission=Decimal("0"), seller_amount=Decimal("0"))
        order.refresh_from_db()
        order.save(update_fields=["admin_commission_rate"])
        order.refresh_from_db()
        self.assertEqual(order.admin_commission, Decimal("10000.00"))
        self.assertEqual(order.seller_amount, Decimal("90000.00"))

    def test_orders_cannot_be_deleted(self):
        order = open_order(make_product(self.seller), self.buyer)
        with self.assertRaises(RuntimeError):
            order.delete()


class FixCommissionsCommandTests(TestCase):
    def setUp(self):
        seller = make_user("seller")
        buyer = make_user("buyer")
        self.order = open_order(make_product(seller), buyer, method=Order.METHOD_BANK)
        ledger.complete_order(self.order.order_id)
        Order.objects.filter(pk=self.order.pk).update(admin_commission=Decimal("0"), seller_amount=Decimal("100000"))

    def test_dry_run_reports_without_writing(self):
        out = StringIO()
        call_command("fix_commissions", "--dry-run", stdout=out)
        self.order.refresh_from_db()
        self.assertEqual(self.order.admin_commission, Decimal("0.00"))
        self.assertIn("Would fix 1", out.getvalue())

    def test_fixes_drifted_orders(self):
        out = StringIO()
        call_command("fix_commissions", "--method", "bank", stdout=out)
        self.order.refresh_from_db()
        self.assertEqual(self.order.admin_commission, Decimal("10000.00"))
        self.assertEqual(self.order.seller_amount, Decimal("90000.00"))
        self.assertIn("Fixed 1", out.getvalue())

    def test_method_filter_skips_other_methods(self):
        out = StringIO()
        call_command("fix_commissions", "--method", "wallet", stdout=out)
        self.order.refresh_from_db()
        self.assertEqual(self.order.admin_commission, Decimal("0.00"))
        self.assertIn("Checked 0 orders", out.getvalue())
