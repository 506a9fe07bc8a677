from decimal import Decimal

from django.core.management.base import BaseCommand

from payments.commission import commission_drift
from payments.models import Order

TOLERANCE = Decimal("0.01")


class Command(BaseCommand):
    help = "Recompute admin commission on completed orders whose stored split has drifted"

    def add_arguments(self, parser):
        parser.add_argument("--method", choices=[c[0] for c in Order.METHOD_CHOICES], default=None)
        parser.add_argument("--dry-run", action="store_true")

    def handle(self, *args, **opts):
        qs = Order.objects.filter(payment_status=Order.STATUS_COMPLETED)
        if opts["method"]:
            qs = qs.filter(payment_method=opts["method"])

        checked = fixed = 0
        for order in qs.iterator():
            checked += 1
            if commission_drift(order.amount, order.admin_commission_rate, order.admin_commission) <= TOLERANCE:
                continue
            old_commission, old_seller = order.admin_commission, order.seller_amount
            if not opts["dry_run"]:
                # Naming the rate forces the save hook to recompute the split.
                order.save(update_fields=["admin_commission_rate"])
            fixed += 1
            self.stdout.write(
                f"{order.order_id}: amount={order.amount} rate={order.admin_commission_rate} "
                f"commission {old_commission} -> {order.admin_commission}, "
                f"seller {old_seller} -> {order.seller_amount}"
            )

        verb = "Would fix" if opts["dry_run"] else "Fixed"
        self.stdout.write(self.style.SUCCESS(f"Checked {checked} orders. {verb} {fixed}."))
