import time
from datetime import timedelta

from django.core.management.base import BaseCommand
from django.utils import timezone

from payments import ledger
from payments.exceptions import GatewayError
from payments.integrations import bank
from payments.models import Order


class Command(BaseCommand):
    help = "Query the bank gateway for stale pending bank orders and settle them locally"

    def add_arguments(self, parser):
        parser.add_argument("--max", type=int, default=50)
        parser.add_argument("--sleep", type=float, default=0.5)
        parser.add_argument("--older-than-minutes", type=int, default=15)

    def handle(self, *args, **opts):
        cutoff = timezone.now() - timedelta(minutes=opts["older_than_minutes"])
        qs = Order.objects.filter(
            payment_method=Order.METHOD_BANK,
            payment_status=Order.STATUS_PENDING,
            created_at__lt=cutoff,
        ).order_by("created_at")[:opts["max"]]

        orders = list(qs)
        if not orders:
            self.stdout.write(self.style.SUCCESS("No pending orders to reconcile."))
            return

        settled = 0
        for o in orders:
            created = bank.local_time(o.created_at).strftime("%Y%m%d%H%M%S")
            try:
                data = bank.query_transaction(o.order_id, created)
            except GatewayError as e:
                self.stdout.write(self.style.WARNING(f"{o.order_id}: {e}"))
                time.sleep(opts["sleep"])
                continue

            if str(data.get("vnp_ResponseCode")) != bank.SUCCESS_CODE:
                self.stdout.write(f"{o.order_id}: query rejected ({data.get('vnp_ResponseCode')} {data.get('vnp_Message', '')})")
            elif not bank.verify_query_response(data):
                self.stdout.write(self.style.ERROR(f"{o.order_id}: query response checksum failed"))
            else:
                txn_status = str(data.get("vnp_TransactionStatus") or "")
                try:
                    notified = bank.from_minor(data.get("vnp_Amount"))
                except ValueError:
                    notified = None
                if notified is None or notified != o.amount:
                    self.stdout.write(self.style.ERROR(f"{o.order_id}: amount mismatch {notified} != {o.amount}"))
                elif txn_status == bank.SUCCESS_CODE:
                    result = ledger.complete_order(o.order_id, transaction_id=str(data.get("vnp_TransactionNo") or ""))
                    settled += int(result.applied)
                    self.stdout.write(self.style.SUCCESS(f"{o.order_id} -> {result.order.payment_status}"))
                elif txn_status in ("02", "04", "09"):
                    result = ledger.fail_order(
                        o.order_id,
                        error_code=txn_status,
                        error_message=f"Transaction failed with status {txn_status}",
                    )
                    settled += int(result.applied)
                    self.stdout.write(self.style.WARNING(f"{o.order_id} -> {result.order.payment_status}"))
                else:
                    self.stdout.write(f"{o.order_id}: still {txn_status or 'UNKNOWN'}")
            time.sleep(opts["sleep"])

        self.stdout.write(self.style.SUCCESS(f"Checked {len(orders)}, settled {settled} orders."))
