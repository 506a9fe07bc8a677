"""Receipt confirmation: the buyer's manual confirm and the hourly auto-confirm.

Both writers flip ``received_successfully`` with the same conditional UPDATE,
so whichever commits first wins and the other sees "already confirmed".
"""
import logging
import threading
from dataclasses import dataclass
from datetime import timedelta

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from django.conf import settings
from django.db import close_old_connections, transaction

from . import clock as clocks
from .models import Order

logger = logging.getLogger(__name__)

JOB_ID = "auto_confirm_receipts"


@dataclass
class ConfirmationResult:
    order: Order
    confirmed: bool
    message: str

    @property
    def already_confirmed(self) -> bool:
        return not self.confirmed


def confirm_receipt(order: Order, *, clock=None) -> ConfirmationResult:
    now = clocks.resolve(clock).now()
    with transaction.atomic():
        flipped = Order.objects.filter(
            pk=order.pk,
            payment_status=Order.STATUS_COMPLETED,
            received_successfully=False,
        ).update(received_successfully=True, received_confirmed_at=now, updated_at=now)
        order.refresh_from_db()
    if not flipped:
        return ConfirmationResult(order=order, confirmed=False, message="Receipt has already been confirmed")
    logger.info("Receipt confirmed for order %s by buyer %s", order.order_id, order.buyer_id)
    return ConfirmationResult(order=order, confirmed=True, message="Receipt confirmed successfully")


def auto_confirm_expired_receipts(*, clock=None) -> int:
    """Confirm every completed order whose receipt deadline has passed.

    One UPDATE does the work; the pre-fetched rows are only used for the
    audit log.
    """
    now = clocks.resolve(clock).now()
    due = Order.objects.filter(
        payment_status=Order.STATUS_COMPLETED,
        received_successfully=False,
        received_successfully_deadline__lte=now,
    )
    expired = list(due.values("pk", "order_id", "buyer_id"))
    if not expired:
        logger.info("No expired receipts to auto-confirm")
        return 0

    updated = Order.objects.filter(
        pk__in=[row["pk"] for row in expired],
        payment_status=Order.STATUS_COMPLETED,
        received_successfully=False,
    ).update(received_successfully=True, received_confirmed_at=now, updated_at=now)

    logger.info("Auto-confirmed %d of %d expired receipts", updated, len(expired))
    for row in expired:
        logger.info("Auto-confirmed receipt for order %s (buyer: %s)", row["order_id"], row["buyer_id"])
    return updated


class ReceiptScheduler:
    """Owns the periodic auto-confirm job. Construct it, ``start()``, ``shutdown()``."""

    def __init__(self, *, clock=None, interval: timedelta | None = None, scheduler=None):
        self.clock = clocks.resolve(clock)
        minutes = settings.PAYMENTS.get("SCHEDULER_INTERVAL_MINUTES", 60)
        self.interval = interval or timedelta(minutes=minutes)
        self._busy = threading.Lock()
        self.scheduler = scheduler or BackgroundScheduler(
            job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": 300},
            timezone="UTC",
        )

    def run_once(self) -> int | None:
        """Run one tick. Returns the number confirmed, or None if skipped or failed."""
        if not self._busy.acquire(blocking=False):
            logger.warning("Previous receipt confirmation tick still running; skipping")
            return None
        try:
            close_old_connections()
            return auto_confirm_expired_receipts(clock=self.clock)
        except Exception:
            logger.exception("Receipt confirmation tick failed")
            return None
        finally:
            close_old_connections()
            self._busy.release()

    def start(self) -> None:
        self.scheduler.add_job(
            self.run_once,
            trigger=IntervalTrigger(seconds=int(self.interval.total_seconds())),
            id=JOB_ID,
            name="Auto-confirm expired receipts",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        logger.info("Receipt scheduler started (every %s)", self.interval)

    def shutdown(self, wait: bool = True) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)
            logger.info("Receipt scheduler stopped")

    @property
    def running(self) -> bool:
        return bool(self.scheduler.running)
