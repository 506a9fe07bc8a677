import signal
import threading

from django.core.management.base import BaseCommand

from payments.scheduler import ReceiptScheduler


class Command(BaseCommand):
    help = "Run the receipt auto-confirmation scheduler until interrupted"

    def add_arguments(self, parser):
        parser.add_argument("--once", action="store_true", help="Run a single tick and exit")

    def handle(self, *args, **opts):
        scheduler = ReceiptScheduler()
        if opts["once"]:
            confirmed = scheduler.run_once()
            if confirmed is None:
                self.stdout.write(self.style.WARNING("Tick skipped or failed; see logs."))
            else:
                self.stdout.write(self.style.SUCCESS(f"Auto-confirmed {confirmed} receipts."))
            return

        stop = threading.Event()
        for sig in (signal.SIGINT, signal.SIGTERM):
            signal.signal(sig, lambda *_: stop.set())

        scheduler.start()
        self.stdout.write(self.style.SUCCESS(f"Receipt scheduler running every {scheduler.interval}."))
        try:
            stop.wait()
        finally:
            scheduler.shutdown()
            self.stdout.write("Receipt scheduler stopped.")
