from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from .commission import compute_commission
from .notes import dump_note, load_notes

COMMISSION_INPUTS = {"amount", "admin_commission_rate"}
COMMISSION_OUTPUTS = {"admin_commission", "seller_amount"}


def default_commission_rate() -> Decimal:
    return Decimal(str(settings.PAYMENTS.get("ADMIN_COMMISSION_RATE", "0.10")))


class Order(models.Model):
    """One purchase attempt. Rows are the settlement ledger and are never deleted."""

    METHOD_WALLET = "wallet"
    METHOD_BANK = "bank"
    METHOD_CASH = "cash"
    METHOD_CHOICES = [
        (METHOD_WALLET, "Wallet"),
        (METHOD_BANK, "Bank"),
        (METHOD_CASH, "Cash"),
    ]

    STATUS_PENDING = "pending"
    STATUS_COMPLETED = "completed"
    STATUS_FAILED = "failed"
    STATUS_REFUNDED = "refunded"
    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_FAILED, "Failed"),
        (STATUS_REFUNDED, "Refunded"),
    ]

    order_id = models.CharField(max_length=40, unique=True, db_index=True, editable=False)
    request_id = models.CharField(max_length=64)

    amount = models.DecimalField(max_digits=14, decimal_places=2, validators=[MinValueValidator(Decimal("0.01"))])
    product = models.ForeignKey("catalog.Product", on_delete=models.PROTECT, related_name="orders")
    buyer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="purchases")
    seller = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="sales")

    payment_method = models.CharField(max_length=12, choices=METHOD_CHOICES)
    payment_status = models.CharField(max_length=12, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)

    admin_commission_rate = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        default=default_commission_rate,
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("1"))],
    )
    admin_commission = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    seller_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))

    shipping_address = models.TextField(blank=True, default="")
    transaction_id = models.CharField(max_length=64, blank=True, default="")
    pay_url = models.TextField(blank=True, default="")
    notes = models.JSONField(default=list, blank=True)
    error_code = models.CharField(max_length=32, blank=True, default="")
    error_message = models.TextField(blank=True, default="")

    completed_at = models.DateTimeField(null=True, blank=True)
    received_successfully = models.BooleanField(default=False)
    received_successfully_deadline = models.DateTimeField(null=True, blank=True, db_index=True)
    received_confirmed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-created_at",)
        indexes = [
            models.Index(
                fields=["payment_status", "received_successfully", "received_successfully_deadline"],
                name="order_receipt_due_idx",
            ),
        ]

    def __str__(self):
        return f"{self.order_id} ({self.payment_status})"

    @property
    def is_pending(self) -> bool:
        return self.payment_status == self.STATUS_PENDING

    @property
    def is_completed(self) -> bool:
        return self.payment_status == self.STATUS_COMPLETED

    def refresh_commission(self) -> None:
        self.admin_commission, self.seller_amount = compute_commission(self.amount, self.admin_commission_rate)

    def add_note(self, note) -> None:
        self.notes = list(self.notes or []) + [dump_note(note)]

    def typed_notes(self) -> list:
        return load_notes(self.notes)

    def save(self, *args, **kwargs):
        # Derived commission fields are recomputed on every full save and on any
        # partial save that names amount or rate, even if neither value changed.
        update_fields = kwargs.get("update_fields")
        if update_fields is None or COMMISSION_INPUTS & set(update_fields):
            self.refresh_commission()
            if update_fields is not None:
                kwargs["update_fields"] = set(update_fields) | COMMISSION_OUTPUTS | {"updated_at"}
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise RuntimeError("Orders are ledger entries and cannot be deleted")


class ReconciliationIssue(models.Model):
    """A follow-up step that failed after the order itself was written."""

    KIND_PRODUCT_SOLD = "product_sold"
    KIND_CHOICES = [
        (KIND_PRODUCT_SOLD, "Product not marked sold"),
    ]

    order = models.ForeignKey(Order, on_delete=models.PROTECT, related_name="reconciliation_issues")
    kind = models.CharField(max_length=32, choices=KIND_CHOICES)
    detail = models.TextField(blank=True, default="")
    resolved = models.BooleanField(default=False, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-created_at",)

    def __str__(self):
        return f"{self.kind} for {self.order.order_id}"
