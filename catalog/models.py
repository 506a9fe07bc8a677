from django.conf import settings
from django.db import models


class Product(models.Model):
    """Listing a buyer pays for. Only the fields settlement touches live here."""

    CATEGORY_CHOICES = [
        ("books", "Books"),
        ("electronics", "Electronics"),
        ("furniture", "Furniture"),
        ("clothing", "Clothing"),
        ("vehicles", "Vehicles"),
        ("services", "Services"),
        ("other", "Other"),
    ]
    STATUS_AVAILABLE = "available"
    STATUS_PENDING = "pending"
    STATUS_SOLD = "sold"
    STATUS_CHOICES = [
        (STATUS_AVAILABLE, "Available"),
        (STATUS_PENDING, "Pending"),
        (STATUS_SOLD, "Sold"),
    ]

    title = models.CharField(max_length=200)
    price = models.DecimalField(max_digits=14, decimal_places=2)
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, default="other", db_index=True)
    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default=STATUS_AVAILABLE, db_index=True)
    seller = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="products")
    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="purchased_products"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def is_available(self) -> bool:
        return self.status == self.STATUS_AVAILABLE

    def __str__(self):
        return f"{self.title} ({self.status})"
