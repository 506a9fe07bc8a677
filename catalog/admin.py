from django.contrib import admin

from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("title", "price", "category", "status", "seller", "buyer", "created_at")
    search_fields = ("title",)
    list_filter = ("status", "category")
