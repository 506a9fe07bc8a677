from django import forms

from catalog.models import Product

from .exceptions import ValidationError


class CreatePaymentForm(forms.Form):
    """Checkout input shared by the three payment methods."""

    product_id = forms.IntegerField(min_value=1)
    shipping_address = forms.CharField(max_length=500, required=False)
    bank_code = forms.CharField(max_length=20, required=False)
    locale = forms.ChoiceField(choices=[("vn", "vn"), ("en", "en")], required=False)


class PurchaseHistoryForm(forms.Form):
    STATUS_CHOICES = [("pending", "pending"), ("completed", "completed"), ("failed", "failed"), ("all", "all")]
    SORT_CHOICES = [("created_at", "created_at"), ("amount", "amount")]

    page = forms.IntegerField(min_value=1, required=False)
    limit = forms.IntegerField(min_value=1, max_value=50, required=False)
    status = forms.ChoiceField(choices=STATUS_CHOICES, required=False)
    category = forms.ChoiceField(choices=Product.CATEGORY_CHOICES, required=False)
    min_amount = forms.DecimalField(min_value=0, required=False)
    max_amount = forms.DecimalField(min_value=0, required=False)
    start_date = forms.DateTimeField(required=False)
    end_date = forms.DateTimeField(required=False)
    sort_by = forms.ChoiceField(choices=SORT_CHOICES, required=False)
    sort_order = forms.ChoiceField(choices=[("asc", "asc"), ("desc", "desc")], required=False)

    def clean(self):
        cleaned = super().clean()
        lo, hi = cleaned.get("min_amount"), cleaned.get("max_amount")
        if lo is not None and hi is not None and lo > hi:
            self.add_error("max_amount", "max_amount must not be below min_amount")
        start, end = cleaned.get("start_date"), cleaned.get("end_date")
        if start and end and start > end:
            self.add_error("end_date", "end_date must not be before start_date")
        return cleaned


class BankQueryForm(forms.Form):
    order_id = forms.CharField(max_length=40)
    transaction_date = forms.RegexField(regex=r"^\d{14}$")


class BankRefundForm(BankQueryForm):
    amount = forms.DecimalField(min_value=0, decimal_places=2, max_digits=14)
    transaction_type = forms.ChoiceField(choices=[("02", "02"), ("03", "03")])


def cleaned_or_raise(form: forms.Form) -> dict:
    if not form.is_valid():
        fields = {name: [e["message"] for e in errs] for name, errs in form.errors.get_json_data().items()}
        raise ValidationError("Invalid request", fields=fields)
    return form.cleaned_data
