from django.urls import path
from . import views
app_name = "payments"
urlpatterns = [
    path("wallet/create", views.wallet_create_view, name="wallet_create"),
    path("wallet/ipn", views.wallet_ipn_view, name="wallet_ipn"),
    path("bank/create", views.bank_create_view, name="bank_create"),
    path("bank/ipn", views.bank_ipn_view, name="bank_ipn"),
    path("bank/return", views.bank_return_view, name="bank_return"),
    path("bank/query", views.bank_query_view, name="bank_query"),
    path("bank/refund", views.bank_refund_view, name="bank_refund"),
    path("cash/create", views.cash_create_view, name="cash_create"),
    path("purchases", views.purchase_history_view, name="purchase_history"),
    path("purchases/<str:order_id>", views.purchase_details_view, name="purchase_details"),
    path("purchases/<str:order_id>/cancel", views.cancel_purchase_view, name="cancel_purchase"),
    path("purchases/<str:order_id>/shipping-address", views.update_shipping_address_view, name="update_shipping_address"),
    path("confirm-receipt/<str:order_id>", views.confirm_receipt_view, name="confirm_receipt"),
    path("<str:order_id>/status", views.payment_status_view, name="payment_status"),
]
