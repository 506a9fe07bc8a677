import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent.parent

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-insecure-secret-key")
DEBUG = os.getenv("DJANGO_DEBUG", "false").lower() in ("1", "true", "yes")
ALLOWED_HOSTS = [h.strip() for h in os.getenv("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if h.strip()]

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "catalog",
    "payments",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "marketplace.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "marketplace.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.getenv("DATABASE_PATH", str(BASE_DIR / "db.sqlite3")),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "/static/"

# Email (receipts and order notifications)
EMAIL_BACKEND = os.getenv("EMAIL_BACKEND", "django.core.mail.backends.console.EmailBackend")
DEFAULT_FROM_EMAIL = os.getenv("DEFAULT_FROM_EMAIL", "noreply@marketplace.local")
EMAIL_FAIL_SILENTLY = os.getenv("EMAIL_FAIL_SILENTLY", "true").lower() in ("1", "true", "yes")

FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

# MoMo-style wallet gateway
WALLET_GATEWAY = {
    "ENDPOINT": os.getenv("MOMO_ENDPOINT", "https://test-payment.momo.vn/v2/gateway/api/create"),
    "PARTNER_CODE": os.getenv("MOMO_PARTNER_CODE", ""),
    "ACCESS_KEY": os.getenv("MOMO_ACCESS_KEY", ""),
    "SECRET_KEY": os.getenv("MOMO_SECRET_KEY", ""),
    "REDIRECT_URL": os.getenv("MOMO_REDIRECT_URL", "http://localhost:3000/payment/result"),
    "IPN_URL": os.getenv("MOMO_IPN_URL", "http://localhost:8000/api/payments/wallet/ipn"),
    "REQUEST_TYPE": os.getenv("MOMO_REQUEST_TYPE", "captureWallet"),
    "LANG": os.getenv("MOMO_LANG", "vi"),
}

# VNPay-style bank gateway
BANK_GATEWAY = {
    "TMN_CODE": os.getenv("VNP_TMNCODE", ""),
    "HASH_SECRET": os.getenv("VNP_HASHSECRET", ""),
    "PAY_URL": os.getenv("VNP_URL", "https://sandbox.vnpayment.vn/paymentv2/vpcpay.html"),
    "API_URL": os.getenv("VNP_API", "https://sandbox.vnpayment.vn/merchant_webapi/api/transaction"),
    "RETURN_URL": os.getenv("VNP_RETURN_URL", "http://localhost:8000/api/payments/bank/return"),
    "VERSION": "2.1.0",
    "CURRENCY": "VND",
    "TIMEZONE": "Asia/Ho_Chi_Minh",
}

PAYMENTS = {
    "ADMIN_COMMISSION_RATE": os.getenv("PAYMENTS_ADMIN_COMMISSION_RATE", "0.10"),
    "GATEWAY_TIMEOUT": float(os.getenv("PAYMENTS_GATEWAY_TIMEOUT", "15")),
    "EDIT_WINDOW_HOURS": int(os.getenv("PAYMENTS_EDIT_WINDOW_HOURS", "6")),
    "RECEIPT_DEADLINE_DAYS": int(os.getenv("PAYMENTS_RECEIPT_DEADLINE_DAYS", "7")),
    "SCHEDULER_INTERVAL_MINUTES": int(os.getenv("PAYMENTS_SCHEDULER_INTERVAL_MINUTES", "60")),
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "verbose"},
    },
    "root": {"handlers": ["console"], "level": os.getenv("LOG_LEVEL", "INFO")},
    "loggers": {
        "apscheduler": {"level": "WARNING"},
    },
}
