from .base import *

DEBUG = False

SECRET_KEY = 'test-secret-key'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

ALLOWED_HOSTS = ['testserver']

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'

WALLET_GATEWAY = {
    **WALLET_GATEWAY,
    'ENDPOINT': 'https://wallet.example.com/v2/gateway/api/create',
    'PARTNER_CODE': 'MOMOTEST',
    'ACCESS_KEY': 'test-access-key',
    'SECRET_KEY': 'test-wallet-secret',
}

BANK_GATEWAY = {
    **BANK_GATEWAY,
    'TMN_CODE': 'TESTTMN1',
    'HASH_SECRET': 'test-bank-secret',
    'PAY_URL': 'https://bank.example.com/paymentv2/vpcpay.html',
    'API_URL': 'https://bank.example.com/merchant_webapi/api/transaction',
}
