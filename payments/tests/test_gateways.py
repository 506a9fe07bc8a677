from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import Mock, patch
from urllib.parse import parse_qsl, urlsplit

import requests
from django.test import SimpleTestCase, override_settings

from payments import signing
from payments.exceptions import GatewayError
from payments.integrations import bank, wallet


def _response(data=None, status=200, text=""):
    resp = Mock(status_code=status, text=text)
    if isinstance(data, Exception):
        resp.json.side_effect = data
    else:
        resp.json.return_value = data
    return resp


class WalletCreatePaymentTests(SimpleTestCase):
    def _create(self, **overrides):
        kwargs = dict(
            order_id="MOMO2403010900001234",
            request_id="MOMO2403010900001234",
            amount=Decimal("100000.00"),
            order_info="Payment for Desk lamp",
            extra_data="",
        )
        kwargs.update(overrides)
        return wallet.create_payment(**kwargs)

    def test_signed_request_and_pay_url(self):
        data = {"payUrl": "https://wallet.example.com/pay/abc", "resultCode": 0, "message": "Success"}
        with patch("payments.integrations.base.requests.post", return_value=_response(data)) as post:
            resp = self._create()

        self.assertTrue(resp.ok)
        self.assertEqual(resp.pay_url, "https://wallet.example.com/pay/abc")
        self.assertEqual(resp.error_code, "")

        url = post.call_args.args[0]
        body = post.call_args.kwargs["json"]
        self.assertEqual(url, "https://wallet.example.com/v2/gateway/api/create")
        self.assertEqual(body["amount"], "100000")
        self.assertEqual(body["partnerCode"], "MOMOTEST")
        self.assertTrue(signing.verify_wallet(body, signing.WALLET_CREATE_FIELDS, "test-wallet-secret"))
        self.assertEqual(post.call_args.kwargs["timeout"], 15.0)

    def test_error_code_without_pay_url(self):
        data = {"errorCode": 11, "errorMessage": "Access denied"}
        with patch("payments.integrations.base.requests.post", return_value=_response(data)):
            resp = self._create()
        self.assertFalse(resp.ok)
        self.assertEqual(resp.error_code, "11")
        self.assertEqual(resp.error_message, "Access denied")

    def test_result_code_is_used_when_error_code_missing(self):
        data = {"resultCode": 22, "message": "Amount out of range"}
        with patch("payments.integrations.base.requests.post", return_value=_response(data)):
            resp = self._create()
        self.assertEqual(resp.error_code, "22")

    def test_malformed_response_raises(self):
        with patch("payments.integrations.base.requests.post", return_value=_response({"hello": "world"})):
            with self.assertRaises(GatewayError):
                self._create()

    def test_non_json_response_raises(self):
        with patch("payments.integrations.base.requests.post", return_value=_response(ValueError("bad"), 502, "<html>")):
            with self.assertRaises(GatewayError):
                self._create()

    def test_transport_error_raises(self):
        with patch("payments.integrations.base.requests.post", side_effect=requests.ConnectionError("down")):
            with self.assertRaises(GatewayError):
                self._create()

    def test_non_positive_amount_never_hits_network(self):
        with patch("payments.integrations.base.requests.post") as post:
            with self.assertRaises(GatewayError):
                self._create(amount=Decimal("0"))
        post.assert_not_called()

    def test_fractional_amount_is_not_truncated(self):
        with patch("payments.integrations.base.requests.post") as post:
            with self.assertRaises(GatewayError):
                self._create(amount=Decimal("100000.50"))
        post.assert_not_called()

    def test_ipn_signature_uses_configured_credentials(self):
        payload = {"orderId": "MOMO1", "amount": "100000", "resultCode": 0, "partnerCode": "spoofed"}
        payload["signature"] = wallet.sign_ipn(payload)
        self.assertTrue(wallet.verify_ipn(payload))
        with override_settings(WALLET_GATEWAY={"ACCESS_KEY": "x", "PARTNER_CODE": "MOMOTEST", "SECRET_KEY": "test-wallet-secret"}):
            self.assertFalse(wallet.verify_ipn(payload))


class BankPaymentUrlTests(SimpleTestCase):
    NOW = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    def _params(self, url):
        parts = urlsplit(url)
        return f"{parts.scheme}://{parts.netloc}{parts.path}", dict(parse_qsl(parts.query))

    def test_builds_signed_url(self):
        url = bank.create_payment_url(
            amount=Decimal("150000"), ip_addr="10.0.0.1", order_id="VNP1", bank_code="NCB", now=self.NOW
        )
        base, params = self._params(url)
        self.assertEqual(base, "https://bank.example.com/paymentv2/vpcpay.html")
        self.assertEqual(params["vnp_Amount"], "15000000")
        self.assertEqual(params["vnp_TxnRef"], "VNP1")
        self.assertEqual(params["vnp_TmnCode"], "TESTTMN1")
        self.assertEqual(params["vnp_BankCode"], "NCB")
        self.assertEqual(params["vnp_CreateDate"], "20240102100405")
        self.assertTrue(bank.verify(params))

    def test_bank_code_is_optional(self):
        _, params = self._params(bank.create_payment_url(amount=1000, ip_addr="10.0.0.1", order_id="VNP2", now=self.NOW))
        self.assertNotIn("vnp_BankCode", params)

    def test_rejects_non_positive_amount(self):
        with self.assertRaises(GatewayError):
            bank.create_payment_url(amount=0, ip_addr="10.0.0.1", order_id="VNP3")

    def test_minor_units(self):
        self.assertEqual(bank.to_minor(Decimal("150000.00")), 15000000)
        self.assertEqual(bank.from_minor("15000001"), Decimal("150000.01"))
        with self.assertRaises(ValueError):
            bank.from_minor("abc")


class BankApiTests(SimpleTestCase):
    NOW = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    def test_query_signs_pipe_joined_fields(self):
        with patch("payments.integrations.base.requests.post", return_value=_response({"vnp_ResponseCode": "00"})) as post:
            data = bank.query_transaction("VNP1", "20240102100000", now=self.NOW)
        self.assertEqual(data["vnp_ResponseCode"], "00")
        body = post.call_args.kwargs["json"]
        self.assertEqual(body["vnp_Command"], "querydr")
        expected = signing.sign_pipe(
            [
                body["vnp_RequestId"], body["vnp_Version"], body["vnp_Command"], body["vnp_TmnCode"],
                body["vnp_TxnRef"], body["vnp_TransactionDate"], body["vnp_CreateDate"], body["vnp_IpAddr"],
                body["vnp_OrderInfo"],
            ],
            "test-bank-secret",
        )
        self.assertEqual(body["vnp_SecureHash"], expected)

    def test_query_response_signature(self):
        data = {"vnp_ResponseCode": "00", "vnp_TxnRef": "VNP1", "vnp_Amount": "100000", "vnp_TransactionStatus": "00"}
        data["vnp_SecureHash"] = bank.sign_query_response(data)
        self.assertTrue(bank.verify_query_response(data))
        self.assertFalse(bank.verify_query_response({**data, "vnp_Amount": "100100"}))
        self.assertFalse(bank.verify_query_response({k: v for k, v in data.items() if k != "vnp_SecureHash"}))

    def test_refund_rejects_unknown_type(self):
        with self.assertRaises(GatewayError):
            bank.refund_transaction(
                order_id="VNP1", transaction_date="20240102100000", amount=1000, transaction_type="05", user="admin"
            )

    def test_refund_sends_minor_amount(self):
        with patch("payments.integrations.base.requests.post", return_value=_response({"vnp_ResponseCode": "00"})) as post:
            bank.refund_transaction(
                order_id="VNP1", transaction_date="20240102100000", amount=Decimal("1000"),
                transaction_type="02", user="admin", now=self.NOW,
            )
        body = post.call_args.kwargs["json"]
        self.assertEqual(body["vnp_Command"], "refund")
        self.assertEqual(body["vnp_Amount"], 100000)
        self.assertEqual(body["vnp_CreateBy"], "admin")
