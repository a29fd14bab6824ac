"""
Unit tests for the Payment API connection.

A fake Payment Highway service runs on httpx.MockTransport: it checks the
signature of each request and signs its responses with the same scheme.
"""

import json
import unittest
import uuid

import httpx
import pytest

from paymenthighway.connection import SPH_API_VERSION, PaymentAPIConnection
from paymenthighway.exceptions import (
    AuthenticationError,
    ErrorResponseError,
    HttpResponseError,
)
from paymenthighway.models import (
    Card,
    CommitTransactionRequest,
    Customer,
    RevertTransactionRequest,
    Token,
    TransactionRequest,
)
from paymenthighway.secure_signer import SecureSigner

SERVICE_URL = "https://v1-hub-staging.sph-test-solinor.com"
KEY_ID = "testKey"
SECRET = "testSecret"
ACCOUNT = "test"
MERCHANT = "test_merchantId"

OK_RESULT = {"code": 100, "message": "OK"}


class FakePaymentHighway:
    """Records requests and answers them with signed JSON responses."""

    def __init__(self, signer=None):
        self.signer = signer or SecureSigner(KEY_ID, SECRET)
        self.response_signer = self.signer
        self.requests = []
        self.routes = {}
        self.status_code = 200
        self.sign_responses = True

    def route(self, method, uri, payload):
        self.routes[(method, uri)] = payload

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        uri = request.url.raw_path.decode("ascii")
        body = request.content.decode("utf-8")

        if not self.signer.validate_signature(request.method, uri, request.headers, body):
            return httpx.Response(401, text="Authentication HMAC mismatch")

        if self.status_code != 200:
            return httpx.Response(self.status_code, text="error")

        payload = self.routes.get((request.method, uri), {"result": OK_RESULT})
        content = json.dumps(payload)

        headers = [
            ("sph-account", ACCOUNT),
            ("sph-merchant", MERCHANT),
            ("sph-request-id", request.headers["sph-request-id"]),
            ("sph-timestamp", "2024-01-01T12:00:00Z"),
            ("Content-Type", "application/json; charset=utf-8"),
        ]
        if self.sign_responses:
            headers.append(("signature", self.response_signer.create_signature(request.method, uri, headers, content)))

        return httpx.Response(200, headers=headers, content=content.encode("utf-8"))


class ConnectionTestCase(unittest.TestCase):
    """Base class wiring a connection to the fake service."""

    check_response_status = False

    def setUp(self):
        self.service = FakePaymentHighway()
        self.http_client = httpx.Client(transport=httpx.MockTransport(self.service))
        self.conn = PaymentAPIConnection(
            SERVICE_URL,
            KEY_ID,
            SECRET,
            ACCOUNT,
            MERCHANT,
            check_response_status=self.check_response_status,
            http_client=self.http_client,
        )
        self.transaction_id = uuid.UUID("a8f2d4c7-1b3e-4d5f-9a6b-7c8d9e0f1a2b")
        self.card = Card("4153013999700024", "2027", "11", "024")

    def tearDown(self):
        self.conn.close()
        self.http_client.close()

    def last_request(self) -> httpx.Request:
        return self.service.requests[-1]


class TestRequestBuilding(ConnectionTestCase):
    """Test headers, URIs and bodies of outgoing requests."""

    def test_init_transaction_headers(self):
        """Test every request carries the sph headers and a valid signature."""
        self.service.route("POST", "/transaction", {"id": str(self.transaction_id), "result": OK_RESULT})

        response = self.conn.init_transaction_handle()

        request = self.last_request()
        self.assertEqual(request.method, "POST")
        self.assertEqual(str(request.url), SERVICE_URL + "/transaction")
        self.assertEqual(request.headers["sph-api-version"], SPH_API_VERSION)
        self.assertEqual(request.headers["sph-account"], ACCOUNT)
        self.assertEqual(request.headers["sph-merchant"], MERCHANT)
        self.assertRegex(request.headers["sph-timestamp"], r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z$")
        self.assertEqual(str(uuid.UUID(request.headers["sph-request-id"])), request.headers["sph-request-id"])
        self.assertEqual(request.headers["User-Agent"], "PaymentHighway Python Lib")
        self.assertEqual(request.headers["Content-Type"], "application/json; charset=utf-8")
        self.assertRegex(request.headers["signature"], r"^SPH1 testKey [0-9a-f]{64}$")
        self.assertEqual(request.content, b"")

        self.assertEqual(response.result.code, "100")
        self.assertEqual(response.result.message, "OK")
        self.assertEqual(response.id, self.transaction_id)

    def test_add_headers(self):
        """Test add_headers prepends the fixed headers to the given pairs."""
        pairs = [
            ("sph-account", "test"),
            ("sph-amount", "9990"),
            ("sph-timestamp", "2024-01-01T12:00:00Z"),
            ("sph-request-id", str(uuid.uuid4())),
        ]
        signature = SecureSigner(KEY_ID, SECRET).create_signature("POST", "/transaction", pairs, "")
        pairs.append(("signature", signature))

        headers = self.conn.add_headers(pairs)

        self.assertEqual(len(headers), 7)
        self.assertEqual(headers[0], ("User-Agent", "PaymentHighway Python Lib"))

    def test_debit_transaction_body_is_signed(self):
        """Test the JSON body is sent and covered by the signature."""
        request = TransactionRequest(
            amount="9999",
            currency="EUR",
            card=self.card,
            customer=Customer("83.145.208.186"),
            commit=True,
        )
        self.service.route(
            "POST",
            f"/transaction/{self.transaction_id}/debit",
            {"filing_code": "180101000001", "result": OK_RESULT},
        )

        response = self.conn.debit_transaction(self.transaction_id, request)

        sent = self.last_request()
        self.assertEqual(str(sent.url), f"{SERVICE_URL}/transaction/{self.transaction_id}/debit")
        self.assertEqual(
            json.loads(sent.content),
            {
                "amount": "9999",
                "currency": "EUR",
                "card": {"pan": "4153013999700024", "expiry_year": "2027", "expiry_month": "11", "cvc": "024"},
                "blocking": True,
                "customer": {"network_address": "83.145.208.186"},
                "commit": True,
            },
        )
        self.assertEqual(response.filing_code, "180101000001")

    def test_transaction_endpoints(self):
        """Test the URI and method used by each transaction operation."""
        token_request = TransactionRequest(amount="1000", currency="EUR", token=Token(uuid.uuid4()))
        tid = self.transaction_id

        self.conn.credit_transaction(tid, token_request)
        self.assertEqual((self.last_request().method, self.last_request().url.path), ("POST", f"/transaction/{tid}/credit"))

        self.conn.revert_transaction(tid, RevertTransactionRequest(amount="500"))
        self.assertEqual((self.last_request().method, self.last_request().url.path), ("POST", f"/transaction/{tid}/revert"))
        self.assertEqual(json.loads(self.last_request().content), {"amount": "500", "blocking": True})

        self.conn.commit_transaction(tid, CommitTransactionRequest(amount="1000", currency="EUR"))
        self.assertEqual((self.last_request().method, self.last_request().url.path), ("POST", f"/transaction/{tid}/commit"))

        self.conn.transaction_result(tid)
        self.assertEqual((self.last_request().method, self.last_request().url.path), ("GET", f"/transaction/{tid}/result"))

        self.conn.transaction_status(tid)
        self.assertEqual((self.last_request().method, self.last_request().url.path), ("GET", f"/transaction/{tid}"))

    def test_get_requests_have_no_body(self):
        """Test GET requests are signed with an empty body."""
        self.conn.transaction_status(self.transaction_id)

        self.assertEqual(self.last_request().method, "GET")
        self.assertEqual(self.last_request().content, b"")

    def test_search_orders_uri(self):
        """Test the order search query string is part of the signed URI."""
        self.service.route(
            "GET",
            "/transactions/?order=1000123A",
            {
                "transactions": [{"id": str(self.transaction_id), "current_amount": "9999", "status": {"state": "ok", "code": 4000}}],
                "result": OK_RESULT,
            },
        )

        response = self.conn.search_orders("1000123A")

        self.assertEqual(len(response.transactions), 1)
        self.assertEqual(response.transactions[0].id, self.transaction_id)
        self.assertEqual(response.transactions[0].status.state, "ok")

    def test_tokenization(self):
        """Test tokenization maps the card token and card details."""
        tokenization_id = uuid.uuid4()
        card_token = uuid.uuid4()
        self.service.route(
            "GET",
            f"/tokenization/{tokenization_id}",
            {
                "card_token": str(card_token),
                "card": {"type": "Visa", "partial_pan": "0024", "expire_year": "2027", "expire_month": "11", "bin": "415301"},
                "customer": {"network_address": "83.145.208.186", "country_code": "FI"},
                "cardholder_authentication": "attempted",
                "result": OK_RESULT,
            },
        )

        response = self.conn.tokenization(tokenization_id)

        self.assertEqual(response.card_token, card_token)
        self.assertEqual(response.card.expire_year, "2027")
        self.assertEqual(response.card.bin, "415301")
        self.assertEqual(response.customer.country_code, "FI")
        self.assertEqual(response.cardholder_authentication, "attempted")

    def test_fetch_reports(self):
        """Test report URIs including the use-date-processed flag."""
        self.service.route(
            "GET",
            "/report/batch/20240101",
            {"settlements": [{"batch": "000123"}], "result": OK_RESULT},
        )
        report = self.conn.fetch_report("20240101")
        self.assertEqual(report.settlements, [{"batch": "000123"}])

        self.conn.fetch_reconciliation_report("20240101")
        self.assertEqual(self.last_request().url.raw_path, b"/report/reconciliation/20240101?use-date-processed=false")

        self.service.route(
            "GET",
            "/report/reconciliation/20240101?use-date-processed=true",
            {
                "reconciliation_settlements": [{"net_amount": 1000}],
                "commission_settlements": [],
                "unallocated_transactions": [],
                "unallocated_transactions_count": 0,
                "result": OK_RESULT,
            },
        )
        reconciliation = self.conn.fetch_reconciliation_report("20240101", use_date_processed=True)
        self.assertEqual(reconciliation.reconciliation_settlements, [{"net_amount": 1000}])
        self.assertEqual(reconciliation.unallocated_transactions_count, 0)

    def test_request_id_unique_per_request(self):
        """Test each request gets a fresh request id."""
        self.conn.transaction_status(self.transaction_id)
        self.conn.transaction_status(self.transaction_id)

        ids = {r.headers["sph-request-id"] for r in self.service.requests}
        self.assertEqual(len(ids), 2)


class TestResponseValidation(ConnectionTestCase):
    """Test validation of response signatures and statuses."""

    def test_unsigned_response_rejected(self):
        """Test a response without signature raises AuthenticationError."""
        self.service.sign_responses = False

        with self.assertRaises(AuthenticationError) as ctx:
            self.conn.init_transaction_handle()

        self.assertIn("Authentication HMAC mismatch", str(ctx.exception))

    def test_response_signed_with_other_secret(self):
        """Test a response signed with another secret is rejected."""
        self.service.response_signer = SecureSigner(KEY_ID, "otherSecret")

        with self.assertRaises(AuthenticationError) as ctx:
            self.conn.init_transaction_handle()

        self.assertIn("Authentication HMAC mismatch", str(ctx.exception))

    def test_wrong_secret_rejected_by_service(self):
        """Test a 401 from the service raises AuthenticationError with the body."""
        conn = PaymentAPIConnection(SERVICE_URL, KEY_ID, "wrongSecret", ACCOUNT, MERCHANT, http_client=self.http_client)

        with pytest.raises(AuthenticationError, match="Authentication HMAC mismatch"):
            conn.init_transaction_handle()

    def test_server_error(self):
        """Test other error statuses raise HttpResponseError."""
        self.service.status_code = 500

        with self.assertRaises(HttpResponseError) as ctx:
            self.conn.init_transaction_handle()

        self.assertEqual(ctx.exception.status_code, 500)

    def test_error_result_returned_without_check(self):
        """Test a failed result is returned as-is when status checks are off."""
        self.service.route(
            "POST",
            "/transaction",
            {"result": {"code": 200, "message": "Authorization failed"}},
        )

        response = self.conn.init_transaction_handle()

        self.assertEqual(response.result.message, "Authorization failed")


class TestResponseStatusCheck(ConnectionTestCase):
    """Test the result-status check."""

    check_response_status = True

    def test_ok_result_passes(self):
        """Test code 100 passes the check."""
        self.service.route("POST", "/transaction", {"id": str(self.transaction_id), "result": {"code": "100", "message": "OK"}})

        response = self.conn.init_transaction_handle()

        self.assertTrue(response.result.is_ok)

    def test_numeric_ok_result_passes(self):
        """Test a numeric 100 code passes the check."""
        self.service.route("POST", "/transaction", {"result": {"code": 100, "message": "OK"}})

        self.assertTrue(self.conn.init_transaction_handle().result.is_ok)

    def test_error_result_raises(self):
        """Test a non-100 code raises ErrorResponseError carrying the result."""
        self.service.route(
            "POST",
            f"/transaction/{self.transaction_id}/revert",
            {"result": {"code": "211", "message": "Revert failed: Insufficient balance"}},
        )

        with self.assertRaises(ErrorResponseError) as ctx:
            self.conn.revert_transaction(self.transaction_id, RevertTransactionRequest(amount="1001"))

        self.assertEqual(ctx.exception.result.code, "211")
        self.assertEqual(str(ctx.exception), "error code 211 (Revert failed: Insufficient balance)")

    def test_missing_result_raises(self):
        """Test a response without result raises ErrorResponseError."""
        self.service.route("GET", f"/transaction/{self.transaction_id}", {"transaction": {}})

        with self.assertRaises(ErrorResponseError) as ctx:
            self.conn.transaction_status(self.transaction_id)

        self.assertIsNone(ctx.exception.result)


class TestConnectionLifecycle(unittest.TestCase):
    """Test client ownership and closing."""

    def test_context_manager_closes_owned_client(self):
        """Test the lazily created client is closed on exit."""
        with PaymentAPIConnection(SERVICE_URL, KEY_ID, SECRET, ACCOUNT, MERCHANT) as conn:
            client = conn._get_http_client()
            self.assertFalse(client.is_closed)

        self.assertTrue(client.is_closed)

    def test_external_client_left_open(self):
        """Test an injected client is not closed by the connection."""
        client = httpx.Client(transport=httpx.MockTransport(FakePaymentHighway()))
        conn = PaymentAPIConnection(SERVICE_URL, KEY_ID, SECRET, ACCOUNT, MERCHANT)
        conn.set_http_client(client)

        conn.close()

        self.assertFalse(client.is_closed)
        client.close()

    def test_trailing_slash_in_service_url(self):
        """Test a trailing slash in the service URL doesn't double up."""
        service = FakePaymentHighway()
        with httpx.Client(transport=httpx.MockTransport(service)) as client:
            conn = PaymentAPIConnection(SERVICE_URL + "/", KEY_ID, SECRET, ACCOUNT, MERCHANT, http_client=client)
            conn.init_transaction_handle()

        self.assertEqual(str(service.requests[0].url), SERVICE_URL + "/transaction")


if __name__ == "__main__":
    unittest.main()
