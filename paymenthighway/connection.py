"""
Payment Highway Payment API connection.

Builds signed requests for the transaction, tokenization and report
endpoints, validates the signature of every response and maps the JSON
body to the matching response object.
"""

import logging
import uuid
from typing import List, Optional, Type, TypeVar, Union

import httpx

from paymenthighway.exceptions import (
    AuthenticationError,
    ErrorResponseError,
    HttpResponseError,
)
from paymenthighway.json_codec import create_transaction_json, map_response
from paymenthighway.models import (
    CommitTransactionRequest,
    CommitTransactionResponse,
    DebitTransactionResponse,
    InitTransactionResponse,
    OrderSearchResponse,
    ReconciliationReportResponse,
    ReportResponse,
    Request,
    Response,
    RevertTransactionRequest,
    TokenizationResponse,
    TransactionRequest,
    TransactionResponse,
    TransactionResultResponse,
    TransactionStatusResponse,
)
from paymenthighway.secure_signer import SIGNATURE_PARAMETER, SecureSigner
from paymenthighway.utility import NameValuePair, create_request_id, get_utc_timestamp

logger = logging.getLogger(__name__)

USER_AGENT = "PaymentHighway Python Lib"
CONTENT_TYPE = "application/json; charset=utf-8"
METHOD_POST = "POST"
METHOD_GET = "GET"
SPH_API_VERSION = "20160630"

R = TypeVar("R", bound=Response)

TransactionId = Union[uuid.UUID, str]


class PaymentAPIConnection:
    """
    Client for the Payment Highway Payment API.

    Usage:
        with PaymentAPIConnection(
            "https://v1-hub-staging.sph-test-solinor.com",
            "testKey",
            "testSecret",
            "test",
            "test_merchantId",
        ) as conn:
            init = conn.init_transaction_handle()
            request = TransactionRequest(amount="9999", currency="EUR", token=Token(card_token))
            debit = conn.debit_transaction(init.id, request)
    """

    def __init__(
        self,
        service_url: str,
        signature_key_id: str,
        signature_secret: str,
        account: str,
        merchant: str,
        check_response_status: bool = False,
        http_client: Optional[httpx.Client] = None,
        timeout: float = 60.0,
    ):
        """
        Args:
            service_url: Base URL of the API, without a trailing path
            signature_key_id: Signature key identifier
            signature_secret: Signature secret
            account: Value of the sph-account header
            merchant: Value of the sph-merchant header
            check_response_status: If True, raise ErrorResponseError when a
                response result code is not "100"
            http_client: Client to send requests with; one is created on
                first use when omitted
            timeout: Timeout in seconds for the created client
        """
        self.service_url = service_url.rstrip("/")
        self.account = account
        self.merchant = merchant
        self.check_response_status = check_response_status
        self.timeout = timeout
        self._signer = SecureSigner(signature_key_id, signature_secret)
        self._http_client = http_client
        self._owns_client = http_client is None

    def __enter__(self) -> "PaymentAPIConnection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def set_http_client(self, http_client: httpx.Client) -> None:
        """Use an externally managed client; close() will not close it."""
        self._http_client = http_client
        self._owns_client = False

    def close(self) -> None:
        if self._http_client is not None and self._owns_client:
            self._http_client.close()
            self._http_client = None

    # Transactions

    def init_transaction_handle(self) -> InitTransactionResponse:
        response = self._execute_post("/transaction", self._create_name_value_pairs())
        return self._map_response(response, InitTransactionResponse)

    def debit_transaction(
        self, transaction_id: TransactionId, request: TransactionRequest
    ) -> DebitTransactionResponse:
        uri = f"/transaction/{transaction_id}/debit"
        response = self._execute_post(uri, self._create_name_value_pairs(), request)
        return self._map_response(response, DebitTransactionResponse)

    def credit_transaction(
        self, transaction_id: TransactionId, request: TransactionRequest
    ) -> TransactionResponse:
        uri = f"/transaction/{transaction_id}/credit"
        response = self._execute_post(uri, self._create_name_value_pairs(), request)
        return self._map_response(response, TransactionResponse)

    def revert_transaction(
        self, transaction_id: TransactionId, request: RevertTransactionRequest
    ) -> TransactionResponse:
        uri = f"/transaction/{transaction_id}/revert"
        response = self._execute_post(uri, self._create_name_value_pairs(), request)
        return self._map_response(response, TransactionResponse)

    def commit_transaction(
        self, transaction_id: TransactionId, request: CommitTransactionRequest
    ) -> CommitTransactionResponse:
        uri = f"/transaction/{transaction_id}/commit"
        response = self._execute_post(uri, self._create_name_value_pairs(), request)
        return self._map_response(response, CommitTransactionResponse)

    def transaction_result(self, transaction_id: TransactionId) -> TransactionResultResponse:
        uri = f"/transaction/{transaction_id}/result"
        response = self._execute_get(uri, self._create_name_value_pairs())
        return self._map_response(response, TransactionResultResponse)

    def transaction_status(self, transaction_id: TransactionId) -> TransactionStatusResponse:
        uri = f"/transaction/{transaction_id}"
        response = self._execute_get(uri, self._create_name_value_pairs())
        return self._map_response(response, TransactionStatusResponse)

    def search_orders(self, order: str) -> OrderSearchResponse:
        uri = f"/transactions/?order={order}"
        response = self._execute_get(uri, self._create_name_value_pairs())
        return self._map_response(response, OrderSearchResponse)

    # Tokenization and reports

    def tokenization(self, tokenization_id: TransactionId) -> TokenizationResponse:
        uri = f"/tokenization/{tokenization_id}"
        response = self._execute_get(uri, self._create_name_value_pairs())
        return self._map_response(response, TokenizationResponse)

    def fetch_report(self, date: str) -> ReportResponse:
        """
        Fetch the daily batch report.

        Args:
            date: Report date as "yyyyMMdd"
        """
        uri = f"/report/batch/{date}"
        response = self._execute_get(uri, self._create_name_value_pairs())
        return self._map_response(response, ReportResponse)

    def fetch_reconciliation_report(
        self, date: str, use_date_processed: bool = False
    ) -> ReconciliationReportResponse:
        """
        Fetch the reconciliation report.

        Args:
            date: Report date as "yyyyMMdd"
            use_date_processed: Select transactions by processing date
                instead of settlement date
        """
        flag = "true" if use_date_processed else "false"
        uri = f"/report/reconciliation/{date}?use-date-processed={flag}"
        response = self._execute_get(uri, self._create_name_value_pairs())
        return self._map_response(response, ReconciliationReportResponse)

    # Request plumbing

    def _create_name_value_pairs(self) -> List[NameValuePair]:
        return [
            ("sph-api-version", SPH_API_VERSION),
            ("sph-account", self.account),
            ("sph-merchant", self.merchant),
            ("sph-timestamp", get_utc_timestamp()),
            ("sph-request-id", create_request_id()),
        ]

    def add_headers(self, name_value_pairs: List[NameValuePair]) -> List[NameValuePair]:
        """Return the full header list: fixed headers followed by name_value_pairs."""
        headers = [("User-Agent", USER_AGENT), ("Content-Type", CONTENT_TYPE)]
        headers.extend(name_value_pairs)
        return headers

    def _get_http_client(self) -> httpx.Client:
        if self._http_client is None:
            self._http_client = httpx.Client(timeout=self.timeout)
            self._owns_client = True
        return self._http_client

    def _execute_get(self, request_uri: str, name_value_pairs: List[NameValuePair]) -> str:
        return self._execute(METHOD_GET, request_uri, name_value_pairs, None)

    def _execute_post(
        self,
        request_uri: str,
        name_value_pairs: List[NameValuePair],
        request: Optional[Request] = None,
    ) -> str:
        return self._execute(METHOD_POST, request_uri, name_value_pairs, request)

    def _execute(
        self,
        method: str,
        request_uri: str,
        name_value_pairs: List[NameValuePair],
        request: Optional[Request],
    ) -> str:
        body = create_transaction_json(request)

        signature = self._signer.create_signature(method, request_uri, name_value_pairs, body)
        name_value_pairs.append((SIGNATURE_PARAMETER, signature))

        logger.debug("Sending %s %s", method, request_uri)
        http_response = self._get_http_client().request(
            method,
            self.service_url + request_uri,
            headers=self.add_headers(name_value_pairs),
            content=body.encode("utf-8") if request is not None else None,
        )

        return self._handle_response(method, request_uri, http_response)

    def _handle_response(self, method: str, request_uri: str, http_response: httpx.Response) -> str:
        status = http_response.status_code
        content = http_response.text

        if 200 <= status < 300:
            if self._signer.validate_signature(method, request_uri, http_response.headers, content):
                return content
            logger.warning("Response signature mismatch for %s %s", method, request_uri)
            raise AuthenticationError("Authentication HMAC mismatch")

        if status == 401:
            raise AuthenticationError(content)

        raise HttpResponseError(status, http_response.reason_phrase)

    def _map_response(self, response_string: str, response_cls: Type[R]) -> R:
        response = map_response(response_string, response_cls)

        if self.check_response_status:
            result = response.result
            if result is None or not result.is_ok:
                raise ErrorResponseError(result)

        return response
