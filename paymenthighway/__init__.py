"""
Payment Highway client library.

Signs requests to the Payment Highway Payment API with the SPH1 HMAC-SHA256
scheme, validates signed responses and form redirects, and maps JSON
responses to typed result objects.

Basic Usage (signing):
    from paymenthighway import SecureSigner

    signer = SecureSigner("testKey", "testSecret")

    # Client: sign a request
    signature = signer.create_signature(
        "POST",
        "/transaction",
        [("sph-account", "test"), ("sph-merchant", "test_merchantId")],
        "",
    )

    # Merchant site: validate the redirect back from the payment form
    is_valid = signer.validate_form_redirect(request.GET)

API Usage:
    from paymenthighway import PaymentAPIConnection, TransactionRequest, Token

    with PaymentAPIConnection(service_url, key_id, secret, account, merchant) as conn:
        init = conn.init_transaction_handle()
        debit = conn.debit_transaction(
            init.id,
            TransactionRequest(amount="1990", currency="EUR", token=Token(card_token)),
        )

Configuration:
    from paymenthighway import PaymentHighwayConfig

    config = PaymentHighwayConfig.from_properties("config.properties")
    conn = config.create_connection(check_response_status=True)
"""

from paymenthighway.secure_signer import (
    SIGNATURE_SCHEME,
    Credential,
    SecureSigner,
    build_string_to_sign,
    concatenate_key_values,
    find_signature,
    get_sph_parameters,
)

from paymenthighway.utility import (
    create_request_id,
    get_utc_timestamp,
    map_to_list,
    request_map_to_list,
)

from paymenthighway.exceptions import (
    AuthenticationError,
    ErrorResponseError,
    HttpResponseError,
    PaymentHighwayError,
)

from paymenthighway.models import (
    Card,
    CommitTransactionRequest,
    CommitTransactionResponse,
    Customer,
    DebitTransactionResponse,
    InitTransactionResponse,
    OrderSearchResponse,
    ReconciliationReportResponse,
    ReportResponse,
    Result,
    RevertTransactionRequest,
    Token,
    TokenizationResponse,
    TransactionRequest,
    TransactionResponse,
    TransactionResultResponse,
    TransactionStatusResponse,
)

from paymenthighway.connection import PaymentAPIConnection
from paymenthighway.config import PaymentHighwayConfig

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Signing
    "SIGNATURE_SCHEME",
    "Credential",
    "SecureSigner",
    "build_string_to_sign",
    "concatenate_key_values",
    "find_signature",
    "get_sph_parameters",
    # Helpers
    "create_request_id",
    "get_utc_timestamp",
    "map_to_list",
    "request_map_to_list",
    # Exceptions
    "AuthenticationError",
    "ErrorResponseError",
    "HttpResponseError",
    "PaymentHighwayError",
    # Requests
    "Card",
    "CommitTransactionRequest",
    "Customer",
    "RevertTransactionRequest",
    "Token",
    "TransactionRequest",
    # Responses
    "CommitTransactionResponse",
    "DebitTransactionResponse",
    "InitTransactionResponse",
    "OrderSearchResponse",
    "ReconciliationReportResponse",
    "ReportResponse",
    "Result",
    "TokenizationResponse",
    "TransactionResponse",
    "TransactionResultResponse",
    "TransactionStatusResponse",
    # Connection
    "PaymentAPIConnection",
    "PaymentHighwayConfig",
]
