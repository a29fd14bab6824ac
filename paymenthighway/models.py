"""
Request and response objects for the Payment Highway Payment API.

Requests are plain dataclasses serialized in field order with ``None``
fields left out. Responses keep the decoded JSON in ``raw`` next to the
typed fields, so values this library doesn't map are still reachable.
"""

import uuid
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional

RESULT_CODE_OK = "100"


def _to_uuid(value: Any) -> Optional[uuid.UUID]:
    if value is None or isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value))


def _drop_none(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _drop_none(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_drop_none(v) for v in value]
    if isinstance(value, uuid.UUID):
        return str(value)
    return value


class Request:
    """Base class for request bodies."""

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none(asdict(self))


@dataclass
class Token:
    """Tokenized card; ``id`` is the card token."""

    id: uuid.UUID
    cvc: Optional[str] = None


@dataclass
class Card:
    pan: str
    expiry_year: str
    expiry_month: str
    cvc: Optional[str] = None


@dataclass
class Customer:
    network_address: str


@dataclass
class TransactionRequest(Request):
    """
    Debit or credit request paid either with a card token or with raw card data.

    Args:
        amount: Amount in the currency's minor unit as a string, e.g. "9999" for 99.99 EUR
        currency: ISO 4217 code
        token: Card token from tokenization
        card: Card details
        blocking: Whether the API call waits for the acquirer
        order: Merchant order reference
        customer: Customer details (network address)
        commit: Whether the debit is committed immediately

    Raises:
        ValueError: If neither or both of token and card are given
    """

    amount: str
    currency: str
    token: Optional[Token] = None
    card: Optional[Card] = None
    blocking: bool = True
    order: Optional[str] = None
    customer: Optional[Customer] = None
    commit: Optional[bool] = None

    def __post_init__(self):
        if (self.token is None) == (self.card is None):
            raise ValueError("Exactly one of token or card is required")


@dataclass
class RevertTransactionRequest(Request):
    """Revert the whole remaining balance when ``amount`` is None."""

    amount: Optional[str] = None
    blocking: bool = True


@dataclass
class CommitTransactionRequest(Request):
    amount: str
    currency: str
    blocking: bool = True


@dataclass
class Result:
    code: Optional[str] = None
    message: Optional[str] = None

    @property
    def is_ok(self) -> bool:
        return self.code == RESULT_CODE_OK

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Result"]:
        if data is None:
            return None
        code = data.get("code")
        # The API sends the code as a JSON number.
        return cls(code=None if code is None else str(code), message=data.get("message"))


@dataclass
class PartialCard:
    """Card details as returned by the API; never the full PAN."""

    type: Optional[str] = None
    partial_pan: Optional[str] = None
    expire_year: Optional[str] = None
    expire_month: Optional[str] = None
    cvc_required: Optional[str] = None
    bin: Optional[str] = None
    funding: Optional[str] = None
    category: Optional[str] = None
    country_code: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["PartialCard"]:
        if data is None:
            return None
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class CustomerInfo:
    network_address: Optional[str] = None
    country_code: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["CustomerInfo"]:
        if data is None:
            return None
        return cls(
            network_address=data.get("network_address"),
            country_code=data.get("country_code"),
        )


@dataclass
class Status:
    state: Optional[str] = None
    code: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Status"]:
        if data is None:
            return None
        return cls(state=data.get("state"), code=data.get("code"))


@dataclass
class TransactionStatus:
    id: Optional[uuid.UUID] = None
    type: Optional[str] = None
    amount: Optional[str] = None
    current_amount: Optional[str] = None
    currency: Optional[str] = None
    timestamp: Optional[str] = None
    modified: Optional[str] = None
    filing_code: Optional[str] = None
    authorization_code: Optional[str] = None
    status: Optional[Status] = None
    card: Optional[PartialCard] = None
    committed: Optional[bool] = None
    committed_amount: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["TransactionStatus"]:
        if data is None:
            return None
        return cls(
            id=_to_uuid(data.get("id")),
            type=data.get("type"),
            amount=data.get("amount"),
            current_amount=data.get("current_amount"),
            currency=data.get("currency"),
            timestamp=data.get("timestamp"),
            modified=data.get("modified"),
            filing_code=data.get("filing_code"),
            authorization_code=data.get("authorization_code"),
            status=Status.from_dict(data.get("status")),
            card=PartialCard.from_dict(data.get("card")),
            committed=data.get("committed"),
            committed_amount=data.get("committed_amount"),
        )


@dataclass
class Response:
    """Base class for API responses."""

    result: Optional[Result] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def _parse_fields(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        return {}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        return cls(
            result=Result.from_dict(data.get("result")),
            raw=data,
            **cls._parse_fields(data),
        )


@dataclass
class InitTransactionResponse(Response):
    id: Optional[uuid.UUID] = None

    @classmethod
    def _parse_fields(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        return {"id": _to_uuid(data.get("id"))}


@dataclass
class TransactionResponse(Response):
    filing_code: Optional[str] = None

    @classmethod
    def _parse_fields(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        return {"filing_code": data.get("filing_code")}


@dataclass
class DebitTransactionResponse(TransactionResponse):
    pass


@dataclass
class TransactionOutcomeResponse(Response):
    """Common shape of the commit and result responses."""

    committed: Optional[bool] = None
    committed_amount: Optional[str] = None
    card_token: Optional[uuid.UUID] = None
    card: Optional[PartialCard] = None
    customer: Optional[CustomerInfo] = None
    cardholder_authentication: Optional[str] = None
    filing_code: Optional[str] = None

    @classmethod
    def _parse_fields(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "committed": data.get("committed"),
            "committed_amount": data.get("committed_amount"),
            "card_token": _to_uuid(data.get("card_token")),
            "card": PartialCard.from_dict(data.get("card")),
            "customer": CustomerInfo.from_dict(data.get("customer")),
            "cardholder_authentication": data.get("cardholder_authentication"),
            "filing_code": data.get("filing_code"),
        }


@dataclass
class CommitTransactionResponse(TransactionOutcomeResponse):
    pass


@dataclass
class TransactionResultResponse(TransactionOutcomeResponse):
    pass


@dataclass
class TransactionStatusResponse(Response):
    transaction: Optional[TransactionStatus] = None

    @classmethod
    def _parse_fields(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        return {"transaction": TransactionStatus.from_dict(data.get("transaction"))}


@dataclass
class OrderSearchResponse(Response):
    transactions: List[TransactionStatus] = field(default_factory=list)

    @classmethod
    def _parse_fields(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "transactions": [
                TransactionStatus.from_dict(t) for t in data.get("transactions") or []
            ]
        }


@dataclass
class TokenizationResponse(Response):
    card_token: Optional[uuid.UUID] = None
    card: Optional[PartialCard] = None
    customer: Optional[CustomerInfo] = None
    cardholder_authentication: Optional[str] = None

    @classmethod
    def _parse_fields(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "card_token": _to_uuid(data.get("card_token")),
            "card": PartialCard.from_dict(data.get("card")),
            "customer": CustomerInfo.from_dict(data.get("customer")),
            "cardholder_authentication": data.get("cardholder_authentication"),
        }


@dataclass
class ReportResponse(Response):
    settlements: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def _parse_fields(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        return {"settlements": data.get("settlements") or []}


@dataclass
class ReconciliationReportResponse(Response):
    reconciliation_settlements: List[Dict[str, Any]] = field(default_factory=list)
    commission_settlements: List[Dict[str, Any]] = field(default_factory=list)
    unallocated_transactions: List[Dict[str, Any]] = field(default_factory=list)
    unallocated_transactions_count: Optional[int] = None

    @classmethod
    def _parse_fields(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "reconciliation_settlements": data.get("reconciliation_settlements") or [],
            "commission_settlements": data.get("commission_settlements") or [],
            "unallocated_transactions": data.get("unallocated_transactions") or [],
            "unallocated_transactions_count": data.get("unallocated_transactions_count"),
        }
