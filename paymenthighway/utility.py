"""
General helpers shared by the signer and the API connection.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

import httpx

NameValuePair = Tuple[str, Optional[str]]

KeyValues = Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]


def create_request_id() -> str:
    """
    Create a random request identifier.

    Returns:
        UUID4 string, e.g. "f47ac10b-58cc-4372-a567-0e02b2c3d479"
    """
    return str(uuid.uuid4())


def get_utc_timestamp() -> str:
    """
    Request timestamp in ISO 8601 combined date and time in UTC.

    Returns:
        Timestamp string, e.g. "2014-09-18T10:32:59Z"
    """
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def map_to_list(mapping: Mapping[str, Optional[str]]) -> List[NameValuePair]:
    """Convert a mapping to a list of name/value pairs."""
    return [(name, value) for name, value in mapping.items()]


def _unbox_request_value(value: Any) -> Optional[str]:
    # Request maps from web frameworks hold lists of values; only the first is used.
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        if not value:
            return None
        value = value[0]
    return str(value)


def request_map_to_list(mapping: Mapping[str, Any]) -> List[NameValuePair]:
    """
    Convert a request parameter map to a list of name/value pairs.

    Args:
        mapping: Map of name to string, or a raw request map of name to a
            list of strings (in which case only the first is used)

    Returns:
        List of (name, value) tuples
    """
    return [(name, _unbox_request_value(value)) for name, value in mapping.items()]


def to_name_value_pairs(key_values: Optional[KeyValues]) -> List[NameValuePair]:
    """
    Normalize any supported parameter collection into a list of pairs.

    Accepts a sequence of (name, value) tuples, a plain mapping, or a
    multi-valued header object (httpx.Headers). Header names keep the case
    they were sent with. Duplicated names are kept in their original order.
    """
    if key_values is None:
        return []
    if isinstance(key_values, httpx.Headers):
        encoding = key_values.encoding
        return [(name.decode(encoding), value.decode(encoding)) for name, value in key_values.raw]
    if hasattr(key_values, "multi_items"):
        return [(name, value) for name, value in key_values.multi_items()]
    if isinstance(key_values, Mapping):
        return request_map_to_list(key_values)

    pairs = []
    for item in key_values:
        name, value = item
        pairs.append((name, value))
    return pairs
