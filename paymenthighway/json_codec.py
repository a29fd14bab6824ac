"""
JSON encoding of request bodies and decoding of API responses.
"""

import json
from typing import Optional, Type, TypeVar

from paymenthighway.models import Request, Response

R = TypeVar("R", bound=Response)


def create_transaction_json(request: Optional[Request]) -> str:
    """
    Serialize a request object to the JSON text that is both signed and sent.

    Args:
        request: Request object, or None for requests without a body

    Returns:
        Compact JSON string, "" when request is None
    """
    if request is None:
        return ""
    return json.dumps(request.to_dict(), separators=(",", ":"), ensure_ascii=False)


def map_response(response_string: str, response_cls: Type[R]) -> R:
    """
    Parse a JSON response into the given response class.

    Raises:
        ValueError: If the response is not a JSON object
    """
    data = json.loads(response_string)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return response_cls.from_dict(data)
