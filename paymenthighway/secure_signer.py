"""
SPH1 message signing for Payment Highway requests and responses.

The string to sign is::

    METHOD
    URI
    sph-name-1:value-1
    sph-name-2:value-2
    trimmed body

Only parameters prefixed "sph-" take part, sorted by name. The signature
value is "SPH1 <key id> <lowercase hex HMAC-SHA256>".
"""

import hmac
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives import hmac as crypto_hmac

from paymenthighway.utility import (
    KeyValues,
    NameValuePair,
    to_name_value_pairs,
)

logger = logging.getLogger(__name__)

SIGNATURE_SCHEME = "SPH1"
SPH_PREFIX = "sph-"
SIGNATURE_PARAMETER = "signature"


@dataclass(frozen=True)
class Credential:
    """Signature key identifier and shared secret."""

    key_id: str
    secret: str = field(repr=False)


def get_sph_parameters(key_values: KeyValues) -> List[NameValuePair]:
    """
    Return only the parameters whose name starts with "sph-" (case-insensitive).

    Args:
        key_values: Headers or request parameters, possibly including
            parameters that are not covered by the signature

    Returns:
        New list with the "sph-" parameters in their original order
    """
    return [
        (name, value)
        for name, value in to_name_value_pairs(key_values)
        if name.lower().startswith(SPH_PREFIX)
    ]


def concatenate_key_values(key_values: List[NameValuePair]) -> str:
    """Join pairs into "name:value" lines; names lower-cased, no trailing newline."""
    lines = []
    for name, value in key_values:
        lines.append(f"{name.lower()}:{'' if value is None else value}")
    return "\n".join(lines)


def build_string_to_sign(
    method: str,
    uri: str,
    key_values: KeyValues,
    body: Optional[str] = "",
) -> str:
    """
    Build the canonical message covered by the signature.

    Args:
        method: HTTP method, e.g. "GET" or "POST"
        uri: Request path with query string, "" for form redirects
        key_values: Headers or request parameters
        body: Request or response body; None is treated as ""

    Returns:
        The newline-joined canonical string
    """
    if body is None:
        body = ""

    # Plain code point ordering on the untouched names; sorted() is stable so
    # duplicated names keep their input order.
    sph_key_values = sorted(get_sph_parameters(key_values), key=lambda pair: pair[0])

    return "\n".join(
        [
            method,
            uri,
            concatenate_key_values(sph_key_values),
            trim_body(body),
        ]
    )


def trim_body(body: str) -> str:
    """Strip leading and trailing characters up to and including U+0020 (not Unicode whitespace)."""
    start = 0
    end = len(body)
    while start < end and body[start] <= " ":
        start += 1
    while end > start and body[end - 1] <= " ":
        end -= 1
    return body[start:end]


def find_signature(key_values: KeyValues) -> str:
    """
    Find the "signature" parameter (case-insensitive).

    Returns:
        The first signature value found, or "" when there is none
    """
    for name, value in to_name_value_pairs(key_values):
        if name.lower() == SIGNATURE_PARAMETER:
            return value or ""
    return ""


class SecureSigner:
    """
    Creates and validates signatures for Payment Highway messages.

    The HMAC key is prepared once at construction; every call works on a
    copy of it, so a single instance can be shared between threads.

    Usage:
        signer = SecureSigner("testKey", "testSecret")

        signature = signer.create_signature(
            "POST",
            "/transaction",
            [("sph-account", "test"), ("sph-merchant", "test_merchantId")],
            "",
        )
        # "SPH1 testKey <64 lowercase hex characters>"
    """

    def __init__(self, key_id: str, secret: str):
        self._credential = Credential(key_id=key_id, secret=secret)
        # Fails fast here if the backend cannot do HMAC-SHA256.
        self._hmac_context = crypto_hmac.HMAC(secret.encode("utf-8"), hashes.SHA256())

    @property
    def key_id(self) -> str:
        return self._credential.key_id

    def compute_sph_signature(
        self,
        method: str,
        uri: str,
        key_values: KeyValues,
        body: Optional[str] = "",
    ) -> Tuple[str, str]:
        """
        Compute the hex HMAC of the canonical message.

        Returns:
            Tuple of (hex_digest, string_to_sign) where:
            - hex_digest: lowercase hex HMAC-SHA256 of the string to sign
            - string_to_sign: the canonical string that was signed (for debugging)
        """
        string_to_sign = build_string_to_sign(method, uri, key_values, body)

        h = self._hmac_context.copy()
        h.update(string_to_sign.encode("utf-8"))

        return h.finalize().hex(), string_to_sign

    def create_signature(
        self,
        method: str,
        uri: str,
        key_values: KeyValues,
        body: Optional[str] = "",
    ) -> str:
        """
        Create the signature value sent in the "signature" header.

        Args:
            method: HTTP method, e.g. "GET" or "POST"
            uri: Request path with query string
            key_values: Headers or request parameters; only "sph-" ones are signed
            body: Request body, "" (or None) when there is none

        Returns:
            "SPH1 <key id> <hex digest>"
        """
        hex_digest, _ = self.compute_sph_signature(method, uri, key_values, body)
        return f"{SIGNATURE_SCHEME} {self._credential.key_id} {hex_digest}"

    def validate_signature(
        self,
        method: str,
        uri: str,
        key_values: KeyValues,
        content: Optional[str] = "",
    ) -> bool:
        """
        Validate a message by checking the provided signature against the calculated one.

        Args:
            method: HTTP method, e.g. "POST" or "GET"
            uri: The request URI
            key_values: Headers or request parameters, including "signature"
            content: The body content

        Returns:
            True if a signature is found and matches the calculated one
        """
        received_signature = find_signature(key_values)
        if not received_signature:
            logger.debug("No signature found in %s %s", method, uri)
            return False

        # "signature" lacks the "sph-" prefix, so it never signs itself.
        created_signature = self.create_signature(method, uri, key_values, content)
        if hmac.compare_digest(
            received_signature.encode("utf-8"), created_signature.encode("utf-8")
        ):
            return True

        logger.warning("Signature mismatch for %s %s", method, uri)
        return False

    def validate_form_redirect(self, key_values: KeyValues) -> bool:
        """
        Validate the query parameters of a redirect back from the payment form.

        Args:
            key_values: The request parameters from the redirection. Either a
                map of name to string, a raw request map of name to a list of
                strings, or a sequence of (name, value) pairs

        Returns:
            True if the signature is found and matches
        """
        return self.validate_signature("GET", "", key_values, "")
