"""
Connection settings loaded from a properties file or the environment.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from dotenv import dotenv_values, load_dotenv

from paymenthighway.connection import PaymentAPIConnection

# Keys used in config.properties
PROPERTY_KEYS = {
    "service_url": "service_url",
    "signature_key_id": "signature_key_id",
    "signature_secret": "signature_secret",
    "account": "sph-account",
    "merchant": "sph-merchant",
}

DEFAULT_ENV_PREFIX = "PAYMENTHIGHWAY_"


@dataclass(frozen=True)
class PaymentHighwayConfig:
    """Settings needed to build a PaymentAPIConnection."""

    service_url: str
    signature_key_id: str
    signature_secret: str = field(repr=False)
    account: str
    merchant: str

    @classmethod
    def _from_values(cls, values: Dict[str, Optional[str]], source: str) -> "PaymentHighwayConfig":
        missing = [key for key, value in values.items() if not value]
        if missing:
            raise ValueError(f"Missing settings in {source}: {', '.join(missing)}")
        return cls(**{key: value.strip() for key, value in values.items()})

    @classmethod
    def from_properties(cls, path: str = "config.properties") -> "PaymentHighwayConfig":
        """
        Read settings from a key=value properties file.

        Args:
            path: File path (default: config.properties in the working directory)

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If a required key is missing or empty
        """
        if not os.path.isfile(path):
            raise FileNotFoundError(f"Property file not found: {path}")

        properties = dotenv_values(path)
        values = {attr: properties.get(key) for attr, key in PROPERTY_KEYS.items()}
        return cls._from_values(values, path)

    @classmethod
    def from_env(
        cls,
        prefix: str = DEFAULT_ENV_PREFIX,
        dotenv_path: Optional[str] = None,
    ) -> "PaymentHighwayConfig":
        """
        Read settings from environment variables, e.g. PAYMENTHIGHWAY_SERVICE_URL.

        A .env file is loaded first; variables already set take precedence.

        Raises:
            ValueError: If a required variable is missing or empty
        """
        load_dotenv(dotenv_path)
        values = {attr: os.getenv(f"{prefix}{attr.upper()}") for attr in PROPERTY_KEYS}
        return cls._from_values(values, "environment")

    def create_connection(self, **kwargs) -> PaymentAPIConnection:
        """Build a PaymentAPIConnection; kwargs are passed through to it."""
        return PaymentAPIConnection(
            service_url=self.service_url,
            signature_key_id=self.signature_key_id,
            signature_secret=self.signature_secret,
            account=self.account,
            merchant=self.merchant,
            **kwargs,
        )
