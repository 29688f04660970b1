"""
Tollbit client library.

Usage:
    from tollbit import new_client, TokenParams, LicenseType

    client = new_client(secret_key, "org-abc", "MyBot")
    result = client.get_content(TokenParams(url="https://www.site.com/page", max_price_micros=500))
"""

import logging

from .client import TollbitClient, new_client
from .context import RequestContext
from .crypto import decode_token, encode_token
from .errors import (
    APIError,
    ConfigurationError,
    ContentNotFoundError,
    CryptoError,
    DecryptionError,
    MalformedResponseError,
    MalformedTokenError,
    NotFoundError,
    RateNotFoundError,
    RequestCancelledError,
    RequestTimeoutError,
    SerializationError,
    TollbitError,
    TransportError,
    UnsupportedCurrencyError,
)
from .models import (
    Content,
    ContentResult,
    LicenseType,
    LicensingRequest,
    RateResult,
    TokenParams,
)
from .transport import RequestsTransport, Transport, TransportResponse
from .urls import canonicalize_url

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "TollbitClient",
    "new_client",
    "RequestContext",
    "encode_token",
    "decode_token",
    "canonicalize_url",
    "RequestsTransport",
    "Transport",
    "TransportResponse",
    "Content",
    "ContentResult",
    "LicenseType",
    "LicensingRequest",
    "RateResult",
    "TokenParams",
    "TollbitError",
    "ConfigurationError",
    "SerializationError",
    "UnsupportedCurrencyError",
    "CryptoError",
    "DecryptionError",
    "MalformedTokenError",
    "TransportError",
    "RequestCancelledError",
    "RequestTimeoutError",
    "APIError",
    "MalformedResponseError",
    "NotFoundError",
    "ContentNotFoundError",
    "RateNotFoundError",
]
