"""
Tollbit client exceptions.

Every public operation either returns a fully populated result or raises
exactly one of these. Lower-level exceptions (cryptography, requests, json)
are chained via ``__cause__``.
"""


class TollbitError(Exception):
    """Base error for the Tollbit client."""
    pass


class ConfigurationError(TollbitError):
    """Client constructed with missing or invalid identity fields."""
    pass


# ── Token codec ──

class SerializationError(TollbitError):
    """Licensing request cannot be encoded to / decoded from its wire form."""
    pass


class UnsupportedCurrencyError(SerializationError):
    """Currency is not in SUPPORTED_CURRENCIES."""
    pass


class CryptoError(TollbitError):
    """Encryption or decryption failure."""
    pass


class DecryptionError(CryptoError):
    """Authentication failed: wrong secret or tampered token."""
    pass


class MalformedTokenError(CryptoError):
    """Token cannot be split into nonce / ciphertext / tag."""
    pass


# ── Network ──

class TransportError(TollbitError):
    """Network-level failure while talking to the Tollbit API."""
    pass


class RequestCancelledError(TransportError):
    """Request aborted because the caller cancelled its RequestContext."""
    pass


class RequestTimeoutError(TransportError):
    """Request exceeded the context deadline or transport timeout."""
    pass


class APIError(TransportError):
    """API answered with a non-2xx status."""
    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(f"Tollbit API error {status_code}: {message}")


# ── Responses ──

class MalformedResponseError(TollbitError):
    """Body is not a JSON array of the expected shape."""
    pass


class NotFoundError(TollbitError):
    """Response array is empty or a required field is empty."""
    pass


class ContentNotFoundError(NotFoundError):
    """No licensed content in the response."""
    pass


class RateNotFoundError(NotFoundError):
    """No rate in the response."""
    pass
