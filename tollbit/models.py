"""
Data model for the Tollbit licensing protocol.

LicensingRequest is the plaintext carried inside an encrypted token.
ContentResult / RateResult mirror one element of the API's response arrays.
Field names are snake_case here; the wire form uses the camelCase keys the
API expects.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Union

from .config import DEFAULT_CURRENCY
from .errors import MalformedResponseError, SerializationError


class LicenseType(str, Enum):
    """Known license types. Unknown wire values are passed through as str."""
    ON_DEMAND = "ON_DEMAND_LICENSE"

    @classmethod
    def parse(cls, value: str) -> Union["LicenseType", str]:
        try:
            return cls(value)
        except ValueError:
            return value


def license_type_value(license_type: Union[LicenseType, str]) -> str:
    """Wire string for a LicenseType member or a passthrough string."""
    if isinstance(license_type, LicenseType):
        return license_type.value
    return str(license_type)


@dataclass(frozen=True)
class TokenParams:
    """Per-call part of a licensing request."""
    url: str
    max_price_micros: int
    currency: str = DEFAULT_CURRENCY
    license_type: Union[LicenseType, str] = LicenseType.ON_DEMAND


# (wire key, attribute, expected type)
_REQUEST_FIELDS = (
    ("orgCuid", "org_cuid", str),
    ("key", "key", str),
    ("url", "url", str),
    ("userAgent", "user_agent", str),
    ("maxPriceMicros", "max_price_micros", int),
    ("currency", "currency", str),
    ("licenseType", "license_type", str),
)


@dataclass(frozen=True)
class LicensingRequest:
    """Token plaintext. Exists only for one token encode/decode."""
    org_cuid: str
    key: str                  # shared secret, only ever sent inside the encrypted token
    url: str
    user_agent: str
    max_price_micros: int
    currency: str
    license_type: Union[LicenseType, str]

    def __repr__(self) -> str:
        return (
            f"LicensingRequest(org_cuid={self.org_cuid!r}, key=<redacted>, url={self.url!r}, "
            f"user_agent={self.user_agent!r}, max_price_micros={self.max_price_micros}, "
            f"currency={self.currency!r}, license_type={license_type_value(self.license_type)!r})"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "orgCuid": self.org_cuid,
            "key": self.key,
            "url": self.url,
            "userAgent": self.user_agent,
            "maxPriceMicros": self.max_price_micros,
            "currency": self.currency,
            "licenseType": license_type_value(self.license_type),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "LicensingRequest":
        """
        Build a request from its wire form.

        Raises:
            SerializationError: not an object, missing key or wrong type
        """
        if not isinstance(data, dict):
            raise SerializationError(f"Token payload must be an object, got {type(data).__name__}")

        values = {}
        for wire_key, attr, expected in _REQUEST_FIELDS:
            if wire_key not in data:
                raise SerializationError(f"Token payload missing '{wire_key}'")
            value = data[wire_key]
            # bool is an int subclass, never a valid price
            if not isinstance(value, expected) or isinstance(value, bool):
                raise SerializationError(
                    f"Token field '{wire_key}' must be {expected.__name__}, got {type(value).__name__}"
                )
            values[attr] = value

        values["license_type"] = LicenseType.parse(values["license_type"])
        return cls(**values)


# ── Response objects ──

def _get_field(data: dict, key: str, expected: type, default: Any, where: str) -> Any:
    """Read an optional response field, rejecting wrong JSON types."""
    value = data.get(key)
    if value is None:
        return default
    if expected is int:
        # JSON numbers like 500.0 are accepted when integral
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, bool) or not isinstance(value, int):
            raise MalformedResponseError(f"{where}.{key} must be a number, got {type(value).__name__}")
        return value
    if not isinstance(value, expected):
        raise MalformedResponseError(
            f"{where}.{key} must be {expected.__name__}, got {type(value).__name__}"
        )
    return value


def _require_object(data: Any, where: str) -> dict:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise MalformedResponseError(f"{where} must be an object, got {type(data).__name__}")
    return data


@dataclass(frozen=True)
class Content:
    """Licensed page content split into sections."""
    header: str = ""
    main: str = ""
    footer: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "Content":
        data = _require_object(data, "content")
        return cls(
            header=_get_field(data, "header", str, "", "content"),
            main=_get_field(data, "main", str, "", "content"),
            footer=_get_field(data, "footer", str, "", "content"),
        )


@dataclass(frozen=True)
class RateResult:
    """Price quote for a URL."""
    price_micros: int = 0
    currency: str = ""
    license_type: str = ""
    license_path: str = ""
    error: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "RateResult":
        data = _require_object(data, "rate")
        return cls(
            price_micros=_get_field(data, "priceMicros", int, 0, "rate"),
            currency=_get_field(data, "currency", str, "", "rate"),
            license_type=_get_field(data, "licenseType", str, "", "rate"),
            license_path=_get_field(data, "licensePath", str, "", "rate"),
            error=_get_field(data, "error", str, "", "rate"),
        )


@dataclass(frozen=True)
class ContentResult:
    """One element of the content endpoint's response array."""
    content: Content
    metadata: str
    rate: RateResult

    @property
    def main(self) -> str:
        return self.content.main

    @classmethod
    def from_dict(cls, data: Any) -> "ContentResult":
        if not isinstance(data, dict):
            raise MalformedResponseError(f"Content element must be an object, got {type(data).__name__}")
        return cls(
            content=Content.from_dict(data.get("content")),
            metadata=_get_field(data, "metadata", str, "", "response"),
            rate=RateResult.from_dict(data.get("rate")),
        )
