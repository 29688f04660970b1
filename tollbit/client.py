"""
Tollbit API Client

Client for the Tollbit metered content-licensing API. Generates encrypted
licensing tokens and exchanges them for licensed content or price quotes.

API flow:
1. generate_token(): encrypt a licensing request under the secret key
2. GET /dev/v1/content/{url} with the token: licensed page content
   GET /dev/v1/rate/{url}: price quote, no token needed

Response contract: both endpoints answer with a JSON array and only the
first element counts. An empty array (or empty content.main) means
"nothing available" and is raised as NotFoundError, never returned.

Tokens carry no expiry or nonce tracking; replaying an old token is not
prevented by this client.
"""

import json
import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional

from .config import (
    DEFAULT_CONFIG,
    HEADER_ORG_CUID,
    HEADER_TOKEN,
    HEADER_USER_AGENT,
    ClientConfig,
)
from .context import RequestContext
from .crypto import decode_token, encode_token
from .errors import (
    APIError,
    ConfigurationError,
    ContentNotFoundError,
    MalformedResponseError,
    RateNotFoundError,
    SerializationError,
    UnsupportedCurrencyError,
)
from .models import ContentResult, LicensingRequest, RateResult, TokenParams
from .transport import RequestsTransport, Transport, TransportResponse
from .urls import bot_user_agent, content_endpoint, rate_endpoint

logger = logging.getLogger(__name__)


class TollbitClient:
    """
    HTTP client for the Tollbit API.

    Holds only read-only identity fields and a transport, so one client can
    serve concurrent callers if the transport can.

    Usage:
        client = TollbitClient(secret_key, "org-abc", "MyBot")
        token = client.generate_token(TokenParams(url="https://www.site.com/page", max_price_micros=500))
        result = client.get_content_with_token(token, RequestContext(timeout=10))
        print(result.main)

        rate = client.get_rate("https://www.site.com/page")
    """

    def __init__(
        self,
        secret_key: str,
        organization_id: str,
        user_agent: str,
        transport: Optional[Transport] = None,
        config: Optional[ClientConfig] = None,
        proxy: Optional[dict] = None,
    ):
        if not secret_key:
            raise ConfigurationError("secret_key is required")
        if not organization_id:
            raise ConfigurationError("organization_id is required")
        if not user_agent:
            raise ConfigurationError("user_agent is required")

        self._secret_key = secret_key
        self.organization_id = organization_id
        self.user_agent = user_agent
        self.config = config or DEFAULT_CONFIG
        self._owns_transport = transport is None
        self.transport = transport or RequestsTransport(timeout=self.config.timeout, proxy=proxy)

    def __repr__(self) -> str:
        return f"TollbitClient(organization_id={self.organization_id!r}, user_agent={self.user_agent!r})"

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        """Close the transport if this client created it."""
        if self._owns_transport and hasattr(self.transport, "close"):
            self.transport.close()

    # ── Token ──

    def generate_token(self, params: TokenParams) -> str:
        """
        Build and encrypt a licensing request.

        Args:
            params: Target url, price ceiling, currency, license type

        Returns:
            Opaque token for the TollbitToken header

        Raises:
            UnsupportedCurrencyError: currency is not supported
            SerializationError: invalid price or request not serializable
            CryptoError: encryption failed
        """
        if params.currency not in self.config.supported_currencies:
            raise UnsupportedCurrencyError(
                f"Unsupported currency: {params.currency}. "
                f"Expected one of: {sorted(self.config.supported_currencies)}"
            )
        if isinstance(params.max_price_micros, bool) or not isinstance(params.max_price_micros, int):
            raise SerializationError(f"max_price_micros must be int, got {type(params.max_price_micros).__name__}")
        if params.max_price_micros < 0:
            raise SerializationError(f"max_price_micros must be >= 0, got {params.max_price_micros}")

        request = LicensingRequest(
            org_cuid=self.organization_id,
            key=self._secret_key,
            url=params.url,
            user_agent=self.user_agent,
            max_price_micros=params.max_price_micros,
            currency=params.currency,
            license_type=params.license_type,
        )
        return encode_token(request, self._secret_key)

    # ── Content ──

    def get_content_with_token(self, token: str, ctx: Optional[RequestContext] = None) -> ContentResult:
        """
        Fetch licensed content for a token.

        The token is decrypted to recover url and org id: the API is
        stateless and the token is the only carrier of the request.

        GET /dev/v1/content/{canonical url}

        Args:
            token: Token from generate_token()
            ctx: Cancellation context (a fresh one if omitted)

        Returns:
            First ContentResult of the response

        Raises:
            CryptoError / SerializationError: token cannot be decoded
            TransportError: network failure (RequestCancelledError, RequestTimeoutError, APIError)
            MalformedResponseError: body is not an array of content objects
            ContentNotFoundError: empty array or empty content.main
        """
        request = decode_token(token, self._secret_key)

        url = content_endpoint(request.url, self.config)
        headers = {
            HEADER_ORG_CUID: request.org_cuid,
            HEADER_USER_AGENT: bot_user_agent(self.user_agent),
            HEADER_TOKEN: token,
        }

        items = self._get_array(url, headers, ctx)
        if not items:
            raise ContentNotFoundError(f"Could not get content for {request.url}")

        result = ContentResult.from_dict(items[0])
        if not result.main:
            raise ContentNotFoundError(f"Could not get content for {request.url}: empty main")

        logger.debug(f"Content for {request.url}: {len(result.main)} chars, price {result.rate.price_micros}")
        return result

    def get_content(self, params: TokenParams, ctx: Optional[RequestContext] = None) -> ContentResult:
        """generate_token() followed by get_content_with_token()."""
        token = self.generate_token(params)
        return self.get_content_with_token(token, ctx)

    # ── Rate ──

    def get_rate(self, target_url: str, ctx: Optional[RequestContext] = None) -> RateResult:
        """
        Get the price quote for a url.

        GET /dev/v1/rate/{canonical url}

        Args:
            target_url: Page url, with or without scheme / www.
            ctx: Cancellation context (a fresh one if omitted)

        Returns:
            First RateResult of the response

        Raises:
            TransportError: network failure (RequestCancelledError, RequestTimeoutError, APIError)
            MalformedResponseError: body is not an array of rate objects
            RateNotFoundError: empty array
        """
        url = rate_endpoint(target_url, self.config)
        headers = {HEADER_USER_AGENT: bot_user_agent(self.user_agent)}

        items = self._get_array(url, headers, ctx)
        if not items:
            raise RateNotFoundError(f"Could not get rate for {target_url}")

        return RateResult.from_dict(items[0])

    # ── Internals ──

    def _get_array(self, url: str, headers: Dict[str, str], ctx: Optional[RequestContext]) -> List[Any]:
        """Single GET round trip; returns the decoded JSON array."""
        ctx = ctx or RequestContext()
        ctx.raise_if_cancelled()

        logger.debug(f"GET {url}")
        resp = self.transport.get(url, headers, ctx)

        # Transports may ignore ctx; re-check after the round trip
        ctx.raise_if_cancelled()

        if not resp.ok:
            raise APIError(resp.status_code, resp.text())

        return self._decode_array(resp)

    @staticmethod
    def _decode_array(resp: TransportResponse) -> List[Any]:
        try:
            body = json.loads(resp.body.decode('utf-8'))
        except (UnicodeDecodeError, ValueError) as e:
            raise MalformedResponseError(f"Invalid JSON response: {e}") from e

        if not isinstance(body, list):
            raise MalformedResponseError(f"Expected JSON array, got {type(body).__name__}")
        return body


def new_client(
    secret_key: str,
    organization_id: str,
    user_agent: str,
    transport: Optional[Transport] = None,
    config: Optional[ClientConfig] = None,
    timeout: Optional[float] = None,
    proxy: Optional[dict] = None,
) -> TollbitClient:
    """
    Construct a TollbitClient.

    timeout / proxy configure the default RequestsTransport and are ignored
    when a transport is passed in.
    """
    config = config or DEFAULT_CONFIG
    if timeout is not None:
        config = replace(config, timeout=timeout)
    return TollbitClient(
        secret_key, organization_id, user_agent,
        transport=transport, config=config, proxy=proxy,
    )
